"""Configuration for the documentation review action."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

# ── Providers ────────────────────────────────────────────────────────────────
PROVIDER_OPENAI = "openai"
PROVIDER_DEEPSEEK = "deepseek"
PROVIDER_BEDROCK = "bedrock"
SUPPORTED_PROVIDERS = (PROVIDER_OPENAI, PROVIDER_DEEPSEEK, PROVIDER_BEDROCK)

DEFAULT_PROVIDER = PROVIDER_OPENAI
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_DEEPSEEK_MODEL = "deepseek-chat"
DEEPSEEK_API_URL = "https://api.deepseek.com/v1/chat/completions"

# Models that accept response_format={"type": "json_object"}
OPENAI_JSON_MODE_MODELS = (
    "gpt-4-1106-preview",
    "gpt-4-turbo",
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4.1",
    "gpt-4.1-mini",
)

# ── Bedrock Config ───────────────────────────────────────────────────────────
BEDROCK_PROFILE = "bedrock"
BEDROCK_REGION = "eu-west-1"
BEDROCK_MODEL_ID = "eu.anthropic.claude-sonnet-4-6"

# ── Sampling ─────────────────────────────────────────────────────────────────
TEMPERATURE = 0.2
MAX_TOKENS = 800
TOP_P = 1
FREQUENCY_PENALTY = 0
PRESENCE_PENALTY = 0

# Seconds before a provider call counts as failed
REQUEST_TIMEOUT = 60.0
CONNECT_TIMEOUT = 10.0

# ── Review Modes ─────────────────────────────────────────────────────────────
REVIEW_MODE_DEFAULT = "default"
REVIEW_MODE_SINGLE_COMMIT = "single_commit"
REVIEW_MODE_COMMIT_RANGE = "commit_range"

# ── Suggestion Synthesis ─────────────────────────────────────────────────────
# Recurring corrections seen in reviewed docs. Applied only when the old text is
# present and the new text is not, so a fixed line is never patched twice.
STATIC_CORRECTIONS: tuple[tuple[str, str], ...] = (
    ("PD 群", "PD 集群"),
    ("TiKV 群", "TiKV 集群"),
    ("TiDB 群", "TiDB 集群"),
    ("TiFlash 群", "TiFlash 集群"),
    ("Dashbaord", "Dashboard"),
    ("Grafana 监控面版", "Grafana 监控面板"),
)

# ── GitHub ───────────────────────────────────────────────────────────────────
GITHUB_API_BASE = "https://api.github.com"
GITHUB_USER_AGENT = "docreview-action"

# ── Server Config ────────────────────────────────────────────────────────────
SERVER_NAME = "docreview-mcp"
SERVER_VERSION = "0.3.0"
SERVER_HOST = "127.0.0.1"
SERVER_PORT = 8089

# ── Usage Logging ────────────────────────────────────────────────────────────
USAGE_LOG_PATH = "usage.log"


class ConfigurationError(ValueError):
    """Raised when the run cannot start, e.g. a provider has no credential."""


def get_input(environ: Mapping[str, str], name: str, default: str = "") -> str:
    """Read an action input the way GitHub Actions exposes it.

    Inputs arrive as ``INPUT_<NAME>`` (uppercased, spaces to underscores);
    a plain ``<NAME>`` variable is accepted for local runs.
    """
    key = "INPUT_" + name.replace(" ", "_").upper()
    value = environ.get(key)
    if value is None:
        value = environ.get(name, default)
    return value.strip()


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _as_bool(raw: str, default: bool) -> bool:
    if not raw:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ReviewerConfig:
    """Everything one review run needs, passed explicitly into the pipeline."""

    github_token: str = ""
    provider: str = DEFAULT_PROVIDER
    fallback_provider: Optional[str] = None
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL
    deepseek_api_key: str = ""
    deepseek_model: str = DEFAULT_DEEPSEEK_MODEL
    bedrock_profile: str = BEDROCK_PROFILE
    bedrock_region: str = BEDROCK_REGION
    bedrock_model_id: str = BEDROCK_MODEL_ID
    exclude_patterns: tuple[str, ...] = ()
    review_mode: str = REVIEW_MODE_DEFAULT
    commit_sha: str = ""
    base_sha: str = ""
    head_sha: str = ""
    allowed_users: tuple[str, ...] = ()
    prompt_path: str = ""
    synthesize_suggestions: bool = True
    request_timeout: float = REQUEST_TIMEOUT
    temperature: float = TEMPERATURE
    max_tokens: int = MAX_TOKENS
    usage_log_path: str = USAGE_LOG_PATH
    workspace: str = field(default_factory=os.getcwd)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReviewerConfig":
        """Build a config from action inputs and environment variables."""
        env = os.environ if environ is None else environ

        provider = get_input(env, "API_PROVIDER").lower() or DEFAULT_PROVIDER
        openai_key = get_input(env, "OPENAI_API_KEY")

        fallback = get_input(env, "FALLBACK_PROVIDER").lower() or None
        if fallback is None and provider == PROVIDER_DEEPSEEK and openai_key:
            fallback = PROVIDER_OPENAI

        timeout_raw = get_input(env, "REQUEST_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else REQUEST_TIMEOUT
        except ValueError as e:
            raise ConfigurationError(
                f"REQUEST_TIMEOUT must be a number of seconds, got {timeout_raw!r}"
            ) from e

        return cls(
            github_token=get_input(env, "GITHUB_TOKEN"),
            provider=provider,
            fallback_provider=fallback,
            openai_api_key=openai_key,
            openai_model=get_input(env, "OPENAI_API_MODEL") or DEFAULT_OPENAI_MODEL,
            deepseek_api_key=get_input(env, "DEEPSEEK_API_KEY"),
            deepseek_model=get_input(env, "DEEPSEEK_API_MODEL") or DEFAULT_DEEPSEEK_MODEL,
            bedrock_profile=get_input(env, "BEDROCK_PROFILE") or BEDROCK_PROFILE,
            bedrock_region=get_input(env, "BEDROCK_REGION") or BEDROCK_REGION,
            bedrock_model_id=get_input(env, "BEDROCK_MODEL_ID") or BEDROCK_MODEL_ID,
            exclude_patterns=_split_csv(get_input(env, "exclude")),
            review_mode=get_input(env, "REVIEW_MODE") or REVIEW_MODE_DEFAULT,
            commit_sha=get_input(env, "COMMIT_SHA"),
            base_sha=get_input(env, "BASE_SHA"),
            head_sha=get_input(env, "HEAD_SHA"),
            allowed_users=_split_csv(get_input(env, "ALLOWED_USERS")),
            prompt_path=get_input(env, "PROMPT_PATH"),
            synthesize_suggestions=_as_bool(
                get_input(env, "SYNTHESIZE_SUGGESTIONS"), default=True
            ),
            request_timeout=timeout,
            usage_log_path=env.get("DOCREVIEW_USAGE_LOG", USAGE_LOG_PATH),
            workspace=env.get("GITHUB_WORKSPACE") or os.getcwd(),
        )

    def has_credential(self, provider: str) -> bool:
        """Whether ``provider`` has the credential it needs to be called."""
        if provider == PROVIDER_OPENAI:
            return bool(self.openai_api_key)
        if provider == PROVIDER_DEEPSEEK:
            return bool(self.deepseek_api_key)
        if provider == PROVIDER_BEDROCK:
            return bool(self.bedrock_profile)
        return False

    def validate(self) -> None:
        """Fail fast on settings that would only surface mid-run.

        Raises:
            ConfigurationError: unknown provider, missing credential for the
                selected provider, or an unknown review mode.
        """
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported API provider: {self.provider!r} "
                f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
            )
        if not self.has_credential(self.provider):
            raise ConfigurationError(
                f"{_credential_name(self.provider)} is required when "
                f"API_PROVIDER is set to '{self.provider}'"
            )
        if self.fallback_provider and self.fallback_provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported fallback provider: {self.fallback_provider!r}"
            )
        if self.review_mode not in (
            REVIEW_MODE_DEFAULT,
            REVIEW_MODE_SINGLE_COMMIT,
            REVIEW_MODE_COMMIT_RANGE,
        ):
            raise ConfigurationError(f"Unsupported REVIEW_MODE: {self.review_mode!r}")


def _credential_name(provider: str) -> str:
    return {
        PROVIDER_OPENAI: "OPENAI_API_KEY",
        PROVIDER_DEEPSEEK: "DEEPSEEK_API_KEY",
        PROVIDER_BEDROCK: "BEDROCK_PROFILE",
    }.get(provider, "API key")
