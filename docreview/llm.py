"""LLM providers and the fallback gateway used for every review prompt."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, Union

import boto3
import httpx
from botocore.config import Config as BotoConfig
from botocore.exceptions import ProfileNotFound
from openai import OpenAI

from docreview.config import (
    CONNECT_TIMEOUT,
    DEEPSEEK_API_URL,
    FREQUENCY_PENALTY,
    MAX_TOKENS,
    OPENAI_JSON_MODE_MODELS,
    PRESENCE_PENALTY,
    PROVIDER_BEDROCK,
    PROVIDER_DEEPSEEK,
    PROVIDER_OPENAI,
    REQUEST_TIMEOUT,
    TEMPERATURE,
    TOP_P,
    ConfigurationError,
    ReviewerConfig,
)
from docreview.models import ProviderFailure, ProviderResult, ProviderSuccess

logger = logging.getLogger(__name__)

# What a provider call may hand back before normalization
RawCompletion = Union[ProviderSuccess, ProviderFailure, str, None]


# ── Usage log setup ──────────────────────────────────────────────────────────


def get_usage_logger(path: str) -> logging.Logger:
    """File logger appending one TSV row per provider call to ``path``."""
    usage_logger = logging.getLogger("docreview.usage")
    usage_logger.setLevel(logging.INFO)
    usage_logger.propagate = False  # Don't duplicate to root logger

    log_path = Path(path).resolve()
    for handler in usage_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_path):
            return usage_logger

    log_path.parent.mkdir(parents=True, exist_ok=True)
    # Check if file needs header BEFORE creating the handler (which creates the file)
    needs_header = not log_path.exists() or log_path.stat().st_size == 0

    handler = logging.FileHandler(str(log_path), mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    usage_logger.addHandler(handler)

    if needs_header:
        handler.emit(
            logging.makeLogRecord(
                {
                    "msg": "timestamp\tmodel\ttool\tinput_tokens\toutput_tokens"
                    "\ttotal_tokens\tlatency_ms",
                    "levelno": logging.INFO,
                }
            )
        )
    return usage_logger


def log_usage(
    usage_log_path: Optional[str],
    model: str,
    tool: str,
    input_tokens: int,
    output_tokens: int,
    latency_ms: int,
) -> None:
    """Log token usage to both the usage log file and the standard logger."""
    total = input_tokens + output_tokens
    logger.info(
        "LLM usage [%s]: input=%d output=%d total=%d latency=%dms model=%s",
        tool,
        input_tokens,
        output_tokens,
        total,
        latency_ms,
        model,
    )
    if not usage_log_path:
        return

    ts = datetime.now(timezone.utc).isoformat()
    get_usage_logger(usage_log_path).info(
        "%s\t%s\t%s\t%d\t%d\t%d\t%d",
        ts,
        model,
        tool,
        input_tokens,
        output_tokens,
        total,
        latency_ms,
    )


# ── Providers ────────────────────────────────────────────────────────────────


class LLMProvider(Protocol):
    name: str

    def complete(self, prompt: str, tool: str = "review") -> RawCompletion: ...


class BaseProvider:
    """Shared call wrapper: timing, usage logging, errors as ProviderFailure.

    Subclasses implement ``_request`` returning ``(text, input_tokens,
    output_tokens)`` and raise on transport errors.
    """

    name = "base"

    def __init__(
        self,
        model: str,
        temperature: float = TEMPERATURE,
        max_tokens: int = MAX_TOKENS,
        timeout: float = REQUEST_TIMEOUT,
        usage_log_path: Optional[str] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.usage_log_path = usage_log_path

    def _request(self, prompt: str) -> tuple[Optional[str], int, int]:
        raise NotImplementedError

    def complete(self, prompt: str, tool: str = "review") -> ProviderResult:
        start = time.monotonic()
        logger.info("%s request starting [%s] model=%s", self.name, tool, self.model)
        try:
            text, input_tokens, output_tokens = self._request(prompt)
        except Exception as e:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.error("%s call failed after %dms: %s", self.name, latency_ms, e)
            return ProviderFailure(provider=self.name, reason=f"{type(e).__name__}: {e}")

        latency_ms = int((time.monotonic() - start) * 1000)
        log_usage(
            self.usage_log_path,
            self.model,
            tool,
            input_tokens,
            output_tokens,
            latency_ms,
        )

        if not text or not text.strip():
            logger.warning("Empty response from %s for tool=%s", self.name, tool)
            return ProviderFailure(provider=self.name, reason="empty response")

        logger.debug("%s response content:\n%s", self.name, text)
        return ProviderSuccess(provider=self.name, text=text.strip())


class OpenAIProvider(BaseProvider):
    name = PROVIDER_OPENAI

    def __init__(self, api_key: str, model: str, client: Optional[OpenAI] = None, **kwargs):
        super().__init__(model=model, **kwargs)
        self.client = client or OpenAI(api_key=api_key, timeout=self.timeout, max_retries=1)

    def _request(self, prompt: str) -> tuple[Optional[str], int, int]:
        extra = {}
        if self.model in OPENAI_JSON_MODE_MODELS:
            extra["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            top_p=TOP_P,
            frequency_penalty=FREQUENCY_PENALTY,
            presence_penalty=PRESENCE_PENALTY,
            messages=[{"role": "system", "content": prompt}],
            **extra,
        )

        text = response.choices[0].message.content if response.choices else None
        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0
        return text, input_tokens, output_tokens


class DeepSeekProvider(BaseProvider):
    name = PROVIDER_DEEPSEEK

    def __init__(
        self,
        api_key: str,
        model: str,
        client: Optional[httpx.Client] = None,
        api_url: str = DEEPSEEK_API_URL,
        **kwargs,
    ):
        super().__init__(model=model, **kwargs)
        self.api_key = api_key
        self.api_url = api_url
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=CONNECT_TIMEOUT)
        )

    def _request(self, prompt: str) -> tuple[Optional[str], int, int]:
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": TOP_P,
            "frequency_penalty": FREQUENCY_PENALTY,
            "presence_penalty": PRESENCE_PENALTY,
        }
        resp = self.client.post(
            self.api_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            json=body,
        )
        if resp.is_error:
            raise RuntimeError(
                f"DeepSeek API error: {resp.status_code} {resp.reason_phrase}\n"
                f"Details: {resp.text}"
            )

        data = resp.json()
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content")
        usage = data.get("usage") or {}
        return text, usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0)


class BedrockProvider(BaseProvider):
    """Anthropic models on AWS Bedrock, streamed."""

    name = PROVIDER_BEDROCK

    def __init__(self, profile: str, region: str, model: str, client=None, **kwargs):
        super().__init__(model=model, **kwargs)
        if client is None:
            session = boto3.Session(profile_name=profile, region_name=region)
            client = session.client(
                "bedrock-runtime",
                config=BotoConfig(
                    retries={"max_attempts": 2, "mode": "adaptive"},
                    read_timeout=int(self.timeout),
                    connect_timeout=int(CONNECT_TIMEOUT),
                    tcp_keepalive=True,
                ),
            )
            logger.info(
                "Bedrock client initialized: profile=%s region=%s model=%s",
                profile,
                region,
                model,
            )
        self.client = client

    def _request(self, prompt: str) -> tuple[Optional[str], int, int]:
        body = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        response = self.client.invoke_model_with_response_stream(
            modelId=self.model,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(body),
        )

        text_chunks: list[str] = []
        input_tokens = 0
        output_tokens = 0
        stop_reason = "unknown"

        for event in response["body"]:
            # Guard against non-chunk events (error events, etc.)
            if "chunk" not in event:
                for key in (
                    "internalServerException",
                    "modelStreamErrorException",
                    "throttlingException",
                    "validationException",
                ):
                    if key in event:
                        err_msg = event[key].get("message", str(event[key]))
                        raise RuntimeError(f"Bedrock stream error ({key}): {err_msg}")
                logger.warning("Unknown non-chunk event in stream: %s", list(event.keys()))
                continue

            try:
                chunk = json.loads(event["chunk"]["bytes"])
            except (json.JSONDecodeError, KeyError) as parse_err:
                logger.warning("Malformed stream chunk, skipping: %s", parse_err)
                continue

            chunk_type = chunk.get("type", "")
            if chunk_type == "content_block_delta":
                delta = chunk.get("delta", {})
                if delta.get("type") == "text_delta":
                    text_chunks.append(delta.get("text", ""))
            elif chunk_type == "message_delta":
                stop_reason = chunk.get("delta", {}).get("stop_reason", "unknown")
                output_tokens = chunk.get("usage", {}).get("output_tokens", 0)
            elif chunk_type == "message_start":
                input_tokens = (
                    chunk.get("message", {}).get("usage", {}).get("input_tokens", 0)
                )

        if stop_reason == "max_tokens":
            logger.warning(
                "Response truncated (hit max_tokens=%d). Output may be incomplete.",
                self.max_tokens,
            )
        return "".join(text_chunks), input_tokens, output_tokens


def create_provider(name: str, config: ReviewerConfig) -> BaseProvider:
    """Build the provider ``name`` from ``config``; credentials must be present."""
    common = {
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout": config.request_timeout,
        "usage_log_path": config.usage_log_path,
    }
    if name == PROVIDER_OPENAI:
        return OpenAIProvider(config.openai_api_key, config.openai_model, **common)
    if name == PROVIDER_DEEPSEEK:
        return DeepSeekProvider(config.deepseek_api_key, config.deepseek_model, **common)
    if name == PROVIDER_BEDROCK:
        try:
            return BedrockProvider(
                config.bedrock_profile,
                config.bedrock_region,
                config.bedrock_model_id,
                **common,
            )
        except ProfileNotFound as e:
            raise ConfigurationError(
                f"BEDROCK_PROFILE '{config.bedrock_profile}' is not a configured AWS profile"
            ) from e
    raise ConfigurationError(f"Unsupported API provider: {name!r}")


# ── Gateway ──────────────────────────────────────────────────────────────────


class ProviderGateway:
    """Primary provider with a single optional fallback.

    The fallback is tried once, with the same prompt, only after the primary
    failed; its result is final whatever it is.
    """

    def __init__(self, primary: LLMProvider, secondary: Optional[LLMProvider] = None):
        self.primary = primary
        self.secondary = secondary

    @staticmethod
    def _call(provider: LLMProvider, prompt: str, tool: str) -> ProviderResult:
        name = getattr(provider, "name", type(provider).__name__)
        try:
            result = provider.complete(prompt, tool=tool)
        except Exception as e:
            logger.error("Error with %s API: %s", name, e)
            return ProviderFailure(provider=name, reason=f"{type(e).__name__}: {e}")

        if isinstance(result, (ProviderSuccess, ProviderFailure)):
            return result
        if result is None or not str(result).strip():
            return ProviderFailure(provider=name, reason="no response")
        return ProviderSuccess(provider=name, text=str(result))

    def complete(self, prompt: str, tool: str = "review") -> ProviderResult:
        result = self._call(self.primary, prompt, tool)
        if result.ok or self.secondary is None:
            return result

        logger.warning(
            "%s failed (%s), falling back to %s",
            result.provider,
            result.reason,
            getattr(self.secondary, "name", type(self.secondary).__name__),
        )
        return self._call(self.secondary, prompt, tool)


def build_gateway(config: ReviewerConfig) -> ProviderGateway:
    """Validate ``config`` and build the gateway, before any network traffic.

    Raises:
        ConfigurationError: the selected provider is unknown or has no usable
            credential (including a Bedrock profile missing from the AWS config).
    """
    config.validate()
    primary = create_provider(config.provider, config)

    secondary = None
    fallback = config.fallback_provider
    if fallback and fallback != config.provider:
        if config.has_credential(fallback):
            secondary = create_provider(fallback, config)
            logger.info("Fallback provider configured: %s", fallback)
        else:
            logger.warning(
                "Fallback provider %s has no credential; running without fallback",
                fallback,
            )
    return ProviderGateway(primary, secondary)
