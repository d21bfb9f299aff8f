"""Tests for docreview.config environment loading and validation."""
from __future__ import annotations

import pytest

from docreview.config import (
    DEFAULT_OPENAI_MODEL,
    REQUEST_TIMEOUT,
    ConfigurationError,
    ReviewerConfig,
    get_input,
)


class TestGetInput:
    def test_action_input_wins(self):
        env = {"INPUT_API_PROVIDER": "deepseek", "API_PROVIDER": "openai"}
        assert get_input(env, "API_PROVIDER") == "deepseek"

    def test_plain_variable_fallback(self):
        assert get_input({"API_PROVIDER": " openai "}, "API_PROVIDER") == "openai"

    def test_default(self):
        assert get_input({}, "REVIEW_MODE", "default") == "default"


class TestFromEnv:
    def test_defaults(self):
        config = ReviewerConfig.from_env({"INPUT_OPENAI_API_KEY": "sk-test"})
        assert config.provider == "openai"
        assert config.openai_model == DEFAULT_OPENAI_MODEL
        assert config.fallback_provider is None
        assert config.request_timeout == REQUEST_TIMEOUT
        assert config.synthesize_suggestions is True
        config.validate()

    def test_deepseek_falls_back_to_openai_when_key_present(self):
        config = ReviewerConfig.from_env(
            {"INPUT_API_PROVIDER": "DeepSeek", "INPUT_DEEPSEEK_API_KEY": "k", "INPUT_OPENAI_API_KEY": "sk"}
        )
        assert config.provider == "deepseek"
        assert config.fallback_provider == "openai"

    def test_deepseek_without_openai_key_has_no_fallback(self):
        config = ReviewerConfig.from_env({"INPUT_API_PROVIDER": "deepseek", "INPUT_DEEPSEEK_API_KEY": "k"})
        assert config.fallback_provider is None

    def test_lists_are_split_and_trimmed(self):
        config = ReviewerConfig.from_env(
            {"INPUT_EXCLUDE": "*.yml, docs/legacy/*,", "INPUT_ALLOWED_USERS": "alice, bob"}
        )
        assert config.exclude_patterns == ("*.yml", "docs/legacy/*")
        assert config.allowed_users == ("alice", "bob")

    def test_review_mode_inputs(self):
        config = ReviewerConfig.from_env(
            {"INPUT_REVIEW_MODE": "commit_range", "INPUT_BASE_SHA": "abc..def"}
        )
        assert config.review_mode == "commit_range"
        assert config.base_sha == "abc..def"

    def test_synthesis_switch(self):
        assert ReviewerConfig.from_env({"INPUT_SYNTHESIZE_SUGGESTIONS": "false"}).synthesize_suggestions is False

    def test_timeout(self):
        assert ReviewerConfig.from_env({"INPUT_REQUEST_TIMEOUT": "15"}).request_timeout == 15.0

    def test_bad_timeout(self):
        with pytest.raises(ConfigurationError, match="REQUEST_TIMEOUT"):
            ReviewerConfig.from_env({"INPUT_REQUEST_TIMEOUT": "soon"})

    def test_workspace_and_usage_log(self, tmp_path):
        config = ReviewerConfig.from_env(
            {"GITHUB_WORKSPACE": str(tmp_path), "DOCREVIEW_USAGE_LOG": ""}
        )
        assert config.workspace == str(tmp_path)
        assert config.usage_log_path == ""


class TestValidate:
    def test_missing_deepseek_key(self):
        with pytest.raises(ConfigurationError, match="DEEPSEEK_API_KEY is required"):
            ReviewerConfig(provider="deepseek").validate()

    def test_bedrock_needs_profile(self):
        ReviewerConfig(provider="bedrock").validate()
        with pytest.raises(ConfigurationError, match="BEDROCK_PROFILE"):
            ReviewerConfig(provider="bedrock", bedrock_profile="").validate()

    def test_unknown_fallback(self):
        with pytest.raises(ConfigurationError, match="fallback"):
            ReviewerConfig(openai_api_key="sk", fallback_provider="gemini").validate()

    def test_unknown_review_mode(self):
        with pytest.raises(ConfigurationError, match="REVIEW_MODE"):
            ReviewerConfig(openai_api_key="sk", review_mode="everything").validate()
