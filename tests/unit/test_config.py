"""Unit tests for pipeline configuration loading."""

import pytest

from changelog_ticker.config import PipelineConfig, load_config
from changelog_ticker.errors import ConfigurationError


class TestLoadConfig:
    def test_defaults(self):
        config = load_config()
        assert config == PipelineConfig()
        assert config.fetch.batch_size == 20
        assert config.fetch.retries == 3
        assert config.detail_fetch.batch_size == 5
        assert config.detail_fetch.pacing_interval_seconds == 1.0
        assert config.analysis.max_diff_lines == 500
        assert config.analysis.batch_strategy_max_commits == 50
        assert config.summarization.max_bullets_per_category == 10
        assert config.max_consecutive_llm_failures == 3

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CHANGELOG_FETCH_BATCH_SIZE", "10")
        monkeypatch.setenv("CHANGELOG_FETCH_RETRIES", "0")
        monkeypatch.setenv("CHANGELOG_DETAIL_PACING_SECONDS", "0.25")
        monkeypatch.setenv("CHANGELOG_MAX_DIFF_LINES", "200")
        config = load_config()
        assert config.fetch.batch_size == 10
        assert config.fetch.retries == 0
        assert config.detail_fetch.pacing_interval_seconds == 0.25
        assert config.analysis.max_diff_lines == 200

    def test_blank_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("CHANGELOG_FETCH_BATCH_SIZE", "  ")
        assert load_config().fetch.batch_size == 20

    def test_non_integer_rejected(self, monkeypatch):
        monkeypatch.setenv("CHANGELOG_FETCH_BATCH_SIZE", "many")
        with pytest.raises(ConfigurationError, match="CHANGELOG_FETCH_BATCH_SIZE"):
            load_config()

    def test_below_minimum_rejected(self, monkeypatch):
        monkeypatch.setenv("CHANGELOG_MAX_CONSECUTIVE_LLM_FAILURES", "0")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_negative_delay_rejected(self, monkeypatch):
        monkeypatch.setenv("CHANGELOG_DETAIL_PACING_SECONDS", "-1")
        with pytest.raises(ConfigurationError):
            load_config()
