"""
Pipeline configuration.

Loads .env automatically, then reads every tunable from environment
variables prefixed with CHANGELOG_. Unset variables keep the defaults
below.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from changelog_ticker.errors import ConfigurationError


def load_env_file() -> None:
    """Load environment variables from .env file."""
    # Try to find .env file in project root (parent of changelog_ticker package)
    project_root = Path(__file__).parent.parent
    env_file = project_root / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        # Fallback: try current directory
        load_dotenv()


@dataclass(frozen=True)
class FetchConfig:
    """Commit metadata fetch settings."""

    batch_size: int = 20
    max_batch_size: int = 50
    retries: int = 3
    retry_initial_delay: float = 0.5
    retry_max_delay: float = 4.0
    timeout_seconds: float = 25.0


@dataclass(frozen=True)
class DetailFetchConfig:
    """Commit detail fetch settings."""

    batch_size: int = 5
    pacing_interval_seconds: float = 1.0
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class AnalysisConfig:
    """Impact analysis settings."""

    batch_strategy_max_commits: int = 50
    batch_group_size: int = 4
    quick_batch_size: int = 15
    max_diff_lines: int = 500
    tier1_min_score: int = 7
    tier2_min_score: int = 4
    skip_generated_files: bool = True


@dataclass(frozen=True)
class SummarizationConfig:
    """Category summarization and assembly settings."""

    max_bullets_per_category: int = 10
    max_summary_sentences: int = 3


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level pipeline configuration."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    detail_fetch: DetailFetchConfig = field(default_factory=DetailFetchConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    summarization: SummarizationConfig = field(default_factory=SummarizationConfig)
    max_consecutive_llm_failures: int = 3


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value}")
    return value


def load_config() -> PipelineConfig:
    """
    Build the pipeline configuration from the environment.

    Raises:
        ConfigurationError: If a variable is set to an invalid value
    """
    load_env_file()

    return PipelineConfig(
        fetch=FetchConfig(
            batch_size=_int_env("CHANGELOG_FETCH_BATCH_SIZE", 20, minimum=1),
            retries=_int_env("CHANGELOG_FETCH_RETRIES", 3),
            retry_initial_delay=_float_env("CHANGELOG_FETCH_RETRY_DELAY", 0.5),
            retry_max_delay=_float_env("CHANGELOG_FETCH_RETRY_MAX_DELAY", 4.0),
            timeout_seconds=_float_env("CHANGELOG_FETCH_TIMEOUT", 25.0),
        ),
        detail_fetch=DetailFetchConfig(
            batch_size=_int_env("CHANGELOG_DETAIL_BATCH_SIZE", 5, minimum=1),
            pacing_interval_seconds=_float_env("CHANGELOG_DETAIL_PACING_SECONDS", 1.0),
            timeout_seconds=_float_env("CHANGELOG_DETAIL_TIMEOUT", 30.0),
        ),
        analysis=AnalysisConfig(
            max_diff_lines=_int_env("CHANGELOG_MAX_DIFF_LINES", 500, minimum=1),
        ),
        max_consecutive_llm_failures=_int_env(
            "CHANGELOG_MAX_CONSECUTIVE_LLM_FAILURES", 3, minimum=1
        ),
    )
