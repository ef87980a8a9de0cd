"""Shared test configuration and fixtures for the changelog-ticker test suite."""

import os

import pytest

from factories import FakeTextGenerator

_PROVIDER_VARIABLES = (
    "LLM_PROVIDER",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_MODEL",
    "ANTHROPIC_FALLBACK_MODEL",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_FALLBACK_MODEL",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_DEPLOYMENT",
    "AZURE_OPENAI_FALLBACK_DEPLOYMENT",
    "GITHUB_TOKEN",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep a developer's .env and shell settings out of the tests."""
    monkeypatch.setattr("changelog_ticker.config.load_dotenv", lambda *args, **kwargs: False)
    for name in _PROVIDER_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("CHANGELOG_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def text_generator():
    return FakeTextGenerator()
