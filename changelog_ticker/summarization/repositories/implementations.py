"""Concrete implementations of text generation using LangChain."""

import os

from langchain_anthropic import ChatAnthropic
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from changelog_ticker.config import load_env_file
from changelog_ticker.errors import ConfigurationError
from changelog_ticker.summarization.repositories.base_langchain_agent import (
    BaseLangChainAgent,
)

MAX_OUTPUT_TOKENS = 3000
TEMPERATURE = 0.3  # Lower temperature for more consistent release notes


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(
            f"{name} environment variable is required",
            suggestion="Set it in a .env file or as an environment variable. "
            "See .env.example for reference.",
        )
    return value


class LangChainClaudeAgent(BaseLangChainAgent):
    """LangChain implementation using Claude."""

    def __init__(
        self, model_name: str | None = None, fallback_model_name: str | None = None
    ) -> None:
        """
        Initialize the Claude agent with API key from environment.

        Args:
            model_name: Optional model name override. Defaults to ANTHROPIC_MODEL
            fallback_model_name: Optional model tried once when the primary fails.
                                 Defaults to ANTHROPIC_FALLBACK_MODEL
        """
        load_env_file()
        _require_env("ANTHROPIC_API_KEY")

        model = model_name or os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")
        fallback = fallback_model_name or os.getenv("ANTHROPIC_FALLBACK_MODEL")

        self._llm = ChatAnthropic(  # type: ignore[call-arg]
            model_name=model,
            temperature=TEMPERATURE,
            max_tokens=MAX_OUTPUT_TOKENS,
        )
        self._fallback_llm = (
            ChatAnthropic(  # type: ignore[call-arg]
                model_name=fallback,
                temperature=TEMPERATURE,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
            if fallback
            else None
        )

        super().__init__()


class LangChainOpenAIAgent(BaseLangChainAgent):
    """LangChain implementation using OpenAI."""

    def __init__(
        self, model_name: str | None = None, fallback_model_name: str | None = None
    ) -> None:
        """
        Initialize the OpenAI agent with API key from environment.

        Args:
            model_name: Optional model name override. Defaults to OPENAI_MODEL
            fallback_model_name: Optional model tried once when the primary fails.
                                 Defaults to OPENAI_FALLBACK_MODEL
        """
        load_env_file()
        _require_env("OPENAI_API_KEY")

        model = model_name or os.getenv("OPENAI_MODEL", "gpt-4o")
        fallback = fallback_model_name or os.getenv("OPENAI_FALLBACK_MODEL")

        self._llm = ChatOpenAI(  # type: ignore[call-arg]
            model_name=model,
            temperature=TEMPERATURE,
            max_tokens=MAX_OUTPUT_TOKENS,
        )
        self._fallback_llm = (
            ChatOpenAI(  # type: ignore[call-arg]
                model_name=fallback,
                temperature=TEMPERATURE,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
            if fallback
            else None
        )

        super().__init__()


class LangChainAzureOpenAIAgent(BaseLangChainAgent):
    """LangChain implementation using an Azure OpenAI deployment."""

    def __init__(
        self, deployment: str | None = None, fallback_deployment: str | None = None
    ) -> None:
        """
        Initialize the Azure OpenAI agent from environment.

        Args:
            deployment: Optional deployment override. Defaults to AZURE_OPENAI_DEPLOYMENT
            fallback_deployment: Optional deployment tried once when the primary
                                 fails. Defaults to AZURE_OPENAI_FALLBACK_DEPLOYMENT
        """
        load_env_file()
        api_key = _require_env("AZURE_OPENAI_API_KEY")
        endpoint = _require_env("AZURE_OPENAI_ENDPOINT")
        api_version = os.getenv("OPENAI_API_VERSION", "2024-10-21")

        primary = deployment or _require_env("AZURE_OPENAI_DEPLOYMENT")
        fallback = fallback_deployment or os.getenv("AZURE_OPENAI_FALLBACK_DEPLOYMENT")

        def build(name: str) -> AzureChatOpenAI:
            return AzureChatOpenAI(  # type: ignore[call-arg]
                azure_deployment=name,
                azure_endpoint=endpoint,
                api_key=api_key,
                api_version=api_version,
                temperature=TEMPERATURE,
                max_tokens=MAX_OUTPUT_TOKENS,
            )

        self._llm = build(primary)
        self._fallback_llm = build(fallback) if fallback else None

        super().__init__()
