"""Factory for creating text generation agent instances."""

import os

from changelog_ticker.config import load_env_file
from changelog_ticker.errors import ConfigurationError
from changelog_ticker.summarization.repositories.implementations import (
    LangChainAzureOpenAIAgent,
    LangChainClaudeAgent,
    LangChainOpenAIAgent,
)
from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository


def create_llm_agent(model_name: str | None = None) -> TextGenerationRepository:
    """
    Create a text generation agent based on configuration.

    Args:
        model_name: Optional model (or Azure deployment) override. If not
                   provided, uses LLM_PROVIDER and model-specific env vars.

    Returns:
        Text generation agent (Claude, OpenAI or Azure OpenAI)

    Raises:
        ConfigurationError: If LLM_PROVIDER is invalid or required settings are missing
    """
    load_env_file()

    provider = os.getenv("LLM_PROVIDER", "anthropic").lower()

    match provider:
        case "anthropic" | "claude":
            return LangChainClaudeAgent(model_name=model_name)
        case "openai" | "gpt":
            return LangChainOpenAIAgent(model_name=model_name)
        case "azure" | "azure_openai" | "azure-openai":
            return LangChainAzureOpenAIAgent(deployment=model_name)
        case _:
            raise ConfigurationError(
                f"Invalid LLM_PROVIDER: {provider}",
                suggestion="Supported values: 'anthropic', 'claude', 'openai', 'gpt', 'azure'",
            )
