"""Base class for LangChain-based LLM agents."""

import logging
from abc import ABC
from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage

from changelog_ticker.summarization.repositories.interfaces import TextGenerationRepository

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

logger = logging.getLogger(__name__)


class BaseLangChainAgent(TextGenerationRepository, ABC):
    """Base class for LangChain chat models with an optional fallback model."""

    def __init__(self) -> None:
        """Initialize the base agent with common configuration."""
        self._llm: BaseChatModel  # Set by subclasses
        self._fallback_llm: BaseChatModel | None = getattr(self, "_fallback_llm", None)

    async def generate(self, system_prompt: str, user_prompt: str) -> str | None:
        """
        Generate text with the primary model, then the fallback model.

        Args:
            system_prompt: Instructions for the model
            user_prompt: The task and its input data

        Returns:
            Generated text, or None if every model failed or returned nothing
        """
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]

        candidates: list[tuple[str, BaseChatModel]] = [("primary", self._llm)]
        if self._fallback_llm is not None:
            candidates.append(("fallback", self._fallback_llm))

        for label, llm in candidates:
            try:
                response = await llm.ainvoke(messages)
            except Exception as e:
                logger.warning("%s model call failed: %s: %s", label, type(e).__name__, e)
                continue

            text = self._content_to_text(response.content)
            if text.strip():
                return text
            logger.warning("%s model returned an empty response", label)

        return None

    @staticmethod
    def _content_to_text(content: Any) -> str:
        """Flatten a chat message content into plain text."""
        if isinstance(content, str):
            return content
        elif isinstance(content, list):
            # If content is a list, extract text from it
            parts: list[str] = []
            for item in content:
                if isinstance(item, str):
                    parts.append(item)
                elif isinstance(item, dict) and isinstance(item.get("text"), str):
                    parts.append(item["text"])
            return " ".join(parts)
        else:
            # Fallback: convert any other type to string
            return str(content)
