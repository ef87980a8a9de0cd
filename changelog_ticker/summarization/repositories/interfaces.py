"""Repository interfaces for text generation operations."""

from abc import ABC, abstractmethod


class TextGenerationRepository(ABC):
    """Interface for an LLM that turns a prompt into free-form text."""

    @abstractmethod
    async def generate(self, system_prompt: str, user_prompt: str) -> str | None:
        """
        Generate text for a prompt.

        The returned text is often, but not reliably, JSON. Callers decode it
        with ``decode_model_response``.

        Args:
            system_prompt: Instructions for the model
            user_prompt: The task and its input data

        Returns:
            Generated text, or None if no model produced a result. Backend
            failures are never raised.
        """
        ...
