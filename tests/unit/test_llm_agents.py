"""Unit tests for the LangChain agents and the provider factory."""

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from changelog_ticker.errors import ConfigurationError
from changelog_ticker.summarization.repositories.base_langchain_agent import BaseLangChainAgent
from changelog_ticker.summarization.repositories.factory import create_llm_agent
from changelog_ticker.summarization.repositories.implementations import (
    LangChainAzureOpenAIAgent,
    LangChainClaudeAgent,
    LangChainOpenAIAgent,
)


class BrokenChatModel:
    """Chat model stand-in whose every call fails."""

    def __init__(self):
        self.calls = 0

    async def ainvoke(self, messages):
        self.calls += 1
        raise RuntimeError("overloaded")


class StubAgent(BaseLangChainAgent):
    def __init__(self, llm, fallback_llm=None):
        self._llm = llm
        self._fallback_llm = fallback_llm
        super().__init__()


class TestBaseLangChainAgent:
    @pytest.mark.asyncio
    async def test_primary_answer(self):
        agent = StubAgent(FakeListChatModel(responses=['{"bullets": []}']))
        assert await agent.generate("system", "user") == '{"bullets": []}'

    @pytest.mark.asyncio
    async def test_fallback_after_failure(self):
        primary = BrokenChatModel()
        agent = StubAgent(primary, FakeListChatModel(responses=["from fallback"]))
        assert await agent.generate("system", "user") == "from fallback"
        assert primary.calls == 1

    @pytest.mark.asyncio
    async def test_fallback_after_blank_answer(self):
        agent = StubAgent(
            FakeListChatModel(responses=["   "]), FakeListChatModel(responses=["second"])
        )
        assert await agent.generate("system", "user") == "second"

    @pytest.mark.asyncio
    async def test_none_when_every_model_fails(self):
        agent = StubAgent(BrokenChatModel(), BrokenChatModel())
        assert await agent.generate("system", "user") is None

    @pytest.mark.asyncio
    async def test_none_without_fallback(self):
        agent = StubAgent(BrokenChatModel())
        assert await agent.generate("system", "user") is None

    def test_content_blocks_are_flattened(self):
        content = [{"type": "text", "text": "Hello"}, "world"]
        assert BaseLangChainAgent._content_to_text(content) == "Hello world"

    def test_content_blocks_without_text_are_skipped(self):
        content = [{"type": "text", "text": "Hello"}, 42, {"type": "image_url"}, None, "world"]
        assert BaseLangChainAgent._content_to_text(content) == "Hello world"


class TestCreateLlmAgent:
    def test_invalid_provider(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "llama")
        with pytest.raises(ConfigurationError, match="Invalid LLM_PROVIDER"):
            create_llm_agent()

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            create_llm_agent()

    def test_anthropic(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert isinstance(create_llm_agent(), LangChainClaudeAgent)

    def test_openai(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_FALLBACK_MODEL", "gpt-4o-mini")
        agent = create_llm_agent()
        assert isinstance(agent, LangChainOpenAIAgent)
        assert agent._fallback_llm is not None

    def test_azure(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "azure")
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-key")
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://acme.openai.azure.com")
        monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "changelog-gpt4o")
        agent = create_llm_agent()
        assert isinstance(agent, LangChainAzureOpenAIAgent)
        assert agent._fallback_llm is None
