"""Tests for provider configuration, the LangChain adapter and JSON parsing."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fixmytex.core import llm
from fixmytex.core.config import Settings
from fixmytex.core.errors import ParseError, ProviderError
from fixmytex.core.llm import (
    BedrockChatModel,
    LangChainChatModel,
    LLMProvider,
    ProviderConfig,
    build_chat_provider,
    chat_generate,
    clamp_unit,
    parse_llm_json_dict,
    provider_config_from_settings,
    register_provider,
)


class TestParsing:
    def test_plain_json(self):
        assert parse_llm_json_dict('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        raw = 'Sure!\n```json\n{"label": "ok", "score": 0.5}\n```'
        assert parse_llm_json_dict(raw) == {"label": "ok", "score": 0.5}

    def test_json_wrapped_in_prose(self):
        assert parse_llm_json_dict('Result: {"a": {"b": 2}} hope this helps') == {"a": {"b": 2}}

    def test_no_json_raises_with_raw(self):
        with pytest.raises(ParseError) as exc_info:
            parse_llm_json_dict("nothing structured here")
        assert exc_info.value.raw == "nothing structured here"

    def test_array_rejected(self):
        with pytest.raises(ParseError):
            parse_llm_json_dict("[1, 2]")

    @pytest.mark.parametrize(
        "value,expected",
        [(0.5, 0.5), (1.5, 1.0), (-1, 0.0), ("0.3", 0.3), (None, 0.0), ("high", 0.0), (float("nan"), 0.0)],
    )
    def test_clamp_unit(self, value, expected):
        assert clamp_unit(value) == pytest.approx(expected)


class TestProviderConfig:
    def test_anthropic_from_settings(self):
        settings = Settings(LLM_PROVIDER="anthropic", ANTHROPIC_API_KEY="sk-ant", LLM_MODEL="claude-x")

        config = provider_config_from_settings(settings)

        assert config.provider == LLMProvider.ANTHROPIC
        assert config.api_key == "sk-ant"
        assert config.model == "claude-x"
        assert config.bedrock is None

    def test_bedrock_from_settings(self):
        settings = Settings(
            LLM_PROVIDER="aws-bedrock",
            AWS_ACCESS_KEY_ID="AKIA",
            AWS_SECRET_ACCESS_KEY="secret",
            AWS_REGION="eu-central-1",
            BEDROCK_INFERENCE_PROFILE="eu.anthropic.claude",
        )

        config = provider_config_from_settings(settings)

        assert config.provider == LLMProvider.AWS_BEDROCK
        assert config.bedrock.region == "eu-central-1"
        assert config.api_key == ""

    def test_unknown_provider(self):
        with pytest.raises(ProviderError):
            provider_config_from_settings(Settings(LLM_PROVIDER="llama-local"))

    def test_missing_api_key(self):
        config = ProviderConfig(provider=LLMProvider.OPENAI, model="gpt-4o-mini")
        with pytest.raises(ProviderError):
            build_chat_provider(config)

    def test_missing_bedrock_credentials(self):
        config = ProviderConfig(provider=LLMProvider.AWS_BEDROCK, model="anthropic.claude")
        with pytest.raises(ProviderError):
            build_chat_provider(config)

    def test_builds_langchain_adapters(self):
        openai = build_chat_provider(
            ProviderConfig(provider=LLMProvider.OPENAI, model="gpt-4o-mini", api_key="sk-test")
        )
        anthropic = build_chat_provider(
            ProviderConfig(provider=LLMProvider.ANTHROPIC, model="claude-x", api_key="sk-ant")
        )

        assert isinstance(openai, LangChainChatModel)
        assert openai.provider == LLMProvider.OPENAI
        assert isinstance(anthropic, LangChainChatModel)

    @pytest.mark.asyncio
    async def test_registered_builder_is_used(self):
        fake = MagicMock()
        fake.generate = AsyncMock(return_value="fixed")
        register_provider(LLMProvider.OPENAI, lambda config: fake)
        try:
            text = await chat_generate(
                "system", "user", ProviderConfig(provider=LLMProvider.OPENAI, model="m")
            )
        finally:
            register_provider(LLMProvider.OPENAI, llm._build_openai)

        assert text == "fixed"
        fake.generate.assert_awaited_once_with("system", "user")


class TestAdapters:
    @pytest.mark.asyncio
    async def test_langchain_adapter_sends_system_and_human(self):
        chat_model = MagicMock()
        chat_model.ainvoke = AsyncMock(return_value=MagicMock(content=[{"type": "text", "text": "he"}, "llo"]))
        model = LangChainChatModel(chat_model, LLMProvider.ANTHROPIC, "claude-x")

        text = await model.generate("be terse", "hi")

        assert text == "hello"
        messages = chat_model.ainvoke.await_args.args[0]
        assert messages[0].content == "be terse"
        assert messages[1].content == "hi"

    @pytest.mark.asyncio
    async def test_langchain_adapter_wraps_errors(self):
        chat_model = MagicMock()
        chat_model.ainvoke = AsyncMock(side_effect=TimeoutError("slow"))
        model = LangChainChatModel(chat_model, LLMProvider.OPENAI, "gpt")

        with pytest.raises(ProviderError) as exc_info:
            await model.generate("s", "t")
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_bedrock_uses_inference_profile(self):
        client = MagicMock()
        block = MagicMock(type="text", text="corrected")
        client.messages.create = AsyncMock(return_value=MagicMock(content=[block]))
        config = provider_config_from_settings(
            Settings(
                LLM_PROVIDER="aws-bedrock",
                LLM_MODEL="anthropic.claude-base",
                AWS_ACCESS_KEY_ID="AKIA",
                AWS_SECRET_ACCESS_KEY="secret",
                BEDROCK_INFERENCE_PROFILE="eu.profile",
            )
        )
        model = BedrockChatModel(client, config)

        text = await model.generate("system", "user")

        assert text == "corrected"
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "eu.profile"
        assert kwargs["system"] == "system"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]
