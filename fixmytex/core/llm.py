"""Chat model providers and LLM output parsing utilities.

Every backend is exposed through the same one-method capability,
``generate(system_prompt, text) -> str``. Backends are selected by the
``provider`` tag of a ``ProviderConfig``; new backends are added by
registering a builder for a new tag.
"""

import json
import re
from enum import Enum
from typing import Callable, Protocol

from anthropic import AsyncAnthropicBedrock
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict, Field

from fixmytex.core.config import Settings, get_settings
from fixmytex.core.errors import ParseError, ProviderError
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    AWS_BEDROCK = "aws-bedrock"


class BedrockCredentials(BaseModel):
    """AWS credentials for the Bedrock backend."""

    model_config = ConfigDict(frozen=True)

    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_session_token: str = ""
    region: str = "us-east-1"
    inference_profile: str = ""


class ProviderConfig(BaseModel):
    """Backend + model + credentials. Opaque to everything except this module."""

    model_config = ConfigDict(frozen=True)

    provider: LLMProvider
    model: str
    api_key: str = ""
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4000, gt=0)
    bedrock: BedrockCredentials | None = None


class ChatModelProvider(Protocol):
    """The sole LLM boundary used by chains and actions."""

    async def generate(self, system_prompt: str, text: str) -> str: ...


def _message_text(content: str | list) -> str:
    """Flatten LangChain message content (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class LangChainChatModel:
    """Adapter from a LangChain chat model to ``ChatModelProvider``."""

    def __init__(self, llm: BaseChatModel, provider: LLMProvider, model: str):
        self.llm = llm
        self.provider = provider
        self.model = model

    async def generate(self, system_prompt: str, text: str) -> str:
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=text)]
        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            raise ProviderError(
                f"{self.provider.value} call failed ({self.model}): {e}",
                provider=self.provider.value,
            ) from e
        return _message_text(response.content)


class BedrockChatModel:
    """Anthropic models served through AWS Bedrock."""

    def __init__(self, client: AsyncAnthropicBedrock, config: ProviderConfig):
        self.client = client
        self.config = config
        credentials = config.bedrock or BedrockCredentials()
        self.model = credentials.inference_profile or config.model

    async def generate(self, system_prompt: str, text: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": text}],
            )
        except Exception as e:
            raise ProviderError(
                f"aws-bedrock call failed ({self.model}): {e}",
                provider=LLMProvider.AWS_BEDROCK.value,
            ) from e
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )


def _require_api_key(config: ProviderConfig) -> None:
    if not config.api_key:
        raise ProviderError("API key is not set", provider=config.provider.value)


def _build_openai(config: ProviderConfig) -> ChatModelProvider:
    _require_api_key(config)
    llm = ChatOpenAI(
        api_key=config.api_key,
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
    return LangChainChatModel(llm, LLMProvider.OPENAI, config.model)


def _build_anthropic(config: ProviderConfig) -> ChatModelProvider:
    _require_api_key(config)
    llm = ChatAnthropic(
        api_key=config.api_key,
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
    return LangChainChatModel(llm, LLMProvider.ANTHROPIC, config.model)


def _build_bedrock(config: ProviderConfig) -> ChatModelProvider:
    credentials = config.bedrock
    if not credentials or not credentials.aws_access_key_id or not credentials.aws_secret_access_key:
        raise ProviderError("AWS credentials are not set", provider=config.provider.value)
    client = AsyncAnthropicBedrock(
        aws_access_key=credentials.aws_access_key_id,
        aws_secret_key=credentials.aws_secret_access_key,
        aws_session_token=credentials.aws_session_token or None,
        aws_region=credentials.region,
    )
    return BedrockChatModel(client, config)


_BUILDERS: dict[LLMProvider, Callable[[ProviderConfig], ChatModelProvider]] = {
    LLMProvider.OPENAI: _build_openai,
    LLMProvider.ANTHROPIC: _build_anthropic,
    LLMProvider.AWS_BEDROCK: _build_bedrock,
}


def register_provider(
    provider: LLMProvider, builder: Callable[[ProviderConfig], ChatModelProvider]
) -> None:
    """Register (or replace) the builder for a backend tag."""
    _BUILDERS[provider] = builder


def build_chat_provider(config: ProviderConfig) -> ChatModelProvider:
    """
    Build the chat model for a provider configuration.

    Args:
        config: Backend, model and credentials

    Returns:
        Object implementing ``ChatModelProvider``

    Raises:
        ProviderError: If the backend is unknown or credentials are missing
    """
    builder = _BUILDERS.get(config.provider)
    if builder is None:
        raise ProviderError(f"Unsupported provider: {config.provider}")
    return builder(config)


def provider_config_from_settings(settings: Settings | None = None) -> ProviderConfig:
    """Translate flat environment settings into a ``ProviderConfig``."""
    settings = settings or get_settings()
    try:
        provider = LLMProvider(settings.LLM_PROVIDER)
    except ValueError as e:
        raise ProviderError(f"Unsupported provider: {settings.LLM_PROVIDER}") from e

    api_key = {
        LLMProvider.OPENAI: settings.OPENAI_API_KEY,
        LLMProvider.ANTHROPIC: settings.ANTHROPIC_API_KEY,
    }.get(provider, "")

    bedrock = None
    if provider is LLMProvider.AWS_BEDROCK:
        bedrock = BedrockCredentials(
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            aws_session_token=settings.AWS_SESSION_TOKEN,
            region=settings.AWS_REGION,
            inference_profile=settings.BEDROCK_INFERENCE_PROFILE,
        )

    return ProviderConfig(
        provider=provider,
        model=settings.LLM_MODEL,
        api_key=api_key,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        bedrock=bedrock,
    )


def get_chat_provider(settings: Settings | None = None) -> ChatModelProvider:
    """Build the chat model configured in the environment."""
    config = provider_config_from_settings(settings)
    logger.info(f"Using LLM provider {config.provider.value} with model {config.model}")
    return build_chat_provider(config)


async def chat_generate(system_prompt: str, user_text: str, config: ProviderConfig) -> str:
    """
    One-shot generation against the backend described by ``config``.

    Raises:
        ProviderError: On missing credentials or backend failure
    """
    provider = build_chat_provider(config)
    return await provider.generate(system_prompt, user_text)


def clamp_unit(value: object, default: float = 0.0) -> float:
    """Coerce a model-reported score into [0, 1]; non-numeric values become ``default``."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return min(1.0, max(0.0, number))


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Fallback: strip leading/trailing fences without regex
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as a JSON object, returning a raw dict.

    Falls back to the outermost ``{...}`` span when the model wraps the JSON
    in prose.

    Raises:
        ParseError: If no JSON object can be recovered
    """
    cleaned = _strip_llm_fences(raw_output)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", cleaned)
        if not match:
            raise ParseError("No JSON object in model output", raw=raw_output)
        try:
            parsed = json.loads(match.group())
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in model output: {e}", raw=raw_output) from e

    if not isinstance(parsed, dict):
        raise ParseError("Model output is not a JSON object", raw=raw_output)
    return parsed
