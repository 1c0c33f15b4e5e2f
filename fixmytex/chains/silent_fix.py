"""Grammar and spelling correction used by the single-press hotkey flow."""

from fixmytex.core.errors import ParseError
from fixmytex.core.llm import ChatModelProvider
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)

SILENT_FIX_SYSTEM_PROMPT = """You are a grammar and spelling correction assistant. Your task is to fix grammatical errors, spelling mistakes, and improve clarity in text while preserving the original meaning, tone, and intent.

Rules:
1. Correct all grammar and spelling errors
2. Preserve the original meaning and factual content exactly
3. Maintain the author's voice, tone, and perspective
4. Keep the original language - never translate
5. Improve sentence structure only when necessary for clarity
6. Make direct corrections without explanations, comments, or questions
7. Focus on making the text more professional and readable while keeping it authentic

Return only the corrected text."""


async def fix_text_silent(provider: ChatModelProvider, text: str) -> str:
    """
    Correct ``text`` with a single model call.

    Args:
        provider: Chat model to use
        text: Text captured from the focused application

    Returns:
        Corrected text

    Raises:
        ProviderError: If the model call fails
        ParseError: If the model returns nothing usable
    """
    corrected = (await provider.generate(SILENT_FIX_SYSTEM_PROMPT, text)).strip()
    if not corrected:
        raise ParseError("Model returned an empty correction", raw=corrected)

    logger.debug(f"Silent fix: {len(text)} chars in, {len(corrected)} chars out")
    return corrected
