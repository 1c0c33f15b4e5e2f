"""Phase A: resolve the target document type and the language of the source text."""

import re

from fixmytex.agents.pyramidal.prompts import (
    DETECTION_SYSTEM_PROMPT,
    LANGUAGE_DETECTION_SYSTEM_PROMPT,
)
from fixmytex.agents.pyramidal.schemas import (
    CONCRETE_DOCUMENT_TYPES,
    DocumentDetection,
    DocumentType,
)
from fixmytex.core.errors import ParseError
from fixmytex.core.llm import ChatModelProvider, clamp_unit, parse_llm_json_dict
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)

FALLBACK_DOCUMENT_TYPE = DocumentType.MEMO

# Small closed-class word lists; enough to tell German from English drafts.
_GERMAN_MARKERS = frozenset(
    "und der die das ist nicht mit für auf ich wir sie bitte bis dass eine einen zum zur".split()
)
_ENGLISH_MARKERS = frozenset(
    "the and is are not with for on we you please by that a an to of".split()
)


def guess_language(text: str) -> str:
    """Best-effort language guess used when the model's answer is unusable."""
    words = re.findall(r"[a-zäöüß]+", text.lower())
    german = sum(1 for w in words if w in _GERMAN_MARKERS)
    english = sum(1 for w in words if w in _ENGLISH_MARKERS)
    if german > english:
        return "de"
    if german == english and re.search(r"[äöüß]", text.lower()):
        return "de"
    return "en"


def _normalize_language(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ParseError(f"Invalid language: {value!r}")
    return value.strip().lower()[:8]


def _parse_classification(raw: str) -> tuple[DocumentType, str, float]:
    data = parse_llm_json_dict(raw)
    try:
        document_type = DocumentType(str(data.get("document_type", "")).strip().lower())
    except ValueError as e:
        raise ParseError(f"Unknown document type: {data.get('document_type')!r}", raw=raw) from e
    if document_type not in CONCRETE_DOCUMENT_TYPES:
        raise ParseError("Classifier returned an unresolved document type", raw=raw)
    return document_type, _normalize_language(data.get("language")), clamp_unit(data.get("confidence"))


def _parse_language(raw: str) -> tuple[str, float]:
    data = parse_llm_json_dict(raw)
    return _normalize_language(data.get("language")), clamp_unit(data.get("confidence"))


async def detect_document(
    provider: ChatModelProvider,
    text: str,
    document_type: DocumentType = DocumentType.AUTO,
) -> DocumentDetection:
    """
    Resolve document type and language.

    ``auto`` triggers one classification call; an explicit type only needs the
    language. Unparseable answers fall back to the requested type (or memo)
    and a heuristic language with confidence 0.

    Raises:
        ProviderError: If the model call fails
    """
    if document_type == DocumentType.AUTO:
        raw = await provider.generate(DETECTION_SYSTEM_PROMPT, text)
        try:
            resolved, language, confidence = _parse_classification(raw)
        except ParseError as e:
            logger.warning(f"Document classification unparseable, falling back to memo: {e}")
            return DocumentDetection(
                document_type=FALLBACK_DOCUMENT_TYPE,
                language=guess_language(text),
                confidence=0.0,
                error=str(e),
                raw=raw,
            )
        return DocumentDetection(
            document_type=resolved, language=language, confidence=confidence, raw=raw
        )

    raw = await provider.generate(LANGUAGE_DETECTION_SYSTEM_PROMPT, text)
    try:
        language, confidence = _parse_language(raw)
    except ParseError as e:
        logger.warning(f"Language detection unparseable, using heuristic: {e}")
        return DocumentDetection(
            document_type=document_type,
            language=guess_language(text),
            confidence=0.0,
            error=str(e),
            raw=raw,
        )
    return DocumentDetection(
        document_type=document_type, language=language, confidence=confidence, raw=raw
    )
