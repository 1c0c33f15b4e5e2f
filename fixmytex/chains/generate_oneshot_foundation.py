"""Phase B: generate the complete foundation document in a single call."""

from fixmytex.agents.pyramidal.prompts import foundation_system_prompt
from fixmytex.agents.pyramidal.schemas import DocumentDetection, DocumentRequest, OneshotResult
from fixmytex.core.errors import ParseError
from fixmytex.core.llm import ChatModelProvider, clamp_unit, parse_llm_json_dict
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)


def build_foundation_message(request: DocumentRequest, detection: DocumentDetection) -> str:
    """User message for the foundation call: source text plus run parameters."""
    parts = [
        f"## Document type\n{detection.document_type.value}",
        f"## Language\n{detection.language}",
    ]
    if request.source_app:
        parts.append(f"## Source application\n{request.source_app}")
    if request.instructions:
        parts.append(f"## Additional instructions\n{request.instructions}")
    parts.append(f"## Source text\n{request.text}")
    return "\n\n".join(parts)


def _string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _parse_foundation(raw: str, detection: DocumentDetection) -> OneshotResult:
    data = parse_llm_json_dict(raw)
    full_document = data.get("full_document")
    if not isinstance(full_document, str) or not full_document.strip():
        raise ParseError("Foundation output has no full_document", raw=raw)

    subject = data.get("subject")
    return OneshotResult(
        subject=subject.strip() if isinstance(subject, str) else "",
        headers=_string_list(data.get("headers")),
        full_document=full_document.strip(),
        document_type=detection.document_type,
        language=detection.language,
        confidence=clamp_unit(data.get("confidence")),
        raw=raw,
    )


async def generate_oneshot_foundation(
    provider: ChatModelProvider,
    request: DocumentRequest,
    detection: DocumentDetection,
) -> OneshotResult:
    """
    Produce the foundation draft for the resolved document type.

    Args:
        provider: Chat model to use
        request: Original pipeline input
        detection: Phase A result (type is already concrete)

    Returns:
        OneshotResult; on unparseable output a zero-confidence fallback whose
        full_document is the raw model text, or the source text if that is empty

    Raises:
        ProviderError: If the model call fails
    """
    raw = await provider.generate(
        foundation_system_prompt(detection.document_type),
        build_foundation_message(request, detection),
    )

    try:
        return _parse_foundation(raw, detection)
    except ParseError as e:
        logger.warning(f"Foundation output unparseable, using raw text: {e}")
        return OneshotResult(
            subject="",
            headers=[],
            full_document=raw.strip() or request.text,
            document_type=detection.document_type,
            language=detection.language,
            confidence=0.0,
            error=str(e),
            raw=raw,
        )
