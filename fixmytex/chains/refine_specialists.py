"""Phase C: four independent specialist reviews of the foundation draft.

The specialists run concurrently against the same frozen foundation. A
failing specialist (provider error, unparseable output, anything else) is
replaced by a zero-confidence placeholder carrying the error; it never fails
the run.
"""

import asyncio
import json
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from fixmytex.agents.pyramidal.prompts import (
    COMPLETENESS_SPECIALIST_PROMPT,
    HEADER_SPECIALIST_PROMPT,
    STYLE_SPECIALIST_PROMPT,
    SUBJECT_SPECIALIST_PROMPT,
)
from fixmytex.agents.pyramidal.schemas import (
    CompletenessRefinement,
    HeaderRefinement,
    OneshotResult,
    SpecialistRefinement,
    StyleRefinement,
    SubjectRefinement,
)
from fixmytex.core.errors import ParseError
from fixmytex.core.llm import ChatModelProvider, clamp_unit, parse_llm_json_dict
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)

P = TypeVar("P", bound=BaseModel)


def _draft_payload(oneshot: OneshotResult) -> str:
    return json.dumps(
        {
            "document_type": oneshot.document_type.value,
            "language": oneshot.language,
            "subject": oneshot.subject,
            "headers": oneshot.headers,
            "full_document": oneshot.full_document,
        },
        ensure_ascii=False,
        indent=2,
    )


def _parse_payload(raw: str, model: type[P], score_fields: tuple[str, ...]) -> P:
    data = parse_llm_json_dict(raw)
    for name in score_fields:
        data[name] = clamp_unit(data.get(name))
    data.pop("error", None)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Specialist output failed {model.__name__} validation: {e}", raw=raw) from e


async def refine_subject(provider: ChatModelProvider, oneshot: OneshotResult) -> SubjectRefinement:
    raw = await provider.generate(SUBJECT_SPECIALIST_PROMPT, _draft_payload(oneshot))
    return _parse_payload(raw, SubjectRefinement, ("confidence",))


async def refine_headers(provider: ChatModelProvider, oneshot: OneshotResult) -> HeaderRefinement:
    raw = await provider.generate(HEADER_SPECIALIST_PROMPT, _draft_payload(oneshot))
    return _parse_payload(raw, HeaderRefinement, ("confidence",))


async def check_completeness(
    provider: ChatModelProvider, oneshot: OneshotResult, original_text: str
) -> CompletenessRefinement:
    message = f"## ORIGINAL\n{original_text}\n\n## GENERATED\n{_draft_payload(oneshot)}"
    raw = await provider.generate(COMPLETENESS_SPECIALIST_PROMPT, message)
    return _parse_payload(raw, CompletenessRefinement, ("risk_score", "confidence"))


async def review_style(provider: ChatModelProvider, oneshot: OneshotResult) -> StyleRefinement:
    raw = await provider.generate(STYLE_SPECIALIST_PROMPT, _draft_payload(oneshot))
    return _parse_payload(raw, StyleRefinement, ("confidence",))


def _placeholder(name: str, model: type[P], result: P | BaseException) -> P:
    if isinstance(result, BaseException):
        logger.error(f"{name} specialist failed: {result}", exc_info=result)
        return model(error=f"{type(result).__name__}: {result}")
    return result


async def run_specialists(
    provider: ChatModelProvider,
    oneshot: OneshotResult,
    original_text: str,
) -> SpecialistRefinement:
    """
    Run the subject, header, completeness and style specialists concurrently.

    Args:
        provider: Chat model to use
        oneshot: Foundation draft (each specialist gets its own copy)
        original_text: Source text, for the completeness check

    Returns:
        SpecialistRefinement with one payload per specialist
    """
    subject, headers, completeness, style = await asyncio.gather(
        refine_subject(provider, oneshot.model_copy(deep=True)),
        refine_headers(provider, oneshot.model_copy(deep=True)),
        check_completeness(provider, oneshot.model_copy(deep=True), original_text),
        review_style(provider, oneshot.model_copy(deep=True)),
        return_exceptions=True,
    )

    refinements = SpecialistRefinement(
        subject=_placeholder("subject", SubjectRefinement, subject),
        headers=_placeholder("headers", HeaderRefinement, headers),
        completeness=_placeholder("completeness", CompletenessRefinement, completeness),
        style=_placeholder("style", StyleRefinement, style),
    )

    degraded = refinements.degraded()
    if degraded:
        logger.warning(f"Specialists degraded to placeholders: {', '.join(degraded)}")
    return refinements
