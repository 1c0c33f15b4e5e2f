"""Phase D: deterministic merge of specialist findings into the foundation draft.

No model calls happen here. Given the same foundation, refinements and
policy the output is always identical.
"""

import re

from pydantic import BaseModel, ConfigDict, Field

from fixmytex.agents.pyramidal.schemas import (
    IntegrationResult,
    OneshotResult,
    QualityCheck,
    SpecialistRefinement,
)
from fixmytex.core.config import Settings, get_settings
from fixmytex.core.errors import PipelineError
from fixmytex.core.logging import get_logger

logger = get_logger(__name__)

SUBJECT_CONFIDENCE_THRESHOLD = 0.7
HEADER_CONFIDENCE_THRESHOLD = 0.7
STYLE_CONFIDENCE_THRESHOLD = 0.7
COMPLETENESS_RISK_THRESHOLD = 0.3
COMPLETENESS_PENALTY_THRESHOLD = 0.5
IMPROVEMENT_BONUS = 0.05
COMPLETENESS_PENALTY = 0.1

MISSING_INFO_HEADING = "Additional information from source"


class IntegrationPolicy(BaseModel):
    """Gates and score adjustments used when merging refinements.

    All gates are strict: a value exactly at a threshold does not pass.
    """

    model_config = ConfigDict(frozen=True)

    subject_confidence_threshold: float = Field(default=SUBJECT_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    header_confidence_threshold: float = Field(default=HEADER_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    style_confidence_threshold: float = Field(default=STYLE_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0)
    completeness_risk_threshold: float = Field(default=COMPLETENESS_RISK_THRESHOLD, ge=0.0, le=1.0)
    completeness_penalty_threshold: float = Field(
        default=COMPLETENESS_PENALTY_THRESHOLD, ge=0.0, le=1.0
    )
    improvement_bonus: float = Field(default=IMPROVEMENT_BONUS, ge=0.0, le=1.0)
    completeness_penalty: float = Field(default=COMPLETENESS_PENALTY, ge=0.0, le=1.0)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "IntegrationPolicy":
        settings = settings or get_settings()
        return cls(
            subject_confidence_threshold=settings.SUBJECT_CONFIDENCE_THRESHOLD,
            header_confidence_threshold=settings.HEADER_CONFIDENCE_THRESHOLD,
            style_confidence_threshold=settings.STYLE_CONFIDENCE_THRESHOLD,
            completeness_risk_threshold=settings.COMPLETENESS_RISK_THRESHOLD,
            completeness_penalty_threshold=settings.COMPLETENESS_PENALTY_THRESHOLD,
            improvement_bonus=settings.IMPROVEMENT_BONUS,
            completeness_penalty=settings.COMPLETENESS_PENALTY,
        )


_HEADING_PREFIX = r"[ \t]*(?:#{1,6}[ \t]+)?(?:(?i:slide)[ \t]*\d+[ \t]*[:.\-][ \t]*)?(?:\*\*|__)?"
_HEADING_SUFFIX = r"(?:\*\*|__)?:?(?:\*\*|__)?[ \t]*$"


def _replace_headers(
    document: str, original: list[str], improved: list[str]
) -> tuple[str, int]:
    """Swap each original header for its positional counterpart, by exact text.

    Only a line that consists of the header (optionally wrapped in bold,
    ``#`` heading markup or a "Slide N:" prefix) is rewritten, so the same
    words in body text stay as they are. Headers with no such line, or with
    no counterpart, are left untouched.
    """
    replaced = 0
    for old, new in zip(original, improved):
        old, new = old.strip(), new.strip()
        if not old or not new or old == new:
            continue
        pattern = re.compile(
            rf"^(?P<prefix>{_HEADING_PREFIX}){re.escape(old)}(?P<suffix>{_HEADING_SUFFIX})",
            re.MULTILINE,
        )
        document, count = pattern.subn(
            lambda m: m.group("prefix") + new + m.group("suffix"), document, count=1
        )
        replaced += count
    return document, replaced


def _missing_info_note(items: list[str]) -> str:
    lines = [f"- {item}" for item in items]
    return "\n\n---\n**" + MISSING_INFO_HEADING + ":**\n" + "\n".join(lines)


def integrate_refinements(
    oneshot: OneshotResult,
    refinements: SpecialistRefinement,
    policy: IntegrationPolicy | None = None,
) -> IntegrationResult:
    """
    Apply specialist findings to the foundation draft.

    Rules, in order:
    1. improved subject when subject confidence passes its threshold
    2. improved headers when header confidence passes, or MECE issues were found
    3. missing-information note when completeness risk passes its threshold
    4. style entry when style confidence passes and issues were found
    5. quality = foundation confidence + bonus per applied improvement,
       minus a penalty for high completeness risk, clamped to [0, 1]
    """
    policy = policy or IntegrationPolicy()
    document = oneshot.full_document
    subject = oneshot.subject
    applied: list[str] = []

    subject_ref = refinements.subject
    if (
        subject_ref.confidence > policy.subject_confidence_threshold
        and subject_ref.improved_subject.strip()
    ):
        subject = subject_ref.improved_subject.strip()
        applied.append(f"Subject line refined (confidence {subject_ref.confidence:.2f})")

    header_ref = refinements.headers
    if header_ref.confidence > policy.header_confidence_threshold or header_ref.structure_issues:
        document, replaced = _replace_headers(document, oneshot.headers, header_ref.improved_headers)
        if replaced:
            reason = "MECE issues" if header_ref.structure_issues else "header review"
            applied.append(f"Headers restructured: {replaced} replaced ({reason})")

    completeness_ref = refinements.completeness
    missing = [item for item in completeness_ref.missing_info if item.strip()]
    if completeness_ref.risk_score > policy.completeness_risk_threshold and missing:
        document += _missing_info_note(missing)
        applied.append(f"Added {len(missing)} missing item(s) from source")

    style_ref = refinements.style
    if style_ref.confidence > policy.style_confidence_threshold and style_ref.issues:
        applied.append(f"Style improvements considered ({len(style_ref.issues)} issue(s))")

    score = oneshot.confidence + policy.improvement_bonus * len(applied)
    if completeness_ref.risk_score > policy.completeness_penalty_threshold:
        score -= policy.completeness_penalty

    return IntegrationResult(
        final_document=document,
        subject=subject,
        applied_improvements=applied,
        quality_score=min(1.0, max(0.0, score)),
    )


def integrate_with_fallback(
    oneshot: OneshotResult,
    refinements: SpecialistRefinement,
    policy: IntegrationPolicy | None = None,
) -> IntegrationResult:
    """Integrate, falling back to the untouched foundation on any failure."""
    try:
        return integrate_refinements(oneshot, refinements, policy)
    except Exception as e:
        error = PipelineError(f"Integration failed: {e}")
        logger.error(str(error), exc_info=True)
        return IntegrationResult(
            final_document=oneshot.full_document,
            subject=oneshot.subject,
            applied_improvements=[str(error)],
            quality_score=min(1.0, max(0.0, oneshot.confidence)),
            fallback_used=True,
        )


def build_quality_check(
    refinements: SpecialistRefinement,
    integration: IntegrationResult,
    policy: IntegrationPolicy | None = None,
) -> QualityCheck:
    """Summarize which risks and penalties were present during integration."""
    policy = policy or IntegrationPolicy()
    completeness = refinements.completeness
    missing = [item for item in completeness.missing_info if item.strip()]
    appended = (
        not integration.fallback_used
        and completeness.risk_score > policy.completeness_risk_threshold
        and bool(missing)
    )
    penalty = (
        not integration.fallback_used
        and completeness.risk_score > policy.completeness_penalty_threshold
    )
    degraded = refinements.degraded()
    return QualityCheck(
        completeness_risk=completeness.risk_score,
        missing_info=missing,
        missing_info_appended=appended,
        completeness_penalty_applied=penalty,
        mece_violations=list(refinements.headers.structure_issues),
        style_issues=list(refinements.style.issues),
        degraded_specialists=degraded,
        integration_fallback=integration.fallback_used,
        passed=not (penalty or degraded or integration.fallback_used),
    )
