"""Schemas for the pyramidal document agent."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class DocumentType(str, Enum):
    """Target document formats. AUTO is resolved before any format prompt is chosen."""

    EMAIL = "email"
    WIKI = "wiki"
    POWERPOINT = "powerpoint"
    MEMO = "memo"
    AUTO = "auto"


CONCRETE_DOCUMENT_TYPES = (
    DocumentType.EMAIL,
    DocumentType.WIKI,
    DocumentType.MEMO,
    DocumentType.POWERPOINT,
)


def _concrete(value: DocumentType) -> DocumentType:
    if value == DocumentType.AUTO:
        raise ValueError("document_type must be resolved (not auto)")
    return value


ResolvedDocumentType = Annotated[DocumentType, AfterValidator(_concrete)]


# === INPUT ===


class CapturedText(BaseModel):
    """Text grabbed from the focused application at hotkey time."""

    model_config = ConfigDict(frozen=True)

    text: str
    source_app: str = ""
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DocumentRequest(BaseModel):
    """Input to one pipeline run."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    document_type: DocumentType = DocumentType.AUTO
    source_app: str = ""
    instructions: str | None = None

    @classmethod
    def from_capture(
        cls,
        capture: CapturedText,
        document_type: DocumentType = DocumentType.AUTO,
        instructions: str | None = None,
    ) -> "DocumentRequest":
        return cls(
            text=capture.text,
            document_type=document_type,
            source_app=capture.source_app,
            instructions=instructions,
        )


# === PHASE A: DETECTION ===


class DocumentDetection(BaseModel):
    """Resolved document type and language."""

    model_config = ConfigDict(frozen=True)

    document_type: ResolvedDocumentType
    language: str = "en"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: str | None = None
    raw: str | None = None


# === PHASE B: FOUNDATION ===


class OneshotResult(BaseModel):
    """The single foundation draft every later phase refines against."""

    model_config = ConfigDict(frozen=True)

    subject: str = ""
    headers: list[str] = Field(default_factory=list)
    full_document: str
    document_type: ResolvedDocumentType
    language: str = "en"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: str | None = None
    raw: str | None = None


# === PHASE C: SPECIALISTS ===


class SubjectRefinement(BaseModel):
    model_config = ConfigDict(frozen=True)

    improved_subject: str = ""
    changes: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: str | None = None


class HeaderRefinement(BaseModel):
    model_config = ConfigDict(frozen=True)

    improved_headers: list[str] = Field(default_factory=list)
    structure_issues: list[str] = Field(
        default_factory=list, description="MECE violations found in the original headers"
    )
    validation_notes: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: str | None = None


class CompletenessRefinement(BaseModel):
    model_config = ConfigDict(frozen=True)

    missing_info: list[str] = Field(default_factory=list)
    preservation_status: str = ""
    risk_score: float = Field(default=0.0, ge=0.0, le=1.0, description="0 = no loss, 1 = critical loss")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: str | None = None


class StyleRefinement(BaseModel):
    model_config = ConfigDict(frozen=True)

    issues: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    language_consistent: bool = True
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    error: str | None = None


class SpecialistRefinement(BaseModel):
    """One payload per specialist. Failed specialists carry a zero-confidence placeholder."""

    model_config = ConfigDict(frozen=True)

    subject: SubjectRefinement = Field(default_factory=SubjectRefinement)
    headers: HeaderRefinement = Field(default_factory=HeaderRefinement)
    completeness: CompletenessRefinement = Field(default_factory=CompletenessRefinement)
    style: StyleRefinement = Field(default_factory=StyleRefinement)

    def degraded(self) -> list[str]:
        """Names of specialists that failed and were replaced by placeholders."""
        payloads = {
            "subject": self.subject,
            "headers": self.headers,
            "completeness": self.completeness,
            "style": self.style,
        }
        return [name for name, payload in payloads.items() if payload.error]


# === PHASE D: INTEGRATION ===


class IntegrationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    final_document: str
    subject: str
    applied_improvements: list[str] = Field(default_factory=list)
    quality_score: float = Field(ge=0.0, le=1.0)
    fallback_used: bool = False


# === PHASE E: RESULT ===


class StructureHeadline(BaseModel):
    title: str
    priority: str = "medium"
    details: list[str] = Field(default_factory=list)


class DocumentStructure(BaseModel):
    headlines: list[StructureHeadline] = Field(default_factory=list)


class QualityCheck(BaseModel):
    """Summary of the risks and penalties found while integrating."""

    completeness_risk: float = 0.0
    missing_info: list[str] = Field(default_factory=list)
    missing_info_appended: bool = False
    completeness_penalty_applied: bool = False
    mece_violations: list[str] = Field(default_factory=list)
    style_issues: list[str] = Field(default_factory=list)
    degraded_specialists: list[str] = Field(default_factory=list)
    integration_fallback: bool = False
    passed: bool = True


class PyramidalAgentResult(BaseModel):
    """Everything the UI needs from one pipeline run."""

    document_type: ResolvedDocumentType
    language: str
    format_elements: list[str] = Field(default_factory=list)
    final_document: str
    subject: str
    applied_improvements: list[str] = Field(default_factory=list)
    quality_score: float = Field(ge=0.0, le=1.0)
    structure: DocumentStructure = Field(default_factory=DocumentStructure)
    quality_check: QualityCheck = Field(default_factory=QualityCheck)

    # Intermediate results kept for observability
    detection: DocumentDetection
    oneshot: OneshotResult
    refinements: SpecialistRefinement
