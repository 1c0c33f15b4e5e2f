"""Request/response schemas for the assistant UI bridge."""

from datetime import datetime

from pydantic import BaseModel, Field

from fixmytex.agents.pyramidal.schemas import DocumentType


class PendingCaptureResponse(BaseModel):
    text: str
    source_app: str = ""
    captured_at: datetime


class ProcessRequest(BaseModel):
    """Run the pyramidal pipeline on the pending capture, or on ``text`` when given."""

    text: str | None = Field(default=None, min_length=1, description="Overrides the pending capture")
    document_type: DocumentType = DocumentType.AUTO
    instructions: str | None = None


class PasteBackRequest(BaseModel):
    text: str = Field(..., min_length=1)


class PasteBackResponse(BaseModel):
    pasted: bool
    source_app: str = ""
