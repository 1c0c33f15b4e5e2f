"""API endpoints used by the assistant UI (double-press flow)."""

from fastapi import APIRouter, Depends, HTTPException

from fixmytex.agents.pyramidal.pipeline import process_document
from fixmytex.agents.pyramidal.schemas import PyramidalAgentResult
from fixmytex.core.errors import (
    AutomationError,
    ClipboardError,
    PipelineError,
    ProviderError,
)
from fixmytex.core.logging import get_logger
from fixmytex.core.schemas_assistant import (
    PasteBackRequest,
    PasteBackResponse,
    PendingCaptureResponse,
    ProcessRequest,
)
from fixmytex.services.ui_assisted_action import UIAssistedAction

logger = get_logger(__name__)

router = APIRouter()

_ui_action: UIAssistedAction | None = None


def set_ui_action(action: UIAssistedAction | None) -> None:
    """Bind the running host's UI-assisted action to the API."""
    global _ui_action
    _ui_action = action


def get_ui_action() -> UIAssistedAction:
    if _ui_action is None:
        raise HTTPException(status_code=503, detail="Desktop host is not running")
    return _ui_action


@router.get("/assistant/pending", response_model=PendingCaptureResponse)
async def get_pending(action: UIAssistedAction = Depends(get_ui_action)) -> PendingCaptureResponse:
    """Return the text captured by the last double press."""
    capture = action.pending_capture
    if capture is None:
        raise HTTPException(status_code=404, detail="No captured text")
    return PendingCaptureResponse(
        text=capture.text,
        source_app=capture.source_app,
        captured_at=capture.captured_at,
    )


@router.post("/assistant/process", response_model=PyramidalAgentResult)
async def process(
    request: ProcessRequest,
    action: UIAssistedAction = Depends(get_ui_action),
) -> PyramidalAgentResult:
    """
    Restructure text with the pyramidal pipeline.

    Raises:
        HTTPException 404: If no text was given and nothing has been captured
        HTTPException 502: If the LLM provider fails
        HTTPException 500: If the pipeline fails
    """
    capture = action.pending_capture
    if request.text is None and capture is None:
        raise HTTPException(status_code=404, detail="No captured text")

    try:
        if request.text is None:
            return await action.process_pending(request.document_type, request.instructions)
        return await process_document(
            request.text,
            document_type=request.document_type,
            source_app=capture.source_app if capture else "",
            instructions=request.instructions,
            provider=action.provider,
            policy=action.policy,
        )
    except ProviderError as e:
        logger.error(f"Provider failed during processing: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/assistant/paste-back", response_model=PasteBackResponse)
async def paste_back(
    request: PasteBackRequest,
    action: UIAssistedAction = Depends(get_ui_action),
) -> PasteBackResponse:
    """Write the approved text to the clipboard and paste it into the source app."""
    capture = action.pending_capture
    try:
        await action.paste_back_to_source_app(request.text)
    except (ClipboardError, AutomationError) as e:
        logger.error(f"Paste-back failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return PasteBackResponse(pasted=True, source_app=capture.source_app if capture else "")
