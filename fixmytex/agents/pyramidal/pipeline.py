"""Pyramidal document pipeline.

LangGraph workflow turning raw captured text into a structured document:
1. detect - resolve document type and language (Phase A)
2. generate_foundation - oneshot foundation draft (Phase B)
3. refine - four concurrent specialist reviews (Phase C)
4. integrate - deterministic merge of the reviews (Phase D)
5. assemble - build the PyramidalAgentResult (Phase E)

Detection and foundation failures end the run: a ProviderError propagates
as-is, anything else is raised as PipelineError. Specialist and integration
failures only lower the quality of the result.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from langgraph.graph import END, StateGraph

from fixmytex.agents.pyramidal.prompts import FORMAT_ELEMENTS
from fixmytex.agents.pyramidal.schemas import (
    DocumentDetection,
    DocumentRequest,
    DocumentStructure,
    DocumentType,
    IntegrationResult,
    OneshotResult,
    PyramidalAgentResult,
    SpecialistRefinement,
    StructureHeadline,
)
from fixmytex.chains.detect_document_type import detect_document
from fixmytex.chains.generate_oneshot_foundation import generate_oneshot_foundation
from fixmytex.chains.integrate_refinements import (
    IntegrationPolicy,
    build_quality_check,
    integrate_with_fallback,
)
from fixmytex.chains.refine_specialists import run_specialists
from fixmytex.core.errors import PipelineError, ProviderError
from fixmytex.core.llm import ChatModelProvider, get_chat_provider
from fixmytex.core.logging import get_logger, log_phase, log_with_context

logger = get_logger(__name__)


@dataclass
class PyramidalState:
    """State for the pyramidal pipeline graph."""

    # Input
    request: DocumentRequest
    run_id: UUID

    # Phase outputs
    detection: DocumentDetection | None = None
    oneshot: OneshotResult | None = None
    refinements: SpecialistRefinement | None = None
    integration: IntegrationResult | None = None

    # Output
    result: PyramidalAgentResult | None = None


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def build_pyramidal_graph(
    provider: ChatModelProvider,
    policy: IntegrationPolicy | None = None,
):
    """Build and compile the pipeline graph bound to one provider and policy."""
    policy = policy or IntegrationPolicy()

    async def detect(state: PyramidalState) -> dict[str, Any]:
        with log_phase(logger, "detect", str(state.run_id)) as details:
            try:
                detection = await detect_document(
                    provider, state.request.text, state.request.document_type
                )
            except ProviderError:
                raise
            except Exception as e:
                raise PipelineError(f"Document detection failed: {e}") from e
            details.update(
                document_type=detection.document_type.value,
                language=detection.language,
                confidence=detection.confidence,
            )
        return {"detection": detection}

    async def generate_foundation(state: PyramidalState) -> dict[str, Any]:
        with log_phase(logger, "generate_foundation", str(state.run_id)) as details:
            try:
                oneshot = await generate_oneshot_foundation(
                    provider, state.request, state.detection
                )
            except ProviderError:
                raise
            except Exception as e:
                raise PipelineError(f"Foundation generation failed: {e}") from e
            details.update(
                headers=len(oneshot.headers),
                confidence=oneshot.confidence,
                fallback=oneshot.error is not None,
            )
        return {"oneshot": oneshot}

    async def refine(state: PyramidalState) -> dict[str, Any]:
        with log_phase(logger, "refine", str(state.run_id)) as details:
            refinements = await run_specialists(provider, state.oneshot, state.request.text)
            details["degraded"] = refinements.degraded()
        return {"refinements": refinements}

    async def integrate(state: PyramidalState) -> dict[str, Any]:
        with log_phase(logger, "integrate", str(state.run_id)) as details:
            integration = integrate_with_fallback(state.oneshot, state.refinements, policy)
            details.update(
                applied=len(integration.applied_improvements),
                quality_score=integration.quality_score,
                fallback=integration.fallback_used,
            )
        return {"integration": integration}

    async def assemble(state: PyramidalState) -> dict[str, Any]:
        detection = state.detection
        oneshot = state.oneshot
        integration = state.integration

        structure = DocumentStructure(
            headlines=[StructureHeadline(title=header) for header in oneshot.headers]
        )
        result = PyramidalAgentResult(
            document_type=detection.document_type,
            language=detection.language,
            format_elements=list(FORMAT_ELEMENTS.get(detection.document_type, [])),
            final_document=integration.final_document,
            subject=integration.subject,
            applied_improvements=list(integration.applied_improvements),
            quality_score=integration.quality_score,
            structure=structure,
            quality_check=build_quality_check(state.refinements, integration, policy),
            detection=detection,
            oneshot=oneshot,
            refinements=state.refinements,
        )
        return {"result": result}

    workflow = StateGraph(PyramidalState)

    workflow.add_node("detect", detect)
    workflow.add_node("generate_foundation", generate_foundation)
    workflow.add_node("refine", refine)
    workflow.add_node("integrate", integrate)
    workflow.add_node("assemble", assemble)

    workflow.set_entry_point("detect")
    workflow.add_edge("detect", "generate_foundation")
    workflow.add_edge("generate_foundation", "refine")
    workflow.add_edge("refine", "integrate")
    workflow.add_edge("integrate", "assemble")
    workflow.add_edge("assemble", END)

    return workflow.compile()


async def run_pyramidal_pipeline(
    request: DocumentRequest,
    provider: ChatModelProvider | None = None,
    policy: IntegrationPolicy | None = None,
    run_id: UUID | None = None,
) -> PyramidalAgentResult:
    """
    Run the pipeline for a validated request.

    Raises:
        ProviderError: If detection or foundation generation cannot reach the model
        PipelineError: If detection or foundation generation fails otherwise
    """
    provider = provider or get_chat_provider()
    policy = policy or IntegrationPolicy.from_settings()
    run_id = run_id or uuid4()
    started = time.perf_counter()

    log_with_context(
        logger,
        logging.INFO,
        "Starting pyramidal pipeline",
        run_id=str(run_id),
        requested_type=request.document_type.value,
        source_app=request.source_app,
        chars=len(request.text),
    )

    graph = build_pyramidal_graph(provider, policy)
    final_state = await graph.ainvoke(PyramidalState(request=request, run_id=run_id))

    result = final_state.get("result")
    if result is None:
        raise PipelineError("Pipeline did not produce a result")

    log_with_context(
        logger,
        logging.INFO,
        "Completed pyramidal pipeline",
        run_id=str(run_id),
        document_type=result.document_type.value,
        quality_score=result.quality_score,
        duration_ms=_elapsed_ms(started),
    )
    return result


async def process_document(
    text: str,
    document_type: DocumentType = DocumentType.AUTO,
    source_app: str = "",
    instructions: str | None = None,
    provider: ChatModelProvider | None = None,
    policy: IntegrationPolicy | None = None,
) -> PyramidalAgentResult:
    """
    Restructure raw text into a pyramidal document.

    Args:
        text: Source text (must be non-empty)
        document_type: Target format, or AUTO to classify
        source_app: Application the text was captured from
        instructions: Optional free-text instructions for the foundation draft
        provider: Chat model override (defaults to the configured backend)
        policy: Integration policy override (defaults to settings)

    Returns:
        PyramidalAgentResult

    Raises:
        PipelineError: If the text is empty or the run cannot produce a document
        ProviderError: If the model is unreachable during detection or foundation
    """
    if not text or not text.strip():
        raise PipelineError("Cannot process empty text")

    request = DocumentRequest(
        text=text,
        document_type=document_type,
        source_app=source_app,
        instructions=instructions,
    )
    return await run_pyramidal_pipeline(request, provider=provider, policy=policy)
