"""Pyramidal Document Agent - multi-phase restructuring of raw text.

Phases (see pipeline.py):
- A: document type & language detection
- B: oneshot foundation generation
- C: parallel specialist refinement
- D: deterministic integration
- E: result assembly

Import ``process_document`` from ``fixmytex.agents.pyramidal.pipeline``; this
package only re-exports the schemas so the chains can import it freely.
"""

from fixmytex.agents.pyramidal.schemas import (
    CapturedText,
    DocumentRequest,
    DocumentType,
    OneshotResult,
    PyramidalAgentResult,
    SpecialistRefinement,
)

__all__ = [
    "CapturedText",
    "DocumentRequest",
    "DocumentType",
    "OneshotResult",
    "PyramidalAgentResult",
    "SpecialistRefinement",
]
