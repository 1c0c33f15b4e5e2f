"""API router for v1 endpoints."""

from fastapi import APIRouter

from fixmytex.api import assistant

router = APIRouter()

# Assistant UI bridge (capture, process, paste-back)
router.include_router(assistant.router, tags=["assistant"])
