"""FastAPI application entry point for the assistant UI bridge."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from fixmytex.api import router as api_router

app = FastAPI(
    title="FixMyTex",
    description="Local bridge between the assistant UI and the pyramidal document pipeline",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
