"""Health check and narrative engine status endpoints."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/status")
async def status(request: Request):
    """Whether the narrative engine is enabled, which model it uses, and if a request is pending."""
    settings = request.app.state.settings
    engine = request.app.state.engine
    return {
        "narrativeEnabled": engine.gateway.enabled,
        "model": settings.model if settings.narrative_enabled else None,
        "busy": engine.busy,
    }
