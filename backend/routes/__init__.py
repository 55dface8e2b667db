"""FastAPI API endpoints under /api.

Endpoint groups: status (health, narrative engine status) and session (the
game snapshot plus one POST per player intent). The presentation layer polls
GET /api/session, or reads the snapshot returned by each intent.
"""

from fastapi import APIRouter

from .session import router as session_router
from .status import router as status_router

router = APIRouter()
router.include_router(status_router)
router.include_router(session_router)
