"""Game session snapshot and player intent endpoints."""

from fastapi import APIRouter, Request

from caravan_trail.engine import TurnEngine

from .models import ChooseBody

router = APIRouter()


def _engine(request: Request) -> TurnEngine:
    return request.app.state.engine


def _snapshot(engine: TurnEngine) -> dict:
    return {
        "session": engine.session.model_dump(mode="json", by_alias=True),
        "busy": engine.busy,
    }


@router.get("/session")
async def get_session(request: Request):
    """Current game state."""
    return _snapshot(_engine(request))


@router.post("/session/start")
async def start_session(request: Request):
    """Leave the menu (or a finished game) and start a new journey."""
    engine = _engine(request)
    engine.start_session()
    return _snapshot(engine)


@router.post("/session/advance")
async def advance_turn(request: Request):
    """Travel one day and generate the next encounter."""
    engine = _engine(request)
    await engine.advance_turn()
    return _snapshot(engine)


@router.post("/session/choose")
async def choose_option(request: Request, body: ChooseBody):
    """Pick an option of the active encounter."""
    engine = _engine(request)
    await engine.choose_option(body.choice_id)
    return _snapshot(engine)


@router.post("/session/acknowledge")
async def acknowledge_resolution(request: Request):
    """Dismiss the outcome and return to travel."""
    engine = _engine(request)
    engine.acknowledge_resolution()
    return _snapshot(engine)


@router.post("/session/reset")
async def reset_session(request: Request):
    """Abandon the current game and return to the menu."""
    engine = _engine(request)
    engine.reset_session()
    return _snapshot(engine)
