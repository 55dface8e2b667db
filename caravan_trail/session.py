"""Game session lifecycle: initial state and terminal-phase rules."""

from __future__ import annotations

from typing import Any

from caravan_trail.models import Biome, CrewMember, GamePhase, Session

DISTANCE_TOTAL = 1000  # km to the escape ship
INITIAL_FOOD = 50.0
INITIAL_MOOD = 100
INITIAL_CREDITS = 500

INITIAL_CREW: tuple[CrewMember, ...] = (
    CrewMember(id="1", name="Vance", role="leader"),
    CrewMember(id="2", name="Doc", role="medic"),
    CrewMember(id="3", name="Sarge", role="soldier"),
    CrewMember(id="4", name="Cook", role="cook"),
)

TERMINAL_PHASES = frozenset({GamePhase.GAME_OVER, GamePhase.VICTORY})


class ContractViolation(RuntimeError):
    """Raised when a transition is invoked from a phase that does not allow it."""


def initial_logs(distance_total: int = DISTANCE_TOTAL) -> list[str]:
    return [
        "System initialising...",
        "Life support nominal.",
        f"The caravan has assembled. The escape ship lies {distance_total} km to the east.",
    ]


def new_session(phase: GamePhase = GamePhase.MENU, **overrides: Any) -> Session:
    """Build a fresh session in its initial state.

    Keyword overrides replace individual fields (handy for tests and for
    alternative starting conditions); anything not overridden gets the
    standard starting values.
    """
    distance_total = overrides.get("distance_total", DISTANCE_TOTAL)
    fields: dict[str, Any] = {
        "phase": phase,
        "day": 1,
        "distance_traveled": 0,
        "distance_total": distance_total,
        "food": INITIAL_FOOD,
        "mood": INITIAL_MOOD,
        "credits": INITIAL_CREDITS,
        "crew": list(INITIAL_CREW),
        "biome": Biome.ARID_SHRUBLAND,
        "logs": initial_logs(distance_total),
    }
    fields.update(overrides)
    return Session.model_validate(fields)


def is_terminal(phase: GamePhase) -> bool:
    return phase in TERMINAL_PHASES


def check_terminal(session: Session) -> GamePhase | None:
    """Return the terminal phase the session should enter, if any.

    Never fires from the menu or from a phase that is already terminal. A
    wiped-out crew takes precedence over reaching the destination.
    """
    if session.phase == GamePhase.MENU or is_terminal(session.phase):
        return None
    if all(member.is_dead for member in session.crew):
        return GamePhase.GAME_OVER
    if session.distance_traveled >= session.distance_total:
        return GamePhase.VICTORY
    return None
