"""Resource ledger: pure per-turn accounting.

Nothing here performs I/O or mutates its arguments. Every function takes a
Session (or crew list) and returns new values; the turn engine decides when
to commit them.

Numeric rules:
  food      one decimal of precision, never below 0
  mood      integer, clamped to [0, 100]
  distance  integer, clamped to [0, distance_total]

Crew statuses coming from a resolution are merged tolerantly: unknown indices
are ignored and a dead crew member stays dead.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

from caravan_trail.models import CrewMember, Resolution, Session

FOOD_PER_CAPITA = 1.5  # kg per living crew member per travel step
DISTANCE_PER_TURN = 25  # km per travel step
STARVATION_MOOD_PENALTY = 20
MOOD_MIN = 0
MOOD_MAX = 100
SETBACK_MOOD_THRESHOLD = -10


class TravelStep(NamedTuple):
    food_consumed: float
    distance_gained: int
    mood_penalty: int


def round_food(value: float) -> float:
    """Round a food quantity to one decimal, dropping float noise."""
    return round(value + 0.0, 1)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def living_crew(crew: Sequence[CrewMember]) -> list[CrewMember]:
    return [c for c in crew if not c.is_dead]


def compute_travel_step(session: Session) -> TravelStep:
    """Work out what one day of travel costs and gains.

    The mood penalty is flat and only applies when the larder ends up
    exactly empty after this step's consumption.
    """
    food_consumed = round_food(len(living_crew(session.crew)) * FOOD_PER_CAPITA)
    remaining = max(0, session.distance_total - session.distance_traveled)
    distance_gained = min(DISTANCE_PER_TURN, remaining)
    food_after = max(0.0, round_food(session.food - food_consumed))
    mood_penalty = STARVATION_MOOD_PENALTY if food_after == 0 else 0
    return TravelStep(food_consumed, distance_gained, mood_penalty)


def apply_travel_step(session: Session, step: TravelStep) -> Session:
    """Return a copy of session advanced by one day according to step."""
    return session.model_copy(update={
        "day": session.day + 1,
        "food": max(0.0, round_food(session.food - step.food_consumed)),
        "distance_traveled": clamp(
            session.distance_traveled + step.distance_gained, 0, session.distance_total
        ),
        "mood": clamp(session.mood - step.mood_penalty, MOOD_MIN, MOOD_MAX),
    })


def merge_crew_statuses(
    crew: Sequence[CrewMember], resolution: Resolution
) -> list[CrewMember]:
    """Overwrite crew statuses index-wise from a resolution.

    Out-of-range indices (negative ones included) are skipped without error,
    and nobody comes back from the dead.
    """
    merged = list(crew)
    for change in resolution.crew_status_changes:
        idx = change.member_index
        if not 0 <= idx < len(merged):
            continue
        member = merged[idx]
        if member.is_dead:
            continue
        merged[idx] = member.model_copy(update={"status": change.new_status})
    return merged


def apply_resolution_deltas(session: Session, resolution: Resolution) -> Session:
    """Return a copy of session with the resolution's deltas applied."""
    return session.model_copy(update={
        "food": max(0.0, round_food(session.food + resolution.food_change)),
        "mood": clamp(session.mood + resolution.mood_change, MOOD_MIN, MOOD_MAX),
        "distance_traveled": clamp(
            session.distance_traveled + resolution.distance_change,
            0,
            session.distance_total,
        ),
        "crew": merge_crew_statuses(session.crew, resolution),
    })


def is_setback(resolution: Resolution) -> bool:
    """True when an outcome reads as bad news: a heavy mood hit or a death."""
    if resolution.mood_change < SETBACK_MOOD_THRESHOLD:
        return True
    return any(c.new_status == "dead" for c in resolution.crew_status_changes)
