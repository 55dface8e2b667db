"""Core domain models.

The turn engine, the ledger and the narrative gateway all operate on these
types. Pydantic is used for validation at the boundary with the narrative
generator: a generated payload is only accepted if it validates as an
Encounter or a Resolution.

Field names are snake_case in Python and camelCase on the wire
(`riskLabel`, `outcomeText`, `memberIndex`, ...), matching the JSON the
generator is asked to produce and the snapshot served to the presentation
layer.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

CrewStatus = Literal["healthy", "injured", "starving", "dead"]
CrewRole = Literal["leader", "medic", "soldier", "cook"]
ChoiceType = Literal["aggressive", "diplomatic", "sacrifice", "neutral"]


class GamePhase(str, Enum):
    MENU = "menu"
    TRAVEL = "travel"
    EVENT_GENERATING = "event_generating"
    EVENT_DECISION = "event_decision"
    EVENT_RESOLUTION = "event_resolution"
    GAME_OVER = "game_over"
    VICTORY = "victory"


class Biome(str, Enum):
    ARID_SHRUBLAND = "Arid Shrubland"
    TEMPERATE_FOREST = "Temperate Forest"
    ICE_SHEET = "Ice Sheet"
    EXTREME_DESERT = "Extreme Desert"
    TROPICAL_RAINFOREST = "Tropical Rainforest"


class WireModel(BaseModel):
    """Base for models that travel as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )


class CrewMember(WireModel):
    """A member of the caravan. `id` and `role` never change after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: CrewRole
    status: CrewStatus = "healthy"

    @property
    def is_dead(self) -> bool:
        return self.status == "dead"


class Choice(WireModel):
    id: str = Field(min_length=1)
    text: str
    type: ChoiceType
    risk_label: str


class Encounter(WireModel):
    """A generated narrative event awaiting exactly one decision."""

    title: str
    description: str
    choices: list[Choice] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_choice_ids(self) -> Encounter:
        ids = [c.id for c in self.choices]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate choice ids: {ids}")
        return self

    def find_choice(self, choice_id: str) -> Choice | None:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None


class CrewStatusChange(WireModel):
    member_index: int
    new_status: CrewStatus


class Resolution(WireModel):
    """The generated outcome of a chosen option, expressed as deltas."""

    outcome_text: str
    food_change: float
    mood_change: int
    distance_change: int
    crew_status_changes: list[CrewStatusChange] = Field(default_factory=list)

    @field_validator("mood_change", "distance_change", mode="before")
    @classmethod
    def _round_integral(cls, value: Any) -> Any:
        # Generators occasionally emit -10.0 or 12.5 for integer fields
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(f"non-finite delta: {value}")
            return round(value)
        return value


class Session(WireModel):
    """The single mutable game state container."""

    phase: GamePhase = GamePhase.MENU
    day: int = 1
    distance_traveled: int = 0
    distance_total: int = 1000
    food: float = 50.0
    mood: int = 100
    credits: int = 500
    crew: list[CrewMember] = Field(default_factory=list)
    biome: Biome = Biome.ARID_SHRUBLAND
    logs: list[str] = Field(default_factory=list)
    current_event: Encounter | None = None
    last_resolution: Resolution | None = None
