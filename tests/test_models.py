"""Tests for caravan_trail.models."""

import pytest
from pydantic import ValidationError

from caravan_trail.models import (
    Choice,
    CrewMember,
    Encounter,
    GamePhase,
    Resolution,
    Session,
)


class TestCrewMember:
    def test_status_defaults_to_healthy(self) -> None:
        m = CrewMember(id="1", name="Vance", role="leader")
        assert m.status == "healthy"
        assert not m.is_dead

    def test_is_frozen(self) -> None:
        m = CrewMember(id="1", name="Vance", role="leader")
        with pytest.raises(ValidationError):
            m.status = "dead"

    def test_invalid_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CrewMember(id="1", name="Vance", role="pilot")

    def test_invalid_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CrewMember(id="1", name="Vance", role="leader", status="zombie")


class TestEncounter:
    def _choice(self, id: str = "a") -> dict:
        return {"id": id, "text": "Go.", "type": "neutral", "riskLabel": "Safe"}

    def test_parses_camel_case_payload(self) -> None:
        e = Encounter.model_validate({
            "title": "Dust", "description": "Wind.", "choices": [self._choice()],
        })
        assert e.choices[0].risk_label == "Safe"

    def test_empty_choices_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Encounter.model_validate({"title": "T", "description": "D", "choices": []})

    def test_duplicate_choice_ids_rejected(self) -> None:
        with pytest.raises(ValidationError, match="duplicate choice ids"):
            Encounter.model_validate({
                "title": "T", "description": "D",
                "choices": [self._choice("a"), self._choice("a")],
            })

    def test_unknown_choice_type_rejected(self) -> None:
        bad = self._choice()
        bad["type"] = "cowardly"
        with pytest.raises(ValidationError):
            Encounter.model_validate({"title": "T", "description": "D", "choices": [bad]})

    def test_missing_title_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Encounter.model_validate({"description": "D", "choices": [self._choice()]})

    def test_find_choice(self) -> None:
        e = Encounter.model_validate({
            "title": "T", "description": "D",
            "choices": [self._choice("a"), self._choice("b")],
        })
        assert e.find_choice("b").id == "b"
        assert e.find_choice("zzz") is None

    def test_dump_uses_camel_case(self) -> None:
        c = Choice(id="a", text="Go.", type="neutral", risk_label="Safe")
        assert c.model_dump(by_alias=True)["riskLabel"] == "Safe"


class TestResolution:
    def test_crew_changes_default_to_empty(self) -> None:
        r = Resolution.model_validate({
            "outcomeText": "Fine.", "foodChange": 0, "moodChange": 0, "distanceChange": 0,
        })
        assert r.crew_status_changes == []

    def test_missing_delta_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Resolution.model_validate({"outcomeText": "x", "foodChange": 1, "moodChange": 2})

    def test_float_mood_and_distance_are_rounded(self) -> None:
        r = Resolution.model_validate({
            "outcomeText": "x", "foodChange": -1.25,
            "moodChange": -10.0, "distanceChange": 12.6,
        })
        assert r.mood_change == -10
        assert r.distance_change == 13
        assert r.food_change == -1.25

    @pytest.mark.parametrize("field", ["foodChange", "moodChange", "distanceChange"])
    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_delta_rejected(self, field: str, value: float) -> None:
        payload = {"outcomeText": "x", "foodChange": 0, "moodChange": 0, "distanceChange": 0}
        payload[field] = value
        with pytest.raises(ValidationError):
            Resolution.model_validate(payload)

    def test_overflowing_json_number_rejected(self) -> None:
        # 1e400 parses to inf
        with pytest.raises(ValidationError):
            Resolution.model_validate_json(
                '{"outcomeText": "x", "foodChange": 0, "moodChange": 1e400, "distanceChange": 0}'
            )

    def test_invalid_new_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Resolution.model_validate({
                "outcomeText": "x", "foodChange": 0, "moodChange": 0, "distanceChange": 0,
                "crewStatusChanges": [{"memberIndex": 0, "newStatus": "resurrected"}],
            })


class TestSession:
    def test_defaults(self) -> None:
        s = Session()
        assert s.phase == GamePhase.MENU
        assert s.current_event is None
        assert s.last_resolution is None

    def test_json_dump_uses_phase_values(self) -> None:
        dumped = Session(phase=GamePhase.EVENT_DECISION).model_dump(mode="json", by_alias=True)
        assert dumped["phase"] == "event_decision"
        assert "distanceTraveled" in dumped
