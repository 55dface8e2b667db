import asyncio
import json
import random

import pytest

from caravan_trail.gateway import NarrativeGateway
from caravan_trail.engine import TurnEngine


# ---------------------------------------------------------------------------
# StubLLM — dispatches by stage name, independent queue per stage
# ---------------------------------------------------------------------------

class StubLLM:
    """Deterministic LLM stand-in for tests.

    Provide a dict mapping stage name → list of responses (in call order).
    A response that is an exception instance is raised instead of returned.
    If `gate` is set, every call waits on it before answering, which lets a
    test observe the engine while a request is in flight.
    """

    def __init__(
        self,
        responses: dict[str, list] | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self._queues: dict[str, list] = {k: list(v) for k, v in (responses or {}).items()}
        self.gate = gate
        self.calls: list[tuple[str, str]] = []

    def queue(self, stage: str, *responses) -> None:
        self._queues.setdefault(stage, []).extend(responses)

    async def __call__(self, stage: str, prompt: str) -> str:
        self.calls.append((stage, prompt))
        if self.gate is not None:
            await self.gate.wait()
        queue = self._queues.get(stage)
        if not queue:
            raise AssertionError(
                f"StubLLM: unexpected call to stage={stage!r} "
                f"(no responses queued). calls so far: {len(self.calls)}"
            )
        response = queue.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    def assert_exhausted(self) -> None:
        """Assert every queued response was consumed — catches missing LLM calls."""
        leftover = {k: v for k, v in self._queues.items() if v}
        if leftover:
            raise AssertionError(f"StubLLM: unused responses remain: {leftover}")


def encounter_json(**overrides) -> str:
    data = {
        "title": "Raider Outpost",
        "description": "Smoke rises from a ring of rusted buses ahead.",
        "choices": [
            {"id": "attack", "text": "Storm the outpost.", "type": "aggressive",
             "riskLabel": "High risk"},
            {"id": "parley", "text": "Send Vance to talk.", "type": "diplomatic",
             "riskLabel": "Moderate risk"},
            {"id": "detour", "text": "Take the long way round.", "type": "neutral",
             "riskLabel": "Safe"},
        ],
    }
    data.update(overrides)
    return json.dumps(data)


def resolution_json(**overrides) -> str:
    data = {
        "outcomeText": "The raiders scatter, but Sarge takes a blade to the arm.",
        "foodChange": 4.5,
        "moodChange": -10,
        "distanceChange": 0,
        "crewStatusChanges": [{"memberIndex": 2, "newStatus": "injured"}],
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def stub_llm() -> StubLLM:
    return StubLLM()


@pytest.fixture
def gateway(stub_llm: StubLLM) -> NarrativeGateway:
    return NarrativeGateway(stub_llm, rng=random.Random(7))


@pytest.fixture
def engine(gateway: NarrativeGateway) -> TurnEngine:
    return TurnEngine(gateway)
