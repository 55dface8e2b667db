"""Narrative gateway. Turns game state into generated encounters and outcomes.

Both calls follow the same shape:

  1. Render a prompt from the current session (prompts.py).
  2. Make one LLM call (stage "encounter" or "resolution").
  3. Parse the reply as JSON (markdown fences and surrounding prose are
     tolerated) and validate it against the pydantic model.

Any failure along the way (transport error, non-JSON reply, a payload that
does not validate, an unexpected error from the LLM client) is logged and
replaced by a fixed fallback, so a turn can always complete. The only error
that escapes is ContractViolation: asking for a resolution when no encounter
is active is a bug in the caller.

With no LLM configured (missing API key) the gateway is disabled and serves
the fallbacks straight away.
"""

from __future__ import annotations

import json
import logging
import random
from typing import Any

from pydantic import ValidationError

from caravan_trail.llm import LLM, LLMError
from caravan_trail.models import Encounter, Resolution, Session
from caravan_trail.prompts import PromptError, encounter_prompt, resolution_prompt
from caravan_trail.session import ContractViolation

logger = logging.getLogger(__name__)

ENCOUNTER_FOCUSES: tuple[str, ...] = (
    "Environmental crisis (sandstorm, acid rain, extreme temperatures)",
    "Resource shortage (rotting food, equipment failure)",
    "External threat (raiders, rogue machines, feral beasts)",
    "Mysterious phenomenon (ancient ruins, psychic interference, time anomalies)",
    "Internal conflict (crew quarrels, mental breakdown, even mutiny)",
    "Opportunity (wandering trader, crashed starship, oasis)",
)

FALLBACK_ENCOUNTER = Encounter(
    title="Static Storm",
    description=(
        "The air crackles with static and the comms gear shrieks in your ears. "
        "It is going to be an uneasy night."
    ),
    choices=[{
        "id": "wait",
        "text": "Make camp and wait for the storm to pass.",
        "type": "neutral",
        "riskLabel": "Safe",
    }],
)

FALLBACK_RESOLUTION = Resolution(
    outcome_text="After a stretch of chaos, you barely manage to steady the situation.",
    food_change=-2,
    mood_change=-5,
    distance_change=0,
)


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

def parse_json_object(text: str) -> dict[str, Any] | None:
    """Parse a JSON object from LLM output, stripping markdown fences.

    If the reply wraps the object in prose, the outermost {...} span is tried.
    Returns None when no object can be recovered.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


class NarrativeGateway:
    """Requests encounters and resolutions from the narrative generator.

    Args:
        llm: The generator, or None to run with fallback content only.
        rng: Source of randomness for picking the encounter focus. Pass a
             seeded random.Random for reproducible prompts.
    """

    def __init__(self, llm: LLM | None, rng: random.Random | None = None) -> None:
        self._llm = llm
        self._rng = rng or random.Random()

    @property
    def enabled(self) -> bool:
        return self._llm is not None

    def pick_focus(self) -> str:
        return self._rng.choice(ENCOUNTER_FOCUSES)

    async def generate_encounter(self, session: Session) -> Encounter:
        focus = self.pick_focus()
        if self._llm is None:
            logger.debug("narrative engine disabled; serving fallback encounter")
            return FALLBACK_ENCOUNTER.model_copy(deep=True)

        try:
            prompt = encounter_prompt(session, focus)
            text = await self._llm("encounter", prompt)
        except (LLMError, PromptError) as e:
            logger.warning("Encounter generation failed: %s", e)
            return FALLBACK_ENCOUNTER.model_copy(deep=True)
        except Exception:
            logger.exception("Unexpected error from narrative service")
            return FALLBACK_ENCOUNTER.model_copy(deep=True)

        data = parse_json_object(text)
        if data is None:
            logger.warning("Encounter reply is not a JSON object: %r", text[:200])
            return FALLBACK_ENCOUNTER.model_copy(deep=True)
        try:
            encounter = Encounter.model_validate(data)
        except ValidationError as e:
            logger.warning("Encounter reply failed validation: %s", e)
            return FALLBACK_ENCOUNTER.model_copy(deep=True)

        logger.debug("encounter generated focus=%r title=%r", focus, encounter.title)
        return encounter

    async def resolve_encounter(self, session: Session, choice_id: str) -> Resolution:
        event = session.current_event
        if event is None:
            raise ContractViolation("No active encounter to resolve")

        choice = event.find_choice(choice_id)
        if choice is None:
            logger.debug("choice id %r not in encounter %r", choice_id, event.title)

        if self._llm is None:
            logger.debug("narrative engine disabled; serving fallback resolution")
            return FALLBACK_RESOLUTION.model_copy(deep=True)

        try:
            prompt = resolution_prompt(session, choice)
            text = await self._llm("resolution", prompt)
        except (LLMError, PromptError) as e:
            logger.warning("Resolution generation failed: %s", e)
            return FALLBACK_RESOLUTION.model_copy(deep=True)
        except Exception:
            logger.exception("Unexpected error from narrative service")
            return FALLBACK_RESOLUTION.model_copy(deep=True)

        data = parse_json_object(text)
        if data is None:
            logger.warning("Resolution reply is not a JSON object: %r", text[:200])
            return FALLBACK_RESOLUTION.model_copy(deep=True)
        try:
            return Resolution.model_validate(data)
        except ValidationError as e:
            logger.warning("Resolution reply failed validation: %s", e)
            return FALLBACK_RESOLUTION.model_copy(deep=True)
