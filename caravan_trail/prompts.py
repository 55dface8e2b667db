"""Handlebars prompt rendering for the narrative generator.

Two templates, one per gateway stage:

  encounter   — asks for a new random encounter of a given focus category
  resolution  — asks for the outcome of the option the player picked

Both demand a bare JSON object in the camelCase shape of the corresponding
model. Free text is inserted with triple-stash ({{{ }}}) so quotes and
ampersands reach the model unescaped.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pybars

from caravan_trail.models import Choice, Session

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}

FOOD_PRESSURE_THRESHOLD = 10
MOOD_PRESSURE_THRESHOLD = 30


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


STORYTELLER_PERSONA = (
    'You are the AI storyteller of a text survival game called "The Caravan Trail".\n'
    "Style: a blend of RimWorld, Dune and Mad Max.\n"
    "Tone: cold, darkly humorous, unpredictable, laced with sci-fi dread.\n"
    "Job: produce brutal survival challenges, strange sci-fi phenomena, "
    "interpersonal conflict within the crew and hard moral choices."
)

ENCOUNTER_TEMPLATE = """\
Current game state:
- Biome: {{{biome}}}
- Day: {{day}}
- Food supply: {{food}} kg{{#if food_low}} (nearly gone: the situation must feel desperate){{/if}}
- Crew mood: {{mood}}{{#if mood_low}} (critically low: the encounter must involve a mental breakdown){{/if}}
- Crew:
{{#each crew}}
  - {{{name}}} [{{role}}: {{status}}]
{{/each}}

Task: generate a random encounter of the type "{{{focus}}}".
Requirements:
1. Be unpredictable: not always a fight. Strange finds, a crew member snapping, or a memory of the past are all fair game.
2. Hard choices: options are never black and white, sometimes every option has a cost.
3. Immersion: keep the description short but vivid.

Reply with exactly this JSON structure and nothing else:
{
  "title": "Event title",
  "description": "A vivid description of 2-4 sentences",
  "choices": [
    {
      "id": "choice_1",
      "text": "What the caravan does",
      "type": "aggressive | diplomatic | sacrifice | neutral",
      "riskLabel": "Risk label (e.g. High risk / Moderate risk / Safe / Extremely dangerous / Mind-warping)"
    }
  ]
}
"""

RESOLUTION_TEMPLATE = """\
Event: "{{{title}}}"
Situation: "{{{description}}}"
Player choice: {{#if has_choice}}"{{{choice_text}}}" ({{{choice_risk}}}){{else}}an unknown option{{/if}}
Current state: food {{food}} kg, mood {{mood}}
Crew (memberIndex refers to "index"): {{{crew_json}}}

Task: decide the outcome of this action.
Rules:
- If the risk is "High risk" or "Extremely dangerous", failure should be likely and may injure or kill crew.
- If the risk is "Mind-warping", mood should drop sharply.
- Outcomes are harsh and realistic; do not always give a happy ending.
- If the food has run out, someone must starve or fall ill.

Reply with exactly this JSON structure and nothing else:
{
  "outcomeText": "A vivid description of the result: who got hurt, what was lost",
  "foodChange": -3,
  "moodChange": -10,
  "distanceChange": 0,
  "crewStatusChanges": [
    { "memberIndex": 0, "newStatus": "healthy | injured | dead | starving" }
  ]
}
"""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def _format_food(food: float) -> str:
    return f"{food:g}"


def encounter_context(session: Session, focus: str) -> dict[str, Any]:
    return {
        "biome": session.biome.value,
        "day": str(session.day),
        "food": _format_food(session.food),
        "food_low": session.food < FOOD_PRESSURE_THRESHOLD,
        "mood": str(session.mood),
        "mood_low": session.mood < MOOD_PRESSURE_THRESHOLD,
        "crew": [c.model_dump() for c in session.crew],
        "focus": focus,
    }


def resolution_context(session: Session, choice: Choice | None) -> dict[str, Any]:
    event = session.current_event
    crew = [
        {"index": i, **member.model_dump()}
        for i, member in enumerate(session.crew)
    ]
    return {
        "title": event.title if event else "",
        "description": event.description if event else "",
        "has_choice": choice is not None,
        "choice_text": choice.text if choice else "",
        "choice_risk": choice.risk_label if choice else "",
        "food": _format_food(session.food),
        "mood": str(session.mood),
        "crew_json": json.dumps(crew, ensure_ascii=False),
    }


def encounter_prompt(session: Session, focus: str) -> str:
    return render_prompt(ENCOUNTER_TEMPLATE, encounter_context(session, focus))


def resolution_prompt(session: Session, choice: Choice | None) -> str:
    return render_prompt(RESOLUTION_TEMPLATE, resolution_context(session, choice))
