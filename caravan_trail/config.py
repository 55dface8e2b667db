"""Process configuration and the factories that wire the engine together.

Settings come from environment variables; callers that want `.env` support
load it with python-dotenv before calling load_settings() (see backend/app.py).

    CARAVAN_API_KEY          Bearer token for the narrative service
                             (API_KEY is accepted as a fallback)
    CARAVAN_BASE_URL         Gateway base URL
    CARAVAN_MODEL            Model identifier
    CARAVAN_PROVIDER_FORMAT  "chat" or "completions"
    CARAVAN_TIMEOUT          HTTP timeout in seconds
    CARAVAN_STRICT           "1"/"true" to raise on wrong-phase intents
    CARAVAN_SEED             Integer seed for encounter focus selection
    LOG_LEVEL                Root log level for main.py

Without an API key the narrative engine is disabled: the game still runs,
every encounter and outcome is the built-in fallback.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Mapping

from pydantic import BaseModel

from caravan_trail.engine import TurnEngine
from caravan_trail.gateway import NarrativeGateway
from caravan_trail.llm import HttpLLM, ProviderFormat
from caravan_trail.prompts import STORYTELLER_PERSONA

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.packyapi.com"
DEFAULT_MODEL = "gemini-2.5-flash"
_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    provider_format: ProviderFormat = "chat"
    timeout: float = 60.0
    strict: bool = False
    seed: int | None = None
    log_level: str = "INFO"

    @property
    def narrative_enabled(self) -> bool:
        return bool(self.api_key)


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read settings from env (defaults to os.environ). Empty values count as unset."""
    env = os.environ if env is None else env

    def get(name: str) -> str:
        return env.get(name, "").strip()

    fields: dict[str, object] = {
        "api_key": get("CARAVAN_API_KEY") or get("API_KEY"),
        "strict": get("CARAVAN_STRICT").lower() in _TRUTHY,
    }
    if get("CARAVAN_BASE_URL"):
        fields["base_url"] = get("CARAVAN_BASE_URL")
    if get("CARAVAN_MODEL"):
        fields["model"] = get("CARAVAN_MODEL")
    if get("CARAVAN_PROVIDER_FORMAT"):
        fields["provider_format"] = get("CARAVAN_PROVIDER_FORMAT")
    if get("CARAVAN_TIMEOUT"):
        fields["timeout"] = get("CARAVAN_TIMEOUT")
    if get("CARAVAN_SEED"):
        fields["seed"] = get("CARAVAN_SEED")
    if get("LOG_LEVEL"):
        fields["log_level"] = get("LOG_LEVEL").upper()
    return Settings.model_validate(fields)


def build_llm(settings: Settings) -> HttpLLM | None:
    if not settings.narrative_enabled:
        logger.warning(
            "No API key configured (CARAVAN_API_KEY); narrative engine disabled, "
            "fallback encounters only"
        )
        return None
    return HttpLLM(
        base_url=settings.base_url,
        api_key=settings.api_key,
        model=settings.model,
        provider_format=settings.provider_format,
        system_prompt=STORYTELLER_PERSONA,
        timeout=settings.timeout,
    )


def build_engine(settings: Settings) -> TurnEngine:
    rng = random.Random(settings.seed)
    gateway = NarrativeGateway(build_llm(settings), rng=rng)
    return TurnEngine(gateway, strict=settings.strict)
