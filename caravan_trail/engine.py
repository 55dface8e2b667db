"""Turn engine: the phase state machine that owns the game session.

Phase flow:

    menu ──start──▶ travel ──advance──▶ event_generating ──(encounter)──▶
    event_decision ──choose──▶ (resolution) ──▶ event_resolution
    ──acknowledge──▶ travel ... until game_over | victory

Each intent commits a whole new Session object, so observers never see a
half-applied step. The only await points are the two gateway calls; while
one is outstanding the engine is busy and further advance/choose intents are
ignored.

Every start/reset bumps an epoch. A gateway reply is applied only if the
epoch and phase it was issued under still hold; otherwise it is discarded.

Terminal check (after every mutation touching crew or distance):
  all crew dead               → game_over (signal "failure")
  distance_traveled ≥ total   → victory   (signal "success")
Dead crew wins if both hold. Terminal phases are absorbing until start/reset.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Literal

from caravan_trail.gateway import NarrativeGateway
from caravan_trail.ledger import (
    apply_resolution_deltas,
    apply_travel_step,
    compute_travel_step,
    is_setback,
)
from caravan_trail.models import GamePhase, Session
from caravan_trail.session import (
    ContractViolation,
    check_terminal,
    is_terminal,
    new_session,
)

logger = logging.getLogger(__name__)

Signal = Literal["start", "travel", "event", "setback", "relief", "failure", "success"]
StateListener = Callable[[Session], None]
SignalListener = Callable[[Signal], None]


def _discard(listeners: list, listener: Callable) -> None:
    if listener in listeners:
        listeners.remove(listener)


class TurnEngine:
    """Drives one game session through its phases.

    Args:
        gateway: Source of encounters and resolutions.
        session: Starting state. Defaults to a fresh menu session.
        strict:  Raise ContractViolation on intents issued from the wrong
                 phase instead of logging and ignoring them.
    """

    def __init__(
        self,
        gateway: NarrativeGateway,
        *,
        session: Session | None = None,
        strict: bool = False,
    ) -> None:
        self._gateway = gateway
        self._session = session if session is not None else new_session()
        self._strict = strict
        self._epoch = 0
        self._inflight: int | None = None
        self._state_listeners: list[StateListener] = []
        self._signal_listeners: list[SignalListener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        """A read-only snapshot of the current session."""
        return self._session.model_copy(deep=True)

    @property
    def phase(self) -> GamePhase:
        return self._session.phase

    @property
    def busy(self) -> bool:
        """True while a gateway request is outstanding."""
        return self._inflight is not None

    @property
    def gateway(self) -> NarrativeGateway:
        return self._gateway

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call listener with a snapshot after every mutation. Returns an unsubscribe."""
        self._state_listeners.append(listener)
        return lambda: _discard(self._state_listeners, listener)

    def on_signal(self, listener: SignalListener) -> Callable[[], None]:
        self._signal_listeners.append(listener)
        return lambda: _discard(self._signal_listeners, listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _emit(self, signal: Signal) -> None:
        for listener in list(self._signal_listeners):
            listener(signal)

    def _commit(self, session: Session, signal: Signal | None = None) -> None:
        """Swap in a new session, enter a terminal phase if due, notify observers.

        `signal` is emitted after the state listeners and before any terminal
        signal.
        """
        terminal = check_terminal(session)
        if terminal is not None:
            session = session.model_copy(update={
                "phase": terminal,
                "current_event": None,
                "last_resolution": None,
            })
        self._session = session
        for listener in list(self._state_listeners):
            listener(self.session)
        if signal is not None:
            self._emit(signal)
        if terminal == GamePhase.GAME_OVER:
            logger.info("game over on day %d", session.day)
            self._emit("failure")
        elif terminal == GamePhase.VICTORY:
            logger.info("victory on day %d", session.day)
            self._emit("success")

    def _reject(self, intent: str, allowed: str) -> None:
        message = f"{intent} is only valid in {allowed}, not in {self._session.phase.value}"
        if self._strict:
            raise ContractViolation(message)
        logger.warning("ignored intent: %s", message)

    def _is_stale(self, epoch: int, phase: GamePhase) -> bool:
        return epoch != self._epoch or self._session.phase != phase

    def _release(self, epoch: int) -> None:
        if self._inflight == epoch:
            self._inflight = None

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def start_session(self) -> None:
        """Begin a new journey from the menu or after the game has ended."""
        if self._session.phase != GamePhase.MENU and not is_terminal(self._session.phase):
            self._reject("start_session", "menu or a terminal phase")
            return
        self._epoch += 1
        self._inflight = None
        self._commit(new_session(GamePhase.TRAVEL))
        logger.info("session started")
        self._emit("start")

    def reset_session(self) -> None:
        """Return to the menu with a fresh session. Allowed from any phase."""
        self._epoch += 1
        self._inflight = None
        self._commit(new_session())
        logger.info("session reset")

    async def advance_turn(self) -> None:
        """Travel one day, then wait for the next encounter."""
        if self._inflight is not None:
            logger.debug("advance_turn ignored: request in flight")
            return
        if self._session.phase != GamePhase.TRAVEL:
            self._reject("advance_turn", "travel")
            return

        current = self._session
        step = compute_travel_step(current)
        travelled = apply_travel_step(current, step)
        travelled = travelled.model_copy(update={
            "phase": GamePhase.EVENT_GENERATING,
            "logs": [
                *current.logs,
                f"Day {travelled.day}: travelled {step.distance_gained} km, "
                f"consumed {step.food_consumed:g} kg of food.",
            ],
        })
        self._commit(travelled, "travel")
        if self._session.phase != GamePhase.EVENT_GENERATING:
            # Reached the destination on this step
            return

        epoch = self._epoch
        self._inflight = epoch
        try:
            # The request sees exactly the state that was just committed
            encounter = await self._gateway.generate_encounter(travelled)
        finally:
            self._release(epoch)

        if self._is_stale(epoch, GamePhase.EVENT_GENERATING):
            logger.info("discarding stale encounter %r", encounter.title)
            return
        self._commit(self._session.model_copy(update={
            "current_event": encounter,
            "phase": GamePhase.EVENT_DECISION,
        }))
        self._emit("event")

    async def choose_option(self, choice_id: str) -> None:
        """Pick an option of the active encounter and apply its outcome."""
        if self._inflight is not None:
            logger.debug("choose_option ignored: request in flight")
            return
        if self._session.phase != GamePhase.EVENT_DECISION:
            self._reject("choose_option", "event_decision")
            return

        issued = self._session
        epoch = self._epoch
        self._inflight = epoch
        try:
            resolution = await self._gateway.resolve_encounter(issued, choice_id)
        finally:
            self._release(epoch)

        if (
            self._is_stale(epoch, GamePhase.EVENT_DECISION)
            or self._session.current_event is not issued.current_event
        ):
            logger.info("discarding stale resolution for choice %r", choice_id)
            return

        current = self._session
        resolved = apply_resolution_deltas(current, resolution)
        resolved = resolved.model_copy(update={
            "logs": [*current.logs, f"Outcome: {resolution.outcome_text}"],
            "current_event": None,
            "last_resolution": resolution,
            "phase": GamePhase.EVENT_RESOLUTION,
        })
        self._commit(resolved)
        if self._session.phase == GamePhase.EVENT_RESOLUTION:
            self._emit("setback" if is_setback(resolution) else "relief")

    def acknowledge_resolution(self) -> None:
        """Dismiss the outcome and get back on the road."""
        if self._session.phase != GamePhase.EVENT_RESOLUTION:
            self._reject("acknowledge_resolution", "event_resolution")
            return
        self._commit(self._session.model_copy(update={
            "phase": GamePhase.TRAVEL,
            "last_resolution": None,
        }))
