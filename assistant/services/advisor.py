"""
Service: advisor.py
Rôle:
- Contrôleur de conseils : file FIFO d'événements, machine à états, compteurs
  de progression, notifications vers l'UI.

États:
- IDLE → LISTENING → COMPOSING → WAITING_FOR_ACK → (étape suivante) …
- ERROR : événement absent/invalide, dépassement de délai ou échec du resolver;
  retour automatique après `error_recovery_delay`. Un dépassement de délai est
  signalé et compté mais le texte produit est tout de même affiché.

Notifications (`connect(signal, callback)`):
- "ready_to_display"(text), "state_changed"(old, new),
  "error_occurred"(message), "processing_complete"().

Concurrence:
- Un seul événement en cours à la fois; les étapes sont sérialisées par un RLock.
- Les seules attentes sont l'auto-acquittement et le retour d'erreur, planifiés via
  le `Scheduler` injecté (asyncio en service, horloge virtuelle en test).
- `handle_event` ne bloque jamais : le texte arrive par "ready_to_display".
"""
from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from threading import RLock
from typing import Any, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel

from assistant.models.event import Event
from .scheduler import Cancellable, Scheduler
from .text_resolver import TextResolver

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TIMEOUT = 5.0
DEFAULT_AUTO_ACK_DELAY = 3.0
DEFAULT_ERROR_RECOVERY_DELAY = 2.0

SIGNAL_READY_TO_DISPLAY = "ready_to_display"
SIGNAL_STATE_CHANGED = "state_changed"
SIGNAL_ERROR_OCCURRED = "error_occurred"
SIGNAL_PROCESSING_COMPLETE = "processing_complete"
SIGNALS = (
    SIGNAL_READY_TO_DISPLAY,
    SIGNAL_STATE_CHANGED,
    SIGNAL_ERROR_OCCURRED,
    SIGNAL_PROCESSING_COMPLETE,
)


class AdvisorState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    COMPOSING = "COMPOSING"
    WAITING_FOR_ACK = "WAITING_FOR_ACK"
    ERROR = "ERROR"


class AdvisorErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    TIMEOUT = "timeout"


class ProgressState(BaseModel):
    events_processed: int = 0
    errors_count: int = 0
    last_event_category: str = "none"
    last_event_time: float = 0.0
    total_display_count: int = 0


class AdvisorController:
    def __init__(
        self,
        resolver: TextResolver,
        scheduler: Scheduler,
        *,
        event_timeout: float = DEFAULT_EVENT_TIMEOUT,
        auto_ack_delay: float = DEFAULT_AUTO_ACK_DELAY,
        error_recovery_delay: float = DEFAULT_ERROR_RECOVERY_DELAY,
    ) -> None:
        self.resolver = resolver
        self.scheduler = scheduler
        self.event_timeout = event_timeout
        self.auto_ack_delay = auto_ack_delay
        self.error_recovery_delay = error_recovery_delay

        self._lock = RLock()
        self._state = AdvisorState.IDLE
        self._queue: Deque[Event] = deque()
        self._progress = ProgressState()
        self._listeners: Dict[str, List[Callable[..., Any]]] = {signal: [] for signal in SIGNALS}
        # événement affiché en attente d'acquittement (None si aucun)
        self._in_flight: Optional[Event] = None
        # jeton d'étape : invalide les auto-acquittements périmés
        self._step = 0
        self._ack_handle: Optional[Cancellable] = None
        self._recovery_handle: Optional[Cancellable] = None
        # boucle de traitement : une seule active, les demandes réentrantes lèvent le drapeau
        self._stepping = False
        self._step_requested = False

    # -----------------------------
    # Notifications
    # -----------------------------
    def connect(self, signal: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Abonne `callback` au signal; retourne une fonction de désabonnement."""
        if signal not in self._listeners:
            raise ValueError(f"Unknown signal: {signal}")
        self._listeners[signal].append(callback)
        return lambda: self.disconnect(signal, callback)

    def disconnect(self, signal: str, callback: Callable[..., Any]) -> None:
        listeners = self._listeners.get(signal) or []
        if callback in listeners:
            listeners.remove(callback)

    def _emit(self, signal: str, *args: Any) -> None:
        for callback in list(self._listeners[signal]):
            try:
                callback(*args)
            except Exception:
                logger.exception("Advisor listener failed", extra={"advisor_signal": signal})

    # -----------------------------
    # Lecture d'état
    # -----------------------------
    @property
    def state(self) -> AdvisorState:
        return self._state

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def get_progress_state(self) -> ProgressState:
        with self._lock:
            return self._progress.model_copy()

    def status(self) -> Dict[str, Any]:
        """Snapshot synthétique pour l'UI / les routes."""
        with self._lock:
            return {
                "state": self._state.value,
                "queue_size": len(self._queue),
                "awaiting_ack": self._in_flight is not None,
                "progress": self._progress.model_dump(),
            }

    # -----------------------------
    # API publique
    # -----------------------------
    def handle_event(self, event: Optional[Event]) -> bool:
        """Valide et met en file; lance le traitement si le contrôleur est au repos."""
        with self._lock:
            if event is None:
                self._fail(AdvisorErrorKind.INVALID_INPUT, "Received null event")
                return False
            # copie profonde : le payload mis en file ne dépend plus de l'appelant
            event = event.model_copy(deep=True)
            if not event.is_valid():
                self._fail(AdvisorErrorKind.INVALID_INPUT, f"Invalid event: {event.describe()}")
                return False
            self._queue.append(event)
            logger.debug("Advisor event queued", extra={"event_category": event.category.value, "queue_size": len(self._queue)})
            if self._state == AdvisorState.IDLE and self._in_flight is None:
                self._process_next()
            return True

    def acknowledge(self) -> bool:
        """Acquittement explicite (UI); sans effet hors de WAITING_FOR_ACK."""
        with self._lock:
            if self._state != AdvisorState.WAITING_FOR_ACK:
                return False
            self._process_next()
            return True

    def clear_queue(self) -> None:
        with self._lock:
            self._queue.clear()
            self._cancel_ack()
            self._step_requested = False
            self._in_flight = None
            self._step += 1
            self._change_state(AdvisorState.IDLE)

    def reset(self) -> None:
        with self._lock:
            self.clear_queue()
            self._progress = ProgressState()

    # -----------------------------
    # Étape de traitement
    # -----------------------------
    def _process_next(self) -> None:
        """Demande une étape; la boucle tourne une seule fois par pile d'appels.

        Un acquittement émis depuis un listener (ou un échec du resolver) ne fait
        que lever `_step_requested` : l'étape suivante est reprise par la boucle
        externe, sans récursion quelle que soit la longueur de la file.
        """
        self._step_requested = True
        if self._stepping:
            return
        self._stepping = True
        try:
            while self._step_requested:
                self._step_requested = False
                self._step_once()
        finally:
            self._stepping = False

    def _step_once(self) -> None:
        self._cancel_ack()
        self._in_flight = None
        self._step += 1

        if not self._queue:
            self._change_state(AdvisorState.IDLE)
            self._emit(SIGNAL_PROCESSING_COMPLETE)
            return

        self._change_state(AdvisorState.LISTENING)
        event = self._queue.popleft()
        self._change_state(AdvisorState.COMPOSING)

        started = self.scheduler.now()
        try:
            text = self.resolver.resolve_text(event)
        except Exception as exc:
            logger.exception("Advisor text resolution failed", extra={"event_category": event.category.value})
            self._fail(AdvisorErrorKind.RESOURCE_UNAVAILABLE, f"Text resolution failed for {event.category.value}: {exc}")
            self._step_requested = True
            return
        elapsed = self.scheduler.now() - started
        if elapsed > self.event_timeout:
            # surveillance seulement : le texte déjà produit reste affiché
            self._fail(
                AdvisorErrorKind.TIMEOUT,
                f"Processing timeout after {self.event_timeout}s ({event.category.value})",
            )

        progress = self._progress
        progress.events_processed += 1
        progress.last_event_category = event.category.value
        progress.last_event_time = event.timestamp
        progress.total_display_count += 1

        self._in_flight = event
        self._change_state(AdvisorState.WAITING_FOR_ACK)
        step = self._step
        self._ack_handle = self.scheduler.call_later(self.auto_ack_delay, self._auto_acknowledge, step)
        self._emit(SIGNAL_READY_TO_DISPLAY, text)

    def _auto_acknowledge(self, step: int) -> None:
        with self._lock:
            if step != self._step or self._in_flight is None:
                return
            self._process_next()

    def _cancel_ack(self) -> None:
        if self._ack_handle is not None:
            self._ack_handle.cancel()
            self._ack_handle = None

    # -----------------------------
    # Erreurs / transitions
    # -----------------------------
    def _fail(self, kind: AdvisorErrorKind, message: str) -> None:
        self._progress.errors_count += 1
        logger.warning("Advisor error", extra={"advisor_error_kind": kind.value, "advisor_error": message})
        self._emit(SIGNAL_ERROR_OCCURRED, message)
        self._change_state(AdvisorState.ERROR)
        if self._recovery_handle is not None:
            self._recovery_handle.cancel()
        self._recovery_handle = self.scheduler.call_later(self.error_recovery_delay, self._recover)

    def _recover(self) -> None:
        with self._lock:
            self._recovery_handle = None
            if self._state != AdvisorState.ERROR:
                return
            if self._in_flight is not None:
                self._change_state(AdvisorState.WAITING_FOR_ACK)
                return
            self._change_state(AdvisorState.IDLE)
            if self._queue:
                self._process_next()

    def _change_state(self, new_state: AdvisorState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        logger.debug("Advisor state change", extra={"from_state": old_state.value, "to_state": new_state.value})
        self._emit(SIGNAL_STATE_CHANGED, old_state, new_state)
