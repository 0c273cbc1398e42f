"""
Service: scheduler.py
Rôle:
- Abstraction des attentes temporisées du contrôleur (auto-acquittement,
  retour d'erreur) : `call_later(delay, callback, *args)` → handle annulable, `now()`.

Implémentations:
- AsyncioScheduler : boucle asyncio (service FastAPI). La boucle est capturée à
  l'appel si elle n'a pas été fournie; il faut donc être dans un contexte async.
- ManualScheduler : horloge virtuelle pour les tests; rien ne s'exécute tant
  que `advance(seconds)` n'est pas appelé.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Any, Callable, List, Optional, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Cancellable: ...


class AsyncioScheduler:
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)


class ScheduledCall:
    __slots__ = ("due", "seq", "callback", "args", "cancelled")

    def __init__(self, due: float, seq: int, callback: Callable[..., Any], args: tuple) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "ScheduledCall") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)


class ManualScheduler:
    """Horloge virtuelle : les rappels échus s'exécutent pendant `advance`."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._heap: List[ScheduledCall] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        call = ScheduledCall(self._now + max(0.0, delay), next(self._seq), callback, args)
        heapq.heappush(self._heap, call)
        return call

    def advance(self, seconds: float) -> int:
        """Avance l'horloge et exécute les rappels échus (dans l'ordre); retourne leur nombre."""
        target = self._now + seconds
        fired = 0
        while self._heap and self._heap[0].due <= target:
            call = heapq.heappop(self._heap)
            if call.cancelled:
                continue
            self._now = call.due
            call.callback(*call.args)
            fired += 1
        self._now = max(self._now, target)
        return fired

    def pending(self) -> int:
        return sum(1 for call in self._heap if not call.cancelled)
