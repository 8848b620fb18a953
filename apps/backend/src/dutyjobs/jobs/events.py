"""Observer fan-out for job lifecycle and progress events."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class JobEvent(str, Enum):
    """Names of events emitted by the processor."""

    JOB_ADDED = "jobAdded"
    JOB_STARTED = "jobStarted"
    JOB_PAUSED = "jobPaused"
    JOB_RESUMED = "jobResumed"
    JOB_CANCELLED = "jobCancelled"
    JOB_RETRY = "jobRetry"
    JOB_FAILED = "jobFailed"
    JOB_COMPLETED = "jobCompleted"
    PROGRESS_UPDATE = "progressUpdate"


class JobEventBus:
    """Delivers events to subscribed listeners.

    Listeners may be plain callables or coroutine functions; coroutine
    listeners are scheduled on the running loop. A failing listener is logged
    and never affects the emitter or the other listeners.
    """

    def __init__(self) -> None:
        self._listeners: dict[JobEvent, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, event: JobEvent | str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``event``; returns an unsubscribe callable."""
        name = JobEvent(event)
        self._listeners[name].append(listener)
        return lambda: self.unsubscribe(name, listener)

    def subscribe_all(self, listener: Callable[[JobEvent, Any], Any]) -> None:
        """Register ``listener(event, payload)`` for every event."""
        for event in JobEvent:
            self.subscribe(event, lambda payload, _event=event: listener(_event, payload))

    def unsubscribe(self, event: JobEvent | str, listener: Listener) -> bool:
        listeners = self._listeners.get(JobEvent(event), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listener_count(self, event: JobEvent | str) -> int:
        return len(self._listeners.get(JobEvent(event), []))

    def emit(self, event: JobEvent, payload: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(payload)
            except Exception:
                logger.exception("Listener for %s failed", event.value)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._on_listener_done)

    def _on_listener_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Async event listener failed", exc_info=task.exception())

    async def drain(self) -> None:
        """Wait for scheduled async listeners to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
