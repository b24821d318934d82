"""Lifecycle event publishing scoped to one engine instance."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from .contracts import utcnow

logger = logging.getLogger(__name__)


class LifecycleEvent(BaseModel):
    """A named notification with a camelCase payload."""

    name: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


Listener = Callable[[LifecycleEvent], Any]


class Subscription:
    """Queue-backed stream of events for async consumers.

    Registered on creation, so nothing emitted afterwards is missed even if
    iteration starts later.

    Example:
        async with emitter.subscribe("workflowCompleted") as events:
            event = await events.next()
    """

    def __init__(self, emitter: "EventEmitter", names: Optional[Set[str]] = None) -> None:
        self._emitter = emitter
        self._names = names
        self._queue: asyncio.Queue[LifecycleEvent] = asyncio.Queue()

    def wants(self, event: LifecycleEvent) -> bool:
        return not self._names or event.name in self._names

    def put(self, event: LifecycleEvent) -> None:
        self._queue.put_nowait(event)

    async def next(self, timeout: Optional[float] = None) -> LifecycleEvent:
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def pending(self) -> List[LifecycleEvent]:
        """Drain and return everything queued so far without waiting."""
        drained: List[LifecycleEvent] = []
        while not self._queue.empty():
            drained.append(self._queue.get_nowait())
        return drained

    def close(self) -> None:
        self._emitter._unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> LifecycleEvent:
        return await self._queue.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class EventEmitter:
    """Publish/subscribe hub for engine lifecycle events.

    Listeners may be plain callables or coroutine functions. A failing
    listener is logged and never affects the emitter or other listeners.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._any_listeners: List[Listener] = []
        self._subscriptions: List[Subscription] = []
        self._pending: Set[asyncio.Task] = set()

    def on(self, name: str, listener: Listener) -> Listener:
        self._listeners[name].append(listener)
        return listener

    def off(self, name: str, listener: Listener) -> None:
        try:
            self._listeners[name].remove(listener)
        except ValueError:
            pass

    def on_any(self, listener: Listener) -> Listener:
        self._any_listeners.append(listener)
        return listener

    def subscribe(self, *names: str) -> Subscription:
        subscription = Subscription(self, set(names) or None)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def emit(self, name: str, payload: Optional[Dict[str, Any]] = None) -> LifecycleEvent:
        event = LifecycleEvent(name=name, payload=payload or {})
        for listener in [*self._listeners.get(name, ()), *self._any_listeners]:
            self._call(listener, event)
        for subscription in list(self._subscriptions):
            if subscription.wants(event):
                subscription.put(event)
        return event

    def _call(self, listener: Listener, event: LifecycleEvent) -> None:
        try:
            result = listener(event)
        except Exception:
            logger.exception(f"Listener {listener!r} failed on {event.name}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Async listener failed: {exc!r}")

    async def drain(self) -> None:
        """Wait for in-flight async listeners to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def log_events(event: LifecycleEvent) -> None:
    """Listener that writes every lifecycle event to the log."""
    logger.info(f"{event.name}: {event.payload}")
