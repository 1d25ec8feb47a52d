"""
In-process event bus for decoupled side effects.

Used for cache invalidation after a template gains a version, without
the version store knowing who listens. Stores queue their events on the
session; they are published only once the transaction has committed, so
no listener acts on a version other requests cannot see yet.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.stdlib.get_logger()

# Type alias for async event handlers
EventHandler = Callable[..., Coroutine[Any, Any, None]]


@dataclass
class TemplateChangedEvent:
    """Emitted after a template is created, updated, restored or imported."""

    kind: str
    template_id: uuid.UUID
    name: str
    version: int
    change: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus:
    """Simple async pub/sub event bus."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    async def publish(self, event: Any) -> None:
        """Publish an event. Handlers run concurrently; their errors are logged, not raised."""
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            return

        results = await asyncio.gather(
            *(h(event) for h in handlers),
            return_exceptions=True,
        )
        for i, result in enumerate(results):
            if isinstance(result, Exception):
                await logger.aerror(
                    "event_bus.handler_error",
                    event_type=type(event).__name__,
                    handler=handlers[i].__name__,
                    error=str(result),
                )


# Global event bus instance
event_bus = EventBus()


# Events raised inside a DB transaction wait here until it commits
PENDING_EVENTS_KEY = "midnight.pending_events"


def queue_event(session: AsyncSession, event: Any) -> None:
    """Hold ``event`` until the session's transaction commits."""
    session.info.setdefault(PENDING_EVENTS_KEY, []).append(event)


def queued_event_count(session: AsyncSession) -> int:
    return len(session.info.get(PENDING_EVENTS_KEY, ()))


def discard_queued_events(session: AsyncSession, keep: int = 0) -> None:
    """Drop queued events past the first ``keep``, as when a savepoint rolls back."""
    del session.info.get(PENDING_EVENTS_KEY, [])[keep:]


async def publish_queued_events(session: AsyncSession, bus: EventBus | None = None) -> None:
    """Publish what the committed transaction queued, in order."""
    for event in session.info.pop(PENDING_EVENTS_KEY, []):
        await (bus or event_bus).publish(event)
