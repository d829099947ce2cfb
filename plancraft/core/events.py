"""
Event system.

Services emit events for things downstream consumers care about (welcome
emails, analytics) without knowing who listens. The in-memory bus is enough
for a single process; a deployed stack can forward events to EventBridge
from a subscriber.
"""

from __future__ import annotations

import fnmatch
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

# Type for event handlers
EventHandler = Callable[["Event"], Awaitable[None]]


@dataclass
class Event:
    """
    An event in the system.

    Events are immutable records of something that happened to a user.
    """

    event_type: str  # e.g., "onboarding.completed"
    user_id: str
    payload: dict[str, Any] = field(default_factory=dict)

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Subscription:
    """A subscription to events matching a pattern."""

    pattern: str  # e.g., "onboarding.*"
    handler: EventHandler

    def matches(self, event: Event) -> bool:
        return fnmatch.fnmatch(event.event_type, self.pattern)


class EventBus:
    """In-memory event bus."""

    def __init__(self, max_history: int = 1000):
        self._subscriptions: list[Subscription] = []
        self._event_history: list[Event] = []
        self._max_history = max_history

    def subscribe(self, pattern: str, handler: EventHandler) -> Subscription:
        """
        Subscribe to events matching a pattern.

        Args:
            pattern: Event type pattern (supports wildcards like "onboarding.*")
            handler: Async function to handle matching events

        Returns:
            The subscription object
        """
        subscription = Subscription(pattern=pattern, handler=handler)
        self._subscriptions.append(subscription)
        return subscription

    async def publish(self, event: Event) -> None:
        """Record the event and run every matching handler."""
        self._event_history.append(event)
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for subscription in [s for s in self._subscriptions if s.matches(event)]:
            try:
                await subscription.handler(event)
            except Exception:
                # Isolate subscriber failures
                logger.exception("Error in event handler for %s", event.event_type)

    def get_history(
        self,
        event_type: str | None = None,
        user_id: str | None = None,
        limit: int = 100,
    ) -> list[Event]:
        """Query event history with optional filters."""
        results = self._event_history

        if event_type:
            results = [e for e in results if fnmatch.fnmatch(e.event_type, event_type)]

        if user_id:
            results = [e for e in results if e.user_id == user_id]

        return results[-limit:]


# Singleton event bus for the application
_default_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the default event bus instance."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def reset_event_bus() -> None:
    """Reset the default event bus (useful for testing)."""
    global _default_bus
    _default_bus = None


def onboarding_completed(
    user_id: str,
    completed_at: str | None,
    skipped: bool = False,
    **extra_payload,
) -> Event:
    """Create an onboarding.completed event."""
    return Event(
        event_type="onboarding.completed",
        user_id=user_id,
        payload={
            "completed_at": completed_at,
            "skipped": skipped,
            **extra_payload,
        },
    )
