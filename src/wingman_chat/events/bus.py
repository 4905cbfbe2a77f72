"""Event bus used by the session to notify the surrounding UI.

Usage:
    bus = EventBus()

    async def on_error(event):
        show_toast(event.data["message"])

    bus.subscribe(NOTIFICATION_ERROR, on_error)
    await bus.publish(NOTIFICATION_ERROR, {"title": "Error", "message": "..."})
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import inspect
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)

NOTIFICATION_ERROR = "notification.error"
TIMELINE_CHANGED = "timeline.changed"
THREAD_CHANGED = "thread.changed"
THREADS_CHANGED = "threads.changed"
STATE_CHANGED = "state.changed"


@dataclass
class Event:
    """Event data container."""

    name: str
    data: dict[str, Any]
    source: str | None = None


class EventBus:
    """Publish/subscribe hub with sync or async handlers.

    A failing handler is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable]] = {}

    def subscribe(self, event_name: str, handler: Callable) -> None:
        self._subscribers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: Callable) -> None:
        handlers = self._subscribers.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    async def publish(
        self, event_name: str, data: dict[str, Any] | None = None, source: str | None = None
    ) -> int:
        """Deliver an event and return how many handlers received it."""
        event = Event(name=event_name, data=dict(data or {}), source=source)
        delivered = 0
        for handler in list(self._subscribers.get(event_name, [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:  # noqa: BLE001 - one bad subscriber must not break the session.
                LOGGER.exception(
                    "events.handler_failed",
                    extra={"event": "events.handler_failed", "event_name": event_name},
                )
        return delivered

    def clear(self, event_name: str | None = None) -> None:
        if event_name:
            self._subscribers.pop(event_name, None)
        else:
            self._subscribers.clear()
