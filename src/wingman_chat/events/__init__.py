"""Session events delivered to UI subscribers."""

from .bus import (
    NOTIFICATION_ERROR,
    STATE_CHANGED,
    THREAD_CHANGED,
    THREADS_CHANGED,
    TIMELINE_CHANGED,
    Event,
    EventBus,
)

__all__ = [
    "Event",
    "EventBus",
    "NOTIFICATION_ERROR",
    "STATE_CHANGED",
    "THREAD_CHANGED",
    "THREADS_CHANGED",
    "TIMELINE_CHANGED",
]
