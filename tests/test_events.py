"""Tests for the session event bus."""

from __future__ import annotations

import unittest

from wingman_chat.events import NOTIFICATION_ERROR, TIMELINE_CHANGED, Event, EventBus


class EventBusTests(unittest.IsolatedAsyncioTestCase):
    """Validate subscribe/publish semantics."""

    async def test_sync_and_async_handlers_receive_event(self) -> None:
        bus = EventBus()
        received: list[Event] = []

        async def async_handler(event: Event) -> None:
            received.append(event)

        bus.subscribe(NOTIFICATION_ERROR, received.append)
        bus.subscribe(NOTIFICATION_ERROR, async_handler)

        delivered = await bus.publish(NOTIFICATION_ERROR, {"message": "boom"}, source="test")

        self.assertEqual(delivered, 2)
        self.assertEqual([event.data["message"] for event in received], ["boom", "boom"])
        self.assertEqual(received[0].source, "test")

    async def test_failing_handler_does_not_block_others(self) -> None:
        bus = EventBus()
        received: list[Event] = []

        def broken(_event: Event) -> None:
            raise RuntimeError("handler bug")

        bus.subscribe(TIMELINE_CHANGED, broken)
        bus.subscribe(TIMELINE_CHANGED, received.append)
        with self.assertLogs("wingman_chat.events.bus", level="ERROR"):
            delivered = await bus.publish(TIMELINE_CHANGED)
        self.assertEqual(delivered, 1)
        self.assertEqual(len(received), 1)

    async def test_unsubscribe_and_clear(self) -> None:
        bus = EventBus()
        received: list[Event] = []
        bus.subscribe(TIMELINE_CHANGED, received.append)
        bus.unsubscribe(TIMELINE_CHANGED, received.append)
        self.assertEqual(await bus.publish(TIMELINE_CHANGED), 0)

        bus.subscribe(TIMELINE_CHANGED, received.append)
        bus.clear()
        self.assertEqual(await bus.publish(TIMELINE_CHANGED), 0)
        self.assertEqual(received, [])


if __name__ == "__main__":
    unittest.main()
