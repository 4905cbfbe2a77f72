"""Tests for lock-protected session state transitions."""

from __future__ import annotations

import asyncio
import unittest

from wingman_chat.state import SessionState, StateManager


class StateManagerTests(unittest.IsolatedAsyncioTestCase):
    """Validate the session state machine."""

    async def test_transition_to_sets_state(self) -> None:
        manager = StateManager()
        self.assertIs(manager.state, SessionState.IDLE)
        self.assertIs(await manager.transition_to(SessionState.LOADING_HISTORY), SessionState.LOADING_HISTORY)
        self.assertIs(manager.state, SessionState.LOADING_HISTORY)

    async def test_transition_if_enforces_expected_state(self) -> None:
        manager = StateManager()
        changed = await manager.transition_if(SessionState.SENDING, SessionState.IDLE)
        self.assertFalse(changed)
        self.assertEqual(manager.state, SessionState.IDLE)

        changed = await manager.transition_if(SessionState.IDLE, SessionState.SENDING)
        self.assertTrue(changed)
        self.assertIs(manager.state, SessionState.SENDING)

    async def test_lock_prevents_double_send_entry(self) -> None:
        manager = StateManager()

        async def try_enter_sending() -> bool:
            await asyncio.sleep(0)
            return await manager.transition_if(SessionState.IDLE, SessionState.SENDING)

        results = await asyncio.gather(*(try_enter_sending() for _ in range(10)))
        self.assertEqual(sum(1 for result in results if result), 1)
        self.assertEqual(manager.state, SessionState.SENDING)


if __name__ == "__main__":
    unittest.main()
