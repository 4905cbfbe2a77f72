"""Session state machine and lock-protected transitions."""

from __future__ import annotations

import asyncio
from enum import Enum
import logging

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Mutually exclusive activity flags of the open session."""

    IDLE = "IDLE"
    LOADING_HISTORY = "LOADING_HISTORY"
    SENDING = "SENDING"
    CREATING_THREAD = "CREATING_THREAD"


class SendOutcome(str, Enum):
    """How a send attempt ended."""

    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    REJECTED = "REJECTED"


class StateManager:
    """Manage state transitions with async lock semantics."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        """Unlocked snapshot for rendering."""
        return self._state

    async def transition_to(self, new_state: SessionState) -> SessionState:
        """Transition unconditionally and return the new state."""
        async with self._lock:
            self._log(self._state, new_state)
            self._state = new_state
            return self._state

    async def transition_if(
        self,
        expected_state: SessionState,
        new_state: SessionState,
    ) -> bool:
        """Transition only when the current state matches ``expected_state``."""
        async with self._lock:
            if self._state != expected_state:
                return False
            self._log(self._state, new_state)
            self._state = new_state
            return True

    @staticmethod
    def _log(old: SessionState, new: SessionState) -> None:
        if old == new:
            return
        LOGGER.debug(
            "session.state.transition",
            extra={
                "event": "session.state.transition",
                "from_state": old.value,
                "to_state": new.value,
            },
        )
