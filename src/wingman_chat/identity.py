"""Ownership of the "current thread" id: persistence, verification, creation."""

from __future__ import annotations

from enum import Enum
import logging
from typing import TYPE_CHECKING

from .exceptions import AuthRequiredError, ThreadCreationError, WingmanChatError

if TYPE_CHECKING:
    from .api import ChatApiClient
    from .storage import ThreadIdStore

LOGGER = logging.getLogger(__name__)

BOOTSTRAP_MESSAGE = "New chat started"


class VerifyOutcome(str, Enum):
    """Result of the most recent existence check."""

    EXISTS = "EXISTS"
    NOT_FOUND = "NOT_FOUND"
    UNREACHABLE = "UNREACHABLE"


class ThreadIdentityManager:
    """Resolve, verify, create, and persist the current thread id.

    The persisted id is only ever read and written here.  A persisted id is
    never trusted on cold entry: ``ensure_thread`` verifies it and silently
    replaces a stale one.
    """

    def __init__(
        self,
        api: ChatApiClient,
        store: ThreadIdStore,
        *,
        bootstrap_message: str = BOOTSTRAP_MESSAGE,
    ) -> None:
        self.api = api
        self.store = store
        self.bootstrap_message = bootstrap_message
        self.last_outcome: VerifyOutcome | None = None

    def resolve_thread(self) -> str | None:
        """Return the persisted id without validating it."""
        return self.store.read()

    def persist(self, thread_id: str | None) -> None:
        """Write the id through to durable storage; ``None`` clears it."""
        if thread_id:
            self.store.write(thread_id)
        else:
            self.store.clear()
        LOGGER.debug(
            "identity.persisted",
            extra={"event": "identity.persisted", "thread_id": thread_id},
        )

    async def verify(self, thread_id: str) -> bool:
        """Return True only when the remote confirms the thread exists.

        A failed check also returns False; ``last_outcome`` tells the two
        apart.  Missing credentials still raise.
        """
        try:
            exists = await self.api.thread_exists(thread_id)
        except AuthRequiredError:
            raise
        except WingmanChatError as exc:
            self.last_outcome = VerifyOutcome.UNREACHABLE
            LOGGER.warning(
                "identity.verify.unreachable",
                extra={
                    "event": "identity.verify.unreachable",
                    "thread_id": thread_id,
                    "error": str(exc),
                },
            )
            return False
        self.last_outcome = VerifyOutcome.EXISTS if exists else VerifyOutcome.NOT_FOUND
        if not exists:
            LOGGER.info(
                "identity.verify.not_found",
                extra={"event": "identity.verify.not_found", "thread_id": thread_id},
            )
        return exists

    async def create(self, style_hint: str) -> str:
        """Mint a new thread by sending a bootstrap message without an id.

        Raises:
            ThreadCreationError: when the remote call fails or returns no id.
        """
        try:
            result = await self.api.send_message(self.bootstrap_message, style_hint)
        except AuthRequiredError:
            raise
        except WingmanChatError as exc:
            raise ThreadCreationError(f"Failed to initialize chat thread: {exc}") from exc
        if not result.thread_id:
            raise ThreadCreationError("Failed to initialize chat thread: no thread id returned")
        LOGGER.info(
            "identity.created",
            extra={"event": "identity.created", "thread_id": result.thread_id},
        )
        return result.thread_id

    async def ensure_thread(self, style_hint: str, candidate: str | None = None) -> str:
        """Return a usable thread id, creating and persisting one if needed.

        Only a confirmed not-found clears the id; when the check itself fails
        the id is kept and the next remote call reports the real problem.
        """
        thread_id = candidate if candidate is not None else self.resolve_thread()
        if thread_id:
            if await self.verify(thread_id):
                return thread_id
            if self.last_outcome is VerifyOutcome.UNREACHABLE:
                return thread_id
            self.persist(None)
        new_id = await self.create(style_hint)
        self.persist(new_id)
        return new_id
