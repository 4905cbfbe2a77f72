"""Session controller: thread switching, optimistic sends, and reconciliation.

Every in-flight request is tagged with the thread id it targets and the
switch generation it started in.  A result that arrives after the user moved
to another thread is dropped instead of being merged into the wrong log.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .attachments import AttachmentPipeline, AttachmentSource, PendingAttachment, PreviewHandle
from .events import (
    NOTIFICATION_ERROR,
    STATE_CHANGED,
    THREAD_CHANGED,
    THREADS_CHANGED,
    TIMELINE_CHANGED,
    EventBus,
)
from .exceptions import (
    AttachmentRejectedError,
    AuthRequiredError,
    RemoteSendError,
    ThreadNotFoundError,
    WingmanChatError,
)
from .identity import VerifyOutcome
from .models import DEFAULT_STYLE, STYLE_PRESETS, Thread, Turn, style_hint, utc_now
from .state import SendOutcome, SessionState, StateManager
from .timeline import MessageTimeline

if TYPE_CHECKING:
    from .api import ChatApiClient
    from .identity import ThreadIdentityManager

LOGGER = logging.getLogger(__name__)


class SessionController:
    """Orchestrate the identity manager, timeline, and attachment pipeline.

    Hard failures are published once as ``notification.error`` on the event
    bus.  Soft failures (a thread or history that does not exist yet) become
    an empty state without any notification.
    """

    def __init__(
        self,
        api: ChatApiClient,
        identity: ThreadIdentityManager,
        *,
        timeline: MessageTimeline | None = None,
        attachments: AttachmentPipeline | None = None,
        bus: EventBus | None = None,
        style: str = DEFAULT_STYLE,
        new_thread_title: str = "New Chat",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.api = api
        self.identity = identity
        self.timeline = timeline or MessageTimeline()
        self.attachments = attachments or AttachmentPipeline()
        self.bus = bus or EventBus()
        self.state_manager = StateManager()
        self.new_thread_title = new_thread_title
        self.clock = clock
        self.style = style if style in STYLE_PRESETS else DEFAULT_STYLE
        self.draft = ""
        self.threads: list[Thread] = []
        self._current_thread_id: str | None = None
        self._generation = 0
        self._loading_generation = 0
        self._previews: list[PreviewHandle] = []

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def current_thread_id(self) -> str | None:
        return self._current_thread_id

    @property
    def state(self) -> SessionState:
        return self.state_manager.state

    @property
    def is_sending(self) -> bool:
        return self.state is SessionState.SENDING

    @property
    def is_loading_history(self) -> bool:
        return self.state is SessionState.LOADING_HISTORY

    @property
    def is_creating_thread(self) -> bool:
        return self.state is SessionState.CREATING_THREAD

    @property
    def turns(self) -> list[Turn]:
        return self.timeline.turns

    @property
    def style_hint(self) -> str:
        return style_hint(self.style)

    def set_style(self, label: str) -> None:
        if label not in STYLE_PRESETS:
            raise ValueError(f"Unknown style preset {label!r}.")
        self.style = label

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Cold entry: resume the persisted thread only after verifying it."""
        thread_id = self.identity.resolve_thread()
        if thread_id:
            try:
                exists = await self.identity.verify(thread_id)
            except AuthRequiredError as exc:
                await self._notify_error("Not authenticated", exc)
                return
            if not exists and self.identity.last_outcome is VerifyOutcome.NOT_FOUND:
                LOGGER.info(
                    "session.start.stale_thread",
                    extra={"event": "session.start.stale_thread", "thread_id": thread_id},
                )
                self.identity.persist(None)
                thread_id = None
        await self.list_threads()
        if thread_id:
            await self.switch_thread(thread_id)

    async def close(self) -> None:
        """Release previews and close the API client."""
        self.attachments.discard()
        self._release_previews()
        await self.api.aclose()

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    async def list_threads(self) -> list[Thread]:
        """Refresh the cached thread list; soft failures yield an empty list."""
        try:
            threads = await self.api.list_threads()
        except WingmanChatError as exc:
            if exc.soft:
                threads = []
            else:
                await self._notify_error("Failed to load chat threads", exc)
                return list(self.threads)
        self.threads = threads
        await self.bus.publish(THREADS_CHANGED, {"count": len(threads)}, source="session")
        return list(self.threads)

    async def switch_thread(self, thread_id: str) -> None:
        """Point the session at ``thread_id`` and load its history."""
        generation = self._begin_generation(thread_id)
        self._loading_generation = generation
        await self.state_manager.transition_to(SessionState.LOADING_HISTORY)
        await self._publish_state()
        try:
            raw_turns = await self._load_history(thread_id)
        finally:
            if generation == self._loading_generation:
                await self.state_manager.transition_if(
                    SessionState.LOADING_HISTORY, SessionState.IDLE
                )
                await self._publish_state()

        if generation != self._generation:
            LOGGER.info(
                "session.history.discarded",
                extra={"event": "session.history.discarded", "thread_id": thread_id},
            )
            return
        if raw_turns is None:
            return
        self.timeline.hydrate(raw_turns, thread_id)
        await self._publish_timeline()

    async def new_thread(self) -> str | None:
        """Create an empty thread and make it current; no-op unless idle."""
        if not await self.state_manager.transition_if(
            SessionState.IDLE, SessionState.CREATING_THREAD
        ):
            LOGGER.debug(
                "session.new_thread.ignored",
                extra={"event": "session.new_thread.ignored", "state": self.state.value},
            )
            return None
        await self._publish_state()
        try:
            thread_id = await self.api.create_thread(self.new_thread_title)
        except WingmanChatError as exc:
            await self._notify_error("Failed to create a new chat", exc)
            return None
        finally:
            await self.state_manager.transition_if(
                SessionState.CREATING_THREAD, SessionState.IDLE
            )
            await self._publish_state()

        self._begin_generation(thread_id)
        self.threads = [
            Thread(id=thread_id, title=self.new_thread_title, updated_at=utc_now())
        ] + [thread for thread in self.threads if thread.id != thread_id]
        await self.bus.publish(THREADS_CHANGED, {"count": len(self.threads)}, source="session")
        await self._publish_timeline()
        return thread_id

    async def delete_thread(self, thread_id: str) -> None:
        """Delete a thread remotely; local state changes only on success.

        Raises:
            WingmanChatError: the remote failure, after it has been notified.
        """
        try:
            await self.api.delete_thread(thread_id)
        except WingmanChatError as exc:
            await self._notify_error("Failed to delete chat", exc)
            raise

        self.threads = [thread for thread in self.threads if thread.id != thread_id]
        await self.bus.publish(THREADS_CHANGED, {"count": len(self.threads)}, source="session")
        if thread_id == self._current_thread_id:
            self._begin_generation(None)
            await self._publish_timeline()
        LOGGER.info(
            "session.thread.deleted",
            extra={"event": "session.thread.deleted", "thread_id": thread_id},
        )

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def attach_image(self, path: str | Path) -> PendingAttachment | None:
        """Select an image for the next send; failures are notified."""
        try:
            source = AttachmentSource.from_path(path)
            return await self.attachments.select(source)
        except AttachmentRejectedError as exc:
            await self._notify_error("Invalid image", exc, title="Invalid file")
        except WingmanChatError as exc:
            await self._notify_error("Failed to process image", exc)
        return None

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(self, text: str | None = None) -> SendOutcome:
        """Send the draft (or ``text``) plus any pending image.

        The pending image leaves the attachment slot as soon as the send
        starts.  The user turn is inserted optimistically and stays in the
        timeline even when the remote call fails; only the reply is missing
        then.  When no thread can be obtained nothing is inserted, and the
        draft and image are handed back.
        """
        message = self.draft if text is None else text
        if not message.strip() and self.attachments.pending is None:
            return SendOutcome.REJECTED
        if not await self.state_manager.transition_if(SessionState.IDLE, SessionState.SENDING):
            LOGGER.debug(
                "session.send.busy",
                extra={"event": "session.send.busy", "state": self.state.value},
            )
            return SendOutcome.REJECTED
        pending = self.attachments.take()
        await self._publish_state()

        try:
            return await self._send(message, pending)
        finally:
            await self.state_manager.transition_if(SessionState.SENDING, SessionState.IDLE)
            await self._publish_state()

    async def _send(self, message: str, pending: PendingAttachment | None) -> SendOutcome:
        style = self.style_hint
        try:
            thread_id = await self._target_thread(style)
        except WingmanChatError as exc:
            self.draft = message
            if pending is not None:
                self.attachments.restore(pending)
            await self._notify_error("Failed to initialize chat thread", exc)
            return SendOutcome.FAILED

        generation = self._generation
        optimistic = Turn.optimistic(
            message,
            thread_id,
            image_ref=pending.preview.uri if pending is not None else None,
            now=self.clock(),
        )
        self.timeline.insert_optimistic(optimistic)
        if pending is not None:
            self._previews.append(pending.preview)
        self.draft = ""
        await self._publish_timeline()

        try:
            result = await self.api.send_message(
                message,
                style,
                thread_id=thread_id,
                image=pending.encoded if pending is not None else None,
            )
        except WingmanChatError as exc:
            error: WingmanChatError = exc
            if not isinstance(exc, (RemoteSendError, AuthRequiredError)):
                error = RemoteSendError(str(exc))
            LOGGER.warning(
                "session.send.failed",
                extra={"event": "session.send.failed", "thread_id": thread_id, "error": str(exc)},
            )
            await self._notify_error("Failed to send message", error)
            return SendOutcome.FAILED

        if generation != self._generation or self._current_thread_id != thread_id:
            LOGGER.info(
                "session.reply.discarded",
                extra={
                    "event": "session.reply.discarded",
                    "thread_id": result.thread_id or thread_id,
                    "current_thread_id": self._current_thread_id,
                },
            )
            return SendOutcome.SUCCEEDED

        if result.thread_id and result.thread_id != thread_id:
            self._rebind(result.thread_id)
        prompt_id = optimistic.id
        if result.user_turn_id and self.timeline.confirm(optimistic.id, result.user_turn_id):
            prompt_id = result.user_turn_id
        self.timeline.reconcile(result.reply, answers=prompt_id)
        LOGGER.info(
            "session.send.succeeded",
            extra={
                "event": "session.send.succeeded",
                "thread_id": self._current_thread_id,
                "reply_id": result.reply.id,
            },
        )
        await self._publish_timeline()
        return SendOutcome.SUCCEEDED

    async def _target_thread(self, style: str) -> str:
        """Verified thread id for the next send, created when there is none."""
        thread_id = await self.identity.ensure_thread(style, self._current_thread_id)
        if thread_id != self._current_thread_id:
            self._rebind(thread_id)
        return thread_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin_generation(self, thread_id: str | None) -> int:
        """Make ``thread_id`` current with a fresh, empty timeline."""
        self._generation += 1
        self._current_thread_id = thread_id
        self.identity.persist(thread_id)
        self.timeline.clear(thread_id)
        self._release_previews()
        return self._generation

    def _rebind(self, thread_id: str) -> None:
        """Adopt a server-assigned id without discarding the visible turns."""
        LOGGER.info(
            "session.thread.rebound",
            extra={
                "event": "session.thread.rebound",
                "old_thread_id": self._current_thread_id,
                "new_thread_id": thread_id,
            },
        )
        self._current_thread_id = thread_id
        self.timeline.thread_id = thread_id
        self.identity.persist(thread_id)

    async def _load_history(self, thread_id: str) -> list[dict[str, Any]] | None:
        """Fetch raw history; ``None`` means keep the current (empty) log."""
        try:
            return await self.api.fetch_messages(thread_id)
        except ThreadNotFoundError:
            LOGGER.info(
                "session.history.not_found",
                extra={"event": "session.history.not_found", "thread_id": thread_id},
            )
            return []
        except WingmanChatError as exc:
            if exc.soft:
                return []
            await self._notify_error("Failed to load messages", exc)
            return None

    def _release_previews(self) -> None:
        for handle in self._previews:
            handle.release()
        self._previews = []

    async def _notify_error(
        self, message: str, error: Exception, *, title: str = "Error"
    ) -> None:
        LOGGER.warning(
            "session.notify.error",
            extra={"event": "session.notify.error", "summary": message, "error": str(error)},
        )
        detail = str(error).strip() or message
        await self.bus.publish(
            NOTIFICATION_ERROR,
            {
                "title": title,
                "message": detail,
                "summary": message,
                "error": error,
            },
            source="session",
        )

    async def _publish_timeline(self) -> None:
        await self.bus.publish(
            TIMELINE_CHANGED,
            {"thread_id": self._current_thread_id, "count": self.timeline.turn_count},
            source="session",
        )
        await self.bus.publish(
            THREAD_CHANGED, {"thread_id": self._current_thread_id}, source="session"
        )

    async def _publish_state(self) -> None:
        await self.bus.publish(STATE_CHANGED, {"state": self.state.value}, source="session")
