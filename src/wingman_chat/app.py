"""Main Textual application for the wingman chat client."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Input

from .api import ChatApiClient
from .attachments import AttachmentPipeline
from .auth import EnvTokenProvider, StaticTokenProvider, TokenProvider
from .config import load_config
from .events import (
    NOTIFICATION_ERROR,
    STATE_CHANGED,
    THREAD_CHANGED,
    THREADS_CHANGED,
    TIMELINE_CHANGED,
    Event,
    EventBus,
)
from .exceptions import WingmanChatError
from .identity import ThreadIdentityManager
from .logging_utils import configure_logging
from .models import Role
from .screens import ConfirmScreen, TextPromptScreen
from .session import SessionController
from .state import SessionState
from .storage import FileThreadIdStore
from .widgets.conversation import ConversationView
from .widgets.input_box import InputBox
from .widgets.status_bar import StatusBar
from .widgets.thread_list import ThreadList

LOGGER = logging.getLogger(__name__)


def build_token_provider(api_config: dict[str, Any]) -> TokenProvider:
    """A configured token wins over the environment variable."""
    token = str(api_config.get("token") or "").strip()
    if token:
        return StaticTokenProvider(token)
    return EnvTokenProvider(str(api_config.get("token_env_var", "WINGMAN_CHAT_TOKEN")))


def build_session(
    config: dict[str, dict[str, Any]], bus: EventBus | None = None
) -> SessionController:
    """Wire the API client, identity manager, and pipeline from config."""
    api = ChatApiClient.from_config(config["api"], build_token_provider(config["api"]))
    state_path = str(config["storage"].get("state_path") or "").strip()
    store = FileThreadIdStore(Path(state_path).expanduser() if state_path else None)
    identity = ThreadIdentityManager(
        api, store, bootstrap_message=str(config["chat"]["bootstrap_message"])
    )
    return SessionController(
        api,
        identity,
        attachments=AttachmentPipeline(
            max_bytes=int(config["attachments"]["max_image_bytes"])
        ),
        bus=bus or EventBus(),
        style=str(config["chat"]["default_style"]),
        new_thread_title=str(config["chat"]["new_thread_title"]),
    )


class WingmanChatApp(App[None]):
    """Terminal chat client for the wingman reply-suggestion service."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: horizontal;
        width: 100%;
        height: 1fr;
    }

    ThreadList {
        border-right: solid $panel;
        background: $surface;
    }

    ThreadList.hidden {
        display: none;
    }

    #main-column {
        width: 1fr;
        height: 1fr;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    InputBox {
        height: auto;
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }

    #input_row, #attachment_row {
        height: auto;
    }

    #style_select {
        width: 18;
    }

    #message_input {
        width: 1fr;
    }

    #attach_button, #send_button {
        margin-left: 1;
        min-width: 10;
    }

    #status_bar {
        height: auto;
        padding: 0 1;
        border-top: solid $panel;
        background: $surface;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    MessageBubble.pending {
        opacity: 0.7;
    }

    .message-user {
        align-horizontal: right;
        background: $primary;
    }

    .message-assistant {
        align-horizontal: left;
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "send_message": "Send",
        "new_thread": "New Chat",
        "delete_thread": "Delete Chat",
        "attach_image": "Image",
        "toggle_threads": "Chats",
        "copy_last_message": "Copy Last",
        "quit": "Quit",
    }

    def __init__(
        self,
        config: dict[str, dict[str, Any]] | None = None,
        session: SessionController | None = None,
    ) -> None:
        self.config = config or load_config()
        self.window_title = str(self.config["app"]["title"])
        configure_logging(self.config["logging"])
        LOGGER.info(
            "app.python",
            extra={
                "event": "app.python",
                "executable": sys.executable,
                "version": sys.version.split()[0],
            },
        )
        self.session = session or build_session(self.config)
        self._binding_specs = self._binding_specs_from_config(self.config)
        super().__init__()

        bus = self.session.bus
        bus.subscribe(NOTIFICATION_ERROR, self._on_error_notification)
        bus.subscribe(TIMELINE_CHANGED, self._on_timeline_changed)
        bus.subscribe(THREADS_CHANGED, self._on_threads_changed)
        bus.subscribe(THREAD_CHANGED, self._on_threads_changed)
        bus.subscribe(STATE_CHANGED, self._on_state_changed)

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name, description in cls.DEFAULT_ACTION_DESCRIPTIONS.items():
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=description,
                        show=True,
                    )
                )
        return bindings

    def compose(self) -> ComposeResult:
        yield Header(name=self.window_title)
        with Horizontal(id="app-root"):
            yield ThreadList(id="thread_list")
            with Vertical(id="main-column"):
                yield ConversationView(id="conversation")
                yield InputBox(style_label=self.session.style)
                yield StatusBar(id="status_bar")
        yield Footer()

    async def on_mount(self) -> None:
        self.title = self.window_title
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
            )
        await self._render_timeline()
        self._update_status_bar()
        self.run_worker(self.session.start(), group="session", exclusive=False)

    async def on_unmount(self) -> None:
        await self.session.close()

    # ------------------------------------------------------------------
    # Session events
    # ------------------------------------------------------------------

    def _on_error_notification(self, event: Event) -> None:
        self.notify(
            str(event.data.get("message", "Something went wrong")),
            title=str(event.data.get("title", "Error")),
            severity="error",
        )

    async def _on_timeline_changed(self, _event: Event) -> None:
        await self._render_timeline()
        self._update_status_bar()

    def _on_threads_changed(self, _event: Event) -> None:
        self.query_one(ThreadList).set_threads(
            self.session.threads, self.session.current_thread_id
        )

    def _on_state_changed(self, _event: Event) -> None:
        busy = self.session.state is not SessionState.IDLE
        self.query_one("#send_button", Button).disabled = busy
        self._update_status_bar()

    async def _render_timeline(self) -> None:
        conversation = self.query_one(ConversationView)
        await conversation.render_turns(self.session.turns, style_label=self.session.style)

    def _update_status_bar(self) -> None:
        self.query_one(StatusBar).set_status(
            state=self.session.state.value,
            thread_id=self.session.current_thread_id,
            message_count=self.session.timeline.turn_count,
        )

    def _update_attachment_label(self) -> None:
        pending = self.session.attachments.pending
        self.query_one(InputBox).set_attachment(pending.source.name if pending else None)

    # ------------------------------------------------------------------
    # Widget messages
    # ------------------------------------------------------------------

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "message_input":
            await self.action_send_message()

    def on_input_changed(self, event: Input.Changed) -> None:
        # Clearing the box for a send must not wipe a draft the send hands back.
        if event.input.id == "message_input" and not self.session.is_sending:
            self.session.draft = event.value

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send_button":
            await self.action_send_message()

    async def on_input_box_attach_requested(self, _message: InputBox.AttachRequested) -> None:
        await self.action_attach_image()

    def on_input_box_style_changed(self, message: InputBox.StyleChanged) -> None:
        self.session.set_style(message.label)

    def on_thread_list_thread_selected(self, message: ThreadList.ThreadSelected) -> None:
        if message.thread_id == self.session.current_thread_id:
            return
        self.run_worker(
            self.session.switch_thread(message.thread_id), group="history", exclusive=False
        )

    async def on_thread_list_new_thread_requested(
        self, _message: ThreadList.NewThreadRequested
    ) -> None:
        await self.action_new_thread()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def action_send_message(self) -> None:
        input_widget = self.query_one("#message_input", Input)
        self.session.draft = input_widget.value
        if not self.session.draft.strip() and self.session.attachments.pending is None:
            return
        if self.session.state is not SessionState.IDLE:
            self.notify("Wait for the current reply first.", severity="warning")
            return
        input_widget.value = ""
        self.query_one(InputBox).set_attachment(None)
        self.run_worker(self._send_draft(self.session.draft), group="send", exclusive=False)

    async def _send_draft(self, text: str) -> None:
        await self.session.send(text)
        input_widget = self.query_one("#message_input", Input)
        if self.session.draft and not input_widget.value:
            input_widget.value = self.session.draft
        self._update_attachment_label()

    async def action_new_thread(self) -> None:
        self.run_worker(self.session.new_thread(), group="threads", exclusive=False)

    def action_delete_thread(self) -> None:
        thread_id = self.session.current_thread_id
        if not thread_id:
            self.notify("No chat selected.", severity="warning")
            return

        def _confirmed(accepted: bool | None) -> None:
            if accepted:
                self.run_worker(
                    self._delete_thread(thread_id), group="threads", exclusive=False
                )

        self.push_screen(ConfirmScreen("Delete this chat? This cannot be undone."), _confirmed)

    async def _delete_thread(self, thread_id: str) -> None:
        try:
            await self.session.delete_thread(thread_id)
        except WingmanChatError:
            # Already notified by the session.
            return
        self.notify("Chat deleted.")

    async def action_attach_image(self) -> None:
        def _picked(path: str | None) -> None:
            if not path:
                return
            self.run_worker(self._attach(path), group="attach", exclusive=True)

        self.push_screen(
            TextPromptScreen("Attach image", placeholder="/path/to/screenshot.png"),
            _picked,
        )

    async def _attach(self, path: str) -> None:
        await self.session.attach_image(path)
        self._update_attachment_label()

    def action_toggle_threads(self) -> None:
        self.query_one(ThreadList).toggle_class("hidden")

    async def action_copy_last_message(self) -> None:
        """Copy the latest assistant reply to the clipboard."""
        latest = self.session.timeline.latest(Role.ASSISTANT)
        if latest is None or not latest.text.strip():
            self.notify("No reply to copy yet.", severity="warning")
            return
        self.copy_to_clipboard(latest.text)
        self.notify("Reply copied to clipboard.")

    async def action_quit(self) -> None:
        self.exit()
