"""Status bar widget for session telemetry."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.widgets import Label, Static

STATE_LABELS = {
    "IDLE": "ready",
    "LOADING_HISTORY": "loading history...",
    "SENDING": "waiting for reply...",
    "CREATING_THREAD": "creating chat...",
}


class StatusBar(Static):
    """Render compact runtime status.

    Segments (left to right):
        ready  |  Chat: 3f9c...  |  Messages: 4
    """

    DEFAULT_CSS = """
    StatusBar {
        layout: horizontal;
        height: auto;
    }
    StatusBar Label {
        margin-right: 1;
    }
    """

    def compose(self) -> ComposeResult:
        yield Label("ready", id="status_state")
        yield Label("|", id="status_sep1")
        yield Label("Chat: new", id="status_thread")
        yield Label("|", id="status_sep2")
        yield Label("Messages: 0", id="status_messages")

    @staticmethod
    def _short_id(thread_id: str | None) -> str:
        if not thread_id:
            return "new"
        return thread_id if len(thread_id) <= 12 else f"{thread_id[:8]}..."

    def set_status(self, *, state: str, thread_id: str | None, message_count: int) -> None:
        self.query_one("#status_state", Label).update(STATE_LABELS.get(state, state.lower()))
        self.query_one("#status_thread", Label).update(f"Chat: {self._short_id(thread_id)}")
        self.query_one("#status_messages", Label).update(f"Messages: {message_count}")
