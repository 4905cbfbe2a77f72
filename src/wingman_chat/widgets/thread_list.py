"""Sidebar listing the user's chat threads."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from textual.containers import Vertical
from textual.message import Message
from textual.widgets import Button, OptionList, Static
from textual.widgets.option_list import Option

from ..models import Thread, parse_timestamp

INVALID_DATE = "Invalid date"


def format_thread_date(value: datetime | str | None) -> str:
    """Render ``Mar 4, 2025, 09:05 PM`` in local time, or ``Invalid date``."""
    moment = value if isinstance(value, datetime) else parse_timestamp(value)
    if moment is None:
        return INVALID_DATE
    local = moment.astimezone()
    return f"{local:%b} {local.day}, {local:%Y}, {local:%I:%M %p}"


class ThreadList(Vertical):
    """Selectable thread titles with their last update time."""

    DEFAULT_CSS = """
    ThreadList {
        width: 36;
        height: 1fr;
    }
    ThreadList > #thread_options {
        height: 1fr;
    }
    ThreadList > #threads_empty {
        color: $text-muted;
        padding: 1;
    }
    """

    class ThreadSelected(Message):
        def __init__(self, thread_id: str) -> None:
            super().__init__()
            self.thread_id = thread_id

    class NewThreadRequested(Message):
        """Posted when the New Chat button is pressed."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._thread_ids: list[str] = []

    def compose(self):  # type: ignore[override]
        yield Button("New Chat", id="new_thread_button", variant="primary")
        yield Static("No chats yet", id="threads_empty")
        yield OptionList(id="thread_options")

    @property
    def thread_ids(self) -> list[str]:
        return list(self._thread_ids)

    def set_threads(self, threads: Iterable[Thread], current_id: str | None) -> None:
        rows = list(threads)
        self._thread_ids = [thread.id for thread in rows]
        options = self.query_one("#thread_options", OptionList)
        options.clear_options()
        options.add_options(
            [
                Option(f"{thread.title}\n{format_thread_date(thread.updated_at)}", id=thread.id)
                for thread in rows
            ]
        )
        self.query_one("#threads_empty", Static).display = not rows
        if current_id in self._thread_ids:
            options.highlighted = self._thread_ids.index(current_id)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        index = event.option_index
        if 0 <= index < len(self._thread_ids):
            self.post_message(self.ThreadSelected(self._thread_ids[index]))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "new_thread_button":
            event.stop()
            self.post_message(self.NewThreadRequested())
