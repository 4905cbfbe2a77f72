"""Message bubble widget for conversation rendering."""

from __future__ import annotations

from typing import Any

from rich.markdown import Markdown
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static


class MessageBubble(Vertical):
    """Render one turn: a role header, optional image reference, and Markdown body."""

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > #header-block {
        padding: 0;
    }
    MessageBubble > #image-block {
        color: $text-muted;
        padding: 0 1;
        border-left: solid $panel;
    }
    MessageBubble > #content-block {
        height: auto;
    }
    """

    def __init__(
        self,
        content: str,
        role: str,
        timestamp: str = "",
        style_label: str = "",
        image_ref: str | None = None,
        pending: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.message_content = content
        self.role = role
        self.timestamp = timestamp
        self.style_label = style_label
        self.image_ref = image_ref
        self.pending = pending
        self.add_class(f"role-{role}")
        if pending:
            self.add_class("pending")
        self._content_widget: Static | None = None

    @property
    def role_prefix(self) -> str:
        return "You" if self.role == "user" else "Wingman"

    def _compose_header(self) -> str:
        header = f"**{self.role_prefix}**"
        if self.role != "user" and self.style_label:
            header += f" · {self.style_label}"
        if self.timestamp:
            header += f"  _{self.timestamp}_"
        return header

    def compose(self) -> ComposeResult:
        yield Static(Markdown(self._compose_header()), id="header-block")
        if self.image_ref:
            yield Static(Text(f"[image] {self.image_ref}", style="dim"), id="image-block")
        self._content_widget = Static("", id="content-block")
        yield self._content_widget

    def on_mount(self) -> None:
        self._refresh_content()

    def _refresh_content(self) -> None:
        if self._content_widget is None:
            return
        text = self.message_content.rstrip()
        self._content_widget.update(Markdown(text) if text else "")

    def set_content(self, content: str) -> None:
        self.message_content = content
        self._refresh_content()
