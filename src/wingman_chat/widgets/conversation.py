"""Scrollable conversation view widget."""

from __future__ import annotations

from collections.abc import Iterable

from textual.containers import VerticalScroll
from textual.widgets import Static

from ..models import Role, Turn
from .message import MessageBubble

EMPTY_STATE_TEXT = "No messages yet. Start the conversation below."


def format_turn_time(turn: Turn) -> str:
    return turn.timestamp.astimezone().strftime("%I:%M %p").lstrip("0")


class ConversationView(VerticalScroll):
    """A scrollable container that renders the timeline as message bubbles."""

    async def render_turns(self, turns: Iterable[Turn], style_label: str = "") -> int:
        """Replace every bubble with the given ordered turns and return the count."""
        await self.remove_children()
        rows = list(turns)
        if not rows:
            await self.mount(Static(EMPTY_STATE_TEXT, id="empty-state"))
            return 0
        bubbles = [
            MessageBubble(
                content=turn.text,
                role=turn.role.value,
                timestamp=format_turn_time(turn),
                style_label=style_label if turn.role is Role.ASSISTANT else "",
                image_ref=turn.image_ref,
                pending=turn.provisional,
                classes=f"message-{turn.role.value}",
            )
            for turn in rows
        ]
        await self.mount_all(bubbles)
        self.scroll_end(animate=False)
        return len(bubbles)
