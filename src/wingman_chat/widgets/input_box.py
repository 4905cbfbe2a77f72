"""Input row containing the message field, style selector, and action buttons."""

from __future__ import annotations

from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input, Label, Select

from ..models import DEFAULT_STYLE, STYLE_PRESETS


class InputBox(Vertical):
    """Input region with message field, style selector, image and send buttons."""

    class AttachRequested(Message):
        """Posted when the user clicks the image button."""

    class StyleChanged(Message):
        def __init__(self, label: str) -> None:
            super().__init__()
            self.label = label

    def __init__(self, style_label: str = DEFAULT_STYLE, **kwargs) -> None:
        super().__init__(**kwargs)
        self._initial_style = style_label if style_label in STYLE_PRESETS else DEFAULT_STYLE

    def compose(self):  # type: ignore[override]
        with Horizontal(id="attachment_row"):
            yield Label("", id="attachment_label")
        with Horizontal(id="input_row"):
            yield Select(
                [(label, label) for label in STYLE_PRESETS],
                value=self._initial_style,
                allow_blank=False,
                id="style_select",
            )
            yield Input(placeholder="Type your message...", id="message_input")
            yield Button("Image", id="attach_button", variant="default")
            yield Button("Send", id="send_button", variant="success")

    def set_attachment(self, name: str | None) -> None:
        label = self.query_one("#attachment_label", Label)
        label.update(f"Attached: {name}" if name else "")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "attach_button":
            event.stop()
            self.post_message(self.AttachRequested())

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "style_select":
            return
        event.stop()
        if isinstance(event.value, str):
            self.post_message(self.StyleChanged(event.value))
