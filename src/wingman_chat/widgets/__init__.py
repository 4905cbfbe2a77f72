"""Widget exports for wingman_chat UI."""

from .conversation import ConversationView
from .input_box import InputBox
from .message import MessageBubble
from .status_bar import StatusBar
from .thread_list import ThreadList, format_thread_date

__all__ = [
    "ConversationView",
    "InputBox",
    "MessageBubble",
    "StatusBar",
    "ThreadList",
    "format_thread_date",
]
