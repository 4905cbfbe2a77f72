"""Top-level package for wingman-chat."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .api import ChatApiClient
    from .app import WingmanChatApp
    from .config import ensure_config_dir, load_config
    from .exceptions import (
        AuthRequiredError,
        ConfigValidationError,
        ThreadNotFoundError,
        WingmanChatError,
    )
    from .identity import ThreadIdentityManager
    from .session import SessionController
    from .timeline import MessageTimeline

__all__ = [
    "AuthRequiredError",
    "ChatApiClient",
    "ConfigValidationError",
    "MessageTimeline",
    "SessionController",
    "ThreadIdentityManager",
    "ThreadNotFoundError",
    "WingmanChatApp",
    "WingmanChatError",
    "ensure_config_dir",
    "load_config",
]

_EXPORTS: dict[str, str] = {
    "AuthRequiredError": ".exceptions",
    "ChatApiClient": ".api",
    "ConfigValidationError": ".exceptions",
    "MessageTimeline": ".timeline",
    "SessionController": ".session",
    "ThreadIdentityManager": ".identity",
    "ThreadNotFoundError": ".exceptions",
    "WingmanChatApp": ".app",
    "WingmanChatError": ".exceptions",
    "ensure_config_dir": ".config",
    "load_config": ".config",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols so the engine imports without loading Textual."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(module_name, __name__), name)
