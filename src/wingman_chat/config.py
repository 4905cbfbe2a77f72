"""Configuration loading and validation for the wingman chat TUI."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
import tomllib
from typing import Any
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .attachments import MAX_IMAGE_BYTES
from .exceptions import ConfigValidationError
from .identity import BOOTSTRAP_MESSAGE
from .models import DEFAULT_STYLE, STYLE_PRESETS

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "wingman-chat"
CONFIG_PATH = CONFIG_DIR / "config.toml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


def _require_text(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    normalized = value.strip()
    if not normalized:
        raise ValueError("String value must not be empty.")
    return normalized


def _optional_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    return value.strip()


class AppConfig(BaseModel):
    """Application metadata and terminal integration options."""

    model_config = ConfigDict(populate_by_name=True)
    title: str = "Wingman Chat"
    window_class: str = Field(default="wingman-chat", alias="class")

    @field_validator("title", "window_class", mode="before")
    @classmethod
    def _validate_non_empty_string(cls, value: Any) -> str:
        return _require_text(value)


class ApiConfig(BaseModel):
    """Remote chat service endpoint and credentials."""

    base_url: str = "http://localhost:3000/api"
    timeout: int = Field(default=30, ge=1, le=600)
    retries: int = Field(default=2, ge=0, le=10)
    retry_backoff_seconds: float = Field(default=0.5, ge=0, le=30)
    token_env_var: str = "WINGMAN_CHAT_TOKEN"
    token: str = ""

    @field_validator("base_url", "token_env_var", mode="before")
    @classmethod
    def _validate_required_string(cls, value: Any) -> str:
        return _require_text(value)

    @field_validator("token", mode="before")
    @classmethod
    def _normalize_token(cls, value: Any) -> str:
        return _optional_text(value)


class ChatConfig(BaseModel):
    """Conversation defaults."""

    default_style: str = DEFAULT_STYLE
    bootstrap_message: str = BOOTSTRAP_MESSAGE
    new_thread_title: str = "New Chat"

    @field_validator("default_style", mode="before")
    @classmethod
    def _validate_style(cls, value: Any) -> str:
        normalized = _require_text(value)
        for label in STYLE_PRESETS:
            if label.lower() == normalized.lower():
                return label
        raise ValueError(
            f"default_style must be one of {', '.join(STYLE_PRESETS)}."
        )

    @field_validator("bootstrap_message", "new_thread_title", mode="before")
    @classmethod
    def _validate_text(cls, value: Any) -> str:
        return _require_text(value)


class AttachmentsConfig(BaseModel):
    max_image_bytes: int = Field(default=MAX_IMAGE_BYTES, ge=1, le=MAX_IMAGE_BYTES)


class StorageConfig(BaseModel):
    """Where the current thread id is kept between sessions."""

    state_path: str = ""

    @field_validator("state_path", mode="before")
    @classmethod
    def _normalize_path(cls, value: Any) -> str:
        return _optional_text(value)


class KeybindsConfig(BaseModel):
    """Key for each app action; see ``WingmanChatApp.DEFAULT_ACTION_DESCRIPTIONS``."""

    send_message: str = "ctrl+enter"
    new_thread: str = "ctrl+n"
    delete_thread: str = "ctrl+d"
    attach_image: str = "ctrl+o"
    toggle_threads: str = "ctrl+b"
    copy_last_message: str = "ctrl+y"
    quit: str = "ctrl+q"

    @field_validator("*", mode="before")
    @classmethod
    def _strip_key(cls, value: Any) -> str:
        return _require_text(value)


class SecurityConfig(BaseModel):
    """Transport policy for the remote service."""

    allow_insecure_http: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/wingman-chat/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        level = _require_text(value).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}.")
        return level

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _require_path(cls, value: Any) -> str:
        return _require_text(value)


def _check_base_url(base_url: str, allow_insecure_http: bool) -> None:
    """Reject non-web schemes and plain http to anything but this machine."""
    parsed = urlparse(base_url)
    if parsed.scheme.lower() not in ("http", "https"):
        raise ValueError("api.base_url must use http or https scheme.")
    host = (parsed.hostname or "").lower()
    if not host:
        raise ValueError("api.base_url must include a hostname.")
    if parsed.scheme.lower() == "http" and host not in LOCAL_HOSTS and not allow_insecure_http:
        raise ValueError(
            f"api.base_url points at {host} over plain http; "
            "set security.allow_insecure_http to permit it."
        )


class Config(BaseModel):
    """Every ``config.toml`` table, keyed by its table name."""

    model_config = ConfigDict(populate_by_name=True)
    app: AppConfig = AppConfig()
    api: ApiConfig = ApiConfig()
    chat: ChatConfig = ChatConfig()
    attachments: AttachmentsConfig = AttachmentsConfig()
    storage: StorageConfig = StorageConfig()
    keybinds: KeybindsConfig = KeybindsConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _validate_transport_policy(self) -> Config:
        _check_base_url(self.api.base_url, self.security.allow_insecure_http)
        return self


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(by_alias=True)


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Create the config directory if needed and return it."""
    target = config_dir or CONFIG_DIR
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning(
            "config.dir_unavailable",
            extra={"event": "config.dir_unavailable", "path": str(target), "error": str(exc)},
        )
    return target


def _overlay(defaults: dict[str, Any], user: dict[str, Any]) -> dict[str, Any]:
    """Return ``defaults`` with the user's tables laid over it, key by key."""
    result = deepcopy(defaults)
    for name, value in user.items():
        current = result.get(name)
        result[name] = (
            _overlay(current, value)
            if isinstance(current, dict) and isinstance(value, dict)
            else value
        )
    return result


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse ``path``; a missing or broken file reads as an empty table."""
    if not path.is_file():
        return {}
    # The file may hold an API token.
    if os.name == "posix":
        try:
            path.chmod(0o600)
        except OSError as exc:
            LOGGER.warning(
                "config.chmod_failed",
                extra={"event": "config.chmod_failed", "path": str(path), "error": str(exc)},
            )
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        LOGGER.warning(
            "config.parse_failed",
            extra={"event": "config.parse_failed", "path": str(path), "error": str(exc)},
        )
        return {}


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """Load ``config.toml`` over the defaults.

    A file that fails validation is ignored as a whole and the defaults are
    returned, so one bad value never leaves a half-applied config.
    """
    path = config_path or CONFIG_PATH
    ensure_config_dir(path.parent)
    merged = _overlay(DEFAULT_CONFIG, _read_toml(path))
    try:
        return Config.model_validate(merged).model_dump(by_alias=True)
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "path": str(path), "errors": exc.error_count()},
        )
        LOGGER.debug(
            "config.invalid.detail",
            extra={"event": "config.invalid.detail", "detail": str(exc)},
        )
        return deepcopy(DEFAULT_CONFIG)
    except (TypeError, ValueError) as exc:
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc
