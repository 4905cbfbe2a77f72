"""Durable single-slot storage for the current thread id."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from platformdirs import user_state_path

LOGGER = logging.getLogger(__name__)

APP_NAME = "wingman-chat"
STORAGE_KEY = "currentThreadId"


def default_state_path() -> Path:
    """Return the default location of the client state file."""
    return user_state_path(APP_NAME, appauthor=False) / "state.json"


class ThreadIdStore(Protocol):
    """Read/write/clear access to one persisted string."""

    def read(self) -> str | None: ...

    def write(self, value: str) -> None: ...

    def clear(self) -> None: ...


class MemoryThreadIdStore:
    """Process-local store, used when durable storage is unwanted."""

    def __init__(self, value: str | None = None) -> None:
        self._value = value

    def read(self) -> str | None:
        return self._value

    def write(self, value: str) -> None:
        self._value = value

    def clear(self) -> None:
        self._value = None


class FileThreadIdStore:
    """Persist the thread id under a fixed key in a private JSON file.

    Unreadable or malformed state reads as "no id" so the client can always
    start fresh.  Other keys already in the file are preserved on write.
    """

    def __init__(self, path: str | Path | None = None, key: str = STORAGE_KEY) -> None:
        self.path = Path(path).expanduser() if path is not None else default_state_path()
        self.key = key

    def _enforce_private_permissions(self) -> None:
        if os.name != "posix":
            return
        try:
            self.path.chmod(0o600)
        except OSError:
            LOGGER.warning("Unable to enforce 0600 permissions for %s", self.path)

    def _read_payload(self) -> dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning(
                "storage.read_failed",
                extra={"event": "storage.read_failed", "path": str(self.path), "error": str(exc)},
            )
            return {}
        return payload if isinstance(payload, dict) else {}

    def _write_payload(self, payload: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )
        self._enforce_private_permissions()

    def read(self) -> str | None:
        value = self._read_payload().get(self.key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def write(self, value: str) -> None:
        payload = self._read_payload()
        payload[self.key] = value
        self._write_payload(payload)

    def clear(self) -> None:
        payload = self._read_payload()
        if self.key not in payload:
            return
        payload.pop(self.key, None)
        self._write_payload(payload)
