"""Canonical thread, turn, and content types shared by the session engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Union
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

PROVISIONAL_PREFIX = "msg-local-"


class Role(str, Enum):
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def from_wire(cls, value: Any) -> Role:
        """Map a remote role string; anything that is not ``user`` is the assistant."""
        if isinstance(value, str) and value.strip().lower() == "user":
            return cls.USER
        return cls.ASSISTANT


@dataclass(frozen=True)
class PlainText:
    """Turn content delivered as a bare string."""

    text: str


@dataclass(frozen=True)
class StructuredText:
    """Turn content delivered as an envelope with a textual payload."""

    text: str
    extra: dict[str, Any] = field(default_factory=dict)


Content = Union[PlainText, StructuredText]


def parse_content(raw: Any) -> Content:
    """Classify remote content as plain text or a structured envelope.

    Envelopes carry their text under ``content`` (or ``text``).  Anything that
    cannot be read either way degrades to empty plain text.
    """
    if isinstance(raw, str):
        return PlainText(raw)
    if isinstance(raw, dict):
        for key in ("content", "text"):
            value = raw.get(key)
            if isinstance(value, str):
                extra = {k: v for k, v in raw.items() if k != key}
                return StructuredText(value, extra)
    LOGGER.debug(
        "content.unparseable",
        extra={"event": "content.unparseable", "kind": type(raw).__name__},
    )
    return PlainText("")


def normalize_content(raw: Any) -> str:
    """Return the textual payload of remote content."""
    return parse_content(raw).text


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def new_provisional_id() -> str:
    return f"{PROVISIONAL_PREFIX}{uuid4().hex}"


@dataclass(frozen=True)
class Turn:
    """A single user or assistant message in a thread."""

    id: str
    role: Role
    text: str
    timestamp: datetime
    image_ref: str | None = None
    thread_id: str | None = None
    provisional: bool = False

    @property
    def sort_key(self) -> tuple[datetime, int]:
        """Total order: by time, and a user turn before an assistant turn at the same time."""
        return (self.timestamp, 0 if self.role is Role.USER else 1)

    @classmethod
    def from_wire(cls, payload: dict[str, Any], thread_id: str | None = None) -> Turn:
        """Build a canonical turn from a remote message payload."""
        raw_id = payload.get("id")
        turn_id = str(raw_id) if raw_id not in (None, "") else new_provisional_id()
        timestamp = parse_timestamp(payload.get("timestamp")) or utc_now()
        image_ref = payload.get("imageUrl")
        return cls(
            id=turn_id,
            role=Role.from_wire(payload.get("role")),
            text=normalize_content(payload.get("content")),
            timestamp=timestamp,
            image_ref=image_ref if isinstance(image_ref, str) else None,
            thread_id=thread_id,
        )

    @classmethod
    def optimistic(
        cls,
        text: str,
        thread_id: str | None,
        image_ref: str | None = None,
        now: datetime | None = None,
    ) -> Turn:
        """Build a locally-originated user turn stamped with the client clock."""
        return cls(
            id=new_provisional_id(),
            role=Role.USER,
            text=text,
            timestamp=now or utc_now(),
            image_ref=image_ref,
            thread_id=thread_id,
            provisional=True,
        )

    def confirmed(self, server_id: str) -> Turn:
        """Return this turn rebound to its server-assigned id."""
        return replace(self, id=server_id, provisional=False)


@dataclass(frozen=True)
class Thread:
    """Cached summary of a remote thread for display."""

    id: str
    title: str
    updated_at: datetime | None = None

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> Thread | None:
        raw_id = payload.get("id")
        if raw_id in (None, ""):
            return None
        title = payload.get("title")
        return cls(
            id=str(raw_id),
            title=title.strip() if isinstance(title, str) and title.strip() else "Untitled",
            updated_at=parse_timestamp(payload.get("updatedAt")),
        )


@dataclass(frozen=True)
class SendResult:
    """Normalized reply from the remote send operation."""

    reply: Turn
    thread_id: str | None
    user_turn_id: str | None = None


STYLE_PRESETS: dict[str, str] = {
    "Confident": "confident",
    "Flirty": "flirty",
    "Funny": "funny",
    "Chill": "smooth",
}
DEFAULT_STYLE = "Confident"


def style_hint(label: str) -> str:
    """Map a preset label to the wire value, falling back to ``confident``."""
    return STYLE_PRESETS.get(label, STYLE_PRESETS[DEFAULT_STYLE])
