"""Image attachment validation, encoding, and preview handling.

Only one attachment may be pending at a time; selecting a new file releases
the preview of the one it supersedes.
"""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
import logging
import mimetypes
import os
from pathlib import Path
import shutil
import tempfile

from .exceptions import AttachmentReadError, AttachmentRejectedError

LOGGER = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 20 * 1024 * 1024  # 20 MiB


@dataclass(frozen=True)
class AttachmentSource:
    """A user-selected file with its declared media type and size."""

    path: Path
    media_type: str
    size: int

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: str | Path, media_type: str | None = None) -> AttachmentSource:
        """Describe a file on disk, guessing the media type from its name."""
        resolved = Path(path).expanduser()
        try:
            if not resolved.is_file():
                raise AttachmentReadError(f"Not a file: {path}")
            size = resolved.stat().st_size
        except OSError as exc:
            raise AttachmentReadError(f"Unable to read {path}: {exc}") from exc
        declared = media_type or mimetypes.guess_type(resolved.name)[0] or ""
        return cls(path=resolved, media_type=declared, size=size)


@dataclass(frozen=True)
class Validation:
    """Outcome of attachment validation; ``reason`` is user-facing."""

    ok: bool
    reason: str = ""


@dataclass(frozen=True)
class EncodedAttachment:
    """Transport-ready base64 payload."""

    payload: str
    media_type: str


class PreviewHandle:
    """Ephemeral local copy of an image for immediate display."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    def release(self) -> None:
        """Delete the preview copy; safe to call more than once."""
        if self._released:
            return
        self._released = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning(
                "attachment.preview.release_failed",
                extra={
                    "event": "attachment.preview.release_failed",
                    "path": str(self.path),
                    "error": str(exc),
                },
            )


@dataclass
class PendingAttachment:
    """An attachment validated, encoded, and previewed, waiting to be sent."""

    source: AttachmentSource
    encoded: EncodedAttachment
    preview: PreviewHandle


class AttachmentPipeline:
    """Validate, encode, and preview user-selected images."""

    def __init__(
        self,
        *,
        max_bytes: int = MAX_IMAGE_BYTES,
        preview_dir: str | Path | None = None,
    ) -> None:
        self.max_bytes = max_bytes
        self.preview_dir = Path(preview_dir) if preview_dir is not None else None
        self._pending: PendingAttachment | None = None

    @property
    def pending(self) -> PendingAttachment | None:
        return self._pending

    def validate(self, source: AttachmentSource) -> Validation:
        """Check media type and size against the attachment policy."""
        if not source.media_type.lower().startswith("image/"):
            return Validation(
                False, "Please upload an image file (JPEG, PNG, GIF, WEBP)"
            )
        if source.size > self.max_bytes:
            max_mb = self.max_bytes / (1024 * 1024)
            return Validation(False, f"Maximum image size is {max_mb:.0f}MB")
        return Validation(True)

    async def encode(self, source: AttachmentSource) -> EncodedAttachment:
        """Read the whole file off the event loop and base64-encode it."""
        try:
            raw = await asyncio.to_thread(source.path.read_bytes)
        except OSError as exc:
            raise AttachmentReadError(f"Failed to process image: {exc}") from exc
        return EncodedAttachment(
            payload=base64.b64encode(raw).decode("ascii"),
            media_type=source.media_type,
        )

    def preview(self, source: AttachmentSource) -> PreviewHandle:
        """Copy the image to a private temporary file and return its handle."""
        suffix = source.path.suffix or ".img"
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix="wingman-preview-",
                suffix=suffix,
                dir=str(self.preview_dir) if self.preview_dir else None,
            )
            os.close(fd)
            shutil.copyfile(source.path, temp_name)
        except OSError as exc:
            raise AttachmentReadError(f"Failed to process image: {exc}") from exc
        return PreviewHandle(Path(temp_name))

    async def select(self, source: AttachmentSource) -> PendingAttachment:
        """Make ``source`` the pending attachment, superseding any previous one.

        Raises:
            AttachmentRejectedError: when validation fails; the previous
                pending attachment is left untouched.
            AttachmentReadError: when the file cannot be read.
        """
        verdict = self.validate(source)
        if not verdict.ok:
            LOGGER.info(
                "attachment.rejected",
                extra={"event": "attachment.rejected", "reason": verdict.reason},
            )
            raise AttachmentRejectedError(verdict.reason)

        encoded = await self.encode(source)
        preview = self.preview(source)
        self.discard()
        self._pending = PendingAttachment(source=source, encoded=encoded, preview=preview)
        LOGGER.info(
            "attachment.selected",
            extra={
                "event": "attachment.selected",
                "media_type": source.media_type,
                "size": source.size,
            },
        )
        return self._pending

    def take(self) -> PendingAttachment | None:
        """Hand the pending attachment to a send and empty the slot.

        The preview is not released; the caller owns it from here on.
        """
        pending, self._pending = self._pending, None
        return pending

    def restore(self, pending: PendingAttachment) -> None:
        """Put back an attachment whose send never started.

        A newer selection wins; the returned one is then released.
        """
        if self._pending is None:
            self._pending = pending
        else:
            pending.preview.release()

    def discard(self) -> None:
        """Drop the pending attachment and release its preview."""
        if self._pending is not None:
            self._pending.preview.release()
            self._pending = None
