"""Domain exception hierarchy for the wingman chat client.

Every error carries a ``soft`` flag.  Soft errors describe a benign
"no data yet" situation and are folded into an empty state without alerting
the user; hard errors are surfaced exactly once.
"""

from __future__ import annotations


class WingmanChatError(RuntimeError):
    """Base class for all domain-level chat errors."""

    soft: bool = False

    def __init__(self, message: str = "", *, soft: bool | None = None) -> None:
        super().__init__(message)
        if soft is not None:
            self.soft = soft


class ConfigValidationError(WingmanChatError):
    """Raised when configuration cannot be validated safely."""


class AuthRequiredError(WingmanChatError):
    """Raised when no bearer credential is available for a request."""


class ThreadNotFoundError(WingmanChatError):
    """Raised when the remote service reports a thread as missing."""

    soft = True


class ThreadCreationError(WingmanChatError):
    """Raised when the remote service does not mint a new thread id."""


class AttachmentRejectedError(WingmanChatError):
    """Raised when a selected file fails attachment validation."""


class AttachmentReadError(WingmanChatError):
    """Raised when an attachment cannot be read from disk."""


class RemoteSendError(WingmanChatError):
    """Raised when the remote send call fails."""


class RemoteListError(WingmanChatError):
    """Raised when the thread list cannot be fetched."""


class RemoteHistoryError(WingmanChatError):
    """Raised when a thread's message history cannot be fetched."""


class RemoteDeleteError(WingmanChatError):
    """Raised when a thread cannot be deleted remotely."""


class PayoutError(WingmanChatError):
    """Raised when a referral or payout request fails."""


class ThreadVerificationError(WingmanChatError):
    """Raised when a thread existence check fails for reasons other than not-found."""
