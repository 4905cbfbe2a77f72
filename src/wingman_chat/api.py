"""Async HTTP client for the remote chat API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from .auth import TokenProvider, resolve_token
from .exceptions import (
    AuthRequiredError,
    RemoteDeleteError,
    RemoteHistoryError,
    RemoteListError,
    RemoteSendError,
    ThreadCreationError,
    ThreadNotFoundError,
    ThreadVerificationError,
    WingmanChatError,
)
from .models import SendResult, Thread, Turn

if TYPE_CHECKING:
    from .attachments import EncodedAttachment

LOGGER = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.NetworkError,
)


def error_message(response: httpx.Response, default: str) -> str:
    """Extract ``message``/``error`` from a JSON error body."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


def _json_dict(response: httpx.Response, error_cls: type[WingmanChatError], default: str) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise error_cls(f"{default}: invalid JSON response") from exc
    if not isinstance(body, dict):
        raise error_cls(f"{default}: unexpected response shape")
    return body


def _user_turn_id(body: dict[str, Any]) -> str | None:
    """Server id of the user turn, when the service echoes it."""
    raw = body.get("userMessageId")
    if raw in (None, ""):
        echoed = body.get("userMessage")
        raw = echoed.get("id") if isinstance(echoed, dict) else None
    return str(raw) if raw not in (None, "") else None


class ApiTransport:
    """Authenticated request helper shared by the chat and payout clients.

    Idempotent reads are retried on transport failures with a linear
    backoff; writes are attempted once.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        *,
        timeout: float = 30,
        retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.retries = max(0, retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        error_cls: type[WingmanChatError],
        json: dict[str, Any] | None = None,
        idempotent: bool = False,
    ) -> httpx.Response:
        """Send one authenticated request, mapping failures to ``error_cls``."""
        token = await resolve_token(self.token_provider)
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        attempts = self.retries + 1 if idempotent else 1
        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, path, json=json, headers=headers
                )
                break
            except _TRANSPORT_ERRORS as exc:
                mapped = error_cls(f"Connection error: {exc}")
                if attempt >= attempts - 1:
                    raise mapped from exc
                LOGGER.warning(
                    "api.request.retry",
                    extra={
                        "event": "api.request.retry",
                        "method": method,
                        "path": path,
                        "attempt": attempt + 1,
                        "error": str(exc),
                    },
                )
                await asyncio.sleep(self.retry_backoff_seconds * (attempt + 1))
            except httpx.HTTPError as exc:
                raise error_cls(f"Request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthRequiredError(error_message(response, "Not authenticated"))
        LOGGER.debug(
            "api.request.done",
            extra={
                "event": "api.request.done",
                "method": method,
                "path": path,
                "status": response.status_code,
            },
        )
        return response


class ChatApiClient:
    """Typed wrapper over the ``/chat`` endpoints."""

    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    @classmethod
    def from_config(
        cls,
        api_config: dict[str, Any],
        token_provider: TokenProvider,
        client: httpx.AsyncClient | None = None,
    ) -> ChatApiClient:
        transport = ApiTransport(
            str(api_config.get("base_url", "http://localhost:3000/api")),
            token_provider,
            timeout=float(api_config.get("timeout", 30)),
            retries=int(api_config.get("retries", 2)),
            retry_backoff_seconds=float(api_config.get("retry_backoff_seconds", 0.5)),
            client=client,
        )
        return cls(transport)

    async def aclose(self) -> None:
        await self.transport.aclose()

    @staticmethod
    def _thread_path(thread_id: str, suffix: str = "") -> str:
        return f"/chat/threads/{quote(thread_id, safe='')}{suffix}"

    async def create_thread(self, title: str = "New Chat") -> str:
        """Create an empty thread and return its id."""
        response = await self.transport.request(
            "POST", "/chat/threads", json={"title": title}, error_cls=ThreadCreationError
        )
        if not response.is_success:
            raise ThreadCreationError(
                error_message(response, "Failed to create thread")
            )
        body = _json_dict(response, ThreadCreationError, "Failed to create thread")
        thread_id = body.get("threadId")
        if not isinstance(thread_id, str) or not thread_id:
            raise ThreadCreationError("Failed to create thread: no thread id returned")
        return thread_id

    async def list_threads(self) -> list[Thread]:
        """Return the user's threads; an absent list is an empty result."""
        response = await self.transport.request(
            "GET", "/chat/threads", error_cls=RemoteListError, idempotent=True
        )
        if response.status_code == 404:
            raise RemoteListError("No chat threads yet", soft=True)
        if not response.is_success:
            raise RemoteListError(error_message(response, "Failed to load threads"))
        body = _json_dict(response, RemoteListError, "Failed to load threads")
        rows = body.get("threads")
        if not body.get("success") or not isinstance(rows, list):
            return []
        threads: list[Thread] = []
        for row in rows:
            if isinstance(row, dict):
                thread = Thread.from_wire(row)
                if thread is not None:
                    threads.append(thread)
        return threads

    async def thread_exists(self, thread_id: str) -> bool:
        """Check existence; only a 404 means the thread is gone."""
        response = await self.transport.request(
            "GET",
            self._thread_path(thread_id),
            error_cls=ThreadVerificationError,
            idempotent=True,
        )
        if response.status_code == 404:
            return False
        if response.is_success:
            return True
        raise ThreadVerificationError(
            error_message(response, f"Thread check failed with HTTP {response.status_code}")
        )

    async def delete_thread(self, thread_id: str) -> None:
        response = await self.transport.request(
            "DELETE", self._thread_path(thread_id), error_cls=RemoteDeleteError
        )
        if not response.is_success:
            raise RemoteDeleteError(error_message(response, "Failed to delete thread"))

    async def fetch_messages(self, thread_id: str) -> list[dict[str, Any]]:
        """Return raw message payloads for a thread.

        Raises:
            ThreadNotFoundError: on a 404, which callers treat as empty history.
            RemoteHistoryError: on any other failure.
        """
        response = await self.transport.request(
            "GET",
            self._thread_path(thread_id, "/messages"),
            error_cls=RemoteHistoryError,
            idempotent=True,
        )
        if response.status_code == 404:
            raise ThreadNotFoundError(f"THREAD_NOT_FOUND: {thread_id}")
        if not response.is_success:
            raise RemoteHistoryError(error_message(response, "Failed to load messages"))
        body = _json_dict(response, RemoteHistoryError, "Failed to load messages")
        messages = body.get("messages")
        if not body.get("success") or not isinstance(messages, list):
            return []
        return [item for item in messages if isinstance(item, dict)]

    async def send_message(
        self,
        message: str,
        style: str,
        thread_id: str | None = None,
        image: EncodedAttachment | None = None,
    ) -> SendResult:
        """Send a user turn and return the assistant reply.

        Omitting ``thread_id`` asks the service to start a new thread.
        """
        payload: dict[str, Any] = {"message": message, "style": style}
        if thread_id:
            payload["threadId"] = thread_id
        if image is not None and image.payload:
            payload["imageBase64"] = image.payload
            payload["imageType"] = image.media_type

        response = await self.transport.request(
            "POST", "/chat/send", json=payload, error_cls=RemoteSendError
        )
        if not response.is_success:
            raise RemoteSendError(error_message(response, "Failed to send message"))
        body = _json_dict(response, RemoteSendError, "Failed to send message")
        reply = body.get("response")
        if not body.get("success") or not reply:
            raise RemoteSendError(
                error_message(response, "Failed to get response from server")
            )

        returned_thread = body.get("threadId")
        thread_ref = returned_thread if isinstance(returned_thread, str) and returned_thread else None
        if isinstance(reply, dict) and "content" in reply:
            wire = {**reply, "role": "assistant"}
        else:
            wire = {"role": "assistant", "content": reply}
        turn = Turn.from_wire(wire, thread_ref or thread_id)
        return SendResult(
            reply=turn, thread_id=thread_ref, user_turn_id=_user_turn_id(body)
        )
