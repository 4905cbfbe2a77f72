"""Bearer credential providers consumed by the API clients."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import inspect
import os
from typing import Union

from .exceptions import AuthRequiredError

TokenProvider = Callable[[], Union[str, None, Awaitable[Union[str, None]]]]


class StaticTokenProvider:
    """Return a fixed token, typically read from configuration."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def __call__(self) -> str | None:
        return self._token


class EnvTokenProvider:
    """Read the token from an environment variable on every call."""

    def __init__(self, var_name: str = "WINGMAN_CHAT_TOKEN") -> None:
        self.var_name = var_name

    def __call__(self) -> str | None:
        return os.environ.get(self.var_name)


async def resolve_token(provider: TokenProvider) -> str:
    """Call a sync or async provider and require a non-empty token."""
    token = provider()
    if inspect.isawaitable(token):
        token = await token
    if not isinstance(token, str) or not token.strip():
        raise AuthRequiredError("Not authenticated")
    return token.strip()
