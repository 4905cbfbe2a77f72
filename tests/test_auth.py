"""Tests for bearer token providers."""

from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from wingman_chat.auth import EnvTokenProvider, StaticTokenProvider, resolve_token
from wingman_chat.exceptions import AuthRequiredError


class TokenProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_static_token(self) -> None:
        self.assertEqual(await resolve_token(StaticTokenProvider(" abc ")), "abc")

    async def test_async_provider(self) -> None:
        async def provider() -> str:
            return "from-async"

        self.assertEqual(await resolve_token(provider), "from-async")

    async def test_env_provider(self) -> None:
        with patch.dict(os.environ, {"WINGMAN_TEST_TOKEN": "env-token"}):
            self.assertEqual(
                await resolve_token(EnvTokenProvider("WINGMAN_TEST_TOKEN")), "env-token"
            )

    async def test_missing_token_requires_auth(self) -> None:
        for provider in (StaticTokenProvider(None), StaticTokenProvider("  ")):
            with self.assertRaises(AuthRequiredError):
                await resolve_token(provider)


if __name__ == "__main__":
    unittest.main()
