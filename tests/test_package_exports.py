"""Tests for top-level package lazy exports."""

from __future__ import annotations

import unittest

import wingman_chat


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(wingman_chat.load_config))
        self.assertTrue(callable(wingman_chat.ensure_config_dir))
        self.assertIsNotNone(wingman_chat.ChatApiClient)
        self.assertIsNotNone(wingman_chat.MessageTimeline)
        self.assertIsNotNone(wingman_chat.SessionController)
        self.assertIsNotNone(wingman_chat.ThreadIdentityManager)
        self.assertTrue(issubclass(wingman_chat.ThreadNotFoundError, wingman_chat.WingmanChatError))
        self.assertTrue(issubclass(wingman_chat.AuthRequiredError, wingman_chat.WingmanChatError))
        self.assertIsNotNone(wingman_chat.ConfigValidationError)

    def test_every_name_in_all_resolves(self) -> None:
        for name in wingman_chat.__all__:
            if name == "WingmanChatApp":
                continue
            self.assertIsNotNone(getattr(wingman_chat, name), name)

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(wingman_chat, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
