"""Tests for configuration loading and validation."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
import unittest

from wingman_chat.config import DEFAULT_CONFIG, ensure_config_dir, load_config


class ConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def _load(self, text: str | None) -> dict:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            if text is not None:
                config_path.write_text(text.strip(), encoding="utf-8")
            return load_config(config_path=config_path)

    def test_missing_config_uses_defaults(self) -> None:
        config = self._load(None)
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertEqual(config["api"]["base_url"], "http://localhost:3000/api")
        self.assertEqual(config["api"]["token_env_var"], "WINGMAN_CHAT_TOKEN")
        self.assertEqual(config["chat"]["default_style"], "Confident")
        self.assertEqual(config["chat"]["bootstrap_message"], "New chat started")
        self.assertEqual(config["attachments"]["max_image_bytes"], 20 * 1024 * 1024)
        self.assertEqual(config["app"]["class"], "wingman-chat")

    def test_partial_config_overrides_selected_values(self) -> None:
        config = self._load(
            """
[api]
base_url = "https://wingman.example.com/api"
timeout = 10

[chat]
default_style = "chill"
            """
        )
        self.assertEqual(config["api"]["base_url"], "https://wingman.example.com/api")
        self.assertEqual(config["api"]["timeout"], 10)
        self.assertEqual(config["chat"]["default_style"], "Chill")
        self.assertEqual(config["keybinds"], DEFAULT_CONFIG["keybinds"])

    def test_invalid_values_fallback_to_defaults(self) -> None:
        config = self._load(
            """
[api]
timeout = -1

[chat]
default_style = "Grumpy"

[keybinds]
send_message = ""
            """
        )
        self.assertEqual(config, DEFAULT_CONFIG)

    def test_plain_http_remote_host_rejected_by_default(self) -> None:
        config = self._load(
            """
[api]
base_url = "http://wingman.example.com/api"
            """
        )
        self.assertEqual(config["api"]["base_url"], DEFAULT_CONFIG["api"]["base_url"])

    def test_plain_http_allowed_when_policy_enabled(self) -> None:
        config = self._load(
            """
[api]
base_url = "http://10.0.0.5:3000/api"

[security]
allow_insecure_http = true
            """
        )
        self.assertEqual(config["api"]["base_url"], "http://10.0.0.5:3000/api")

    def test_unsupported_scheme_rejected(self) -> None:
        config = self._load(
            """
[api]
base_url = "ftp://localhost/api"
            """
        )
        self.assertEqual(config["api"]["base_url"], DEFAULT_CONFIG["api"]["base_url"])

    def test_unparseable_toml_uses_defaults(self) -> None:
        self.assertEqual(self._load("[api\nbase_url ="), DEFAULT_CONFIG)

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_config_file_permissions_are_tightened(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text('[api]\ntoken = "abc"\n', encoding="utf-8")
            config_path.chmod(0o644)
            config = load_config(config_path=config_path)
            self.assertEqual(config["api"]["token"], "abc")
            self.assertEqual(config_path.stat().st_mode & 0o777, 0o600)

    def test_ensure_config_dir_creates_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "a" / "b"
            self.assertEqual(ensure_config_dir(target), target)
            self.assertTrue(target.is_dir())


if __name__ == "__main__":
    unittest.main()
