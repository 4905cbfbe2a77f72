"""Tests for the durable current-thread slot."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
import unittest

from wingman_chat.storage import STORAGE_KEY, FileThreadIdStore, MemoryThreadIdStore


class FileThreadIdStoreTests(unittest.TestCase):
    """Validate read/write/clear against a temporary state file."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "nested" / "state.json"
        self.store = FileThreadIdStore(self.path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_reads_none(self) -> None:
        self.assertIsNone(self.store.read())

    def test_write_then_read(self) -> None:
        self.store.write("thread-1")
        self.assertEqual(self.store.read(), "thread-1")
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(payload[STORAGE_KEY], "thread-1")

    @unittest.skipUnless(os.name == "posix", "POSIX permissions only")
    def test_file_is_private(self) -> None:
        self.store.write("thread-1")
        self.assertEqual(self.path.stat().st_mode & 0o777, 0o600)

    def test_clear_preserves_other_keys(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"other": 1, STORAGE_KEY: "t"}), encoding="utf-8")
        self.store.clear()
        self.assertIsNone(self.store.read())
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {"other": 1})

    def test_malformed_state_reads_none(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(self.store.read())
        self.store.write("fresh")
        self.assertEqual(self.store.read(), "fresh")


class MemoryThreadIdStoreTests(unittest.TestCase):
    def test_round_trip(self) -> None:
        store = MemoryThreadIdStore("a")
        self.assertEqual(store.read(), "a")
        store.write("b")
        self.assertEqual(store.read(), "b")
        store.clear()
        self.assertIsNone(store.read())


if __name__ == "__main__":
    unittest.main()
