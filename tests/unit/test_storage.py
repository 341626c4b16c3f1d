"""
Unit Tests for Key/Value Storage
"""
import json
import os
import stat
import sys

import pytest

from schooladmin.storage import FileStorage, MemoryStorage


class TestMemoryStorage:

    def test_set_get_remove(self):
        storage = MemoryStorage()
        storage.set("token", "abc")

        assert storage.get("token") == "abc"

        storage.remove("token", "missing")
        assert storage.get("token") is None


class TestFileStorage:
    """Test the JSON-file storage"""

    def test_round_trip_through_disk(self, tmp_path):
        path = tmp_path / "session.json"
        FileStorage(str(path)).set("school_name", "Гимназия")

        assert FileStorage(str(path)).get("school_name") == "Гимназия"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_owner_only(self, tmp_path):
        path = tmp_path / "session.json"
        FileStorage(str(path)).set("token", "abc")

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_file_removed_when_empty(self, tmp_path):
        path = tmp_path / "session.json"
        storage = FileStorage(str(path))
        storage.set("token", "abc")

        storage.remove("token")

        assert not path.exists()

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{broken")

        assert FileStorage(str(path)).to_dict() == {}

    def test_non_object_file_starts_empty(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text(json.dumps(["token"]))

        assert FileStorage(str(path)).keys() == []
