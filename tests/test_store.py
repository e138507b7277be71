"""Tests for the JSON package database."""

import json
import os
import stat
from unittest.mock import patch

import pytest

from bundlestats.db.store import DatabaseError, PackageDatabase, PersistError


class TestLoad:
    """Tests for PackageDatabase.load."""

    def test_missing_file_starts_empty(self, tmp_path):
        db = PackageDatabase.load(tmp_path / "missing.json")
        assert len(db) == 0
        assert db.to_dict() == {}

    def test_loads_existing_entries(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"react": {"lastScraped": "Error"}}))

        db = PackageDatabase.load(path)

        assert "react" in db
        assert db.get("react") == {"lastScraped": "Error"}

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("{not json")
        with pytest.raises(DatabaseError, match="Failed to read"):
            PackageDatabase.load(path)

    def test_non_object_top_level_raises(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(DatabaseError, match="expected a JSON object"):
            PackageDatabase.load(path)

    @pytest.mark.parametrize("entry", [["legacy"], "stale", 3, None])
    def test_non_object_entry_raises(self, tmp_path, entry):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"a": {"lastScraped": 1}, "b": entry}))
        with pytest.raises(DatabaseError, match="entry 'b'"):
            PackageDatabase.load(path)


class TestSave:
    """Tests for PackageDatabase.save."""

    def test_writes_two_space_indented_json(self, tmp_path):
        path = tmp_path / "db.json"
        db = PackageDatabase({"react": {"lastScraped": 1}})

        db.save(path)

        text = path.read_text()
        assert text.startswith('{\n  "react": {\n    "lastScraped": 1')
        assert json.loads(text) == {"react": {"lastScraped": 1}}

    def test_latest_alias_is_written_as_copy(self, tmp_path):
        record = {"name": "foo", "version": "2.0.0", "gzip": 10, "description": "", "repository": ""}
        db = PackageDatabase({"foo": {"2.0.0": record, "latest": record, "lastScraped": 5}})

        db.save(tmp_path / "db.json")

        saved = json.loads((tmp_path / "db.json").read_text())
        assert saved["foo"]["latest"] == saved["foo"]["2.0.0"]

    def test_round_trip_preserves_unknown_keys(self, tmp_path):
        path = tmp_path / "db.json"
        data = {"react": {"lastScraped": 1, "note": {"kept": True}}}
        PackageDatabase(data).save(path)
        assert PackageDatabase.load(path).to_dict() == data

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "db.json"
        PackageDatabase().save(path)
        assert json.loads(path.read_text()) == {}

    def test_replaces_existing_file(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"old": {}}))
        PackageDatabase({"new": {}}).save(path)
        assert json.loads(path.read_text()) == {"new": {}}

    def test_failed_write_raises_persist_error(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text(json.dumps({"old": {}}))

        with patch("bundlestats.db.store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistError, match="disk full"):
                PackageDatabase({"new": {}}).save(path)

        # Existing file is untouched and no temp files are left behind
        assert json.loads(path.read_text()) == {"old": {}}
        assert [p.name for p in tmp_path.iterdir()] == ["db.json"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_new_file_is_world_readable(self, tmp_path):
        path = tmp_path / "db.json"
        PackageDatabase().save(path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o644

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_existing_file_mode_is_kept(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text("{}")
        os.chmod(path, 0o640)
        PackageDatabase({"new": {}}).save(path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o640

    def test_persist_error_is_a_database_error(self):
        assert issubclass(PersistError, DatabaseError)
