"""
Tests for the persistence adapter and the SQLite key/value medium.
"""

import json
import sqlite3

import pytest

from codewallet.errors import PersistenceError
from codewallet.kv_store import KeyValueStore
from codewallet.persistence import FRAGMENTS_KEY, TAGS_KEY, Persistence
from codewallet.protocol import KeyValueMedium
from codewallet.store import FragmentStore


# ---------------------------------------------------------------------------
# KeyValueStore (real SQLite)
# ---------------------------------------------------------------------------

class TestKeyValueStore:

    @pytest.fixture
    def kv(self, tmp_path):
        with KeyValueStore(tmp_path / "wallet.db") as s:
            yield s

    def test_satisfies_protocol(self, kv):
        assert isinstance(kv, KeyValueMedium)

    def test_get_missing(self, kv):
        assert kv.get("nope") is None

    def test_set_get_replace(self, kv):
        kv.set("a", "1")
        kv.set("a", "2")
        assert kv.get("a") == "2"
        assert kv.keys() == ["a"]

    def test_delete(self, kv):
        kv.set("a", "1")
        assert kv.delete("a") is True
        assert kv.delete("a") is False
        assert kv.get("a") is None

    def test_keys_sorted(self, kv):
        for key in ("b", "c", "a"):
            kv.set(key, "x")
        assert kv.keys() == ["a", "b", "c"]

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "nested" / "wallet.db"
        with KeyValueStore(path) as kv:
            kv.set("k", "v")
        with KeyValueStore(path) as kv:
            assert kv.get("k") == "v"

    def test_closed_store_raises_persistence_error(self, tmp_path):
        kv = KeyValueStore(tmp_path / "wallet.db")
        kv.close()
        with pytest.raises(PersistenceError):
            kv.set("k", "v")
        with pytest.raises(PersistenceError):
            kv.get("k")

    def test_unopenable_path_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(PersistenceError):
            KeyValueStore(blocker / "wallet.db")

    def test_sqlite_errors_wrapped(self, kv):
        kv._conn.execute("DROP TABLE records")
        with pytest.raises(PersistenceError) as exc_info:
            kv.set("k", "v")
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)


# ---------------------------------------------------------------------------
# Persistence adapter
# ---------------------------------------------------------------------------

class TestPersistenceLoad:

    def test_absent_returns_default(self, persistence):
        assert persistence.load("missing", []) == []

    def test_returns_decoded_value(self, medium, persistence):
        medium.records["k"] = json.dumps({"a": 1})
        assert persistence.load("k", {}) == {"a": 1}

    def test_corrupt_json_returns_default(self, medium, persistence, caplog):
        medium.records["k"] = "[1, 2"
        with caplog.at_level("ERROR", logger="codewallet"):
            assert persistence.load("k", []) == []
        assert "corrupt" in caplog.text

    def test_wrong_shape_returns_default(self, medium, persistence):
        medium.records["k"] = json.dumps({"not": "a list"})
        assert persistence.load("k", []) == []

    def test_read_failure_returns_default(self, medium, persistence, caplog):
        medium.fail_reads = True
        with caplog.at_level("ERROR", logger="codewallet"):
            assert persistence.load("k", {}) == {}
        assert "Failed to read" in caplog.text

    def test_one_bad_record_does_not_affect_others(self, medium, persistence):
        medium.records[FRAGMENTS_KEY] = "garbage"
        medium.records[TAGS_KEY] = json.dumps(["a"])
        assert persistence.load(FRAGMENTS_KEY, []) == []
        assert persistence.load(TAGS_KEY, []) == ["a"]

    def test_plain_text_string_record(self, medium, persistence):
        medium.records["k"] = "dark"
        assert persistence.load("k", "light") == "dark"
        assert persistence.load("k", []) == []


class TestPersistenceSave:

    def test_save_writes_json(self, medium, persistence):
        assert persistence.save("k", {"ü": [1, 2]}) is True
        assert json.loads(medium.records["k"]) == {"ü": [1, 2]}

    def test_write_failure_reported_not_raised(self, medium, persistence, caplog):
        medium.fail_writes = True
        with caplog.at_level("ERROR", logger="codewallet"):
            assert persistence.save("k", [1]) is False
        assert "without durability" in caplog.text

    def test_unserializable_value(self, medium, persistence):
        assert persistence.save("k", {"x": object()}) is False
        assert "k" not in medium.records


# ---------------------------------------------------------------------------
# End to end: store over SQLite
# ---------------------------------------------------------------------------

def test_store_round_trip_through_sqlite(tmp_path):
    db = tmp_path / "wallet.db"
    with KeyValueStore(db) as kv:
        store = FragmentStore(Persistence(kv))
        loop = store.add_fragment("Loop", "for i in range(10): pass", ["python"])
        store.add_fragment("Copy", "cp a b", ["shell", "python"])
        store.set_tag_color("shell", "#4eaa25")
        store.rename_tag("python", "py")
        expected_fragments = store.list_fragments()
        expected_tags = store.list_tags()

    with KeyValueStore(db) as kv:
        reloaded = FragmentStore(Persistence(kv))
        assert reloaded.list_fragments() == expected_fragments
        assert reloaded.list_tags() == expected_tags
        assert reloaded.get_fragment(loop.id).tags == ("py",)
