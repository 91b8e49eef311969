"""
Key-value store backends: memory, JSON file and SQL (temporary SQLite).
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

# make the kindergarten package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.core import config as core_config
from kindergarten.db import session as db_session
from kindergarten.repositories.storage import JSONFileStore, MemoryStore, SQLStore, build_store


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Temporary SQLite database; caches are cleared so the URL is re-read."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    core_config.get_settings.cache_clear()
    db_session.dispose_engine()

    yield db_file

    db_session.dispose_engine()
    core_config.get_settings.cache_clear()


def test_memory_store_round_trip_and_remove():
    store = MemoryStore()
    assert store.get("missing") is None

    assert store.set("activities", [{"id": 1, "title": "Piknik"}]) is True
    assert store.get("activities") == [{"id": 1, "title": "Piknik"}]

    store.remove("activities")
    assert store.get("activities") is None
    # removing twice is harmless
    store.remove("activities")


def test_clear_removes_selected_or_all_keys():
    store = MemoryStore()
    for key in ("a", "b", "c"):
        store.set(key, key)

    store.clear(["a"])
    assert sorted(store.keys()) == ["b", "c"]

    store.clear()
    assert store.keys() == []


def test_unserializable_value_is_rejected_without_raising():
    store = MemoryStore()
    assert store.set("bad", {"when": object()}) is False
    assert store.get("bad") is None


def test_unparseable_value_reads_as_missing():
    store = MemoryStore()
    store._write("broken", "{not json")
    assert store.get("broken") is None


def test_quota_exceeded_keeps_previous_value():
    store = MemoryStore(max_bytes=64)
    assert store.set("k", "small") is True
    assert store.set("k", "x" * 200) is False
    assert store.get("k") == "small"


def test_overwriting_a_key_does_not_count_its_old_size():
    store = MemoryStore(max_bytes=40)
    assert store.set("k", "x" * 20) is True
    assert store.set("k", "y" * 20) is True
    assert store.get("k") == "y" * 20


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "storage.json"
    store = JSONFileStore(path)
    assert store.set("blogPosts", [{"id": 7, "title": "Merhaba"}]) is True

    reopened = JSONFileStore(path)
    assert reopened.get("blogPosts") == [{"id": 7, "title": "Merhaba"}]
    assert reopened.keys() == ["blogPosts"]

    # the document maps each key to its encoded value
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert json.loads(doc["blogPosts"])[0]["title"] == "Merhaba"


def test_json_file_store_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{ truncated", encoding="utf-8")
    store = JSONFileStore(path)

    assert store.get("activities") is None
    assert store.keys() == []
    # a write replaces the unreadable document
    assert store.set("activities", []) is True
    assert JSONFileStore(path).get("activities") == []


def test_json_file_store_remove(tmp_path):
    store = JSONFileStore(tmp_path / "storage.json")
    store.set("a", 1)
    store.set("b", 2)
    store.remove("a")
    assert store.get("a") is None
    assert store.get("b") == 2


def test_sql_store_round_trip(temp_db):
    store = SQLStore()
    assert store.get("contactMessages") is None

    assert store.set("contactMessages", [{"id": 1, "name": "Ayşe"}]) is True
    assert store.set("contactMessages", [{"id": 2, "name": "Mehmet"}]) is True
    assert SQLStore(create_tables=False).get("contactMessages") == [{"id": 2, "name": "Mehmet"}]

    store.set("other", True)
    assert sorted(store.keys()) == ["contactMessages", "other"]

    store.remove("other")
    assert store.keys() == ["contactMessages"]


def test_sql_store_quota(temp_db):
    store = SQLStore(max_bytes=50)
    assert store.set("k", "ok") is True
    assert store.set("big", "z" * 100) is False
    assert store.get("big") is None


def test_build_store_picks_backend(tmp_path, monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    core_config.get_settings.cache_clear()
    try:
        assert isinstance(build_store(core_config.get_settings()), MemoryStore)

        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "s.json"))
        core_config.get_settings.cache_clear()
        store = build_store(core_config.get_settings())
        assert isinstance(store, JSONFileStore)
        assert store.path == tmp_path / "s.json"
    finally:
        core_config.get_settings.cache_clear()
