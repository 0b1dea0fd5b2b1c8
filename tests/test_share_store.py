import sqlite3

import pytest

from rackforge.share_store import (
    MemoryShareStore,
    RedisShareStore,
    SQLiteShareStore,
    create_share_store,
)


class FakeRedis:
    """Just enough of the redis client surface for the share store."""

    def __init__(self):
        self.data = {}
        self.expiry = {}
        self.pinged = False

    def ping(self):
        self.pinged = True
        return True

    def set(self, key, value, ex=None):
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex

    def get(self, key):
        return self.data.get(key)


def _exercise(store):
    assert store.get("b1") is None
    assert store.resolve_alias("abc") is None

    store.put("b1", {"build": {"id": "b1", "nodes": []}, "shareCode": "abc"})
    store.put_alias("abc", "b1")
    assert store.get("b1")["shareCode"] == "abc"
    assert store.resolve_alias("abc") == "b1"

    store.put("b1", {"build": {"id": "b1", "nodes": [{"index": 0}]}})
    assert store.get("b1")["build"]["nodes"] == [{"index": 0}]


def test_memory_store():
    _exercise(MemoryShareStore())


def test_memory_store_returns_copies():
    store = MemoryShareStore()
    store.put("b1", {"build": {"id": "b1"}})
    store.get("b1")["build"]["id"] = "changed"
    assert store.get("b1")["build"]["id"] == "b1"


def test_sqlite_store(tmp_path):
    _exercise(SQLiteShareStore(tmp_path / "share" / "builds.db"))


def test_sqlite_store_survives_reopen(tmp_path):
    db_path = tmp_path / "builds.db"
    SQLiteShareStore(db_path).put("b1", {"build": {"id": "b1"}})
    assert SQLiteShareStore(db_path).get("b1") == {"build": {"id": "b1"}}


def test_sqlite_store_hides_expired_rows(tmp_path):
    db_path = tmp_path / "builds.db"
    store = SQLiteShareStore(db_path, ttl_seconds=60)
    store.put("b1", {"build": {"id": "b1"}})
    store.put_alias("abc", "b1")
    assert store.get("b1") is not None

    with sqlite3.connect(db_path) as conn:
        conn.execute("UPDATE shared_builds SET updated_at = datetime('now', '-2 hours')")
        conn.execute("UPDATE share_codes SET updated_at = datetime('now', '-2 hours')")
        conn.commit()

    assert store.get("b1") is None
    assert store.resolve_alias("abc") is None
    assert SQLiteShareStore(db_path).get("b1") is not None


def test_redis_store_with_injected_client():
    client = FakeRedis()
    store = RedisShareStore("redis://unused", client=client)

    assert client.pinged
    _exercise(store)
    assert "rackforge:build:b1" in client.data
    assert client.data["rackforge:share:abc"] == "b1"
    assert client.expiry == {}


def test_redis_store_sets_expiry():
    client = FakeRedis()
    store = RedisShareStore("redis://unused", ttl_seconds=3600, client=client)
    store.put("b1", {"build": {"id": "b1"}})

    assert client.expiry == {"rackforge:build:b1": 3600}


def test_factory(tmp_path):
    assert isinstance(create_share_store("memory"), MemoryShareStore)
    assert isinstance(create_share_store(" SQLite ", db_path=tmp_path / "b.db"), SQLiteShareStore)
    assert isinstance(create_share_store("etcd"), MemoryShareStore)

    with pytest.raises(ValueError, match="db_path"):
        create_share_store("sqlite")
    with pytest.raises(ValueError, match="redis_url"):
        create_share_store("redis")
