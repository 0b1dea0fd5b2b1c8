from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Literal, Optional, Protocol

from redis import Redis

logger = logging.getLogger(__name__)

ShareStoreKind = Literal["memory", "sqlite", "redis"]


class BuildShareStore(Protocol):
    """Key-value storage for saved bundles plus share-code aliases."""

    def put(self, build_id: str, value: dict) -> None: ...
    def get(self, build_id: str) -> Optional[dict]: ...
    def put_alias(self, code: str, build_id: str) -> None: ...
    def resolve_alias(self, code: str) -> Optional[str]: ...


class MemoryShareStore:
    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._aliases: Dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, build_id: str, value: dict) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self._lock:
            self._values[build_id] = payload

    def get(self, build_id: str) -> Optional[dict]:
        with self._lock:
            payload = self._values.get(build_id)
        return json.loads(payload) if payload is not None else None

    def put_alias(self, code: str, build_id: str) -> None:
        with self._lock:
            self._aliases[code] = build_id

    def resolve_alias(self, code: str) -> Optional[str]:
        with self._lock:
            return self._aliases.get(code)


class SQLiteShareStore:
    def __init__(self, db_path: Path, ttl_seconds: int = 0):
        self.db_path = db_path
        self.ttl_seconds = max(0, int(ttl_seconds or 0))
        self._init_tables()

    def _init_tables(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS shared_builds (
                    build_id TEXT PRIMARY KEY,
                    bundle_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS share_codes (
                    code TEXT PRIMARY KEY,
                    build_id TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.commit()

    def _ttl_clause(self, sql: str, params: tuple) -> tuple:
        if self.ttl_seconds > 0:
            sql += " AND updated_at >= datetime('now', ?)"
            params = (*params, f"-{self.ttl_seconds} seconds")
        return sql, params

    def put(self, build_id: str, value: dict) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO shared_builds (build_id, bundle_json, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(build_id) DO UPDATE SET
                    bundle_json = excluded.bundle_json,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (build_id, json.dumps(value, ensure_ascii=False)),
            )
            conn.commit()

    def get(self, build_id: str) -> Optional[dict]:
        sql, params = self._ttl_clause(
            "SELECT bundle_json FROM shared_builds WHERE build_id = ?", (build_id,)
        )
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(sql, params).fetchone()
        return json.loads(row[0]) if row else None

    def put_alias(self, code: str, build_id: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO share_codes (code, build_id, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(code) DO UPDATE SET
                    build_id = excluded.build_id,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (code, build_id),
            )
            conn.commit()

    def resolve_alias(self, code: str) -> Optional[str]:
        sql, params = self._ttl_clause("SELECT build_id FROM share_codes WHERE code = ?", (code,))
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(sql, params).fetchone()
        return row[0] if row else None


class RedisShareStore:
    def __init__(self, url: str, ttl_seconds: int = 0, client: Optional[Redis] = None):
        self.ttl_seconds = max(0, int(ttl_seconds or 0))
        self._client = client if client is not None else Redis.from_url(url, decode_responses=True)
        # fail fast on an unreachable server
        self._client.ping()

    @staticmethod
    def _build_key(build_id: str) -> str:
        return f"rackforge:build:{build_id}"

    @staticmethod
    def _alias_key(code: str) -> str:
        return f"rackforge:share:{code}"

    def _set(self, key: str, value: str) -> None:
        if self.ttl_seconds > 0:
            self._client.set(key, value, ex=self.ttl_seconds)
        else:
            self._client.set(key, value)

    def put(self, build_id: str, value: dict) -> None:
        self._set(self._build_key(build_id), json.dumps(value, ensure_ascii=False))

    def get(self, build_id: str) -> Optional[dict]:
        payload = self._client.get(self._build_key(build_id))
        return json.loads(payload) if payload else None

    def put_alias(self, code: str, build_id: str) -> None:
        self._set(self._alias_key(code), build_id)

    def resolve_alias(self, code: str) -> Optional[str]:
        return self._client.get(self._alias_key(code)) or None


def create_share_store(
    kind: str = "memory",
    *,
    db_path: Optional[Path] = None,
    redis_url: Optional[str] = None,
    ttl_seconds: int = 0,
) -> BuildShareStore:
    kind = (kind or "memory").strip().lower()
    if kind == "sqlite":
        if db_path is None:
            raise ValueError("share_store=sqlite requires db_path.")
        return SQLiteShareStore(db_path, ttl_seconds=ttl_seconds)
    if kind == "redis":
        if not redis_url:
            raise ValueError("share_store=redis requires redis_url.")
        return RedisShareStore(redis_url, ttl_seconds=ttl_seconds)
    if kind != "memory":
        logger.warning("unknown share store %r, falling back to memory", kind)
    return MemoryShareStore()
