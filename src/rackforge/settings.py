from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[2]

load_dotenv(ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    catalog_dir: Path
    catalog_version: str
    share_store: str
    share_db_path: Path
    share_redis_url: str
    share_ttl_seconds: int
    log_level: str


def load_settings() -> Settings:
    return Settings(
        catalog_dir=_env_path("RACKFORGE_CATALOG_DIR", ROOT / "data" / "catalog"),
        catalog_version=os.getenv("RACKFORGE_CATALOG_VERSION", "2026-02-04").strip() or "2026-02-04",
        share_store=os.getenv("SHARE_STORE", "memory").strip().lower(),
        share_db_path=_env_path("SHARE_DB_PATH", ROOT / "data" / "builds.db"),
        share_redis_url=os.getenv("SHARE_REDIS_URL", "").strip(),
        share_ttl_seconds=max(0, _env_int("SHARE_TTL_SECONDS", 0)),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
