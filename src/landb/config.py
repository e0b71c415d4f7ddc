from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from landb.islands import DEFAULT_ISLANDS, parse_island_list


DEFAULT_API_URL = "https://ld-api.babyswap.io/api/v1/land/info"
DEFAULT_FETCH_INTERVAL_S = 60.0
DEFAULT_HTTP_TIMEOUT_S = 30.0


def _env_bool(name: str, default: Optional[bool]) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_str(name: str) -> Optional[str]:
    raw = (os.getenv(name) or "").strip()
    return raw or None


def detect_read_only(path: Optional[str]) -> bool:
    """True when `path` points at a location this process cannot write."""

    if not path or path == ":memory:":
        return False
    p = Path(path)
    if p.exists():
        return not os.access(p, os.W_OK)
    parent = p.parent
    # The store creates missing directories; check the nearest existing one.
    while not parent.exists() and parent != parent.parent:
        parent = parent.parent
    return not os.access(parent, os.W_OK)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the land cache.

    `db_path=None` keeps the snapshot in memory for the life of the process.
    """

    db_path: Optional[str] = None
    read_only: bool = False
    fetch_interval_s: float = DEFAULT_FETCH_INTERVAL_S
    islands: Tuple[int, ...] = tuple(DEFAULT_ISLANDS)
    api_url: str = DEFAULT_API_URL
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    user_agent: Optional[str] = None

    @property
    def primary_island(self) -> int:
        return self.islands[0]

    @classmethod
    def from_env(cls) -> "Settings":
        db_path = _env_str("LANDB_PATH")
        read_only = _env_bool("LANDB_READ_ONLY", None)
        if read_only is None:
            read_only = detect_read_only(db_path)
        return cls(
            db_path=db_path,
            read_only=bool(read_only and db_path),
            fetch_interval_s=_env_float(
                "LANDB_FETCH_INTERVAL_S", DEFAULT_FETCH_INTERVAL_S
            ),
            islands=tuple(parse_island_list(_env_str("LANDB_ISLANDS"))),
            api_url=_env_str("LANDB_API_URL") or DEFAULT_API_URL,
            http_timeout_s=_env_float("LANDB_HTTP_TIMEOUT_S", DEFAULT_HTTP_TIMEOUT_S),
            user_agent=_env_str("LANDB_HTTP_USER_AGENT"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
