from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from landb.aggregation import owner_info_map
from landb.config import Settings, get_settings
from landb.errors import FetchError, RecordError, SnapshotMissingError
from landb.fetcher import Fetcher, LandFetcher
from landb.islands import island_name
from landb.normalize import normalize_records
from landb.run_result import RefreshResult
from landb.schema import Count, Land, OwnerInfo
from landb.scoring import (
    DEFAULT_PROSPERITY_TABLE,
    ProsperityTable,
    calc_prosperity_point,
    calc_prosperity_points,
)
from landb.spatial import adjacent_where, contains_where, find_neighbors
from landb.store import LandSQLite


logger = logging.getLogger("landb.repository")

KEY_FETCHED_AT = "lastFetchedAt"
KEY_REQUESTED_AT = "lastRequestedAt"

_OWNER_WHERE = "owner_address = ? COLLATE NOCASE"


def _fmt_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


class LandRepository:
    """Local snapshot of the remote land registry.

    `refresh()` is the only write path; every read raises
    SnapshotMissingError until a snapshot has been stored.
    """

    def __init__(
        self,
        store: LandSQLite,
        fetcher: Fetcher,
        settings: Optional[Settings] = None,
        *,
        table: ProsperityTable = DEFAULT_PROSPERITY_TABLE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.settings = settings or Settings()
        self.table = table
        self.clock = clock
        self.last_result: Optional[RefreshResult] = None

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "LandRepository":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- snapshot lifecycle ---

    def exists(self) -> bool:
        return self.store.table_exists("Land")

    def _require_snapshot(self) -> None:
        if not self.exists():
            raise SnapshotMissingError(
                "no land snapshot stored yet; call refresh() first"
            )

    def _get_time(self, key: str) -> Optional[float]:
        raw = self.store.get_value(key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning("ignoring unreadable %s value %r", key, raw)
            return None

    def next_allowed_at(self) -> Optional[float]:
        last = self._get_time(KEY_REQUESTED_AT)
        if last is None:
            last = self._get_time(KEY_FETCHED_AT)
        if last is None:
            return None
        return last + self.settings.fetch_interval_s

    def refresh(self) -> bool:
        result = self._refresh()
        self.last_result = result
        return result.ok

    def _refresh(self) -> RefreshResult:
        if self.store.read_only:
            logger.warning("refresh(): skipped, store %s is read-only", self.store.path)
            return RefreshResult(status="read_only")

        now = self.clock()
        next_at = self.next_allowed_at()
        if next_at is not None and now < next_at:
            logger.debug("refresh(): skipped. (Call after %s)", _fmt_ts(next_at))
            return RefreshResult(status="throttled", next_allowed_at=next_at)

        # Recorded before any network call so failures are throttled too.
        requested_at = now
        self.store.set_value(KEY_REQUESTED_AT, repr(requested_at))
        result = RefreshResult(
            status="failed",
            requested_at=requested_at,
            next_allowed_at=requested_at + self.settings.fetch_interval_s,
        )

        lands: List[Land] = []
        try:
            for island_id in self.settings.islands:
                raws = self.fetcher.fetch(island_id)
                island_lands, warnings = normalize_records(raws, island_id)
                logger.debug(
                    "refresh(): island %s (%s) -> %d land(s)",
                    island_id,
                    island_name(island_id),
                    len(island_lands),
                )
                lands.extend(island_lands)
                result.island_counts[island_id] = len(island_lands)
                result.warnings.extend(warnings)
        except (FetchError, RecordError) as exc:
            logger.error("refresh(): aborted, previous snapshot kept: %s", exc)
            result.error = str(exc)
            return result

        try:
            self.store.replace_lands(lands, {KEY_FETCHED_AT: repr(requested_at)})
        except sqlite3.Error as exc:
            logger.error("refresh(): write failed, previous snapshot kept: %s", exc)
            result.error = f"{type(exc).__name__}: {exc}"
            return result

        result.status = "ok"
        result.fetched_at = requested_at
        logger.info(
            "refresh(): database updated with %d land(s). (%s)",
            len(lands),
            self.format_fetch_date(),
        )
        return result

    def ensure_snapshot(self) -> bool:
        """Cold-start refresh when no snapshot exists yet."""

        if self.exists():
            return True
        if self.store.read_only:
            raise SnapshotMissingError(
                f"read-only store {self.store.path} holds no land snapshot"
            )
        return self.refresh()

    def get_last_fetch_date(self) -> Optional[datetime]:
        ts = self._get_time(KEY_FETCHED_AT)
        if ts is None:
            return None
        return datetime.fromtimestamp(ts, tz=timezone.utc)

    def format_fetch_date(self) -> Optional[str]:
        ts = self._get_time(KEY_FETCHED_AT)
        return None if ts is None else _fmt_ts(ts)

    # --- reads ---

    def get_lands(self, owner_address: Optional[str] = None) -> List[Land]:
        self._require_snapshot()
        if owner_address is not None:
            return self.store.query_lands(
                where_sql=_OWNER_WHERE, params=[owner_address.strip()]
            )
        return self.store.query_lands()

    def get_land_at(
        self, x: int, y: int, island_id: Optional[int] = None
    ) -> Optional[Land]:
        self._require_snapshot()
        where_sql, params = contains_where(x, y)
        if island_id is not None:
            where_sql = "island_id = ? AND " + where_sql
            params = [int(island_id), *params]
        return self.store.first_land(where_sql=where_sql, params=params)

    def get_land_by_token_id(self, token_id: int) -> Optional[Land]:
        self._require_snapshot()
        return self.store.first_land(where_sql="token_id = ?", params=[int(token_id)])

    def get_land_by_region_id(
        self, region_id: int, island_id: Optional[int] = None
    ) -> Optional[Land]:
        self._require_snapshot()
        if island_id is None:
            return self.store.first_land(
                where_sql="region_id = ?", params=[int(region_id)]
            )
        return self.store.first_land(
            where_sql="island_id = ? AND region_id = ?",
            params=[int(island_id), int(region_id)],
        )

    def get_on_market_lands(self) -> List[Land]:
        self._require_snapshot()
        return self.store.query_lands(where_sql="on_market = 1")

    def get_counts(
        self, owner_address: Optional[str] = None, group_by_island: bool = False
    ) -> List[Count]:
        self._require_snapshot()
        if owner_address is not None:
            return self.store.count_grouped(
                where_sql=_OWNER_WHERE,
                params=[owner_address.strip()],
                by_island=group_by_island,
            )
        return self.store.count_grouped(by_island=group_by_island)

    # --- spatial ---

    def get_adjacent(self, land: Land, padding: int = 1) -> List[Land]:
        self._require_snapshot()
        where_sql, params = adjacent_where(land, padding)
        return self.store.query_lands(where_sql=where_sql, params=params)

    def get_neighbors(
        self, owner_address: str, descending: bool = True
    ) -> Dict[str, List[Land]]:
        return find_neighbors(
            owner_address,
            self.get_lands(owner_address),
            self.get_adjacent,
            descending=descending,
        )

    # --- aggregation & scoring ---

    def get_owner_info_map(self, descending: bool = True) -> Dict[str, OwnerInfo]:
        return owner_info_map(self.get_lands(), descending=descending)

    def calc_prosperity_point(self, land: Land) -> float:
        return calc_prosperity_point(land, self.table)

    def calc_prosperity_points(self, owner_address: Optional[str] = None) -> float:
        return calc_prosperity_points(self.get_lands(owner_address), self.table)


def open_repository(
    settings: Optional[Settings] = None,
    fetcher: Optional[Fetcher] = None,
    *,
    table: ProsperityTable = DEFAULT_PROSPERITY_TABLE,
    cold_start: bool = True,
) -> LandRepository:
    """Build a repository from settings, refreshing once if the store is empty."""

    settings = settings or get_settings()
    store = LandSQLite(settings.db_path, read_only=settings.read_only)
    repo = LandRepository(
        store,
        fetcher or LandFetcher.from_settings(settings),
        settings,
        table=table,
    )
    if cold_start and not settings.read_only:
        repo.ensure_snapshot()
    if settings.db_path:
        logger.debug(
            "'%s' loaded. (Last fetched:%s)", settings.db_path, repo.format_fetch_date()
        )
    return repo
