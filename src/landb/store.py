from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from landb.schema import LAND_COLUMNS, Count, Land


_LAND_DDL = """
CREATE TABLE Land (
    island_id     INTEGER NOT NULL,
    region_id     INTEGER NOT NULL,
    token_id      INTEGER NOT NULL,
    region_weight INTEGER NOT NULL CHECK (region_weight >= 1),
    x             INTEGER NOT NULL,
    y             INTEGER NOT NULL,
    image_url     TEXT NOT NULL DEFAULT '',
    image_status  TEXT NOT NULL DEFAULT '',
    level         INTEGER NOT NULL,
    sign_type     INTEGER NOT NULL DEFAULT 0,
    on_market     INTEGER NOT NULL DEFAULT 0,
    market_x      INTEGER NOT NULL DEFAULT 0,
    market_y      INTEGER NOT NULL DEFAULT 0,
    owner_address TEXT NOT NULL,
    user_token_id INTEGER,
    creator       TEXT NOT NULL DEFAULT '',
    notify_exist  INTEGER NOT NULL DEFAULT 0,
    skip_pp       INTEGER NOT NULL DEFAULT 0,
    notify_id     INTEGER,
    PRIMARY KEY (island_id, region_id),
    UNIQUE (island_id, x, y),
    UNIQUE (token_id)
)
"""

_LAND_INDEXES = (
    "CREATE INDEX idx_land_owner ON Land(owner_address COLLATE NOCASE)",
    "CREATE INDEX idx_land_location ON Land(island_id, x, y)",
    "CREATE INDEX idx_land_market ON Land(on_market)",
)

_INSERT_LAND = "INSERT INTO Land ({cols}) VALUES ({marks})".format(
    cols=", ".join(LAND_COLUMNS),
    marks=", ".join(":" + c for c in LAND_COLUMNS),
)


def _row_to_land(row: sqlite3.Row) -> Land:
    return Land(**{c: row[c] for c in LAND_COLUMNS})


class LandSQLite:
    """SQLite persistence for the Land snapshot and the Info sidecar.

    The connection runs in autocommit mode; multi-statement writes go
    through `transaction()` so DROP/CREATE take part in the same
    transaction as the inserts.
    """

    def __init__(self, path: Optional[str] = None, *, read_only: bool = False) -> None:
        self.path = path if path and path != ":memory:" else None
        self.read_only = bool(read_only and self.path)
        if self.path is None:
            self.conn = sqlite3.connect(":memory:", isolation_level=None)
        elif self.read_only:
            uri = Path(self.path).resolve().as_uri() + "?mode=ro"
            self.conn = sqlite3.connect(uri, uri=True, isolation_level=None)
        else:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.path, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        if not self.read_only:
            self._init_schema()

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS Info (
                name  TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield self.conn
        except BaseException:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")

    def table_exists(self, name: str) -> bool:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND name=?",
            (name,),
        ).fetchone()
        return bool(row[0])

    # --- Info ---

    def get_value(self, name: str) -> Optional[str]:
        if not self.table_exists("Info"):
            return None
        row = self.conn.execute(
            "SELECT value FROM Info WHERE name=?", (name,)
        ).fetchone()
        return None if row is None else str(row["value"])

    def set_value(self, name: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO Info (name, value) VALUES (?, ?)",
            (name, str(value)),
        )

    # --- Land ---

    def replace_lands(
        self, lands: Iterable[Land], info: Optional[Mapping[str, str]] = None
    ) -> int:
        """Swap in a new Land table and update Info atomically."""

        rows = [land.to_dict() for land in lands]
        with self.transaction() as conn:
            conn.execute("DROP TABLE IF EXISTS Land")
            conn.execute(_LAND_DDL)
            for ddl in _LAND_INDEXES:
                conn.execute(ddl)
            conn.executemany(_INSERT_LAND, rows)
            for name, value in (info or {}).items():
                self.set_value(name, value)
        return len(rows)

    def query_lands(
        self,
        *,
        where_sql: str = "",
        params: Sequence[Any] = (),
        order_sql: str = "island_id, x, y",
        limit: Optional[int] = None,
    ) -> List[Land]:
        sql = "SELECT * FROM Land"
        if where_sql:
            sql += " WHERE " + where_sql
        if order_sql:
            sql += " ORDER BY " + order_sql
        args = list(params)
        if limit is not None:
            sql += " LIMIT ?"
            args.append(int(limit))
        rows = self.conn.execute(sql, tuple(args)).fetchall()
        return [_row_to_land(r) for r in rows]

    def first_land(
        self,
        *,
        where_sql: str,
        params: Sequence[Any] = (),
        order_sql: str = "island_id, region_id",
    ) -> Optional[Land]:
        found = self.query_lands(
            where_sql=where_sql, params=params, order_sql=order_sql, limit=1
        )
        return found[0] if found else None

    def count_grouped(
        self,
        *,
        where_sql: str = "",
        params: Sequence[Any] = (),
        by_island: bool = False,
    ) -> List[Count]:
        keys = ["island_id"] if by_island else []
        keys += ["region_weight", "level"]
        group = ", ".join(keys)
        sql = f"SELECT {group}, COUNT(*) AS count FROM Land"
        if where_sql:
            sql += " WHERE " + where_sql
        sql += f" GROUP BY {group} ORDER BY {group}"
        out: List[Count] = []
        for row in self.conn.execute(sql, tuple(params)).fetchall():
            out.append(
                Count(
                    region_weight=int(row["region_weight"]),
                    level=int(row["level"]),
                    count=int(row["count"]),
                    island_id=int(row["island_id"]) if by_island else None,
                )
            )
        return out

    def info_snapshot(self) -> Dict[str, str]:
        if not self.table_exists("Info"):
            return {}
        rows = self.conn.execute("SELECT name, value FROM Info ORDER BY name").fetchall()
        return {str(r["name"]): str(r["value"]) for r in rows}
