from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, List, Optional

from landb.config import detect_read_only, get_settings
from landb.fetcher import FixtureFetcher
from landb.islands import canonicalize_island, parse_island_list
from landb.repository import LandRepository, open_repository


logger = logging.getLogger("landb.cli")


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(
            {
                "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            },
            ensure_ascii=False,
        )


def _configure_logging(level: Optional[str], as_json: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    if as_json:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    root = logging.getLogger("landb")
    root.handlers[:] = [handler]
    root.setLevel((level or "WARNING").upper())
    root.propagate = False


def _dump(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, default=str))


def _lands(lands) -> List[dict]:
    return [land.to_dict() for land in lands]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="landb", description="Local land registry snapshot"
    )
    parser.add_argument("--db", default=None, help="SQLite path (default: LANDB_PATH or in-memory)")
    parser.add_argument("--fixture", default=None, help="Serve land records from a JSON file (no network)")
    parser.add_argument("--islands", default=None, help="Comma-separated islands to refresh, primary first")
    parser.add_argument("--interval", type=float, default=None, help="Minimum refetch interval in seconds")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, etc.)")
    parser.add_argument("--log-json", action="store_true", help="Emit log records as JSON lines")

    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("refresh", help="Fetch and store a new snapshot")
    sub.add_parser("info", help="Show snapshot status")

    p = sub.add_parser("lands", help="List lands")
    p.add_argument("--owner", default=None)

    p = sub.add_parser("land-at", help="Land covering a grid cell")
    p.add_argument("x", type=int)
    p.add_argument("y", type=int)
    p.add_argument("--island", default=None)

    p = sub.add_parser("token", help="Land by tokenId")
    p.add_argument("token_id", type=int)

    p = sub.add_parser("region", help="Land by regionId")
    p.add_argument("region_id", type=int)
    p.add_argument("--island", default=None)

    sub.add_parser("market", help="Lands on the market")

    p = sub.add_parser("counts", help="Land counts by size and level")
    p.add_argument("--owner", default=None)
    p.add_argument("--by-island", action="store_true")

    p = sub.add_parser("adjacent", help="Lands touching a land")
    p.add_argument("token_id", type=int)
    p.add_argument("--padding", type=int, default=1)

    p = sub.add_parser("neighbors", help="Neighbors of an owner grouped by address")
    p.add_argument("owner")
    p.add_argument("--ascending", action="store_true")

    p = sub.add_parser("owners", help="Owners ranked by holdings")
    p.add_argument("--ascending", action="store_true")
    p.add_argument("--limit", type=int, default=None)

    p = sub.add_parser("points", help="Prosperity points")
    p.add_argument("--owner", default=None)
    return parser


def _open(args: argparse.Namespace) -> LandRepository:
    settings = get_settings()
    overrides = {}
    if args.db:
        overrides["db_path"] = args.db
        overrides["read_only"] = detect_read_only(args.db)
    if args.islands:
        overrides["islands"] = tuple(parse_island_list(args.islands))
    if args.interval is not None:
        overrides["fetch_interval_s"] = max(0.0, float(args.interval))
    if overrides:
        settings = dataclasses.replace(settings, **overrides)
    fetcher = FixtureFetcher.from_file(args.fixture) if args.fixture else None
    return open_repository(settings, fetcher, cold_start=args.cmd != "refresh")


def run(args: argparse.Namespace, repo: LandRepository) -> int:
    cmd = args.cmd
    if cmd == "refresh":
        ok = repo.refresh()
        _dump(repo.last_result.to_dict())
        return 0 if ok else 2
    if cmd == "info":
        _dump(
            {
                "exists": repo.exists(),
                "last_fetched": repo.format_fetch_date(),
                "db": repo.store.path,
                "read_only": repo.store.read_only,
            }
        )
        return 0
    if cmd == "lands":
        _dump(_lands(repo.get_lands(args.owner)))
    elif cmd == "land-at":
        island = canonicalize_island(args.island) if args.island is not None else None
        land = repo.get_land_at(args.x, args.y, island)
        _dump(land.to_dict() if land else None)
    elif cmd == "token":
        land = repo.get_land_by_token_id(args.token_id)
        _dump(land.to_dict() if land else None)
    elif cmd == "region":
        island = canonicalize_island(args.island) if args.island is not None else None
        land = repo.get_land_by_region_id(args.region_id, island)
        _dump(land.to_dict() if land else None)
    elif cmd == "market":
        _dump(_lands(repo.get_on_market_lands()))
    elif cmd == "counts":
        _dump([c.to_dict() for c in repo.get_counts(args.owner, args.by_island)])
    elif cmd == "adjacent":
        land = repo.get_land_by_token_id(args.token_id)
        if land is None:
            _dump({"error": f"unknown tokenId {args.token_id}"})
            return 1
        _dump(_lands(repo.get_adjacent(land, args.padding)))
    elif cmd == "neighbors":
        neighbors = repo.get_neighbors(args.owner, descending=not args.ascending)
        _dump({owner: _lands(lands) for owner, lands in neighbors.items()})
    elif cmd == "owners":
        infos = list(repo.get_owner_info_map(descending=not args.ascending).values())
        if args.limit is not None:
            infos = infos[: max(0, args.limit)]
        _dump(
            [
                {
                    "owner_address": info.owner_address,
                    "counts": info.counts,
                    "lands": len(info.lands),
                }
                for info in infos
            ]
        )
    elif cmd == "points":
        _dump({"owner": args.owner, "points": repo.calc_prosperity_points(args.owner)})
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level, args.log_json)
    with _open(args) as repo:
        return run(args, repo)


def _safe_main():
    try:
        code = main()
    except SystemExit:
        raise
    except Exception as exc:
        logger.debug("command failed", exc_info=True)
        print(json.dumps({"error": str(exc)}))
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    _safe_main()
