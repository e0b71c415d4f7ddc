from __future__ import annotations

import json
import logging
import urllib.parse
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union

import requests

from landb.config import DEFAULT_API_URL, DEFAULT_HTTP_TIMEOUT_S, Settings
from landb.errors import FetchError
from landb.islands import MAIN, canonicalize_island


logger = logging.getLogger("landb.fetcher")

_DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/105.0.0.0 Safari/537.36"
)


class Fetcher(Protocol):
    def fetch(self, island_id: int) -> List[Dict[str, Any]]:
        ...


def _items_from_payload(payload: Any, island_id: int) -> List[Dict[str, Any]]:
    data = payload.get("data") if isinstance(payload, dict) else None
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise FetchError(
            f"unexpected land-info payload for island {island_id}: missing data.items",
            island_id=island_id,
        )
    return items


class LandFetcher:
    """Reads raw land records from the remote land-info endpoint."""

    def __init__(
        self,
        *,
        url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_HTTP_TIMEOUT_S,
        user_agent: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "accept": "application/json, text/plain, */*",
                "Content-Type": "application/json",
                "Path": urllib.parse.urlparse(url).path or "/",
                "Origin": "https://land.babyswap.finance",
                "Referer": "https://land.babyswap.finance/",
                "User-Agent": user_agent or _DEFAULT_UA,
            }
        )
        if headers:
            self._session.headers.update(dict(headers))

    @classmethod
    def from_settings(cls, settings: Settings) -> "LandFetcher":
        return cls(
            url=settings.api_url,
            timeout=settings.http_timeout_s,
            user_agent=settings.user_agent,
        )

    def request_body(self, island_id: int) -> Dict[str, Any]:
        if island_id == MAIN:
            return {}
        return {"islandId": int(island_id)}

    def fetch(self, island_id: int) -> List[Dict[str, Any]]:
        body = self.request_body(island_id)
        try:
            resp = self._session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(
                f"land-info request failed for island {island_id}: {exc}",
                island_id=island_id,
            ) from exc
        logger.debug(
            "fetch island=%s url=%s status=%s", island_id, self.url, resp.status_code
        )
        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"land-info returned HTTP {resp.status_code} for island {island_id}",
                island_id=island_id,
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise FetchError(
                f"land-info returned invalid JSON for island {island_id}",
                island_id=island_id,
            ) from exc
        return _items_from_payload(payload, island_id)

    def close(self) -> None:
        self._session.close()


class FixtureFetcher:
    """Deterministic, offline fetcher for tests, demos and `--fixture` runs.

    Accepts `{island: [records...]}` (island as id or name) or a bare list,
    which is served as the main island.
    """

    def __init__(
        self,
        records: Union[Mapping[Any, Iterable[Mapping[str, Any]]], Iterable[Mapping[str, Any]], None] = None,
        *,
        fail_islands: Iterable[int] = (),
    ) -> None:
        self._records: Dict[int, List[Dict[str, Any]]] = {}
        if isinstance(records, Mapping):
            for key, items in records.items():
                self._records[canonicalize_island(key)] = [dict(r) for r in items]
        elif records is not None:
            self._records[MAIN] = [dict(r) for r in records]
        self.fail_islands = set(fail_islands)
        self.calls: List[int] = []

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FixtureFetcher":
        p = Path(path)
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise FetchError(f"cannot read land fixture {p}: {exc}") from exc
        # A saved endpoint response is accepted as well.
        if isinstance(raw, dict) and "data" in raw:
            raw = _items_from_payload(raw, MAIN)
        if not isinstance(raw, (dict, list)):
            raise FetchError(f"land fixture {p} must hold an object or a list")
        return cls(raw)

    def set_records(self, island_id: int, records: Iterable[Mapping[str, Any]]) -> None:
        self._records[int(island_id)] = [dict(r) for r in records]

    def fetch(self, island_id: int) -> List[Dict[str, Any]]:
        self.calls.append(island_id)
        if island_id in self.fail_islands:
            raise FetchError(f"fixture failure for island {island_id}", island_id=island_id)
        return [dict(r) for r in self._records.get(island_id, [])]
