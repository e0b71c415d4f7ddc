import json
import logging
import os
import socket
import sys
import urllib.request
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
FIXTURES = Path(__file__).resolve().parent / "fixtures"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from landb.config import Settings, reset_settings_cache  # noqa: E402
from landb.fetcher import FixtureFetcher  # noqa: E402
from landb.islands import DIVINITY, MAIN  # noqa: E402
from landb.repository import LandRepository  # noqa: E402
from landb.store import LandSQLite  # noqa: E402


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0] if isinstance(address, tuple) else address
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("LANDB_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()
    # The CLI installs its own handler; hand records back to caplog.
    landb_logger = logging.getLogger("landb")
    landb_logger.handlers[:] = []
    landb_logger.propagate = True
    landb_logger.setLevel(logging.NOTSET)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = float(now)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def record(token_id, x, y, weight=1, owner="0xAAA", **extra):
    out = {
        "regionWeight": weight,
        "regionId": extra.pop("region_id", token_id),
        "x": x,
        "y": y,
        "imageUrl": "",
        "imageStatus": "none",
        "level": extra.pop("level", 1),
        "onMarket": extra.pop("on_market", 0),
        "userAddress": owner,
        "tokenId": token_id,
        "marketX": 0,
        "marketY": 0,
        "signType": extra.pop("sign_type", 0),
    }
    out.update(extra)
    return out


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fixture_path():
    return FIXTURES / "lands.json"


@pytest.fixture
def fixture_records(fixture_path):
    return json.loads(fixture_path.read_text(encoding="utf-8"))


@pytest.fixture
def make_record():
    return record


@pytest.fixture
def make_repo(clock):
    """Build an in-memory repository over the given records, not yet refreshed."""

    repos = []

    def _make(records, *, islands=(MAIN,), interval=60, fetcher=None, **kwargs):
        fetcher = fetcher or FixtureFetcher(records)
        settings = Settings(islands=tuple(islands), fetch_interval_s=interval)
        repo = LandRepository(LandSQLite(), fetcher, settings, clock=clock, **kwargs)
        repos.append(repo)
        return repo

    yield _make
    for repo in repos:
        repo.close()


@pytest.fixture
def repo(make_repo, fixture_records):
    """Repository loaded with tests/fixtures/lands.json (main + divinity)."""

    r = make_repo(fixture_records, islands=(MAIN, DIVINITY))
    assert r.refresh()
    return r
