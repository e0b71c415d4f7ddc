import json

import pytest
import requests

from landb.errors import FetchError
from landb.fetcher import FixtureFetcher, LandFetcher
from landb.islands import DIVINITY, MAIN, WIZARD


class FakeResponse:
    def __init__(self, status_code=200, payload=None, bad_json=False):
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.headers = {}
        self.response = response
        self.exc = exc
        self.calls = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


def _payload(items):
    return {"code": 0, "data": {"items": items}}


def test_fetch_posts_json_and_returns_items():
    session = FakeSession(FakeResponse(payload=_payload([{"tokenId": 1}])))
    fetcher = LandFetcher(url="https://lands.example/api/v1/land/info", timeout=5, session=session)
    assert fetcher.fetch(MAIN) == [{"tokenId": 1}]
    assert fetcher.fetch(WIZARD) == [{"tokenId": 1}]
    assert session.calls[0] == {
        "url": "https://lands.example/api/v1/land/info", "json": {}, "timeout": 5,
    }
    assert session.calls[1]["json"] == {"islandId": WIZARD}
    assert session.headers["Path"] == "/api/v1/land/info"
    assert session.headers["Content-Type"] == "application/json"
    assert "Mozilla" in session.headers["User-Agent"]


def test_custom_headers_and_user_agent():
    session = FakeSession(FakeResponse(payload=_payload([])))
    LandFetcher(session=session, user_agent="landb-test", headers={"X-Api-Key": "k"})
    assert session.headers["User-Agent"] == "landb-test"
    assert session.headers["X-Api-Key"] == "k"


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(exc=requests.ConnectionError("boom")),
        FakeSession(FakeResponse(status_code=503)),
        FakeSession(FakeResponse(bad_json=True)),
        FakeSession(FakeResponse(payload={"data": {}})),
        FakeSession(FakeResponse(payload=["unexpected"])),
    ],
)
def test_fetch_failures_raise_fetch_error(session):
    fetcher = LandFetcher(session=session)
    with pytest.raises(FetchError) as excinfo:
        fetcher.fetch(DIVINITY)
    assert excinfo.value.island_id == DIVINITY


def test_close_closes_session():
    session = FakeSession()
    LandFetcher(session=session).close()
    assert session.closed


def test_fixture_fetcher_accepts_island_names_and_lists(tmp_path):
    fetcher = FixtureFetcher({"main": [{"tokenId": 1}], "2": [{"tokenId": 2}]})
    assert fetcher.fetch(MAIN) == [{"tokenId": 1}]
    assert fetcher.fetch(WIZARD) == [{"tokenId": 2}]
    assert fetcher.fetch(DIVINITY) == []
    assert fetcher.calls == [MAIN, WIZARD, DIVINITY]

    assert FixtureFetcher([{"tokenId": 3}]).fetch(MAIN) == [{"tokenId": 3}]

    saved = tmp_path / "response.json"
    saved.write_text(json.dumps(_payload([{"tokenId": 4}])), encoding="utf-8")
    assert FixtureFetcher.from_file(saved).fetch(MAIN) == [{"tokenId": 4}]


def test_fixture_fetcher_bad_file(tmp_path):
    with pytest.raises(FetchError):
        FixtureFetcher.from_file(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("42", encoding="utf-8")
    with pytest.raises(FetchError):
        FixtureFetcher.from_file(bad)
