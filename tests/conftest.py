from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

import pytest
import requests

from e2transcode import enigma2

FIXTURE_DIR = Path(__file__).parent / "fixtures"
FAVOURITES_REF = '1:7:1:0:0:0:0:0:0:0:FROM BOUQUET "userbouquet.favourites.tv" ORDER BY bouquet'


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Union[bytes, Exception] = b""):
        self.status_code = status_code
        self._body = body
        self.closed = False

    @property
    def content(self) -> bytes:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.closed = True


class FakeSession:
    """Serves canned responses keyed by URL and records requested URLs."""

    def __init__(self) -> None:
        self.routes: Dict[str, Union[FakeResponse, Exception]] = {}
        self.requested: List[str] = []

    def add(self, url: str, body: Union[bytes, Exception] = b"", status_code: int = 200) -> None:
        self.routes[url] = FakeResponse(status_code, body)

    def fail(self, url: str, exc: Exception) -> None:
        self.routes[url] = exc

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"no route for {url}")
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture()
def fake_session(monkeypatch: pytest.MonkeyPatch) -> FakeSession:
    session = FakeSession()
    monkeypatch.setattr(enigma2, "_get_http_session", lambda: session)
    return session


@pytest.fixture()
def bouquets_xml() -> bytes:
    return (FIXTURE_DIR / "getservices.xml").read_bytes()


@pytest.fixture()
def channels_xml() -> bytes:
    return (FIXTURE_DIR / "getservices_favourites.xml").read_bytes()


@pytest.fixture()
def favourites_ref() -> str:
    return FAVOURITES_REF


@pytest.fixture()
def receiver_session(fake_session: FakeSession, bouquets_xml: bytes, channels_xml: bytes) -> FakeSession:
    fake_session.add("http://10.0.0.5/web/getservices", bouquets_xml)
    fake_session.add(enigma2.services_url("10.0.0.5", FAVOURITES_REF), channels_xml)
    return fake_session
