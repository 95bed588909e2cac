from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from upflix.models import MediaRecord


@dataclass(slots=True)
class FakeHTTPResponse:
    status_code: int = 200
    text: str = ""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class SessionCall:
    url: str
    timeout: float | None
    allow_redirects: bool


class FakeSession:
    """
    Minimal requests.Session mock with programmable routing.

    Records calls and returns whatever the router builds for each URL
    (a FakeHTTPResponse, or an exception instance to raise).
    """

    def __init__(self, router: Callable[[str], FakeHTTPResponse | BaseException]) -> None:
        self._router = router
        self.calls: list[SessionCall] = []

    def get(self, url: str, timeout: float | None = None, allow_redirects: bool = True):
        self.calls.append(SessionCall(url=url, timeout=timeout, allow_redirects=allow_redirects))
        out = self._router(url)
        if isinstance(out, BaseException):
            raise out
        return out


class FrozenClock:
    """Reloj UTC controlable para TTL (fetched_at es hora de pared, no monotonic)."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeFetcher:
    """Colaborador de fetch: devuelve registros programados y cuenta llamadas."""

    def __init__(self, clock: Callable[[], datetime], **fields: object) -> None:
        self._clock = clock
        self.fields = dict(fields)
        self.error: BaseException | None = None
        self.calls: list[str] = []

    def fetch(self, path: str) -> MediaRecord:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return MediaRecord(fetched_at=self._clock(), **self.fields)  # type: ignore[arg-type]


T0 = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture()
def inception_fields() -> dict[str, object]:
    return {
        "english_title": "Inception",
        "year": "2010",
        "genres": ("Sci-Fi", "Action"),
        "subscriptions": ("netflix",),
        "rents": (),
    }


@pytest.fixture()
def title_page_html() -> str:
    return (
        "<html><body>"
        "<h1> Incepcja </h1>"
        "<h2>Inception</h2>"
        '<span class="yr">2010</span>'
        '<div class="ge"><a href="/g/sf">Sci-Fi</a><a href="/g/ac">Akcja</a></div>'
        '<a class="fw" href="/r/fw/123">Filmweb</a>'
        '<a class="im" href="https://upflix.pl/r/im/456">IMDb</a>'
        '<div id="sc">'
        '<a href="/film/inception#vod-netflix">ABONAMENT</a>'
        '<a href="/film/inception#vod-hbomax">ABONAMENT</a>'
        '<a href="/film/inception#vod-netflix">ABONAMENT</a>'
        '<a href="/film/inception#vod-itunes">WYPOŻYCZENIE</a>'
        '<a href="/film/inception#vod-player">ZAKUP</a>'
        '<a href="/film/inception">WYPOŻYCZENIE</a>'
        "</div>"
        "</body></html>"
    )


@pytest.fixture()
def fake_fetcher(clock: FrozenClock, inception_fields: dict[str, object]) -> FakeFetcher:
    return FakeFetcher(clock, **inception_fields)


@pytest.fixture()
def make_session() -> Callable[[Callable[[str], FakeHTTPResponse | BaseException]], FakeSession]:
    return FakeSession


@pytest.fixture()
def make_response() -> type[FakeHTTPResponse]:
    return FakeHTTPResponse
