from __future__ import annotations

"""
upflix/client.py

Cliente upflix.pl: colaborador de fetch del orquestador.

fetch(path) -> MediaRecord
- GET del documento (timeout acotado).
- Extracción de campos (upflix.extract).
- Resolución de enlaces canónicos (filmweb / imdb): GET a la URL intermedia
  SIN seguir redirecciones y lectura de la cabecera Location.
- fetched_at = instante en que termina el fetch.

Errores:
- Red / timeout / status >= 400 del documento => TransportError.
- Documento vacío => ExtractionError.
No hay reintentos propios; el Retry de urllib3 solo actúa si
UPFLIX_HTTP_RETRY_TOTAL > 0.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Callable, Protocol
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from upflix.errors import TransportError
from upflix.extract import parse_page
from upflix.models import MediaRecord, utcnow

DEFAULT_BASE_URL = "https://upflix.pl"
DEFAULT_USER_AGENT = "upflix-api/1.0 (+https://upflix.pl)"

logger = logging.getLogger(__name__)


class RecordFetcher(Protocol):
    def fetch(self, path: str) -> MediaRecord: ...


def _cap_int(value: int, *, min_v: int, max_v: int) -> int:
    return max(min_v, min(max_v, value))


def _cap_float(value: float, *, min_v: float, max_v: float) -> float:
    return max(min_v, min(max_v, value))


def build_session(
    *,
    user_agent: str = DEFAULT_USER_AGENT,
    retry_total: int = 0,
    retry_backoff: float = 0.0,
) -> requests.Session:
    """requests.Session con Retry de urllib3 (solo 5xx, nunca 429) y pooling."""
    session = requests.Session()

    retries = Retry(
        total=_cap_int(int(retry_total), min_v=0, max_v=10),
        backoff_factor=_cap_float(float(retry_backoff), min_v=0.0, max_v=10.0),
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
        redirect=False,
    )
    adapter = HTTPAdapter(max_retries=retries, pool_connections=8, pool_maxsize=8)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    session.headers.update(
        {
            "User-Agent": user_agent.strip() or DEFAULT_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,*/*",
        }
    )
    return session


class UpflixClient:
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        retry_total: int = 0,
        retry_backoff: float = 0.0,
        session: requests.Session | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._timeout = _cap_float(float(timeout_seconds), min_v=0.5, max_v=120.0)
        self._user_agent = user_agent
        self._retry_total = retry_total
        self._retry_backoff = retry_backoff
        self._clock = clock

        self._session = session
        self._session_lock = threading.Lock()

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        with self._session_lock:
            if self._session is None:
                self._session = build_session(
                    user_agent=self._user_agent,
                    retry_total=self._retry_total,
                    retry_backoff=self._retry_backoff,
                )
            return self._session

    def url_for(self, path: str) -> str:
        return urljoin(self._base_url, path.lstrip("/"))

    def _get(self, url: str, *, path: str, allow_redirects: bool) -> requests.Response:
        try:
            return self._get_session().get(
                url, timeout=self._timeout, allow_redirects=allow_redirects
            )
        except RequestException as exc:
            raise TransportError(f"GET {url} failed: {exc!r}", path=path) from exc

    def resolve_link(self, href: str | None, *, path: str) -> str | None:
        """URL intermedia -> Location. Sin href o sin Location => None."""
        if not href:
            return None
        url = urljoin(self._base_url, href)
        response = self._get(url, path=path, allow_redirects=False)
        location = response.headers.get("location")
        if not location:
            logger.debug("no Location for %s (status=%s)", url, response.status_code)
            return None
        return location

    def fetch(self, path: str) -> MediaRecord:
        url = self.url_for(path)
        start = time.monotonic()

        response = self._get(url, path=path, allow_redirects=True)
        if response.status_code >= 400:
            raise TransportError(
                f"GET {url} returned HTTP {response.status_code}",
                path=path,
                status_code=response.status_code,
            )

        page = parse_page(response.text)
        if page.missing:
            logger.info("partial extraction for %s (missing=%s)", path, ",".join(page.missing))

        filmweb_url = self.resolve_link(page.filmweb_href, path=path)
        imdb_url = self.resolve_link(page.imdb_href, path=path)

        record = MediaRecord(
            fetched_at=self._clock(),
            polish_title=page.polish_title,
            english_title=page.english_title,
            year=page.year,
            genres=page.genres,
            filmweb_url=filmweb_url,
            imdb_url=imdb_url,
            subscriptions=page.subscriptions,
            rents=page.rents,
        )

        logger.debug(
            "fetched %s in %dms", path, int((time.monotonic() - start) * 1000)
        )
        return record
