from __future__ import annotations

"""
upflix_api/api/services/titles.py

Orquestador por request: limitador -> caché -> fetch upstream ->
detección de bloqueo -> escritura en caché.

- bypass=True (query ?force) salta limitador y caché, pero NO resetea el
  limitador ni evita la detección del título centinela.
- Errores de fetch (UpstreamError) se propagan tal cual: ni se cachean ni
  activan el limitador. CacheIOError también se propaga.
- Deduplicación por key: un lock por path serializa los fetches; quien
  esperaba vuelve a mirar limitador y caché antes de ir a upstream.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Final, Literal

from upflix.client import RecordFetcher
from upflix.cooldown import CooldownLimiter
from upflix.errors import UpstreamError
from upflix.models import MediaRecord

from upflix_api.api.caching.record_store import RecordStore
from upflix_api.api.services import metrics
from upflix_api.api.settings import DEFAULT_BLOCK_SENTINEL_TITLE

LookupStatus = Literal["cached", "fetched", "rate_limited"]

logger = logging.getLogger("upflix_api.titles")


@dataclass(frozen=True)
class TitleLookup:
    status: LookupStatus
    record: MediaRecord | None = None

    @property
    def rate_limited(self) -> bool:
        return self.status == "rate_limited"


_RATE_LIMITED: Final[TitleLookup] = TitleLookup(status="rate_limited")


class TitleService:
    def __init__(
        self,
        *,
        store: RecordStore,
        limiter: CooldownLimiter,
        fetcher: RecordFetcher,
        block_sentinel_title: str = DEFAULT_BLOCK_SENTINEL_TITLE,
    ) -> None:
        self._store = store
        self._limiter = limiter
        self._fetcher = fetcher
        self._sentinel = block_sentinel_title

        self._locks_guard = Lock()
        self._key_locks: dict[str, Lock] = {}
        self._key_users: dict[str, int] = {}

    @property
    def limiter(self) -> CooldownLimiter:
        return self._limiter

    @property
    def store(self) -> RecordStore:
        return self._store

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """
        Lock por key con contador de usuarios: la entrada se borra cuando sale
        el último, así _key_locks solo contiene paths con requests en vuelo.
        """
        with self._locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = Lock()
                self._key_locks[key] = lock
            self._key_users[key] = self._key_users.get(key, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                users = self._key_users[key] - 1
                if users:
                    self._key_users[key] = users
                else:
                    del self._key_users[key]
                    del self._key_locks[key]

    def _short_circuit(self, path: str) -> TitleLookup | None:
        """Pasos 1 y 2 (solo sin bypass)."""
        if self._limiter.active():
            metrics.inc("rate_limited_total", 1)
            logger.info("rate limited: %s", path, extra={"path": path, "outcome": "rate_limited"})
            return _RATE_LIMITED

        cached = self._store.get(path)
        if cached is not None:
            metrics.inc("cache_hit_total", 1)
            logger.debug("cache hit: %s", path, extra={"path": path, "outcome": "cached"})
            return TitleLookup(status="cached", record=cached)

        return None

    def is_block_page(self, record: MediaRecord) -> bool:
        return record.english_title == self._sentinel

    def lookup(self, path: str, *, bypass: bool = False) -> TitleLookup:
        if not bypass:
            early = self._short_circuit(path)
            if early is not None:
                return early

        with self._key_lock(path):
            if not bypass:
                # Otro request pudo rellenar la caché (o recibir el bloqueo) mientras esperábamos.
                early = self._short_circuit(path)
                if early is not None:
                    return early
                metrics.inc("cache_miss_total", 1)

            return self._fetch_and_store(path)

    def _fetch_and_store(self, path: str) -> TitleLookup:
        metrics.inc("upstream_fetch_total", 1)
        try:
            record = self._fetcher.fetch(path)
        except UpstreamError as exc:
            metrics.inc("upstream_fetch_errors_total", 1)
            logger.warning(
                "upstream fetch failed: %s",
                path,
                extra={"path": path, "outcome": exc.kind, "error": str(exc)},
            )
            raise

        if self.is_block_page(record):
            self._limiter.signal_block()
            metrics.inc("block_signals_total", 1)
            metrics.inc("rate_limited_total", 1)
            logger.warning(
                "upstream block page detected; cooling down for %.0fs",
                self._limiter.cooldown_seconds,
                extra={"path": path, "outcome": "blocked"},
            )
            return _RATE_LIMITED

        self._store.store(path, record)
        logger.info("fetched: %s", path, extra={"path": path, "outcome": "fetched"})
        return TitleLookup(status="fetched", record=record)
