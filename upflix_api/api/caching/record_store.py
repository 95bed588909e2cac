# Caché persistente de MediaRecord por path (TTL lazy + escritura atómica)
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from datetime import datetime, timedelta
from pathlib import Path
from threading import RLock
from typing import Callable, Final

from upflix.errors import CacheIOError
from upflix.models import MediaRecord, utcnow

from upflix_api.api.services import metrics

SCHEMA_VERSION: Final[int] = 1
DEFAULT_TTL_SECONDS: Final[float] = 7 * 24 * 60 * 60.0


class RecordStore:
    """
    Caché clave(path) -> MediaRecord sobre un fichero JSON.

    Contrato:
    - has/get/store son transacciones atómicas bajo lock (+ escritura
      temp/fsync/replace en store). Ningún lector ve un registro a medias y
      los writers sobre la misma key se serializan (gana el último en completar).
    - Los registros se mantienen en memoria; el fichero solo se vuelve a leer
      si cambia su (mtime_ns, size), p.ej. si otro proceso lo reescribe.
    - Caducidad lazy: válido sii now - fetched_at < TTL. Lo caducado sigue en
      disco hasta que se sobre-escribe, pero has/get lo tratan como ausente.
    - Fichero corrupto => CacheIOError (no se "recrea vacío").
    """

    def __init__(
        self,
        path: Path,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._path = Path(path)
        self._ttl = timedelta(seconds=max(0.0, float(ttl_seconds)))
        self._clock = clock
        self._lock = RLock()

        self._records: dict[str, object] | None = None
        self._stamp: tuple[int, int] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # ---------------------------------------------------------
    # I/O (siempre bajo self._lock)
    # ---------------------------------------------------------

    def _read_records_unlocked(self) -> dict[str, object]:
        if not self._path.exists():
            return {}

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"cannot read cache file {self._path}: {exc!r}") from exc

        if not isinstance(raw, Mapping) or raw.get("schema") != SCHEMA_VERSION:
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"unexpected cache layout in {self._path}")

        records = raw.get("records")
        if not isinstance(records, Mapping):
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"cache file {self._path}: missing 'records' object")

        return dict(records)

    def _stat_unlocked(self) -> tuple[int, int] | None:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"cannot stat cache file {self._path}: {exc!r}") from exc
        return (st.st_mtime_ns, st.st_size)

    def _load_unlocked(self) -> dict[str, object]:
        stamp = self._stat_unlocked()
        if stamp is None:
            self._records, self._stamp = {}, None
            return self._records
        if self._records is not None and stamp == self._stamp:
            return self._records

        records = self._read_records_unlocked()
        self._records, self._stamp = records, stamp
        return records

    def _write_records_unlocked(self, records: Mapping[str, object]) -> None:
        """
        Escritura atómica:
        - temp file en el mismo directorio
        - fsync
        - replace
        """
        payload = {"schema": SCHEMA_VERSION, "records": dict(records)}
        temp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", delete=False, dir=str(self._path.parent), suffix=".tmp"
            ) as tf:
                temp_name = tf.name
                json.dump(payload, tf, ensure_ascii=False, indent=2)
                tf.flush()
                os.fsync(tf.fileno())
            os.replace(temp_name, self._path)
            temp_name = None
        except OSError as exc:
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"cannot write cache file {self._path}: {exc!r}") from exc
        finally:
            if temp_name is not None and os.path.exists(temp_name):
                try:
                    os.remove(temp_name)
                except OSError:
                    pass

    def _decode_entry(self, key: str, entry: object) -> MediaRecord:
        if not isinstance(entry, Mapping):
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"cache entry for {key!r} is not an object")
        try:
            return MediaRecord.from_dict(entry)
        except ValueError as exc:
            metrics.inc("cache_io_errors_total", 1)
            raise CacheIOError(f"cache entry for {key!r} is invalid: {exc}") from exc

    def _is_valid(self, record: MediaRecord) -> bool:
        return (self._clock() - record.fetched_at) < self._ttl

    def _get_valid_unlocked(self, key: str) -> MediaRecord | None:
        entry = self._load_unlocked().get(key)
        if entry is None:
            return None
        record = self._decode_entry(key, entry)
        return record if self._is_valid(record) else None

    # ---------------------------------------------------------
    # API pública
    # ---------------------------------------------------------

    def has(self, key: str) -> bool:
        with self._lock:
            return self._get_valid_unlocked(key) is not None

    def get(self, key: str) -> MediaRecord | None:
        with self._lock:
            return self._get_valid_unlocked(key)

    def store(self, key: str, value: MediaRecord) -> None:
        with self._lock:
            records = dict(self._load_unlocked())
            # Precisión completa en disco: el TTL se mide desde el fetched_at exacto.
            records[key] = value.to_dict(precise=True)
            self._write_records_unlocked(records)
            self._records, self._stamp = records, self._stat_unlocked()
        metrics.inc("cache_store_total", 1)

    def count(self) -> int:
        """Entradas en disco (válidas o caducadas)."""
        with self._lock:
            return len(self._load_unlocked())
