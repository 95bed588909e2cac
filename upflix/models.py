from __future__ import annotations

"""
upflix/models.py

MediaRecord: resultado normalizado de un título del catálogo.

- fetched_at: instante UTC en que terminó el fetch upstream (base del TTL).
- subscriptions / rents: conjuntos de proveedores, guardados como tuplas
  deduplicadas en orden de aparición para que el JSON sea estable.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime, *, precise: bool = False) -> str:
    """
    ISO-8601 UTC con sufijo Z.

    - precise=False: segundos (2024-05-01T10:00:00Z), forma de la respuesta.
    - precise=True: microsegundos (2024-05-01T10:00:00.900000Z), forma
      persistida; el TTL se mide contra el instante exacto.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    fmt = "%Y-%m-%dT%H:%M:%S.%fZ" if precise else "%Y-%m-%dT%H:%M:%SZ"
    return dt.astimezone(timezone.utc).strftime(fmt)


def parse_timestamp(raw: str) -> datetime:
    s = raw.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def unique_in_order(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return tuple(out)


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _str_seq(value: object) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v for v in value if isinstance(v, str))


@dataclass(frozen=True)
class MediaRecord:
    fetched_at: datetime
    polish_title: str | None = None
    english_title: str | None = None
    year: str | None = None
    genres: tuple[str, ...] = field(default_factory=tuple)
    filmweb_url: str | None = None
    imdb_url: str | None = None
    subscriptions: tuple[str, ...] = field(default_factory=tuple)
    rents: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # frozen: normalizamos vía object.__setattr__
        object.__setattr__(self, "genres", tuple(self.genres))
        object.__setattr__(self, "subscriptions", unique_in_order(self.subscriptions))
        object.__setattr__(self, "rents", unique_in_order(self.rents))

    def to_dict(self, *, precise: bool = False) -> dict[str, object]:
        return {
            "fetched_at": format_timestamp(self.fetched_at, precise=precise),
            "polish_title": self.polish_title,
            "english_title": self.english_title,
            "year": self.year,
            "genres": list(self.genres),
            "filmweb_url": self.filmweb_url,
            "imdb_url": self.imdb_url,
            "subscriptions": list(self.subscriptions),
            "rents": list(self.rents),
        }

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "MediaRecord":
        """
        Parsea la forma persistida.

        Lanza ValueError si falta fetched_at o no es un timestamp válido:
        sin fetched_at no hay forma de decidir la caducidad.
        """
        raw_ts = data.get("fetched_at")
        if not isinstance(raw_ts, str) or not raw_ts.strip():
            raise ValueError("record without fetched_at")

        return MediaRecord(
            fetched_at=parse_timestamp(raw_ts),
            polish_title=_opt_str(data.get("polish_title")),
            english_title=_opt_str(data.get("english_title")),
            year=_opt_str(data.get("year")),
            genres=_str_seq(data.get("genres")),
            filmweb_url=_opt_str(data.get("filmweb_url")),
            imdb_url=_opt_str(data.get("imdb_url")),
            subscriptions=_str_seq(data.get("subscriptions")),
            rents=_str_seq(data.get("rents")),
        )
