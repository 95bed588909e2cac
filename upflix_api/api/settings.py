# lectura de env vars + defaults
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from dotenv import load_dotenv

# En producción no sobre-escribimos env vars ya definidas.
load_dotenv(override=False)

_TRUE_SET: Final[set[str]] = {"1", "true", "t", "yes", "y", "on"}
_FALSE_SET: Final[set[str]] = {"0", "false", "f", "no", "n", "off"}

DEFAULT_BASE_URL: Final[str] = "https://upflix.pl"
DEFAULT_USER_AGENT: Final[str] = "upflix-api/1.0 (+https://upflix.pl)"
DEFAULT_CACHE_TTL_SECONDS: Final[float] = 7 * 24 * 60 * 60.0
DEFAULT_COOLDOWN_SECONDS: Final[float] = 10 * 60.0
DEFAULT_BLOCK_SENTINEL_TITLE: Final[str] = "Miss Christmas"


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip()
    return val if val else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip().lower()
    if s in _TRUE_SET:
        return True
    if s in _FALSE_SET:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    """
    Settings centralizados (env vars). Esto evita `os.getenv(...)` disperso.

    Notas importantes:
    - CORS: si CORS_ORIGINS="*" -> allow_credentials=False para compatibilidad browser.
    - UPFLIX_HTTP_RETRY_TOTAL: default 0 (el servicio no reintenta por su cuenta).
    - TTL de caché (7 días) y cooldown (10 min) son configurables pero
      los defaults son el contrato del servicio.
    """

    log_level: str

    cors_origins_raw: str
    cors_allow_credentials: bool

    gzip_min_size: int

    upstream_base_url: str
    upstream_timeout_s: float
    upstream_user_agent: str
    upstream_retry_total: int
    upstream_retry_backoff: float

    cache_ttl_seconds: float
    cooldown_seconds: float
    block_sentinel_title: str

    def cors_allow_origins(self) -> list[str]:
        raw = self.cors_origins_raw.strip()
        if raw == "*":
            return ["*"]
        parts = [p.strip() for p in raw.split(",")]
        return [p for p in parts if p]

    @staticmethod
    def from_env() -> "Settings":
        cors_raw = _env_str("CORS_ORIGINS", "*")
        allow_origins = ["*"] if cors_raw.strip() == "*" else [p.strip() for p in cors_raw.split(",") if p.strip()]

        # Regla browser: "*" + credentials=True no es válido
        cors_allow_credentials = True
        if allow_origins == ["*"]:
            cors_allow_credentials = False

        return Settings(
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            cors_origins_raw=cors_raw,
            cors_allow_credentials=cors_allow_credentials,
            gzip_min_size=_env_int("GZIP_MIN_SIZE", 800),
            upstream_base_url=_env_str("UPFLIX_BASE_URL", DEFAULT_BASE_URL),
            upstream_timeout_s=max(0.5, _env_float("UPFLIX_HTTP_TIMEOUT_SECONDS", 10.0)),
            upstream_user_agent=_env_str("UPFLIX_HTTP_USER_AGENT", DEFAULT_USER_AGENT),
            upstream_retry_total=max(0, _env_int("UPFLIX_HTTP_RETRY_TOTAL", 0)),
            upstream_retry_backoff=max(0.0, _env_float("UPFLIX_HTTP_RETRY_BACKOFF_FACTOR", 0.5)),
            cache_ttl_seconds=max(0.0, _env_float("UPFLIX_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)),
            cooldown_seconds=max(0.0, _env_float("UPFLIX_COOLDOWN_SECONDS", DEFAULT_COOLDOWN_SECONDS)),
            block_sentinel_title=_env_str("UPFLIX_BLOCK_SENTINEL_TITLE", DEFAULT_BLOCK_SENTINEL_TITLE),
        )
