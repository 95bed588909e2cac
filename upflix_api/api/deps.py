from __future__ import annotations

from upflix.client import UpflixClient
from upflix.cooldown import CooldownLimiter

from upflix_api.api.caching.record_store import RecordStore
from upflix_api.api.paths import RECORD_CACHE_PATH
from upflix_api.api.services.titles import TitleService
from upflix_api.api.settings import Settings

_SETTINGS = Settings.from_env()

# Estado de proceso: una única instancia compartida por todos los requests.
_RECORD_STORE = RecordStore(RECORD_CACHE_PATH, ttl_seconds=_SETTINGS.cache_ttl_seconds)
_RATE_LIMITER = CooldownLimiter(cooldown_seconds=_SETTINGS.cooldown_seconds)
_UPFLIX_CLIENT = UpflixClient(
    base_url=_SETTINGS.upstream_base_url,
    timeout_seconds=_SETTINGS.upstream_timeout_s,
    user_agent=_SETTINGS.upstream_user_agent,
    retry_total=_SETTINGS.upstream_retry_total,
    retry_backoff=_SETTINGS.upstream_retry_backoff,
)
_TITLE_SERVICE = TitleService(
    store=_RECORD_STORE,
    limiter=_RATE_LIMITER,
    fetcher=_UPFLIX_CLIENT,
    block_sentinel_title=_SETTINGS.block_sentinel_title,
)


def get_settings() -> Settings:
    return _SETTINGS


def get_record_store() -> RecordStore:
    return _RECORD_STORE


def get_rate_limiter() -> CooldownLimiter:
    return _RATE_LIMITER


def get_title_service() -> TitleService:
    return _TITLE_SERVICE
