from __future__ import annotations

from upflix.client import RecordFetcher, UpflixClient
from upflix.cooldown import CooldownLimiter
from upflix.errors import CacheIOError, ExtractionError, TransportError, UpstreamError
from upflix.models import MediaRecord

__all__ = [
    "CacheIOError",
    "CooldownLimiter",
    "ExtractionError",
    "MediaRecord",
    "RecordFetcher",
    "TransportError",
    "UpflixClient",
    "UpstreamError",
]
