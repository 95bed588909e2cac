from __future__ import annotations

from upflix_api.api.caching.record_store import RecordStore

__all__ = ["RecordStore"]
