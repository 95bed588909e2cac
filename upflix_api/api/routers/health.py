from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response

from upflix.cooldown import CooldownLimiter
from upflix.errors import CacheIOError

from upflix_api.api.caching.record_store import RecordStore
from upflix_api.api.deps import get_rate_limiter, get_record_store
from upflix_api.api.services import metrics

router = APIRouter()


@router.get("/health")
def health() -> dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@router.get("/ready")
def ready(
    store: RecordStore = Depends(get_record_store),
    limiter: CooldownLimiter = Depends(get_rate_limiter),
) -> dict[str, Any]:
    """
    Readiness:
    - la caché persistente se puede leer (un fichero inexistente cuenta como vacío).
    - informa del estado del limitador (no afecta a la disponibilidad).
    """
    try:
        entries = store.count()
    except CacheIOError as exc:
        raise HTTPException(
            status_code=503,
            detail={"ready": False, "issues": {"record_cache": f"unreadable: {store.path} ({exc})"}},
        )

    return {
        "ready": True,
        "ts": datetime.now(timezone.utc).isoformat(),
        "cache_entries": entries,
        "rate_limiter": limiter.state(),
        "cooldown_remaining_s": round(limiter.remaining_seconds(), 1),
    }


@router.get("/metrics")
def metrics_endpoint() -> Response:
    body = metrics.render_prometheus()
    return Response(content=body, media_type="text/plain; version=0.0.4")
