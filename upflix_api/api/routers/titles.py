# GET /<catalogue-path> (+ favicon)
from __future__ import annotations

import math
from typing import Final
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from upflix_api.api.deps import get_title_service
from upflix_api.api.services.titles import TitleService

router = APIRouter()

JSON_MEDIA_TYPE: Final[str] = "application/json"

_FORCE_FALSE: Final[set[str]] = {"0", "false", "no", "off"}


def is_forced(request: Request) -> bool:
    """`?force`, `?force=1`, `?force=yes`... => True. `?force=0|false|no|off` => False."""
    if "force" not in request.query_params:
        return False
    raw = (request.query_params.get("force") or "").strip().lower()
    return raw not in _FORCE_FALSE


def catalogue_key(request: Request, catalogue_path: str) -> str:
    """
    Path tal cual lo envió el cliente (sin query string), aún codificado.

    request.url.path se reconstruye desde el path decodificado, así que
    `/film/a%3Fb` acabaría como `/film/a`. raw_path conserva los escapes.
    """
    raw = request.scope.get("raw_path")
    if isinstance(raw, (bytes, bytearray)) and raw:
        return bytes(raw).split(b"?", 1)[0].decode("latin-1")
    return "/" + quote(catalogue_path, safe="/:@!$&'()*+,;=~")


def rate_limited_response(retry_after_s: float) -> Response:
    # 429 con content-type JSON y cuerpo vacío.
    headers = {"Retry-After": str(max(1, math.ceil(retry_after_s)))}
    return Response(status_code=429, media_type=JSON_MEDIA_TYPE, headers=headers)


@router.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return Response(status_code=404)


@router.get("/{catalogue_path:path}")
def title(
    catalogue_path: str,
    request: Request,
    service: TitleService = Depends(get_title_service),
) -> Response:
    result = service.lookup(catalogue_key(request, catalogue_path), bypass=is_forced(request))

    if result.rate_limited or result.record is None:
        return rate_limited_response(service.limiter.remaining_seconds())

    return JSONResponse(content=result.record.to_dict())
