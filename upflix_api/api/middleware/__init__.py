from __future__ import annotations

from upflix_api.api.middleware.errors import (
    build_cache_error_handler,
    build_exception_handler,
    build_upstream_error_handler,
    register_exception_handlers,
)
from upflix_api.api.middleware.request_id import build_request_id_middleware

__all__ = [
    "build_cache_error_handler",
    "build_exception_handler",
    "build_request_id_middleware",
    "build_upstream_error_handler",
    "register_exception_handlers",
]
