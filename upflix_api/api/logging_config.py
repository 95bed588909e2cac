# logger y utilidades de logging
from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from upflix_api.api.settings import Settings, _env_bool, _env_str

_FILE_HANDLER_TAG = "_upflix_api_file_handler"
_LOGGER_FILE_PATH_SENTINEL: object = object()
_LOGGER_FILE_PATH_CACHED: Path | None | object = _LOGGER_FILE_PATH_SENTINEL

SERVICE_LOGGER_NAME = "upflix_api"

# upflix_api/ (los paths relativos de logs cuelgan de aquí)
SERVER_DIR = Path(__file__).resolve().parents[1]

# Campos de `extra` que añadimos al final de cada línea de fichero.
_EXTRA_FIELDS: tuple[str, ...] = (
    "request_id",
    "error_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "outcome",
    "error",
)

# Librerías ruidosas: solo WARNING salvo que pidamos DEBUG.
_NOISY_LOGGERS: tuple[str, ...] = ("urllib3", "requests", "charset_normalizer")


class _ExtraFormatter(logging.Formatter):
    """Formatter que vuelca los campos `extra` conocidos como key=value."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        parts = [
            f"{name}={getattr(record, name)}"
            for name in _EXTRA_FIELDS
            if getattr(record, name, None) is not None
        ]
        return f"{base} {' '.join(parts)}" if parts else base


def _sanitize_filename_component(value: str) -> str:
    s = (value or "").strip()
    if not s:
        return ""
    out = []
    for ch in s:
        if ch.isalnum() or ch in ("-", "_", "."):
            out.append(ch)
        else:
            out.append("_")
    return "".join(out).strip("._-")


def _resolve_dir(raw: str, *, base: Path) -> Path:
    p = Path(raw)
    return p if p.is_absolute() else (base / p)


def _build_logger_file_path() -> Path | None:
    global _LOGGER_FILE_PATH_CACHED

    if _LOGGER_FILE_PATH_CACHED is not _LOGGER_FILE_PATH_SENTINEL:
        return None if _LOGGER_FILE_PATH_CACHED is None else _LOGGER_FILE_PATH_CACHED  # type: ignore[return-value]

    if not _env_bool("LOGGER_FILE_ENABLED", False):
        _LOGGER_FILE_PATH_CACHED = None
        return None

    raw_path = _env_str("LOGGER_FILE_PATH", "")
    if raw_path:
        _LOGGER_FILE_PATH_CACHED = _resolve_dir(raw_path, base=SERVER_DIR).resolve()
        return _LOGGER_FILE_PATH_CACHED

    log_dir = _resolve_dir(_env_str("LOGGER_FILE_DIR", "logs"), base=SERVER_DIR)
    prefix = _sanitize_filename_component(_env_str("LOGGER_FILE_PREFIX", "upflix")) or "upflix"
    ts_fmt = _env_str("LOGGER_FILE_TIMESTAMP_FORMAT", "%Y-%m-%d_%H-%M-%S")
    include_pid = _env_bool("LOGGER_FILE_INCLUDE_PID", True)

    ts = datetime.now().strftime(ts_fmt)
    pid_part = f"_{os.getpid()}" if include_pid else ""
    _LOGGER_FILE_PATH_CACHED = (log_dir / f"{prefix}_{ts}{pid_part}.log").resolve()
    return _LOGGER_FILE_PATH_CACHED


def _our_file_handlers(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, _FILE_HANDLER_TAG, False)]


def _has_our_file_handler(root: logging.Logger) -> bool:
    return bool(_our_file_handlers(root))


def _ensure_file_handler(root: logging.Logger, *, level: str) -> None:
    path = _build_logger_file_path()
    if path is None:
        return

    existing = _our_file_handlers(root)
    if existing:
        for handler in existing:
            handler.setLevel(level)
        return

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    except OSError:
        # Sin fichero seguimos con la consola de uvicorn.
        return

    handler.setLevel(level)
    handler.setFormatter(
        _ExtraFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    setattr(handler, _FILE_HANDLER_TAG, True)
    root.addHandler(handler)


def _configure_external_loggers(level: str) -> None:
    external = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(external)


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Configuración mínima:
    - Respetamos handlers/format de quien ejecute (uvicorn, gunicorn, etc.).
    - Ajustamos nivel global, el del paquete `upflix` y el del servicio.
    - Idempotente: se llama desde cada middleware/handler.
    """
    root = logging.getLogger()
    root.setLevel(settings.log_level)
    _ensure_file_handler(root, level=settings.log_level)
    _configure_external_loggers(settings.log_level)

    logging.getLogger("upflix").setLevel(settings.log_level)

    logger = logging.getLogger(SERVICE_LOGGER_NAME)
    logger.setLevel(settings.log_level)
    return logger
