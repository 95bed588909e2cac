# BASE_DIR + resolve_path + paths globales
from __future__ import annotations

from pathlib import Path

from upflix_api.api.settings import _env_str


# upflix_api/api/paths.py -> repo_root = parents[2] (upflix_api/api/*)
BASE_DIR = Path(__file__).resolve().parents[2]


def resolve_path(env_name: str, default: Path) -> Path:
    raw = _env_str(env_name, "").strip('"').strip("'")
    if not raw:
        return default
    p = Path(raw).expanduser()
    if not p.is_absolute():
        p = (BASE_DIR / p).resolve()
    return p


RECORD_CACHE_PATH = resolve_path(
    "UPFLIX_CACHE_PATH",
    BASE_DIR / "data" / "upflix_cache.json",
)
