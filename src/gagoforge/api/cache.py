import json
import re
import time
from pathlib import Path

from gagoforge.constants import CACHE_DIR

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def _cache_path(key: str, directory: Path) -> Path:
    return directory / f"{_UNSAFE.sub('_', key)}.json"


def get_cached(key: str, ttl: float, directory: Path = CACHE_DIR) -> dict | None:
    path = _cache_path(key, directory)
    if not path.exists():
        return None
    try:
        age = time.time() - path.stat().st_mtime
        if age > ttl:
            return None
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return None


def set_cached(key: str, data: dict, directory: Path = CACHE_DIR) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    path = _cache_path(key, directory)
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


def invalidate(key: str, directory: Path = CACHE_DIR) -> None:
    path = _cache_path(key, directory)
    if path.exists():
        path.unlink()
