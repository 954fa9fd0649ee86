import json
import logging
from pathlib import Path

from gagoforge.constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, TOKEN_FILE

logger = logging.getLogger(__name__)


class TokenStore:
    """Durable key-value storage for the access/refresh token pair."""

    def __init__(self, path: Path = TOKEN_FILE) -> None:
        self._path = path

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data), encoding="utf-8")

    @property
    def access_token(self) -> str | None:
        return self._read().get(ACCESS_TOKEN_KEY) or None

    @property
    def refresh_token(self) -> str | None:
        return self._read().get(REFRESH_TOKEN_KEY) or None

    def set_tokens(self, access: str, refresh: str | None = None) -> None:
        data = self._read()
        data[ACCESS_TOKEN_KEY] = access
        if refresh:
            data[REFRESH_TOKEN_KEY] = refresh
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        data.pop(ACCESS_TOKEN_KEY, None)
        data.pop(REFRESH_TOKEN_KEY, None)
        if data:
            self._write(data)
        elif self._path.exists():
            self._path.unlink()
        logger.info("Stored credentials cleared")

    def is_authenticated(self) -> bool:
        return self.access_token is not None
