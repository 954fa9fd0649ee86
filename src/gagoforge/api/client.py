from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import httpx

from gagoforge.constants import (
    API_BASE_URL,
    AUTH_PATHS,
    AUTH_REFRESH_PATH,
    MAX_RETRIES,
    NETWORK_ERROR_MESSAGE,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF,
)
from gagoforge.tokens import TokenStore

logger = logging.getLogger(__name__)


class ForgeError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def detail(self) -> str | None:
        if isinstance(self.payload, dict):
            detail = self.payload.get("detail")
            if detail:
                return str(detail)
        return None


class AuthenticationError(ForgeError):
    pass


class NetworkError(ForgeError):
    pass


class ValidationError(ForgeError):
    pass


class NotFoundError(ForgeError):
    pass


def flatten_field_errors(payload: Any) -> str:
    """Join DRF-style field errors into ``field: msg, msg; field: msg``."""
    if not isinstance(payload, dict):
        return ""
    parts = []
    for name, errors in payload.items():
        if isinstance(errors, (list, tuple)):
            message = ", ".join(str(e) for e in errors)
        elif isinstance(errors, dict):
            message = flatten_field_errors(errors)
        else:
            message = str(errors)
        parts.append(f"{name}: {message}")
    return "; ".join(parts)


def describe_error(exc: Exception, default: str) -> str:
    """Single human-readable message for any failed request."""
    if isinstance(exc, NetworkError):
        return NETWORK_ERROR_MESSAGE
    if not isinstance(exc, ForgeError):
        return str(exc) or default
    data = exc.payload
    if isinstance(data, str) and data.strip():
        return data
    if isinstance(data, dict):
        for key in ("detail", "message", "error"):
            if data.get(key):
                return str(data[key])
        non_field = data.get("non_field_errors")
        if non_field:
            if isinstance(non_field, (list, tuple)):
                return ", ".join(str(e) for e in non_field)
            return str(non_field)
        flattened = flatten_field_errors(data)
        if flattened:
            return flattened
    return default


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class ForgeClient:
    """Bearer-token JSON client for the challenge backend."""

    def __init__(
        self,
        tokens: TokenStore,
        base_url: str = API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tokens = tokens
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._auth_failure_listeners: list[Callable[[], None]] = []

    def add_auth_failure_listener(self, callback: Callable[[], None]) -> None:
        self._auth_failure_listeners.append(callback)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
                limits=httpx.Limits(
                    max_connections=10,
                    max_keepalive_connections=5,
                    keepalive_expiry=30,
                ),
                transport=self._transport,
            )
        return self._client

    def _auth_headers(self) -> dict:
        token = self._tokens.access_token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def get(self, path: str, params: dict | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, json: dict | None = None) -> Any:
        return await self._request("POST", path, json=json)

    async def patch(self, path: str, json: dict | None = None) -> Any:
        return await self._request("PATCH", path, json=json)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        response = await self._send(method, path, params=params, json=json)
        if response.status_code == 401 and path not in AUTH_PATHS:
            if await self._refresh_access_token():
                response = await self._send(method, path, params=params, json=json)
            if response.status_code == 401:
                self._force_logout()
                raise AuthenticationError(
                    "Session expired or invalid",
                    status_code=401,
                    payload=_payload(response),
                )
        return self._handle(response)

    async def _send(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> httpx.Response:
        # Only idempotent reads are retried; a repeated POST could double-submit
        retries = self._max_retries if method == "GET" else 0
        last_error: Exception | None = None
        for attempt in range(retries + 1):
            try:
                client = await self._get_client()
                response = await client.request(
                    method, path, params=params, json=json,
                    headers=self._auth_headers(),
                )
                if response.status_code >= 500 and attempt < retries:
                    logger.warning("%s %s -> %d, retrying", method, path,
                                   response.status_code)
                    await asyncio.sleep(RETRY_BACKOFF * 2 ** attempt)
                    continue
                return response
            except (httpx.TransportError, httpx.TimeoutException) as e:
                last_error = e
                logger.warning("%s %s failed: %s", method, path, e)
                if attempt < retries:
                    await asyncio.sleep(RETRY_BACKOFF * 2 ** attempt)
                    continue
                raise NetworkError(f"Network error: {e}") from e

        raise NetworkError(f"Request failed after {retries} retries: {last_error}")

    async def _refresh_access_token(self) -> bool:
        refresh = self._tokens.refresh_token
        if not refresh:
            return False
        try:
            client = await self._get_client()
            response = await client.post(AUTH_REFRESH_PATH, json={"refresh": refresh})
        except (httpx.TransportError, httpx.TimeoutException) as e:
            logger.warning("Token refresh failed: %s", e)
            return False
        if response.status_code != 200:
            logger.info("Token refresh rejected: %d", response.status_code)
            return False
        data = _payload(response)
        access = data.get("access") if isinstance(data, dict) else None
        if not access:
            return False
        self._tokens.set_tokens(access, data.get("refresh"))
        logger.info("Access token refreshed")
        return True

    def _force_logout(self) -> None:
        logger.info("Authorization failed after refresh, clearing credentials")
        self._tokens.clear()
        for callback in self._auth_failure_listeners:
            callback()

    def _handle(self, response: httpx.Response) -> Any:
        status = response.status_code
        if status < 400:
            if status == 204 or not response.content:
                return {}
            return _payload(response)

        data = _payload(response)
        if status == 401:
            raise AuthenticationError("Invalid credentials", status_code=status, payload=data)
        if status == 404:
            raise NotFoundError("Not found", status_code=status, payload=data)
        if status == 400:
            message = describe_error(
                ForgeError("", payload=data), f"HTTP error: {status}"
            )
            raise ValidationError(message, status_code=status, payload=data)
        if status >= 500:
            raise NetworkError(f"Server error: {status}", status_code=status, payload=data)
        raise ForgeError(f"HTTP error: {status}", status_code=status, payload=data)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
