from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from gagoforge.api.auth import AuthService
from gagoforge.api.client import ForgeClient, ForgeError, describe_error
from gagoforge.models.user import User
from gagoforge.tokens import TokenStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def validate_registration(
    username: str, email: str, password: str, confirm: str
) -> str:
    """Local checks run before a register request; empty string when valid."""
    if not (username and email and password and confirm):
        return "Please fill in all fields"
    if password != confirm:
        return "Passwords do not match"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return ""


@dataclass
class LoginResult:
    success: bool
    user: User | None = None
    error: str = ""


class Session:
    """Process-wide authentication state.

    Constructed once at startup and passed to whatever needs to know who
    is signed in.  ``init()`` probes stored credentials, ``teardown()``
    clears them.
    """

    def __init__(self, client: ForgeClient, tokens: TokenStore) -> None:
        self._client = client
        self._tokens = tokens
        self._auth = AuthService(client)
        self.user: User | None = None
        self.is_logged_in: bool = False
        self.loading: bool = True
        self._listeners: list[Callable[[], None]] = []
        client.add_auth_failure_listener(self._on_auth_failure)

    def add_logout_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    async def init(self) -> None:
        """Confirm stored credentials with the server, or drop them."""
        self.loading = True
        try:
            if self._tokens.is_authenticated():
                try:
                    self.user = await self._auth.get_current_user()
                    self.is_logged_in = True
                    logger.info("Session valid, user: %s", self.user.username)
                except ForgeError as e:
                    logger.info("Stored credentials rejected: %s", e)
                    self._tokens.clear()
                    self.user = None
                    self.is_logged_in = False
        finally:
            self.loading = False

    async def login(self, username: str, password: str) -> LoginResult:
        try:
            credentials = await self._auth.login(username, password)
            self._tokens.set_tokens(credentials.access, credentials.refresh)
            self.user = await self._auth.get_current_user()
        except ForgeError as e:
            logger.warning("Login failed: %s", e)
            self._tokens.clear()
            return LoginResult(False, error=describe_error(e, "Login failed"))
        self.is_logged_in = True
        logger.info("Logged in as %s", self.user.username)
        return LoginResult(True, user=self.user)

    async def register(self, user_data: dict) -> LoginResult:
        try:
            credentials, user = await self._auth.register(user_data)
            self._tokens.set_tokens(credentials.access, credentials.refresh)
            if user is None:
                user = await self._auth.get_current_user()
        except ForgeError as e:
            logger.warning("Registration failed: %s", e)
            self._tokens.clear()
            return LoginResult(False, error=describe_error(e, "Registration failed"))
        self.user = user
        self.is_logged_in = True
        return LoginResult(True, user=user)

    def teardown(self) -> None:
        self._tokens.clear()
        self.user = None
        self.is_logged_in = False
        logger.info("Logged out")

    def _on_auth_failure(self) -> None:
        # Tokens are already cleared by the client
        was_logged_in = self.is_logged_in
        self.user = None
        self.is_logged_in = False
        if was_logged_in:
            for callback in self._listeners:
                callback()
