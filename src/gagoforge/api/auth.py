from gagoforge.api.client import AuthenticationError, ForgeClient
from gagoforge.constants import (
    AUTH_LOGIN_PATH,
    AUTH_REFRESH_PATH,
    AUTH_VERIFY_PATH,
    CURRENT_USER_PATH,
    REGISTER_PATH,
)
from gagoforge.models.user import Credentials, User


class AuthService:
    def __init__(self, client: ForgeClient):
        self._client = client

    async def login(self, username: str, password: str) -> Credentials:
        data = await self._client.post(
            AUTH_LOGIN_PATH, json={"username": username, "password": password}
        )
        return Credentials.from_api(data)

    async def register(self, user_data: dict) -> tuple[Credentials, User | None]:
        """Register and return the issued tokens plus the created user."""
        data = await self._client.post(REGISTER_PATH, json=user_data)
        user = data.get("user")
        return Credentials.from_api(data), User.from_api(user) if isinstance(user, dict) else None

    async def refresh(self, refresh_token: str) -> str:
        data = await self._client.post(AUTH_REFRESH_PATH, json={"refresh": refresh_token})
        return data.get("access", "")

    async def verify(self, token: str) -> bool:
        """Return False only when the server rejects the token.

        Raises on network errors so the caller can decide what to do.
        """
        try:
            await self._client.post(AUTH_VERIFY_PATH, json={"token": token})
            return True
        except AuthenticationError:
            return False

    async def get_current_user(self) -> User:
        data = await self._client.get(CURRENT_USER_PATH)
        return User.from_api(data)
