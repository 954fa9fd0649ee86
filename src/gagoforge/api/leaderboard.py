from gagoforge.api.client import ForgeClient
from gagoforge.models.page import Page
from gagoforge.models.user import LeaderboardEntry


class LeaderboardService:
    def __init__(self, client: ForgeClient):
        self._client = client

    async def _entries(self, path: str, params: dict | None) -> list[LeaderboardEntry]:
        data = await self._client.get(path, params=params or {})
        return Page.from_api(data, LeaderboardEntry.from_api).results

    async def get_global(self, params: dict | None = None) -> list[LeaderboardEntry]:
        return await self._entries("/api/leaderboard/global/", params)

    async def get_weekly(self, params: dict | None = None) -> list[LeaderboardEntry]:
        return await self._entries("/api/leaderboard/weekly/", params)

    async def get_framework(
        self, framework: str, params: dict | None = None
    ) -> list[LeaderboardEntry]:
        return await self._entries(f"/api/leaderboard/frameworks/{framework}/", params)

    async def get_current_user_rank(self) -> LeaderboardEntry:
        data = await self._client.get("/api/leaderboard/current-user/")
        return LeaderboardEntry.from_api(data)
