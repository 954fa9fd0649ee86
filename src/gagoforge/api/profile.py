from __future__ import annotations

import logging

from gagoforge.api.client import AuthenticationError, ForgeClient, ForgeError
from gagoforge.constants import CURRENT_USER_PATH
from gagoforge.models.page import Page
from gagoforge.models.stats import StatsSummary
from gagoforge.models.submission import Submission
from gagoforge.models.user import Profile, User

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, client: ForgeClient):
        self._client = client

    async def get_current_user(self) -> User:
        data = await self._client.get(CURRENT_USER_PATH)
        return User.from_api(data)

    async def get_profile(self) -> Profile:
        data = await self._client.get("/api/users/profiles/me/")
        return Profile.from_api(data)

    async def get_stats(self) -> dict:
        return await self._client.get("/api/users/profiles/stats/")

    async def get_stats_summary(self) -> StatsSummary:
        """Stats summary, falling back to the legacy stats endpoint."""
        try:
            data = await self._client.get("/api/users/profiles/stats_summary/")
            return StatsSummary.from_api(data or {})
        except AuthenticationError:
            raise
        except ForgeError as e:
            logger.warning("Could not fetch stats summary: %s", e)
        try:
            return StatsSummary.from_api(await self.get_stats() or {})
        except AuthenticationError:
            raise
        except ForgeError as e:
            logger.warning("Could not fetch fallback stats: %s", e)
        return StatsSummary()

    async def update_preferences(self, profile: Profile) -> Profile:
        data = await self._client.patch(
            "/api/users/profiles/update_preferences/", json=profile.update_payload()
        )
        return Profile.from_api(data) if data else profile

    async def get_editable_fields(self) -> dict:
        return await self._client.get("/api/users/profiles/editable_fields/")

    async def get_recent_activity(self) -> list[Submission]:
        """Recent submissions, falling back to the plain submissions list."""
        try:
            data = await self._client.get("/api/users/profiles/recent_activity/")
            recent = data.get("recent_submissions") if isinstance(data, dict) else None
            if isinstance(recent, list):
                return [Submission.from_api(s) for s in recent if isinstance(s, dict)]
        except AuthenticationError:
            raise
        except ForgeError as e:
            logger.warning("Could not fetch recent activity: %s", e)
        try:
            data = await self._client.get(
                "/api/submissions/", params={"ordering": "-submitted_at", "limit": 10}
            )
            return Page.from_api(data, Submission.from_api).results
        except AuthenticationError:
            raise
        except ForgeError as e:
            logger.warning("Could not fetch submissions: %s", e)
        return []
