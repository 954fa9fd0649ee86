from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator

from gagoforge.api.client import ForgeClient
from gagoforge.constants import TRACK_PAGE_SIZE
from gagoforge.models.page import Page
from gagoforge.models.progress import ProgressRecord


@dataclass
class ProgressFilters:
    is_solved: bool | None = None
    is_attempted: bool | None = None
    framework: str = ""
    difficulty: str = ""
    ordering: str = ""

    def to_params(self) -> dict:
        params: dict = {}
        if self.is_solved is not None:
            params["is_solved"] = str(self.is_solved).lower()
        if self.is_attempted is not None:
            params["is_attempted"] = str(self.is_attempted).lower()
        if self.framework:
            params["problem__framework__name"] = self.framework
        if self.difficulty:
            params["problem__difficulty"] = self.difficulty
        if self.ordering:
            params["ordering"] = self.ordering
        return params


class ProgressService:
    def __init__(self, client: ForgeClient):
        self._client = client

    async def get_progress(
        self,
        filters: ProgressFilters | None = None,
        page: int = 1,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> Page[ProgressRecord]:
        params = (filters or ProgressFilters()).to_params()
        params["page"] = page
        params["page_size"] = page_size
        data = await self._client.get("/api/progress/", params=params)
        return Page.from_api(data, ProgressRecord.from_api)

    async def iter_progress(
        self,
        filters: ProgressFilters | None = None,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> AsyncIterator[ProgressRecord]:
        """Yield every progress record, following the ``next`` cursor."""
        page = 1
        while True:
            result = await self.get_progress(filters, page=page, page_size=page_size)
            for record in result.results:
                yield record
            if not result.has_next or not result.results:
                return
            page += 1

    async def get_all_progress(
        self,
        filters: ProgressFilters | None = None,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> list[ProgressRecord]:
        return [r async for r in self.iter_progress(filters, page_size)]

    async def get_summary(self) -> dict:
        return await self._client.get("/api/progress/summary/")

    async def get_recent_activity(self) -> dict:
        return await self._client.get("/api/progress/recent_activity/")
