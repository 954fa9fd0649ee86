from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

from gagoforge.api.cache import get_cached, set_cached
from gagoforge.api.client import ForgeClient
from gagoforge.constants import (
    CACHE_DIR,
    DEFAULT_PAGE_SIZE,
    PROBLEM_DETAIL_CACHE_TTL,
    STARTER_CODE_CACHE_TTL,
    TRACK_PAGE_SIZE,
)
from gagoforge.models.page import Page
from gagoforge.models.problem import Problem, StarterCode

logger = logging.getLogger(__name__)


@dataclass
class ProblemFilters:
    framework: str = ""
    category: str = ""
    difficulty: str = ""
    search: str = ""
    is_solved: bool | None = None
    is_premium: bool | None = None
    ordering: str = ""

    def to_params(self) -> dict:
        params: dict = {}
        if self.framework:
            params["framework__name"] = self.framework
        if self.category:
            params["category__name"] = self.category
        if self.difficulty:
            params["difficulty"] = self.difficulty
        if self.search:
            params["search"] = self.search
        if self.is_solved is not None:
            params["is_solved"] = str(self.is_solved).lower()
        if self.is_premium is not None:
            params["is_premium"] = str(self.is_premium).lower()
        if self.ordering:
            params["ordering"] = self.ordering
        return params


class ProblemService:
    def __init__(self, client: ForgeClient, cache_dir: Path | None = CACHE_DIR):
        self._client = client
        self._cache_dir = cache_dir

    async def get_problems(
        self,
        filters: ProblemFilters | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[Problem]:
        """Fetch one page of problems."""
        params = (filters or ProblemFilters()).to_params()
        params["page"] = page
        params["page_size"] = page_size
        data = await self._client.get("/api/problems/", params=params)
        return Page.from_api(data, Problem.from_api)

    async def iter_problems(
        self,
        filters: ProblemFilters | None = None,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> AsyncIterator[Problem]:
        """Yield problems across pages, following the ``next`` cursor."""
        page = 1
        while True:
            result = await self.get_problems(filters, page=page, page_size=page_size)
            for problem in result.results:
                yield problem
            if not result.has_next or not result.results:
                return
            page += 1

    async def get_all_problems(
        self,
        filters: ProblemFilters | None = None,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> list[Problem]:
        return [p async for p in self.iter_problems(filters, page_size)]

    async def get_problem(self, slug: str) -> Problem:
        """Fetch full problem details."""
        cache_key = f"problem_{slug}"
        cached = self._cached(cache_key, PROBLEM_DETAIL_CACHE_TTL)
        if cached:
            return Problem.from_dict(cached)

        data = await self._client.get(f"/api/problems/{slug}/")
        problem = Problem.from_api(data)
        self._store(cache_key, problem.to_dict())
        return problem

    async def get_starter_code(self, slug: str) -> StarterCode:
        cache_key = f"starter_{slug}"
        cached = self._cached(cache_key, STARTER_CODE_CACHE_TTL)
        if cached:
            return StarterCode.from_dict(cached)

        data = await self._client.get(f"/api/problems/{slug}/starter_code/")
        starter = StarterCode.from_dict(data)
        self._store(cache_key, starter.to_dict())
        return starter

    async def get_random_problem(self, filters: ProblemFilters | None = None) -> Problem:
        params = {}
        if filters:
            params = {
                k: v for k, v in filters.to_params().items()
                if k in ("framework__name", "difficulty")
            }
        data = await self._client.get("/api/problems/random/", params=params)
        return Problem.from_api(data)

    async def get_stats(self) -> dict:
        return await self._client.get("/api/problems/stats/")

    def _cached(self, key: str, ttl: float) -> dict | None:
        if self._cache_dir is None:
            return None
        return get_cached(key, ttl, self._cache_dir)

    def _store(self, key: str, data: dict) -> None:
        if self._cache_dir is None:
            return
        try:
            set_cached(key, data, self._cache_dir)
        except OSError as e:
            logger.warning("Could not cache %s: %s", key, e)
