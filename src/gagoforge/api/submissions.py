from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator

from gagoforge.api.client import ForgeClient, ValidationError, flatten_field_errors
from gagoforge.constants import TRACK_PAGE_SIZE
from gagoforge.models.page import Page
from gagoforge.models.submission import Submission, SubmissionResult


@dataclass
class SubmissionFilters:
    problem: int | str | None = None
    verdict: str = ""
    search: str = ""
    ordering: str = ""
    limit: int | None = None

    def to_params(self) -> dict:
        params: dict = {}
        if self.problem is not None:
            params["problem"] = self.problem
        if self.verdict:
            params["verdict"] = self.verdict
        if self.search:
            params["search"] = self.search
        if self.ordering:
            params["ordering"] = self.ordering
        if self.limit:
            params["limit"] = self.limit
        return params


class SubmissionService:
    def __init__(self, client: ForgeClient):
        self._client = client

    async def submit(
        self,
        problem_id: int | str | None,
        code: str,
        language: str,
        hints_used: int = 0,
    ) -> SubmissionResult:
        """Submit a solution; the backend validates and scores it synchronously."""
        payload = {
            "problem": problem_id,
            "code": code,
            "language": language,
            "hints_used": hints_used,
        }
        data = await self._client.post("/api/submissions/", json=payload)
        return SubmissionResult.from_api(data)

    async def get_submissions(
        self,
        filters: SubmissionFilters | None = None,
        page: int = 1,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> Page[Submission]:
        params = (filters or SubmissionFilters()).to_params()
        params["page"] = page
        params["page_size"] = page_size
        data = await self._client.get("/api/submissions/", params=params)
        return Page.from_api(data, Submission.from_api)

    async def iter_submissions(
        self,
        filters: SubmissionFilters | None = None,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> AsyncIterator[Submission]:
        """Yield the whole submission history, following the ``next`` cursor."""
        page = 1
        while True:
            result = await self.get_submissions(filters, page=page, page_size=page_size)
            for submission in result.results:
                yield submission
            if not result.has_next or not result.results:
                return
            page += 1

    async def get_all_submissions(
        self,
        filters: SubmissionFilters | None = None,
        page_size: int = TRACK_PAGE_SIZE,
    ) -> list[Submission]:
        return [s async for s in self.iter_submissions(filters, page_size)]

    async def get_submission(self, submission_id: str) -> Submission:
        data = await self._client.get(f"/api/submissions/{submission_id}/")
        return Submission.from_api(data)

    async def get_recent(self, limit: int = 10) -> list[Submission]:
        data = await self._client.get("/api/submissions/recent/", params={"limit": limit})
        return Page.from_api(data, Submission.from_api).results

    async def get_statistics(self) -> dict:
        return await self._client.get("/api/submissions/statistics/")

    async def dispute(self, submission_id: str, reason: str) -> dict:
        if not reason.strip():
            blank = {"dispute_reason": ["This field may not be blank."]}
            raise ValidationError(flatten_field_errors(blank), payload=blank)
        return await self._client.post(
            f"/api/submissions/{submission_id}/dispute/",
            json={"dispute_reason": reason},
        )
