"""Shared test fixtures for the gagoforge test suite."""

import asyncio
import json

import httpx
import pytest

from gagoforge.api.client import ForgeClient
from gagoforge.models.problem import Problem, StarterCode
from gagoforge.models.submission import SubmissionResult
from gagoforge.tokens import TokenStore

BASE_URL = "https://forge.test"


def json_response(status: int = 200, data=None) -> httpx.Response:
    return httpx.Response(status, json=data if data is not None else {})


class Router:
    """MockTransport handler mapping (method, path) to canned responses.

    A value may be a response, a list of responses served in order, or a
    callable taking the request.  Every request is recorded in ``calls``.
    """

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return json_response(404, {"detail": "Not found."})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route) and not isinstance(route, httpx.Response):
            return route(request)
        # A fresh copy per request; responses are single-use
        return httpx.Response(route.status_code, headers=route.headers, content=route.content)

    def paths(self, method: str | None = None) -> list[str]:
        return [r.url.path for r in self.calls if method is None or r.method == method]

    def body(self, index: int = -1) -> dict:
        return json.loads(self.calls[index].content or b"{}")


@pytest.fixture()
def token_store(tmp_path):
    return TokenStore(tmp_path / "tokens.json")


@pytest.fixture()
def no_backoff(monkeypatch):
    monkeypatch.setattr("gagoforge.api.client.RETRY_BACKOFF", 0)


@pytest.fixture()
def make_client(token_store, no_backoff):
    """Build a ForgeClient whose HTTP traffic goes to a Router."""

    def _make(router: Router, **kwargs) -> ForgeClient:
        return ForgeClient(
            token_store,
            base_url=BASE_URL,
            transport=httpx.MockTransport(router),
            **kwargs,
        )

    return _make


def problem_data(slug: str, **overrides) -> dict:
    data = {
        "id": overrides.pop("id", sum(map(ord, slug))),
        "slug": slug,
        "title": slug.replace("-", " ").title(),
        "description": "<p>Build it.</p>",
        "framework": {"name": "react"},
        "difficulty": "beginner",
        "category": "components",
        "acceptance_rate": 50,
        "hints": ["First hint", "Second hint", "Third hint"],
    }
    data.update(overrides)
    return data


def make_problem(slug: str, **overrides) -> Problem:
    return Problem.from_api(problem_data(slug, **overrides))


class FakeProblemService:
    """In-memory ProblemService; set ``gates[slug]`` to hold a load open."""

    def __init__(self, problems=(), starters=None) -> None:
        self.problems = {p.slug: p for p in problems}
        self.starters = starters or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.errors: dict[str, Exception] = {}
        self.starter_errors: dict[str, Exception] = {}
        self.track_error: Exception | None = None

    async def get_problem(self, slug: str) -> Problem:
        gate = self.gates.get(slug)
        if gate is not None:
            await gate.wait()
        if slug in self.errors:
            raise self.errors[slug]
        return self.problems[slug]

    async def get_starter_code(self, slug: str) -> StarterCode:
        if slug in self.starter_errors:
            raise self.starter_errors[slug]
        return self.starters.get(slug, StarterCode(starter_code=f"// {slug}"))

    async def get_all_problems(self, filters=None, page_size=100) -> list[Problem]:
        if self.track_error is not None:
            raise self.track_error
        return list(self.problems.values())


class FakeSubmissionService:
    def __init__(self, result: SubmissionResult | None = None) -> None:
        self.result = result or SubmissionResult()
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[dict] = []

    async def submit(self, problem_id, code, language, hints_used=0) -> SubmissionResult:
        self.calls.append({
            "problem_id": problem_id,
            "code": code,
            "language": language,
            "hints_used": hints_used,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FakeSession:
    def __init__(self, is_logged_in: bool = True) -> None:
        self.is_logged_in = is_logged_in
