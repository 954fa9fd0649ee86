"""Tests for the REST service wrappers: request shapes and response parsing."""

import asyncio

import pytest

from conftest import Router, json_response, problem_data
from gagoforge.api.client import AuthenticationError, ValidationError
from gagoforge.api.leaderboard import LeaderboardService
from gagoforge.api.problems import ProblemFilters, ProblemService
from gagoforge.api.profile import ProfileService
from gagoforge.api.progress import ProgressFilters, ProgressService
from gagoforge.api.submissions import SubmissionFilters, SubmissionService
from gagoforge.models.submission import FeedbackType, Verdict
from gagoforge.models.user import Profile


def run(coro):
    return asyncio.run(coro)


class TestProblemService:
    def test_filters_map_to_backend_names(self):
        params = ProblemFilters(
            framework="react", category="hooks", difficulty="pro",
            search="todo", is_solved=False, ordering="-created_at",
        ).to_params()
        assert params == {
            "framework__name": "react",
            "category__name": "hooks",
            "difficulty": "pro",
            "search": "todo",
            "is_solved": "false",
            "ordering": "-created_at",
        }

    def test_get_problems_page(self, make_client):
        router = Router({
            ("GET", "/api/problems/"): json_response(200, {
                "count": 12,
                "next": "https://forge.test/api/problems/?page=2",
                "previous": None,
                "results": [problem_data("todo-app"), problem_data("counter")],
            }),
        })
        service = ProblemService(make_client(router), cache_dir=None)

        page = run(service.get_problems(ProblemFilters(framework="react"), page=1, page_size=9))

        assert [p.slug for p in page.results] == ["todo-app", "counter"]
        assert page.count == 12
        assert page.has_next
        assert page.total_pages(9) == 2
        params = dict(router.calls[0].url.params)
        assert params == {"framework__name": "react", "page": "1", "page_size": "9"}

    def test_get_all_problems_follows_next(self, make_client):
        def problems(request):
            if request.url.params["page"] == "1":
                return json_response(200, {
                    "count": 3, "next": "more",
                    "results": [problem_data("a"), problem_data("b")],
                })
            return json_response(200, {"count": 3, "next": None, "results": [problem_data("c")]})

        router = Router({("GET", "/api/problems/"): problems})
        service = ProblemService(make_client(router), cache_dir=None)

        result = run(service.get_all_problems(ProblemFilters(framework="react")))

        assert [p.slug for p in result] == ["a", "b", "c"]
        assert len(router.calls) == 2

    def test_bare_list_response(self, make_client):
        router = Router({("GET", "/api/problems/"): json_response(200, [problem_data("a")])})
        service = ProblemService(make_client(router), cache_dir=None)

        page = run(service.get_problems())

        assert page.count == 1
        assert not page.has_next

    def test_problem_detail_is_cached(self, make_client, tmp_path):
        router = Router({
            ("GET", "/api/problems/todo-app/"): json_response(
                200, problem_data("todo-app", passing_score=70, patterns=[
                    {"name": "useState", "is_primary": True, "example_code": "solution"},
                ]),
            ),
        })
        service = ProblemService(make_client(router), cache_dir=tmp_path)

        first = run(service.get_problem("todo-app"))
        second = run(service.get_problem("todo-app"))

        assert len(router.calls) == 1
        assert second == first
        assert second.primary_pattern().example_code == "solution"
        assert second.effective_passing_score == 70

    def test_starter_code(self, make_client):
        router = Router({
            ("GET", "/api/problems/todo-app/starter_code/"): json_response(
                200, {"context_code": "import React from 'react';", "starter_code": "function App() {}"}
            ),
        })
        service = ProblemService(make_client(router), cache_dir=None)

        starter = run(service.get_starter_code("todo-app"))

        assert starter.full_code == "import React from 'react';\n\nfunction App() {}"

    def test_random_problem_only_forwards_track_filters(self, make_client):
        router = Router({("GET", "/api/problems/random/"): json_response(200, problem_data("x"))})
        service = ProblemService(make_client(router), cache_dir=None)

        run(service.get_random_problem(ProblemFilters(framework="django", search="ignored")))

        assert dict(router.calls[0].url.params) == {"framework__name": "django"}


class TestSubmissionService:
    def test_submit_payload_and_result(self, make_client):
        router = Router({
            ("POST", "/api/submissions/"): json_response(201, {
                "id": "sub-1",
                "verdict": "partially_passed",
                "score": "82.5",
                "execution_time_ms": 1234,
                "feedback": [
                    {"type": "warning", "message": "Missing key prop", "line": 4},
                    "Consider memoizing",
                ],
                "matched_patterns": [{"name": "useState"}, "useEffect"],
            }),
        })
        service = SubmissionService(make_client(router))

        result = run(service.submit(problem_id=12, code="code", language="javascript", hints_used=2))

        assert router.body() == {
            "problem": 12, "code": "code", "language": "javascript", "hints_used": 2,
        }
        assert result.verdict == Verdict.PARTIALLY_PASSED
        assert result.score == 82.5
        assert result.execution_time == "1.23s"
        assert result.submission_id == "sub-1"
        assert result.matched_patterns == ["useState", "useEffect"]
        assert result.feedback[0].type == FeedbackType.WARNING
        assert result.feedback[0].location == "line 4"
        assert result.feedback[1].message == "Consider memoizing"

    def test_history_filters(self, make_client):
        router = Router({("GET", "/api/submissions/"): json_response(200, {"results": [
            {"id": 1, "problem": {"id": 3, "title": "Todo"}, "verdict": "accepted", "score": 100},
        ]})})
        service = SubmissionService(make_client(router))

        page = run(service.get_submissions(SubmissionFilters(verdict="accepted", ordering="-submitted_at")))

        assert dict(router.calls[0].url.params) == {
            "verdict": "accepted", "ordering": "-submitted_at", "page": "1", "page_size": "100",
        }
        assert page.results[0].problem == 3
        assert page.results[0].problem_title == "Todo"

    def test_all_submissions_follow_next(self, make_client):
        def history(request):
            if request.url.params["page"] == "1":
                return json_response(200, {"count": 3, "next": "more", "results": [
                    {"id": 1, "verdict": "accepted"}, {"id": 2, "verdict": "failed"},
                ]})
            return json_response(200, {"count": 3, "next": None, "results": [
                {"id": 3, "verdict": "accepted"},
            ]})

        router = Router({("GET", "/api/submissions/"): history})
        service = SubmissionService(make_client(router))

        result = run(service.get_all_submissions(SubmissionFilters(ordering="-submitted_at")))

        assert [s.submission_id for s in result] == ["1", "2", "3"]
        assert [r.url.params["page"] for r in router.calls] == ["1", "2"]

    def test_blank_dispute_is_rejected_locally(self, make_client):
        router = Router()
        service = SubmissionService(make_client(router))

        with pytest.raises(ValidationError) as excinfo:
            run(service.dispute("sub-1", "   "))

        assert router.calls == []
        assert "dispute_reason" in str(excinfo.value)

    def test_dispute(self, make_client):
        router = Router({
            ("POST", "/api/submissions/sub-1/dispute/"): json_response(200, {"status": "disputed"}),
        })
        service = SubmissionService(make_client(router))

        run(service.dispute("sub-1", "Output was correct"))

        assert router.body() == {"dispute_reason": "Output was correct"}


class TestProgressService:
    def test_filters_and_records(self, make_client):
        router = Router({("GET", "/api/progress/"): json_response(200, {"results": [
            {"problem": problem_data("a", id=1), "is_solved": True, "best_score": 100, "total_attempts": 1},
            {"problem": 2, "is_solved": False, "best_score": "40", "total_attempts": "3"},
        ]})})
        service = ProgressService(make_client(router))

        records = run(service.get_progress(ProgressFilters(framework="react", is_solved=True))).results

        assert dict(router.calls[0].url.params) == {
            "is_solved": "true", "problem__framework__name": "react",
            "page": "1", "page_size": "100",
        }
        assert records[0].problem_slug == "a"
        assert records[0].problem.title == "A"
        assert records[1].problem_id == 2
        assert records[1].best_score == 40.0
        assert records[1].total_attempts == 3

    def test_all_progress_follows_next(self, make_client):
        def progress(request):
            if request.url.params["page"] == "1":
                return json_response(200, {"count": 2, "next": "more", "results": [
                    {"problem": problem_data("a", id=1), "is_solved": True, "total_attempts": 1},
                ]})
            return json_response(200, {"count": 2, "next": None, "results": [
                {"problem": problem_data("b", id=2), "total_attempts": 2},
            ]})

        router = Router({("GET", "/api/progress/"): progress})
        service = ProgressService(make_client(router))

        records = run(service.get_all_progress())

        assert [r.problem_slug for r in records] == ["a", "b"]
        assert len(router.calls) == 2

    def test_empty_page_stops_paging(self, make_client):
        router = Router({("GET", "/api/progress/"): json_response(200, {
            "count": 5, "next": "more", "results": [],
        })})
        service = ProgressService(make_client(router))

        assert run(service.get_all_progress()) == []
        assert len(router.calls) == 1


class TestProfileService:
    def test_stats_summary_falls_back_to_legacy(self, make_client):
        router = Router({
            ("GET", "/api/users/profiles/stats_summary/"): json_response(500),
            ("GET", "/api/users/profiles/stats/"): json_response(200, {
                "total_problems_solved": 4, "total_score": 400,
            }),
        })
        service = ProfileService(make_client(router, max_retries=0))

        summary = run(service.get_stats_summary())

        assert summary.total_problems_solved == 4
        assert summary.current_streak is None

    def test_stats_summary_nested_shape(self, make_client):
        router = Router({
            ("GET", "/api/users/profiles/stats_summary/"): json_response(200, {
                "overview": {"total_problems_solved": 3, "global_rank": 12},
                "streaks": {"current": 2, "longest": 9},
                "frameworks": {"react": {"name": "react", "solved": 3, "total": 5, "proficiency": 60}},
                "difficulties": [{"level": "beginner", "solved": 3, "total": 4, "percentage": 75}],
            }),
        })
        service = ProfileService(make_client(router))

        summary = run(service.get_stats_summary())

        assert summary.global_rank == 12
        assert summary.current_streak == 2
        assert summary.longest_streak == 9
        assert summary.frameworks[0].proficiency == 60
        assert summary.difficulties[0].proficiency == 75

    def test_auth_failure_is_not_swallowed(self, make_client):
        router = Router({("GET", "/api/users/profiles/stats_summary/"): json_response(401)})
        service = ProfileService(make_client(router))

        with pytest.raises(AuthenticationError):
            run(service.get_stats_summary())

    def test_update_preferences_sends_flat_fields(self, make_client):
        router = Router({
            ("PATCH", "/api/users/profiles/update_preferences/"): json_response(
                200, {"user": {"username": "ada", "first_name": "Ada"}, "bio": "hi"}
            ),
        })
        service = ProfileService(make_client(router))

        profile = run(service.update_preferences(Profile(first_name="Ada", bio="hi")))

        body = router.body()
        assert body["first_name"] == "Ada"
        assert body["bio"] == "hi"
        assert "user" not in body
        assert profile.display_name == "Ada"

    def test_recent_activity_falls_back_to_submissions(self, make_client):
        router = Router({
            ("GET", "/api/submissions/"): json_response(200, {"results": [
                {"id": 1, "verdict": "failed", "score": 10, "problem_title": "Todo"},
            ]}),
        })
        service = ProfileService(make_client(router))

        recent = run(service.get_recent_activity())

        assert [s.problem_title for s in recent] == ["Todo"]
        assert dict(router.calls[-1].url.params) == {"ordering": "-submitted_at", "limit": "10"}


class TestLeaderboardService:
    def test_framework_board(self, make_client):
        router = Router({
            ("GET", "/api/leaderboard/frameworks/react/"): json_response(200, [
                {"rank": 1, "username": "ada", "total_score": "950", "problems_solved": 9},
            ]),
        })
        service = LeaderboardService(make_client(router))

        entries = run(service.get_framework("react"))

        assert entries[0].username == "ada"
        assert entries[0].score == 950.0


class TestPassthroughEndpoints:
    @pytest.mark.parametrize("call, path", [
        (lambda c: SubmissionService(c).get_statistics(), "/api/submissions/statistics/"),
        (lambda c: ProgressService(c).get_summary(), "/api/progress/summary/"),
        (lambda c: ProgressService(c).get_recent_activity(), "/api/progress/recent_activity/"),
        (lambda c: ProfileService(c).get_editable_fields(), "/api/users/profiles/editable_fields/"),
        (lambda c: ProblemService(c, cache_dir=None).get_stats(), "/api/problems/stats/"),
    ])
    def test_returns_raw_payload(self, make_client, call, path):
        router = Router({("GET", path): json_response(200, {"ok": True})})

        assert run(call(make_client(router))) == {"ok": True}
        assert router.paths() == [path]

    def test_single_submission_and_recent(self, make_client):
        router = Router({
            ("GET", "/api/submissions/s-9/"): json_response(200, {"id": "s-9", "verdict": "FAILED"}),
            ("GET", "/api/submissions/recent/"): json_response(200, [{"id": "s-8"}]),
        })
        service = SubmissionService(make_client(router))

        single = run(service.get_submission("s-9"))
        recent = run(service.get_recent(limit=5))

        assert single.verdict == "failed"
        assert [s.submission_id for s in recent] == ["s-8"]
        assert dict(router.calls[-1].url.params) == {"limit": "5"}
