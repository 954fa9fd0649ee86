"""Tests for SubmissionWorkflow: loading, hints, submitting, navigation."""

import asyncio
import gc

from conftest import FakeProblemService, FakeSession, FakeSubmissionService, make_problem
from gagoforge.api.client import AuthenticationError, ForgeError, NetworkError, NotFoundError
from gagoforge.constants import (
    ACCEPTED_MESSAGE,
    EMPTY_CODE_MESSAGE,
    LOAD_PROBLEM_FAILED_MESSAGE,
    NETWORK_ERROR_MESSAGE,
)
from gagoforge.models.problem import StarterCode
from gagoforge.models.submission import SubmissionResult, Verdict
from gagoforge.workflow import (
    SubmissionWorkflow,
    Tab,
    WorkflowState,
    import_lines,
    resolve_result,
)


def run(coro):
    return asyncio.run(coro)


def track(*slugs, **overrides):
    return [make_problem(slug, **overrides) for slug in slugs]


class Harness:
    """A workflow wired to fakes, recording every callback."""

    def __init__(self, problems=None, result=None, logged_in=True):
        if problems is None:
            problems = track("a", "b", "c")
        self.problems = FakeProblemService(problems)
        self.submissions = FakeSubmissionService(result)
        self.session = FakeSession(logged_in)
        self.routes = []
        self.resolutions = []
        self.workflow = SubmissionWorkflow(
            self.problems,
            self.submissions,
            self.session,
            on_navigate=self.routes.append,
            on_resolved=self.resolutions.append,
        )


class TestLoading:
    def test_ready_after_load(self):
        h = Harness()
        h.problems.starters["a"] = StarterCode(
            context_code="import React from 'react';", starter_code="function App() {}"
        )

        run(h.workflow.load_problem("a"))

        wf = h.workflow
        assert wf.state == WorkflowState.READY
        assert wf.problem.slug == "a"
        assert wf.language == "javascript"
        assert wf.starter_code == "import React from 'react';\n\nfunction App() {}"
        assert wf.solution_code == ""
        assert [p.slug for p in wf.siblings] == ["a", "b", "c"]

    def test_django_problem_uses_python(self):
        h = Harness(track("views", framework={"name": "Django"}))

        run(h.workflow.load_problem("views"))

        assert h.workflow.language == "python"

    def test_load_failure_shows_detail(self):
        h = Harness()
        h.problems.errors["a"] = NotFoundError("missing", 404, {"detail": "Not found."})

        run(h.workflow.load_problem("a"))

        assert h.workflow.state == WorkflowState.ERROR
        assert h.workflow.error == "Not found."
        assert h.routes == []

    def test_load_failure_without_detail_uses_default(self):
        h = Harness()
        h.problems.starter_errors["a"] = NetworkError("timeout")

        run(h.workflow.load_problem("a"))

        assert h.workflow.state == WorkflowState.ERROR
        assert h.workflow.error == LOAD_PROBLEM_FAILED_MESSAGE

    def test_auth_failure_while_loading_goes_to_login(self):
        h = Harness()
        h.problems.errors["a"] = AuthenticationError("expired", 401)

        run(h.workflow.load_problem("a"))

        assert h.routes == ["/login"]
        assert h.workflow.state == WorkflowState.ERROR

    def test_retry_after_failure(self):
        h = Harness()
        h.problems.errors["a"] = NetworkError("down")
        run(h.workflow.load_problem("a"))

        del h.problems.errors["a"]
        run(h.workflow.retry())

        assert h.workflow.state == WorkflowState.READY

    def test_siblings_only_include_the_same_track(self):
        problems = track("a", "b") + track("views", framework="django")
        h = Harness(problems)

        run(h.workflow.load_problem("a"))

        assert [p.slug for p in h.workflow.siblings] == ["a", "b"]

    def test_sibling_failure_hides_navigation(self):
        h = Harness()
        h.problems.track_error = ForgeError("boom", 500)

        run(h.workflow.load_problem("b"))

        wf = h.workflow
        assert wf.state == WorkflowState.READY
        assert wf.siblings == []
        assert wf.position == -1
        assert not wf.has_previous
        assert not wf.has_next
        assert wf.progress_label == ""

    def test_late_response_for_previous_problem_is_discarded(self):
        h = Harness()

        async def scenario():
            gate = asyncio.Event()
            h.problems.gates["a"] = gate
            first = asyncio.ensure_future(h.workflow.load_problem("a"))
            await asyncio.sleep(0)
            await h.workflow.load_problem("b")
            gate.set()
            await first

        run(scenario())

        wf = h.workflow
        assert wf.slug == "b"
        assert wf.problem.slug == "b"
        assert wf.state == WorkflowState.READY
        assert wf.starter_code == "// b"

    def test_failed_starter_error_is_retrieved(self):
        h = Harness()
        h.problems.errors["a"] = NetworkError("down")
        h.problems.starter_errors["a"] = NetworkError("down")
        reported = []

        async def scenario():
            asyncio.get_running_loop().set_exception_handler(
                lambda loop, context: reported.append(context)
            )
            gate = asyncio.Event()
            h.problems.gates["a"] = gate
            load = asyncio.ensure_future(h.workflow.load_problem("a"))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            gate.set()
            await load
            gc.collect()

        run(scenario())

        assert h.workflow.state == WorkflowState.ERROR
        assert reported == []


class TestHints:
    def test_collapse_and_reexpand_counts_once(self):
        h = Harness()
        run(h.workflow.load_problem("a"))
        wf = h.workflow

        assert wf.reveal_hint(1) is True
        assert wf.reveal_hint(1) is False
        assert wf.reveal_hint(1) is True

        assert wf.hints_used == 1
        assert wf.expanded_hints == {1}

    def test_each_hint_counts_separately(self):
        h = Harness()
        run(h.workflow.load_problem("a"))

        h.workflow.reveal_hint(0)
        h.workflow.reveal_hint(2)

        assert h.workflow.hints_used == 2

    def test_out_of_range_hint(self):
        h = Harness()
        run(h.workflow.load_problem("a"))

        assert h.workflow.reveal_hint(3) is False
        assert h.workflow.reveal_hint(-1) is False
        assert h.workflow.hints_used == 0

    def test_hints_reset_for_next_problem(self):
        h = Harness()
        run(h.workflow.load_problem("a"))
        h.workflow.reveal_hint(0)
        h.workflow.reveal_hint(1)
        h.workflow.select_tab(Tab.HINTS)

        run(h.workflow.navigate_next())

        wf = h.workflow
        assert wf.problem.slug == "b"
        assert wf.hints_used == 0
        assert wf.expanded_hints == set()
        assert wf.active_tab == Tab.DESCRIPTION


class TestSubmit:
    def test_accepted(self):
        h = Harness(result=SubmissionResult(verdict=Verdict.ACCEPTED, score=100))
        run(h.workflow.load_problem("a"))
        h.workflow.reveal_hint(0)
        h.workflow.edit("function App() { return null; }")

        resolution = run(h.workflow.submit())

        assert resolution.success
        assert resolution.message == ACCEPTED_MESSAGE
        assert h.workflow.state == WorkflowState.RESOLVED
        assert h.resolutions == [resolution]
        call = h.submissions.calls[0]
        assert call["problem_id"] == h.workflow.problem.id
        assert call["language"] == "javascript"
        assert call["hints_used"] == 1

    def test_partial_pass_at_default_threshold(self):
        h = Harness(result=SubmissionResult(verdict=Verdict.PARTIALLY_PASSED, score=82.5))
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")

        resolution = run(h.workflow.submit())

        assert resolution.success
        assert resolution.score == 82.5
        assert resolution.message == (
            "Your solution scored 82.5% and meets the passing threshold!"
        )

    def test_below_threshold(self):
        h = Harness(result=SubmissionResult(verdict=Verdict.FAILED, score=40))
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")

        resolution = run(h.workflow.submit())

        assert not resolution.success
        assert resolution.message == "Your solution scored 40.0%. Keep trying!"

    def test_network_failure(self):
        h = Harness()
        h.submissions.error = NetworkError("connection reset")
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")

        resolution = run(h.workflow.submit())

        assert not resolution.success
        assert resolution.score == 0
        assert resolution.message == NETWORK_ERROR_MESSAGE
        assert h.workflow.state == WorkflowState.RESOLVED

    def test_server_detail_is_shown(self):
        h = Harness()
        h.submissions.error = ForgeError("bad", 400, {"detail": "Problem is locked."})
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")

        assert run(h.workflow.submit()).message == "Problem is locked."

    def test_empty_code_never_reaches_the_server(self):
        h = Harness()
        run(h.workflow.load_problem("a"))
        h.workflow.edit("   \n  ")

        resolution = run(h.workflow.submit())

        assert resolution.message == EMPTY_CODE_MESSAGE
        assert not resolution.success
        assert h.submissions.calls == []
        assert len(h.resolutions) == 1

    def test_logged_out_user_is_sent_to_login(self):
        h = Harness(logged_in=False)
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")

        assert run(h.workflow.submit()) is None

        assert h.routes == ["/login"]
        assert h.submissions.calls == []
        assert h.workflow.state == WorkflowState.READY

    def test_auth_failure_resolves_then_goes_to_login(self):
        h = Harness()
        h.submissions.error = AuthenticationError("expired", 401)
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")

        resolution = run(h.workflow.submit())

        assert not resolution.success
        assert h.routes == ["/login"]

    def test_second_submit_while_in_flight_is_ignored(self):
        h = Harness(result=SubmissionResult(verdict=Verdict.ACCEPTED, score=100))

        async def scenario():
            await h.workflow.load_problem("a")
            h.workflow.edit("code")
            h.submissions.gate = asyncio.Event()
            first = asyncio.ensure_future(h.workflow.submit())
            await asyncio.sleep(0)
            assert h.workflow.is_submitting
            second = await h.workflow.submit()
            h.submissions.gate.set()
            return await first, second

        first, second = run(scenario())

        assert second is None
        assert first.success
        assert len(h.submissions.calls) == 1
        assert len(h.resolutions) == 1

    def test_result_for_replaced_problem_is_dropped(self):
        h = Harness(result=SubmissionResult(verdict=Verdict.ACCEPTED, score=100))

        async def scenario():
            await h.workflow.load_problem("a")
            h.workflow.edit("code")
            h.submissions.gate = asyncio.Event()
            pending = asyncio.ensure_future(h.workflow.submit())
            await asyncio.sleep(0)
            await h.workflow.load_problem("b")
            h.submissions.gate.set()
            return await pending

        assert run(scenario()) is None
        assert h.workflow.problem.slug == "b"
        assert h.workflow.state == WorkflowState.READY
        assert h.workflow.submission_result is None
        assert h.resolutions == []

    def test_edit_is_ignored_while_loading(self):
        h = Harness()
        h.workflow.edit("too early")
        assert h.workflow.solution_code == ""


class TestResetAndSolution:
    def test_reset_restores_ready(self):
        h = Harness(result=SubmissionResult(verdict=Verdict.FAILED, score=10))
        run(h.workflow.load_problem("a"))
        wf = h.workflow
        wf.reveal_hint(0)
        wf.edit("code")
        run(wf.submit())

        wf.reset()

        assert wf.state == WorkflowState.READY
        assert wf.solution_code == ""
        assert wf.submission_result is None
        assert wf.hints_used == 0
        assert wf.expanded_hints == set()
        assert wf.starter_code == "// a"

    def test_hint_counted_again_after_reset(self):
        h = Harness()
        run(h.workflow.load_problem("a"))
        h.workflow.reveal_hint(0)
        h.workflow.reset()

        h.workflow.reveal_hint(0)

        assert h.workflow.hints_used == 1

    def test_solution_requires_successful_submit(self):
        patterns = [
            {"name": "alt", "is_primary": False, "example_code": "alt code"},
            {"name": "main", "is_primary": True, "example_code": "main code"},
        ]
        h = Harness(track("a", patterns=patterns),
                    result=SubmissionResult(verdict=Verdict.FAILED, score=10))
        run(h.workflow.load_problem("a"))
        wf = h.workflow
        wf.edit("attempt")

        assert wf.show_solution() is False

        run(wf.submit())
        assert wf.show_solution() is False
        assert wf.solution_code == "attempt"

        h.submissions.result = SubmissionResult(verdict=Verdict.ACCEPTED, score=100)
        run(wf.submit())
        assert wf.show_solution() is True
        assert wf.solution_code == "main code"

    def test_no_primary_pattern(self):
        h = Harness(track("a"), result=SubmissionResult(verdict=Verdict.ACCEPTED, score=100))
        run(h.workflow.load_problem("a"))
        h.workflow.edit("code")
        run(h.workflow.submit())

        assert h.workflow.show_solution() is False


class TestNavigation:
    def test_position_and_label(self):
        h = Harness()
        run(h.workflow.load_problem("b"))

        wf = h.workflow
        assert wf.position == 1
        assert wf.progress_label == "2 of 3"
        assert wf.has_previous
        assert wf.has_next
        assert not wf.is_last

    def test_previous_at_first_problem_does_nothing(self):
        h = Harness()
        run(h.workflow.load_problem("a"))

        run(h.workflow.navigate_previous())

        assert h.workflow.problem.slug == "a"
        assert h.routes == []

    def test_previous(self):
        h = Harness()
        run(h.workflow.load_problem("c"))

        run(h.workflow.navigate_previous())

        assert h.workflow.problem.slug == "b"
        assert h.routes == ["/problems/b"]

    def test_next_from_last_returns_to_list(self):
        h = Harness()
        run(h.workflow.load_problem("c"))

        assert h.workflow.is_last
        run(h.workflow.navigate_next())

        assert h.routes == ["/problems"]
        assert h.workflow.problem.slug == "c"


class TestResolveResult:
    def test_custom_passing_score(self):
        problem = make_problem("a", passing_score=90)
        result = SubmissionResult(verdict=Verdict.PARTIALLY_PASSED, score=85)

        assert not resolve_result(result, problem).success

    def test_zero_passing_score_means_default(self):
        problem = make_problem("a", passing_score=0)
        result = SubmissionResult(verdict=Verdict.PARTIALLY_PASSED, score=80)

        assert resolve_result(result, problem).success

    def test_accepted_wins_over_low_score(self):
        problem = make_problem("a")
        result = SubmissionResult(verdict=Verdict.ACCEPTED, score=0)

        resolution = resolve_result(result, problem)
        assert resolution.success
        assert resolution.message == ACCEPTED_MESSAGE


class TestImportLines:
    def test_javascript(self):
        code = "import React from 'react';\nconst x = require('x');\n\nfunction App() {}"
        assert import_lines(code, "javascript") == (
            "import React from 'react';\nconst x = require('x');"
        )

    def test_python_from_imports(self):
        code = "from django.http import JsonResponse\n# views\n\ndef index(request):\n    pass"
        assert import_lines(code, "python") == "from django.http import JsonResponse\n# views"

    def test_falls_back_to_everything(self):
        assert import_lines("function App() {}", "javascript") == "function App() {}"
