"""Life cycle of one problem-solving session.

::

    Idle -> Loading -> Ready -> Submitting -> Resolved(success|failure)
                ^        ^                        |
                |        +-------- reset ---------+
                +--- load_problem / previous / next (from any state)

Every load bumps a generation counter.  Each await re-checks it, so a
late response for a superseded problem is dropped instead of
overwriting the session that replaced it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable

from gagoforge.api.client import (
    AuthenticationError,
    ForgeError,
    NetworkError,
)
from gagoforge.api.problems import ProblemFilters, ProblemService
from gagoforge.api.submissions import SubmissionService
from gagoforge.constants import (
    ACCEPTED_MESSAGE,
    BELOW_THRESHOLD_MESSAGE,
    EMPTY_CODE_MESSAGE,
    JAVASCRIPT,
    LOAD_PROBLEM_FAILED_MESSAGE,
    LOGIN_ROUTE,
    NETWORK_ERROR_MESSAGE,
    PASSING_MESSAGE,
    PROBLEM_LIST_ROUTE,
    PROBLEM_ROUTE,
    PYTHON,
    SUBMISSION_FAILED_MESSAGE,
)
from gagoforge.models.problem import Problem, language_for
from gagoforge.models.submission import (
    FeedbackItem,
    SubmissionResult,
    Verdict,
    format_execution_time,
)
from gagoforge.session import Session

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    RESOLVED = "resolved"
    ERROR = "error"


class Tab(IntEnum):
    DESCRIPTION = 0
    HINTS = 1
    RESOURCES = 2


@dataclass
class Resolution:
    """What the results pane shows after a submit attempt."""

    success: bool
    message: str
    score: float = 0.0
    verdict: Verdict | None = None
    feedback: list[FeedbackItem] = field(default_factory=list)
    execution_time: str = "N/A"
    matched_patterns: list[str] = field(default_factory=list)
    validation_results: dict = field(default_factory=dict)


def resolve_result(result: SubmissionResult, problem: Problem) -> Resolution:
    """Judge a submission: accepted, or at/above the problem's passing score."""
    score = result.score
    accepted = result.verdict == Verdict.ACCEPTED
    passing = score >= problem.effective_passing_score
    if accepted:
        message = ACCEPTED_MESSAGE
    elif passing:
        message = PASSING_MESSAGE.format(score=score)
    else:
        message = BELOW_THRESHOLD_MESSAGE.format(score=score)
    return Resolution(
        success=accepted or passing,
        message=message,
        score=score,
        verdict=result.verdict,
        feedback=list(result.feedback),
        execution_time=format_execution_time(result.execution_time_ms),
        matched_patterns=list(result.matched_patterns),
        validation_results=dict(result.validation_results),
    )


def failure_resolution(error: Exception) -> Resolution:
    if isinstance(error, NetworkError):
        message = NETWORK_ERROR_MESSAGE
    elif isinstance(error, ForgeError) and error.detail:
        message = error.detail
    else:
        message = SUBMISSION_FAILED_MESSAGE
    return Resolution(success=False, message=message, score=0.0)


def import_lines(code: str, language: str) -> str:
    """Import, require and comment lines of ``code``, or all of it if none."""
    kept = []
    for line in code.split("\n"):
        stripped = line.strip()
        if (
            "import" in line
            or "require" in line
            or stripped.startswith("#")
            or (language == PYTHON and "from " in line)
        ):
            kept.append(line)
    return "\n".join(kept).strip() or code


async def _discard(task: asyncio.Future) -> None:
    task.cancel()
    with contextlib.suppress(ForgeError, asyncio.CancelledError):
        await task


class SubmissionWorkflow:
    """Editor and submission state for the problem detail view.

    ``on_change`` fires after every state mutation, ``on_navigate`` receives
    route strings (login screen, problem list), ``on_resolved`` fires exactly
    once per resolution so the view can bring the results into sight.
    """

    def __init__(
        self,
        problems: ProblemService,
        submissions: SubmissionService,
        session: Session,
        on_change: Callable[[], None] | None = None,
        on_navigate: Callable[[str], None] | None = None,
        on_resolved: Callable[[Resolution], None] | None = None,
    ) -> None:
        self._problems = problems
        self._submissions = submissions
        self._session = session
        self._on_change = on_change
        self._on_navigate = on_navigate
        self._on_resolved = on_resolved
        self._generation = 0

        self.state = WorkflowState.IDLE
        self.slug: str = ""
        self.problem: Problem | None = None
        self.error: str = ""
        self.starter_code: str = ""
        self.language: str = JAVASCRIPT
        self.siblings: list[Problem] = []
        self._reset_session_state()

    # ── Session state ────────────────────────────────────────────────

    def _reset_session_state(self) -> None:
        """Clear everything tied to one problem instance, all at once."""
        self.solution_code: str = ""
        self.submission_result: Resolution | None = None
        self.hints_used: int = 0
        self.expanded_hints: set[int] = set()
        self._revealed_hints: set[int] = set()
        self.active_tab: Tab = Tab.DESCRIPTION

    def _changed(self) -> None:
        if self._on_change:
            self._on_change()

    def _navigate(self, route: str) -> None:
        logger.info("navigate: %s", route)
        if self._on_navigate:
            self._on_navigate(route)

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.info("Discarding stale response for generation %d", generation)
            return False
        return True

    @property
    def is_submitting(self) -> bool:
        return self.state == WorkflowState.SUBMITTING

    # ── Loading ──────────────────────────────────────────────────────

    async def load_problem(self, slug: str) -> None:
        """Enter Loading for ``slug``; Ready once problem and starter code arrive."""
        self._generation += 1
        generation = self._generation
        self._reset_session_state()
        self.slug = slug
        self.state = WorkflowState.LOADING
        self.problem = None
        self.error = ""
        self.starter_code = ""
        self.siblings = []
        logger.info("Loading problem %s (generation %d)", slug, generation)
        self._changed()

        problem_task = asyncio.ensure_future(self._problems.get_problem(slug))
        starter_task = asyncio.ensure_future(self._problems.get_starter_code(slug))
        try:
            problem = await problem_task
        except ForgeError as e:
            await _discard(starter_task)
            if self._is_current(generation):
                self._fail_load(e)
            return
        if not self._is_current(generation):
            await _discard(starter_task)
            return

        self.problem = problem
        self.language = language_for(problem.framework)
        sibling_task = asyncio.ensure_future(self._load_siblings(generation, problem))
        self._changed()

        try:
            starter = await starter_task
        except ForgeError as e:
            if self._is_current(generation):
                self._fail_load(e)
            await sibling_task
            return
        if self._is_current(generation):
            self.starter_code = starter.full_code
            self.state = WorkflowState.READY
            logger.info("Problem %s ready (%s)", slug, self.language)
            self._changed()
        await sibling_task

    def _fail_load(self, error: ForgeError) -> None:
        if isinstance(error, AuthenticationError):
            self._navigate(LOGIN_ROUTE)
        self.state = WorkflowState.ERROR
        self.error = error.detail or LOAD_PROBLEM_FAILED_MESSAGE
        logger.warning("Loading %s failed: %s", self.slug, error)
        self._changed()

    async def _load_siblings(self, generation: int, problem: Problem) -> None:
        try:
            problems = await self._problems.get_all_problems(
                ProblemFilters(framework=problem.framework)
            )
        except ForgeError as e:
            # Navigation controls simply do not render
            logger.warning("Could not load %s track: %s", problem.framework, e)
            return
        if not self._is_current(generation):
            return
        self.siblings = [p for p in problems if p.framework == problem.framework]
        self._changed()

    async def retry(self) -> None:
        if self.slug:
            await self.load_problem(self.slug)

    # ── Editing ──────────────────────────────────────────────────────

    def _editable(self) -> bool:
        return self.state in (WorkflowState.READY, WorkflowState.RESOLVED)

    def edit(self, text: str | None) -> None:
        if not self._editable():
            return
        self.solution_code = text or ""
        self._changed()

    def select_tab(self, tab: Tab) -> None:
        self.active_tab = Tab(tab)
        self._changed()

    def reveal_hint(self, index: int) -> bool:
        """Toggle hint ``index``; returns whether it is now expanded.

        ``hints_used`` counts each hint once per load, however often it is
        collapsed and expanded again.
        """
        if self.problem is None or not 0 <= index < len(self.problem.hints):
            return False
        if index in self.expanded_hints:
            self.expanded_hints.discard(index)
            expanded = False
        else:
            self.expanded_hints.add(index)
            if index not in self._revealed_hints:
                self._revealed_hints.add(index)
                self.hints_used += 1
            expanded = True
        self._changed()
        return expanded

    def starter_imports(self) -> str:
        return import_lines(self.starter_code, self.language)

    # ── Submitting ───────────────────────────────────────────────────

    def _resolve(self, resolution: Resolution) -> None:
        self.submission_result = resolution
        self.state = WorkflowState.RESOLVED
        logger.info("Submission resolved: success=%s score=%.1f",
                    resolution.success, resolution.score)
        self._changed()
        if self._on_resolved:
            self._on_resolved(resolution)

    async def submit(self) -> Resolution | None:
        if self.state == WorkflowState.SUBMITTING:
            return None
        if not self._editable() or self.problem is None:
            return None
        if not self._session.is_logged_in:
            self._navigate(LOGIN_ROUTE)
            return None
        if not self.solution_code.strip():
            self._resolve(Resolution(success=False, message=EMPTY_CODE_MESSAGE))
            return self.submission_result

        generation = self._generation
        problem = self.problem
        self.state = WorkflowState.SUBMITTING
        self.submission_result = None
        self._changed()
        try:
            result = await self._submissions.submit(
                problem_id=problem.id,
                code=self.solution_code,
                language=self.language,
                hints_used=self.hints_used,
            )
        except ForgeError as e:
            logger.warning("Submission failed: %s", e)
            if not self._is_current(generation):
                return None
            self._resolve(failure_resolution(e))
            if isinstance(e, AuthenticationError):
                self._navigate(LOGIN_ROUTE)
            return self.submission_result
        if not self._is_current(generation):
            return None
        self._resolve(resolve_result(result, problem))
        return self.submission_result

    def reset(self) -> None:
        """Back to Ready with an empty solution; starter code is kept."""
        if not self._editable():
            return
        self.solution_code = ""
        self.submission_result = None
        self.hints_used = 0
        self.expanded_hints = set()
        self._revealed_hints = set()
        self.state = WorkflowState.READY
        self._changed()

    def show_solution(self) -> bool:
        """Copy the primary example solution in, only after a successful submit."""
        if (
            self.state != WorkflowState.RESOLVED
            or self.submission_result is None
            or not self.submission_result.success
            or self.problem is None
        ):
            return False
        pattern = self.problem.primary_pattern()
        if pattern is None or not pattern.example_code:
            return False
        self.solution_code = pattern.example_code
        self._changed()
        return True

    # ── Track navigation ─────────────────────────────────────────────

    @property
    def position(self) -> int:
        """0-based index within the framework track, -1 if unknown."""
        if self.problem is None:
            return -1
        for i, sibling in enumerate(self.siblings):
            if sibling.slug == self.problem.slug:
                return i
        return -1

    @property
    def has_previous(self) -> bool:
        return self.position > 0

    @property
    def has_next(self) -> bool:
        return self.position >= 0

    @property
    def is_last(self) -> bool:
        return self.position >= 0 and self.position == len(self.siblings) - 1

    @property
    def progress_label(self) -> str:
        if self.position < 0:
            return ""
        return f"{self.position + 1} of {len(self.siblings)}"

    async def navigate_previous(self) -> None:
        if not self.has_previous:
            return
        target = self.siblings[self.position - 1]
        self._navigate(PROBLEM_ROUTE.format(slug=target.slug))
        await self.load_problem(target.slug)

    async def navigate_next(self) -> None:
        if not self.has_next:
            return
        if self.is_last:
            self._navigate(PROBLEM_LIST_ROUTE)
            return
        target = self.siblings[self.position + 1]
        self._navigate(PROBLEM_ROUTE.format(slug=target.slug))
        await self.load_problem(target.slug)
