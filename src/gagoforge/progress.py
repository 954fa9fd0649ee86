"""Reconcile problem lists with progress records into per-problem and
aggregate statistics.

Upstream data is only partially consistent: progress records reference a
problem by slug, numeric id or string id, and numbers may arrive as
strings.  Nothing in this module raises on such input; the worst case is
a zeroed statistic.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from gagoforge.models.fields import coerce_float, normalize_name
from gagoforge.models.page import Page
from gagoforge.models.problem import Difficulty, Framework, Problem
from gagoforge.models.progress import (
    UNATTEMPTED,
    DifficultyStat,
    FrameworkStat,
    ProblemProgress,
    ProgressCounts,
    ProgressRecord,
    ProgressState,
)
from gagoforge.styles import style_for_difficulty

logger = logging.getLogger(__name__)

ProgressIndex = Mapping[Any, ProgressRecord]

UNKNOWN_GROUP = "unknown"


def round_half_up(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def proficiency(solved: int, total: int) -> int:
    """Integer percentage of solved problems; 0 for an empty group."""
    if total <= 0:
        return 0
    return max(0, min(100, round_half_up(solved / total * 100)))


def _as_problem(item) -> Problem | None:
    if isinstance(item, Problem):
        return item
    if isinstance(item, dict):
        return Problem.from_api(item)
    return None


def _as_record(item) -> ProgressRecord | None:
    if isinstance(item, ProgressRecord):
        return item
    if isinstance(item, dict):
        return ProgressRecord.from_api(item)
    return None


def index_progress(records: Iterable) -> dict[Any, ProgressRecord]:
    """Key every record by slug, id and stringified id; last write wins."""
    index: dict[Any, ProgressRecord] = {}
    for item in records or []:
        record = _as_record(item)
        if record is None:
            continue
        for key in record.keys():
            if key in index and index[key] is not record:
                logger.debug("Progress key collision on %r", key)
            index[key] = record
    return index


def _candidate_keys(problem: Problem) -> list:
    keys: list = []
    if problem.slug:
        keys.append(problem.slug)
    if problem.id is not None:
        keys.append(problem.id)
        keys.append(str(problem.id))
    if problem.problem_id is not None:
        keys.append(str(problem.problem_id))
    return keys


def lookup_progress(
    problem, index: ProgressIndex, authenticated: bool = True
) -> ProblemProgress:
    """Progress for one problem: slug first, then id, then stringified id."""
    if not authenticated or not index:
        return UNATTEMPTED
    problem = _as_problem(problem)
    if problem is None:
        return UNATTEMPTED
    record = None
    for key in _candidate_keys(problem):
        try:
            record = index.get(key)
        except TypeError:
            record = None
        if record is not None:
            break
    if record is None:
        return UNATTEMPTED
    total_attempts = max(0, record.total_attempts)
    return ProblemProgress(
        is_solved=record.is_solved,
        best_score=record.best_score,
        total_attempts=total_attempts,
        is_attempted=total_attempts > 0,
    )


def _matches(progress: ProblemProgress, state: ProgressState) -> bool:
    if state == ProgressState.SOLVED:
        return progress.is_solved
    if state == ProgressState.ATTEMPTED:
        return progress.is_attempted and not progress.is_solved
    if state == ProgressState.UNATTEMPTED:
        return not progress.is_attempted
    return True


def filter_by_progress_state(
    problems: Iterable,
    index: ProgressIndex,
    state: ProgressState | str = ProgressState.ALL,
    authenticated: bool = True,
) -> list[Problem]:
    """Order-preserving filter of ``problems`` by progress state."""
    try:
        state = ProgressState(state)
    except ValueError:
        state = ProgressState.ALL
    result = []
    for item in problems or []:
        problem = _as_problem(item)
        if problem is None:
            continue
        if state == ProgressState.ALL or _matches(
            lookup_progress(problem, index, authenticated), state
        ):
            result.append(problem)
    return result


def count_progress_states(
    problems: Iterable, index: ProgressIndex, authenticated: bool = True
) -> ProgressCounts:
    solved = attempted = unattempted = 0
    for item in problems or []:
        progress = lookup_progress(item, index, authenticated)
        if progress.is_solved:
            solved += 1
        elif progress.is_attempted:
            attempted += 1
        else:
            unattempted += 1
    return ProgressCounts(solved=solved, attempted=attempted, unattempted=unattempted)


def _group(problems: Iterable, index: ProgressIndex, attr: str, order: list[str]):
    groups: dict[str, list[int]] = {}
    for item in problems or []:
        problem = _as_problem(item)
        if problem is None:
            continue
        name = normalize_name(getattr(problem, attr)) or UNKNOWN_GROUP
        counts = groups.setdefault(name, [0, 0])
        counts[1] += 1
        if lookup_progress(problem, index).is_solved:
            counts[0] += 1
    known = [name for name in order if name in groups]
    extra = [name for name in groups if name not in order]
    return [(name, groups[name][0], groups[name][1]) for name in known + extra]


def aggregate_by_framework(problems: Iterable, index: ProgressIndex) -> list[FrameworkStat]:
    order = [f.value for f in Framework]
    return [
        FrameworkStat(name=name, solved=solved, total=total,
                      proficiency=proficiency(solved, total))
        for name, solved, total in _group(problems, index, "framework", order)
    ]


def aggregate_by_difficulty(problems: Iterable, index: ProgressIndex) -> list[DifficultyStat]:
    order = [d.value for d in Difficulty]
    return [
        DifficultyStat(level=name, solved=solved, total=total,
                       proficiency=proficiency(solved, total),
                       color=style_for_difficulty(name).color)
        for name, solved, total in _group(problems, index, "difficulty", order)
    ]


def compute_acceptance_average(problems: Iterable) -> int:
    """Mean acceptance rate, rounded; non-finite rates count as 0."""
    rates = []
    for item in problems or []:
        if isinstance(item, Problem):
            rates.append(coerce_float(item.acceptance_rate))
        elif isinstance(item, dict):
            rates.append(coerce_float(item.get("acceptance_rate")))
    if not rates:
        return 0
    return round_half_up(sum(rates) / len(rates))


@dataclass
class ProblemBoard:
    """View model for one page of the problem list."""

    page: Page[Problem] = field(default_factory=Page)
    index: dict = field(default_factory=dict)
    authenticated: bool = False
    state: ProgressState = ProgressState.ALL
    page_size: int = 9

    @classmethod
    def build(
        cls,
        page: Page[Problem],
        records: Iterable,
        authenticated: bool,
        state: ProgressState | str = ProgressState.ALL,
        page_size: int = 9,
    ) -> ProblemBoard:
        try:
            state = ProgressState(state)
        except ValueError:
            state = ProgressState.ALL
        index = index_progress(records) if authenticated else {}
        return cls(page=page, index=index, authenticated=authenticated,
                   state=state, page_size=page_size)

    @property
    def problems(self) -> list[Problem]:
        return self.page.results

    @property
    def visible(self) -> list[Problem]:
        return filter_by_progress_state(
            self.problems, self.index, self.state, self.authenticated
        )

    @property
    def counts(self) -> ProgressCounts:
        return count_progress_states(self.problems, self.index, self.authenticated)

    @property
    def acceptance_average(self) -> int:
        return compute_acceptance_average(self.problems)

    @property
    def total_pages(self) -> int:
        return self.page.total_pages(self.page_size)

    def progress(self, problem: Problem) -> ProblemProgress:
        return lookup_progress(problem, self.index, self.authenticated)
