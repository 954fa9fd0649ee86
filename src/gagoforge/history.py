"""Derived statistics for the submission history and profile views."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Iterable

from gagoforge.constants import (
    EXPERT_PROFICIENCY,
    INTERMEDIATE_PROFICIENCY,
    LEVEL_EXPERIENCE,
    PROBLEM_ROUTE,
    SUBMISSIONS_PAGE_SIZE,
)
from gagoforge.models.problem import Problem
from gagoforge.models.progress import DifficultyStat, FrameworkStat, ProgressRecord
from gagoforge.models.stats import ProfileOverview, StatsSummary
from gagoforge.models.submission import (
    Submission,
    SubmissionStats,
    Verdict,
    VerdictShare,
)
from gagoforge.progress import (
    aggregate_by_difficulty,
    aggregate_by_framework,
    index_progress,
    round_half_up,
)


# ── Submission history ───────────────────────────────────────────────


def filter_submissions(submissions: Iterable[Submission], term: str) -> list[Submission]:
    """Case-insensitive search over problem title, framework and verdict."""
    submissions = list(submissions)
    term = (term or "").strip().lower()
    if not term:
        return submissions
    return [
        s for s in submissions
        if term in s.problem_title.lower()
        or term in s.framework.lower()
        or term in s.verdict.lower()
    ]


def total_pages(count: int, page_size: int = SUBMISSIONS_PAGE_SIZE) -> int:
    if page_size <= 0 or count <= 0:
        return 0
    return math.ceil(count / page_size)


def paginate(items: list, page: int, page_size: int = SUBMISSIONS_PAGE_SIZE) -> list:
    """Slice out 1-based ``page``; out-of-range pages are empty."""
    if page < 1 or page_size <= 0:
        return []
    start = (page - 1) * page_size
    return items[start:start + page_size]


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def compute_submission_stats(submissions: Iterable[Submission]) -> SubmissionStats:
    submissions = list(submissions)
    total = len(submissions)
    verdicts = [s.verdict for s in submissions]
    accepted = verdicts.count(Verdict.ACCEPTED.value)
    partial = verdicts.count(Verdict.PARTIALLY_PASSED.value)
    return SubmissionStats(
        total_submissions=total,
        accepted=accepted,
        partially_passed=partial,
        failed=verdicts.count(Verdict.FAILED.value),
        syntax_errors=verdicts.count(Verdict.SYNTAX_ERROR.value),
        success_rate=_percent(accepted + partial, total),
        acceptance_rate=_percent(accepted, total),
        total_score=round_half_up(sum(s.score for s in submissions)),
    )


def verdict_breakdown(submissions: Iterable[Submission]) -> list[VerdictShare]:
    """Count, share and score sum for every verdict, in canonical order."""
    submissions = list(submissions)
    shares = []
    for verdict in Verdict:
        matching = [s for s in submissions if s.verdict == verdict.value]
        shares.append(VerdictShare(
            verdict=verdict,
            count=len(matching),
            percentage=_percent(len(matching), len(submissions)),
            total_score=round_half_up(sum(s.score for s in matching)),
        ))
    return shares


def slug_map(problems: Iterable[Problem]) -> dict:
    return {p.id: p.slug for p in problems if p.id is not None and p.slug}


def problem_route(submission: Submission, slugs: dict) -> str:
    """Link target for a submission row, preferring the problem slug."""
    target = slugs.get(submission.problem)
    if not target and submission.problem is not None:
        target = slugs.get(str(submission.problem))
    target = target or submission.problem_id or submission.problem or ""
    return PROBLEM_ROUTE.format(slug=target)


def mark_disputed(submissions: list[Submission], submission_id: str, reason: str) -> None:
    for submission in submissions:
        if submission.submission_id == submission_id:
            submission.is_disputed = True
            submission.dispute_reason = reason


# ── Profile ──────────────────────────────────────────────────────────


def _submission_day(value: str) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def current_streak(submissions: Iterable[Submission], today: date | None = None) -> int:
    """Consecutive days with at least one submission, ending today."""
    days = {d for d in (_submission_day(s.submitted_at) for s in submissions) if d}
    if not days:
        return 0
    expected = today or date.today()
    streak = 0
    while expected in days:
        streak += 1
        expected -= timedelta(days=1)
    return streak


def build_overview(
    summary: StatsSummary,
    submissions: Iterable[Submission] = (),
    today: date | None = None,
) -> ProfileOverview:
    solved = summary.total_problems_solved
    attempted = summary.total_problems_attempted or solved
    if summary.current_streak is not None:
        streak = summary.current_streak
    else:
        streak = current_streak(submissions, today)
    longest = summary.longest_streak or streak
    experience = summary.total_score or solved * 100
    return ProfileOverview(
        total_solved=solved,
        total_problems=attempted,
        streak=streak,
        longest_streak=longest,
        rank=summary.global_rank,
        experience=experience,
        level=int(experience // LEVEL_EXPERIENCE) + 1,
        level_progress=(experience % LEVEL_EXPERIENCE) / 10,
        solved_percentage=_percent(solved, attempted),
    )


def proficiency_tier(proficiency: int) -> str:
    if proficiency >= EXPERT_PROFICIENCY:
        return "Expert"
    if proficiency >= INTERMEDIATE_PROFICIENCY:
        return "Intermediate"
    return "Beginner"


def profile_tables(
    summary: StatsSummary, records: Iterable[ProgressRecord]
) -> tuple[list[FrameworkStat], list[DifficultyStat]]:
    """Framework and difficulty tables: backend values first, else derived
    from progress records that carry their problem."""
    records = list(records)
    frameworks = summary.frameworks
    difficulties = summary.difficulties
    if frameworks and difficulties:
        return frameworks, difficulties
    problems = [r.problem for r in records if r.problem is not None]
    index = index_progress(records)
    if not frameworks:
        frameworks = aggregate_by_framework(problems, index)
    if not difficulties:
        difficulties = aggregate_by_difficulty(problems, index)
    return frameworks, difficulties
