"""Tests for submission history and profile statistics."""

from datetime import date

from conftest import make_problem, problem_data
from gagoforge.history import (
    build_overview,
    compute_submission_stats,
    current_streak,
    filter_submissions,
    mark_disputed,
    paginate,
    problem_route,
    proficiency_tier,
    profile_tables,
    slug_map,
    total_pages,
    verdict_breakdown,
)
from gagoforge.models.progress import FrameworkStat, ProgressRecord
from gagoforge.models.stats import StatsSummary
from gagoforge.models.submission import Submission, Verdict


def submission(verdict="accepted", score=100.0, **kwargs):
    return Submission(verdict=verdict, score=score, **kwargs)


class TestSubmissionStats:
    def test_counts_and_rates(self):
        stats = compute_submission_stats([
            submission("accepted", 100),
            submission("partially_passed", 82.5),
            submission("failed", 20),
            submission("syntax_error", 0),
        ])
        assert stats.total_submissions == 4
        assert stats.accepted == 1
        assert stats.partially_passed == 1
        assert stats.failed == 1
        assert stats.syntax_errors == 1
        assert stats.success_rate == 50
        assert stats.acceptance_rate == 25
        assert stats.total_score == 203

    def test_empty_history(self):
        stats = compute_submission_stats([])
        assert stats.total_submissions == 0
        assert stats.success_rate == 0

    def test_breakdown_covers_every_verdict(self):
        shares = verdict_breakdown([submission("accepted"), submission("accepted", 50),
                                    submission("failed", 10)])
        assert [s.verdict for s in shares] == list(Verdict)
        accepted = shares[0]
        assert (accepted.count, accepted.percentage, accepted.total_score) == (2, 67, 150)
        assert shares[-1].count == 0


class TestSearchAndPaging:
    def test_search_is_case_insensitive(self):
        items = [
            submission(problem_title="Todo App", framework="react"),
            submission(problem_title="Blog API", framework="django", verdict="failed"),
        ]
        assert [s.problem_title for s in filter_submissions(items, "TODO")] == ["Todo App"]
        assert [s.problem_title for s in filter_submissions(items, "django")] == ["Blog API"]
        assert [s.problem_title for s in filter_submissions(items, "fail")] == ["Blog API"]
        assert len(filter_submissions(items, "  ")) == 2

    def test_pages(self):
        items = list(range(23))
        assert total_pages(len(items), 10) == 3
        assert total_pages(0, 10) == 0
        assert paginate(items, 3, 10) == [20, 21, 22]
        assert paginate(items, 4, 10) == []
        assert paginate(items, 0, 10) == []


class TestRouting:
    def test_prefers_slug(self):
        slugs = slug_map([make_problem("todo-app", id=4)])
        assert problem_route(submission(problem=4), slugs) == "/problems/todo-app"

    def test_string_problem_id(self):
        slugs = {"4": "todo-app"}
        assert problem_route(submission(problem=4), slugs) == "/problems/todo-app"

    def test_falls_back_to_id(self):
        assert problem_route(submission(problem=9), {}) == "/problems/9"
        assert problem_route(submission(problem=9, problem_id="p-9"), {}) == "/problems/p-9"

    def test_mark_disputed(self):
        items = [submission(submission_id="1"), submission(submission_id="2")]
        mark_disputed(items, "2", "Looks right to me")
        assert not items[0].is_disputed
        assert items[1].is_disputed
        assert items[1].dispute_reason == "Looks right to me"


class TestProfile:
    def test_streak_counts_back_from_today(self):
        items = [
            submission(submitted_at="2026-03-10T09:00:00Z"),
            submission(submitted_at="2026-03-09T22:00:00Z"),
            submission(submitted_at="2026-03-07T10:00:00Z"),
            submission(submitted_at="not a date"),
        ]
        assert current_streak(items, today=date(2026, 3, 10)) == 2
        assert current_streak(items, today=date(2026, 3, 11)) == 0
        assert current_streak([], today=date(2026, 3, 10)) == 0

    def test_overview_from_summary(self):
        summary = StatsSummary(total_problems_solved=6, total_problems_attempted=8,
                               total_score=2350, global_rank=14, current_streak=3)
        overview = build_overview(summary)
        assert overview.streak == 3
        assert overview.longest_streak == 3
        assert overview.level == 3
        assert overview.level_progress == 35.0
        assert overview.solved_percentage == 75
        assert overview.rank == 14

    def test_overview_derives_missing_values(self):
        summary = StatsSummary(total_problems_solved=2)
        items = [submission(submitted_at="2026-03-10T09:00:00")]
        overview = build_overview(summary, items, today=date(2026, 3, 10))
        assert overview.streak == 1
        assert overview.experience == 200
        assert overview.total_problems == 2
        assert overview.solved_percentage == 100

    def test_tiers(self):
        assert proficiency_tier(80) == "Expert"
        assert proficiency_tier(50) == "Intermediate"
        assert proficiency_tier(49) == "Beginner"

    def test_tables_prefer_backend_values(self):
        backend = [FrameworkStat(name="react", solved=1, total=2, proficiency=50)]
        summary = StatsSummary(frameworks=backend)
        records = [ProgressRecord.from_api({
            "problem": problem_data("a", id=1, framework="django"), "is_solved": True,
        })]

        frameworks, difficulties = profile_tables(summary, records)

        assert frameworks == backend
        assert [(d.level, d.solved, d.total) for d in difficulties] == [("beginner", 1, 1)]

    def test_tables_derived_from_records(self):
        records = [
            ProgressRecord.from_api({"problem": problem_data("a", id=1), "is_solved": True}),
            ProgressRecord.from_api({"problem": problem_data("b", id=2), "total_attempts": 2}),
            ProgressRecord.from_api({"problem": 3, "is_solved": True}),
        ]

        frameworks, _ = profile_tables(StatsSummary(), records)

        assert [(f.name, f.solved, f.total, f.proficiency) for f in frameworks] == [
            ("react", 1, 2, 50)
        ]
