"""Tests for lenient parsing of backend payloads."""

import math

from gagoforge.models.fields import coerce_float, coerce_optional_int, normalize_name
from gagoforge.models.page import Page
from gagoforge.models.problem import Framework, Problem, StarterCode
from gagoforge.models.submission import FeedbackItem, FeedbackType, SubmissionResult
from gagoforge.models.user import Credentials, Preferences, UserConfig


class TestFields:
    def test_coerce_float(self):
        assert coerce_float("82.5") == 82.5
        assert coerce_float(None) == 0.0
        assert coerce_float("abc") == 0.0
        assert coerce_float(math.inf) == 0.0
        assert coerce_float("nan", 1.0) == 1.0

    def test_optional_int(self):
        assert coerce_optional_int("15") == 15
        assert coerce_optional_int("") is None
        assert coerce_optional_int("soon") is None

    def test_normalize_name(self):
        assert normalize_name({"name": "React"}) == "react"
        assert normalize_name({"slug": "django"}) == "django"
        assert normalize_name(" Pro ") == "pro"
        assert normalize_name(None) == ""


class TestProblem:
    def test_partial_payload_gets_defaults(self):
        problem = Problem.from_api({"slug": "x", "acceptance_rate": "n/a", "tags": None})
        assert problem.acceptance_rate == 0.0
        assert problem.tags == []
        assert problem.estimated_time_display == "N/A"
        assert problem.effective_passing_score == 80.0
        assert problem.framework_enum is None

    def test_nested_shapes(self):
        problem = Problem.from_api({
            "id": 4,
            "slug": "todo",
            "framework": {"name": "Angular"},
            "difficulty": "Veteran",
            "tags": [{"name": "forms"}, "forms", "state"],
            "estimated_time": "25",
            "learning_resources": [{"title": "Docs", "url": "https://x"}, "https://y", 3],
        })
        assert problem.framework_enum == Framework.ANGULAR
        assert problem.difficulty == "veteran"
        assert problem.tags == ["forms", "state"]
        assert problem.estimated_time_display == "25 min"
        assert [r.url for r in problem.learning_resources] == ["https://x", "https://y"]

    def test_boolean_id_is_rejected(self):
        assert Problem.from_api({"id": True}).id is None

    def test_dict_round_trip(self):
        problem = Problem.from_api({"id": 1, "slug": "a", "hints": ["h"], "passing_score": 75})
        assert Problem.from_dict(problem.to_dict()) == problem

    def test_starter_without_context(self):
        assert StarterCode(starter_code="def view(): pass").full_code == "def view(): pass"


class TestSubmissionResult:
    def test_unknown_values(self):
        result = SubmissionResult.from_api({
            "verdict": "exploded",
            "score": None,
            "feedback": [{"type": "fatal", "message": "?", "line": 3, "column": 7}],
            "validation_results": ["not", "a", "dict"],
        })
        assert result.verdict is None
        assert result.score == 0.0
        assert result.feedback[0].type == FeedbackType.INFO
        assert result.feedback[0].location == "line 3, col 7"
        assert result.validation_results == {}
        assert result.execution_time == "N/A"

    def test_feedback_without_line(self):
        assert FeedbackItem.from_api({"type": "error", "message": "m"}).location == ""


class TestPage:
    def test_envelope_without_count(self):
        page = Page.from_api({"results": [{"a": 1}, "junk"]}, dict)
        assert page.results == [{"a": 1}]
        assert page.count == 1
        assert page.total_pages(10) == 1

    def test_unexpected_shape(self):
        page = Page.from_api("oops", dict)
        assert page.results == []
        assert page.total_pages(9) == 0


class TestUser:
    def test_credentials_shapes(self):
        assert Credentials.from_api({"access": "a", "refresh": "r"}).is_valid()
        nested = Credentials.from_api({"tokens": {"access": "a2"}})
        assert nested.access == "a2"
        assert not Credentials.from_api({}).is_valid()

    def test_preferences_defaults(self):
        prefs = Preferences.from_dict({"page_size": "0"})
        assert prefs.page_size == Preferences().page_size
        assert UserConfig.from_dict({}).preferences == Preferences()
