from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from gagoforge.models.fields import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_list,
    coerce_optional_int,
    coerce_str,
    normalize_name,
)


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    PARTIALLY_PASSED = "partially_passed"
    FAILED = "failed"
    SYNTAX_ERROR = "syntax_error"
    PENDING = "pending"

    @classmethod
    def parse(cls, value) -> Verdict | None:
        try:
            return cls(normalize_name(value))
        except ValueError:
            return None


class FeedbackType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class FeedbackItem:
    type: FeedbackType = FeedbackType.INFO
    message: str = ""
    line: int | None = None
    column: int | None = None
    suggestion: str = ""

    @property
    def location(self) -> str:
        if self.line is None:
            return ""
        if self.column is None:
            return f"line {self.line}"
        return f"line {self.line}, col {self.column}"

    @classmethod
    def from_api(cls, data) -> FeedbackItem:
        if isinstance(data, str):
            return cls(message=data)
        try:
            kind = FeedbackType(normalize_name(data.get("type")))
        except ValueError:
            kind = FeedbackType.INFO
        return cls(
            type=kind,
            message=coerce_str(data.get("message")),
            line=coerce_optional_int(data.get("line")),
            column=coerce_optional_int(data.get("column")),
            suggestion=coerce_str(data.get("suggestion")),
        )


def _feedback(value) -> list[FeedbackItem]:
    return [
        FeedbackItem.from_api(item)
        for item in coerce_list(value)
        if isinstance(item, (dict, str))
    ]


def format_execution_time(milliseconds: float | None) -> str:
    if not milliseconds:
        return "N/A"
    return f"{milliseconds / 1000:.2f}s"


@dataclass
class SubmissionResult:
    """Outcome of one submit call; held only in session state."""

    verdict: Verdict | None = None
    score: float = 0.0
    feedback: list[FeedbackItem] = field(default_factory=list)
    execution_time_ms: float | None = None
    matched_patterns: list[str] = field(default_factory=list)
    validation_results: dict = field(default_factory=dict)
    submission_id: str = ""

    @property
    def accepted(self) -> bool:
        return self.verdict == Verdict.ACCEPTED

    @property
    def execution_time(self) -> str:
        return format_execution_time(self.execution_time_ms)

    @classmethod
    def from_api(cls, data: dict) -> SubmissionResult:
        exec_ms = data.get("execution_time_ms")
        patterns = []
        for p in coerce_list(data.get("matched_patterns")):
            patterns.append(p.get("name", "") if isinstance(p, dict) else coerce_str(p))
        validation = data.get("validation_results")
        return cls(
            verdict=Verdict.parse(data.get("verdict")),
            score=coerce_float(data.get("score")),
            feedback=_feedback(data.get("feedback")),
            execution_time_ms=coerce_float(exec_ms) if exec_ms is not None else None,
            matched_patterns=patterns,
            validation_results=validation if isinstance(validation, dict) else {},
            submission_id=coerce_str(data.get("submission_id", data.get("id"))),
        )


@dataclass
class Submission:
    """One row of the submission history."""

    submission_id: str = ""
    problem: int | str | None = None
    problem_id: int | str | None = None
    problem_title: str = ""
    framework: str = ""
    verdict: str = ""
    score: float = 0.0
    language: str = ""
    code: str = ""
    hints_used: int = 0
    submitted_at: str = ""
    is_disputed: bool = False
    dispute_reason: str = ""
    feedback: list[FeedbackItem] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> Submission:
        raw_problem = data.get("problem")
        title = data.get("problem_title")
        if isinstance(raw_problem, dict):
            title = title or raw_problem.get("title")
            raw_problem = raw_problem.get("id")
        problem_id = data.get("problem_id")
        return cls(
            submission_id=coerce_str(data.get("submission_id", data.get("id"))),
            problem=raw_problem if isinstance(raw_problem, (int, str)) else None,
            problem_id=problem_id if isinstance(problem_id, (int, str)) else None,
            problem_title=coerce_str(title),
            framework=normalize_name(data.get("framework")),
            verdict=normalize_name(data.get("verdict")),
            score=coerce_float(data.get("score")),
            language=coerce_str(data.get("language")),
            code=coerce_str(data.get("code")),
            hints_used=coerce_int(data.get("hints_used")),
            submitted_at=coerce_str(data.get("submitted_at")),
            is_disputed=coerce_bool(data.get("is_disputed", False)),
            dispute_reason=coerce_str(data.get("dispute_reason")),
            feedback=_feedback(data.get("feedback")),
        )


@dataclass(frozen=True)
class SubmissionStats:
    total_submissions: int = 0
    accepted: int = 0
    partially_passed: int = 0
    failed: int = 0
    syntax_errors: int = 0
    success_rate: int = 0
    acceptance_rate: int = 0
    total_score: int = 0


@dataclass(frozen=True)
class VerdictShare:
    verdict: Verdict
    count: int = 0
    percentage: int = 0
    total_score: int = 0
