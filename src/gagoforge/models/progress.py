from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gagoforge.models.fields import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_str,
)
from gagoforge.models.problem import Problem


class ProgressState(str, Enum):
    ALL = "all"
    SOLVED = "solved"
    ATTEMPTED = "attempted"
    UNATTEMPTED = "unattempted"


@dataclass
class ProgressRecord:
    """Snapshot of one user's progress on one problem.

    The backend sends ``problem`` either as a nested object, a numeric id,
    or a string id, so all three identities are kept.
    """

    problem_slug: str = ""
    problem_id: int | str | None = None
    is_solved: bool = False
    best_score: float = 0.0
    total_attempts: int = 0
    last_attempted_at: str = ""
    problem: Problem | None = None

    def keys(self) -> list:
        keys: list = []
        if self.problem_slug:
            keys.append(self.problem_slug)
        if self.problem_id is not None:
            keys.append(self.problem_id)
            if str(self.problem_id) not in keys:
                keys.append(str(self.problem_id))
        return keys

    @classmethod
    def from_api(cls, data: dict) -> ProgressRecord:
        raw = data.get("problem")
        slug = ""
        problem_id = None
        nested = None
        if isinstance(raw, dict):
            nested = Problem.from_api(raw)
            slug = nested.slug
            problem_id = nested.id
        elif isinstance(raw, (int, str)) and not isinstance(raw, bool) and raw != "":
            problem_id = raw
        if not slug:
            slug = coerce_str(data.get("problem_slug"))
        return cls(
            problem_slug=slug,
            problem_id=problem_id,
            is_solved=coerce_bool(data.get("is_solved", False)),
            best_score=coerce_float(data.get("best_score")),
            total_attempts=coerce_int(data.get("total_attempts")),
            last_attempted_at=coerce_str(data.get("last_attempted_at")),
            problem=nested,
        )


@dataclass(frozen=True)
class ProblemProgress:
    is_solved: bool = False
    best_score: float = 0.0
    total_attempts: int = 0
    is_attempted: bool = False

    @property
    def state(self) -> ProgressState:
        if self.is_solved:
            return ProgressState.SOLVED
        if self.is_attempted:
            return ProgressState.ATTEMPTED
        return ProgressState.UNATTEMPTED


UNATTEMPTED = ProblemProgress()


@dataclass(frozen=True)
class ProgressCounts:
    solved: int = 0
    attempted: int = 0
    unattempted: int = 0

    def for_state(self, state: ProgressState) -> int:
        if state == ProgressState.SOLVED:
            return self.solved
        if state == ProgressState.ATTEMPTED:
            return self.attempted
        if state == ProgressState.UNATTEMPTED:
            return self.unattempted
        return self.solved + self.attempted + self.unattempted


@dataclass
class FrameworkStat:
    name: str = ""
    solved: int = 0
    total: int = 0
    proficiency: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.solved)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "solved": self.solved,
            "total": self.total,
            "proficiency": self.proficiency,
            "remaining": self.remaining,
        }


@dataclass
class DifficultyStat:
    level: str = ""
    solved: int = 0
    total: int = 0
    proficiency: int = 0
    color: str = "default"

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.solved)

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "solved": self.solved,
            "total": self.total,
            "percentage": self.proficiency,
            "remaining": self.remaining,
            "color": self.color,
        }

