from __future__ import annotations

from dataclasses import dataclass, field

from gagoforge.models.fields import coerce_float, coerce_int, coerce_str, normalize_name
from gagoforge.models.progress import DifficultyStat, FrameworkStat


def _values(mapping) -> list[dict]:
    if isinstance(mapping, dict):
        return [v for v in mapping.values() if isinstance(v, dict)]
    if isinstance(mapping, list):
        return [v for v in mapping if isinstance(v, dict)]
    return []


@dataclass
class StatsSummary:
    """Backend-computed totals for the profile page."""

    total_problems_solved: int = 0
    total_problems_attempted: int = 0
    total_submissions: int = 0
    total_score: float = 0.0
    global_rank: int = 0
    current_streak: int | None = None
    longest_streak: int | None = None
    last_activity: str = ""
    frameworks: list[FrameworkStat] = field(default_factory=list)
    difficulties: list[DifficultyStat] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> StatsSummary:
        # The legacy stats endpoint is flat; the summary nests under "overview"
        overview = data.get("overview") if isinstance(data.get("overview"), dict) else data
        streaks = data.get("streaks") if isinstance(data.get("streaks"), dict) else {}
        frameworks = [
            FrameworkStat(
                name=normalize_name(fw.get("name")),
                solved=coerce_int(fw.get("solved")),
                total=coerce_int(fw.get("total")),
                proficiency=coerce_int(fw.get("proficiency")),
            )
            for fw in _values(data.get("frameworks"))
        ]
        difficulties = [
            DifficultyStat(
                level=normalize_name(d.get("level")),
                solved=coerce_int(d.get("solved")),
                total=coerce_int(d.get("total")),
                proficiency=coerce_int(d.get("percentage", d.get("proficiency"))),
                color=coerce_str(d.get("color")) or "default",
            )
            for d in _values(data.get("difficulties"))
        ]
        return cls(
            total_problems_solved=coerce_int(overview.get("total_problems_solved")),
            total_problems_attempted=coerce_int(overview.get("total_problems_attempted")),
            total_submissions=coerce_int(overview.get("total_submissions")),
            total_score=coerce_float(overview.get("total_score")),
            global_rank=coerce_int(overview.get("global_rank")),
            current_streak=(
                coerce_int(streaks["current"]) if streaks.get("current") is not None else None
            ),
            longest_streak=(
                coerce_int(streaks["longest"]) if streaks.get("longest") is not None else None
            ),
            last_activity=coerce_str(streaks.get("last_activity")),
            frameworks=frameworks,
            difficulties=difficulties,
        )


@dataclass(frozen=True)
class ProfileOverview:
    total_solved: int = 0
    total_problems: int = 0
    streak: int = 0
    longest_streak: int = 0
    rank: int = 0
    experience: float = 0.0
    level: int = 1
    level_progress: float = 0.0
    solved_percentage: int = 0
