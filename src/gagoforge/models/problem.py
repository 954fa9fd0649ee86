from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from gagoforge.constants import DEFAULT_PASSING_SCORE, JAVASCRIPT, PYTHON
from gagoforge.models.fields import (
    coerce_bool,
    coerce_float,
    coerce_list,
    coerce_optional_int,
    coerce_str,
    normalize_name,
)


class Framework(str, Enum):
    REACT = "react"
    DJANGO = "django"
    ANGULAR = "angular"
    EXPRESS = "express"

    @classmethod
    def parse(cls, value) -> Framework | None:
        try:
            return cls(normalize_name(value))
        except ValueError:
            return None


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    PRO = "pro"
    VETERAN = "veteran"

    @classmethod
    def parse(cls, value) -> Difficulty | None:
        try:
            return cls(normalize_name(value))
        except ValueError:
            return None


def language_for(framework: str) -> str:
    """Editor language for a framework track; fixed for a whole session."""
    return PYTHON if normalize_name(framework) == Framework.DJANGO.value else JAVASCRIPT


def _identity(value) -> int | str | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return str(value)


@dataclass
class LearningResource:
    title: str = ""
    url: str = ""

    def to_dict(self) -> dict:
        return {"title": self.title, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict) -> LearningResource:
        if isinstance(data, str):
            return cls(title=data, url=data)
        return cls(title=coerce_str(data.get("title")), url=coerce_str(data.get("url")))


@dataclass
class SolutionPattern:
    name: str = ""
    is_primary: bool = False
    example_code: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "is_primary": self.is_primary,
            "example_code": self.example_code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SolutionPattern:
        return cls(
            name=coerce_str(data.get("name")),
            is_primary=coerce_bool(data.get("is_primary", False)),
            example_code=coerce_str(data.get("example_code")),
        )


@dataclass
class Problem:
    id: int | str | None = None
    slug: str = ""
    title: str = ""
    description: str = ""
    framework: str = ""  # normalized name, see Framework for known tracks
    difficulty: str = ""  # normalized name, see Difficulty
    category: str = ""
    is_premium: bool = False
    acceptance_rate: float = 0.0
    estimated_time_minutes: int | None = None
    tags: list[str] = field(default_factory=list)
    hints: list[str] = field(default_factory=list)
    learning_resources: list[LearningResource] = field(default_factory=list)
    passing_score: float | None = None
    patterns: list[SolutionPattern] = field(default_factory=list)
    problem_id: int | str | None = None
    is_solved: bool = False

    @property
    def framework_enum(self) -> Framework | None:
        return Framework.parse(self.framework)

    @property
    def effective_passing_score(self) -> float:
        # 0 and missing both mean "use the default"
        return self.passing_score or DEFAULT_PASSING_SCORE

    @property
    def estimated_time_display(self) -> str:
        if self.estimated_time_minutes is None:
            return "N/A"
        return f"{self.estimated_time_minutes} min"

    def primary_pattern(self) -> SolutionPattern | None:
        for pattern in self.patterns:
            if pattern.is_primary:
                return pattern
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "framework": self.framework,
            "difficulty": self.difficulty,
            "category": self.category,
            "is_premium": self.is_premium,
            "acceptance_rate": self.acceptance_rate,
            "estimated_time_minutes": self.estimated_time_minutes,
            "tags": self.tags,
            "hints": self.hints,
            "learning_resources": [r.to_dict() for r in self.learning_resources],
            "passing_score": self.passing_score,
            "patterns": [p.to_dict() for p in self.patterns],
            "problem_id": self.problem_id,
            "is_solved": self.is_solved,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Problem:
        return cls.from_api(data)

    @classmethod
    def from_api(cls, data: dict) -> Problem:
        tags = []
        for tag in coerce_list(data.get("tags")):
            name = tag.get("name", "") if isinstance(tag, dict) else coerce_str(tag)
            if name and name not in tags:
                tags.append(name)
        passing = data.get("passing_score")
        return cls(
            id=_identity(data.get("id")),
            slug=coerce_str(data.get("slug")),
            title=coerce_str(data.get("title")),
            description=coerce_str(data.get("description")),
            framework=normalize_name(data.get("framework")),
            difficulty=normalize_name(data.get("difficulty")),
            category=normalize_name(data.get("category")),
            is_premium=coerce_bool(data.get("is_premium", False)),
            acceptance_rate=coerce_float(data.get("acceptance_rate")),
            estimated_time_minutes=coerce_optional_int(
                data.get("estimated_time_minutes", data.get("estimated_time"))
            ),
            tags=tags,
            hints=[coerce_str(h) for h in coerce_list(data.get("hints"))],
            learning_resources=[
                LearningResource.from_dict(r)
                for r in coerce_list(data.get("learning_resources"))
                if isinstance(r, (dict, str))
            ],
            passing_score=coerce_float(passing) if passing is not None else None,
            patterns=[
                SolutionPattern.from_dict(p)
                for p in coerce_list(data.get("patterns"))
                if isinstance(p, dict)
            ],
            problem_id=_identity(data.get("problem_id")),
            is_solved=coerce_bool(data.get("is_solved", False)),
        )


@dataclass
class StarterCode:
    context_code: str = ""
    starter_code: str = ""

    @property
    def full_code(self) -> str:
        """Read-only pane content: context followed by the starter stub."""
        return f"{self.context_code}\n\n{self.starter_code}".strip()

    def to_dict(self) -> dict:
        return {"context_code": self.context_code, "starter_code": self.starter_code}

    @classmethod
    def from_dict(cls, data: dict) -> StarterCode:
        return cls(
            context_code=coerce_str(data.get("context_code")),
            starter_code=coerce_str(data.get("starter_code")),
        )
