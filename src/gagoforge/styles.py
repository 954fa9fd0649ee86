"""Presentation metadata for the closed framework and difficulty sets."""

from __future__ import annotations

from dataclasses import dataclass

from gagoforge.models.fields import normalize_name
from gagoforge.models.problem import Difficulty, Framework
from gagoforge.models.submission import Verdict


@dataclass(frozen=True)
class Style:
    label: str
    color: str       # colour family tag: success | warning | error | info | default
    term_color: str  # blessed attribute name


FRAMEWORK_STYLES: dict[Framework, Style] = {
    Framework.REACT: Style("React", "info", "cyan"),
    Framework.DJANGO: Style("Django", "success", "green"),
    Framework.ANGULAR: Style("Angular", "error", "red"),
    Framework.EXPRESS: Style("Express", "default", "white"),
}

# veteran differs from pro only by label
DIFFICULTY_STYLES: dict[Difficulty, Style] = {
    Difficulty.BEGINNER: Style("Beginner", "success", "green"),
    Difficulty.INTERMEDIATE: Style("Intermediate", "warning", "yellow"),
    Difficulty.PRO: Style("Pro", "error", "red"),
    Difficulty.VETERAN: Style("Veteran", "error", "red"),
}

VERDICT_STYLES: dict[Verdict, Style] = {
    Verdict.ACCEPTED: Style("Accepted", "success", "green"),
    Verdict.PARTIALLY_PASSED: Style("Partially Passed", "warning", "yellow"),
    Verdict.FAILED: Style("Failed", "error", "red"),
    Verdict.SYNTAX_ERROR: Style("Syntax Error", "error", "red"),
    Verdict.PENDING: Style("Pending", "info", "cyan"),
}


def framework_style(framework: Framework) -> Style:
    return FRAMEWORK_STYLES[framework]


def difficulty_style(difficulty: Difficulty) -> Style:
    return DIFFICULTY_STYLES[difficulty]


def verdict_style(verdict: Verdict) -> Style:
    return VERDICT_STYLES[verdict]


def style_for_framework(name) -> Style:
    """Style for raw data; names outside the enum render plainly."""
    framework = Framework.parse(name)
    if framework is None:
        return Style(normalize_name(name), "default", "")
    return framework_style(framework)


def style_for_difficulty(name) -> Style:
    difficulty = Difficulty.parse(name)
    if difficulty is None:
        return Style(normalize_name(name), "default", "")
    return difficulty_style(difficulty)


def style_for_verdict(name) -> Style:
    verdict = Verdict.parse(name)
    if verdict is None:
        return Style(normalize_name(name), "default", "")
    return verdict_style(verdict)
