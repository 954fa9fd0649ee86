from __future__ import annotations

from gagoforge.models.problem import Problem
from gagoforge.styles import style_for_verdict
from gagoforge.tui.core import (
    Screen, clear_screen, fmt, flush, pad_right, render_body, scroll_by, write_at,
)
from gagoforge.workflow import Resolution

_FEEDBACK_COLORS = {"error": "red", "warning": "yellow", "info": "cyan"}


class SubmissionResultScreen(Screen):
    on_dismiss = None  # callback: async (action: str | None) -> None

    def __init__(self, app, resolution: Resolution, problem: Problem | None = None) -> None:
        super().__init__(app)
        self._resolution = resolution
        self._problem = problem
        self._lines: list[tuple[str, str]] = []  # (color, text) pairs
        self._scroll = 0
        self._build_lines()

    def _build_lines(self) -> None:
        r = self._resolution
        lines = self._lines

        if r.verdict is not None:
            style = style_for_verdict(r.verdict.value)
            lines.append((style.term_color, style.label))
        lines.append(("green" if r.success else "red", r.message))
        lines.append(("", ""))
        lines.append(("", f"  score:       {r.score:.1f}%"))
        if self._problem is not None:
            lines.append(("", f"  pass mark:   {self._problem.effective_passing_score:.0f}%"))
        lines.append(("", f"  time:        {r.execution_time}"))

        if r.matched_patterns:
            lines.append(("", ""))
            lines.append(("bold", "Matched patterns:"))
            for name in r.matched_patterns:
                lines.append(("green", f"  + {name}"))

        if r.validation_results:
            lines.append(("", ""))
            lines.append(("bold", "Checks:"))
            for name, value in r.validation_results.items():
                lines.append(("", f"  {name}: {value}"))

        if r.feedback:
            lines.append(("", ""))
            lines.append(("bold", "Feedback:"))
            for item in r.feedback:
                color = _FEEDBACK_COLORS.get(item.type.value, "")
                where = f" ({item.location})" if item.location else ""
                lines.append((color, f"  [{item.type.value}]{where} {item.message}"))
                if item.suggestion:
                    lines.append(("dim", f"      suggestion: {item.suggestion}"))

    def render(self) -> None:
        t = self.term
        clear_screen(t)
        w = t.width
        h = t.height

        write_at(t, 0, 0, fmt(t, "bold", "Submission Result"))
        render_body(t, self._lines, self._scroll, 2, h - 2)

        hints = "[esc] back to problem  [s] show solution  [n] next problem  [q] problem list  [j/k] scroll"
        write_at(t, 0, h - 1, fmt(t, "dim", pad_right(hints, w)))
        flush()

    async def handle_key(self, key) -> None:
        visible = self.term.height - 4
        if key.name == "KEY_ESCAPE":
            await self._dismiss("problem")
        elif key == "q":
            await self._dismiss("list")
        elif key == "s" and self._resolution.success:
            await self._dismiss("solution")
        elif key == "n":
            await self._dismiss("next")
        elif key == "j" or key.name == "KEY_DOWN":
            self._scroll = scroll_by(self._scroll, 1, len(self._lines), visible)
            self.invalidate()
        elif key == "k" or key.name == "KEY_UP":
            self._scroll = scroll_by(self._scroll, -1, len(self._lines), visible)
            self.invalidate()
        elif key.name == "KEY_PGDOWN":
            self._scroll = scroll_by(self._scroll, 20, len(self._lines), visible)
            self.invalidate()
        elif key.name == "KEY_PGUP":
            self._scroll = scroll_by(self._scroll, -20, len(self._lines), visible)
            self.invalidate()

    async def _dismiss(self, action: str | None) -> None:
        callback = self.on_dismiss
        await self.app.pop_screen()
        if callback:
            await callback(action)
