from __future__ import annotations

import asyncio
import logging
import re
import sys

import html2text

from gagoforge.config import editor_command
from gagoforge.constants import LOGIN_ROUTE, PROBLEM_LIST_ROUTE
from gagoforge.drafts import discard_draft, edit_draft, get_draft_path, read_draft, write_draft
from gagoforge.models.problem import Problem
from gagoforge.styles import style_for_difficulty, style_for_framework
from gagoforge.tui.core import (
    Screen, clear_line, clear_screen, fmt, flush, truncate, wrap_lines,
    write_at, write_row,
)
from gagoforge.tui.highlight import highlight_lines, render_segments
from gagoforge.workflow import Resolution, SubmissionWorkflow, Tab, WorkflowState

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[a-zA-Z/][^>]*>")
_TAB_LABELS = {Tab.DESCRIPTION: "Description", Tab.HINTS: "Hints", Tab.RESOURCES: "Resources"}

# Shared html2text converter
_h2t_instance: html2text.HTML2Text | None = None


def _get_h2t() -> html2text.HTML2Text:
    global _h2t_instance
    if _h2t_instance is None:
        _h2t_instance = html2text.HTML2Text()
        _h2t_instance.ignore_links = False
        _h2t_instance.ignore_images = True
        _h2t_instance.body_width = 0
    return _h2t_instance


def description_lines(text: str) -> list[str]:
    """Plain lines for a problem description given as HTML or markdown."""
    if not text:
        return ["No description."]
    if _HTML_TAG.search(text):
        text = _get_h2t().handle(text)
    text = text.replace("**", "")
    cleaned: list[str] = []
    prev_blank = False
    for line in text.split("\n"):
        stripped = line.rstrip()
        is_blank = not stripped
        if is_blank and prev_blank:
            continue
        cleaned.append(stripped)
        prev_blank = is_blank
    while cleaned and not cleaned[0]:
        cleaned.pop(0)
    while cleaned and not cleaned[-1]:
        cleaned.pop()
    return cleaned


class ProblemDetailScreen(Screen):
    """Problem statement, starter pane and solution editor for one problem.

    Each load resets the workflow with an empty solution; a saved draft
    for the problem is restored into it once it reaches Ready.
    """

    def __init__(self, app, slug: str) -> None:
        super().__init__(app)
        self._slug = slug
        self._workflow = SubmissionWorkflow(
            app.problems,
            app.submissions,
            app.session,
            on_change=self.invalidate,
            on_navigate=self._on_navigate,
            on_resolved=self._on_resolved,
        )
        self._left_scroll = 0
        self._started = False
        self._editing = False

    @property
    def workflow(self) -> SubmissionWorkflow:
        return self._workflow

    async def on_enter(self) -> None:
        self.invalidate()
        if not self._started:
            self._started = True
            asyncio.create_task(self._load(self._slug))

    # ── Loading ──────────────────────────────────────────────────────

    async def _load(self, slug: str) -> None:
        await self._workflow.load_problem(slug)
        self._restore_draft()

    def _restore_draft(self) -> None:
        wf = self._workflow
        if wf.state != WorkflowState.READY or wf.slug != self._slug:
            return
        draft = read_draft(get_draft_path(wf.slug, wf.language))
        if draft.strip():
            wf.edit(draft)
            self.app.notify("Restored saved draft.")

    def _on_navigate(self, route: str) -> None:
        if route in (LOGIN_ROUTE, PROBLEM_LIST_ROUTE):
            self.app.navigate(route)
            return
        self._slug = route.rsplit("/", 1)[-1]
        self._left_scroll = 0

    def _on_resolved(self, resolution: Resolution) -> None:
        from gagoforge.tui.submission_result import SubmissionResultScreen

        screen = SubmissionResultScreen(self.app, resolution, self._workflow.problem)
        screen.on_dismiss = self._on_result_dismissed
        asyncio.create_task(self.app.push_screen(screen))

    async def _on_result_dismissed(self, action: str | None) -> None:
        if action == "list":
            await self.app.pop_screen()
        elif action == "solution":
            self._action_show_solution()
        elif action == "next":
            await self._workflow.navigate_next()
            self._restore_draft()

    # ── Rendering ─────────────────────────────────────────────────────

    def render(self) -> None:
        t = self.term
        w = t.width
        h = t.height
        wf = self._workflow

        if wf.state in (WorkflowState.IDLE, WorkflowState.LOADING) and wf.problem is None:
            clear_screen(t)
            write_at(t, w // 2 - 5, h // 2, fmt(t, "dim", "loading..."))
            flush()
            return

        if wf.state == WorkflowState.ERROR:
            clear_screen(t)
            write_at(t, 2, 2, fmt(t, "red", truncate(wf.error, w - 4)))
            write_row(t, h - 1, " R retry  esc back", "dim", fill=True)
            flush()
            return

        problem = wf.problem
        self._render_header(t, problem, w)

        content_top = 4
        content_bottom = h - 1
        height = content_bottom - content_top
        left_w = w // 2
        right_x = left_w + 1
        right_w = w - right_x

        left = wrap_lines(self._left_lines(problem), max(10, left_w - 2))
        self._left_scroll = min(self._left_scroll, max(0, len(left) - height))
        for i in range(height):
            row_y = content_top + i
            clear_line(t, row_y)
            idx = self._left_scroll + i
            if idx < len(left):
                write_at(t, 1, row_y, truncate(left[idx], left_w - 2))
            write_at(t, left_w, row_y, fmt(t, "dim", "│"))

        self._render_code(t, right_x, content_top, right_w, height)

        notif = self.app.get_notification()
        if notif:
            status = notif
        elif wf.state == WorkflowState.SUBMITTING:
            status = "Submitting..."
        elif self._editing:
            status = "Editing in external editor..."
        else:
            status = ("tab switch  j/k scroll  1-9 hint  e edit  i imports  ^s submit  "
                      "r reset  s solution  [/] prev/next  esc back")
        write_row(t, h - 1, status, "dim", fill=True)
        flush()

    def _render_header(self, t, problem: Problem, w: int) -> None:
        wf = self._workflow
        title = problem.title
        if wf.progress_label:
            title += f"  ({wf.progress_label})"
        write_row(t, 0, truncate(title, w), "bold", fill=True)

        framework = style_for_framework(problem.framework)
        difficulty = style_for_difficulty(problem.difficulty)
        clear_line(t, 1)
        x = 0
        for text, color in (
            (framework.label, framework.term_color),
            (difficulty.label, difficulty.term_color),
            (problem.category, "dim"),
            (f"~{problem.estimated_time_display}", "dim"),
            (f"pass {problem.effective_passing_score:.0f}%", "dim"),
        ):
            if not text or x >= w:
                continue
            write_at(t, x, 1, fmt(t, color, truncate(text, w - x)))
            x += len(text) + 2

        clear_line(t, 2)
        x = 0
        for tab, label in _TAB_LABELS.items():
            if tab == Tab.HINTS:
                label = f"{label} ({len(problem.hints)})"
            text = f" {label} "
            color = "reverse" if tab == wf.active_tab else ""
            write_at(t, x, 2, fmt(t, color, text))
            x += len(text) + 1
        write_row(t, 3, "─" * w, "dim")

    def _left_lines(self, problem: Problem) -> list[str]:
        wf = self._workflow
        if wf.active_tab == Tab.HINTS:
            if not problem.hints:
                return ["No hints for this problem."]
            lines = [f"Hints used: {wf.hints_used}", ""]
            for i, hint in enumerate(problem.hints):
                if i in wf.expanded_hints:
                    lines.append(f"[-] Hint {i + 1}")
                    lines.extend("    " + line for line in str(hint).split("\n"))
                else:
                    lines.append(f"[+] Hint {i + 1}")
                lines.append("")
            return lines
        if wf.active_tab == Tab.RESOURCES:
            if not problem.learning_resources:
                return ["No learning resources."]
            lines = []
            for resource in problem.learning_resources:
                lines.append(f"* {resource.title}")
                if resource.url and resource.url != resource.title:
                    lines.append(f"  {resource.url}")
            return lines
        lines = description_lines(problem.description)
        if problem.tags:
            lines += ["", "Tags: " + ", ".join(problem.tags)]
        return lines

    def _render_code(self, t, x: int, top: int, width: int, height: int) -> None:
        wf = self._workflow
        starter = highlight_lines(wf.starter_code, wf.language) if wf.starter_code else []
        solution = wf.solution_code.split("\n") if wf.solution_code else []

        rows: list[tuple[str, object]] = [("header", f"── starter ({wf.language}) ")]
        rows += [("code", segs) for segs in starter] or [("dim", "loading...")]
        rows.append(("header", "── your solution "))
        if solution:
            rows += [("code", segs) for segs in highlight_lines(wf.solution_code, wf.language)]
        else:
            rows.append(("dim", "empty - press e to open your editor"))

        # Keep the solution in view when the starter code is long
        solution_start = len(rows) - max(1, len(solution))
        offset = max(0, min(solution_start - height // 2, len(rows) - height))
        for i in range(height):
            row_y = top + i
            sys.stdout.write(t.move_xy(x, row_y) + t.clear_eol)
            idx = offset + i
            if idx >= len(rows):
                continue
            kind, value = rows[idx]
            if kind == "code":
                write_at(t, x, row_y, render_segments(t, value, width))
            elif kind == "header":
                write_at(t, x, row_y, fmt(t, "dim", truncate(value + "─" * width, width)))
            else:
                write_at(t, x, row_y, fmt(t, "dim", truncate(value, width)))

    # ── Key handling ──────────────────────────────────────────────────

    async def handle_key(self, key) -> None:
        wf = self._workflow
        if self._editing:
            return

        if key.name == "KEY_ESCAPE" or key == "q":
            await self.app.pop_screen()
            return

        if wf.state == WorkflowState.ERROR:
            if key == "R":
                asyncio.create_task(self._load(self._slug))
            return

        if key == "\x13":
            self.run_async(wf.submit())
        elif key.name == "KEY_TAB" or key == "\t":
            wf.select_tab(Tab((wf.active_tab + 1) % len(Tab)))
            self._left_scroll = 0
        elif key == "j" or key.name == "KEY_DOWN":
            self._left_scroll += 1
            self.invalidate()
        elif key == "k" or key.name == "KEY_UP":
            self._left_scroll = max(0, self._left_scroll - 1)
            self.invalidate()
        elif key.name == "KEY_PGDOWN":
            self._left_scroll += max(1, self.term.height - 6)
            self.invalidate()
        elif key.name == "KEY_PGUP":
            self._left_scroll = max(0, self._left_scroll - max(1, self.term.height - 6))
            self.invalidate()
        elif len(key) == 1 and key in "123456789":
            if wf.active_tab != Tab.HINTS:
                wf.select_tab(Tab.HINTS)
            wf.reveal_hint(int(key) - 1)
        elif key == "e":
            asyncio.create_task(self._action_edit())
        elif key == "i":
            self._action_copy_imports()
        elif key == "r":
            self._action_reset()
        elif key == "s":
            self._action_show_solution()
        elif key == "[":
            asyncio.create_task(self._navigate(wf.navigate_previous))
        elif key == "]":
            asyncio.create_task(self._navigate(wf.navigate_next))

    # ── Actions ───────────────────────────────────────────────────────

    def _draft_path(self):
        return get_draft_path(self._workflow.slug, self._workflow.language)

    async def _action_edit(self) -> None:
        wf = self._workflow
        if wf.state not in (WorkflowState.READY, WorkflowState.RESOLVED):
            return
        self._editing = True
        path = self._draft_path()
        write_draft(path, wf.solution_code)
        try:
            with self.app.suspended():
                code = await edit_draft(editor_command(self.app.config), path)
        finally:
            self._editing = False
        if code is None:
            self.app.notify("Editor exited with an error; solution unchanged.")
        else:
            wf.edit(code)
        self.invalidate()

    def _action_copy_imports(self) -> None:
        wf = self._workflow
        if not wf.starter_code:
            return
        imports = wf.starter_imports()
        if wf.solution_code.startswith(imports):
            return
        wf.edit(f"{imports}\n\n{wf.solution_code}".rstrip() + "\n")
        write_draft(self._draft_path(), wf.solution_code)
        self.app.notify("Imports copied into your solution.")

    def _action_reset(self) -> None:
        wf = self._workflow
        if wf.state not in (WorkflowState.READY, WorkflowState.RESOLVED):
            return
        wf.reset()
        discard_draft(self._draft_path())
        self.app.notify("Solution reset.")

    def _action_show_solution(self) -> None:
        wf = self._workflow
        if wf.show_solution():
            write_draft(self._draft_path(), wf.solution_code)
            self.app.notify("Example solution loaded.")
        else:
            self.app.notify("The example solution unlocks after a passing submission.")

    async def _navigate(self, move) -> None:
        await move()
        self._restore_draft()
