from __future__ import annotations

import asyncio
import logging
import sys

from gagoforge.api.client import AuthenticationError, ForgeError, describe_error
from gagoforge.api.submissions import SubmissionFilters
from gagoforge.constants import SUBMISSIONS_PAGE_SIZE
from gagoforge.history import (
    compute_submission_stats,
    filter_submissions,
    mark_disputed,
    paginate,
    problem_route,
    slug_map,
    total_pages,
)
from gagoforge.models.submission import Submission
from gagoforge.styles import style_for_framework, style_for_verdict
from gagoforge.tui.core import (
    LineInput, ScrollList, Screen, clear_line, fmt, flush, pad_right, truncate,
    write_at, write_row,
)

logger = logging.getLogger(__name__)

COL_VERDICT = 18
COL_FRAMEWORK = 10
COL_SCORE = 8
COL_DATE = 12


class SubmissionsScreen(Screen):
    def __init__(self, app) -> None:
        super().__init__(app)
        self._submissions: list[Submission] = []
        self._slugs: dict = {}
        self._search = ""
        self._page = 1
        self._rows = ScrollList()
        self._loading = True
        self._error = ""
        self._input: LineInput | None = None
        self._input_mode = ""  # "search" | "dispute"

    async def on_enter(self) -> None:
        self.invalidate()
        if self._loading:
            asyncio.create_task(self._fetch())

    # ── Data fetching ────────────────────────────────────────────────

    async def _fetch(self) -> None:
        self._loading = True
        self._error = ""
        self.invalidate()
        try:
            self._submissions = await self.app.submissions.get_all_submissions(
                SubmissionFilters(ordering="-submitted_at")
            )
        except AuthenticationError:
            self._loading = False
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            logger.warning("Submission history fetch failed: %s", e)
            self._error = describe_error(e, "Failed to load submissions.")
        try:
            self._slugs = slug_map(await self.app.problems.get_all_problems())
        except ForgeError as e:
            # Rows link by problem id instead
            logger.warning("Problem slugs unavailable: %s", e)
        self._loading = False
        self._page = 1
        self._rows.reset()
        self.invalidate()

    # ── Derived views ────────────────────────────────────────────────

    def _filtered(self) -> list[Submission]:
        return filter_submissions(self._submissions, self._search)

    def _page_rows(self) -> list[Submission]:
        return paginate(self._filtered(), self._page, SUBMISSIONS_PAGE_SIZE)

    def _selected(self) -> Submission | None:
        rows = self._page_rows()
        if rows and self._rows.cursor < len(rows):
            return rows[self._rows.cursor]
        return None

    # ── Rendering ─────────────────────────────────────────────────────

    def render(self) -> None:
        t = self.term
        w = t.width
        h = t.height

        if self._input is not None:
            label = "Search: " if self._input_mode == "search" else "Dispute reason: "
            text = label + self._input.value
            sys.stdout.write(t.move_xy(0, 0) + pad_right(text, w - 1) + fmt(t, "reverse", " "))
        else:
            title = " Submission history"
            if self._search:
                title += f'  "{self._search}"'
            write_row(t, 0, title, "reverse", fill=True)

        if self._loading:
            for row_y in range(1, h):
                clear_line(t, row_y)
            write_at(t, w // 2 - 5, h // 2, fmt(t, "dim", "loading..."))
            flush()
            return

        stats = compute_submission_stats(self._submissions)
        clear_line(t, 1)
        summary = (
            f" {stats.total_submissions} submissions  {stats.accepted} accepted  "
            f"{stats.partially_passed} partial  {stats.failed} failed  "
            f"{stats.syntax_errors} syntax errors  success {stats.success_rate}%"
        )
        write_at(t, 0, 1, fmt(t, "dim", truncate(summary, w)))

        col_title_w = max(w - COL_VERDICT - COL_FRAMEWORK - COL_SCORE - COL_DATE - 1, 10)
        header = (
            " " + pad_right("Problem", col_title_w) + pad_right("Verdict", COL_VERDICT)
            + pad_right("Framework", COL_FRAMEWORK) + pad_right("Score", COL_SCORE)
            + pad_right("Date", COL_DATE)
        )
        write_row(t, 2, header, "bold", fill=True)

        rows = self._page_rows()
        body_start = 3
        for i in range(h - 1 - body_start):
            row_y = body_start + i
            clear_line(t, row_y)
            if i == 0 and self._error:
                write_at(t, 1, row_y, fmt(t, "red", truncate(self._error, w - 2)))
                continue
            if i == 0 and not rows:
                write_at(t, 1, row_y, fmt(t, "dim", "No submissions found."))
                continue
            if i < len(rows):
                self._render_row(t, row_y, rows[i], col_title_w, w, i == self._rows.cursor)

        pages = total_pages(len(self._filtered()), SUBMISSIONS_PAGE_SIZE) or 1
        info = f" pg {self._page}/{pages}"
        hints = "j/k move  n/p page  / search  enter open  D dispute  r refresh  esc back"
        notif = self.app.get_notification()
        write_row(t, h - 1, notif or (info + "  |  " + hints), "dim", fill=True)
        flush()

    def _render_row(self, t, y: int, s: Submission, col_title_w: int, w: int,
                    is_selected: bool) -> None:
        verdict = style_for_verdict(s.verdict)
        framework = style_for_framework(s.framework)
        label = verdict.label + (" *" if s.is_disputed else "")
        cells = [
            (" " + truncate(s.problem_title or "Unknown problem", col_title_w - 2), col_title_w + 1, ""),
            (label, COL_VERDICT, verdict.term_color),
            (framework.label, COL_FRAMEWORK, framework.term_color),
            (f"{s.score:.1f}", COL_SCORE, ""),
            (s.submitted_at[:10], COL_DATE, "dim"),
        ]
        if is_selected:
            line = "".join(pad_right(text, width) for text, width, _ in cells)
            sys.stdout.write(t.move_xy(0, y) + fmt(t, "reverse", pad_right(line, w)))
            return
        x = 0
        for text, width, color in cells:
            write_at(t, x, y, fmt(t, color, pad_right(text, width)))
            x += width

    # ── Key handling ──────────────────────────────────────────────────

    async def handle_key(self, key) -> None:
        if self._input is not None:
            if key.name == "KEY_ESCAPE":
                self._input = None
                self.invalidate()
            elif key.name == "KEY_ENTER":
                value = self._input.value.strip()
                mode = self._input_mode
                self._input = None
                if mode == "search":
                    self._search = value
                    self._page = 1
                    self._rows.reset()
                    self.invalidate()
                else:
                    asyncio.create_task(self._dispute(value))
            elif self._input.feed(key):
                self.invalidate()
            return

        rows = self._page_rows()
        pages = total_pages(len(self._filtered()), SUBMISSIONS_PAGE_SIZE)
        if key == "j" or key.name == "KEY_DOWN":
            if self._rows.move(1, len(rows)):
                self.invalidate()
        elif key == "k" or key.name == "KEY_UP":
            if self._rows.move(-1, len(rows)):
                self.invalidate()
        elif key == "n" or key.name == "KEY_PGDOWN":
            if self._page < pages:
                self._page += 1
                self._rows.reset()
                self.invalidate()
        elif key == "p" or key.name == "KEY_PGUP":
            if self._page > 1:
                self._page -= 1
                self._rows.reset()
                self.invalidate()
        elif key == "/":
            self._input = LineInput(self._search)
            self._input_mode = "search"
            self.invalidate()
        elif key == "D":
            selected = self._selected()
            if selected is None:
                return
            if selected.is_disputed:
                self.app.notify("This submission is already disputed.")
                return
            self._input = LineInput()
            self._input_mode = "dispute"
            self.invalidate()
        elif key == "r":
            asyncio.create_task(self._fetch())
        elif key.name == "KEY_ENTER":
            selected = self._selected()
            if selected is not None:
                route = problem_route(selected, self._slugs)
                await self.app.open_problem(route.rsplit("/", 1)[-1])
        elif key.name == "KEY_ESCAPE" or key == "q":
            await self.app.pop_screen()

    async def _dispute(self, reason: str) -> None:
        selected = self._selected()
        if selected is None:
            return
        try:
            await self.app.submissions.dispute(selected.submission_id, reason)
        except AuthenticationError:
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            self.app.notify(describe_error(e, "Could not submit dispute."))
            return
        mark_disputed(self._submissions, selected.submission_id, reason)
        self.app.notify("Dispute submitted.")
        self.invalidate()
