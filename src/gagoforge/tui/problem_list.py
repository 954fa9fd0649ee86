from __future__ import annotations

import asyncio
import logging
import sys

from gagoforge.api.client import AuthenticationError, ForgeError, describe_error
from gagoforge.api.problems import ProblemFilters
from gagoforge.models.page import Page
from gagoforge.models.problem import Difficulty, Framework, Problem
from gagoforge.models.progress import ProgressState
from gagoforge.progress import ProblemBoard
from gagoforge.styles import style_for_difficulty, style_for_framework
from gagoforge.tui.core import (
    ScrollList, LineInput, Screen, clear_line, fmt, flush, pad_right, truncate,
    write_at, write_row,
)

logger = logging.getLogger(__name__)

# Column widths
COL_STATUS = 3
COL_FRAMEWORK = 10
COL_DIFF = 14
COL_SCORE = 8
COL_AC = 7

_FRAMEWORK_CYCLE = [""] + [f.value for f in Framework]
_DIFF_CYCLE = [""] + [d.value for d in Difficulty]
_STATE_CYCLE = list(ProgressState)
_STATUS_ICON = {"solved": ("v", "green"), "attempted": ("~", "yellow")}


def _cycle(options: list, current):
    return options[(options.index(current) + 1) % len(options)]


class ProblemListScreen(Screen):
    def __init__(self, app) -> None:
        super().__init__(app)
        self._board = ProblemBoard()
        self._records: list = []
        self._page = 1
        self._framework = ""
        self._difficulty = ""
        self._state = ProgressState.ALL
        self._search = ""
        self._rows = ScrollList()
        self._loading = True
        self._error = ""
        self._search_input: LineInput | None = None
        self._loaded_once = False

    @property
    def _page_size(self) -> int:
        return self.app.config.preferences.page_size

    async def on_enter(self) -> None:
        self.invalidate()
        if not self._loaded_once:
            asyncio.create_task(self._fetch())

    # ── Data fetching ────────────────────────────────────────────────

    def _filters(self) -> ProblemFilters:
        return ProblemFilters(
            framework=self._framework,
            difficulty=self._difficulty,
            search=self._search,
        )

    async def _fetch(self) -> None:
        self._loading = True
        self._error = ""
        self.invalidate()
        authenticated = self.app.session.is_logged_in
        try:
            page_task = self.app.problems.get_problems(
                self._filters(), page=self._page, page_size=self._page_size
            )
            if authenticated:
                page, records = await asyncio.gather(
                    page_task, self._fetch_progress()
                )
            else:
                page, records = await page_task, []
        except AuthenticationError:
            self._loading = False
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            logger.warning("Problem list fetch failed: %s", e)
            self._error = describe_error(e, "Failed to load problems.")
            page, records = Page(), []
        self._records = records
        self._board = ProblemBoard.build(
            page, records, authenticated, self._state, self._page_size
        )
        self._rows.reset()
        self._loading = False
        self._loaded_once = True
        self.invalidate()

    async def _fetch_progress(self) -> list:
        try:
            return await self.app.progress.get_all_progress()
        except AuthenticationError:
            raise
        except ForgeError as e:
            # Problems still render, every row as unattempted
            logger.warning("Progress fetch failed: %s", e)
            return []

    def _rebuild(self) -> None:
        self._board = ProblemBoard.build(
            self._board.page, self._records, self.app.session.is_logged_in,
            self._state, self._page_size,
        )
        self._rows.reset()
        self.invalidate()

    # ── Rendering ─────────────────────────────────────────────────────

    def render(self) -> None:
        t = self.term
        w = t.width
        h = t.height

        if self._search_input is not None:
            text = "Search: " + self._search_input.value
            sys.stdout.write(t.move_xy(0, 0) + pad_right(text, w - 1) + fmt(t, "reverse", " "))
        else:
            parts = [
                f"Framework: {self._framework or 'All'}",
                f"Difficulty: {self._difficulty or 'All'}",
                f"Status: {self._state.value}",
            ]
            if self._search:
                parts.append(f'"{self._search}"')
            write_row(t, 0, " " + "  ".join(parts), "reverse", fill=True)

        if self._loading:
            for row_y in range(1, h):
                clear_line(t, row_y)
            write_at(t, w // 2 - 5, h // 2, fmt(t, "dim", "loading..."))
            flush()
            return

        board = self._board
        counts = board.counts
        clear_line(t, 1)
        summary = (
            f" {counts.solved} solved  {counts.attempted} attempted  "
            f"{counts.unattempted} to do  avg acceptance {board.acceptance_average}%"
        )
        write_at(t, 0, 1, fmt(t, "dim", truncate(summary, w)))

        col_title_w = max(w - COL_STATUS - COL_FRAMEWORK - COL_DIFF - COL_SCORE - COL_AC, 10)
        self._render_header(t, 2, col_title_w)

        body_start = 3
        visible = max(1, h - 2 - body_start)
        problems = board.visible
        if self._error:
            clear_line(t, body_start)
            write_at(t, 1, body_start, fmt(t, "red", truncate(self._error, w - 2)))
            body_start += 1
            visible -= 1
        elif not problems:
            clear_line(t, body_start)
            write_at(t, 1, body_start, fmt(t, "dim", "No problems match these filters."))
            body_start += 1
            visible -= 1

        window = self._rows.visible_window(max(1, visible))
        for i, idx in enumerate(window):
            row_y = body_start + i
            if row_y >= h - 1:
                break
            if idx >= len(problems):
                clear_line(t, row_y)
                continue
            self._render_row(t, row_y, problems[idx], col_title_w, w,
                             is_selected=(idx == self._rows.cursor))

        pages = board.total_pages or 1
        info = f" {len(problems)} of {board.page.count}  pg {self._page}/{pages}"
        notif = self.app.get_notification()
        hints = ("j/k move  n/p page  / search  f framework  d difficulty  "
                 "s status  x random  enter open  H history  P profile  B board  L logout  q quit")
        write_row(t, h - 1, notif or (info + "  |  " + hints), "dim", fill=True)
        flush()

    def _render_header(self, t, y: int, col_title_w: int) -> None:
        header = (
            pad_right(" ", COL_STATUS)
            + pad_right("Title", col_title_w)
            + pad_right("Framework", COL_FRAMEWORK)
            + pad_right("Difficulty", COL_DIFF)
            + pad_right("Best", COL_SCORE)
            + pad_right("AC%", COL_AC)
        )
        write_row(t, y, header, "bold", fill=True)

    def _render_row(self, t, y: int, p: Problem, col_title_w: int,
                    w: int, is_selected: bool) -> None:
        progress = self._board.progress(p)
        icon, icon_color = _STATUS_ICON.get(progress.state.value, (" ", ""))
        touched = progress.state != ProgressState.UNATTEMPTED
        if p.is_premium and not touched:
            icon = "$"
        best = f"{progress.best_score:.0f}" if touched else "-"
        title = truncate(p.title, col_title_w - 1)
        framework = style_for_framework(p.framework)
        difficulty = style_for_difficulty(p.difficulty)

        if is_selected:
            plain_line = (
                pad_right(icon, COL_STATUS)
                + pad_right(title, col_title_w)
                + pad_right(framework.label, COL_FRAMEWORK)
                + pad_right(difficulty.label, COL_DIFF)
                + pad_right(best, COL_SCORE)
                + pad_right(f"{p.acceptance_rate:.0f}%", COL_AC)
            )
            sys.stdout.write(t.move_xy(0, y) + fmt(t, "reverse", pad_right(plain_line, w)))
            return

        clear_line(t, y)
        x = 0
        write_at(t, x, y, fmt(t, icon_color, pad_right(icon, COL_STATUS)))
        x += COL_STATUS
        write_at(t, x, y, pad_right(title, col_title_w))
        x += col_title_w
        write_at(t, x, y, fmt(t, framework.term_color, pad_right(framework.label, COL_FRAMEWORK)))
        x += COL_FRAMEWORK
        write_at(t, x, y, fmt(t, difficulty.term_color, pad_right(difficulty.label, COL_DIFF)))
        x += COL_DIFF
        write_at(t, x, y, pad_right(best, COL_SCORE))
        x += COL_SCORE
        write_at(t, x, y, pad_right(f"{p.acceptance_rate:.0f}%", COL_AC))

    # ── Key handling ──────────────────────────────────────────────────

    async def handle_key(self, key) -> None:
        if self._search_input is not None:
            if key.name == "KEY_ESCAPE":
                self._search_input = None
                self.invalidate()
            elif key.name == "KEY_ENTER":
                self._search = self._search_input.value.strip()
                self._search_input = None
                self._page = 1
                asyncio.create_task(self._fetch())
            elif self._search_input.feed(key):
                self.invalidate()
            return

        problems = self._board.visible
        if key == "j" or key.name == "KEY_DOWN":
            if self._rows.move(1, len(problems)):
                self.invalidate()
        elif key == "k" or key.name == "KEY_UP":
            if self._rows.move(-1, len(problems)):
                self.invalidate()
        elif key == "n" or key.name == "KEY_PGDOWN":
            if self._board.page.has_next:
                self._page += 1
                asyncio.create_task(self._fetch())
        elif key == "p" or key.name == "KEY_PGUP":
            if self._page > 1:
                self._page -= 1
                asyncio.create_task(self._fetch())
        elif key == "/":
            self._search_input = LineInput(self._search)
            self.invalidate()
        elif key == "f":
            self._framework = _cycle(_FRAMEWORK_CYCLE, self._framework)
            self._page = 1
            asyncio.create_task(self._fetch())
        elif key == "d":
            self._difficulty = _cycle(_DIFF_CYCLE, self._difficulty)
            self._page = 1
            asyncio.create_task(self._fetch())
        elif key == "s":
            # Progress state filters the loaded page client-side
            self._state = _cycle(_STATE_CYCLE, self._state)
            self._rebuild()
        elif key == "r":
            asyncio.create_task(self._fetch())
        elif key == "x":
            asyncio.create_task(self._open_random())
        elif key.name == "KEY_ENTER":
            if problems and self._rows.cursor < len(problems):
                await self.app.open_problem(problems[self._rows.cursor].slug)
        elif key == "H":
            await self.app.open_submissions()
        elif key == "P":
            await self.app.open_profile()
        elif key == "B":
            await self.app.open_leaderboard()
        elif key == "L":
            await self.app.logout()
        elif key.name == "KEY_ESCAPE" or key == "q":
            self.app.exit()

    async def _open_random(self) -> None:
        try:
            problem = await self.app.problems.get_random_problem(self._filters())
        except AuthenticationError:
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            self.app.notify(describe_error(e, "No problem found."))
            return
        if problem.slug:
            await self.app.open_problem(problem.slug)
