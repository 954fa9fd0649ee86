from __future__ import annotations

import asyncio
import logging

from gagoforge.api.client import AuthenticationError, ForgeError, describe_error
from gagoforge.models.problem import Framework
from gagoforge.models.user import LeaderboardEntry
from gagoforge.tui.core import (
    ScrollList, Screen, clear_line, fmt, flush, pad_right, write_at, write_row,
)

logger = logging.getLogger(__name__)

_BOARDS = ["global", "weekly"] + [f.value for f in Framework]


class LeaderboardScreen(Screen):
    def __init__(self, app) -> None:
        super().__init__(app)
        self._board = "global"
        self._entries: list[LeaderboardEntry] = []
        self._me: LeaderboardEntry | None = None
        self._rows = ScrollList()
        self._loading = True
        self._error = ""

    async def on_enter(self) -> None:
        self.invalidate()
        if self._loading:
            asyncio.create_task(self._fetch())

    async def _fetch(self) -> None:
        self._loading = True
        self._error = ""
        self.invalidate()
        service = self.app.leaderboard
        try:
            if self._board == "global":
                self._entries = await service.get_global()
            elif self._board == "weekly":
                self._entries = await service.get_weekly()
            else:
                self._entries = await service.get_framework(self._board)
        except AuthenticationError:
            self._loading = False
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            logger.warning("Leaderboard fetch failed: %s", e)
            self._entries = []
            self._error = describe_error(e, "Failed to load leaderboard.")
        if self.app.session.is_logged_in and self._me is None:
            try:
                self._me = await service.get_current_user_rank()
            except ForgeError as e:
                logger.info("Current user rank unavailable: %s", e)
        self._rows.reset()
        self._loading = False
        self.invalidate()

    def render(self) -> None:
        t = self.term
        w = t.width
        h = t.height
        tabs = "  ".join(f"[{b}]" if b == self._board else b for b in _BOARDS)
        write_row(t, 0, f" Leaderboard  {tabs}", "reverse", fill=True)

        if self._loading:
            for row_y in range(1, h):
                clear_line(t, row_y)
            write_at(t, w // 2 - 5, h // 2, fmt(t, "dim", "loading..."))
            flush()
            return

        clear_line(t, 1)
        if self._me is not None and self._me.rank:
            write_at(t, 1, 1, fmt(t, "cyan",
                                  f"You: #{self._me.rank}  {self._me.score:.0f} pts  "
                                  f"{self._me.problems_solved} solved"))
        header = (pad_right(" #", 6) + pad_right("User", 24) + pad_right("Score", 10)
                  + pad_right("Solved", 8) + pad_right("Streak", 8))
        write_row(t, 2, header, "bold", fill=True)

        body_start = 3
        visible = max(1, h - 1 - body_start)
        me = self.app.session.user.username if self.app.session.user else ""
        for i, idx in enumerate(self._rows.visible_window(visible)):
            row_y = body_start + i
            clear_line(t, row_y)
            if i == 0 and self._error:
                write_at(t, 1, row_y, fmt(t, "red", self._error))
                continue
            if idx >= len(self._entries):
                continue
            e = self._entries[idx]
            line = (pad_right(f" {e.rank}", 6) + pad_right(e.name or e.username, 24)
                    + pad_right(f"{e.score:.0f}", 10) + pad_right(str(e.problems_solved), 8)
                    + pad_right(str(e.streak), 8))
            if idx == self._rows.cursor:
                write_at(t, 0, row_y, fmt(t, "reverse", pad_right(line, w)))
            else:
                write_at(t, 0, row_y, fmt(t, "cyan" if e.username == me else "", line))

        write_row(t, h - 1, " j/k move  tab board  r refresh  esc back", "dim", fill=True)
        flush()

    async def handle_key(self, key) -> None:
        if key == "j" or key.name == "KEY_DOWN":
            if self._rows.move(1, len(self._entries)):
                self.invalidate()
        elif key == "k" or key.name == "KEY_UP":
            if self._rows.move(-1, len(self._entries)):
                self.invalidate()
        elif key.name == "KEY_TAB" or key == "\t":
            self._board = _BOARDS[(_BOARDS.index(self._board) + 1) % len(_BOARDS)]
            asyncio.create_task(self._fetch())
        elif key == "r":
            asyncio.create_task(self._fetch())
        elif key.name == "KEY_ESCAPE" or key == "q":
            await self.app.pop_screen()
