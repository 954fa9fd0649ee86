from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
import time
import traceback

from blessed import Terminal

from gagoforge.api.client import ForgeClient
from gagoforge.api.leaderboard import LeaderboardService
from gagoforge.api.problems import ProblemService
from gagoforge.api.profile import ProfileService
from gagoforge.api.progress import ProgressService
from gagoforge.api.submissions import SubmissionService
from gagoforge.config import load_config
from gagoforge.constants import (
    LOG_FILE,
    LOGIN_ROUTE,
    PROBLEM_LIST_ROUTE,
    SESSION_EXPIRED_MESSAGE,
)
from gagoforge.session import Session
from gagoforge.tokens import TokenStore
from gagoforge.tui.core import Screen, clear_screen, flush

logger = logging.getLogger(__name__)


def setup_logging(path=LOG_FILE, level: int = logging.DEBUG) -> None:
    """Send the package's log records to a file; the terminal belongs to the UI."""
    path.parent.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger("gagoforge")
    root.setLevel(level)
    handler = logging.FileHandler(str(path), mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)


class ForgeApp:
    """Application controller - manages screen stack and event loop."""

    def __init__(self) -> None:
        # Enable VT100 escape processing on Windows
        if sys.platform == "win32":
            os.system("")
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        self.term = Terminal()
        self.config = load_config()
        self.tokens = TokenStore()
        self.client = ForgeClient(self.tokens, base_url=self.config.preferences.api_base_url)
        self.problems = ProblemService(self.client)
        self.submissions = SubmissionService(self.client)
        self.progress = ProgressService(self.client)
        self.profile_service = ProfileService(self.client)
        self.leaderboard = LeaderboardService(self.client)
        self.session = Session(self.client, self.tokens)
        self.session.add_logout_listener(self.show_login_on_auth_error)
        self._screen_stack: list[Screen] = []
        self._running: bool = False
        self._notification: str = ""
        self._notification_expiry: float = 0
        logger.info("App initialized, api=%s, terminal %dx%d",
                    self.config.preferences.api_base_url,
                    self.term.width, self.term.height)

    @property
    def current_screen(self) -> Screen | None:
        return self._screen_stack[-1] if self._screen_stack else None

    async def push_screen(self, screen: Screen) -> None:
        logger.info("push_screen: %s (stack depth: %d -> %d)",
                    type(screen).__name__, len(self._screen_stack),
                    len(self._screen_stack) + 1)
        self._screen_stack.append(screen)
        clear_screen(self.term)
        flush()
        await screen.on_enter()

    async def pop_screen(self) -> None:
        """Pop the current screen and return to previous."""
        if self._screen_stack:
            old = self._screen_stack.pop()
            logger.info("pop_screen: %s (stack depth: %d)",
                        type(old).__name__, len(self._screen_stack))
            await old.on_exit()
        if self._screen_stack:
            clear_screen(self.term)
            flush()
            await self._screen_stack[-1].on_enter()
        else:
            logger.info("pop_screen: stack empty, exiting")
            self.exit()

    async def _reset_stack(self, screen: Screen) -> None:
        while self._screen_stack:
            old = self._screen_stack.pop()
            await old.on_exit()
        await self.push_screen(screen)

    def notify(self, msg: str, duration: float = 3.0) -> None:
        """Show a temporary notification on the status line."""
        self._notification = msg
        self._notification_expiry = time.time() + duration
        logger.info("notify: %s", msg)
        if self.current_screen:
            self.current_screen.invalidate()

    def get_notification(self) -> str:
        if self._notification and time.time() < self._notification_expiry:
            return self._notification
        self._notification = ""
        return ""

    def exit(self) -> None:
        logger.info("exit() called")
        self._running = False

    @contextlib.contextmanager
    def suspended(self):
        """Hand the terminal to a child process for the duration of the block."""
        t = self.term
        sys.stdout.write(t.normal_cursor + t.exit_fullscreen)
        flush()
        try:
            yield
        finally:
            sys.stdout.write(t.enter_fullscreen + t.hide_cursor)
            clear_screen(t)
            flush()
            if self.current_screen:
                self.current_screen.invalidate()

    # ── Navigation ───────────────────────────────────────────────────

    def navigate(self, route: str) -> None:
        """Route strings from the workflow: login screen or problem list."""
        logger.info("navigate: %s", route)
        if route == LOGIN_ROUTE:
            asyncio.create_task(self.show_login())
        elif route == PROBLEM_LIST_ROUTE:
            asyncio.create_task(self.goto_problem_list())
        else:
            asyncio.create_task(self.open_problem(route.rsplit("/", 1)[-1]))

    async def _startup(self) -> None:
        await self.session.init()
        logger.info("Session initialized, logged in: %s", self.session.is_logged_in)
        if self.session.is_logged_in:
            await self.goto_problem_list()
        else:
            await self.show_login()

    async def show_login(self) -> None:
        from gagoforge.tui.login import LoginScreen
        await self._reset_stack(LoginScreen(self))

    async def goto_problem_list(self) -> None:
        from gagoforge.tui.problem_list import ProblemListScreen
        await self._reset_stack(ProblemListScreen(self))

    async def on_login_success(self) -> None:
        user = self.session.user
        if user is not None:
            self.notify(f"Welcome, {user.display_name}!")
        await self.goto_problem_list()

    async def open_problem(self, slug: str) -> None:
        from gagoforge.tui.problem_detail import ProblemDetailScreen
        await self.push_screen(ProblemDetailScreen(self, slug))

    async def open_submissions(self) -> None:
        if not self.session.is_logged_in:
            self.notify("Sign in to see your submissions.")
            return
        from gagoforge.tui.submissions import SubmissionsScreen
        await self.push_screen(SubmissionsScreen(self))

    async def open_profile(self) -> None:
        if not self.session.is_logged_in:
            self.notify("Sign in to see your profile.")
            return
        from gagoforge.tui.profile import ProfileScreen
        await self.push_screen(ProfileScreen(self))

    async def open_leaderboard(self) -> None:
        from gagoforge.tui.leaderboard import LeaderboardScreen
        await self.push_screen(LeaderboardScreen(self))

    async def logout(self) -> None:
        self.session.teardown()
        await self.show_login()

    def show_login_on_auth_error(self) -> None:
        """Called when credentials were rejected even after a refresh."""
        self.notify(SESSION_EXPIRED_MESSAGE)
        asyncio.create_task(self.show_login())

    # ── Event loop ───────────────────────────────────────────────────

    async def run(self) -> None:
        self._running = True
        t = self.term

        with t.fullscreen(), t.cbreak(), t.hidden_cursor():
            clear_screen(t)
            flush()

            try:
                await self._startup()
            except Exception:
                logger.error("Startup failed:\n%s", traceback.format_exc())
                return

            while self._running:
                screen = self.current_screen
                if screen is None:
                    break

                screen.check_resize()

                if screen.dirty:
                    screen.dirty = False
                    try:
                        screen.render()
                        flush()
                    except Exception:
                        logger.error("Render error in %s:\n%s",
                                     type(screen).__name__,
                                     traceback.format_exc())

                # Let async tasks run
                await asyncio.sleep(0)

                key = await asyncio.to_thread(t.inkey, timeout=0.05)
                if key:
                    logger.debug("key: %r name=%s", str(key), key.name)
                    try:
                        await screen.handle_key(key)
                    except Exception:
                        logger.error("Key handler error in %s:\n%s",
                                     type(screen).__name__,
                                     traceback.format_exc())

        logger.info("Event loop ended, cleaning up")
        await self.client.close()
