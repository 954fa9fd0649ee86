from __future__ import annotations

import asyncio
import dataclasses
import logging

from gagoforge.api.client import AuthenticationError, ForgeError, describe_error
from gagoforge.history import build_overview, proficiency_tier, profile_tables
from gagoforge.models.progress import DifficultyStat, FrameworkStat
from gagoforge.models.stats import StatsSummary
from gagoforge.models.submission import Submission
from gagoforge.models.user import Profile
from gagoforge.styles import style_for_difficulty, style_for_framework, style_for_verdict
from gagoforge.tui.core import (
    LineInput, Screen, clear_screen, fmt, flush, pad_right, render_body, scroll_by,
    truncate, write_at, write_row,
)

logger = logging.getLogger(__name__)

_TEXT_FIELDS = [
    ("first_name", "First name"),
    ("last_name", "Last name"),
    ("bio", "Bio"),
    ("github_username", "GitHub"),
    ("website_url", "Website"),
]


def _bar(percent: float, width: int = 20) -> str:
    filled = int(round(max(0.0, min(100.0, percent)) / 100 * width))
    return "█" * filled + "░" * (width - filled)


class ProfileScreen(Screen):
    def __init__(self, app) -> None:
        super().__init__(app)
        self._profile = Profile()
        self._summary = StatsSummary()
        self._frameworks: list[FrameworkStat] = []
        self._difficulties: list[DifficultyStat] = []
        self._recent: list[Submission] = []
        self._lines: list[tuple[str, str]] = []
        self._scroll = 0
        self._loading = True
        self._error = ""
        self._edit_index: int | None = None
        self._edit_input: LineInput | None = None

    async def on_enter(self) -> None:
        self.invalidate()
        if self._loading:
            asyncio.create_task(self._fetch())

    # ── Data fetching ────────────────────────────────────────────────

    async def _fetch(self) -> None:
        service = self.app.profile_service
        try:
            self._profile, self._summary, self._recent = await asyncio.gather(
                service.get_profile(),
                service.get_stats_summary(),
                service.get_recent_activity(),
            )
        except AuthenticationError:
            self._loading = False
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            logger.warning("Profile fetch failed: %s", e)
            self._error = describe_error(e, "Failed to load profile.")
        records = []
        if not (self._summary.frameworks and self._summary.difficulties):
            try:
                records = await self.app.progress.get_all_progress()
            except ForgeError as e:
                logger.warning("Progress fetch failed: %s", e)
        self._frameworks, self._difficulties = profile_tables(self._summary, records)
        self._loading = False
        self._build_lines()
        self.invalidate()

    # ── Layout ───────────────────────────────────────────────────────

    def _build_lines(self) -> None:
        lines: list[tuple[str, str]] = []
        if self._error:
            lines.append(("red", self._error))
            lines.append(("", ""))

        p = self._profile
        name = p.display_name
        if not name and self.app.session.user is not None:
            name = self.app.session.user.display_name
        lines.append(("bold", name))
        if p.bio:
            lines.append(("", p.bio))
        links = "  ".join(x for x in (p.github_username, p.website_url) if x)
        if links:
            lines.append(("dim", links))
        lines.append(("", ""))

        o = build_overview(self._summary, self._recent)
        lines.append(("bold", "Overview"))
        lines.append(("", f"  Level {o.level}  {_bar(o.level_progress)}  {o.experience:.0f} XP"))
        lines.append(("", f"  Solved {o.total_solved}/{o.total_problems} ({o.solved_percentage}%)"))
        lines.append(("", f"  Streak {o.streak} days (longest {o.longest_streak})"))
        if o.rank:
            lines.append(("", f"  Global rank #{o.rank}"))
        lines.append(("", ""))

        lines.append(("bold", "Frameworks"))
        if not self._frameworks:
            lines.append(("dim", "  No framework progress yet."))
        for stat in self._frameworks:
            style = style_for_framework(stat.name)
            lines.append((style.term_color,
                          f"  {pad_right(style.label, 10)} {_bar(stat.proficiency)} "
                          f"{stat.solved}/{stat.total}  {stat.proficiency}%  "
                          f"{proficiency_tier(stat.proficiency)}"))
        lines.append(("", ""))

        lines.append(("bold", "Difficulty"))
        if not self._difficulties:
            lines.append(("dim", "  No difficulty progress yet."))
        for stat in self._difficulties:
            style = style_for_difficulty(stat.level)
            lines.append((style.term_color,
                          f"  {pad_right(style.label, 14)} {_bar(stat.proficiency)} "
                          f"{stat.solved}/{stat.total}  {stat.remaining} left"))
        lines.append(("", ""))

        lines.append(("bold", "Recent activity"))
        if not self._recent:
            lines.append(("dim", "  No submissions yet."))
        for s in self._recent[:10]:
            style = style_for_verdict(s.verdict)
            lines.append((style.term_color,
                          f"  {s.submitted_at[:10]}  {pad_right(style.label, 18)} "
                          f"{s.score:5.1f}  {s.problem_title}"))
        self._lines = lines

    def render(self) -> None:
        t = self.term
        w = t.width
        h = t.height
        clear_screen(t)
        write_row(t, 0, " Profile", "reverse", fill=True)

        if self._loading:
            write_at(t, w // 2 - 5, h // 2, fmt(t, "dim", "loading..."))
            flush()
            return

        if self._edit_index is not None:
            self._render_editor(t, w, h)
            return

        render_body(t, self._lines, self._scroll, 2, h - 1, x=1)
        notif = self.app.get_notification()
        write_row(t, h - 1, notif or " j/k scroll  e edit profile  r refresh  esc back",
                  "dim", fill=True)
        flush()

    def _render_editor(self, t, w: int, h: int) -> None:
        row = 2
        write_at(t, 2, row, fmt(t, "bold", "Edit profile"))
        row += 2
        for i, (name, label) in enumerate(_TEXT_FIELDS):
            if i == self._edit_index and self._edit_input is not None:
                value = self._edit_input.value
                write_at(t, 2, row, pad_right(label + ":", 14) + value + fmt(t, "reverse", " "))
            else:
                value = getattr(self._profile, name)
                write_at(t, 2, row, fmt(t, "dim", truncate(pad_right(label + ":", 14) + value, w - 4)))
            row += 1
        write_row(t, h - 1, " tab next field  enter save  esc cancel", "dim", fill=True)
        flush()

    # ── Key handling ──────────────────────────────────────────────────

    async def handle_key(self, key) -> None:
        if self._edit_index is not None:
            await self._handle_edit_key(key)
            return
        visible = self.term.height - 3
        if key == "j" or key.name == "KEY_DOWN":
            self._scroll = scroll_by(self._scroll, 1, len(self._lines), visible)
            self.invalidate()
        elif key == "k" or key.name == "KEY_UP":
            self._scroll = scroll_by(self._scroll, -1, len(self._lines), visible)
            self.invalidate()
        elif key == "e" and not self._loading:
            self._start_edit(0)
        elif key == "r":
            self._loading = True
            self._error = ""
            asyncio.create_task(self._fetch())
        elif key.name == "KEY_ESCAPE" or key == "q":
            await self.app.pop_screen()

    def _start_edit(self, index: int) -> None:
        self._edit_index = index
        name = _TEXT_FIELDS[index][0]
        self._edit_input = LineInput(getattr(self._profile, name))
        self.invalidate()

    def _commit_field(self) -> Profile:
        name = _TEXT_FIELDS[self._edit_index][0]
        return dataclasses.replace(self._profile, **{name: self._edit_input.value.strip()})

    async def _handle_edit_key(self, key) -> None:
        if key.name == "KEY_ESCAPE":
            self._edit_index = None
            self._edit_input = None
            self.invalidate()
        elif key.name == "KEY_TAB" or key == "\t":
            self._profile = self._commit_field()
            self._start_edit((self._edit_index + 1) % len(_TEXT_FIELDS))
        elif key.name == "KEY_ENTER":
            updated = self._commit_field()
            self._edit_index = None
            self._edit_input = None
            asyncio.create_task(self._save(updated))
        elif self._edit_input.feed(key):
            self.invalidate()

    async def _save(self, profile: Profile) -> None:
        try:
            self._profile = await self.app.profile_service.update_preferences(profile)
        except AuthenticationError:
            self.app.show_login_on_auth_error()
            return
        except ForgeError as e:
            self.app.notify(describe_error(e, "Could not update profile."))
            return
        self.app.notify("Profile updated.")
        self._build_lines()
        self.invalidate()
