from __future__ import annotations

import asyncio
import logging
import sys
import textwrap
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from blessed import Terminal
    from gagoforge.app import ForgeApp

logger = logging.getLogger(__name__)


class Screen:
    """Base class for all TUI screens.

    Subclasses must implement render() and handle_key().
    """

    def __init__(self, app: ForgeApp) -> None:
        self.app = app
        self.term: Terminal = app.term
        self.dirty: bool = True
        self._prev_width: int = 0
        self._prev_height: int = 0

    def render(self) -> None:
        """Write the screen contents directly to stdout."""
        raise NotImplementedError

    async def handle_key(self, key) -> None:
        """Process a keystroke. key is a blessed Keystroke object."""
        raise NotImplementedError

    def invalidate(self) -> None:
        self.dirty = True

    def check_resize(self) -> bool:
        w, h = self.term.width, self.term.height
        if w != self._prev_width or h != self._prev_height:
            self._prev_width = w
            self._prev_height = h
            self.invalidate()
            return True
        return False

    def run_async(self, coro) -> None:
        """Fire an async task; invalidate screen when it completes."""

        async def _wrapper():
            try:
                await coro
            finally:
                self.invalidate()

        asyncio.create_task(_wrapper())

    async def on_enter(self) -> None:
        self.invalidate()

    async def on_exit(self) -> None:
        pass


class ScrollList:
    """Cursor and scroll offset over a list of rows."""

    def __init__(self) -> None:
        self.cursor = 0
        self.scroll = 0

    def reset(self) -> None:
        self.cursor = 0
        self.scroll = 0

    def move(self, delta: int, count: int) -> bool:
        target = max(0, min(count - 1, self.cursor + delta))
        if count == 0 or target == self.cursor:
            return False
        self.cursor = target
        return True

    def visible_window(self, visible: int) -> range:
        if self.cursor < self.scroll:
            self.scroll = self.cursor
        elif self.cursor >= self.scroll + visible:
            self.scroll = self.cursor - visible + 1
        return range(self.scroll, self.scroll + visible)


class LineInput:
    """Single-line text buffer fed from keystrokes."""

    def __init__(self, value: str = "", secret: bool = False) -> None:
        self.value = value
        self.secret = secret

    @property
    def display(self) -> str:
        return "*" * len(self.value) if self.secret else self.value

    def feed(self, key) -> bool:
        """Apply an editing key; returns True if the buffer changed."""
        if key.name in ("KEY_BACKSPACE", "KEY_DELETE"):
            if self.value:
                self.value = self.value[:-1]
                return True
            return False
        if key and not key.is_sequence and key.isprintable():
            self.value += str(key)
            return True
        return False


# ── Terminal helpers ──────────────────────────────────────────────────────


def write_at(term: Terminal, x: int, y: int, text: str) -> None:
    """Write text at a specific (x, y) position. x=column, y=row."""
    sys.stdout.write(term.move_xy(x, y) + text)


def clear_screen(term: Terminal) -> None:
    sys.stdout.write(term.clear)


def clear_line(term: Terminal, y: int) -> None:
    sys.stdout.write(term.move_xy(0, y) + term.clear_eol)


def truncate(text: str, width: int) -> str:
    """Truncate PLAIN text to fit within width. Do NOT pass colored text."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."


def pad_right(text: str, width: int) -> str:
    """Pad PLAIN text with spaces to exact width. Do NOT pass colored text."""
    if width <= 0:
        return ""
    text = truncate(text, width)
    return text + " " * (width - len(text))


def wrap_lines(lines: list[str], width: int) -> list[str]:
    """Re-wrap lines to fit within width, preserving indentation."""
    result: list[str] = []
    for line in lines:
        if len(line) <= width:
            result.append(line)
            continue
        indent = line[: len(line) - len(line.lstrip())]
        result.extend(textwrap.wrap(
            line, width=max(10, width), subsequent_indent=indent,
            break_long_words=True, break_on_hyphens=False,
        ) or [""])
    return result


def write_row(term: Terminal, y: int, text: str, color: str = "",
              fill: bool = False) -> None:
    """Write a full row of PLAIN text with optional color and fill to width."""
    if fill:
        text = pad_right(text, term.width)
    sys.stdout.write(term.move_xy(0, y) + fmt(term, color, text))


def fmt(term: Terminal, color: str, text: str) -> str:
    """Safely apply terminal formatting. Falls back to plain text on failure."""
    if not color:
        return text
    try:
        return getattr(term, color)(text)
    except (AttributeError, TypeError):
        return text


def render_body(term: Terminal, lines: list[tuple[str, str]], scroll: int,
                top: int, bottom: int, x: int = 0) -> None:
    """Draw (color, text) lines into rows top..bottom-1 from offset scroll."""
    w = term.width - x
    for i in range(bottom - top):
        row_y = top + i
        clear_line(term, row_y)
        idx = scroll + i
        if idx < len(lines):
            color, text = lines[idx]
            write_at(term, x, row_y, fmt(term, color, truncate(text, w)))


def scroll_by(scroll: int, delta: int, total: int, visible: int) -> int:
    return max(0, min(max(0, total - visible), scroll + delta))


def flush() -> None:
    sys.stdout.flush()
