from __future__ import annotations

import asyncio

from gagoforge.session import validate_registration
from gagoforge.tui.core import (
    LineInput, Screen, clear_screen, fmt, flush, pad_right, write_at, write_row,
)

_LOGO = [
    r"   ____                  _____                    ",
    r"  / ___| __ _  __ _  ___|  ___|__  _ __ __ _  ___ ",
    r" | |  _ / _` |/ _` |/ _ \ |_ / _ \| '__/ _` |/ _ \ ",
    r" | |_| | (_| | (_| | (_) |  _| (_) | | | (_| |  __/",
    r"  \____|\__,_|\__, |\___/|_|  \___/|_|  \__, |\___|",
    r"              |___/                     |___/      ",
]

_SIGN_IN = "Sign in"
_REGISTER = "Create account"
_GUEST = "Browse as guest"

_SIGN_IN_FIELDS = [("username", "Username", False), ("password", "Password", True)]
_REGISTER_FIELDS = [
    ("username", "Username", False),
    ("email", "Email", False),
    ("password", "Password", True),
    ("confirm", "Confirm password", True),
]


class LoginScreen(Screen):
    def __init__(self, app) -> None:
        super().__init__(app)
        self._step = "method"
        self._options = [_SIGN_IN, _REGISTER, _GUEST]
        self._cursor = 0
        self._fields: list[tuple[str, str, bool]] = []
        self._inputs: dict[str, LineInput] = {}
        self._field_index = 0
        self._status = ""
        self._status_color = ""
        self._busy = False

    async def on_enter(self) -> None:
        self.invalidate()

    # ── Step transitions ─────────────────────────────────────────────

    def _show_method_step(self) -> None:
        self._step = "method"
        self._cursor = 0
        self._fields = []
        self.invalidate()

    def _show_form(self, step: str, fields: list[tuple[str, str, bool]]) -> None:
        self._step = step
        self._fields = fields
        self._inputs = {name: LineInput(secret=secret) for name, _, secret in fields}
        self._field_index = 0
        self._set_status("")

    def _set_status(self, msg: str, color: str = "") -> None:
        self._status = msg
        self._status_color = color
        self.invalidate()

    def _value(self, name: str) -> str:
        return self._inputs[name].value

    # ── Rendering ─────────────────────────────────────────────────────

    def render(self) -> None:
        t = self.term
        w = t.width
        h = t.height
        clear_screen(t)

        logo_w = max(len(line) for line in _LOGO)
        x_off = max(0, (w - logo_w) // 2)
        row = 1
        if w >= logo_w:
            for line in _LOGO:
                write_at(t, x_off, row, fmt(t, "bright_cyan", line))
                row += 1
        else:
            write_at(t, 2, row, fmt(t, "bold", "GagoForge"))
            row += 1

        row += 1
        tagline = "framework challenges from your terminal"
        write_at(t, max(0, (w - len(tagline)) // 2), row, fmt(t, "dim", tagline))
        row += 2

        if self._step == "method":
            for i, option in enumerate(self._options):
                if i == self._cursor:
                    write_at(t, 2, row, fmt(t, "reverse", pad_right(f"  > {option}", w - 4)))
                else:
                    write_at(t, 2, row, f"    {option}")
                row += 1
        else:
            title = _SIGN_IN if self._step == "login" else _REGISTER
            write_at(t, 2, row, fmt(t, "bold", title))
            row += 2
            label_w = max(len(label) for _, label, _ in self._fields) + 2
            for i, (name, label, _) in enumerate(self._fields):
                text = pad_right(label + ":", label_w) + self._inputs[name].display
                if i == self._field_index:
                    write_at(t, 2, row, text + fmt(t, "reverse", " "))
                else:
                    write_at(t, 2, row, fmt(t, "dim", text))
                row += 1

        if self._status:
            row += 1
            write_at(t, 2, row, fmt(t, self._status_color, self._status))

        if self._step == "method":
            hints = "arrows navigate  enter select  esc quit"
        else:
            hints = "tab/arrows next field  enter continue  esc back"
        write_row(t, h - 1, " " + hints, "dim", fill=True)
        flush()

    # ── Key handling ─────────────────────────────────────────────────

    async def handle_key(self, key) -> None:
        if self._busy:
            return

        if self._step == "method":
            if key.name == "KEY_UP" or key == "k":
                self._cursor = (self._cursor - 1) % len(self._options)
                self.invalidate()
            elif key.name == "KEY_DOWN" or key == "j":
                self._cursor = (self._cursor + 1) % len(self._options)
                self.invalidate()
            elif key.name == "KEY_ENTER":
                choice = self._options[self._cursor]
                if choice == _SIGN_IN:
                    self._show_form("login", _SIGN_IN_FIELDS)
                elif choice == _REGISTER:
                    self._show_form("register", _REGISTER_FIELDS)
                else:
                    await self.app.goto_problem_list()
            elif key.name == "KEY_ESCAPE" or key == "q":
                self.app.exit()
            return

        if key.name == "KEY_ESCAPE":
            self._show_method_step()
        elif key.name in ("KEY_TAB", "KEY_DOWN") or key == "\t":
            self._field_index = (self._field_index + 1) % len(self._fields)
            self.invalidate()
        elif key.name in ("KEY_BTAB", "KEY_UP"):
            self._field_index = (self._field_index - 1) % len(self._fields)
            self.invalidate()
        elif key.name == "KEY_ENTER":
            if self._field_index < len(self._fields) - 1:
                self._field_index += 1
                self.invalidate()
            else:
                self._submit()
        else:
            name = self._fields[self._field_index][0]
            if self._inputs[name].feed(key):
                self.invalidate()

    def _submit(self) -> None:
        if self._step == "login":
            if not self._value("username") or not self._value("password"):
                self._set_status("Please enter username and password", "red")
                return
            self._busy = True
            self._set_status("Signing in...", "dim")
            asyncio.create_task(self._login())
        else:
            error = validate_registration(
                self._value("username").strip(),
                self._value("email").strip(),
                self._value("password"),
                self._value("confirm"),
            )
            if error:
                self._set_status(error, "red")
                return
            self._busy = True
            self._set_status("Creating account...", "dim")
            asyncio.create_task(self._register())

    async def _login(self) -> None:
        try:
            result = await self.app.session.login(
                self._value("username").strip(), self._value("password")
            )
        finally:
            self._busy = False
        if result.success:
            await self.app.on_login_success()
        else:
            self._inputs["password"].value = ""
            self._set_status(result.error, "red")

    async def _register(self) -> None:
        try:
            result = await self.app.session.register({
                "username": self._value("username").strip(),
                "email": self._value("email").strip(),
                "password": self._value("password"),
                "password_confirm": self._value("confirm"),
            })
        finally:
            self._busy = False
        if result.success:
            await self.app.on_login_success()
        else:
            self._set_status(result.error or "Registration failed. Please try again.", "red")
