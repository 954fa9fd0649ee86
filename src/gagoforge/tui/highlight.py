from __future__ import annotations

from typing import TYPE_CHECKING

from pygments import lex
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.token import Token
from pygments.util import ClassNotFound

if TYPE_CHECKING:
    from blessed import Terminal

from gagoforge.tui.core import fmt

# Pygments token types to blessed color names
_TOKEN_COLORS = {
    Token.Keyword: "cyan",
    Token.Keyword.Constant: "cyan",
    Token.Keyword.Declaration: "cyan",
    Token.Keyword.Namespace: "cyan",
    Token.Name.Builtin: "blue",
    Token.Name.Class: "yellow",
    Token.Name.Decorator: "magenta",
    Token.Name.Function: "yellow",
    Token.Name.Tag: "cyan",
    Token.Name.Attribute: "yellow",
    Token.Literal.String: "green",
    Token.Literal.String.Escape: "bright_green",
    Token.Literal.String.Interpol: "bright_green",
    Token.Literal.Number: "magenta",
    Token.Comment: "bright_black",
    Token.Operator: "red",
    Token.Operator.Word: "cyan",
    Token.Punctuation: "white",
}


def token_color(token_type) -> str:
    """Walk up the token hierarchy to find a color."""
    tt = token_type
    while tt:
        if tt in _TOKEN_COLORS:
            return _TOKEN_COLORS[tt]
        tt = tt.parent
    return ""


def make_lexer(language: str):
    try:
        return get_lexer_by_name(language, stripnl=False, ensurenl=False)
    except ClassNotFound:
        return TextLexer(stripnl=False, ensurenl=False)


def highlight_lines(code: str, language: str) -> list[list[tuple[str, str]]]:
    """Split ``code`` into lines of (color, text) segments."""
    lines: list[list[tuple[str, str]]] = [[]]
    for token_type, value in lex(code, make_lexer(language)):
        color = token_color(token_type)
        parts = value.split("\n")
        for i, part in enumerate(parts):
            if i > 0:
                lines.append([])
            if part:
                lines[-1].append((color, part))
    return lines


def render_segments(term: Terminal, segments: list[tuple[str, str]], width: int) -> str:
    """Colored string for one line, cut at ``width`` visible columns."""
    out = []
    used = 0
    for color, text in segments:
        if used >= width:
            break
        text = text.replace("\t", "    ")[: width - used]
        used += len(text)
        out.append(fmt(term, color, text))
    return "".join(out)
