"""Terminal text helpers: ANSI styles, display widths, truncation and block layout."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from wcwidth import wcwidth

_ESCAPE = r"\x1b\[[0-9;?]*[ -/]*[@-~]"
_ANSI = re.compile(_ESCAPE)
_PIECE = re.compile(f"({_ESCAPE})|(.)", re.S)
_RESET = "\x1b[0m"

_BORDER_FOCUSED = 51
_BORDER_PLAIN = 238


@dataclass(frozen=True)
class Style:
    """Colours and attributes applied to text with SGR escape sequences."""

    foreground: int | None = None
    background: int | None = None
    bold: bool = False
    strikethrough: bool = False
    reverse: bool = False

    def _codes(self) -> list[str]:
        codes = []
        if self.bold:
            codes.append("1")
        if self.reverse:
            codes.append("7")
        if self.strikethrough:
            codes.append("9")
        if self.foreground is not None:
            codes.append(f"38;5;{self.foreground}")
        if self.background is not None:
            codes.append(f"48;5;{self.background}")
        return codes

    def render(self, text: str) -> str:
        """Wrap every line of text in this style."""
        codes = self._codes()
        if not codes:
            return text
        opening = f"\x1b[{';'.join(codes)}m"
        return "\n".join(f"{opening}{line}{_RESET}" for line in text.split("\n"))


def _pieces(value: str) -> Iterator[tuple[str, str]]:
    for match in _PIECE.finditer(value):
        yield match.group(1) or "", match.group(2) or ""


def _char_width(char: str) -> int:
    width = wcwidth(char)
    return width if width > 0 else 0


def strip_ansi(value: str) -> str:
    """Remove escape sequences."""
    return _ANSI.sub("", value)


def display_width(value: str) -> int:
    """Number of terminal cells the text takes, ignoring escape sequences."""
    return sum(_char_width(char) for char in strip_ansi(value))


def truncate_display(value: str, width: int) -> str:
    """Shorten text to width cells, ending in '...' when there is room for it."""
    if width <= 0:
        return ""
    if display_width(value) <= width:
        return value
    tail = "..." if width > 3 else ""
    limit = width - len(tail)
    out: list[str] = []
    used = 0
    done = False
    for escape, char in _pieces(value):
        if escape:
            out.append(escape)
            continue
        if done:
            continue
        cells = _char_width(char)
        if used + cells > limit:
            out.append(tail)
            done = True
            continue
        out.append(char)
        used += cells
    if not done:
        out.append(tail)
    return "".join(out)


def truncate_runes(value: str, width: int) -> str:
    """Shorten text to width characters, ending in '...' when there is room."""
    if width <= 0 or len(value) <= width:
        return value
    if width <= 3:
        return value[:width]
    return value[: width - 3] + "..."


def cut(value: str, start: int, end: int) -> str:
    """The cells from start up to end, keeping escape sequences."""
    out: list[str] = []
    position = 0
    for escape, char in _pieces(value):
        if escape:
            out.append(escape)
            continue
        cells = _char_width(char)
        if position >= start and position + cells <= end:
            out.append(char)
        position += cells
    return "".join(out)


def pad_right(value: str, width: int) -> str:
    """Pad text with spaces up to width cells."""
    gap = width - display_width(value)
    return value + " " * gap if gap > 0 else value


def fill_height(value: str, height: int) -> str:
    """Cut or pad text to exactly height lines; zero or less leaves it alone."""
    if height <= 0:
        return value
    lines = value.split("\n")[:height]
    lines += [""] * (height - len(lines))
    return "\n".join(lines)


def fill_width_lines(value: str, width: int) -> str:
    """Truncate and pad every line to exactly width cells."""
    return "\n".join(
        pad_right(truncate_display(line, width), width) for line in value.split("\n")
    )


def join_horizontal(*blocks: str) -> str:
    """Place blocks side by side, aligned at the top."""
    if not blocks:
        return ""
    columns = [block.split("\n") for block in blocks]
    height = max(len(lines) for lines in columns)
    padded = []
    for lines in columns:
        width = max(display_width(line) for line in lines)
        lines = lines + [""] * (height - len(lines))
        padded.append([pad_right(line, width) for line in lines])
    return "\n".join("".join(column[row] for column in padded) for row in range(height))


def join_vertical(*blocks: str) -> str:
    """Stack blocks, padding every line to the widest one."""
    lines = [line for block in blocks for line in block.split("\n")]
    if not lines:
        return ""
    width = max(display_width(line) for line in lines)
    return "\n".join(pad_right(line, width) for line in lines)


def boxed(content: str, width: int, height: int, focused: bool) -> str:
    """Draw a bordered box with one cell of horizontal padding.

    A width above 2 fixes the outer width, a height above 2 the outer height.
    """
    border = Style(foreground=_BORDER_FOCUSED if focused else _BORDER_PLAIN)
    lines = content.split("\n")
    if height > 2:
        lines += [""] * (height - 2 - len(lines))
    if width > 2:
        text_width = max(0, width - 4)
        lines = [truncate_display(line, text_width) for line in lines]
    else:
        text_width = max(display_width(line) for line in lines)
    side = border.render("│")
    rows = [border.render("┌" + "─" * (text_width + 2) + "┐")]
    rows += [f"{side} {pad_right(line, text_width)} {side}" for line in lines]
    rows.append(border.render("└" + "─" * (text_width + 2) + "┘"))
    return "\n".join(rows)


def visible_indexes(total: int, selected: int, height: int) -> list[int]:
    """Indexes of the rows to show so that the selected row stays in view."""
    if total <= 0:
        return []
    if height <= 0 or total <= height:
        return list(range(total))
    limit = max(1, height - 1)
    selected = min(max(selected, 0), total - 1)
    start = max(0, selected - limit // 2)
    if start + limit > total:
        start = total - limit
    return list(range(start, start + limit))