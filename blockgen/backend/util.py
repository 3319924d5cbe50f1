"""Shared utilities for backend code emitters."""

from __future__ import annotations


def prefix_lines(code: str, prefix: str) -> str:
    """Prepend prefix to every non-empty line of code."""
    if not prefix:
        return code
    lines = code.split("\n")
    return "\n".join(prefix + line if line else line for line in lines)


def escape_single_quoted(value: str) -> str:
    """Escape a string for a single-quoted literal (backslash and quote only)."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class Emitter:
    """Line accumulator with indentation tracking."""

    def __init__(self, indent_str: str = "  ") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.indent + text)
        else:
            self.lines.append("")

    def block(self, code: str) -> None:
        """Emit already formatted code, one line at a time."""
        for text in code.rstrip("\n").split("\n"):
            self.line(text)

    def output(self) -> str:
        """Return the accumulated output as a string."""
        return "\n".join(self.lines)
