"""Indented line buffer and literal formatting for generated scripts."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

INDENT = "    "


def fmt_float(value: float) -> str:
    """Format a number as a Python float literal.

    repr() of a float round-trips exactly, which keeps the output
    byte-identical between runs.
    """
    return repr(float(value))


def fmt_vector(values: Sequence[float]) -> str:
    """Format a sequence of numbers as a tuple literal."""
    return "(" + ", ".join(fmt_float(v) for v in values) + ")"


def fmt_str(value: str) -> str:
    """Format text as a Python string literal."""
    return repr(str(value))


def fmt_path(path: str | Path) -> str:
    """Format a filesystem path as a string literal with forward slashes."""
    return fmt_str(str(path).replace("\\", "/"))


class ScriptWriter:
    """Accumulates lines of generated Python with block indentation."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._depth = 0

    def line(self, text: str = "") -> None:
        self._lines.append(INDENT * self._depth + text if text else "")

    def lines(self, texts: Sequence[str]) -> None:
        for text in texts:
            self.line(text)

    def comment(self, text: str) -> None:
        self.line(f"# {text}")

    @contextmanager
    def block(self, header: str) -> Iterator[None]:
        """Emit ``header`` and indent everything written inside the block."""
        self.line(header)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def text(self) -> str:
        return "\n".join(self._lines) + "\n"
