"""Log sinks receiving engine output and render progress lines.

The render core writes human-readable lines to a sink. LoggingSink forwards
them to the logging module; ConsoleLog keeps a timestamped history for
front-ends that display a console panel.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Protocol


class LogSink(Protocol):
    """Anything accepting a line of log output."""

    def append(self, line: str) -> None:
        ...


class LoggingSink:
    """Forward sink lines to a standard logger."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger("autorender")
        self.level = level

    def append(self, line: str) -> None:
        self.logger.log(self.level, line)


class ConsoleLog:
    """Timestamped, thread-safe history of log lines.

    Output pump threads and the caller append concurrently, so every
    access goes through a lock.
    """

    def __init__(self, forward_to: LogSink | None = None, max_lines: int | None = None):
        self._lines: list[str] = []
        self._latest = "Ready"
        self._lock = threading.Lock()
        self._forward_to = forward_to
        self._max_lines = max_lines

    def append(self, line: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        with self._lock:
            self._lines.append(f"[{ts}] {line}")
            if self._max_lines is not None and len(self._lines) > self._max_lines:
                self._lines = self._lines[-self._max_lines:]
            self._latest = line
        if self._forward_to is not None:
            self._forward_to.append(line)

    @property
    def lines(self) -> list[str]:
        """Copy of all timestamped lines."""
        with self._lock:
            return list(self._lines)

    @property
    def messages(self) -> list[str]:
        """Copy of all lines without their timestamp prefix."""
        with self._lock:
            return [line.split("] ", 1)[1] for line in self._lines]

    @property
    def latest(self) -> str:
        with self._lock:
            return self._latest

    @property
    def text(self) -> str:
        with self._lock:
            return "".join(f"{line}\n" for line in self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
            self._latest = "Cleared"
