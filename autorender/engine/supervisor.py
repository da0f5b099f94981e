"""Launching and supervising engine subprocesses.

Every child runs ``<exe> --background --python <script>``. Its stdout and
stderr are pumped line by line on daemon threads into a log sink, tagged
with their source, and the last stderr lines are kept for error reports.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable

from ..core.console import LogSink, LoggingSink
from ..core.errors import ProcessLaunchError
from .process import ProcessGroup, default_process_group

logger = logging.getLogger(__name__)

STDOUT_TAG = "[Blender]"
STDERR_TAG = "[Blender Error]"
STDERR_TAIL_LINES = 20
BATCH_SCRIPT_PREFIX = "autorender_script_"


def engine_command(executable: str | Path, script_file: str | Path) -> list[str]:
    """Command line running a script headless."""
    return [str(executable), "--background", "--python", str(script_file)]


def write_temp_script(content: str, name: str | None = None) -> Path:
    """Write a script into the temp directory.

    Args:
        content: Script source
        name: Fixed file name. A unique ``autorender_script_<uuid>.py``
            name is generated when omitted.

    Returns:
        Path of the written file
    """
    if name is None:
        name = f"{BATCH_SCRIPT_PREFIX}{uuid.uuid4().hex}.py"
    path = Path(tempfile.gettempdir()) / name
    path.write_text(content, encoding="utf-8")
    logger.debug(f"Wrote script {path} ({len(content)} chars)")
    return path


def discard_temp_file(path: str | Path, log_sink: LogSink | None = None) -> None:
    """Delete a temp file. Failures are logged, never raised."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to delete temp script {path}: {e}")
        if log_sink is not None:
            log_sink.append(f"Warning: Failed to delete temp script: {e}")


@dataclass
class ManagedProcess:
    """A running engine process and its output pumps."""

    process: subprocess.Popen
    stderr_tail: deque[str] = field(default_factory=lambda: deque(maxlen=STDERR_TAIL_LINES))
    pumps: list[threading.Thread] = field(default_factory=list)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def is_running(self) -> bool:
        return self.process.poll() is None

    def wait(self, timeout: float | None = None) -> int:
        return self.process.wait(timeout=timeout)

    def join_pumps(self, timeout: float | None = None) -> None:
        for pump in self.pumps:
            pump.join(timeout)


@dataclass
class RunResult:
    """Outcome of one run to completion."""

    exit_code: int
    stderr_tail: list[str] = field(default_factory=list)



class ProcessSupervisor:
    """Starts engine processes and streams their output to a sink."""

    def __init__(
        self,
        log_sink: LogSink | None = None,
        process_group: ProcessGroup | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        """Initialize supervisor.

        Args:
            log_sink: Receives tagged output lines. Defaults to a LoggingSink.
            process_group: Lifetime binding for children. Defaults to the
                platform's best group.
            popen: Process factory with the subprocess.Popen signature
        """
        self.log_sink = log_sink or LoggingSink()
        self.process_group = process_group or default_process_group()
        self._popen = popen

    def spawn(
        self,
        executable: str | Path,
        script_file: str | Path,
        capture_output: bool = True,
    ) -> ManagedProcess:
        """Launch the engine headless on a script.

        Raises:
            ProcessLaunchError: If the process could not be started
        """
        args = engine_command(executable, script_file)
        pipe = subprocess.PIPE if capture_output else subprocess.DEVNULL
        logger.debug(f"Launching: {' '.join(args)}")
        try:
            process = self._popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=pipe,
                stderr=pipe,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProcessLaunchError(f"Failed to start Blender ({executable}): {e}") from e

        self.process_group.register(process.pid)
        managed = ManagedProcess(process=process)

        if capture_output:
            managed.pumps = [
                self._start_pump(process.stdout, STDOUT_TAG),
                self._start_pump(process.stderr, STDERR_TAG, managed.stderr_tail),
            ]
        return managed

    def _start_pump(
        self,
        stream: IO[str] | None,
        tag: str,
        tail: deque[str] | None = None,
    ) -> threading.Thread:
        thread = threading.Thread(
            target=self._pump,
            args=(stream, tag, tail),
            name=f"autorender-pump{tag}",
            daemon=True,
        )
        thread.start()
        return thread

    def _pump(self, stream: IO[str] | None, tag: str, tail: deque[str] | None) -> None:
        if stream is None:
            return
        try:
            for raw in stream:
                line = raw.rstrip("\r\n")
                if not line:
                    continue
                if tail is not None:
                    tail.append(line)
                self.log_sink.append(f"{tag} {line}")
        except (OSError, ValueError) as e:
            # Stream closed underneath us when the process was killed
            logger.debug(f"Output pump {tag} stopped: {e}")
        finally:
            try:
                stream.close()
            except OSError as e:
                logger.debug(f"Could not close {tag} stream: {e}")

    def run_once(
        self,
        executable: str | Path,
        script_file: str | Path,
        capture_output: bool = True,
    ) -> RunResult:
        """Run the engine on a script to completion.

        The script file is deleted on every exit path. Each call gets its
        own stderr tail, so concurrent runs never see each other's output.

        Returns:
            RunResult with the exit code and the last stderr lines
        """
        try:
            managed = self.spawn(executable, script_file, capture_output=capture_output)
            exit_code = managed.wait()
            managed.join_pumps()
            logger.debug(f"Process {managed.pid} exited with code {exit_code}")
            return RunResult(exit_code, list(managed.stderr_tail))
        finally:
            discard_temp_file(script_file, self.log_sink)

    def terminate(self, managed: ManagedProcess, timeout: float = 5.0) -> None:
        """Kill a process if still running and wait for it to exit."""
        if not managed.is_running:
            return
        try:
            managed.process.kill()
            managed.wait(timeout=timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Error while stopping process {managed.pid}: {e}")
