"""Shared fixtures and fakes for the engine tests.

No real Blender is needed: processes are replaced by FakeProcess objects
produced by a FakePopen factory, and preview exchanges by a scripted
transport.
"""

from __future__ import annotations

import io
import itertools
import subprocess
from pathlib import Path

import pytest

from autorender.core.config import AutoRenderConfig, StaticConfigProvider
from autorender.engine.supervisor import ProcessSupervisor

_pids = itertools.count(4000)


class ListSink:
    """Log sink collecting lines in a list."""

    def __init__(self):
        self.lines: list[str] = []

    def append(self, line: str) -> None:
        self.lines.append(line)

    def contains(self, text: str) -> bool:
        return any(text in line for line in self.lines)


class RecordingProcessGroup:
    def __init__(self):
        self.pids: list[int] = []

    def register(self, pid: int) -> None:
        self.pids.append(pid)


class FakeProcess:
    """Stand-in for subprocess.Popen.

    Runs "forever" (poll() is None) until wait() or kill() is called.
    """

    def __init__(self, args, stdout_lines=(), stderr_lines=(), returncode=0, **kwargs):
        self.args = list(args)
        self.kwargs = kwargs
        self.pid = next(_pids)
        self.killed = False
        self.returncode = None
        self._final = returncode
        piped = kwargs.get("stdout") == subprocess.PIPE
        self.stdout = io.StringIO("".join(f"{line}\n" for line in stdout_lines)) if piped else None
        self.stderr = io.StringIO("".join(f"{line}\n" for line in stderr_lines)) if piped else None

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self.returncode is None:
            self.returncode = self._final
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9


class FakePopen:
    """Factory recording every launched FakeProcess."""

    def __init__(self, stdout_lines=(), stderr_lines=(), returncode=0, error=None, on_spawn=None):
        self.stdout_lines = stdout_lines
        self.stderr_lines = stderr_lines
        self.returncode = returncode
        self.error = error
        self.on_spawn = on_spawn
        self.processes: list[FakeProcess] = []

    def __call__(self, args, **kwargs):
        if self.error is not None:
            raise self.error
        if self.on_spawn is not None:
            self.on_spawn(list(args))
        process = FakeProcess(
            args,
            stdout_lines=self.stdout_lines,
            stderr_lines=self.stderr_lines,
            returncode=self.returncode,
            **kwargs,
        )
        self.processes.append(process)
        return process


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def process_group() -> RecordingProcessGroup:
    return RecordingProcessGroup()


@pytest.fixture
def fake_popen() -> FakePopen:
    return FakePopen(stdout_lines=["Blender 4.2.0", "Fra:1 Mem:10M"])


@pytest.fixture
def supervisor(sink, process_group, fake_popen) -> ProcessSupervisor:
    return ProcessSupervisor(sink, process_group=process_group, popen=fake_popen)


@pytest.fixture
def fake_executable(tmp_path) -> Path:
    """An existing file standing in for the engine binary."""
    exe = tmp_path / "bin" / "blender"
    exe.parent.mkdir()
    exe.write_text("")
    return exe


@pytest.fixture
def config_provider(fake_executable, tmp_path) -> StaticConfigProvider:
    return StaticConfigProvider(
        AutoRenderConfig(executable_path=fake_executable, output_dir=tmp_path / "renders")
    )
