"""Process groups tying engine subprocesses to the host's lifetime.

On Windows every child is assigned to a job object created with
KILL_ON_JOB_CLOSE, so the operating system terminates the children when
the host exits, even on a crash. Elsewhere registration is a no-op.
"""

from __future__ import annotations

import logging
import sys
from typing import Protocol

logger = logging.getLogger(__name__)

JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE = 0x2000
JOB_OBJECT_EXTENDED_LIMIT_INFORMATION_CLASS = 9
PROCESS_SET_QUOTA = 0x0100
PROCESS_TERMINATE = 0x0001


class ProcessGroup(Protocol):
    """Capability to bind a child process to the host's lifetime."""

    def register(self, pid: int) -> None:
        ...


class NullProcessGroup:
    """Process group for platforms without job objects."""

    def register(self, pid: int) -> None:
        logger.debug(f"Process group unavailable, not registering pid {pid}")


class JobObjectProcessGroup:
    """Windows job object with kill-on-close semantics.

    The job handle is deliberately never closed while the host runs;
    closing it is what kills the registered children.
    """

    def __init__(self):
        import ctypes
        from ctypes import wintypes

        self._kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
        self._kernel32.CreateJobObjectW.restype = wintypes.HANDLE
        self._kernel32.OpenProcess.restype = wintypes.HANDLE
        self._wintypes = wintypes
        self._handle = self._kernel32.CreateJobObjectW(None, None)
        if not self._handle:
            raise OSError(ctypes.get_last_error(), "CreateJobObjectW failed")
        self._set_kill_on_close()

    def _set_kill_on_close(self) -> None:
        import ctypes

        wintypes = self._wintypes

        class IO_COUNTERS(ctypes.Structure):
            _fields_ = [(name, ctypes.c_ulonglong) for name in (
                "ReadOperationCount", "WriteOperationCount", "OtherOperationCount",
                "ReadTransferCount", "WriteTransferCount", "OtherTransferCount",
            )]

        class JOBOBJECT_BASIC_LIMIT_INFORMATION(ctypes.Structure):
            _fields_ = [
                ("PerProcessUserTimeLimit", wintypes.LARGE_INTEGER),
                ("PerJobUserTimeLimit", wintypes.LARGE_INTEGER),
                ("LimitFlags", wintypes.DWORD),
                ("MinimumWorkingSetSize", ctypes.c_size_t),
                ("MaximumWorkingSetSize", ctypes.c_size_t),
                ("ActiveProcessLimit", wintypes.DWORD),
                ("Affinity", ctypes.c_size_t),
                ("PriorityClass", wintypes.DWORD),
                ("SchedulingClass", wintypes.DWORD),
            ]

        class JOBOBJECT_EXTENDED_LIMIT_INFORMATION(ctypes.Structure):
            _fields_ = [
                ("BasicLimitInformation", JOBOBJECT_BASIC_LIMIT_INFORMATION),
                ("IoInfo", IO_COUNTERS),
                ("ProcessMemoryLimit", ctypes.c_size_t),
                ("JobMemoryLimit", ctypes.c_size_t),
                ("PeakProcessMemoryUsed", ctypes.c_size_t),
                ("PeakJobMemoryUsed", ctypes.c_size_t),
            ]

        info = JOBOBJECT_EXTENDED_LIMIT_INFORMATION()
        info.BasicLimitInformation.LimitFlags = JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE
        ok = self._kernel32.SetInformationJobObject(
            self._handle,
            JOB_OBJECT_EXTENDED_LIMIT_INFORMATION_CLASS,
            ctypes.byref(info),
            ctypes.sizeof(info),
        )
        if not ok:
            raise OSError(ctypes.get_last_error(), "SetInformationJobObject failed")

    def register(self, pid: int) -> None:
        """Assign a process to the job. Failures are logged, never raised."""
        process = self._kernel32.OpenProcess(PROCESS_SET_QUOTA | PROCESS_TERMINATE, False, pid)
        if not process:
            logger.debug(f"Could not open pid {pid} for job assignment")
            return
        try:
            if not self._kernel32.AssignProcessToJobObject(self._handle, process):
                logger.debug(f"Could not assign pid {pid} to job object")
        finally:
            self._kernel32.CloseHandle(process)


def default_process_group() -> ProcessGroup:
    """Best process group available on this platform."""
    if sys.platform == "win32":
        try:
            return JobObjectProcessGroup()
        except OSError as e:
            logger.debug(f"Job object unavailable: {e}")
    return NullProcessGroup()
