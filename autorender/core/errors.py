"""Exception types raised by the render core."""

from __future__ import annotations


class AutoRenderError(Exception):
    """Base class for all AutoRender errors."""


class ExecutableNotFoundError(AutoRenderError, FileNotFoundError):
    """The configured engine executable does not exist."""

    def __init__(self, path: object = None):
        self.path = path
        if path:
            message = f"Blender executable not found: {path}. Please configure the path in settings."
        else:
            message = "Blender executable not configured. Please configure the path in settings."
        super().__init__(message)


class ProcessLaunchError(AutoRenderError):
    """The engine subprocess could not be started."""


class NonZeroExitError(AutoRenderError):
    """The engine exited with a failure code."""

    def __init__(self, exit_code: int, stderr_tail: list[str] | None = None):
        self.exit_code = exit_code
        self.stderr_tail = list(stderr_tail or [])
        message = f"Blender rendering failed with exit code {exit_code}."
        if self.stderr_tail:
            message += " Last error output:\n" + "\n".join(self.stderr_tail)
        else:
            message += " Check console logs for details."
        super().__init__(message)


class ProtocolError(AutoRenderError):
    """Base class for preview-worker protocol failures."""


class ProtocolTimeoutError(ProtocolError, TimeoutError):
    """The worker did not answer within the deadline."""


class ProtocolIOError(ProtocolError):
    """Socket-level failure talking to the worker."""
