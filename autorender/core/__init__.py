"""Core modules for AutoRender."""

from .config import (
    AutoRenderConfig,
    ConfigProvider,
    ExportSettings,
    FileConfigProvider,
    StaticConfigProvider,
)
from .console import ConsoleLog, LoggingSink, LogSink
from .errors import (
    AutoRenderError,
    ExecutableNotFoundError,
    NonZeroExitError,
    ProcessLaunchError,
    ProtocolError,
    ProtocolIOError,
    ProtocolTimeoutError,
)

__all__ = [
    "AutoRenderConfig",
    "ConfigProvider",
    "ExportSettings",
    "FileConfigProvider",
    "StaticConfigProvider",
    "ConsoleLog",
    "LoggingSink",
    "LogSink",
    "AutoRenderError",
    "ExecutableNotFoundError",
    "NonZeroExitError",
    "ProcessLaunchError",
    "ProtocolError",
    "ProtocolIOError",
    "ProtocolTimeoutError",
]
