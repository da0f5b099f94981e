"""Engine process management: supervisor, preview worker, batch pipeline."""

from .batch import BatchPipeline, BatchResult, resolve_output_file
from .discovery import detect_executable, get_engine_version, list_studio_lights, validate_executable
from .process import NullProcessGroup, ProcessGroup, default_process_group
from .protocol import decode_frame, encode_frame, exchange
from .supervisor import ManagedProcess, ProcessSupervisor, RunResult
from .worker import PREVIEW_FAILURE, PreviewChannel, WorkerState

__all__ = [
    "BatchPipeline",
    "BatchResult",
    "resolve_output_file",
    "detect_executable",
    "get_engine_version",
    "list_studio_lights",
    "validate_executable",
    "NullProcessGroup",
    "ProcessGroup",
    "default_process_group",
    "decode_frame",
    "encode_frame",
    "exchange",
    "ManagedProcess",
    "ProcessSupervisor",
    "RunResult",
    "PREVIEW_FAILURE",
    "PreviewChannel",
    "WorkerState",
]
