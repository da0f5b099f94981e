"""One-shot batch rendering of a scene to a video file."""

from __future__ import annotations

import glob
import logging
from dataclasses import dataclass
from pathlib import Path

from ..compiler.script import compile_batch_script
from ..core.config import ConfigProvider
from ..core.console import LogSink, LoggingSink
from ..core.errors import ExecutableNotFoundError, NonZeroExitError
from ..scene.scene import RenderRequest
from .supervisor import ProcessSupervisor, write_temp_script

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a successful batch render."""

    requested_path: Path
    output_path: Path | None
    exit_code: int = 0

    @property
    def resolved(self) -> bool:
        return self.output_path is not None


def output_file_path(output_dir: str | Path, file_name: str, extension: str) -> Path:
    """Full output path, appending the container extension when missing."""
    if not file_name.lower().endswith(extension.lower()):
        file_name += extension
    return Path(output_dir) / file_name


def resolve_output_file(requested: str | Path) -> Path | None:
    """Find the file the engine actually wrote.

    The engine may append a frame range to the name
    (``video.mp4`` becomes ``video0001-0150.mp4``). The exact path wins;
    otherwise the first match of ``<stem>*<ext>`` in sorted order.

    Returns:
        Path of the produced file, or None if nothing matches
    """
    requested = Path(requested)
    if requested.exists():
        return requested
    if not requested.parent.is_dir():
        return None
    pattern = f"{glob.escape(requested.stem)}*{glob.escape(requested.suffix)}"
    matches = sorted(requested.parent.glob(pattern))
    return matches[0] if matches else None


class BatchPipeline:
    """Compiles a request, runs the engine once, and locates the video."""

    def __init__(
        self,
        config_provider: ConfigProvider,
        supervisor: ProcessSupervisor | None = None,
        log_sink: LogSink | None = None,
    ):
        self.config_provider = config_provider
        self.log_sink = log_sink or LoggingSink()
        self.supervisor = supervisor or ProcessSupervisor(self.log_sink)

    def render(
        self,
        request: RenderRequest,
        output_dir: str | Path,
        file_name: str | None = None,
    ) -> BatchResult:
        """Render a request to a video file.

        Args:
            request: Scene snapshot and export settings
            output_dir: Directory for the video (created if missing)
            file_name: Output name. Defaults to export.output_name.

        Returns:
            BatchResult with the resolved output file, if one was found

        Raises:
            ExecutableNotFoundError: If no valid executable is configured
            ProcessLaunchError: If the engine could not be started
            NonZeroExitError: If the engine exited with a failure code
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        executable = self.config_provider.get_config().executable_path
        if executable is None or not Path(executable).is_file():
            raise ExecutableNotFoundError(executable)

        export = request.export
        requested = output_file_path(output_dir, file_name or export.output_name, export.extension)

        script = compile_batch_script(request, requested)
        script_path = write_temp_script(script)

        self.log_sink.append(
            f"Rendering {request.frame_end + 1} frames at {export.resolution_width}x"
            f"{export.resolution_height} to {requested}"
        )
        self.log_sink.append("Launching Blender process...")
        result = self.supervisor.run_once(executable, script_path, capture_output=True)

        if result.exit_code != 0:
            self.log_sink.append(f"Render Failed with Exit Code: {result.exit_code}")
            raise NonZeroExitError(result.exit_code, result.stderr_tail)

        self.log_sink.append("Render Complete!")
        produced = resolve_output_file(requested)
        if produced is None:
            logger.warning(f"Output file not found at {requested}")
            self.log_sink.append(
                f"Warning: Output file not found exactly at {requested}. Check folder content."
            )
        elif produced == requested:
            self.log_sink.append(f"File saved at: {produced}")
        else:
            self.log_sink.append(f"File saved at (Blender appended frames): {produced}")

        return BatchResult(requested_path=requested, output_path=produced, exit_code=result.exit_code)
