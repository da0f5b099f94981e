"""RenderService: the entry point front-ends call.

Bundles the scene compiler, the preview channel and the batch pipeline
behind one object sharing a config provider, a log sink and a process
supervisor.

Example:
    with RenderService(FileConfigProvider()) as service:
        result = service.render_preview(request)
        print(result.response)
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from .compiler import script as compiler
from .core.config import ConfigProvider, StaticConfigProvider
from .core.console import LogSink, LoggingSink
from .engine.batch import BatchPipeline, BatchResult
from .engine.supervisor import ProcessSupervisor
from .engine.worker import PreviewChannel
from .scene.scene import RenderRequest

logger = logging.getLogger(__name__)

PREVIEW_FILE_NAME = "autorender_preview.png"


def default_preview_path() -> Path:
    return Path(tempfile.gettempdir()) / PREVIEW_FILE_NAME


@dataclass
class PreviewResult:
    """Outcome of one preview render."""

    response: str
    image_path: Path
    image_exists: bool
    attempts: int
    restarts: int

    @property
    def ok(self) -> bool:
        return self.response == "OK"


class RenderService:
    """Render core facade.

    Leaving a ``with`` block stops the preview worker.
    """

    def __init__(
        self,
        config_provider: ConfigProvider | None = None,
        log_sink: LogSink | None = None,
        supervisor: ProcessSupervisor | None = None,
        channel: PreviewChannel | None = None,
        pipeline: BatchPipeline | None = None,
    ):
        self.config_provider = config_provider or StaticConfigProvider()
        self.log_sink = log_sink or LoggingSink()
        self.supervisor = supervisor or ProcessSupervisor(self.log_sink)
        self.channel = channel or PreviewChannel(
            self.config_provider,
            supervisor=self.supervisor,
            log_sink=self.log_sink,
        )
        self.pipeline = pipeline or BatchPipeline(
            self.config_provider,
            supervisor=self.supervisor,
            log_sink=self.log_sink,
        )

    def __enter__(self) -> RenderService:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop_worker()

    # Compilation

    def compile_preview_script(self, request: RenderRequest, output_path: str | Path) -> str:
        return compiler.compile_preview_script(request, output_path)

    def compile_batch_script(self, request: RenderRequest, output_path: str | Path) -> str:
        return compiler.compile_batch_script(request, output_path)

    # Preview worker

    def start_worker(self) -> None:
        self.channel.start()

    def stop_worker(self) -> None:
        self.channel.stop()

    def send_preview_request(self, script: str) -> str:
        """Send a compiled script to the worker; see PreviewChannel.send."""
        return self.channel.send(script)

    def render_preview(
        self,
        request: RenderRequest,
        output_path: str | Path | None = None,
    ) -> PreviewResult:
        """Render a still image of the request's scene through the worker.

        Args:
            request: Scene snapshot (rendered in preview mode)
            output_path: PNG destination. Defaults to the temp directory.
        """
        image_path = Path(output_path) if output_path is not None else default_preview_path()
        script = self.compile_preview_script(request, image_path)
        response = self.send_preview_request(script)
        if response != "OK":
            logger.warning(f"Preview did not complete: {response}")
        return PreviewResult(
            response=response,
            image_path=image_path,
            image_exists=image_path.exists(),
            attempts=self.channel.last_attempts,
            restarts=self.channel.last_restarts,
        )

    # Batch

    def run_batch_render(
        self,
        request: RenderRequest,
        output_dir: str | Path | None = None,
        file_name: str | None = None,
    ) -> BatchResult:
        """Render the request to a video file.

        Args:
            request: Scene snapshot and export settings
            output_dir: Target directory. Defaults to the configured
                output_dir, then the current directory.
            file_name: Output name. Defaults to export.output_name.
        """
        if output_dir is None:
            output_dir = self.config_provider.get_config().output_dir or Path.cwd()
        return self.pipeline.render(request, output_dir, file_name)
