"""Tests for the batch render pipeline."""

from pathlib import Path

import pytest

from autorender.core.config import AutoRenderConfig, ExportSettings, StaticConfigProvider
from autorender.core.errors import ExecutableNotFoundError, NonZeroExitError
from autorender.engine.batch import BatchPipeline, output_file_path, resolve_output_file
from autorender.engine.supervisor import ProcessSupervisor
from autorender.scene.scene import LightEntity, RenderRequest

from conftest import FakePopen


@pytest.fixture
def request_2s():
    return RenderRequest(
        entities=(LightEntity(),),
        export=ExportSettings(frame_rate=30, container="MP4"),
        duration=2.0,
    )


def make_pipeline(config_provider, sink, process_group, popen):
    supervisor = ProcessSupervisor(sink, process_group=process_group, popen=popen)
    return BatchPipeline(config_provider, supervisor=supervisor, log_sink=sink)


class TestOutputPaths:
    """Test output naming and resolution."""

    def test_extension_appended(self, tmp_path):
        """Test the container extension is added when missing."""
        assert output_file_path(tmp_path, "video", ".mp4") == tmp_path / "video.mp4"

    def test_extension_case_insensitive(self, tmp_path):
        """Test an existing extension in any case is kept."""
        assert output_file_path(tmp_path, "video.MP4", ".mp4") == tmp_path / "video.MP4"

    def test_exact_match(self, tmp_path):
        """Test the requested file wins when it exists."""
        (tmp_path / "video.mp4").write_bytes(b"")
        (tmp_path / "video0001-0150.mp4").write_bytes(b"")
        assert resolve_output_file(tmp_path / "video.mp4") == tmp_path / "video.mp4"

    def test_frame_range_suffix(self, tmp_path):
        """Test a frame-range file is found when the exact one is absent."""
        (tmp_path / "video0001-0150.mp4").write_bytes(b"")
        assert resolve_output_file(tmp_path / "video.mp4") == tmp_path / "video0001-0150.mp4"

    def test_first_sorted_match(self, tmp_path):
        """Test the first match in sorted order is chosen."""
        (tmp_path / "video0002.mp4").write_bytes(b"")
        (tmp_path / "video0001.mp4").write_bytes(b"")
        (tmp_path / "video0001.avi").write_bytes(b"")
        assert resolve_output_file(tmp_path / "video.mp4") == tmp_path / "video0001.mp4"

    def test_bracketed_name(self, tmp_path):
        """Test glob characters in the name are matched literally."""
        (tmp_path / "take10000-0060.mp4").write_bytes(b"")
        (tmp_path / "take[1]0000-0060.mp4").write_bytes(b"")
        assert resolve_output_file(tmp_path / "take[1].mp4") == tmp_path / "take[1]0000-0060.mp4"

    def test_nothing_found(self, tmp_path):
        """Test None when no file matches."""
        assert resolve_output_file(tmp_path / "video.mp4") is None
        assert resolve_output_file(tmp_path / "missing" / "video.mp4") is None


class TestBatchPipeline:
    """Test end-to-end batch rendering with a fake engine."""

    def test_render_success(self, config_provider, sink, process_group, tmp_path, request_2s):
        """Test a successful render producing the exact file."""
        scripts = []

        def produce(args):
            scripts.append(Path(args[3]).read_text(encoding="utf-8"))
            (tmp_path / "out" / "clip.mp4").write_bytes(b"\x00")

        pipeline = make_pipeline(config_provider, sink, process_group, FakePopen(on_spawn=produce))
        result = pipeline.render(request_2s, tmp_path / "out", "clip")

        assert result.resolved
        assert result.output_path == tmp_path / "out" / "clip.mp4"
        assert result.exit_code == 0
        assert "scene.frame_end = 60" in scripts[0]
        assert "clip.mp4" in scripts[0]
        assert "bpy.ops.render.render(animation=True)" in scripts[0]
        assert sink.contains("Render Complete!")
        assert sink.contains("File saved at:")

    def test_script_deleted(self, config_provider, sink, process_group, tmp_path, request_2s):
        """Test the temp script is removed after the run."""
        launched = []
        pipeline = make_pipeline(
            config_provider, sink, process_group, FakePopen(on_spawn=launched.append)
        )
        pipeline.render(request_2s, tmp_path / "out", "clip")

        script_path = Path(launched[0][3])
        assert script_path.name.startswith("autorender_script_")
        assert not script_path.exists()

    def test_frame_range_output(self, config_provider, sink, process_group, tmp_path, request_2s):
        """Test the engine's frame-range file name is reported."""
        def produce(args):
            (tmp_path / "out" / "video0001-0150.mp4").write_bytes(b"\x00")

        pipeline = make_pipeline(config_provider, sink, process_group, FakePopen(on_spawn=produce))
        result = pipeline.render(request_2s, tmp_path / "out", "video")

        assert result.output_path == tmp_path / "out" / "video0001-0150.mp4"
        assert sink.contains("Blender appended frames")

    def test_missing_output_warns(self, config_provider, sink, process_group, tmp_path, request_2s):
        """Test an unresolved output is a warning, not an error."""
        pipeline = make_pipeline(config_provider, sink, process_group, FakePopen())
        result = pipeline.render(request_2s, tmp_path / "out", "video")

        assert not result.resolved
        assert result.requested_path == tmp_path / "out" / "video.mp4"
        assert sink.contains("Warning: Output file not found")

    def test_default_file_name(self, config_provider, sink, process_group, tmp_path):
        """Test the export output name is used when none is given."""
        request = RenderRequest(export=ExportSettings(output_name="turntable", container="MKV"))
        pipeline = make_pipeline(config_provider, sink, process_group, FakePopen())
        result = pipeline.render(request, tmp_path / "out")
        assert result.requested_path == tmp_path / "out" / "turntable.mkv"

    def test_creates_output_dir(self, config_provider, sink, process_group, tmp_path, request_2s):
        """Test the output directory is created."""
        pipeline = make_pipeline(config_provider, sink, process_group, FakePopen())
        pipeline.render(request_2s, tmp_path / "a" / "b", "clip")
        assert (tmp_path / "a" / "b").is_dir()

    def test_nonzero_exit(self, config_provider, sink, process_group, tmp_path, request_2s):
        """Test a failing engine raises with its exit code and stderr tail."""
        popen = FakePopen(stderr_lines=["Error: codec not found"], returncode=3)
        pipeline = make_pipeline(config_provider, sink, process_group, popen)

        with pytest.raises(NonZeroExitError) as excinfo:
            pipeline.render(request_2s, tmp_path / "out", "clip")

        assert excinfo.value.exit_code == 3
        assert excinfo.value.stderr_tail == ["Error: codec not found"]
        assert "exit code 3" in str(excinfo.value)
        assert sink.contains("Render Failed with Exit Code: 3")

    def test_missing_executable(self, sink, process_group, tmp_path, request_2s):
        """Test a missing executable fails before launching anything."""
        popen = FakePopen()
        provider = StaticConfigProvider(AutoRenderConfig(executable_path=tmp_path / "nope.exe"))
        pipeline = make_pipeline(provider, sink, process_group, popen)

        with pytest.raises(ExecutableNotFoundError) as excinfo:
            pipeline.render(request_2s, tmp_path / "out", "clip")

        assert isinstance(excinfo.value, FileNotFoundError)
        assert popen.processes == []
