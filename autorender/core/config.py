"""Configuration management for AutoRender.

This module defines all configuration models using Pydantic for validation.
Configuration can be loaded from JSON files or constructed programmatically,
and is handed to the render core through a ConfigProvider.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Literal, Protocol

import click
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

APP_NAME = "AutoRender"
CONFIG_FILE_NAME = "config.json"

Codec = Literal["H.264", "H.265", "VP9"]
BitrateMode = Literal["CBR", "VBR"]
RenderEngineName = Literal["BLENDER_EEVEE", "CYCLES"]
Container = Literal["MP4", "AVI", "MKV"]

RESOLUTION_PRESETS: dict[str, tuple[int, int]] = {
    "1280x720": (1280, 720),
    "1920x1080": (1920, 1080),
    "3840x2160": (3840, 2160),
}

CONTAINER_EXTENSIONS: dict[str, str] = {
    "MP4": ".mp4",
    "AVI": ".avi",
    "MKV": ".mkv",
}


class ExportSettings(BaseModel):
    """Video export parameters.

    These control both the engine's render settings and the encoder
    settings of the final video file.
    """

    frame_rate: int = Field(default=30, gt=0, description="Frames per second")
    resolution_width: int = Field(default=1920, gt=0, description="Output width in pixels")
    resolution_height: int = Field(default=1080, gt=0, description="Output height in pixels")

    # Encoder
    codec: Codec = Field(default="H.264", description="Video codec")
    bitrate_mode: BitrateMode = Field(default="VBR", description="Constant or variable bitrate")
    bitrate_kbps: int = Field(default=5000, gt=0, description="Target bitrate in kbps")
    gop_size: int = Field(default=18, gt=0, description="Keyframe interval in frames")
    container: Container = Field(default="MP4", description="Video container format")

    render_engine: RenderEngineName = Field(
        default="BLENDER_EEVEE",
        description="Engine used to render frames"
    )

    # Defaults for a batch render
    output_name: str = Field(default="output", description="Default output base name")
    duration: float = Field(default=5.0, gt=0, description="Default duration in seconds")

    model_config = {"frozen": True}

    @property
    def extension(self) -> str:
        """File extension matching the container."""
        return CONTAINER_EXTENSIONS[self.container]

    def with_resolution_preset(self, preset: str) -> ExportSettings:
        """Return a copy with the resolution of a named preset.

        Args:
            preset: One of RESOLUTION_PRESETS (e.g. "1920x1080")

        Raises:
            ValueError: If preset is unknown
        """
        if preset not in RESOLUTION_PRESETS:
            raise ValueError(
                f"Unknown resolution preset: {preset}. Known: {list(RESOLUTION_PRESETS)}"
            )
        width, height = RESOLUTION_PRESETS[preset]
        return self.model_copy(update={"resolution_width": width, "resolution_height": height})


class AutoRenderConfig(BaseModel):
    """Main configuration container."""

    executable_path: Path | None = Field(
        default=None,
        description="Path to the Blender executable"
    )
    output_dir: Path | None = Field(
        default=None,
        description="Default directory for rendered videos"
    )
    export: ExportSettings = Field(default_factory=ExportSettings)

    @classmethod
    def from_file(cls, path: Path | str) -> AutoRenderConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> AutoRenderConfig:
        """Create a default configuration."""
        return cls()


def default_config_path() -> Path:
    """Per-user location of the configuration file."""
    return Path(click.get_app_dir(APP_NAME)) / CONFIG_FILE_NAME


class ConfigProvider(Protocol):
    """Read-only source of configuration for the render core."""

    def get_config(self) -> AutoRenderConfig:
        ...


class StaticConfigProvider:
    """Provider serving a fixed, in-memory configuration."""

    def __init__(self, config: AutoRenderConfig | None = None):
        self._config = config or AutoRenderConfig.default()

    def get_config(self) -> AutoRenderConfig:
        return self._config


class FileConfigProvider:
    """Provider that reads a JSON configuration file on every call.

    A missing or invalid file yields the default configuration.
    """

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else default_config_path()

    def get_config(self) -> AutoRenderConfig:
        if not self.path.exists():
            return AutoRenderConfig.default()
        try:
            return AutoRenderConfig.from_file(self.path)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not read config {self.path}: {e}. Using defaults.")
            return AutoRenderConfig.default()
