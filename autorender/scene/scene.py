"""Scene entities, world settings and render requests.

This module provides the immutable snapshot types the render core
receives from its caller: models and lights with their transforms and
modifiers, the world/environment settings, and the RenderRequest that
bundles them with export settings.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from ..core.config import ExportSettings
from .transform import Transform3D

SUPPORTED_MODEL_FORMATS = (".fbx", ".obj", ".glb", ".gltf", ".stl")

LightType = Literal["POINT", "SUN", "SPOT", "AREA"]
EnvironmentType = Literal["solid_color", "studio_preset", "custom_image"]
RenderMode = Literal["preview", "batch"]


class AutoRotate(BaseModel):
    """Rotate an entity at a constant rate over the animation."""

    kind: Literal["auto_rotate"] = "auto_rotate"
    axis: Literal["X", "Y", "Z"] = Field(default="Z", description="Rotation axis")
    speed: float = Field(default=1.0, description="Rotation speed in degrees per second")

    model_config = {"frozen": True}


# New modifier kinds join this alias as a discriminated union on ``kind``.
Modifier = AutoRotate


class _EntityBase(BaseModel):
    name: str = Field(default="Object", description="Display name")
    transform: Transform3D = Field(
        default_factory=Transform3D,
        description="Position, rotation, and scale"
    )
    modifiers: tuple[Modifier, ...] = Field(
        default=(),
        description="Behaviours applied in order"
    )

    model_config = {"frozen": True}


class ModelEntity(_EntityBase):
    """A 3D asset imported from a file."""

    kind: Literal["model"] = "model"
    path: str = Field(default="", description="Path to the asset file")

    @property
    def asset_format(self) -> str:
        """Lower-case file extension of the asset (e.g. ".glb")."""
        return Path(self.path).suffix.lower()

    @property
    def is_supported(self) -> bool:
        return bool(self.path) and self.asset_format in SUPPORTED_MODEL_FORMATS


class LightEntity(_EntityBase):
    """A light source."""

    kind: Literal["light"] = "light"
    name: str = "Light"
    light_type: LightType = Field(default="POINT", description="Light kind")
    energy: float = Field(default=1000.0, description="Light power in watts")
    color: str = Field(default="#FFFFFF", description="Hex RGB colour")


SceneEntity = Annotated[Union[ModelEntity, LightEntity], Field(discriminator="kind")]


class WorldSettings(BaseModel):
    """Environment, background and camera placement."""

    environment_type: EnvironmentType = Field(
        default="solid_color",
        description="Background source"
    )
    background_color: str = Field(default="#333333", description="Hex RGB background colour")
    environment_texture_path: str = Field(
        default="",
        description="Environment image (used unless solid_color)"
    )
    strength: float = Field(default=1.0, ge=0, description="Background strength")
    show_background: bool = Field(
        default=True,
        description="Show the environment image to the camera"
    )

    # Camera
    auto_camera: bool = Field(default=False, description="Frame all geometry automatically")
    camera_distance: float = Field(default=5.0, description="Manual camera distance")
    camera_height: float = Field(default=0.0, description="Manual camera height")
    camera_angle: float = Field(default=0.0, description="Manual camera angle in degrees")

    model_config = {"frozen": True}


class RenderRequest(BaseModel):
    """Immutable snapshot of everything needed for one render."""

    entities: tuple[SceneEntity, ...] = Field(default=())
    world: WorldSettings = Field(default_factory=WorldSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    mode: RenderMode = Field(default="batch")
    duration: float | None = Field(
        default=None,
        gt=0,
        description="Duration in seconds (defaults to export.duration)"
    )

    model_config = {"frozen": True}

    @property
    def effective_duration(self) -> float:
        return self.duration if self.duration is not None else self.export.duration

    @property
    def frame_end(self) -> int:
        """Last frame index of the animation (frames run from 0)."""
        return int(self.effective_duration * self.export.frame_rate)

    @property
    def is_preview(self) -> bool:
        return self.mode == "preview"


class SceneDocument(BaseModel):
    """A scene as stored in a JSON file for command-line use."""

    name: str = Field(default="Untitled Scene", description="Scene name")
    entities: list[SceneEntity] = Field(default_factory=list)
    world: WorldSettings = Field(default_factory=WorldSettings)

    def to_request(
        self,
        export: ExportSettings,
        mode: RenderMode = "batch",
        duration: float | None = None,
    ) -> RenderRequest:
        """Snapshot this scene into a RenderRequest."""
        return RenderRequest(
            entities=tuple(self.entities),
            world=self.world,
            export=export,
            mode=mode,
            duration=duration,
        )

    def save(self, path: str | Path) -> None:
        """Save scene to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def load(cls, path: str | Path) -> SceneDocument:
        """Load scene from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)
