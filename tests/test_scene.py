"""Tests for Transform3D, scene entities, and RenderRequest."""

import numpy as np
import pytest
from pydantic import ValidationError

from autorender.core.config import ExportSettings
from autorender.scene.scene import (
    AutoRotate,
    LightEntity,
    ModelEntity,
    RenderRequest,
    SceneDocument,
    WorldSettings,
)
from autorender.scene.transform import Transform3D


class TestTransform3D:
    """Test Transform3D functionality."""

    def test_default_transform(self):
        """Test default transform is identity."""
        t = Transform3D()
        assert t.position == (0.0, 0.0, 0.0)
        assert t.rotation == (0.0, 0.0, 0.0)
        assert t.scale == (1.0, 1.0, 1.0)
        assert t == Transform3D.identity()

    def test_rotation_radians(self):
        """Test degree to radian conversion."""
        t = Transform3D(rotation=(90.0, 180.0, -45.0))
        np.testing.assert_array_almost_equal(
            t.rotation_radians(), [np.pi / 2, np.pi, -np.pi / 4]
        )

    def test_rotation_radians_are_plain_floats(self):
        """Test converted values are Python floats, not numpy scalars."""
        rx, ry, rz = Transform3D(rotation=(10.0, 20.0, 30.0)).rotation_radians()
        assert all(type(v) is float for v in (rx, ry, rz))

    def test_repr(self):
        """Test string representation."""
        assert "pos=(1.0, 2.0, 3.0)" in repr(Transform3D(position=(1.0, 2.0, 3.0)))


class TestEntities:
    """Test model and light entities."""

    @pytest.mark.parametrize("path", ["a.fbx", "a.OBJ", "dir/a.glb", "a.gltf", "a.stl"])
    def test_supported_formats(self, path):
        """Test supported asset extensions (case-insensitive)."""
        assert ModelEntity(path=path).is_supported

    @pytest.mark.parametrize("path", ["", "a.blend", "a.ply", "noext"])
    def test_unsupported_formats(self, path):
        """Test unsupported or missing paths."""
        assert not ModelEntity(path=path).is_supported

    def test_asset_format(self):
        """Test extension is lower-cased."""
        assert ModelEntity(path="C:/models/Robot.FBX").asset_format == ".fbx"

    def test_light_defaults(self):
        """Test light entity defaults."""
        light = LightEntity()
        assert light.name == "Light"
        assert light.light_type == "POINT"
        assert light.energy == 1000.0
        assert light.color == "#FFFFFF"

    def test_invalid_light_type(self):
        """Test light type choices are enforced."""
        with pytest.raises(ValidationError):
            LightEntity(light_type="LASER")

    def test_modifiers_default_empty(self):
        """Test entities start without modifiers."""
        assert ModelEntity().modifiers == ()

    def test_auto_rotate_defaults(self):
        """Test AutoRotate defaults."""
        rot = AutoRotate()
        assert rot.kind == "auto_rotate"
        assert rot.axis == "Z"
        assert rot.speed == 1.0


class TestWorldSettings:
    """Test world settings."""

    def test_defaults(self):
        """Test default world is a grey solid background with manual camera."""
        world = WorldSettings()
        assert world.environment_type == "solid_color"
        assert world.background_color == "#333333"
        assert world.show_background
        assert not world.auto_camera

    def test_negative_strength_rejected(self):
        """Test strength must be non-negative."""
        with pytest.raises(ValidationError):
            WorldSettings(strength=-1.0)


class TestRenderRequest:
    """Test RenderRequest derived values."""

    def test_frame_end_from_duration(self):
        """Test frame_end = duration * fps."""
        request = RenderRequest(export=ExportSettings(frame_rate=30), duration=2.0)
        assert request.frame_end == 60

    def test_frame_end_truncates(self):
        """Test fractional frame counts are truncated."""
        request = RenderRequest(export=ExportSettings(frame_rate=24), duration=1.3)
        assert request.frame_end == 31

    def test_duration_defaults_to_export(self):
        """Test missing duration uses export.duration."""
        request = RenderRequest(export=ExportSettings(frame_rate=25, duration=4.0))
        assert request.effective_duration == 4.0
        assert request.frame_end == 100

    def test_duration_must_be_positive(self):
        """Test zero duration is rejected."""
        with pytest.raises(ValidationError):
            RenderRequest(duration=0)

    def test_is_preview(self):
        """Test render mode flag."""
        assert RenderRequest(mode="preview").is_preview
        assert not RenderRequest().is_preview

    def test_immutable(self):
        """Test requests cannot be modified after creation."""
        request = RenderRequest()
        with pytest.raises(ValidationError):
            request.mode = "preview"


class TestSceneDocument:
    """Test scene file persistence."""

    def test_save_load_roundtrip(self, tmp_path):
        """Test entities survive a save/load cycle with their kinds."""
        doc = SceneDocument(
            name="Turntable",
            entities=[
                ModelEntity(
                    name="Robot",
                    path="robot.glb",
                    transform=Transform3D(position=(1.0, 0.0, 0.0), rotation=(0.0, 0.0, 45.0)),
                    modifiers=(AutoRotate(axis="Z", speed=90.0),),
                ),
                LightEntity(name="Key", light_type="SUN", energy=3.0),
            ],
            world=WorldSettings(auto_camera=True),
        )
        path = tmp_path / "scene.json"
        doc.save(path)

        loaded = SceneDocument.load(path)
        assert loaded == doc
        assert isinstance(loaded.entities[0], ModelEntity)
        assert isinstance(loaded.entities[1], LightEntity)
        assert loaded.entities[0].modifiers[0].speed == 90.0

    def test_load_from_dict(self):
        """Test the kind field selects the entity type."""
        doc = SceneDocument.model_validate({
            "entities": [
                {"kind": "light", "light_type": "AREA"},
                {"kind": "model", "path": "a.obj"},
            ]
        })
        assert isinstance(doc.entities[0], LightEntity)
        assert isinstance(doc.entities[1], ModelEntity)

    def test_unknown_kind_rejected(self):
        """Test unknown entity kinds fail validation."""
        with pytest.raises(ValidationError):
            SceneDocument.model_validate({"entities": [{"kind": "camera"}]})

    def test_to_request(self):
        """Test snapshotting into a RenderRequest."""
        doc = SceneDocument(entities=[LightEntity()])
        export = ExportSettings(frame_rate=24)
        request = doc.to_request(export, mode="preview")

        assert request.entities == (LightEntity(),)
        assert request.export == export
        assert request.is_preview
