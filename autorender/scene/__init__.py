"""Scene snapshot types handed to the render core.

This module provides the data structures describing what to render:
models and lights with their placement, world settings, and render
requests.
"""

from .transform import Transform3D
from .scene import (
    SUPPORTED_MODEL_FORMATS,
    AutoRotate,
    LightEntity,
    Modifier,
    ModelEntity,
    RenderRequest,
    SceneDocument,
    SceneEntity,
    WorldSettings,
)

__all__ = [
    "Transform3D",
    "SUPPORTED_MODEL_FORMATS",
    "AutoRotate",
    "LightEntity",
    "Modifier",
    "ModelEntity",
    "RenderRequest",
    "SceneDocument",
    "SceneEntity",
    "WorldSettings",
]
