"""AutoRender - Automated Blender rendering of 3D scenes.

Compiles scene snapshots into Blender Python scripts and runs them,
either through a persistent preview worker or as one-shot batch renders
producing video files.
"""

__version__ = "0.1.0"

from .core.config import AutoRenderConfig, ExportSettings
from .scene.scene import RenderRequest, SceneDocument
from .compiler.script import compile_script
from .service import PreviewResult, RenderService

__all__ = [
    "AutoRenderConfig",
    "ExportSettings",
    "RenderRequest",
    "SceneDocument",
    "compile_script",
    "PreviewResult",
    "RenderService",
]
