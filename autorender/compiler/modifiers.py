"""Script emitters for entity modifiers.

Each modifier kind maps to an emitter function that writes the statements
animating one imported object. The compiler looks emitters up by the
modifier's ``kind`` so new kinds only need a model class and a registered
emitter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np

from ..scene.scene import AutoRotate, Modifier
from .writer import ScriptWriter, fmt_float

logger = logging.getLogger(__name__)

AXIS_INDEX = {"X": 0, "Y": 1, "Z": 2}


@dataclass(frozen=True)
class EmitContext:
    """Animation parameters shared by all modifier emitters."""

    fps: int
    frame_end: int
    target: str = "obj"


ModifierEmitter = Callable[[ScriptWriter, Modifier, EmitContext], None]

MODIFIERS: dict[str, ModifierEmitter] = {}


def register_modifier(kind: str) -> Callable[[ModifierEmitter], ModifierEmitter]:
    """Register an emitter for a modifier kind."""

    def decorator(func: ModifierEmitter) -> ModifierEmitter:
        MODIFIERS[kind] = func
        return func

    return decorator


def get_emitter(kind: str) -> ModifierEmitter:
    """Get the emitter for a modifier kind.

    Raises:
        ValueError: If no emitter is registered for the kind
    """
    if kind not in MODIFIERS:
        raise ValueError(f"Unknown modifier: {kind}. Available: {list(MODIFIERS.keys())}")
    return MODIFIERS[kind]


def list_modifiers() -> list[str]:
    """Names of all registered modifier kinds."""
    return sorted(MODIFIERS)


def emit_modifier(writer: ScriptWriter, modifier: Modifier, ctx: EmitContext) -> None:
    """Write the statements for one modifier.

    Unknown kinds are left out of the script with a comment, the same
    best-effort policy as the rest of the compiler.
    """
    try:
        emitter = get_emitter(modifier.kind)
    except ValueError:
        logger.warning(f"Skipping unsupported modifier '{modifier.kind}'")
        writer.comment(f"Unsupported modifier: {modifier.kind}")
        return
    emitter(writer, modifier, ctx)


def rotation_deltas(speed_deg: float, fps: int, frame_end: int) -> np.ndarray:
    """Rotation offset in radians for every frame in [0, frame_end].

    angle(f) = (f / fps) * speed * pi / 180
    """
    frames = np.arange(frame_end + 1, dtype=np.float64)
    return frames / float(fps) * float(speed_deg) * (np.pi / 180.0)


@register_modifier("auto_rotate")
def emit_auto_rotate(writer: ScriptWriter, modifier: AutoRotate, ctx: EmitContext) -> None:
    """Keyframe a constant-rate rotation, one keyframe per frame."""
    obj = ctx.target
    axis = AXIS_INDEX[modifier.axis]

    writer.comment(f"Auto Rotate ({modifier.axis} axis, {fmt_float(modifier.speed)} deg/s)")
    writer.line(f"{obj}.animation_data_create()")
    writer.line(f"{obj}.animation_data.action = bpy.data.actions.new(name='RotationAction')")
    writer.line(f"start_angle = {obj}.rotation_euler[{axis}]")

    for frame, delta in enumerate(rotation_deltas(modifier.speed, ctx.fps, ctx.frame_end)):
        writer.line(f"{obj}.rotation_euler[{axis}] = start_angle + {fmt_float(delta)}")
        writer.line(
            f"{obj}.keyframe_insert(data_path='rotation_euler', index={axis}, frame={frame})"
        )
