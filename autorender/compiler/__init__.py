"""Scene compiler: render requests to Blender Python scripts."""

from .colors import parse_hex_color
from .modifiers import EmitContext, get_emitter, list_modifiers, register_modifier, rotation_deltas
from .script import compile_batch_script, compile_preview_script, compile_script
from .writer import ScriptWriter

__all__ = [
    "parse_hex_color",
    "EmitContext",
    "get_emitter",
    "list_modifiers",
    "register_modifier",
    "rotation_deltas",
    "compile_batch_script",
    "compile_preview_script",
    "compile_script",
    "ScriptWriter",
]
