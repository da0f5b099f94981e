"""Compile a render request into a Blender Python script.

The compiler is a pure function of its inputs: the same RenderRequest and
output path always produce byte-identical script text. It never raises
for malformed-but-parseable input. Unparseable colours and unsupported
model files are skipped, and texture loading failures are caught and
printed by the generated script itself.

Script layout:
1. Reset to a blank factory scene
2. World / environment nodes
3. Lights and imported models (with modifiers in batch mode)
4. Fallback sun light when the scene has no lights
5. Camera (manual orbit or automatic framing)
6. Render and output settings, then the render call
"""

from __future__ import annotations

import logging
import math
from pathlib import Path

from ..core.config import ExportSettings
from ..scene.scene import LightEntity, ModelEntity, RenderRequest, WorldSettings
from .colors import parse_hex_color
from .modifiers import EmitContext, emit_modifier
from .writer import ScriptWriter, fmt_float, fmt_path, fmt_str, fmt_vector

logger = logging.getLogger(__name__)

IMPORT_OPERATORS = {
    ".fbx": "bpy.ops.import_scene.fbx",
    ".obj": "bpy.ops.wm.obj_import",
    ".glb": "bpy.ops.import_scene.gltf",
    ".gltf": "bpy.ops.import_scene.gltf",
    ".stl": "bpy.ops.wm.stl_import",
}

FALLBACK_LIGHT_LOCATION = (5.0, -5.0, 10.0)
FALLBACK_LIGHT_ENERGY = 5.0

DEFAULT_CAMERA_LOCATION = (0.0, -10.0, 5.0)
DEFAULT_CAMERA_ROTATION = (1.1, 0.0, 0.0)

# Auto-framing: camera distance as a multiple of the largest extent
AUTO_FRAME_DISTANCE_FACTOR = 1.5
AUTO_FRAME_HEIGHT_FACTOR = 0.5
AUTO_FRAME_FALLBACK_DISTANCE = 10.0

ENGINE_SAMPLES = {
    "BLENDER_EEVEE": 64,
    "CYCLES": 128,
}

CONTAINER_FORMATS = {"MP4": "MPEG4", "AVI": "AVI", "MKV": "MATROSKA"}
CODECS = {"H.264": "H264", "H.265": "H265", "VP9": "WEBM"}


def compile_script(request: RenderRequest, output_path: str | Path) -> str:
    """Compile a render request into script text.

    Args:
        request: Scene snapshot, settings and render mode
        output_path: Where the engine writes the image or video

    Returns:
        Python source for Blender's interpreter
    """
    w = ScriptWriter()
    _emit_reset(w)
    _emit_world(w, request.world)

    ctx = EmitContext(fps=request.export.frame_rate, frame_end=request.frame_end)
    has_lights = False
    for entity in request.entities:
        if isinstance(entity, LightEntity):
            has_lights = True
            w.line("bpy.ops.object.select_all(action='DESELECT')")
            _emit_light(w, entity)
        elif isinstance(entity, ModelEntity):
            w.line("bpy.ops.object.select_all(action='DESELECT')")
            _emit_model(w, entity, ctx, animate=not request.is_preview)

    if not has_lights:
        _emit_fallback_light(w)

    _emit_camera(w, request.world)
    _emit_render_settings(w, request.export, output_path)

    if request.is_preview:
        _emit_still_render(w)
    else:
        _emit_video_output(w, request.export)
        _emit_animation_render(w, request.frame_end)

    return w.text()


def compile_preview_script(request: RenderRequest, output_path: str | Path) -> str:
    """Compile a single-frame still image script."""
    return compile_script(request.model_copy(update={"mode": "preview"}), output_path)


def compile_batch_script(request: RenderRequest, output_path: str | Path) -> str:
    """Compile a full-animation video script."""
    return compile_script(request.model_copy(update={"mode": "batch"}), output_path)


def _emit_reset(w: ScriptWriter) -> None:
    w.lines([
        "import bpy",
        "import mathutils",
        "",
        "# Clear Scene",
        # use_empty=False keeps the default add-ons (FFMPEG output) loaded
        "bpy.ops.wm.read_factory_settings(use_empty=False)",
        "bpy.ops.object.select_all(action='SELECT')",
        "bpy.ops.object.delete()",
        "scene = bpy.context.scene",
        "",
    ])


def _emit_world(w: ScriptWriter, world: WorldSettings) -> None:
    w.comment("World Settings")
    with w.block("if scene.world is None:"):
        w.line("scene.world = bpy.data.worlds.new('World')")
    w.lines([
        "world = scene.world",
        "world.use_nodes = True",
        "nodes = world.node_tree.nodes",
        "links = world.node_tree.links",
        "nodes.clear()",
        "bg_node = nodes.new(type='ShaderNodeBackground')",
        "out_node = nodes.new(type='ShaderNodeOutputWorld')",
        "links.new(bg_node.outputs[0], out_node.inputs[0])",
        f"bg_node.inputs[1].default_value = {fmt_float(world.strength)}",
    ])

    color = parse_hex_color(world.background_color)
    if world.environment_type == "solid_color":
        if color is not None:
            w.line(f"bg_node.inputs[0].default_value = {fmt_vector((*color, 1.0))}")
    elif world.environment_texture_path:
        w.line("tex_node = nodes.new(type='ShaderNodeTexEnvironment')")
        with w.block("try:"):
            w.line(f"tex_node.image = bpy.data.images.load({fmt_path(world.environment_texture_path)})")
            w.line("links.new(tex_node.outputs[0], bg_node.inputs[0])")
            if not world.show_background:
                _emit_hidden_background(w, world, color)
        with w.block("except Exception as e:"):
            w.line("print(f'Failed to load environment texture: {e}')")
    w.line()


def _emit_hidden_background(
    w: ScriptWriter,
    world: WorldSettings,
    color: tuple[float, float, float] | None,
) -> None:
    """Light the scene with the texture but show camera rays a flat colour."""
    w.comment("Mix shader: texture for lighting, solid colour for camera rays")
    w.lines([
        "mix_node = nodes.new(type='ShaderNodeMixShader')",
        "path_node = nodes.new(type='ShaderNodeLightPath')",
        "solid_bg_node = nodes.new(type='ShaderNodeBackground')",
    ])
    if color is not None:
        w.line(f"solid_bg_node.inputs[0].default_value = {fmt_vector((*color, 1.0))}")
    w.lines([
        f"solid_bg_node.inputs[1].default_value = {fmt_float(world.strength)}",
        "links.new(bg_node.outputs[0], mix_node.inputs[1])",
        "links.new(solid_bg_node.outputs[0], mix_node.inputs[2])",
        "links.new(path_node.outputs['Is Camera Ray'], mix_node.inputs[0])",
        "links.new(mix_node.outputs[0], out_node.inputs[0])",
    ])


def _emit_light(w: ScriptWriter, light: LightEntity) -> None:
    t = light.transform
    w.comment(f"Light: {light.name}")
    w.line(
        f"bpy.ops.object.light_add(type={fmt_str(light.light_type)}, "
        f"location={fmt_vector(t.position)})"
    )
    w.line("light = bpy.context.object")
    w.line(f"light.name = {fmt_str(light.name)}")
    w.line(f"light.data.energy = {fmt_float(light.energy)}")
    color = parse_hex_color(light.color)
    if color is not None:
        w.line(f"light.data.color = {fmt_vector(color)}")
    w.line(f"light.rotation_euler = {fmt_vector(t.rotation_radians())}")
    w.line()


def _emit_model(w: ScriptWriter, model: ModelEntity, ctx: EmitContext, animate: bool) -> None:
    if not model.is_supported:
        logger.debug(f"Skipping model '{model.name}': unsupported or empty path {model.path!r}")
        return

    t = model.transform
    operator = IMPORT_OPERATORS[model.asset_format]
    w.comment(f"Import {model.name}")
    w.line(f"{operator}(filepath={fmt_path(model.path)})")
    # Freshly imported objects are the current selection
    w.line("imported = list(bpy.context.selected_objects)")
    with w.block("for obj in imported:"):
        w.line("obj.rotation_mode = 'XYZ'")
        with w.block("for c in list(obj.constraints):"):
            w.line("obj.constraints.remove(c)")
        # Children follow their parent; transforming them too would apply it twice
        with w.block("if obj.parent is None or obj.parent not in imported:"):
            w.line(f"obj.location = {fmt_vector(t.position)}")
            w.line(f"obj.rotation_euler = {fmt_vector(t.rotation_radians())}")
            w.line(f"obj.scale = {fmt_vector(t.scale)}")
            if animate:
                for modifier in model.modifiers:
                    emit_modifier(w, modifier, ctx)
    w.line()


def _emit_fallback_light(w: ScriptWriter) -> None:
    w.comment("Default Fallback Light")
    w.line(f"bpy.ops.object.light_add(type='SUN', location={fmt_vector(FALLBACK_LIGHT_LOCATION)})")
    w.line(f"bpy.context.object.data.energy = {fmt_float(FALLBACK_LIGHT_ENERGY)}")
    w.line()


def _emit_track_to(w: ScriptWriter, target_location: str) -> None:
    w.lines([
        f"bpy.ops.object.empty_add(location={target_location})",
        "target = bpy.context.object",
        "track = cam.constraints.new(type='TRACK_TO')",
        "track.target = target",
        "track.track_axis = 'TRACK_NEGATIVE_Z'",
        "track.up_axis = 'UP_Y'",
    ])


def _emit_camera(w: ScriptWriter, world: WorldSettings) -> None:
    w.comment("Camera Setup")
    w.lines([
        f"bpy.ops.object.camera_add(location={fmt_vector(DEFAULT_CAMERA_LOCATION)}, "
        f"rotation={fmt_vector(DEFAULT_CAMERA_ROTATION)})",
        "cam = bpy.context.object",
        "scene.camera = cam",
    ])

    if not world.auto_camera:
        angle = math.radians(world.camera_angle)
        location = (
            world.camera_distance * math.sin(angle),
            -world.camera_distance * math.cos(angle),
            world.camera_height,
        )
        w.comment("Manual Camera Setup")
        w.line(f"cam.location = {fmt_vector(location)}")
        _emit_track_to(w, fmt_vector((0.0, 0.0, 0.0)))
        w.line()
        return

    w.comment("Auto-Frame: bounding box over all mesh geometry")
    w.lines([
        "bb_min = [float('inf')] * 3",
        "bb_max = [float('-inf')] * 3",
        "has_mesh = False",
    ])
    with w.block("for obj in scene.objects:"):
        with w.block("if obj.type != 'MESH':"):
            w.line("continue")
        w.line("has_mesh = True")
        with w.block("for corner in obj.bound_box:"):
            w.line("v = obj.matrix_world @ mathutils.Vector(corner)")
            with w.block("for i in range(3):"):
                w.line("bb_min[i] = min(bb_min[i], v[i])")
                w.line("bb_max[i] = max(bb_max[i], v[i])")
    # Without geometry the camera keeps its default placement
    with w.block("if has_mesh:"):
        w.lines([
            "center = [(bb_min[i] + bb_max[i]) / 2 for i in range(3)]",
            "extent = max(bb_max[i] - bb_min[i] for i in range(3))",
            f"dist = extent * {fmt_float(AUTO_FRAME_DISTANCE_FACTOR)} "
            f"if extent > 0 else {fmt_float(AUTO_FRAME_FALLBACK_DISTANCE)}",
            f"cam.location = (center[0], center[1] - dist, "
            f"center[2] + dist * {fmt_float(AUTO_FRAME_HEIGHT_FACTOR)})",
            "print(f'Auto-frame center: {center}, extent: {extent}')",
        ])
        _emit_track_to(w, "tuple(center)")
    w.line()


def _emit_render_settings(w: ScriptWriter, export: ExportSettings, output_path: str | Path) -> None:
    w.comment("Render Settings")
    w.line(f"scene.render.engine = {fmt_str(export.render_engine)}")
    samples = ENGINE_SAMPLES[export.render_engine]
    if export.render_engine == "CYCLES":
        w.line("scene.cycles.device = 'GPU'")
        w.line(f"scene.cycles.samples = {samples}")
    else:
        with w.block("if hasattr(scene, 'eevee'):"):
            w.line(f"scene.eevee.taa_render_samples = {samples}")
    w.lines([
        f"scene.render.resolution_x = {export.resolution_width}",
        f"scene.render.resolution_y = {export.resolution_height}",
        "scene.render.resolution_percentage = 100",
        f"scene.render.fps = {export.frame_rate}",
        f"scene.render.filepath = {fmt_path(output_path)}",
    ])


def _emit_still_render(w: ScriptWriter) -> None:
    w.lines([
        "scene.render.image_settings.file_format = 'PNG'",
        "scene.frame_current = 0",
        "bpy.ops.render.render(write_still=True)",
    ])


def _emit_video_output(w: ScriptWriter, export: ExportSettings) -> None:
    """Configure FFMPEG output, falling back for engines with media_type."""
    w.line()
    w.comment("Video Output Settings")
    w.line("image_settings = scene.render.image_settings")
    with w.block("try:"):
        w.line("image_settings.file_format = 'FFMPEG'")
    with w.block("except Exception as e:"):
        w.line("print(f'Warning: Standard FFMPEG format not available: {e}')")
        with w.block("try:"):
            w.line("image_settings.media_type = 'VIDEO'")
        with w.block("except Exception as e2:"):
            w.line("print(f'Error: Could not configure video output: {e2}')")
            with w.block("try:"):
                w.line(
                    "formats = [i.identifier for i in "
                    "image_settings.bl_rna.properties['file_format'].enum_items]"
                )
                w.line("print(f'Available formats: {formats}')")
            with w.block("except Exception as e3:"):
                w.line("print(f'Could not list output formats: {e3}')")
            w.line("raise")

    with w.block("try:"):
        w.line("ffmpeg = scene.render.ffmpeg")
        w.line(f"ffmpeg.format = {fmt_str(CONTAINER_FORMATS[export.container])}")
        w.line(f"ffmpeg.codec = {fmt_str(CODECS[export.codec])}")
        if export.bitrate_mode == "CBR":
            w.lines([
                "ffmpeg.constant_rate_factor = 'NONE'",
                f"ffmpeg.video_bitrate = {export.bitrate_kbps}",
                f"ffmpeg.minrate = {export.bitrate_kbps}",
                f"ffmpeg.maxrate = {export.bitrate_kbps}",
            ])
        else:
            w.lines([
                "ffmpeg.constant_rate_factor = 'MEDIUM'",
                f"ffmpeg.video_bitrate = {export.bitrate_kbps}",
            ])
        w.line(f"ffmpeg.gopsize = {export.gop_size}")
        w.line("ffmpeg.ffmpeg_preset = 'GOOD'")
    with w.block("except Exception as e:"):
        # Encoder defaults still produce a video
        w.line("print(f'Error setting FFMPEG parameters: {e}')")
    w.line("print(f'Output Format: {image_settings.file_format}')")
    w.line("print(f'Output Path: {scene.render.filepath}')")


def _emit_animation_render(w: ScriptWriter, frame_end: int) -> None:
    w.lines([
        "scene.frame_start = 0",
        f"scene.frame_end = {frame_end}",
        "bpy.ops.render.render(animation=True)",
    ])
