#!/usr/bin/env python3
"""Example: Render a turntable video of a model.

This script demonstrates the basic workflow for AutoRender:
1. Build a scene with a model, a light and a rotating modifier
2. Compile it to a Blender script (and inspect it)
3. Render a preview frame, then the full video

Run with: python examples/turntable.py path/to/model.glb
"""

import sys

from autorender import AutoRenderConfig, ExportSettings, RenderService
from autorender.core import ConsoleLog, StaticConfigProvider
from autorender.engine import detect_executable
from autorender.scene import AutoRotate, LightEntity, ModelEntity, RenderRequest, Transform3D, WorldSettings


def build_request(model_path: str, mode: str = "batch") -> RenderRequest:
    """Scene with one model spinning once around Z in 4 seconds."""
    model = ModelEntity(
        name="Subject",
        path=model_path,
        modifiers=(AutoRotate(axis="Z", speed=90.0),),
    )
    key = LightEntity(
        name="Key",
        light_type="AREA",
        energy=800.0,
        transform=Transform3D(position=(4.0, -4.0, 6.0), rotation=(45.0, 0.0, 45.0)),
    )
    world = WorldSettings(background_color="#202020", auto_camera=True)
    export = ExportSettings(frame_rate=30, duration=4.0).with_resolution_preset("1280x720")
    return RenderRequest(entities=(model, key), world=world, export=export, mode=mode)


def main():
    if len(sys.argv) < 2:
        print("Usage: python examples/turntable.py MODEL")
        return 1

    print("AutoRender - Turntable Example")
    print("=" * 40)

    print("\n1. Locating Blender...")
    executable = detect_executable()
    if executable is None:
        print("   ✗ Blender not found; only compiling the script")
    else:
        print(f"   Found: {executable}")

    config = AutoRenderConfig(executable_path=executable)
    log = ConsoleLog(max_lines=500)
    request = build_request(sys.argv[1])

    with RenderService(StaticConfigProvider(config), log_sink=log) as service:
        print("\n2. Compiling script...")
        script = service.compile_batch_script(request, "turntable.mp4")
        print(f"   {len(script.splitlines())} lines, {request.frame_end + 1} frames")

        if executable is None:
            return 0

        print("\n3. Rendering preview frame...")
        result = service.render_preview(request)
        print(f"   {result.response} -> {result.image_path}")

        print("\n4. Rendering video...")
        try:
            batch = service.run_batch_render(request, output_dir="renders", file_name="turntable")
            print(f"\n   ✓ Saved: {batch.output_path}")
        except Exception as e:
            print(f"\n   ✗ Error: {e}")
            print("\n".join(log.messages[-10:]))

    print("\n" + "=" * 40)
    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
