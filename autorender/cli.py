"""Command-line interface for AutoRender.

Usage:
    autorender script scene.json [options]
    autorender render scene.json [options]
    autorender preview scene.json [options]
    autorender detect [--save]
    autorender studio-lights
    autorender config init|show
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from .core.config import (
    AutoRenderConfig,
    FileConfigProvider,
    RESOLUTION_PRESETS,
    StaticConfigProvider,
    default_config_path,
)
from .core.errors import AutoRenderError
from .compiler.script import compile_script
from .engine.discovery import detect_executable, get_engine_version, list_studio_lights
from .scene.scene import SceneDocument
from .service import RenderService

console = Console()

config_option = click.option(
    "--config", "-c", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (default: per-user config)",
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


def _load_config(config_path: str | None) -> AutoRenderConfig:
    return FileConfigProvider(config_path).get_config()


def _load_scene(scene_file: str) -> SceneDocument:
    try:
        return SceneDocument.load(scene_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Invalid scene file {scene_file}: {e}[/red]")
        raise click.Abort()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """AutoRender - Automated Blender rendering."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@main.command()
@click.argument("scene_file", type=click.Path(exists=True))
@click.option(
    "--mode", "-m",
    type=click.Choice(["preview", "batch"]),
    default="batch",
    help="Render mode to compile for",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Output path written into the script",
)
@click.option("--duration", "-d", type=float, default=None, help="Duration in seconds")
@click.option("--plain", is_flag=True, help="Print without syntax highlighting")
@config_option
def script(
    scene_file: str,
    mode: str,
    output: str | None,
    duration: float | None,
    plain: bool,
    config_path: str | None,
) -> None:
    """Print the Blender script compiled from a scene file."""
    cfg = _load_config(config_path)
    doc = _load_scene(scene_file)
    request = doc.to_request(cfg.export, mode=mode, duration=duration)

    if output is None:
        output = "preview.png" if mode == "preview" else f"{cfg.export.output_name}{cfg.export.extension}"

    text = compile_script(request, output)
    if plain:
        click.echo(text, nl=False)
    else:
        console.print(Syntax(text, "python", line_numbers=False))


@main.command()
@click.argument("scene_file", type=click.Path(exists=True))
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False),
    default=None,
    help="Output directory (default: configured output_dir)",
)
@click.option("--name", "-n", default=None, help="Output file name")
@click.option("--duration", "-d", type=float, default=None, help="Duration in seconds")
@click.option(
    "--container",
    type=click.Choice(["MP4", "AVI", "MKV"]),
    default=None,
    help="Override the container format",
)
@click.option(
    "--resolution", "-r",
    type=click.Choice(list(RESOLUTION_PRESETS)),
    default=None,
    help="Override the resolution with a preset",
)
@config_option
def render(
    scene_file: str,
    output_dir: str | None,
    name: str | None,
    duration: float | None,
    container: str | None,
    resolution: str | None,
    config_path: str | None,
) -> None:
    """Render a scene file to a video."""
    cfg = _load_config(config_path)
    doc = _load_scene(scene_file)

    export = cfg.export
    if container:
        export = export.model_copy(update={"container": container})
    if resolution:
        export = export.with_resolution_preset(resolution)
    request = doc.to_request(export, mode="batch", duration=duration)

    table = Table(title=f"Render: {doc.name}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Entities", str(len(request.entities)))
    table.add_row("Resolution", f"{export.resolution_width}x{export.resolution_height}")
    table.add_row("Frames", f"0-{request.frame_end} @ {export.frame_rate} fps")
    table.add_row("Engine", export.render_engine)
    table.add_row("Output", f"{export.container} / {export.codec} / {export.bitrate_mode}")
    console.print(table)

    service = RenderService(StaticConfigProvider(cfg))
    try:
        with console.status("Rendering..."):
            result = service.run_batch_render(request, output_dir=output_dir, file_name=name)
    except AutoRenderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()

    if result.resolved:
        console.print(f"[green]Saved: {result.output_path}[/green]")
    else:
        console.print(f"[yellow]Render finished but no file found at {result.requested_path}[/yellow]")


@main.command()
@click.argument("scene_file", type=click.Path(exists=True))
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="PNG output path (default: temp directory)",
)
@config_option
def preview(scene_file: str, output: str | None, config_path: str | None) -> None:
    """Render a single preview frame through the preview worker."""
    cfg = _load_config(config_path)
    doc = _load_scene(scene_file)
    request = doc.to_request(cfg.export, mode="preview")

    try:
        with RenderService(StaticConfigProvider(cfg)) as service:
            with console.status("Rendering preview..."):
                result = service.render_preview(request, output)
    except AutoRenderError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()

    if result.ok:
        console.print(f"[green]Preview: {result.image_path}[/green]")
    else:
        console.print(f"[red]{result.response}[/red]")
    if result.restarts:
        console.print(f"[dim]Worker restarted {result.restarts} time(s)[/dim]")
    if not result.ok:
        raise click.Abort()


@main.command()
@click.option("--save", is_flag=True, help="Store the detected path in the config file")
@config_option
def detect(save: bool, config_path: str | None) -> None:
    """Auto-detect the Blender executable."""
    with console.status("Searching for Blender..."):
        path = detect_executable()

    if path is None:
        console.print("[yellow]Blender not found in default locations[/yellow]")
        raise click.Abort()

    version = get_engine_version(path)
    console.print(f"[green]Found Blender {version}:[/green] {path}")

    if save:
        target = Path(config_path) if config_path else default_config_path()
        cfg = _load_config(config_path).model_copy(update={"executable_path": path})
        cfg.to_file(target)
        console.print(f"Saved to {target}")


@main.command("studio-lights")
@config_option
def studio_lights(config_path: str | None) -> None:
    """List studio light HDRIs bundled with the configured Blender."""
    cfg = _load_config(config_path)
    if cfg.executable_path is None:
        console.print("[red]Blender executable not configured (see 'autorender detect --save')[/red]")
        raise click.Abort()

    lights = list_studio_lights(cfg.executable_path)
    if not lights:
        console.print("[dim]No studio lights found[/dim]")
        return

    table = Table(title="Studio Lights")
    table.add_column("Name", style="cyan")
    table.add_column("Path", style="dim")
    for light in lights:
        table.add_row(light.stem, str(light))
    console.print(table)


@main.group()
def config() -> None:
    """Manage the configuration file."""
    pass


@config.command("init")
@click.argument("path", type=click.Path(dir_okay=False), required=False)
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
def config_init(path: str | None, force: bool) -> None:
    """Write a default configuration file."""
    target = Path(path) if path else default_config_path()
    if target.exists() and not force:
        console.print(f"[yellow]Config already exists: {target} (use --force)[/yellow]")
        raise click.Abort()

    cfg = AutoRenderConfig.default()
    detected = detect_executable()
    if detected is not None:
        cfg = cfg.model_copy(update={"executable_path": detected})

    try:
        cfg.to_file(target)
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort()
    console.print(f"[green]Created config file: {target}[/green]")
    if detected is None:
        console.print("[dim]Blender not detected; set executable_path manually[/dim]")


@config.command("show")
@config_option
def config_show(config_path: str | None) -> None:
    """Show the effective configuration."""
    cfg = _load_config(config_path)
    source = Path(config_path) if config_path else default_config_path()
    console.print(f"[dim]Source: {source}[/dim]")

    table = Table()
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("executable_path", str(cfg.executable_path or "-"))
    table.add_row("output_dir", str(cfg.output_dir or "-"))
    for key, value in cfg.export.model_dump().items():
        table.add_row(f"export.{key}", str(value))
    console.print(table)


if __name__ == "__main__":
    main()
