"""Locating the engine executable and its bundled assets."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"Blender\s+(\d+\.\d+)")
VERSION_DIR_PATTERN = re.compile(r"^\d+\.\d+$")
STUDIO_LIGHT_SUFFIXES = (".exr", ".hdr")
VERSION_TIMEOUT = 30.0

WINDOWS_PATHS = [
    r"C:\Program Files\Blender Foundation\Blender 5.0\blender.exe",
    r"C:\Program Files\Blender Foundation\Blender 4.0\blender.exe",
    r"C:\Program Files\Blender Foundation\Blender 3.6\blender.exe",
]
LINUX_PATHS = [
    "/usr/bin/blender",
    "/snap/bin/blender",
]
MACOS_PATHS = [
    "/Applications/Blender.app/Contents/MacOS/Blender",
]


def candidate_paths(platform: str | None = None) -> list[Path]:
    """Default install locations to probe, in priority order."""
    platform = platform or sys.platform
    if platform == "win32":
        paths = WINDOWS_PATHS
    elif platform == "darwin":
        paths = MACOS_PATHS
    else:
        paths = LINUX_PATHS

    candidates = [Path(p) for p in paths]
    on_path = shutil.which("blender")
    if on_path and Path(on_path) not in candidates:
        candidates.append(Path(on_path))
    return candidates


def get_engine_version(
    executable: str | Path,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> str | None:
    """Version of an executable as "X.Y", parsed from ``--version``.

    Returns:
        The version string, or None if the executable is missing, fails,
        or prints something unrecognizable
    """
    executable = Path(executable)
    if not executable.is_file():
        return None
    try:
        result = run(
            [str(executable), "--version"],
            capture_output=True,
            text=True,
            timeout=VERSION_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Version check failed for {executable}: {e}")
        return None

    first_line = (result.stdout or "").strip().splitlines()[:1]
    match = VERSION_PATTERN.search(first_line[0]) if first_line else None
    if match is None:
        logger.debug(f"Unrecognized version output from {executable}: {result.stdout!r}")
        return None
    return match.group(1)


def validate_executable(
    executable: str | Path | None,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> bool:
    """Check that a path is an engine executable reporting a version."""
    if not executable:
        return False
    return get_engine_version(executable, run=run) is not None


def detect_executable(
    candidates: list[Path] | None = None,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> Path | None:
    """First valid executable among the default install locations.

    Args:
        candidates: Paths to probe. Defaults to candidate_paths().
        run: subprocess.run compatible callable used for the version check

    Returns:
        Path of the executable, or None if none was found
    """
    for path in candidates if candidates is not None else candidate_paths():
        if path.is_file() and validate_executable(path, run=run):
            logger.info(f"Found Blender at {path}")
            return path
    logger.info("No Blender installation found in default locations")
    return None


def list_studio_lights(executable: str | Path | None) -> list[Path]:
    """Studio light HDRIs bundled with an installation.

    Looks in ``<install dir>/<X.Y>/datafiles/studiolights/world`` of the
    first version directory that has one.

    Returns:
        Sorted .exr files followed by sorted .hdr files, or an empty list
    """
    if not executable:
        return []
    executable = Path(executable)
    if not executable.is_file():
        return []

    install_dir = executable.parent
    try:
        version_dirs = sorted(
            d for d in install_dir.iterdir()
            if d.is_dir() and VERSION_DIR_PATTERN.match(d.name)
        )
        for version_dir in version_dirs:
            world_dir = version_dir / "datafiles" / "studiolights" / "world"
            if world_dir.is_dir():
                files: list[Path] = []
                for suffix in STUDIO_LIGHT_SUFFIXES:
                    files.extend(sorted(world_dir.glob(f"*{suffix}")))
                return files
    except OSError as e:
        logger.warning(f"Could not scan studio lights under {install_dir}: {e}")
    return []
