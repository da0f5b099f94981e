"""Hex colour parsing."""

from __future__ import annotations

import re

RGB = tuple[float, float, float]

HEX_COLOR = re.compile(r"#([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})")


def parse_hex_color(value: str | None) -> RGB | None:
    """Parse ``#RRGGBB`` into normalized (0-1) RGB floats.

    Extra characters after the six hex digits (e.g. an alpha pair) are
    ignored.

    Args:
        value: Colour string such as "#333333"

    Returns:
        (r, g, b) tuple, or None when the string is not a hex colour.
        Callers skip the colour assignment on None and the engine keeps
        its default.
    """
    if not value:
        return None
    match = HEX_COLOR.match(value)
    if match is None:
        return None
    r, g, b = (int(pair, 16) for pair in match.groups())
    return (r / 255.0, g / 255.0, b / 255.0)
