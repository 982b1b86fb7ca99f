"""Accent color stylesheet generated from site settings."""

import logging
import re
from typing import Optional, Tuple

logger = logging.getLogger('portfolio_export.renderers.theme')

HEX_COLOR_PATTERN = re.compile(r'^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')


def parse_hex_color(value: str) -> Optional[Tuple[int, int, int]]:
    """Parse ``#rgb`` or ``#rrggbb`` into an RGB tuple; None if malformed."""
    match = HEX_COLOR_PATTERN.match(value.strip()) if value else None
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = ''.join(ch * 2 for ch in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def _to_hex(rgb: Tuple[int, int, int]) -> str:
    return '#' + ''.join(f"{max(0, min(255, channel)):02x}" for channel in rgb)


def _shade(rgb: Tuple[int, int, int], factor: float) -> Tuple[int, int, int]:
    """Darken (factor < 1) or lighten (factor > 1) towards black or white."""
    if factor < 1:
        return tuple(int(round(channel * factor)) for channel in rgb)
    return tuple(int(round(channel + (255 - channel) * (factor - 1))) for channel in rgb)


def accent_css(color: Optional[str]) -> Optional[str]:
    """
    CSS custom properties for the accent color.

    Args:
        color: Hex color from settings

    Returns:
        Stylesheet text, or None when no valid color is configured
    """
    if not color:
        return None

    rgb = parse_hex_color(color)
    if rgb is None:
        logger.warning(f"Ignoring invalid accent color '{color}'")
        return None

    r, g, b = rgb
    return (
        f":root{{--color-accent:{_to_hex(rgb)};"
        f"--color-accent-hover:{_to_hex(_shade(rgb, 0.85))};"
        f"--color-accent-subtle:rgba({r},{g},{b},0.1)}}"
        f".dark{{--color-accent:{_to_hex(_shade(rgb, 1.15))};"
        f"--color-accent-hover:{_to_hex(rgb)};"
        f"--color-accent-subtle:rgba({r},{g},{b},0.15)}}"
    )
