#!/usr/bin/env python3
"""Color Resolver - Parses #RRGGBB / #RRGGBBAA strings into RGBA tuples."""

import logging
import re
from enum import Enum
from typing import Optional, Tuple

from ..errors import InvalidColor

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

NEUTRAL_GRAY: RGBA = (128, 128, 128, 255)

_HEX_COLOR = re.compile(r'^#([0-9a-fA-F]{6})([0-9a-fA-F]{2})?$')


class AlphaPolicy(Enum):
    """Alpha used when the color string carries no alpha byte"""
    OPAQUE = 255
    ZONE = 77    # 30% of 255, rounded half up


def parse_hex_color(value: str, policy: AlphaPolicy = AlphaPolicy.OPAQUE) -> RGBA:
    """
    Parse a hex color string.

    Args:
        value: '#RRGGBB' or '#RRGGBBAA', case-insensitive
        policy: Default alpha when the string has no alpha byte

    Returns:
        (r, g, b, a) with each channel in 0-255

    Raises:
        InvalidColor: on non-string, non-hex or wrong-length input
    """
    if not isinstance(value, str):
        raise InvalidColor(value)

    match = _HEX_COLOR.match(value.strip())
    if not match:
        raise InvalidColor(value)

    rgb, alpha = match.groups()
    r, g, b = (int(rgb[i:i + 2], 16) for i in (0, 2, 4))
    a = int(alpha, 16) if alpha else policy.value
    return r, g, b, a


def resolve_color(value: Optional[str],
                  policy: AlphaPolicy = AlphaPolicy.OPAQUE,
                  default: RGBA = NEUTRAL_GRAY) -> RGBA:
    """Rendering-time variant of parse_hex_color: falls back to default instead of failing."""
    if value is None:
        return default
    try:
        return parse_hex_color(value, policy)
    except InvalidColor:
        logger.warning(f"⚠️  Unparseable color {value!r}, using {default}")
        return default


def to_mpl(color: RGBA) -> Tuple[float, float, float, float]:
    """Convert a 0-255 RGBA tuple to matplotlib's 0-1 floats."""
    return tuple(channel / 255.0 for channel in color)
