"""Color value parsing: ``#rgb``, ``#rrggbb``, ``rgb(...)`` and named colors.

Colors are packed 24-bit ``0xRRGGBB`` ints; gradient stops carry an extra
alpha byte as ``0xAARRGGBB``.
"""

from __future__ import annotations

from PIL import ImageColor

BLACK = 0x000000
TRANSPARENT = 0x00000000


def rgb(r: int, g: int, b: int) -> int:
    return ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def argb(alpha: int, color: int) -> int:
    return ((alpha & 0xFF) << 24) | (color & 0xFFFFFF)


def alpha_of(color: int) -> int:
    return (color >> 24) & 0xFF


def rgb_tuple(color: int) -> tuple[int, int, int]:
    return ((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF)


def to_hex(color: int) -> str:
    return "#%06X" % (color & 0xFFFFFF)


def _channel(value: str) -> int:
    value = value.strip()
    if value.endswith("%"):
        channel = round(float(value[:-1]) / 100 * 255)
    else:
        channel = int(value)
    return max(0, min(255, channel))


def _expand_short_hex(value: int) -> int:
    """0xRGB → 0xRRGGBB."""
    return (
        (value & 0xF00) << 8 | (value & 0xF00) << 12
        | (value & 0xF0) << 4 | (value & 0xF0) << 8
        | (value & 0xF) << 4 | (value & 0xF)
    )


def parse_color(value: str | None) -> int | None:
    """Packed ``0xRRGGBB`` for a CSS color value, None if unrecognized."""
    if value is None:
        return None
    value = value.strip()
    if value.startswith("#"):
        try:
            color = int(value[1:], 16)
        except ValueError:
            return None
        if len(value) == 4:
            return _expand_short_hex(color)
        if len(value) == 7:
            return color
        return None
    if value.startswith("rgb(") and value.endswith(")"):
        channels = value[4:-1].split(",")
        if len(channels) != 3:
            return None
        try:
            return rgb(*(_channel(c) for c in channels))
        except ValueError:
            return None
    name = value.lower()
    if name in ImageColor.colormap:
        r, g, b = ImageColor.getrgb(name)[:3]
        return rgb(r, g, b)
    return None
