"""Elliptical arc (endpoint parameterization) → cubic bezier conversion.

Follows the endpoint-to-center conversion from the SVG implementation notes
(https://www.w3.org/TR/SVG/implnote.html#ArcImplementationNotes).
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from svgcompact.svg.transform import AffineMatrix

if TYPE_CHECKING:
    from svgcompact.svg.path import PathObject

Rect = tuple[float, float, float, float]
Cubic = tuple[float, float, float, float, float, float, float, float]

# Radii feasibility check is padded by 0.1% so float rounding never leaves
# the ellipse slightly too small to reach both endpoints.
_RADIUS_TOLERANCE = 1.001

# Largest sweep covered by one cubic segment, in degrees.
_MAX_SEGMENT_SWEEP = 90.0


def _angle(ux: float, uy: float, vx: float, vy: float) -> float:
    """Signed angle from vector u to vector v in degrees, in (-360, 360)."""
    return math.fmod(math.degrees(math.atan2(vy, vx) - math.atan2(uy, ux)), 360.0)


def draw_arc(
    path: PathObject,
    x0: float,
    y0: float,
    x: float,
    y: float,
    rx: float,
    ry: float,
    theta: float,
    large_arc: int,
    sweep: int,
) -> None:
    """Append the arc from ``(x0, y0)`` to ``(x, y)`` to ``path``."""
    if rx == 0 or ry == 0:
        path.line_to(x, y)
        return
    if x == x0 and y == y0:
        return

    rx = abs(rx)
    ry = abs(ry)

    rad = math.radians(theta)
    st = math.sin(rad)
    ct = math.cos(rad)

    # Half chord, rotated into the ellipse's local frame
    xc = (x0 - x) / 2
    yc = (y0 - y) / 2
    x1t = ct * xc + st * yc
    y1t = -st * xc + ct * yc

    x1ts = x1t * x1t
    y1ts = y1t * y1t
    rxs = rx * rx
    rys = ry * ry

    scale = (x1ts / rxs + y1ts / rys) * _RADIUS_TOLERANCE
    if scale > 1:
        root = math.sqrt(scale)
        rx *= root
        ry *= root
        rxs = rx * rx
        rys = ry * ry

    sign = -1.0 if large_arc == sweep else 1.0
    numerator = max(0.0, rxs * rys - rxs * y1ts - rys * x1ts)
    denominator = rxs * y1ts + rys * x1ts
    coef = sign * math.sqrt(numerator / denominator) if denominator else 0.0
    cxt = coef * rx * y1t / ry
    cyt = -coef * ry * x1t / rx
    cx = ct * cxt - st * cyt + (x0 + x) / 2
    cy = st * cxt + ct * cyt + (y0 + y) / 2

    ux = (x1t - cxt) / rx
    uy = (y1t - cyt) / ry
    vx = (-x1t - cxt) / rx
    vy = (-y1t - cyt) / ry
    start = _angle(1.0, 0.0, ux, uy)
    delta = _angle(ux, uy, vx, vy)

    if sweep == 0 and delta > 0:
        delta -= 360
    elif sweep != 0 and delta < 0:
        delta += 360

    if math.fmod(theta, 360.0) == 0:
        path.arc_to((cx - rx, cy - ry, cx + rx, cy + ry), start, delta)
    else:
        frame = AffineMatrix.translation(cx, cy).concat(AffineMatrix.rotation(theta))
        path.arc_to((-rx, -ry, rx, ry), start, delta, frame)


def arc_cubics(rect: Rect, start: float, sweep: float) -> list[Cubic]:
    """Cubic segments tracing the ellipse inscribed in ``rect``.

    Angles are in degrees, measured clockwise in y-down coordinates. Each
    tuple is ``(x0, y0, x1, y1, x2, y2, x3, y3)``.
    """
    left, top, right, bottom = rect
    cx = (left + right) / 2
    cy = (top + bottom) / 2
    rx = (right - left) / 2
    ry = (bottom - top) / 2

    count = max(1, math.ceil(abs(sweep) / _MAX_SEGMENT_SWEEP - 1e-9))
    step = math.radians(sweep) / count
    k = 4.0 / 3.0 * math.tan(step / 4)

    cubics: list[Cubic] = []
    a0 = math.radians(start)
    for _ in range(count):
        a1 = a0 + step
        cos0, sin0 = math.cos(a0), math.sin(a0)
        cos1, sin1 = math.cos(a1), math.sin(a1)
        cubics.append((
            cx + rx * cos0,
            cy + ry * sin0,
            cx + rx * (cos0 - k * sin0),
            cy + ry * (sin0 + k * cos0),
            cx + rx * (cos1 + k * sin1),
            cy + ry * (sin1 - k * cos1),
            cx + rx * cos1,
            cy + ry * sin1,
        ))
        a0 = a1
    return cubics
