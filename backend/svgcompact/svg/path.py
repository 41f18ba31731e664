"""Path objects and the path-data (``d`` attribute) interpreter.

Uppercase commands are absolute, lowercase relative to the current point:

- M/m (x y)+          move to; extra pairs are implicit L/l
- Z/z                 close the subpath, back to its start point
- L/l (x y)+          line to
- H/h x+, V/v y+      horizontal / vertical line
- C/c (x1 y1 x2 y2 x y)+   cubic bezier
- S/s (x2 y2 x y)+    smooth cubic; first control point reflects the last one
- Q/q (x1 y1 x y)+    quadratic bezier
- T/t (x y)+          smooth quadratic
- A/a (rx ry rot large sweep x y)+  elliptical arc
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple, Union

import numpy as np
import svgpathtools
from numpy.typing import NDArray

from svgcompact.errors import NumberTokenError
from svgcompact.svg.arc import arc_cubics, draw_arc
from svgcompact.svg.tokenizer import PathTokenizer
from svgcompact.svg.transform import AffineMatrix
from svgcompact.utils.geometry import sample_cubic, sample_quad

if TYPE_CHECKING:
    from svgcompact.engine.context import ParseContext

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]

# Sub-pixel closeness for "arc starts where the path already is".
_JOIN_EPSILON = 1e-6

_COMMANDS = frozenset("MmZzLlHhVvCcSsQqTtAa")
_REPEATABLE = frozenset("lhvcsqta")
_NUMBER_START = frozenset("0123456789.+-")


class MoveTo(NamedTuple):
    x: float
    y: float


class LineTo(NamedTuple):
    x: float
    y: float


class QuadTo(NamedTuple):
    x1: float
    y1: float
    x: float
    y: float


class CubicTo(NamedTuple):
    x1: float
    y1: float
    x2: float
    y2: float
    x: float
    y: float


class Close(NamedTuple):
    pass


Segment = Union[MoveTo, LineTo, QuadTo, CubicTo, Close]


class PathObject:
    """Ordered drawing segments plus the current-point cursor."""

    def __init__(self) -> None:
        self.segments: list[Segment] = []
        self._start = (0.0, 0.0)
        self._current = (0.0, 0.0)

    def __len__(self) -> int:
        return len(self.segments)

    def __repr__(self) -> str:
        return f"PathObject({len(self.segments)} segments)"

    @property
    def current_point(self) -> tuple[float, float]:
        return self._current

    @property
    def is_empty(self) -> bool:
        return not self.segments

    def move_to(self, x: float, y: float) -> None:
        self.segments.append(MoveTo(x, y))
        self._start = self._current = (x, y)

    def line_to(self, x: float, y: float) -> None:
        self.segments.append(LineTo(x, y))
        self._current = (x, y)

    def quad_to(self, x1: float, y1: float, x: float, y: float) -> None:
        self.segments.append(QuadTo(x1, y1, x, y))
        self._current = (x, y)

    def cubic_to(self, x1: float, y1: float, x2: float, y2: float, x: float, y: float) -> None:
        self.segments.append(CubicTo(x1, y1, x2, y2, x, y))
        self._current = (x, y)

    def close(self) -> None:
        self.segments.append(Close())
        self._current = self._start

    def arc_to(
        self,
        rect: Rect,
        start: float,
        sweep: float,
        matrix: AffineMatrix | None = None,
    ) -> None:
        """Append an arc of the ellipse inscribed in ``rect``.

        When ``matrix`` is given the arc is built in that local frame and
        mapped back. A line joins the current point to the arc start if they
        differ.
        """
        cubics = arc_cubics(rect, start, sweep)
        if matrix is not None:
            cubics = [
                tuple(float(v) for v in matrix.map_points(np.array(c).reshape(4, 2)).ravel())  # type: ignore[misc]
                for c in cubics
            ]
        x0, y0 = cubics[0][0], cubics[0][1]
        if not self.segments:
            self.move_to(x0, y0)
        elif abs(x0 - self._current[0]) > _JOIN_EPSILON or abs(y0 - self._current[1]) > _JOIN_EPSILON:
            self.line_to(x0, y0)
        for _, _, x1, y1, x2, y2, x3, y3 in cubics:
            self.cubic_to(x1, y1, x2, y2, x3, y3)

    def transformed(self, matrix: AffineMatrix) -> PathObject:
        out = PathObject()
        for seg in self.segments:
            if isinstance(seg, Close):
                out.close()
                continue
            pts = [float(v) for v in matrix.map_points(np.array(seg).reshape(-1, 2)).ravel()]
            if isinstance(seg, MoveTo):
                out.move_to(*pts)
            elif isinstance(seg, LineTo):
                out.line_to(*pts)
            elif isinstance(seg, QuadTo):
                out.quad_to(*pts)
            else:
                out.cubic_to(*pts)
        return out

    def to_svgpathtools(self) -> list[svgpathtools.Path]:
        """One ``svgpathtools.Path`` per subpath, closing segments made explicit."""
        paths: list[svgpathtools.Path] = []
        current: list = []
        start = cursor = 0j
        for seg in self.segments:
            if isinstance(seg, MoveTo):
                if current:
                    paths.append(svgpathtools.Path(*current))
                    current = []
                start = cursor = complex(seg.x, seg.y)
            elif isinstance(seg, Close):
                if cursor != start:
                    current.append(svgpathtools.Line(cursor, start))
                if current:
                    paths.append(svgpathtools.Path(*current))
                    current = []
                cursor = start
            elif isinstance(seg, LineTo):
                end = complex(seg.x, seg.y)
                current.append(svgpathtools.Line(cursor, end))
                cursor = end
            elif isinstance(seg, QuadTo):
                end = complex(seg.x, seg.y)
                current.append(svgpathtools.QuadraticBezier(cursor, complex(seg.x1, seg.y1), end))
                cursor = end
            else:
                end = complex(seg.x, seg.y)
                current.append(
                    svgpathtools.CubicBezier(cursor, complex(seg.x1, seg.y1), complex(seg.x2, seg.y2), end)
                )
                cursor = end
        if current:
            paths.append(svgpathtools.Path(*current))
        return paths

    def bounds(self) -> Rect | None:
        """Exact ``(left, top, right, bottom)`` of the geometry, None if empty."""
        xs: list[float] = []
        ys: list[float] = []
        for seg in self.segments:
            if isinstance(seg, MoveTo):
                xs.append(seg.x)
                ys.append(seg.y)
        for sub in self.to_svgpathtools():
            for seg in sub:
                xmin, xmax, ymin, ymax = seg.bbox()
                xs.extend((xmin, xmax))
                ys.extend((ymin, ymax))
        if not xs:
            return None
        return (float(min(xs)), float(min(ys)), float(max(xs)), float(max(ys)))

    def polylines(self, samples: int = 16) -> list[tuple[NDArray[np.float64], bool]]:
        """Flatten to ``(points, closed)`` polylines, curves sampled ``samples`` times."""
        result: list[tuple[NDArray[np.float64], bool]] = []
        current: list[NDArray[np.float64]] = []
        start = cursor = np.zeros(2)

        def flush(closed: bool) -> None:
            if current:
                result.append((np.vstack(current), closed))
                current.clear()

        for seg in self.segments:
            if isinstance(seg, MoveTo):
                flush(False)
                start = cursor = np.array([seg.x, seg.y])
                current.append(cursor.reshape(1, 2))
            elif isinstance(seg, Close):
                flush(True)
                cursor = start
            else:
                if not current:
                    current.append(cursor.reshape(1, 2))
                end = np.array([seg.x, seg.y])
                if isinstance(seg, LineTo):
                    current.append(end.reshape(1, 2))
                elif isinstance(seg, QuadTo):
                    current.append(sample_quad(cursor, np.array([seg.x1, seg.y1]), end, samples)[1:])
                else:
                    current.append(
                        sample_cubic(cursor, np.array([seg.x1, seg.y1]), np.array([seg.x2, seg.y2]), end, samples)[1:]
                    )
                cursor = end
        flush(False)
        return result


def parse_path(d: str, ctx: ParseContext | None = None) -> PathObject:
    """Interpret SVG path data into a :class:`PathObject`.

    Interpretation stops at the first malformed number; everything built up
    to that point is kept.
    """
    tokens = PathTokenizer(d)
    tokens.skip_whitespace()
    path = PathObject()
    last_x = last_y = 0.0
    ctrl_x = ctrl_y = 0.0
    start_x = start_y = 0.0
    prev_cmd = ""

    while not tokens.at_end:
        ch = tokens.peek()
        if ch in _NUMBER_START:
            if prev_cmd in ("M", "m"):
                cmd = "L" if prev_cmd == "M" else "l"
            elif prev_cmd.lower() in _REPEATABLE:
                cmd = prev_cmd
            else:
                _diagnose(ctx, "Dropping number without a path command at offset %d in %r", tokens.pos, d)
                try:
                    tokens.next_float()
                except NumberTokenError:
                    tokens.skip_token()
                tokens.skip_whitespace()
                continue
        elif ch in _COMMANDS:
            tokens.advance()
            cmd = ch
        else:
            _diagnose(ctx, "Skipping unknown path command %r in %r", ch, d)
            tokens.advance()
            tokens.skip_whitespace()
            continue
        prev_cmd = cmd

        relative = cmd.islower()
        was_curve = False
        try:
            if cmd in ("Z", "z"):
                path.close()
                last_x, last_y = start_x, start_y
            elif cmd in ("M", "m"):
                x = tokens.next_float()
                y = tokens.next_float()
                if relative:
                    x += last_x
                    y += last_y
                path.move_to(x, y)
                start_x, start_y = last_x, last_y = x, y
            elif cmd in ("L", "l"):
                x = tokens.next_float()
                y = tokens.next_float()
                if relative:
                    x += last_x
                    y += last_y
                path.line_to(x, y)
                last_x, last_y = x, y
            elif cmd in ("H", "h"):
                x = tokens.next_float()
                if relative:
                    x += last_x
                path.line_to(x, last_y)
                last_x = x
            elif cmd in ("V", "v"):
                y = tokens.next_float()
                if relative:
                    y += last_y
                path.line_to(last_x, y)
                last_y = y
            elif cmd in ("C", "c"):
                x1, y1 = tokens.next_float(), tokens.next_float()
                x2, y2 = tokens.next_float(), tokens.next_float()
                x, y = tokens.next_float(), tokens.next_float()
                if relative:
                    x1, y1 = x1 + last_x, y1 + last_y
                    x2, y2 = x2 + last_x, y2 + last_y
                    x, y = x + last_x, y + last_y
                path.cubic_to(x1, y1, x2, y2, x, y)
                ctrl_x, ctrl_y = x2, y2
                last_x, last_y = x, y
                was_curve = True
            elif cmd in ("S", "s"):
                x2, y2 = tokens.next_float(), tokens.next_float()
                x, y = tokens.next_float(), tokens.next_float()
                if relative:
                    x2, y2 = x2 + last_x, y2 + last_y
                    x, y = x + last_x, y + last_y
                x1 = 2 * last_x - ctrl_x
                y1 = 2 * last_y - ctrl_y
                path.cubic_to(x1, y1, x2, y2, x, y)
                ctrl_x, ctrl_y = x2, y2
                last_x, last_y = x, y
                was_curve = True
            elif cmd in ("Q", "q"):
                x1, y1 = tokens.next_float(), tokens.next_float()
                x, y = tokens.next_float(), tokens.next_float()
                if relative:
                    x1, y1 = x1 + last_x, y1 + last_y
                    x, y = x + last_x, y + last_y
                path.quad_to(x1, y1, x, y)
                ctrl_x, ctrl_y = x1, y1
                last_x, last_y = x, y
                was_curve = True
            elif cmd in ("T", "t"):
                x, y = tokens.next_float(), tokens.next_float()
                if relative:
                    x, y = x + last_x, y + last_y
                x1 = 2 * last_x - ctrl_x
                y1 = 2 * last_y - ctrl_y
                path.quad_to(x1, y1, x, y)
                ctrl_x, ctrl_y = x1, y1
                last_x, last_y = x, y
                was_curve = True
            else:
                rx, ry = tokens.next_float(), tokens.next_float()
                theta = tokens.next_float()
                large_arc = tokens.next_flag()
                sweep = tokens.next_flag()
                x, y = tokens.next_float(), tokens.next_float()
                if relative:
                    x, y = x + last_x, y + last_y
                draw_arc(path, last_x, last_y, x, y, rx, ry, theta, large_arc, sweep)
                last_x, last_y = x, y
        except NumberTokenError as exc:
            _diagnose(ctx, "Ignoring trailing path data after %r command: %s", cmd, exc)
            break

        if not was_curve:
            ctrl_x, ctrl_y = last_x, last_y
        tokens.skip_separator()

    return path


def _diagnose(ctx: ParseContext | None, msg: str, *args: object) -> None:
    if ctx is not None:
        ctx.warn(msg, *args)
    else:
        logger.debug(msg, *args)
