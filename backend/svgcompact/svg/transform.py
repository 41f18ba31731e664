"""Affine matrices and the ``transform`` attribute parser."""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from svgcompact.svg.tokenizer import parse_numbers

if TYPE_CHECKING:
    from svgcompact.engine.context import ParseContext

Rect = tuple[float, float, float, float]

_FUNCTION_RE = re.compile(r"([A-Za-z]+)\s*\(([^)]*)\)")


class AffineMatrix:
    """2×3 affine transform stored as a 3×3 array with an implicit (0, 0, 1) row.

    Instances are immutable: every operation returns a new matrix.
    ``a.concat(b)`` is ``a · b`` (``b`` is applied to points first).
    """

    __slots__ = ("_m",)

    def __init__(self, values: NDArray[np.float64] | None = None) -> None:
        self._m = np.identity(3) if values is None else np.asarray(values, dtype=np.float64)

    @classmethod
    def identity(cls) -> AffineMatrix:
        return cls()

    @classmethod
    def from_values(cls, a: float, b: float, c: float, d: float, e: float, f: float) -> AffineMatrix:
        """Build from SVG ``matrix(a, b, c, d, e, f)`` order."""
        return cls(np.array([[a, c, e], [b, d, f], [0.0, 0.0, 1.0]]))

    @classmethod
    def translation(cls, tx: float, ty: float = 0.0) -> AffineMatrix:
        return cls.from_values(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scaling(cls, sx: float, sy: float | None = None) -> AffineMatrix:
        return cls.from_values(sx, 0.0, 0.0, sx if sy is None else sy, 0.0, 0.0)

    @classmethod
    def rotation(cls, degrees: float, cx: float = 0.0, cy: float = 0.0) -> AffineMatrix:
        rad = math.radians(degrees)
        cos, sin = math.cos(rad), math.sin(rad)
        rotate = cls.from_values(cos, sin, -sin, cos, 0.0, 0.0)
        if cx == 0.0 and cy == 0.0:
            return rotate
        return cls.translation(cx, cy).concat(rotate).concat(cls.translation(-cx, -cy))

    @classmethod
    def skew(cls, x_degrees: float = 0.0, y_degrees: float = 0.0) -> AffineMatrix:
        kx = math.tan(math.radians(x_degrees))
        ky = math.tan(math.radians(y_degrees))
        return cls.from_values(1.0, ky, kx, 1.0, 0.0, 0.0)

    @property
    def values(self) -> tuple[float, float, float, float, float, float]:
        """``(a, b, c, d, e, f)`` in SVG matrix order."""
        m = self._m
        return (float(m[0, 0]), float(m[1, 0]), float(m[0, 1]), float(m[1, 1]), float(m[0, 2]), float(m[1, 2]))

    @property
    def array(self) -> NDArray[np.float64]:
        return self._m.copy()

    @property
    def is_identity(self) -> bool:
        return bool(np.allclose(self._m, np.identity(3)))

    def concat(self, other: AffineMatrix) -> AffineMatrix:
        return AffineMatrix(self._m @ other._m)

    def inverted(self) -> AffineMatrix:
        return AffineMatrix(np.linalg.inv(self._m))

    def map_point(self, x: float, y: float) -> tuple[float, float]:
        m = self._m
        return (
            float(m[0, 0] * x + m[0, 1] * y + m[0, 2]),
            float(m[1, 0] * x + m[1, 1] * y + m[1, 2]),
        )

    def map_points(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Map an Nx2 array of points."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        return pts @ self._m[:2, :2].T + self._m[:2, 2]

    def map_rect(self, rect: Rect) -> Rect:
        """Axis-aligned bounds of the mapped rectangle ``(left, top, right, bottom)``."""
        left, top, right, bottom = rect
        corners = self.map_points(np.array([[left, top], [right, top], [right, bottom], [left, bottom]]))
        return (
            float(corners[:, 0].min()),
            float(corners[:, 1].min()),
            float(corners[:, 0].max()),
            float(corners[:, 1].max()),
        )

    def map_radius(self, radius: float) -> float:
        """Scale a length by the mean linear scale of the matrix."""
        return radius * math.sqrt(abs(float(np.linalg.det(self._m[:2, :2]))))

    def allclose(self, other: AffineMatrix, atol: float = 1e-9) -> bool:
        return bool(np.allclose(self._m, other._m, atol=atol))

    def __repr__(self) -> str:
        return "AffineMatrix(%s)" % ", ".join(f"{v:g}" for v in self.values)


def parse_transform(text: str, ctx: ParseContext | None = None) -> AffineMatrix | None:
    """Parse a ``transform`` attribute value.

    Functions apply in textual order, each post-multiplied into the running
    matrix; ``matrix(...)`` replaces it. Unknown functions are ignored.
    Returns None when no known function was found.
    """
    matrix: AffineMatrix | None = None
    for match in _FUNCTION_RE.finditer(text):
        name = match.group(1)
        args = parse_numbers(match.group(2), ctx)
        step = _transform_function(name, args)
        if step is None:
            if ctx is not None:
                ctx.info("Ignoring transform function %s(%s)", name, match.group(2))
            continue
        if name == "matrix":
            matrix = step
        else:
            matrix = step if matrix is None else matrix.concat(step)
    return matrix


def _transform_function(name: str, args: list[float]) -> AffineMatrix | None:
    if not args:
        return None
    if name == "matrix":
        if len(args) != 6:
            return None
        return AffineMatrix.from_values(*args)
    if name == "scale":
        return AffineMatrix.scaling(args[0], args[1] if len(args) > 1 else None)
    if name == "skewX":
        return AffineMatrix.skew(x_degrees=args[0])
    if name == "skewY":
        return AffineMatrix.skew(y_degrees=args[0])
    if name == "rotate":
        if len(args) > 2:
            return AffineMatrix.rotation(args[0], args[1], args[2])
        return AffineMatrix.rotation(args[0])
    if name == "translate":
        return AffineMatrix.translation(args[0], args[1] if len(args) > 1 else 0.0)
    return None
