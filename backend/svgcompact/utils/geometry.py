"""Leaf-node geometry helpers. No engine imports."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from svgcompact.svg.transform import AffineMatrix

Rect = tuple[float, float, float, float]


def rect_from_points(x1: float, y1: float, x2: float, y2: float) -> Rect:
    """Sorted rectangle spanning two corners."""
    return (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))


def sample_quad(
    p0: NDArray[np.float64],
    p1: NDArray[np.float64],
    p2: NDArray[np.float64],
    n: int = 16,
) -> NDArray[np.float64]:
    """(n+1)x2 points along a quadratic bezier, endpoints included."""
    t = np.linspace(0.0, 1.0, n + 1)[:, None]
    mt = 1.0 - t
    return mt**2 * p0 + 2 * mt * t * p1 + t**2 * p2


def sample_cubic(
    p0: NDArray[np.float64],
    p1: NDArray[np.float64],
    p2: NDArray[np.float64],
    p3: NDArray[np.float64],
    n: int = 16,
) -> NDArray[np.float64]:
    """(n+1)x2 points along a cubic bezier, endpoints included."""
    t = np.linspace(0.0, 1.0, n + 1)[:, None]
    mt = 1.0 - t
    return mt**3 * p0 + 3 * mt**2 * t * p1 + 3 * mt * t**2 * p2 + t**3 * p3


@dataclass
class BoundsRect:
    """Running bounds of everything drawn, in document coordinates.

    Starts inverted at (+inf, +inf, -inf, -inf) and only ever grows.
    """

    left: float = math.inf
    top: float = math.inf
    right: float = -math.inf
    bottom: float = -math.inf

    @property
    def is_empty(self) -> bool:
        return math.isinf(self.left)

    def add_point(self, x: float, y: float) -> None:
        if x < self.left:
            self.left = x
        if x > self.right:
            self.right = x
        if y < self.top:
            self.top = y
        if y > self.bottom:
            self.bottom = y

    def fold(self, rect: Rect, matrix: AffineMatrix, pad: float = 0.0) -> None:
        """Map ``rect`` through ``matrix`` and grow to cover it, padded by ``pad``."""
        left, top, right, bottom = matrix.map_rect(rect)
        self.add_point(left - pad, top - pad)
        self.add_point(right + pad, bottom + pad)

    def as_tuple(self) -> Rect | None:
        if self.is_empty:
            return None
        return (self.left, self.top, self.right, self.bottom)
