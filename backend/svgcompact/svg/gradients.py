"""Gradient definitions, href inheritance and shader construction.

Gradients may link to siblings defined later in the same ``defs`` block, so
they are collected first and resolved in a second pass once ``defs`` closes.
Only then is each gradient's :class:`Shader` built.
"""

from __future__ import annotations

import abc
import dataclasses
import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from svgcompact.svg.colors import TRANSPARENT, argb
from svgcompact.svg.transform import AffineMatrix, parse_transform

if TYPE_CHECKING:
    from svgcompact.engine.context import ParseContext
    from svgcompact.svg.style import Properties

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]


class TileMode(str, enum.Enum):
    CLAMP = "clamp"
    MIRROR = "mirror"
    REPEAT = "repeat"

    @classmethod
    def from_spread_method(cls, value: str | None) -> TileMode:
        if value == "reflect":
            return cls.MIRROR
        if value == "repeat":
            return cls.REPEAT
        return cls.CLAMP


@dataclass(frozen=True)
class Shader(abc.ABC):
    """Immutable color ramp over a gradient geometry.

    ``colors`` are packed ``0xAARRGGBB``. ``local_matrix`` maps gradient
    space into the user space of the shape being painted.
    """

    offsets: tuple[float, ...]
    colors: tuple[int, ...]
    tile_mode: TileMode = TileMode.CLAMP
    local_matrix: AffineMatrix | None = None

    def with_local_matrix(self, matrix: AffineMatrix | None) -> Shader:
        return dataclasses.replace(self, local_matrix=matrix)

    @abc.abstractmethod
    def parameter(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Ramp position ``t`` for Nx2 points in gradient space."""

    def tile(self, t: NDArray[np.float64]) -> NDArray[np.float64]:
        if self.tile_mode is TileMode.REPEAT:
            return t - np.floor(t)
        if self.tile_mode is TileMode.MIRROR:
            period = np.mod(t, 2.0)
            return np.where(period > 1.0, 2.0 - period, period)
        return np.clip(t, 0.0, 1.0)

    def colors_at(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Nx4 RGBA floats (0..255) for Nx2 points in user space."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if self.local_matrix is not None:
            pts = self.local_matrix.inverted().map_points(pts)
        t = self.tile(self.parameter(pts))
        out = np.zeros((len(pts), 4))
        if not self.colors:
            return out
        stops = np.array(self.colors, dtype=np.int64)
        channels = np.stack(
            [(stops >> 16) & 0xFF, (stops >> 8) & 0xFF, stops & 0xFF, (stops >> 24) & 0xFF], axis=1
        ).astype(np.float64)
        offsets = np.array(self.offsets, dtype=np.float64)
        for i in range(4):
            out[:, i] = np.interp(t, offsets, channels[:, i])
        return out


@dataclass(frozen=True)
class LinearShader(Shader):
    x1: float = 0.0
    y1: float = 0.0
    x2: float = 1.0
    y2: float = 0.0

    def parameter(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        dx = self.x2 - self.x1
        dy = self.y2 - self.y1
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            return np.zeros(len(points))
        return ((points[:, 0] - self.x1) * dx + (points[:, 1] - self.y1) * dy) / length_sq


@dataclass(frozen=True)
class RadialShader(Shader):
    cx: float = 0.5
    cy: float = 0.5
    r: float = 0.5

    def parameter(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        if self.r <= 0:
            return np.ones(len(points))
        return np.hypot(points[:, 0] - self.cx, points[:, 1] - self.cy) / self.r


@dataclass
class Gradient:
    id: str | None
    linear: bool
    x1: float = 0.0
    y1: float = 0.0
    x2: float = 1.0
    y2: float = 0.0
    cx: float = 0.5
    cy: float = 0.5
    r: float = 0.5
    offsets: list[float] = field(default_factory=list)
    colors: list[int] = field(default_factory=list)
    href: str | None = None
    matrix: AffineMatrix | None = None
    bounding_box: bool = True
    tile_mode: TileMode = TileMode.CLAMP
    shader: Shader | None = None
    resolved: bool = False

    def inherit(self, parent: Gradient) -> None:
        """Take the parent's stops and compose its matrix before ours."""
        self.href = parent.id
        self.offsets = parent.offsets
        self.colors = parent.colors
        if parent.matrix is not None:
            self.matrix = parent.matrix if self.matrix is None else parent.matrix.concat(self.matrix)

    def build_shader(self) -> Shader:
        common = dict(offsets=tuple(self.offsets), colors=tuple(self.colors), tile_mode=self.tile_mode)
        if self.linear:
            return LinearShader(x1=self.x1, y1=self.y1, x2=self.x2, y2=self.y2, **common)
        return RadialShader(cx=self.cx, cy=self.cy, r=self.r, **common)


def read_gradient(props: Properties, linear: bool, ctx: ParseContext) -> Gradient:
    """Build a Gradient record from a ``linearGradient``/``radialGradient`` tag."""
    gradient = Gradient(id=props.attrs.get("id"), linear=linear)
    if linear:
        gradient.x1 = props.get_length("x1", ctx, 0.0)
        gradient.y1 = props.get_length("y1", ctx, 0.0)
        gradient.x2 = props.get_length("x2", ctx, 1.0)
        gradient.y2 = props.get_length("y2", ctx, 0.0)
    else:
        gradient.cx = props.get_length("cx", ctx, 0.5)
        gradient.cy = props.get_length("cy", ctx, 0.5)
        gradient.r = props.get_length("r", ctx, 0.5)
    transform = props.attrs.get("gradientTransform")
    if transform is not None:
        gradient.matrix = parse_transform(transform, ctx)
    gradient.tile_mode = TileMode.from_spread_method(props.attrs.get("spreadMethod"))
    gradient.bounding_box = props.attrs.get("gradientUnits", "objectBoundingBox") != "userSpaceOnUse"
    href = props.attrs.get("href")
    if href is not None:
        gradient.href = href[1:] if href.startswith("#") else href
    return gradient


class GradientRegistry:
    """Gradients by id, plus the one currently collecting ``stop`` children."""

    def __init__(self, ctx: ParseContext) -> None:
        self.ctx = ctx
        self._gradients: dict[str, Gradient] = {}
        self.current: Gradient | None = None

    def __len__(self) -> int:
        return len(self._gradients)

    def __contains__(self, gradient_id: str) -> bool:
        return gradient_id in self._gradients

    def begin(self, gradient: Gradient) -> None:
        self.current = gradient

    def add_stop(self, props: Properties) -> None:
        if self.current is None:
            self.ctx.warn("Ignoring <stop> outside of a gradient")
            return
        offset = props.get_float("offset", 0.0)
        color = props.get_color("stop-color")
        opacity = props.get_float("stop-opacity", 1.0)
        self.current.offsets.append(offset)
        if color is None:
            self.current.colors.append(TRANSPARENT)
            return
        alpha = max(0, min(255, round(255 * opacity)))
        self.current.colors.append(argb(alpha, self.ctx.map_color(color)))

    def end(self) -> None:
        gradient = self.current
        self.current = None
        if gradient is None:
            return
        if gradient.id is None:
            self.ctx.info("Dropping gradient without an id")
            return
        self._gradients[gradient.id] = gradient

    def get(self, gradient_id: str) -> Gradient | None:
        return self._gradients.get(gradient_id)

    def finish(self) -> None:
        """Resolve href inheritance and build shaders for every pending gradient."""
        for gradient in self._gradients.values():
            self._resolve(gradient, set())

    def _resolve(self, gradient: Gradient, visiting: set[str]) -> None:
        if gradient.resolved:
            return
        if gradient.id is not None:
            visiting.add(gradient.id)
        if gradient.href is not None:
            parent = self._gradients.get(gradient.href)
            if parent is None:
                self.ctx.warn("Gradient %r links to missing gradient %r", gradient.id, gradient.href)
            elif parent.id in visiting:
                self.ctx.warn("Gradient %r has a cyclic link to %r", gradient.id, gradient.href)
            else:
                self._resolve(parent, visiting)
                gradient.inherit(parent)
        if not gradient.colors:
            self.ctx.warn("Failed to parse gradient for id %r", gradient.id)
        gradient.shader = gradient.build_shader()
        gradient.resolved = True

    def shader_for(self, gradient: Gradient, bbox: Rect | None) -> Shader | None:
        """The gradient's shader fitted to a shape's bounding box."""
        shader = gradient.shader
        if shader is None or bbox is None:
            return shader
        matrix = gradient.matrix
        if gradient.bounding_box:
            left, top, right, bottom = bbox
            box = AffineMatrix.translation(left, top).concat(AffineMatrix.scaling(right - left, bottom - top))
            matrix = box if matrix is None else box.concat(matrix)
        return shader.with_local_matrix(matrix)
