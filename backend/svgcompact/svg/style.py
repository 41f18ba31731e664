"""Paint resolution: ``style`` properties, fill/stroke paints and inheritance."""

from __future__ import annotations

import copy
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from svgcompact.svg.colors import BLACK, TRANSPARENT, parse_color
from svgcompact.svg.tokenizer import parse_numbers
from svgcompact.svg.units import parse_length

if TYPE_CHECKING:
    from svgcompact.engine.context import ParseContext
    from svgcompact.svg.gradients import Gradient, GradientRegistry, Shader

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]


def parse_style(style: str) -> dict[str, str]:
    """Split ``"fill:red; stroke : blue"`` into a property map."""
    styles: dict[str, str] = {}
    for declaration in style.split(";"):
        name, sep, value = declaration.partition(":")
        if sep and name.strip():
            styles[name.strip()] = value.strip()
    return styles


def gradient_ref(value: str) -> str | None:
    """``"url(#id)"`` → ``"id"``; None for anything else."""
    value = value.strip()
    if value.startswith("url(#") and value.endswith(")"):
        return value[5:-1].strip()
    return None


class Properties:
    """Attribute view that prefers ``style`` entries over XML attributes."""

    def __init__(self, attrs: dict[str, str]) -> None:
        self.attrs = attrs
        style = attrs.get("style")
        self.styles = parse_style(style) if style else {}

    def get(self, name: str, default: str | None = None) -> str | None:
        value = self.styles.get(name)
        if value is None:
            value = self.attrs.get(name)
        return default if value is None else value

    def has(self, name: str) -> bool:
        return name in self.styles or name in self.attrs

    def get_float(self, name: str, default: float | None = None) -> float | None:
        value = self.get(name)
        if value is None:
            return default
        value = value.strip()
        try:
            if value.endswith("%"):
                return float(value[:-1]) / 100
            return float(value)
        except ValueError:
            return default

    def get_color(self, name: str) -> int | None:
        return parse_color(self.get(name))

    def get_length(self, name: str, ctx: ParseContext, default: float | None = None) -> float | None:
        return parse_length(self.get(name), ctx, default)


class PaintMode(str, enum.Enum):
    FILL = "fill"
    STROKE = "stroke"


@dataclass
class PaintStyle:
    """One resolved paint (fill or stroke) at the current nesting level."""

    mode: PaintMode
    color: int = BLACK
    alpha: int = 255
    shader: Shader | None = None
    # Source of ``shader``; kept so inherited gradients re-fit to each shape
    gradient: Gradient | None = None
    stroke_width: float = 1.0
    dash: tuple[float, ...] | None = None
    cap: str = "butt"
    join: str = "miter"

    @property
    def is_visible(self) -> bool:
        return self.shader is not None or self.alpha > 0

    @property
    def argb(self) -> int:
        return (self.alpha << 24) | (self.color & 0xFFFFFF)

    def copy(self) -> PaintStyle:
        return copy.copy(self)

    def set_transparent(self) -> None:
        self.shader = None
        self.gradient = None
        self.color = TRANSPARENT
        self.alpha = 0


class StyleResolver:
    """Resolves fill and stroke paints for one element at a time.

    Holds the current paints and their "explicitly set" flags; the document
    driver saves and restores them around groups.
    """

    def __init__(self, ctx: ParseContext, gradients: GradientRegistry) -> None:
        self.ctx = ctx
        self.gradients = gradients
        self.fill = PaintStyle(PaintMode.FILL)
        self.stroke = PaintStyle(PaintMode.STROKE)
        self.stroke.set_transparent()
        self.fill_set = False
        self.stroke_set = False

    def resolve_fill(self, props: Properties, bbox: Rect | None, include_opacity: bool = True) -> bool:
        """Update the fill paint for an element; returns whether to draw it."""
        if props.get("display") == "none":
            return False
        value = props.get("fill")
        paint = self.fill
        if value is None:
            if self.fill_set:
                self._refit_gradient(paint, bbox)
                self._fade(paint, props, include_opacity)
                return paint.is_visible
            paint.shader = None
            paint.gradient = None
            paint.color = BLACK
            paint.alpha = self._alpha(props, paint.mode, include_opacity)
            return True
        return self._resolve(paint, props, value, bbox, include_opacity)

    def resolve_stroke(self, props: Properties, bbox: Rect | None, include_opacity: bool = True) -> bool:
        """Update the stroke paint for an element; returns whether to draw it."""
        if props.get("display") == "none":
            return False
        value = props.get("stroke")
        paint = self.stroke
        if value is None:
            if self.stroke_set:
                self._refit_gradient(paint, bbox)
                self._fade(paint, props, include_opacity)
                return paint.is_visible
            paint.set_transparent()
            return False
        if value.strip().lower() != "none":
            self._apply_stroke_attributes(paint, props)
        return self._resolve(paint, props, value, bbox, include_opacity)

    def snapshot(self) -> tuple[PaintStyle, PaintStyle]:
        return self.fill.copy(), self.stroke.copy()

    def restore(self, snapshot: tuple[PaintStyle, PaintStyle]) -> None:
        """Drop element-level paint changes so they do not leak to siblings."""
        self.fill, self.stroke = snapshot

    def mark_group(self, props: Properties) -> None:
        """Record that the current group explicitly sets its paints."""
        self.fill_set |= props.has("fill")
        self.stroke_set |= props.has("stroke")

    def _resolve(
        self,
        paint: PaintStyle,
        props: Properties,
        value: str,
        bbox: Rect | None,
        include_opacity: bool,
    ) -> bool:
        ref = gradient_ref(value)
        if ref is not None:
            gradient = self.gradients.get(ref)
            if gradient is not None and gradient.shader is not None:
                paint.gradient = gradient
                paint.shader = self.gradients.shader_for(gradient, bbox)
                paint.alpha = self._alpha(props, paint.mode, include_opacity)
                return True
            self.ctx.warn("Gradient %r not found, using black", ref)
            self.apply_color(paint, props, BLACK, include_opacity)
            return True
        if value.strip().lower() == "none":
            paint.set_transparent()
            return False
        color = parse_color(value)
        if color is None:
            self.ctx.warn("Unrecognized %s color %r, using black", paint.mode.value, value)
            color = BLACK
        else:
            color = self.ctx.map_color(color)
        self.apply_color(paint, props, color, include_opacity)
        return True

    def apply_color(self, paint: PaintStyle, props: Properties, color: int, include_opacity: bool = True) -> None:
        paint.shader = None
        paint.gradient = None
        paint.color = color & 0xFFFFFF
        paint.alpha = self._alpha(props, paint.mode, include_opacity)

    @staticmethod
    def _opacity(props: Properties, mode: PaintMode, include_opacity: bool) -> float | None:
        """Product of ``opacity`` and ``fill-opacity``/``stroke-opacity``; None when neither is set."""
        opacity = props.get_float("opacity") if include_opacity else None
        own = props.get_float(f"{mode.value}-opacity")
        if opacity is None:
            return own
        if own is not None:
            opacity *= own
        return opacity

    def _alpha(self, props: Properties, mode: PaintMode, include_opacity: bool) -> int:
        opacity = self._opacity(props, mode, include_opacity)
        if opacity is None:
            return 255
        return max(0, min(255, int(255 * opacity)))

    def _fade(self, paint: PaintStyle, props: Properties, include_opacity: bool) -> None:
        """Scale an inherited paint's alpha by the element's own opacity."""
        opacity = self._opacity(props, paint.mode, include_opacity)
        if opacity is not None:
            paint.alpha = max(0, min(255, int(paint.alpha * opacity)))

    def _apply_stroke_attributes(self, paint: PaintStyle, props: Properties) -> None:
        width = props.get_length("stroke-width", self.ctx)
        if width is not None:
            paint.stroke_width = width
        dash = props.get("stroke-dasharray")
        if dash is not None and dash.strip().lower() != "none":
            intervals = parse_numbers(dash, self.ctx)
            paint.dash = tuple(intervals) if intervals else None
        cap = props.get("stroke-linecap")
        if cap in ("butt", "round", "square"):
            paint.cap = cap
        join = props.get("stroke-linejoin")
        if join in ("miter", "round", "bevel"):
            paint.join = join

    def _refit_gradient(self, paint: PaintStyle, bbox: Rect | None) -> None:
        if paint.gradient is not None and bbox is not None:
            paint.shader = self.gradients.shader_for(paint.gradient, bbox)
