"""Text runs: collected between a ``text``/``tspan`` start and end tag, drawn at close."""

from __future__ import annotations

import dataclasses
import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from svgcompact.errors import NumberTokenError
from svgcompact.svg.tokenizer import PathTokenizer

if TYPE_CHECKING:
    from svgcompact.engine.context import FontLookup, ParseContext
    from svgcompact.render.picture import Canvas
    from svgcompact.svg.style import PaintStyle, Properties, StyleResolver
    from svgcompact.svg.transform import AffineMatrix
    from svgcompact.utils.geometry import BoundsRect

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]

DEFAULT_FONT_SIZE = 16.0


class HAlign(str, enum.Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VAlign(str, enum.Enum):
    BASELINE = "baseline"
    MIDDLE = "middle"
    TOP = "top"


_TEXT_ALIGN = {"left": HAlign.LEFT, "center": HAlign.CENTER, "right": HAlign.RIGHT}
_TEXT_ANCHOR = {"start": HAlign.LEFT, "middle": HAlign.CENTER, "end": HAlign.RIGHT}
_BASELINE = {"baseline": VAlign.BASELINE, "middle": VAlign.MIDDLE, "top": VAlign.TOP}


@dataclass(frozen=True)
class FontSpec:
    size: float = DEFAULT_FONT_SIZE
    family: str | None = None
    italic: bool = False
    bold: bool = False
    # Font file resolved for ``family``; None draws with the default font
    path: str | None = None


def first_family(value: str) -> str:
    """``"'Open Sans', Arial"`` → ``"Open Sans"``."""
    return value.split(",")[0].strip().strip("'\"")


def asset_font_lookup(root: str | Path) -> FontLookup:
    """Look fonts up as ``<root>/fonts/<family>.ttf``."""
    fonts_dir = Path(root) / "fonts"

    def lookup(family: str) -> str | None:
        candidate = fonts_dir / f"{family}.ttf"
        return str(candidate) if candidate.is_file() else None

    return lookup


def read_font(props: Properties, base: FontSpec, ctx: ParseContext) -> FontSpec:
    """Apply ``font-*`` properties on top of an inherited font."""
    font = base
    size = props.get_length("font-size", ctx)
    if size is not None:
        font = dataclasses.replace(font, size=size)
    style = props.get("font-style")
    if style is not None:
        font = dataclasses.replace(font, italic=style == "italic")
    weight = props.get("font-weight")
    if weight is not None:
        font = dataclasses.replace(font, bold=weight == "bold")
    family = props.get("font-family")
    if family is not None:
        family = first_family(family)
        font = dataclasses.replace(font, family=family, path=_resolve_font_file(family, ctx))
    return font


def _resolve_font_file(family: str, ctx: ParseContext) -> str | None:
    if ctx.font_lookup is None:
        ctx.error("Font %r can only be loaded when a font lookup is provided", family)
        return None
    path = ctx.font_lookup(family)
    if path is None:
        ctx.error("Font %r is missing from the font lookup", family)
    else:
        ctx.info("Loaded font %r from %s", family, path)
    return path


def _x_list(value: str) -> list[float]:
    """Leading parseable coordinates of an ``x="1 2 3"`` list."""
    tokens = PathTokenizer(value)
    coords: list[float] = []
    tokens.skip_separator()
    while not tokens.at_end:
        try:
            coords.append(tokens.next_float())
        except NumberTokenError:
            break
    return coords


class TextNode:
    """One ``text`` or ``tspan`` element, inheriting unset state from its parent."""

    def __init__(
        self,
        props: Properties,
        parent: TextNode | None,
        resolver: StyleResolver,
        ctx: ParseContext,
        hidden: bool = False,
    ) -> None:
        self.id = props.attrs.get("id")
        self.parent = parent
        self.hidden = hidden
        self.text: str | None = None
        self.x_offset = 0.0
        self.y_offset = 0.0
        self.bounds: Rect | None = None

        x_attr = props.attrs.get("x")
        parent_x = parent.x if parent is not None else 0.0
        if x_attr is not None and ("," in x_attr or " " in x_attr.strip()):
            self.x = parent_x
            self.x_coords: list[float] | None = _x_list(x_attr)
        else:
            self.x = props.get_length("x", ctx, parent_x)
            self.x_coords = parent.x_coords if parent is not None and x_attr is None else None
        self.y = props.get_length("y", ctx, parent.y if parent is not None else 0.0)

        base_font = parent.font if parent is not None else FontSpec()
        self.font = read_font(props, base_font, ctx)

        self.fill: PaintStyle | None = None
        self.stroke: PaintStyle | None = None
        if not hidden:
            if resolver.resolve_fill(props, None):
                self.fill = self._paint(props, "fill", resolver.fill, parent.fill if parent else None)
            if resolver.resolve_stroke(props, None):
                self.stroke = self._paint(props, "stroke", resolver.stroke, parent.stroke if parent else None)

        self.h_align = self._h_align(props, parent)
        self.v_align = self._v_align(props, parent)

    @staticmethod
    def _paint(props: Properties, name: str, current: PaintStyle, inherited: PaintStyle | None) -> PaintStyle:
        if inherited is not None and not props.has(name):
            return inherited.copy()
        return current.copy()

    @staticmethod
    def _h_align(props: Properties, parent: TextNode | None) -> HAlign:
        align = props.get("text-align")
        if align in _TEXT_ALIGN:
            return _TEXT_ALIGN[align]
        anchor = props.get("text-anchor")
        if anchor in _TEXT_ANCHOR:
            return _TEXT_ANCHOR[anchor]
        return parent.h_align if parent is not None else HAlign.LEFT

    @staticmethod
    def _v_align(props: Properties, parent: TextNode | None) -> VAlign:
        align = props.get("alignment-baseline")
        if align in _BASELINE:
            return _BASELINE[align]
        return parent.v_align if parent is not None else VAlign.BASELINE

    def append(self, chunk: str) -> None:
        self.text = chunk if self.text is None else self.text + chunk

    def render(self, canvas: Canvas, ctx: ParseContext, limits: BoundsRect, matrix: AffineMatrix) -> None:
        """Measure, align and draw the accumulated text; folds its box into ``limits``."""
        if self.hidden or not self.text or self.text.isspace():
            return
        self.text = ctx.substitute_text(self.text)
        metrics = canvas.measure_text(self.text, self.font)

        if self.v_align is VAlign.TOP:
            self.y_offset = metrics.height
        elif self.v_align is VAlign.MIDDLE:
            self.y_offset = -metrics.center_y
        if self.h_align is HAlign.CENTER:
            self.x_offset = -metrics.width / 2
        elif self.h_align is HAlign.RIGHT:
            self.x_offset = -metrics.width

        coords = self.x_coords
        if coords:
            # Each glyph sits at its own coordinate; the last one carries the tail run
            count = min(len(coords), len(self.text))
            runs = [self.text[i] for i in range(count - 1)] + [self.text[count - 1:]]
            left = min(coords[:count]) + self.x_offset
            right = max(x + canvas.measure_text(run, self.font).width for x, run in zip(coords, runs))
            right += self.x_offset
        else:
            left = self.x + self.x_offset
            right = left + metrics.width
        baseline = self.y + self.y_offset
        self.bounds = (left, baseline + metrics.bounds[1], right, baseline + metrics.bounds[3])

        for paint in (self.fill, self.stroke):
            if paint is None:
                continue
            node = self
            if ctx.listener is not None:
                node = ctx.listener.before_draw(self.id, self, self.bounds, paint)
                if node is None:
                    continue
            node._draw(canvas, paint)
            if ctx.listener is not None:
                ctx.listener.after_draw(self.id, node, paint)
            pad = paint.stroke_width / 2 if paint is self.stroke else 0.0
            limits.fold(node.bounds or self.bounds, matrix, pad)

    def _draw(self, canvas: Canvas, paint: PaintStyle) -> None:
        text = self.text or ""
        y = self.y + self.y_offset
        coords = self.x_coords
        if coords and text:
            count = min(len(coords), len(text))
            for i in range(count - 1):
                canvas.draw_text(text[i], coords[i] + self.x_offset, y, paint, self.font)
            canvas.draw_text(text[count - 1:], coords[count - 1] + self.x_offset, y, paint, self.font)
        else:
            canvas.draw_text(text, self.x + self.x_offset, y, paint, self.font)
