"""Document driver — turns markup events into canvas calls.

An instance is the *target* of an ``xml.etree.ElementTree.XMLParser``: the
parser calls ``start``/``end``/``data`` in document order and ``close`` at
the end, and no element tree is ever built. All state lives on explicit
stacks that are pushed and popped in lockstep with element boundaries:

  matrices / transform markers   one frame per element with a ``transform``
  fill / stroke paints + flags   one entry per ``g``
  groups                         one entry per ``g``
  texts                          one TextNode per ``text``/``tspan``
  ignore                         every tag inside ``metadata`` or a nested ``svg``

Inside a group with id ``bounds`` nothing is drawn; its ``rect`` replaces the
document bounds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from svgcompact.engine.context import ContextStack, ParseContext
from svgcompact.engine.visibility import VisibilityTracker
from svgcompact.errors import StructureError, SvgParseError
from svgcompact.render.drawable import SvgPicture
from svgcompact.render.picture import RecordingCanvas
from svgcompact.svg.gradients import GradientRegistry, read_gradient
from svgcompact.svg.path import PathObject, parse_path
from svgcompact.svg.style import PaintStyle, Properties, StyleResolver
from svgcompact.svg.text import TextNode
from svgcompact.svg.tokenizer import parse_numbers
from svgcompact.svg.transform import AffineMatrix, parse_transform
from svgcompact.svg.units import parse_length
from svgcompact.utils.geometry import BoundsRect, rect_from_points

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]

_SHAPES = frozenset({"rect", "line", "circle", "ellipse", "polygon", "polyline", "path"})


def local_name(name: str) -> str:
    """Strip an ElementTree ``{namespace}`` prefix."""
    if name.startswith("{"):
        return name.rpartition("}")[2]
    return name


@dataclass
class SvgGroup:
    """What the element listener sees for a ``g`` element."""

    id: str | None
    # Set when the element listener declined the group; its subtree is hidden
    skipped: bool = False


class SvgHandler:
    """ElementTree parser target that records one document into a picture."""

    def __init__(self, ctx: ParseContext, fallback_size: float = 100.0) -> None:
        self.ctx = ctx
        self.fallback_size = fallback_size
        self.gradients = GradientRegistry(ctx)
        self.style = StyleResolver(ctx, self.gradients)
        self.visibility = VisibilityTracker()

        self.canvas: RecordingCanvas | None = None
        self.bounds: Rect | None = None
        self.limits = BoundsRect()
        self.result: SvgPicture | None = None

        self.matrices: ContextStack[AffineMatrix] = ContextStack("matrix")
        self.matrices.push(AffineMatrix.identity())
        self.transform_markers: ContextStack[bool] = ContextStack("transform")
        self.fill_paints: ContextStack[PaintStyle] = ContextStack("fill paint")
        self.stroke_paints: ContextStack[PaintStyle] = ContextStack("stroke paint")
        self.fill_set_flags: ContextStack[bool] = ContextStack("fill-set")
        self.stroke_set_flags: ContextStack[bool] = ContextStack("stroke-set")
        self.groups: ContextStack[SvgGroup] = ContextStack("group")
        self.texts: ContextStack[TextNode] = ContextStack("text")
        self.ignore: ContextStack[str] = ContextStack("ignore")

        self.defs_depth = 0
        # Nesting depth inside the "bounds" layer group; 0 outside it
        self.bounds_depth = 0
        self.defs_paths: dict[str, str] = {}

        self._start_handlers: dict[str, Callable[[str | None, dict[str, str], Properties], None]] = {
            "defs": self._start_defs,
            "linearGradient": lambda i, a, p: self.gradients.begin(read_gradient(p, True, self.ctx)),
            "radialGradient": lambda i, a, p: self.gradients.begin(read_gradient(p, False, self.ctx)),
            "stop": lambda i, a, p: self.gradients.add_stop(p),
            "g": self._start_group,
            "text": self._start_text,
            "tspan": self._start_tspan,
            "clipPath": self._start_clip_path,
            "metadata": lambda i, a, p: self.ignore.push("metadata"),
            "rect": self._rect,
            "line": self._line,
            "circle": self._circle,
            "ellipse": self._ellipse,
            "polygon": self._polygon,
            "polyline": self._polyline,
            "path": self._path,
        }

    # ------------------------------------------------------------------
    # Parser target interface
    # ------------------------------------------------------------------

    def start(self, tag: str, attrib: dict[str, str]) -> None:
        name = local_name(tag)
        if len(self.ignore):
            self.ignore.push(name)
            return
        attrs = {local_name(key): value for key, value in attrib.items()}

        if self.canvas is None:
            if name != "svg":
                raise SvgParseError(f"Root element is <{name}>, expected <svg>")
            self._start_svg(attrs)
            return
        if name == "svg":
            self.ctx.warn("Skipping nested <svg> element")
            self.ignore.push(name)
            return

        if self.bounds_depth:
            self.bounds_depth += 1
            if name == "rect":
                self._read_bounds(attrs)
            return

        hidden = self.visibility.hidden
        if name == "use" and not hidden:
            name = "path"
        if name in _SHAPES:
            if hidden:
                return
            if self.defs_depth and name != "path":
                self.ctx.info("Not drawing <%s> inside <defs>", name)
                return

        handler = self._start_handlers.get(name)
        if handler is None:
            if not hidden:
                self.ctx.warn("Unrecognized SVG element <%s>", name)
            return
        handler(attrs.get("id"), attrs, Properties(attrs))

    def end(self, tag: str) -> None:
        name = local_name(tag)
        if len(self.ignore):
            self.ignore.pop()
            return
        if self.bounds_depth > 1:
            self.bounds_depth -= 1
            return
        self.bounds_depth = 0
        if name == "svg":
            self._end_svg()
        elif name in ("text", "tspan"):
            node = self.texts.pop()
            node.render(self.canvas, self.ctx, self.limits, self.matrices.peek())
            if name == "text":
                self._pop_transform()
        elif name in ("linearGradient", "radialGradient"):
            self.gradients.end()
            if not self.defs_depth:
                self.gradients.finish()
        elif name == "defs":
            self.defs_depth -= 1
            if not self.defs_depth:
                self.gradients.finish()
        elif name == "g":
            self._end_group()
        elif name == "clipPath":
            self.visibility.leave()

    def data(self, text: str) -> None:
        if len(self.ignore) or not len(self.texts):
            return
        self.texts.peek().append(text)

    def close(self) -> SvgPicture:
        if self.result is None:
            raise SvgParseError("Document ended before </svg>")
        self._check_balanced()
        self.ctx.finish()
        return self.result

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------

    def _start_svg(self, attrs: dict[str, str]) -> None:
        x = y = 0.0
        width = height = -1.0
        view_box = attrs.get("viewBox")
        if view_box is not None:
            coords = parse_numbers(view_box, self.ctx)
            if len(coords) == 4:
                x, y, width, height = coords
            else:
                self.ctx.warn("Ignoring malformed viewBox %r", view_box)
        else:
            svg_width = parse_length(attrs.get("width"), self.ctx)
            svg_height = parse_length(attrs.get("height"), self.ctx)
            if svg_width is not None and svg_height is not None:
                width = float(math.ceil(svg_width))
                height = float(math.ceil(svg_height))
        if width < 0 or height < 0:
            width = height = self.fallback_size
            self.ctx.warn("<svg> does not provide its dimensions; using %gx%g", width, height)

        self.bounds = (x, y, x + width, y + height)
        self.canvas = RecordingCanvas(math.ceil(width), math.ceil(height))
        self.canvas.translate(-x, -y)
        if self.ctx.listener is not None:
            self.ctx.listener.on_svg_start(self.canvas, self.bounds)

    def _read_bounds(self, attrs: dict[str, str]) -> None:
        """A ``rect`` inside the "bounds" layer overrides the document bounds."""
        x = self._length(attrs, "x", 0.0)
        y = self._length(attrs, "y", 0.0)
        width = self._length(attrs, "width")
        height = self._length(attrs, "height")
        if width is None or height is None:
            self.ctx.warn("Ignoring bounds <rect> without width/height")
            return
        self.bounds = (x, y, x + width, y + height)

    def _end_svg(self) -> None:
        if self.ctx.listener is not None:
            self.ctx.listener.on_svg_end(self.canvas, self.bounds)
        self.gradients.finish()
        self.result = SvgPicture(self.canvas.end_recording(), self.bounds, self.limits.as_tuple())

    def _check_balanced(self) -> None:
        leftovers = [
            stack.name
            for stack in (
                self.transform_markers,
                self.fill_paints,
                self.stroke_paints,
                self.fill_set_flags,
                self.stroke_set_flags,
                self.groups,
                self.texts,
                self.ignore,
            )
            if len(stack)
        ]
        if len(self.matrices) != 1:
            leftovers.append(self.matrices.name)
        if leftovers:
            raise StructureError("Unbalanced stacks at end of document: %s" % ", ".join(leftovers))

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def _push_transform(self, attrs: dict[str, str]) -> None:
        transform = attrs.get("transform")
        pushed = transform is not None
        self.transform_markers.push(pushed)
        if not pushed:
            return
        self.canvas.save()
        matrix = parse_transform(transform, self.ctx)
        parent = self.matrices.peek()
        if matrix is None:
            self.ctx.warn("Ignoring unparseable transform %r", transform)
            self.matrices.push(parent)
            return
        self.canvas.concat(matrix)
        self.matrices.push(parent.concat(matrix))

    def _pop_transform(self) -> None:
        if self.transform_markers.pop():
            self.canvas.restore()
            self.matrices.pop()

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def _start_defs(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        self.defs_depth += 1

    def _start_clip_path(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        if not self.visibility.hidden:
            self.ctx.warn("Unsupported SVG element <clipPath>; hiding its content")
        self.visibility.hide()

    def _start_group(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        canvas = self.canvas
        self.visibility.enter_group(props.get("display") == "none")

        opacity = props.get_float("opacity")
        if opacity is not None and opacity < 1:
            canvas.save_layer(self._layer_rect(), max(0, int(255 * opacity)))
        else:
            canvas.save()

        self._push_transform(attrs)

        self.fill_paints.push(self.style.fill.copy())
        self.stroke_paints.push(self.style.stroke.copy())
        self.fill_set_flags.push(self.style.fill_set)
        self.stroke_set_flags.push(self.style.stroke_set)

        # Group opacity is applied once, through the layer above
        self.style.resolve_fill(props, None, include_opacity=False)
        self.style.resolve_stroke(props, None, include_opacity=False)
        self.style.mark_group(props)

        group = SvgGroup(element_id)
        self.groups.push(group)
        if element_id is not None and element_id.lower() == "bounds":
            self.bounds_depth = 1
        if self.ctx.listener is not None and not self.visibility.hidden:
            if self.ctx.listener.before_draw(element_id, group, None, None) is None:
                group.skipped = True
                self.visibility.hide()

    def _end_group(self) -> None:
        group = self.groups.pop()
        if group.skipped:
            self.visibility.leave()
        elif self.ctx.listener is not None and not self.visibility.hidden:
            self.ctx.listener.after_draw(group.id, group, None)
        self._pop_transform()
        self.visibility.leave()
        self.style.fill = self.fill_paints.pop()
        self.style.fill_set = self.fill_set_flags.pop()
        self.style.stroke = self.stroke_paints.pop()
        self.style.stroke_set = self.stroke_set_flags.pop()
        self.canvas.restore()

    def _layer_rect(self) -> Rect:
        """The whole surface, in the current user space."""
        canvas = self.canvas
        surface = (0.0, 0.0, float(canvas.width), float(canvas.height))
        try:
            return canvas.matrix.inverted().map_rect(surface)
        except np.linalg.LinAlgError:
            return surface

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _start_text(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        self._push_transform(attrs)
        self._push_text_node(props)

    def _start_tspan(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        self._push_text_node(props)

    def _push_text_node(self, props: Properties) -> None:
        snapshot = self.style.snapshot()
        node = TextNode(props, self.texts.top_or_none(), self.style, self.ctx, hidden=self.visibility.hidden)
        self.style.restore(snapshot)
        self.texts.push(node)

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def _paint_shape(
        self,
        element_id: str | None,
        element: Any,
        bbox: Rect | None,
        props: Properties,
        draw: Callable[[Any, PaintStyle], Rect | None],
        fill: bool = True,
    ) -> None:
        """Resolve fill and stroke for one shape, drawing each visible paint.

        ``draw(element, paint)`` issues the canvas call and returns the
        element's untransformed bounds.
        """
        snapshot = self.style.snapshot()
        if fill and self.style.resolve_fill(props, bbox):
            self._emit(element_id, element, bbox, self.style.fill, draw, 0.0)
        if self.style.resolve_stroke(props, bbox):
            stroke = self.style.stroke
            self._emit(element_id, element, bbox, stroke, draw, stroke.stroke_width / 2)
        self.style.restore(snapshot)

    def _emit(
        self,
        element_id: str | None,
        element: Any,
        bbox: Rect | None,
        paint: PaintStyle,
        draw: Callable[[Any, PaintStyle], Rect | None],
        pad: float,
    ) -> None:
        listener = self.ctx.listener
        if listener is not None:
            element = listener.before_draw(element_id, element, bbox, paint)
            if element is None:
                return
        drawn = draw(element, paint)
        if listener is not None:
            listener.after_draw(element_id, element, paint)
        if drawn is not None:
            self.limits.fold(drawn, self.matrices.peek(), pad)

    def _length(self, attrs: dict[str, str], name: str, default: float | None = None) -> float | None:
        return parse_length(attrs.get(name), self.ctx, default)

    def _rect(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        x = self._length(attrs, "x", 0.0)
        y = self._length(attrs, "y", 0.0)
        width = self._length(attrs, "width")
        height = self._length(attrs, "height")
        if width is None or height is None:
            self.ctx.warn("Skipping <rect> without width/height")
            return
        rx = self._length(attrs, "rx")
        ry = self._length(attrs, "ry")
        if ry is None:
            ry = rx
        if rx is None:
            rx = ry
        rx = min(max(rx or 0.0, 0.0), width / 2)
        ry = min(max(ry or 0.0, 0.0), height / 2)

        def draw(rect: Rect, paint: PaintStyle) -> Rect:
            self.canvas.draw_rect(rect, rx, ry, paint)
            return rect

        self._push_transform(attrs)
        rect = (x, y, x + width, y + height)
        self._paint_shape(element_id, rect, rect, props, draw)
        self._pop_transform()

    def _line(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        line = (
            self._length(attrs, "x1", 0.0),
            self._length(attrs, "y1", 0.0),
            self._length(attrs, "x2", 0.0),
            self._length(attrs, "y2", 0.0),
        )

        def draw(points: tuple[float, float, float, float], paint: PaintStyle) -> Rect:
            self.canvas.draw_line(*points, paint)
            return rect_from_points(*points)

        self._push_transform(attrs)
        self._paint_shape(element_id, line, rect_from_points(*line), props, draw, fill=False)
        self._pop_transform()

    def _circle(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        radius = self._length(attrs, "r")
        self._oval(element_id, attrs, props, radius, radius)

    def _ellipse(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        self._oval(element_id, attrs, props, self._length(attrs, "rx"), self._length(attrs, "ry"))

    def _oval(
        self,
        element_id: str | None,
        attrs: dict[str, str],
        props: Properties,
        rx: float | None,
        ry: float | None,
    ) -> None:
        cx = self._length(attrs, "cx")
        cy = self._length(attrs, "cy")
        if cx is None or cy is None or rx is None or ry is None:
            self.ctx.info("Skipping circle/ellipse with incomplete geometry")
            return

        def draw(rect: Rect, paint: PaintStyle) -> Rect:
            self.canvas.draw_oval(rect, paint)
            return rect

        self._push_transform(attrs)
        rect = (cx - rx, cy - ry, cx + rx, cy + ry)
        self._paint_shape(element_id, rect, rect, props, draw)
        self._pop_transform()

    def _polygon(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        self._poly(element_id, attrs, props, closed=True)

    def _polyline(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        self._poly(element_id, attrs, props, closed=False)

    def _poly(self, element_id: str | None, attrs: dict[str, str], props: Properties, closed: bool) -> None:
        points = attrs.get("points")
        if points is None:
            return
        numbers = parse_numbers(points, self.ctx)
        if len(numbers) < 2:
            return
        if len(numbers) % 2:
            self.ctx.warn("Dropping odd trailing coordinate in points %r", points)
        path = PathObject()
        path.move_to(numbers[0], numbers[1])
        for i in range(2, len(numbers) - 1, 2):
            path.line_to(numbers[i], numbers[i + 1])
        if closed:
            path.close()
        self._push_transform(attrs)
        self._draw_path(element_id, path, props)
        self._pop_transform()

    def _path(self, element_id: str | None, attrs: dict[str, str], props: Properties) -> None:
        d = attrs.get("d")
        if self.defs_depth:
            if element_id is not None and d is not None:
                self.defs_paths[element_id] = d
            return
        if d is None:
            href = attrs.get("href")
            if href is not None and href.startswith("#"):
                href = href[1:]
            d = self.defs_paths.get(href) if href is not None else None
            if d is None:
                self.ctx.info("Skipping <path> without data (href=%r)", href)
                return
        path = parse_path(d, self.ctx)
        self._push_transform(attrs)
        self._draw_path(element_id, path, props)
        self._pop_transform()

    def _draw_path(self, element_id: str | None, path: PathObject, props: Properties) -> None:
        bbox = path.bounds()

        def draw(element: PathObject, paint: PaintStyle) -> Rect | None:
            self.canvas.draw_path(element, paint)
            return bbox if element is path else element.bounds()

        self._paint_shape(element_id, path, bbox, props, draw)
