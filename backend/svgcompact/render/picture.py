"""Drawing surface interface and the recording implementation.

The document driver draws onto a :class:`Canvas`. :class:`RecordingCanvas`
keeps every call as an op in a :class:`Picture`, which can later be replayed
onto any other canvas (e.g. the Pillow rasterizer in ``render.drawable``).
"""

from __future__ import annotations

import abc
import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from PIL import ImageFont

from svgcompact.svg.colors import to_hex
from svgcompact.svg.transform import AffineMatrix

if TYPE_CHECKING:
    from svgcompact.svg.path import PathObject
    from svgcompact.svg.style import PaintStyle
    from svgcompact.svg.text import FontSpec

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]


class TextMetrics:
    """Advance width plus ink bounds relative to the baseline origin."""

    __slots__ = ("width", "bounds")

    def __init__(self, width: float, bounds: Rect) -> None:
        self.width = width
        self.bounds = bounds

    @property
    def height(self) -> float:
        return self.bounds[3] - self.bounds[1]

    @property
    def center_y(self) -> float:
        return (self.bounds[1] + self.bounds[3]) / 2


@functools.lru_cache(maxsize=64)
def load_font(path: str | None, size: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    if path is not None:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            logger.error("Failed to load font %s", path)
    return ImageFont.load_default(size)


def measure_text(text: str, font: FontSpec) -> TextMetrics:
    pil_font = load_font(font.path, font.size)
    left, top, right, bottom = pil_font.getbbox(text, anchor="ls")
    return TextMetrics(float(pil_font.getlength(text)), (float(left), float(top), float(right), float(bottom)))


# ---------------------------------------------------------------------------
# Ops
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Save:
    def to_dict(self) -> dict[str, Any]:
        return {"op": "save"}


@dataclass(frozen=True)
class SaveLayer:
    rect: Rect
    alpha: int

    def to_dict(self) -> dict[str, Any]:
        return {"op": "save_layer", "rect": list(self.rect), "alpha": self.alpha}


@dataclass(frozen=True)
class Restore:
    def to_dict(self) -> dict[str, Any]:
        return {"op": "restore"}


@dataclass(frozen=True)
class Concat:
    matrix: AffineMatrix

    def to_dict(self) -> dict[str, Any]:
        return {"op": "concat", "matrix": list(self.matrix.values)}


def _paint_dict(paint: PaintStyle) -> dict[str, Any]:
    data: dict[str, Any] = {
        "style": paint.mode.value,
        "color": to_hex(paint.color),
        "alpha": paint.alpha,
    }
    if paint.gradient is not None:
        data["gradient"] = paint.gradient.id
    if paint.mode.value == "stroke":
        data["stroke_width"] = paint.stroke_width
        if paint.dash:
            data["dash"] = list(paint.dash)
    return data


@dataclass(frozen=True)
class DrawRect:
    rect: Rect
    rx: float
    ry: float
    paint: PaintStyle
    matrix: AffineMatrix

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "rect",
            "rect": list(self.rect),
            "rx": self.rx,
            "ry": self.ry,
            "paint": _paint_dict(self.paint),
            "matrix": list(self.matrix.values),
        }


@dataclass(frozen=True)
class DrawOval:
    rect: Rect
    paint: PaintStyle
    matrix: AffineMatrix

    def to_dict(self) -> dict[str, Any]:
        return {"op": "oval", "rect": list(self.rect), "paint": _paint_dict(self.paint), "matrix": list(self.matrix.values)}


@dataclass(frozen=True)
class DrawLine:
    x1: float
    y1: float
    x2: float
    y2: float
    paint: PaintStyle
    matrix: AffineMatrix

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "line",
            "points": [self.x1, self.y1, self.x2, self.y2],
            "paint": _paint_dict(self.paint),
            "matrix": list(self.matrix.values),
        }


@dataclass(frozen=True)
class DrawPath:
    path: PathObject
    paint: PaintStyle
    matrix: AffineMatrix

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "path",
            "segments": [[type(seg).__name__, *seg] for seg in self.path.segments],
            "paint": _paint_dict(self.paint),
            "matrix": list(self.matrix.values),
        }


@dataclass(frozen=True)
class DrawText:
    text: str
    x: float
    y: float
    paint: PaintStyle
    font: FontSpec
    matrix: AffineMatrix

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": "text",
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "font_size": self.font.size,
            "font_family": self.font.family,
            "paint": _paint_dict(self.paint),
            "matrix": list(self.matrix.values),
        }


StateOp = Union[Save, SaveLayer, Restore, Concat]
DrawOp = Union[DrawRect, DrawOval, DrawLine, DrawPath, DrawText]
Op = Union[StateOp, DrawOp]

_DRAW_OPS = (DrawRect, DrawOval, DrawLine, DrawPath, DrawText)


# ---------------------------------------------------------------------------
# Canvas
# ---------------------------------------------------------------------------


class Canvas(abc.ABC):
    """Rendering surface the document driver draws onto.

    Keeps the current matrix and the save stack; subclasses implement the
    drawing calls. ``save``/``save_layer`` return the depth before saving.
    """

    def __init__(self, width: float, height: float) -> None:
        self.width = width
        self.height = height
        self.matrix = AffineMatrix.identity()
        self._saved: list[AffineMatrix] = []

    @property
    def save_count(self) -> int:
        return len(self._saved)

    def save(self) -> int:
        self._saved.append(self.matrix)
        return len(self._saved) - 1

    def save_layer(self, rect: Rect, alpha: int) -> int:
        return self.save()

    def restore(self) -> None:
        if not self._saved:
            raise ValueError("Canvas restore() without a matching save()")
        self.matrix = self._saved.pop()

    def concat(self, matrix: AffineMatrix) -> None:
        self.matrix = self.matrix.concat(matrix)

    def translate(self, dx: float, dy: float) -> None:
        self.concat(AffineMatrix.translation(dx, dy))

    @abc.abstractmethod
    def draw_rect(self, rect: Rect, rx: float, ry: float, paint: PaintStyle) -> None:
        ...

    @abc.abstractmethod
    def draw_oval(self, rect: Rect, paint: PaintStyle) -> None:
        ...

    @abc.abstractmethod
    def draw_line(self, x1: float, y1: float, x2: float, y2: float, paint: PaintStyle) -> None:
        ...

    @abc.abstractmethod
    def draw_path(self, path: PathObject, paint: PaintStyle) -> None:
        ...

    @abc.abstractmethod
    def draw_text(self, text: str, x: float, y: float, paint: PaintStyle, font: FontSpec) -> None:
        ...

    def measure_text(self, text: str, font: FontSpec) -> TextMetrics:
        return measure_text(text, font)


class Picture:
    """A replayable recording of canvas calls."""

    def __init__(self, width: float, height: float, ops: list[Op] | None = None) -> None:
        self.width = width
        self.height = height
        self.ops: list[Op] = ops if ops is not None else []

    def __len__(self) -> int:
        return len(self.ops)

    def __repr__(self) -> str:
        return f"Picture({self.width:g}x{self.height:g}, {len(self.ops)} ops)"

    @property
    def draw_ops(self) -> list[DrawOp]:
        return [op for op in self.ops if isinstance(op, _DRAW_OPS)]

    def replay(self, canvas: Canvas) -> None:
        """Re-issue every recorded call on ``canvas``, on top of its current matrix."""
        for op in self.ops:
            if isinstance(op, Save):
                canvas.save()
            elif isinstance(op, SaveLayer):
                canvas.save_layer(op.rect, op.alpha)
            elif isinstance(op, Restore):
                canvas.restore()
            elif isinstance(op, Concat):
                canvas.concat(op.matrix)
            elif isinstance(op, DrawRect):
                canvas.draw_rect(op.rect, op.rx, op.ry, op.paint)
            elif isinstance(op, DrawOval):
                canvas.draw_oval(op.rect, op.paint)
            elif isinstance(op, DrawLine):
                canvas.draw_line(op.x1, op.y1, op.x2, op.y2, op.paint)
            elif isinstance(op, DrawPath):
                canvas.draw_path(op.path, op.paint)
            elif isinstance(op, DrawText):
                canvas.draw_text(op.text, op.x, op.y, op.paint, op.font)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [op.to_dict() for op in self.ops]


class RecordingCanvas(Canvas):
    """Canvas that appends every call to a :class:`Picture`.

    Paints are copied on record since the driver keeps mutating its own.
    """

    def __init__(self, width: float, height: float) -> None:
        super().__init__(width, height)
        self.picture = Picture(width, height)

    def _record(self, op: Op) -> None:
        self.picture.ops.append(op)

    def save(self) -> int:
        self._record(Save())
        return super().save()

    def save_layer(self, rect: Rect, alpha: int) -> int:
        self._record(SaveLayer(rect, alpha))
        return super().save()

    def restore(self) -> None:
        super().restore()
        self._record(Restore())

    def concat(self, matrix: AffineMatrix) -> None:
        super().concat(matrix)
        self._record(Concat(matrix))

    def draw_rect(self, rect: Rect, rx: float, ry: float, paint: PaintStyle) -> None:
        self._record(DrawRect(rect, rx, ry, paint.copy(), self.matrix))

    def draw_oval(self, rect: Rect, paint: PaintStyle) -> None:
        self._record(DrawOval(rect, paint.copy(), self.matrix))

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, paint: PaintStyle) -> None:
        self._record(DrawLine(x1, y1, x2, y2, paint.copy(), self.matrix))

    def draw_path(self, path: PathObject, paint: PaintStyle) -> None:
        self._record(DrawPath(path, paint.copy(), self.matrix))

    def draw_text(self, text: str, x: float, y: float, paint: PaintStyle, font: FontSpec) -> None:
        self._record(DrawText(text, x, y, paint.copy(), font, self.matrix))

    def end_recording(self) -> Picture:
        if self.save_count:
            logger.warning("Ending recording with %d unrestored saves", self.save_count)
        return self.picture
