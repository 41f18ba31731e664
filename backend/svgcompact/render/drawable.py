"""Parse results, the size-aware picture adapter and the Pillow rasterizer."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from PIL import Image, ImageDraw

from svgcompact.render.picture import Canvas, Picture, load_font
from svgcompact.svg.colors import rgb_tuple
from svgcompact.svg.path import PathObject
from svgcompact.svg.style import PaintMode
from svgcompact.svg.transform import AffineMatrix

if TYPE_CHECKING:
    from svgcompact.svg.style import PaintStyle
    from svgcompact.svg.text import FontSpec

logger = logging.getLogger(__name__)

Rect = tuple[float, float, float, float]

# Curve flattening resolution for rasterizing
_CURVE_SAMPLES = 24


class ScaleMode(str, enum.Enum):
    FIT = "fit"
    STRETCH = "stretch"


def rect_path(rect: Rect, rx: float = 0.0, ry: float = 0.0) -> PathObject:
    """Closed outline of a (possibly rounded) rectangle."""
    left, top, right, bottom = rect
    path = PathObject()
    if rx <= 0 or ry <= 0:
        path.move_to(left, top)
        path.line_to(right, top)
        path.line_to(right, bottom)
        path.line_to(left, bottom)
        path.close()
        return path
    path.move_to(left + rx, top)
    path.arc_to((right - 2 * rx, top, right, top + 2 * ry), -90, 90)
    path.arc_to((right - 2 * rx, bottom - 2 * ry, right, bottom), 0, 90)
    path.arc_to((left, bottom - 2 * ry, left + 2 * rx, bottom), 90, 90)
    path.arc_to((left, top, left + 2 * rx, top + 2 * ry), 180, 90)
    path.close()
    return path


def oval_path(rect: Rect) -> PathObject:
    path = PathObject()
    path.arc_to(rect, 0, 360)
    path.close()
    return path


class RasterCanvas(Canvas):
    """Canvas that paints into a Pillow RGBA image.

    Geometry is flattened to polylines and scan-converted into a coverage
    mask; the mask is then filled with the solid color or the gradient
    evaluated per pixel. ``save_layer`` paints into a fresh image that is
    composited back with its alpha on the matching ``restore``.
    """

    def __init__(self, width: int, height: int, background: tuple[int, int, int, int] | None = None) -> None:
        super().__init__(width, height)
        self.image = Image.new("RGBA", (width, height), background or (0, 0, 0, 0))
        # (save depth, image underneath, layer alpha)
        self._layers: list[tuple[int, Image.Image, int]] = []

    def save_layer(self, rect: Rect, alpha: int) -> int:
        depth = self.save()
        self._layers.append((depth, self.image, alpha))
        self.image = Image.new("RGBA", self.image.size, (0, 0, 0, 0))
        return depth

    def restore(self) -> None:
        super().restore()
        if self._layers and self._layers[-1][0] == self.save_count:
            _, below, alpha = self._layers.pop()
            layer = self.image
            if alpha < 255:
                layer.putalpha(layer.getchannel("A").point(lambda v: v * alpha // 255))
            below.alpha_composite(layer)
            self.image = below

    # --- Drawing ---
    def draw_rect(self, rect: Rect, rx: float, ry: float, paint: PaintStyle) -> None:
        self.draw_path(rect_path(rect, rx, ry), paint)

    def draw_oval(self, rect: Rect, paint: PaintStyle) -> None:
        self.draw_path(oval_path(rect), paint)

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, paint: PaintStyle) -> None:
        path = PathObject()
        path.move_to(x1, y1)
        path.line_to(x2, y2)
        self.draw_path(path, paint)

    def draw_path(self, path: PathObject, paint: PaintStyle) -> None:
        mask = Image.new("L", self.image.size, 0)
        draw = ImageDraw.Draw(mask)
        for points, closed in path.polylines(_CURVE_SAMPLES):
            if len(points) < 2:
                continue
            device = [tuple(p) for p in self.matrix.map_points(points).tolist()]
            if paint.mode is PaintMode.FILL:
                if len(device) > 2:
                    draw.polygon(device, fill=255)
            else:
                if closed:
                    device.append(device[0])
                width = max(1, round(self.matrix.map_radius(paint.stroke_width)))
                draw.line(device, fill=255, width=width, joint="curve")
        self._paint_mask(mask, paint)

    def draw_text(self, text: str, x: float, y: float, paint: PaintStyle, font: FontSpec) -> None:
        size = self.matrix.map_radius(font.size)
        if size <= 0:
            return
        mask = Image.new("L", self.image.size, 0)
        draw = ImageDraw.Draw(mask)
        pil_font = load_font(font.path, size)
        if paint.mode is PaintMode.FILL:
            draw.text(self.matrix.map_point(x, y), text, fill=255, font=pil_font, anchor="ls")
        else:
            stroke = max(1, round(self.matrix.map_radius(paint.stroke_width) / 2))
            draw.text(
                self.matrix.map_point(x, y), text, fill=0, font=pil_font, anchor="ls",
                stroke_width=stroke, stroke_fill=255,
            )
        self._paint_mask(mask, paint)

    def _paint_mask(self, mask: Image.Image, paint: PaintStyle) -> None:
        coverage = np.asarray(mask, dtype=np.float64) / 255.0
        ys, xs = np.nonzero(coverage)
        if len(xs) == 0:
            return
        rgba = np.zeros(coverage.shape + (4,))
        if paint.shader is not None:
            try:
                inverse = self.matrix.inverted()
            except np.linalg.LinAlgError:
                return
            centers = np.column_stack([xs + 0.5, ys + 0.5])
            colors = paint.shader.colors_at(inverse.map_points(centers))
            colors[:, 3] *= paint.alpha / 255.0
            rgba[ys, xs] = colors
        else:
            r, g, b = rgb_tuple(paint.color)
            rgba[ys, xs] = (r, g, b, paint.alpha)
        rgba[..., 3] *= coverage
        layer: NDArray[np.uint8] = np.clip(np.round(rgba), 0, 255).astype(np.uint8)
        self.image.alpha_composite(Image.fromarray(layer))


class PictureDrawable:
    """Draws a picture at any target size, keeping its aspect ratio or stretching."""

    def __init__(self, picture: Picture, mode: ScaleMode = ScaleMode.FIT) -> None:
        self.picture = picture
        self.mode = mode

    @property
    def intrinsic_size(self) -> tuple[float, float]:
        return (self.picture.width, self.picture.height)

    def matrix_for(self, width: float, height: float) -> AffineMatrix:
        pw, ph = self.intrinsic_size
        if pw <= 0 or ph <= 0:
            return AffineMatrix.identity()
        sx = width / pw
        sy = height / ph
        if self.mode is ScaleMode.STRETCH:
            return AffineMatrix.scaling(sx, sy)
        scale = min(sx, sy)
        dx = (width - pw * scale) / 2
        dy = (height - ph * scale) / 2
        return AffineMatrix.translation(dx, dy).concat(AffineMatrix.scaling(scale))

    def draw(self, canvas: Canvas, width: float, height: float) -> None:
        canvas.save()
        canvas.concat(self.matrix_for(width, height))
        self.picture.replay(canvas)
        canvas.restore()

    def rasterize(
        self,
        width: int | None = None,
        height: int | None = None,
        background: tuple[int, int, int, int] | None = None,
    ) -> Image.Image:
        """Render to an RGBA image; missing dimensions default to the picture's own."""
        pw, ph = self.intrinsic_size
        width = width or max(1, round(pw))
        height = height or max(1, round(ph))
        canvas = RasterCanvas(width, height, background)
        self.draw(canvas, width, height)
        logger.debug("Rasterized %r at %dx%d", self.picture, width, height)
        return canvas.image


@dataclass
class SvgPicture:
    """Result of one parse.

    ``bounds`` is the document's logical rectangle (viewBox or size);
    ``limits`` covers everything actually drawn and is None for an empty
    document.
    """

    picture: Picture
    bounds: Rect | None
    limits: Rect | None

    def drawable(self, mode: ScaleMode = ScaleMode.FIT) -> PictureDrawable:
        return PictureDrawable(self.picture, mode)
