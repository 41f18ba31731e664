"""Tests for picture replay and Pillow rasterization."""

from __future__ import annotations

import numpy as np
import pytest

from svgcompact.engine.loader import load_string
from svgcompact.render.drawable import PictureDrawable, ScaleMode, rect_path
from svgcompact.render.picture import Canvas, Picture
from svgcompact.svg.path import Close
from tests.conftest import GRADIENT_SVG, GROUP_OPACITY_SVG, STROKED_LINE_SVG, TEXT_SVG


class CountingCanvas(Canvas):
    def __init__(self):
        super().__init__(10, 10)
        self.calls: list[str] = []

    def draw_rect(self, rect, rx, ry, paint):
        self.calls.append("rect")

    def draw_path(self, path, paint):
        self.calls.append("path")

    def draw_oval(self, rect, paint):
        self.calls.append("oval")

    def draw_line(self, x1, y1, x2, y2, paint):
        self.calls.append("line")

    def draw_text(self, text, x, y, paint, font):
        self.calls.append("text")


@pytest.mark.parametrize(
    "mode, target, expected",
    [
        (ScaleMode.FIT, (40, 40), [(10.0, 0.0), (30.0, 40.0)]),
        (ScaleMode.STRETCH, (40, 40), [(0.0, 0.0), (40.0, 40.0)]),
        (ScaleMode.FIT, (10, 20), [(0.0, 0.0), (10.0, 20.0)]),
    ],
)
def test_matrix_for(mode, target, expected):
    drawable = PictureDrawable(Picture(10, 20), mode)
    matrix = drawable.matrix_for(*target)
    assert [matrix.map_point(0, 0), matrix.map_point(10, 20)] == [pytest.approx(p) for p in expected]


def test_empty_picture_draws_identity():
    assert PictureDrawable(Picture(0, 0)).matrix_for(50, 50).is_identity


def test_rect_path_with_corners_is_closed():
    path = rect_path((0, 0, 10, 10), 2, 2)
    assert isinstance(path.segments[-1], Close)
    assert path.bounds() == pytest.approx((0.0, 0.0, 10.0, 10.0))


def test_replay_reissues_draw_calls(icon_svg):
    canvas = CountingCanvas()
    load_string(icon_svg).picture.replay(canvas)
    assert canvas.calls == ["path", "oval"]
    assert canvas.save_count == 0


def test_to_dicts(red_rect_svg):
    ops = load_string(red_rect_svg).picture.to_dicts()
    rect = [op for op in ops if op["op"] == "rect"][0]
    assert rect["rect"] == [0.0, 0.0, 10.0, 10.0]
    assert rect["paint"] == {"style": "fill", "color": "#FF0000", "alpha": 255}


def _pixels(svg, width=None, height=None, background=None):
    image = load_string(svg).drawable().rasterize(width, height, background)
    return np.asarray(image)


def test_rasterize_red_rect(red_rect_svg):
    pixels = _pixels(red_rect_svg)
    assert pixels.shape == (10, 10, 4)
    assert tuple(pixels[5, 5]) == (255, 0, 0, 255)


def test_rasterize_scales_up(red_rect_svg):
    pixels = _pixels(red_rect_svg, 20, 20)
    assert pixels.shape == (20, 20, 4)
    assert tuple(pixels[15, 15]) == (255, 0, 0, 255)


def test_rasterize_fit_letterboxes(red_rect_svg):
    pixels = _pixels(red_rect_svg, 20, 10, background=(255, 255, 255, 255))
    assert tuple(pixels[5, 1]) == (255, 255, 255, 255)
    assert tuple(pixels[5, 10]) == (255, 0, 0, 255)


def test_group_opacity_composites_layer():
    r, g, b, a = _pixels(GROUP_OPACITY_SVG)[5, 5]
    assert (r, g, b) == (255, 0, 0)
    assert abs(int(a) - 127) <= 1


def test_gradient_runs_left_to_right():
    pixels = _pixels(GRADIENT_SVG).astype(int)
    left, right = pixels[50, 2], pixels[50, 97]
    assert left[0] > 240 and left[2] < 15
    assert right[2] > 240 and right[0] < 15
    assert left[3] == right[3] == 255


def test_stroked_line_is_drawn():
    pixels = _pixels(STROKED_LINE_SVG)
    assert pixels[0, 5, 3] > 0
    assert pixels[10, 5, 3] == 0


def test_text_is_drawn():
    pixels = _pixels(TEXT_SVG)
    green = (pixels[..., 1] > 0) & (pixels[..., 3] > 0)
    assert green.any()
    assert (pixels[..., 0][green] == 0).all()


def test_canvas_without_draw_calls_cannot_be_created():
    class PartialCanvas(Canvas):
        def draw_rect(self, rect, rx, ry, paint):
            pass

    with pytest.raises(TypeError):
        PartialCanvas(10, 10)
