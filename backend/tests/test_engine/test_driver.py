"""End-to-end tests for the document driver."""

from __future__ import annotations

import pytest

from svgcompact.engine.context import ParseContext
from svgcompact.engine.loader import load_string
from svgcompact.errors import SvgParseError, UnitMixingError
from svgcompact.render.picture import DrawLine, DrawOval, DrawPath, DrawRect, SaveLayer
from svgcompact.svg.path import Close
from svgcompact.svg.style import PaintMode
from tests.conftest import (
    GRADIENT_SVG,
    GROUP_OPACITY_SVG,
    HIDDEN_GROUP_SVG,
    OPACITY_SVG,
    PT_ONLY_SVG,
    RED_RECT_SVG,
    STROKED_LINE_SVG,
    UNIT_MIX_SVG,
    RecordingListener,
    run_handler,
)


def _svg(body: str, attrs: str = 'viewBox="0 0 100 100"') -> str:
    return f'<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" {attrs}>{body}</svg>'


def _draws(svg: str, ctx: ParseContext | None = None):
    return run_handler(svg, ctx)[1].picture.draw_ops


# ---------------------------------------------------------------------------
# Basic documents
# ---------------------------------------------------------------------------

def test_red_rect(red_rect_svg):
    handler, result = run_handler(red_rect_svg)
    ops = result.picture.draw_ops
    assert len(ops) == 1
    op = ops[0]
    assert isinstance(op, DrawRect)
    assert op.rect == (0.0, 0.0, 10.0, 10.0)
    assert (op.paint.mode, op.paint.color, op.paint.alpha) == (PaintMode.FILL, 0xFF0000, 255)
    assert result.bounds == (0.0, 0.0, 10.0, 10.0)
    assert result.limits == (0.0, 0.0, 10.0, 10.0)
    assert (result.picture.width, result.picture.height) == (10, 10)


def test_stacks_are_balanced_after_parse(icon_svg):
    handler, result = run_handler(icon_svg)
    assert len(handler.matrices) == 1
    assert len(handler.groups) == 0
    assert len(handler.fill_paints) == 0
    assert len(handler.transform_markers) == 0
    assert len(result.picture.draw_ops) == 2


def test_stroked_line_limits_include_half_width():
    ops = run_handler(STROKED_LINE_SVG)[1]
    assert [type(op) for op in ops.picture.draw_ops] == [DrawLine]
    assert ops.picture.draw_ops[0].paint.mode is PaintMode.STROKE
    assert ops.limits == (-2.0, -2.0, 12.0, 2.0)


def test_opacity_multiplies_into_alpha():
    (op,) = _draws(OPACITY_SVG)
    assert op.paint.alpha == 63


def test_group_opacity_uses_layer():
    handler, result = run_handler(GROUP_OPACITY_SVG)
    layers = [op for op in result.picture.ops if isinstance(op, SaveLayer)]
    assert [layer.alpha for layer in layers] == [127]
    (rect,) = result.picture.draw_ops
    assert rect.paint.alpha == 255


# ---------------------------------------------------------------------------
# Visibility and skipped content
# ---------------------------------------------------------------------------

def test_hidden_group_draws_nothing():
    handler, result = run_handler(HIDDEN_GROUP_SVG)
    assert result.picture.draw_ops == []
    assert handler.visibility.depth == 0
    assert result.limits is None


def test_clip_path_content_is_hidden():
    svg = _svg('<clipPath id="c"><rect width="5" height="5"/></clipPath><rect width="1" height="1"/>')
    handler, result = run_handler(svg)
    assert [op.rect for op in result.picture.draw_ops] == [(0.0, 0.0, 1.0, 1.0)]
    assert handler.visibility.depth == 0


def test_metadata_is_ignored():
    svg = _svg('<metadata><rdf><rect width="5" height="5"/></rdf></metadata><circle cx="1" cy="1" r="1"/>')
    handler, result = run_handler(svg)
    assert [type(op) for op in result.picture.draw_ops] == [DrawOval]
    assert len(handler.ignore) == 0


def test_nested_svg_is_skipped():
    svg = _svg('<svg viewBox="0 0 5 5"><rect width="5" height="5"/></svg><rect width="2" height="2"/>')
    ops = _draws(svg)
    assert [op.rect for op in ops] == [(0.0, 0.0, 2.0, 2.0)]


def test_unknown_elements_are_ignored():
    ops = _draws(_svg('<title>x</title><foo/><rect width="1" height="1"/>'))
    assert len(ops) == 1


def test_non_svg_root_is_rejected():
    with pytest.raises(SvgParseError, match="expected <svg>"):
        run_handler("<html><body/></html>")


@pytest.mark.parametrize("svg", ["<svg><rect></svg>", "<svg viewBox='0 0 1 1'>", "not markup"])
def test_malformed_documents_raise(svg):
    with pytest.raises(SvgParseError):
        load_string(svg)


# ---------------------------------------------------------------------------
# Units and document geometry
# ---------------------------------------------------------------------------

def test_mixed_physical_units_raise():
    with pytest.raises(UnitMixingError) as excinfo:
        run_handler(UNIT_MIX_SVG)
    assert (excinfo.value.assumed, excinfo.value.found) == ("pt", "mm")


def test_single_physical_unit_is_accepted():
    handler, result = run_handler(PT_ONLY_SVG)
    assert result.bounds == (0.0, 0.0, 100.0, 100.0)
    assert result.picture.draw_ops[0].rect == (1.0, 0.0, 11.0, 10.0)
    assert handler.ctx.assumed_unit == "pt"


def test_view_box_origin_is_translated():
    handler, result = run_handler(_svg('<rect x="5" y="5" width="2" height="2"/>', 'viewBox="5 5 10 10"'))
    assert result.bounds == (5.0, 5.0, 15.0, 15.0)
    (op,) = result.picture.draw_ops
    assert op.matrix.map_point(5, 5) == pytest.approx((0.0, 0.0))


def test_width_and_height_are_rounded_up():
    _, result = run_handler(_svg("", 'width="10.2" height="3.5"'))
    assert result.bounds == (0.0, 0.0, 11.0, 4.0)


def test_missing_dimensions_fall_back():
    _, result = run_handler(_svg("", ""))
    assert result.bounds == (0.0, 0.0, 100.0, 100.0)


def test_transforms_compose_through_groups():
    svg = _svg('<g transform="translate(10,20)"><rect width="1" height="1" transform="scale(2)"/></g>')
    handler, result = run_handler(svg)
    (op,) = result.picture.draw_ops
    assert op.matrix.map_point(1, 1) == pytest.approx((12.0, 22.0))
    assert result.limits == pytest.approx((10.0, 20.0, 12.0, 22.0))
    assert len(handler.matrices) == 1


def test_unparseable_transform_keeps_parent_matrix():
    svg = _svg('<g transform="translate(3,0)"><rect width="1" height="1" transform="bogus(1)"/></g>')
    handler, result = run_handler(svg)
    (op,) = result.picture.draw_ops
    assert op.matrix.map_point(0, 0) == pytest.approx((3.0, 0.0))
    assert len(handler.matrices) == 1


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

def test_polygon_closes_and_polyline_does_not():
    svg = _svg('<polygon points="0,0 10,0 10,10"/><polyline points="0,0 10,0 10,10" fill="none" stroke="red"/>')
    polygon, polyline = _draws(svg)
    assert isinstance(polygon, DrawPath)
    assert isinstance(polygon.path.segments[-1], Close)
    assert not isinstance(polyline.path.segments[-1], Close)
    assert polyline.paint.mode is PaintMode.STROKE


def test_circle_without_radius_is_skipped():
    assert _draws(_svg('<circle cx="5" cy="5"/>')) == []


def test_rect_corner_radii_are_clamped():
    (op,) = _draws(_svg('<rect width="10" height="4" rx="8"/>'))
    assert (op.rx, op.ry) == (5.0, 2.0)


def test_ellipse_bounds():
    (op,) = _draws(_svg('<ellipse cx="10" cy="10" rx="4" ry="2"/>'))
    assert op.rect == (6.0, 8.0, 14.0, 12.0)


def test_use_draws_path_from_defs():
    svg = _svg(
        '<defs><path id="p" d="M0 0 L10 0 L10 10 Z"/><rect id="r" width="3" height="3"/></defs>'
        '<use xlink:href="#p" fill="#ff0000"/>'
    )
    _, result = run_handler(svg)
    (op,) = result.picture.draw_ops
    assert isinstance(op, DrawPath)
    assert op.paint.color == 0xFF0000
    assert result.limits == pytest.approx((0.0, 0.0, 10.0, 10.0))


# ---------------------------------------------------------------------------
# Paint inheritance
# ---------------------------------------------------------------------------

def test_group_paint_is_inherited():
    svg = _svg('<g fill="#00ff00" stroke="#0000ff" stroke-width="2"><rect width="1" height="1"/></g>')
    fill, stroke = _draws(svg)
    assert (fill.paint.mode, fill.paint.color) == (PaintMode.FILL, 0x00FF00)
    assert (stroke.paint.mode, stroke.paint.color, stroke.paint.stroke_width) == (PaintMode.STROKE, 0x0000FF, 2.0)


def test_element_paint_does_not_leak_to_siblings():
    svg = _svg(
        '<g fill="#00ff00"><rect fill="#ff0000" width="1" height="1"/><rect width="1" height="1"/></g>'
        '<rect width="1" height="1"/>'
    )
    colors = [op.paint.color for op in _draws(svg)]
    assert colors == [0xFF0000, 0x00FF00, 0x000000]


def test_gradient_fill_resolves_forward_link():
    _, result = run_handler(GRADIENT_SVG)
    (op,) = result.picture.draw_ops
    assert op.paint.gradient.id == "fade"
    assert op.paint.shader is not None
    assert len(op.paint.shader.colors) == 2
    assert op.paint.shader.local_matrix.map_point(1, 1) == pytest.approx((100.0, 100.0))


def test_color_map_is_applied_and_extended():
    ctx = ParseContext(color_map={0xFF0000: 0x00FF00})
    ops = _draws(_svg('<rect width="1" height="1" fill="red"/><rect width="1" height="1" fill="blue"/>'), ctx)
    assert [op.paint.color for op in ops] == [0x00FF00, 0x0000FF]
    assert ctx.color_map == {0xFF0000: 0x00FF00, 0x0000FF: 0x0000FF}


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------

def test_listener_sees_document_and_elements():
    listener = RecordingListener()
    run_handler(_svg('<g id="grp"><rect id="r" width="1" height="1"/></g>'), ParseContext(listener=listener))
    kinds = [(event[0], event[1] if len(event) > 1 and isinstance(event[1], str) else None) for event in listener.events]
    assert kinds == [
        ("start", None),
        ("before", "grp"),
        ("before", "r"),
        ("after", "r"),
        ("after", "grp"),
        ("end", None),
    ]


def test_listener_can_skip_element():
    listener = RecordingListener(skip={"r"})
    _, result = run_handler(_svg('<rect id="r" width="1" height="1"/>'), ParseContext(listener=listener))
    assert result.picture.draw_ops == []
    assert result.limits is None


def test_listener_can_replace_element():
    listener = RecordingListener(replace={"r": (0.0, 0.0, 5.0, 5.0)})
    _, result = run_handler(_svg('<rect id="r" width="1" height="1"/>'), ParseContext(listener=listener))
    (op,) = result.picture.draw_ops
    assert op.rect == (0.0, 0.0, 5.0, 5.0)
    assert result.limits == (0.0, 0.0, 5.0, 5.0)


def test_listener_can_skip_group():
    listener = RecordingListener(skip={"grp"})
    svg = _svg('<g id="grp"><rect id="r" width="1" height="1"/></g><rect id="s" width="2" height="2"/>')
    handler, result = run_handler(svg, ParseContext(listener=listener))
    assert [op.rect for op in result.picture.draw_ops] == [(0.0, 0.0, 2.0, 2.0)]
    ids = [event[1] for event in listener.events if event[0] in ("before", "after")]
    assert ids == ["grp", "s", "s"]
    assert handler.visibility.depth == 0


# ---------------------------------------------------------------------------
# Bounds layer
# ---------------------------------------------------------------------------

def test_bounds_layer_overrides_document_bounds():
    svg = _svg(
        '<g id="bounds"><rect x="2" y="3" width="20" height="10" fill="red"/><circle cx="1" cy="1" r="1"/></g>'
        '<rect width="1" height="1"/>'
    )
    handler, result = run_handler(svg)
    assert result.bounds == (2.0, 3.0, 22.0, 13.0)
    assert [op.rect for op in result.picture.draw_ops] == [(0.0, 0.0, 1.0, 1.0)]
    assert handler.bounds_depth == 0
    assert len(handler.groups) == 0


def test_bounds_layer_reads_nested_rect():
    svg = _svg('<g id="Bounds"><g transform="scale(2)"><rect width="4" height="5"/></g></g><circle cx="1" cy="1" r="1"/>')
    handler, result = run_handler(svg)
    assert result.bounds == (0.0, 0.0, 4.0, 5.0)
    assert [type(op) for op in result.picture.draw_ops] == [DrawOval]
    assert len(handler.matrices) == 1


# ---------------------------------------------------------------------------
# Text bounds
# ---------------------------------------------------------------------------

def test_text_coordinate_list_folds_drawn_box():
    _, result = run_handler(_svg('<text x="50 60 70" y="20">abc</text>'))
    assert [(op.text, op.x) for op in result.picture.draw_ops] == [("a", 50.0), ("b", 60.0), ("c", 70.0)]
    left, _, right, _ = result.limits
    assert left == pytest.approx(50.0)
    assert right > 70.0
