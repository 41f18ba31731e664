"""Tests for colors, style properties and paint resolution."""

from __future__ import annotations

import pytest

from svgcompact.svg.colors import parse_color
from svgcompact.svg.style import PaintMode, Properties, parse_style


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "value, expected",
    [
        ("#f00", 0xFF0000),
        ("#12ab34", 0x12AB34),
        ("rgb(0, 128, 255)", 0x0080FF),
        ("rgb(100%, 0%, 50%)", 0xFF0080),
        ("red", 0xFF0000),
        ("CornflowerBlue", 0x6495ED),
    ],
)
def test_parse_color(value, expected):
    assert parse_color(value) == expected


@pytest.mark.parametrize("value", ["#12345", "rgb(1,2)", "notacolor", "#ggg"])
def test_unrecognized_colors(value):
    assert parse_color(value) is None


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

def test_parse_style_strips_whitespace():
    assert parse_style(" fill : red ;stroke:blue;; bogus") == {"fill": "red", "stroke": "blue"}


def test_style_wins_over_attribute():
    props = Properties({"fill": "blue", "style": "fill:red"})
    assert props.get("fill") == "red"
    assert props.get("stroke") is None
    assert props.has("fill")


def test_get_float_accepts_percent():
    props = Properties({"opacity": "50%", "fill-opacity": "x"})
    assert props.get_float("opacity") == pytest.approx(0.5)
    assert props.get_float("fill-opacity", 1.0) == 1.0


# ---------------------------------------------------------------------------
# Fill / stroke resolution
# ---------------------------------------------------------------------------

class TestResolver:
    def test_default_fill_is_opaque_black(self, resolver):
        assert resolver.resolve_fill(Properties({}), None)
        assert resolver.fill.color == 0x000000
        assert resolver.fill.alpha == 255

    def test_default_stroke_is_absent(self, resolver):
        assert not resolver.resolve_stroke(Properties({}), None)
        assert not resolver.stroke.is_visible

    def test_display_none_disables_both(self, resolver):
        props = Properties({"style": "display:none", "fill": "red", "stroke": "red"})
        assert not resolver.resolve_fill(props, None)
        assert not resolver.resolve_stroke(props, None)

    def test_none_disables_paint(self, resolver):
        assert not resolver.resolve_fill(Properties({"fill": "none"}), None)
        assert resolver.fill.alpha == 0

    def test_opacity_compounds(self, resolver):
        props = Properties({"fill": "#ff0000", "opacity": "0.5", "fill-opacity": "0.5"})
        assert resolver.resolve_fill(props, None)
        assert resolver.fill.alpha == int(255 * 0.25)

    def test_default_fill_takes_element_opacity(self, resolver):
        props = Properties({"opacity": "0.5", "fill-opacity": "0.5"})
        assert resolver.resolve_fill(props, None)
        assert (resolver.fill.color, resolver.fill.alpha) == (0x000000, 63)

    def test_inherited_paint_takes_element_opacity(self, resolver):
        group = Properties({"fill": "#ff0000", "stroke": "#0000ff"})
        resolver.resolve_fill(group, None)
        resolver.resolve_stroke(group, None)
        resolver.mark_group(group)
        props = Properties({"fill-opacity": "0.5", "stroke-opacity": "0.25"})
        assert resolver.resolve_fill(props, None)
        assert (resolver.fill.color, resolver.fill.alpha) == (0xFF0000, 127)
        assert resolver.resolve_stroke(props, None)
        assert (resolver.stroke.color, resolver.stroke.alpha) == (0x0000FF, 63)

    def test_group_resolution_skips_element_opacity(self, resolver):
        props = Properties({"fill": "#ff0000", "opacity": "0.5"})
        resolver.resolve_fill(props, None, include_opacity=False)
        assert resolver.fill.alpha == 255

    def test_missing_gradient_falls_back_to_black(self, resolver):
        assert resolver.resolve_fill(Properties({"fill": "url(#nope)"}), None)
        assert resolver.fill.color == 0x000000
        assert resolver.fill.shader is None

    def test_unrecognized_color_falls_back_to_black(self, resolver):
        assert resolver.resolve_fill(Properties({"fill": "bogus"}), None)
        assert resolver.fill.color == 0x000000

    def test_stroke_attributes(self, resolver):
        props = Properties({
            "stroke": "#00ff00",
            "stroke-width": "3",
            "stroke-dasharray": "4, 2",
            "stroke-linecap": "round",
            "stroke-linejoin": "bevel",
        })
        assert resolver.resolve_stroke(props, None)
        stroke = resolver.stroke
        assert stroke.mode is PaintMode.STROKE
        assert (stroke.color, stroke.stroke_width, stroke.dash) == (0x00FF00, 3.0, (4.0, 2.0))
        assert (stroke.cap, stroke.join) == ("round", "bevel")

    def test_color_map_replaces_and_memoizes(self, resolver, ctx):
        ctx.color_map[0xFF0000] = 0x00FF00
        resolver.resolve_fill(Properties({"fill": "red"}), None)
        assert resolver.fill.color == 0x00FF00
        resolver.resolve_fill(Properties({"fill": "blue"}), None)
        assert ctx.color_map[0x0000FF] == 0x0000FF

    def test_explicitly_set_group_paint_is_inherited(self, resolver):
        group = Properties({"fill": "#0000ff"})
        resolver.resolve_fill(group, None)
        resolver.mark_group(group)
        assert resolver.resolve_fill(Properties({}), None)
        assert resolver.fill.color == 0x0000FF

    def test_snapshot_restores_paints(self, resolver):
        snapshot = resolver.snapshot()
        resolver.resolve_fill(Properties({"fill": "#123456"}), None)
        resolver.restore(snapshot)
        assert resolver.fill.color == 0x000000
