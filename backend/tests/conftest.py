"""Shared test fixtures."""

from __future__ import annotations

from xml.etree import ElementTree

import pytest

from svgcompact.engine.context import ParseContext, SvgElementListener, Verbosity
from svgcompact.engine.driver import SvgHandler
from svgcompact.render.drawable import SvgPicture
from svgcompact.svg.gradients import GradientRegistry
from svgcompact.svg.style import StyleResolver


# Sample SVGs

RED_RECT_SVG = '<svg viewBox="0 0 10 10"><rect width="10" height="10" fill="#ff0000"/></svg>'

STROKED_LINE_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 20 20">
  <line x1="0" y1="0" x2="10" y2="0" stroke="#000000" stroke-width="4"/>
</svg>'''

HIDDEN_GROUP_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10">
  <g style="display:none">
    <rect width="5" height="5"/>
    <g>
      <circle cx="2" cy="2" r="1"/>
    </g>
  </g>
</svg>'''

GRADIENT_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" viewBox="0 0 100 100">
  <defs>
    <linearGradient id="fade" xlink:href="#base"/>
    <linearGradient id="base" x1="0" y1="0" x2="1" y2="0">
      <stop offset="0" stop-color="#ff0000"/>
      <stop offset="1" stop-color="#0000ff"/>
    </linearGradient>
  </defs>
  <rect x="0" y="0" width="100" height="100" fill="url(#fade)"/>
</svg>'''

OPACITY_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10">
  <rect width="10" height="10" fill="#ff0000" opacity="0.5" fill-opacity="0.5"/>
</svg>'''

GROUP_OPACITY_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10">
  <g opacity="0.5">
    <rect width="10" height="10" fill="#ff0000"/>
  </g>
</svg>'''

UNIT_MIX_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="100pt" height="100pt">
  <rect width="10mm" height="10mm"/>
</svg>'''

PT_ONLY_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="100pt" height="100pt">
  <rect x="1pt" width="10pt" height="10pt"/>
</svg>'''

TEXT_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100">
  <text x="5" y="20" fill="#00ff00" font-size="12">Hi</text>
</svg>'''

ICON_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24" fill="none" stroke="#333333" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">
  <g>
    <path d="M3 10a2 2 0 0 1 .709-1.528l7-5.999a2 2 0 0 1 2.582 0l7 5.999A2 2 0 0 1 21 10v9a2 2 0 0 1-2 2H5a2 2 0 0 1-2-2z"/>
    <circle cx="12" cy="14" r="3"/>
  </g>
</svg>'''


class RecordingListener(SvgElementListener):
    """Collects every listener callback; optionally skips or replaces elements."""

    def __init__(self, skip: set[str] | None = None, replace: dict[str, object] | None = None) -> None:
        self.skip = skip or set()
        self.replace = replace or {}
        self.events: list[tuple] = []

    def on_svg_start(self, canvas, bounds):
        self.events.append(("start", bounds))

    def on_svg_end(self, canvas, bounds):
        self.events.append(("end", bounds))

    def before_draw(self, element_id, element, bounds, paint):
        self.events.append(("before", element_id, bounds))
        if element_id in self.skip:
            return None
        return self.replace.get(element_id, element)

    def after_draw(self, element_id, element, paint):
        self.events.append(("after", element_id))


def run_handler(svg: str, ctx: ParseContext | None = None) -> tuple[SvgHandler, SvgPicture]:
    """Drive the document handler directly so tests can inspect its state."""
    handler = SvgHandler(ctx or ParseContext())
    parser = ElementTree.XMLParser(target=handler)
    parser.feed(svg)
    return handler, parser.close()


@pytest.fixture
def ctx() -> ParseContext:
    return ParseContext(verbosity=Verbosity.INFO)


@pytest.fixture
def resolver(ctx: ParseContext) -> StyleResolver:
    return StyleResolver(ctx, GradientRegistry(ctx))


@pytest.fixture
def red_rect_svg() -> str:
    return RED_RECT_SVG


@pytest.fixture
def icon_svg() -> str:
    return ICON_SVG
