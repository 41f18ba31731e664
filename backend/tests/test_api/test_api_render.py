"""Tests for the HTTP endpoints."""

from __future__ import annotations

import io

from fastapi.testclient import TestClient
from PIL import Image

from svgcompact.main import app
from tests.conftest import GRADIENT_SVG, RED_RECT_SVG, TEXT_SVG, UNIT_MIX_SVG


client = TestClient(app)


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_render_red_rect():
    response = client.post("/api/render", json={"svg": RED_RECT_SVG})
    assert response.status_code == 200
    data = response.json()
    assert data["bounds"] == [0, 0, 10, 10]
    assert data["limits"] == [0, 0, 10, 10]
    assert data["draw_count"] == 1
    assert (data["width"], data["height"]) == (10, 10)
    rect = [op for op in data["ops"] if op["op"] == "rect"][0]
    assert rect["paint"]["color"] == "#FF0000"
    assert data["color_map"] == {"#FF0000": "#FF0000"}
    assert data["processing_time_ms"] >= 0


def test_render_with_color_map_and_texts():
    response = client.post(
        "/api/render",
        json={"svg": TEXT_SVG, "color_map": {"#00ff00": "#123456"}, "dynamic_texts": {"Hi": "Hello"}},
    )
    assert response.status_code == 200
    text = [op for op in response.json()["ops"] if op["op"] == "text"][0]
    assert text["text"] == "Hello"
    assert text["paint"]["color"] == "#123456"


def test_render_gradient_reports_id():
    response = client.post("/api/render", json={"svg": GRADIENT_SVG})
    rect = [op for op in response.json()["ops"] if op["op"] == "rect"][0]
    assert rect["paint"]["gradient"] == "fade"


def test_render_empty_document():
    response = client.post("/api/render", json={"svg": '<svg viewBox="0 0 5 5"/>'})
    assert response.status_code == 200
    assert response.json()["limits"] is None


def test_invalid_svg_is_unprocessable():
    response = client.post("/api/render", json={"svg": "<not-svg>"})
    assert response.status_code == 422
    assert response.json()["error"] == "SvgParseError"


def test_unit_mixing_is_unprocessable():
    response = client.post("/api/render", json={"svg": UNIT_MIX_SVG})
    assert response.status_code == 422
    assert response.json()["error"] == "UnitMixingError"


def test_bad_color_map_entry():
    response = client.post("/api/render", json={"svg": RED_RECT_SVG, "color_map": {"nope": "#000"}})
    assert response.status_code == 422


def test_bad_verbosity():
    response = client.post("/api/render", json={"svg": RED_RECT_SVG, "verbosity": "loud"})
    assert response.status_code == 422


def test_rasterize_png():
    response = client.post("/api/rasterize", json={"svg": RED_RECT_SVG, "width": 20, "height": 20})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    image = Image.open(io.BytesIO(response.content))
    assert image.size == (20, 20)
    assert image.convert("RGBA").getpixel((10, 10)) == (255, 0, 0, 255)


def test_rasterize_with_background():
    response = client.post(
        "/api/rasterize",
        json={"svg": RED_RECT_SVG, "width": 20, "height": 10, "background": "white"},
    )
    image = Image.open(io.BytesIO(response.content)).convert("RGBA")
    assert image.getpixel((1, 5)) == (255, 255, 255, 255)


def test_rasterize_rejects_oversize():
    response = client.post("/api/rasterize", json={"svg": RED_RECT_SVG, "width": 100000})
    assert response.status_code == 422


def test_rasterize_rejects_bad_background():
    response = client.post("/api/rasterize", json={"svg": RED_RECT_SVG, "background": "nope"})
    assert response.status_code == 422
