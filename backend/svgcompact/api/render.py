"""POST /api/render and /api/rasterize — parse an SVG into ops or pixels."""

from __future__ import annotations

import asyncio
import io
import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from svgcompact.config import Settings
from svgcompact.dependencies import get_settings
from svgcompact.engine.loader import SvgLoader
from svgcompact.models.requests import RasterizeRequest, RenderRequest
from svgcompact.models.responses import RenderResponse
from svgcompact.render.drawable import ScaleMode, SvgPicture
from svgcompact.svg.colors import parse_color, rgb_tuple, to_hex

router = APIRouter()


def _color(value: str) -> int:
    color = parse_color(value)
    if color is None:
        raise HTTPException(status_code=422, detail=f"Unrecognized color: {value}")
    return color


def _loader(req: RenderRequest, color_map: dict[int, int]) -> SvgLoader:
    loader = SvgLoader.from_string(req.svg).with_color_map(color_map).with_verbosity(req.verbosity)
    if req.dynamic_texts:
        loader.with_dynamic_texts(dict(req.dynamic_texts))
    return loader


async def _load(loader: SvgLoader) -> SvgPicture:
    # Parsing is CPU-bound; keep the event loop free
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, loader.load)


@router.post("/render", response_model=RenderResponse)
async def render(req: RenderRequest) -> RenderResponse:
    start = time.perf_counter()
    color_map = {_color(k): _color(v) for k, v in req.color_map.items()}
    result = await _load(_loader(req, color_map))
    elapsed = (time.perf_counter() - start) * 1000

    picture = result.picture
    return RenderResponse(
        bounds=list(result.bounds) if result.bounds else None,
        limits=list(result.limits) if result.limits else None,
        width=picture.width,
        height=picture.height,
        ops=picture.to_dicts(),
        draw_count=len(picture.draw_ops),
        color_map={to_hex(k): to_hex(v) for k, v in color_map.items()},
        processing_time_ms=round(elapsed, 1),
    )


@router.post("/rasterize")
async def rasterize(req: RasterizeRequest, settings: Settings = Depends(get_settings)) -> Response:
    for side in (req.width, req.height):
        if side is not None and side > settings.max_raster_size:
            raise HTTPException(
                status_code=422,
                detail=f"Requested size exceeds the {settings.max_raster_size}px limit",
            )
    background = None
    if req.background is not None:
        background = (*rgb_tuple(_color(req.background)), 255)
    color_map = {_color(k): _color(v) for k, v in req.color_map.items()}
    result = await _load(_loader(req, color_map))

    def _encode() -> bytes:
        image = result.drawable(ScaleMode(req.mode)).rasterize(req.width, req.height, background)
        buf = io.BytesIO()
        image.save(buf, format="PNG")
        return buf.getvalue()

    png = await asyncio.get_running_loop().run_in_executor(None, _encode)
    return Response(content=png, media_type="image/png")
