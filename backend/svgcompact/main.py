"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from svgcompact.config import settings
from svgcompact.errors import SvgParseError

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.svgcompact_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


async def _parse_error_handler(request: Request, exc: SvgParseError) -> JSONResponse:
    logger.info("Rejected SVG on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc), "error": type(exc).__name__})


def create_app() -> FastAPI:
    app = FastAPI(
        title="svgcompact",
        description="Streaming SVG parser — drawing operations and measured geometry",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SvgParseError, _parse_error_handler)

    from svgcompact.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
