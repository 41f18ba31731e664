"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    svgcompact_env: str = "development"
    svgcompact_log_level: str = "info"

    # Per-parse diagnostic verbosity: "error", "warn" or "info"
    svgcompact_verbosity: str = "error"

    # Document size used when <svg> has neither viewBox nor width/height
    fallback_size: float = 100.0

    # Bytes handed to the markup parser per feed() call
    read_chunk_size: int = 64 * 1024

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Upper bound for /api/rasterize output, per side
    max_raster_size: int = 4096

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
