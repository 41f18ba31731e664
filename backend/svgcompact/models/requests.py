"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RenderRequest(BaseModel):
    svg: str = Field(..., description="Raw SVG code")
    color_map: dict[str, str] = Field(
        default_factory=dict,
        description="Color replacements as hex pairs (e.g. {'#ff0000': '#00ff00'})",
    )
    dynamic_texts: dict[str, str] = Field(
        default_factory=dict,
        description="Text content substitutions by exact match",
    )
    verbosity: str = Field(default="error", pattern="^(error|warn|info)$")


class RasterizeRequest(RenderRequest):
    width: int | None = Field(default=None, ge=1, description="Output width in pixels")
    height: int | None = Field(default=None, ge=1, description="Output height in pixels")
    mode: str = Field(default="fit", pattern="^(fit|stretch)$", description="Scale mode")
    background: str | None = Field(default=None, description="Background color, transparent when unset")
