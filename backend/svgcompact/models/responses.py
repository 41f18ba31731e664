"""API response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"


class RenderResponse(BaseModel):
    bounds: list[float] | None = Field(default=None, description="Document rectangle (left, top, right, bottom)")
    limits: list[float] | None = Field(default=None, description="Bounds of everything drawn; null if empty")
    width: float = 0.0
    height: float = 0.0
    ops: list[dict[str, Any]] = Field(default_factory=list)
    draw_count: int = 0
    color_map: dict[str, str] = Field(default_factory=dict, description="Colors seen, with their replacement")
    processing_time_ms: float = 0.0
