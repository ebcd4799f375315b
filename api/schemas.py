"""Pydantic response schemas for the public routes."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    token: str = Field(min_length=1)
    ttl: int = Field(gt=0, description="Seconds the token stays valid; safe to cache that long")


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    session_mode: str
    tracked_buckets: dict[str, int]
