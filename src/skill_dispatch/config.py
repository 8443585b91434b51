"""Configuration models for recognition and dispatch."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChainConfig(BaseModel):
    """Configures acceptance and processing limits of a skill chain."""

    acceptance_threshold: float = Field(default=0.5, ge=0.0, lt=1.0)
    process_timeout_seconds: float = Field(default=10.0, gt=0.0)


class DispatchConfig(BaseModel):
    """Configures section scoring and dispatch bookkeeping."""

    chain: ChainConfig = Field(default_factory=ChainConfig)
    scoring_workers: int = Field(default=1, ge=1)
    trace_limit: int = Field(default=1000, ge=1)
