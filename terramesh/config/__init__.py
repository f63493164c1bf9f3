"""Configuration loading utilities for terramesh."""

from .schema import (
    TerrainConfig,
    load_config,
)

__all__ = ["TerrainConfig", "load_config"]
