"""Terrain error hierarchy."""

from __future__ import annotations


class TerrainError(Exception):
    """Base error for terrain operations."""


class TerrainIndexError(TerrainError, IndexError):
    """Grid cell coordinates do not address a cell of the terrain."""

    def __init__(self, x: int, z: int, width: int, depth: int) -> None:
        self.x = x
        self.z = z
        super().__init__(
            f"the given terrain cell is invalid: {x};{z} "
            f"(grid is {width}x{depth})"
        )


class ElevationSizeError(TerrainError, ValueError):
    """Supplied elevation data does not match the terrain's cell count."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"the given elevation array size ({actual}) does not match terrain ({expected})"
        )
