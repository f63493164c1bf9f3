from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Optional, Union, List

import yaml
from pydantic import BaseModel, Field, model_validator


class GridConfig(BaseModel):
    width: Optional[int] = Field(default=None, gt=0)
    depth: Optional[int] = Field(default=None, gt=0)
    scale: float = Field(default=1.0, gt=0)


class FileElevationConfig(BaseModel):
    kind: Literal["file"]
    path: Path
    height_scale: float = 1.0


class SyntheticElevationConfig(BaseModel):
    kind: Literal["synthetic"]
    preset: Literal["flat", "ramp", "hill", "pyramid", "noise"] = "hill"
    amplitude: float = 1.0
    seed: Optional[int] = None


ElevationConfig = Annotated[
    Union[FileElevationConfig, SyntheticElevationConfig],
    Field(discriminator="kind"),
]


class MeshOutputConfig(BaseModel):
    path: Path
    format: Optional[Literal["stl", "ply", "obj", "off", "glb"]] = None
    ground_level: Optional[float] = None

    @model_validator(mode="after")
    def _infer_format(self) -> "MeshOutputConfig":
        if self.format is None:
            ext = self.path.suffix.lower().lstrip(".")
            if ext not in {"stl", "ply", "obj", "off", "glb"}:
                raise ValueError(f"Cannot infer mesh format from extension '{self.path.suffix}'")
            self.format = ext  # type: ignore[assignment]
        return self


class PointsOutputConfig(BaseModel):
    path: Path
    format: Literal["las", "laz", "npz", "ply"] = "las"
    compress: Optional[bool] = None
    point_format: int = 6
    step: Optional[float] = Field(default=None, gt=0)
    batch_size: int = 100_000
    attributes: List[str] = Field(default_factory=lambda: ["normal", "slope", "height"])
    z_up: bool = True

    @model_validator(mode="after")
    def _validate_format(self) -> "PointsOutputConfig":
        if self.format == "laz" and self.compress is False:
            raise ValueError("format 'laz' implies compress=True")
        return self


class TerrainConfig(BaseModel):
    grid: GridConfig = GridConfig()
    elevation: Optional[ElevationConfig] = None
    mesh: Optional[MeshOutputConfig] = None
    points: Optional[PointsOutputConfig] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "TerrainConfig":
        needs_dims = self.elevation is None or self.elevation.kind == "synthetic"
        if needs_dims and (self.grid.width is None or self.grid.depth is None):
            raise ValueError("grid.width and grid.depth are required unless elevation is loaded from a file")
        if self.mesh is None and self.points is None:
            raise ValueError("Configure at least one output: 'mesh' or 'points'")
        return self


def load_config(path: str | Path) -> TerrainConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = TerrainConfig.model_validate(data)
    base = path.parent
    if cfg.mesh is not None:
        cfg.mesh.path = (base / cfg.mesh.path).resolve()
    if cfg.points is not None:
        cfg.points.path = (base / cfg.points.path).resolve()
    if isinstance(cfg.elevation, FileElevationConfig) and not cfg.elevation.path.is_absolute():
        cfg.elevation.path = (base / cfg.elevation.path).resolve()
    return cfg
