from __future__ import annotations

from ..config import TerrainConfig
from ..config.schema import PointsOutputConfig
from ..core.exporter import writer_for_path
from ..core.sampler import SamplerConfig
from ..core.terrain import Terrain
from ..core.utils import get_logger
from ..examples.synthetic import generate_elevation, load_elevation

_log = get_logger()


def build_terrain(cfg: TerrainConfig) -> Terrain:
    grid = cfg.grid
    elev_cfg = cfg.elevation
    if elev_cfg is None:
        return Terrain(grid.width, grid.depth, grid.scale)

    if elev_cfg.kind == "synthetic":
        heights = generate_elevation(
            elev_cfg.preset,
            grid.width,
            grid.depth,
            amplitude=elev_cfg.amplitude,
            seed=elev_cfg.seed,
        )
        return Terrain.from_heightmap(heights, scale=grid.scale)

    if elev_cfg.kind == "file":
        heights = load_elevation(elev_cfg.path) * elev_cfg.height_scale
        if grid.width is not None and grid.depth is not None:
            terrain = Terrain(grid.width, grid.depth, grid.scale)
            terrain.set_elevation(heights)
        elif heights.ndim == 2:
            terrain = Terrain.from_heightmap(heights, scale=grid.scale)
        else:
            raise ValueError(
                f"Elevation file {elev_cfg.path.name} is not 2D; set grid.width and grid.depth"
            )
        _log.info("Loaded %s elevation from %s", "x".join(map(str, heights.shape)), elev_cfg.path.name)
        return terrain

    raise ValueError(f"Unsupported elevation kind: {elev_cfg.kind}")


def build_sampler_config(points_cfg: PointsOutputConfig) -> SamplerConfig:
    return SamplerConfig(
        step=points_cfg.step,
        batch_size=points_cfg.batch_size,
        attributes=list(points_cfg.attributes),
        z_up=points_cfg.z_up,
    )


def build_writer(points_cfg: PointsOutputConfig):
    return writer_for_path(
        points_cfg.path,
        fmt=points_cfg.format,
        compress=points_cfg.compress,
        point_format=points_cfg.point_format,
    )
