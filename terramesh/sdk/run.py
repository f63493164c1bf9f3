from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from ..config import TerrainConfig, load_config
from ..config.schema import MeshOutputConfig, PointsOutputConfig
from ..core.exporter import MESH_FORMATS, POINT_FORMATS, export_mesh
from ..core.sampler import HeightSampler
from ..core.terrain import Terrain
from ..runtime.builders import build_sampler_config, build_terrain, build_writer


@dataclass(frozen=True)
class BuildResult:
    """Summary of a terrain build driven by a configuration file."""

    terrain: Terrain
    config: TerrainConfig
    mesh_path: Optional[Path] = None
    points_path: Optional[Path] = None
    stats: Dict[str, int] = field(default_factory=dict)


def build_from_config(
    config: Union[str, Path, TerrainConfig],
    *,
    mesh_output: Optional[Path] = None,
    points_output: Optional[Path] = None,
) -> BuildResult:
    """Build a terrain from a configuration and write the configured outputs.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~terramesh.config.schema.TerrainConfig`.
    mesh_output:
        Optional override for the mesh file. The extension drives the format
        (``.stl``, ``.ply``, ``.obj``, ``.off`` or ``.glb``). Enables mesh
        export when the configuration has none.
    points_output:
        Optional override for the sampled point cloud (``.las``, ``.laz``,
        ``.npz`` or ``.ply``). Enables sampling when the configuration has none.

    Returns
    -------
    BuildResult
        The terrain, the resolved configuration, the written paths and the
        sampler statistics (empty when no points were written).
    """

    cfg = load_config(config) if not isinstance(config, TerrainConfig) else config.model_copy(deep=True)

    if mesh_output is not None:
        out_path = Path(mesh_output).resolve()
        ext = out_path.suffix.lower()
        if ext.lstrip(".") not in MESH_FORMATS:
            raise ValueError(f"Unsupported mesh extension '{ext}'")
        ground_level = cfg.mesh.ground_level if cfg.mesh is not None else None
        cfg.mesh = MeshOutputConfig(path=out_path, ground_level=ground_level)

    if points_output is not None:
        out_path = Path(points_output).resolve()
        ext = out_path.suffix.lower()
        if ext.lstrip(".") not in POINT_FORMATS:
            raise ValueError(f"Unsupported points extension '{ext}'")
        base = cfg.points.model_dump() if cfg.points is not None else {}
        base.update(path=out_path, format=ext.lstrip("."))
        if ext == ".las":
            base["compress"] = False
        elif ext == ".laz" and base.get("compress") is None:
            base["compress"] = True
        cfg.points = PointsOutputConfig.model_validate(base)

    terrain = build_terrain(cfg)

    mesh_path: Optional[Path] = None
    if cfg.mesh is not None:
        mesh = terrain.to_mesh(cfg.mesh.ground_level)
        mesh_path = export_mesh(mesh, cfg.mesh.path, file_type=cfg.mesh.format)

    points_path: Optional[Path] = None
    stats: Dict[str, int] = {}
    if cfg.points is not None:
        sampler = HeightSampler(terrain, cfg=build_sampler_config(cfg.points))
        stats = sampler.run_to_writer(build_writer(cfg.points))
        points_path = Path(cfg.points.path)

    return BuildResult(
        terrain=terrain,
        config=cfg,
        mesh_path=mesh_path,
        points_path=points_path,
        stats=stats,
    )
