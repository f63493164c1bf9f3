from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import trimesh
import yaml
from pydantic import ValidationError

from terramesh.config import TerrainConfig, load_config
from terramesh.core.errors import ElevationSizeError
from terramesh.sdk import build_from_config


def _write_config(path: Path, config: dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)


def _synthetic_config(mesh_name: str, points_name: str) -> dict:
    return {
        "grid": {"width": 8, "depth": 6, "scale": 0.5},
        "elevation": {"kind": "synthetic", "preset": "hill", "amplitude": 2.0},
        "mesh": {"path": mesh_name, "ground_level": -1.0},
        "points": {"path": points_name, "format": "npz", "attributes": ["normal", "slope", "height"]},
    }


def test_load_config_resolves_relative_paths(tmp_path: Path) -> None:
    cfg_path = tmp_path / "terrain.yaml"
    _write_config(cfg_path, _synthetic_config("out/terrain.stl", "out/points.npz"))
    cfg = load_config(cfg_path)
    assert cfg.mesh is not None and cfg.points is not None
    assert cfg.mesh.path == (tmp_path / "out" / "terrain.stl").resolve()
    assert cfg.mesh.format == "stl"
    assert cfg.points.path == (tmp_path / "out" / "points.npz").resolve()


def test_config_requires_an_output() -> None:
    with pytest.raises(ValidationError):
        TerrainConfig.model_validate({"grid": {"width": 4, "depth": 4}})


def test_config_requires_dims_for_synthetic() -> None:
    with pytest.raises(ValidationError):
        TerrainConfig.model_validate({
            "elevation": {"kind": "synthetic", "preset": "flat"},
            "mesh": {"path": "a.stl"},
        })


def test_config_rejects_unknown_mesh_extension() -> None:
    with pytest.raises(ValidationError):
        TerrainConfig.model_validate({"grid": {"width": 4, "depth": 4}, "mesh": {"path": "a.dxf"}})


def test_build_from_config_path(tmp_path: Path) -> None:
    cfg_path = tmp_path / "terrain.yaml"
    _write_config(cfg_path, _synthetic_config("terrain.stl", "points.npz"))

    result = build_from_config(cfg_path)

    assert result.terrain.width == 8 and result.terrain.depth == 6
    assert result.mesh_path is not None and result.mesh_path.exists()
    mesh = trimesh.load_mesh(str(result.mesh_path))
    assert mesh.is_watertight
    assert result.points_path is not None and result.points_path.exists()
    with np.load(result.points_path) as data:
        assert data["xyz"].shape[0] == result.stats["points"] == 48
        assert set(data.files) == {"xyz", "normal", "slope_deg", "height_m"}


def test_build_from_config_object_override(tmp_path: Path) -> None:
    cfg_path = tmp_path / "terrain.yaml"
    _write_config(cfg_path, _synthetic_config("first.stl", "first.npz"))
    cfg = load_config(cfg_path)

    mesh_override = tmp_path / "override.obj"
    points_override = tmp_path / "override.ply"
    result = build_from_config(cfg, mesh_output=mesh_override, points_output=points_override)

    assert result.mesh_path == mesh_override.resolve()
    assert result.points_path == points_override.resolve()
    assert result.config.points.format == "ply"
    assert result.config.mesh.ground_level == -1.0
    assert not (tmp_path / "first.stl").exists()
    # the original configuration is left untouched
    assert cfg.mesh.path.name == "first.stl"


def test_build_from_file_elevation(tmp_path: Path) -> None:
    heights = np.arange(12, dtype=float).reshape(3, 4)
    np.save(tmp_path / "dem.npy", heights)
    cfg_path = tmp_path / "terrain.yaml"
    _write_config(cfg_path, {
        "grid": {"scale": 2.0},
        "elevation": {"kind": "file", "path": "dem.npy", "height_scale": 0.5},
        "mesh": {"path": "dem.ply"},
    })

    result = build_from_config(cfg_path)
    terrain = result.terrain
    assert (terrain.width, terrain.depth, terrain.scale) == (4, 3, 2.0)
    assert terrain.get_height_at_cell(3, 2) == pytest.approx(5.5)
    assert result.points_path is None and result.stats == {}


def test_build_from_file_elevation_size_mismatch(tmp_path: Path) -> None:
    np.save(tmp_path / "dem.npy", np.zeros((3, 4)))
    cfg = TerrainConfig.model_validate({
        "grid": {"width": 5, "depth": 5},
        "elevation": {"kind": "file", "path": str(tmp_path / "dem.npy")},
        "mesh": {"path": str(tmp_path / "dem.stl")},
    })
    with pytest.raises(ElevationSizeError):
        build_from_config(cfg)


def test_build_rejects_unknown_override_extension(tmp_path: Path) -> None:
    cfg_path = tmp_path / "terrain.yaml"
    _write_config(cfg_path, _synthetic_config("a.stl", "a.npz"))
    with pytest.raises(ValueError):
        build_from_config(cfg_path, points_output=tmp_path / "a.xyz")
