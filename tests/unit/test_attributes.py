import numpy as np
import pytest

from terramesh.core.attributes import AspectComputer, HeightComputer, NormalComputer, SlopeComputer
from terramesh.core.pointcloud import PointBatch
from terramesh.core.terrain import Terrain


def make_batch(n: int, **attrs: np.ndarray) -> PointBatch:
    xyz = np.zeros((n, 3), dtype=np.float64)
    return PointBatch(xyz=xyz, attrs={k: v for k, v in attrs.items()})


def test_normal_computer_normalizes() -> None:
    batch = make_batch(2, _normal=np.array([[0.0, 2.0, 0.0], [1.0, 1.0, 0.0]]))
    NormalComputer().compute(batch, Terrain(2, 2))
    np.testing.assert_allclose(np.linalg.norm(batch.attrs["normal"], axis=1), 1.0, rtol=1e-6)
    assert batch.attrs["normal"].dtype == np.float32


def test_normal_computer_requires_private_normals() -> None:
    with pytest.raises(ValueError):
        NormalComputer().compute(make_batch(1), Terrain(2, 2))


def test_slope_zero_for_flat_and_increases_with_tilt() -> None:
    normals = np.array([[0.0, 1.0, 0.0], [np.sqrt(0.5), np.sqrt(0.5), 0.0], [1.0, 0.2, 0.0]])
    batch = make_batch(3, _normal=normals)
    SlopeComputer().compute(batch, Terrain(2, 2))
    slope = batch.attrs["slope_deg"]
    assert slope[0] == pytest.approx(0.0, abs=1e-4)
    assert slope[1] == pytest.approx(45.0, abs=1e-4)
    assert slope[2] > slope[1]


def test_aspect_points_downhill() -> None:
    normals = np.array([
        [0.0, 1.0, -1.0],   # descends towards -Z
        [1.0, 1.0, 0.0],    # descends towards +X
        [0.0, 1.0, 1.0],    # descends towards +Z
        [0.0, 1.0, 0.0],    # flat
    ])
    batch = make_batch(4, _normal=normals)
    AspectComputer().compute(batch, Terrain(2, 2))
    np.testing.assert_allclose(batch.attrs["aspect_deg"], [0.0, 90.0, 180.0, 0.0], atol=1e-4)


def test_height_computer_reads_y() -> None:
    batch = PointBatch(xyz=np.array([[0.0, 1.5, 0.0], [2.0, -0.5, 1.0]]))
    HeightComputer().compute(batch, Terrain(2, 2))
    np.testing.assert_allclose(batch.attrs["height_m"], [1.5, -0.5])
