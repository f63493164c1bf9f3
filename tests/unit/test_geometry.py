import numpy as np
import pytest

from terramesh.core.geometry import IntersectionData, Ray, Triangle, TriangleIntersector


def _down_ray(x: float, z: float) -> Ray:
    return Ray(origin=np.array([x, 10.0, z]), direction=np.array([0.0, -3.0, 0.0]))


def test_ray_normalizes_direction() -> None:
    ray = Ray(origin=[0.0, 0.0, 0.0], direction=[0.0, 4.0, 3.0])
    assert np.linalg.norm(ray.direction) == pytest.approx(1.0)
    np.testing.assert_allclose(ray.point_at(5.0), [0.0, 4.0, 3.0])


def test_triangle_normal_right_hand_rule() -> None:
    tri = Triangle([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0])
    np.testing.assert_allclose(tri.normal(), [0.0, 1.0, 0.0])
    assert tri.as_array().shape == (3, 3)


def test_empty_intersection_is_falsy() -> None:
    data = IntersectionData()
    assert not data
    assert data.point is None


def test_intersector_hits_inside() -> None:
    tri = Triangle([0.0, 1.0, 0.0], [0.0, 1.0, 2.0], [2.0, 1.0, 0.0])
    isect = TriangleIntersector(tri)
    assert isect.intersects_ray(_down_ray(0.5, 0.5))
    data = isect.intersection_data
    np.testing.assert_allclose(data.point, [0.5, 1.0, 0.5])
    np.testing.assert_allclose(data.normal, [0.0, 1.0, 0.0])
    np.testing.assert_allclose(data.direction, [0.0, -1.0, 0.0])
    assert data.distance == pytest.approx(9.0)


def test_intersector_counts_edges_as_hits() -> None:
    tri = Triangle([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0])
    isect = TriangleIntersector(tri)
    assert isect.intersect(_down_ray(0.0, 0.0)).hit
    assert isect.intersect(_down_ray(0.5, 0.5)).hit


def test_intersector_misses_outside_and_behind() -> None:
    tri = Triangle([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0])
    isect = TriangleIntersector(tri)
    assert not isect.intersect(_down_ray(0.8, 0.8))
    behind = Ray(origin=[0.2, -1.0, 0.2], direction=[0.0, -1.0, 0.0])
    assert not isect.intersect(behind)


def test_intersector_parallel_ray_misses() -> None:
    tri = Triangle([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0])
    ray = Ray(origin=[-1.0, 0.0, 0.2], direction=[1.0, 0.0, 0.0])
    assert not TriangleIntersector(tri).intersect(ray)


def test_intersector_normal_faces_ray_for_back_side() -> None:
    # clockwise seen from above: geometric normal points down
    tri = Triangle([0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0])
    data = TriangleIntersector(tri).intersect(_down_ray(0.2, 0.2))
    assert data
    np.testing.assert_allclose(data.normal, [0.0, 1.0, 0.0])


def test_set_triangle_and_missing_triangle() -> None:
    isect = TriangleIntersector()
    with pytest.raises(RuntimeError):
        isect.intersect(_down_ray(0.0, 0.0))
    isect.set_triangle(Triangle([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]))
    assert isect.intersects_ray(_down_ray(0.1, 0.1))
