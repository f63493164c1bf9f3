from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import numpy as np

from .utils import normalize


def _vec3(v) -> np.ndarray:
    arr = np.asarray(v, dtype=np.float64).reshape(3)
    return arr.copy()


@dataclass
class Ray:
    origin: np.ndarray      # (3,)
    direction: np.ndarray   # (3,) unit

    def __post_init__(self) -> None:
        self.origin = _vec3(self.origin)
        self.direction = normalize(_vec3(self.direction))

    def point_at(self, t: float) -> np.ndarray:
        return self.origin + self.direction * t


@dataclass
class Triangle:
    """Three corner points; counter-clockwise order defines the front face."""
    a: np.ndarray
    b: np.ndarray
    c: np.ndarray

    def __post_init__(self) -> None:
        self.a = _vec3(self.a)
        self.b = _vec3(self.b)
        self.c = _vec3(self.c)

    def normal(self) -> np.ndarray:
        return normalize(np.cross(self.b - self.a, self.c - self.a))

    def as_array(self) -> np.ndarray:
        return np.vstack([self.a, self.b, self.c])


@dataclass
class IntersectionData:
    hit: bool = False
    point: Optional[np.ndarray] = None
    normal: Optional[np.ndarray] = None
    distance: float = 0.0           # ray parameter t at the hit
    direction: Optional[np.ndarray] = None

    def __bool__(self) -> bool:
        return self.hit


class TriangleIntersector:
    """Moller-Trumbore ray/triangle test against a single triangle."""

    def __init__(self, triangle: Optional[Triangle] = None, epsilon: float = 1e-8) -> None:
        self.triangle = triangle
        self.epsilon = float(epsilon)
        self.intersection_data = IntersectionData()

    def set_triangle(self, triangle: Triangle) -> "TriangleIntersector":
        self.triangle = triangle
        return self

    def intersects_ray(self, ray: Ray) -> bool:
        self.intersection_data = self.intersect(ray)
        return self.intersection_data.hit

    def intersect(self, ray: Ray) -> IntersectionData:
        if self.triangle is None:
            raise RuntimeError("TriangleIntersector has no triangle set.")
        tri = self.triangle
        edge1 = tri.b - tri.a
        edge2 = tri.c - tri.a
        pvec = np.cross(ray.direction, edge2)
        det = float(np.dot(edge1, pvec))
        if abs(det) < self.epsilon:
            return IntersectionData()
        inv_det = 1.0 / det
        tvec = ray.origin - tri.a
        u = float(np.dot(tvec, pvec)) * inv_det
        if u < 0.0 or u > 1.0:
            return IntersectionData()
        qvec = np.cross(tvec, edge1)
        v = float(np.dot(ray.direction, qvec)) * inv_det
        if v < 0.0 or (u + v) > 1.0:
            return IntersectionData()
        t = float(np.dot(edge2, qvec)) * inv_det
        if t < 0.0:
            return IntersectionData()

        normal = tri.normal()
        # report the side facing the ray
        if float(np.dot(normal, ray.direction)) > 0.0:
            normal = -normal
        return IntersectionData(
            hit=True,
            point=ray.point_at(t),
            normal=normal,
            distance=t,
            direction=ray.direction.copy(),
        )
