from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np
import trimesh

from .errors import ElevationSizeError, TerrainIndexError
from .geometry import IntersectionData, Ray, Triangle, TriangleIntersector
from .utils import get_logger

_log = get_logger()

ArrayLike = Union[Sequence[float], np.ndarray]


class Terrain:
    """2D grid based heightfield in the XZ plane with +Y as up vector.

    The grid is centred around the world origin: vertex ``(x, z)`` sits at
    ``((x - width/2) * scale, elevation, (z - depth/2) * scale)``. Elevations
    are stored row-major (``index = z * width + x``) as a view onto the Y
    column of the vertex array, so vertex heights always match the elevation.
    """

    #: height from which vertical probe rays are cast
    RAY_ORIGIN_HEIGHT = 10000.0

    def __init__(self, width: int, depth: int, scale: float = 1.0) -> None:
        if int(width) != width or int(depth) != depth:
            raise ValueError(f"Terrain dimensions must be whole numbers, got {width}x{depth}.")
        width = int(width)
        depth = int(depth)
        if width <= 0 or depth <= 0:
            raise ValueError(f"Terrain dimensions must be positive, got {width}x{depth}.")
        if not scale > 0:
            raise ValueError(f"Terrain scale must be positive, got {scale}.")
        self._width = width
        self._depth = depth
        self._scale = float(scale)

        zz, xx = np.mgrid[0:depth, 0:width]
        verts = np.zeros((width * depth, 3), dtype=np.float64)
        verts[:, 0] = (xx.ravel() - width * 0.5) * self._scale
        verts[:, 2] = (zz.ravel() - depth * 0.5) * self._scale
        self._vertices = verts
        self._elevation = self._vertices[:, 1]

    @classmethod
    def from_heightmap(cls, heights: ArrayLike, scale: float = 1.0) -> "Terrain":
        """Build a terrain from a 2D ``(depth, width)`` array of heights."""
        arr = np.asarray(heights, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Heightmap must be 2D (depth, width), got shape {arr.shape}.")
        depth, width = arr.shape
        return cls(width, depth, scale).set_elevation(arr)

    def __repr__(self) -> str:
        return f"Terrain(width={self._width}, depth={self._depth}, scale={self._scale})"

    # -- properties --
    @property
    def width(self) -> int:
        """Number of grid vertices along the X axis."""
        return self._width

    @property
    def depth(self) -> int:
        """Number of grid vertices along the Z axis."""
        return self._depth

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def elevation(self) -> np.ndarray:
        return self._elevation.copy()

    @property
    def vertices(self) -> np.ndarray:
        return self._vertices.copy()

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Footprint of the vertex grid as ``(min_x, max_x, min_z, max_z)``."""
        min_x = -self._width * 0.5 * self._scale
        min_z = -self._depth * 0.5 * self._scale
        max_x = (self._width - 1 - self._width * 0.5) * self._scale
        max_z = (self._depth - 1 - self._depth * 0.5) * self._scale
        return (min_x, max_x, min_z, max_z)

    def elevation_grid(self) -> np.ndarray:
        return self._elevation.reshape(self._depth, self._width).copy()

    # -- cell access --
    def get_index(self, x: int, z: int) -> int:
        """Row-major array index for the given cell, checked against the grid."""
        if x < 0 or x >= self._width or z < 0 or z >= self._depth:
            raise TerrainIndexError(x, z, self._width, self._depth)
        return int(z) * self._width + int(x)

    def get_height_at_cell(self, x: int, z: int) -> float:
        return float(self._elevation[self.get_index(x, z)])

    def vertex_at_cell(self, x: int, z: int) -> np.ndarray:
        return self._vertices[self.get_index(x, z)].copy()

    def set_height_at_cell(self, x: int, z: int, h: float) -> "Terrain":
        idx = self.get_index(x, z)
        self._elevation[idx] = float(h)
        return self

    def set_elevation(self, values: ArrayLike) -> "Terrain":
        """Replace the elevation of all cells.

        ``values`` may be flat (row-major) or shaped ``(depth, width)``. The
        size is checked before anything is written.
        """
        arr = np.asarray(values, dtype=np.float64).ravel()
        if arr.shape[0] != self._elevation.shape[0]:
            raise ElevationSizeError(self._elevation.shape[0], arr.shape[0])
        self._elevation[:] = arr
        return self

    # -- point queries --
    def _grid_coords(self, x: float, z: float) -> Optional[tuple[float, float]]:
        xx = x / self._scale + self._width * 0.5
        zz = z / self._scale + self._depth * 0.5
        if 0.0 <= xx < self._width and 0.0 <= zz < self._depth:
            return xx, zz
        return None

    def get_height_at_point(self, x: float, z: float) -> float:
        """Bilinearly interpolated elevation at a world XZ coordinate.

        Returns 0 outside the grid. Along the last row/column the +1
        neighbour is clamped, so sampling degenerates to linear/point lookup.
        """
        coords = self._grid_coords(x, z)
        if coords is None:
            return 0.0
        xx, zz = coords
        x1, z1 = int(xx), int(zz)
        x2 = min(x1 + 1, self._width - 1)
        z2 = min(z1 + 1, self._depth - 1)
        a = self.get_height_at_cell(x1, z1)
        b = self.get_height_at_cell(x2, z1)
        c = self.get_height_at_cell(x1, z2)
        d = self.get_height_at_cell(x2, z2)
        fx = xx - x1
        fz = zz - z1
        near = a + (b - a) * fx
        far = c + (d - c) * fx
        return float(near + (far - near) * fz)

    def intersect_at_point(self, x: float, z: float) -> IntersectionData:
        """Cast a vertical ray onto the terrain surface at a world XZ coordinate.

        The returned data holds the surface point, its upward facing normal
        and the ray parameter. An empty result is returned outside the grid.
        """
        coords = self._grid_coords(x, z)
        if coords is None:
            return IntersectionData()
        xx, zz = coords
        # anchor the quad so it stays non-degenerate on the last row/column
        x1 = max(min(int(xx), self._width - 2), 0)
        z1 = max(min(int(zz), self._depth - 2), 0)
        x2 = min(x1 + 1, self._width - 1)
        z2 = min(z1 + 1, self._depth - 1)
        a = self._vertices[self.get_index(x1, z1)]
        b = self._vertices[self.get_index(x2, z1)]
        c = self._vertices[self.get_index(x2, z2)]
        d = self._vertices[self.get_index(x1, z2)]

        ray = Ray(np.array([x, self.RAY_ORIGIN_HEIGHT, z]), np.array([0.0, -1.0, 0.0]))
        isect = TriangleIntersector(Triangle(a, d, b))
        if isect.intersects_ray(ray):
            return isect.intersection_data
        isect.set_triangle(Triangle(b, d, c))
        isect.intersects_ray(ray)
        return isect.intersection_data

    # -- mesh export --
    def _surface_faces(self) -> np.ndarray:
        w, d = self._width, self._depth
        if w < 2 or d < 2:
            return np.zeros((0, 3), dtype=np.int64)
        zz, xx = np.mgrid[1:d, 1:w]
        p00 = ((zz - 1) * w + (xx - 1)).ravel()
        p10 = ((zz - 1) * w + xx).ravel()
        p01 = (zz * w + (xx - 1)).ravel()
        p11 = (zz * w + xx).ravel()
        faces = np.empty((2 * p00.shape[0], 3), dtype=np.int64)
        faces[0::2] = np.column_stack([p00, p01, p10])
        faces[1::2] = np.column_stack([p10, p01, p11])
        return faces

    def _side_faces(self) -> np.ndarray:
        w, d = self._width, self._depth
        n = w * d
        faces: list[tuple[int, int, int]] = []
        for z in range(1, d):
            # left
            t0, t1 = (z - 1) * w, z * w
            g0, g1 = n + t0, n + t1
            faces.append((t0, g0, t1))
            faces.append((t1, g0, g1))
            # right
            t0, t1 = (z - 1) * w + w - 1, z * w + w - 1
            g0, g1 = n + t0, n + t1
            faces.append((t0, t1, g0))
            faces.append((t1, g1, g0))
        for x in range(1, w):
            # back
            t0, t1 = x - 1, x
            g0, g1 = n + t0, n + t1
            faces.append((t0, t1, g0))
            faces.append((t1, g1, g0))
            # front
            t0, t1 = (d - 1) * w + x - 1, (d - 1) * w + x
            g0, g1 = n + t0, n + t1
            faces.append((t0, g0, t1))
            faces.append((t1, g0, g1))
        return np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    def to_mesh(self, ground_level: Optional[float] = None) -> trimesh.Trimesh:
        """Triangulate the terrain surface.

        With ``ground_level`` the surface is closed into a solid: side panels
        drop every boundary segment down to the ground level and a bottom
        (triangulated on the same grid) seals it, e.g. for CNC fabrication or
        3D printing. Faces are wound counter-clockwise seen from outside.
        """
        surface = self._surface_faces()
        # a single row or column has no area to close into a solid
        if ground_level is None or len(surface) == 0:
            mesh = trimesh.Trimesh(vertices=self._vertices.copy(), faces=surface, process=False)
            _log.debug("Terrain surface mesh: %d vertices, %d faces", len(mesh.vertices), len(mesh.faces))
            return mesh

        n = self._vertices.shape[0]
        ground = self._vertices.copy()
        ground[:, 1] = float(ground_level)
        vertices = np.vstack([self._vertices, ground])
        bottom = surface[:, ::-1] + n
        faces = np.vstack([surface, self._side_faces(), bottom])
        mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
        _log.debug(
            "Terrain solid mesh at ground level %.3f: %d vertices, %d faces",
            ground_level, len(mesh.vertices), len(mesh.faces),
        )
        return mesh
