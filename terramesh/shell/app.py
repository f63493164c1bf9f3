from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

import numpy as np
import trimesh

from ..core.exporter import export_mesh
from ..core.terrain import Terrain
from ..core.utils import get_logger

_log = get_logger()

MESH_PRESETS = ("plane", "box", "cylinder", "pyramid", "file")

# trimesh primitives are built along +Z; the shell works Y-up like Terrain
_Z_TO_Y = trimesh.transformations.rotation_matrix(-np.pi / 2.0, [1.0, 0.0, 0.0])


def _plane(size: float = 400.0) -> trimesh.Trimesh:
    mesh = Terrain(2, 2, scale=2.0 * size).to_mesh()
    mesh.apply_translation([size, 0.0, size])
    return mesh


class MeshShell:
    """Application shell around a single mutable mesh.

    Commands are explicit methods; :meth:`press` maps the classic single-key
    bindings onto them. Subdivision, smoothing, voxelization and STL export
    are delegated to trimesh. Viewer state (zoom, wireframe, normals) is kept
    for a front-end to read but nothing is rendered here.
    """

    def __init__(self, mesh_path: Optional[Path] = None, output_dir: Optional[Path] = None) -> None:
        self.mesh_path = Path(mesh_path) if mesh_path is not None else None
        self.output_dir = Path(output_dir) if output_dir is not None else Path.cwd()
        self.mesh: trimesh.Trimesh = _plane()
        self.depth = 0
        self.wireframe = False
        self.show_normals = False
        self.zoom = 1.5
        self.saved: list[Path] = []
        self._bindings: Dict[str, Callable[[], object]] = {
            "s": self.subdivide,
            "l": self.smooth,
            "h": self.perforate,
            "v": self.voxelize,
            "x": self.save,
            "w": self.toggle_wireframe,
            "n": self.toggle_normals,
            "-": lambda: self.zoom_by(-0.1),
            "=": lambda: self.zoom_by(0.1),
        }

    # -- key dispatch --
    def press(self, key: str) -> None:
        if len(key) == 1 and "1" <= key <= "5":
            self.init_mesh(ord(key) - ord("1"))
            return
        action = self._bindings.get(key)
        if action is None:
            _log.debug("No binding for key %r", key)
            return
        action()

    def replay(self, keys: str) -> None:
        for key in keys:
            self.press(key)

    # -- commands --
    def init_mesh(self, mesh_id: int) -> trimesh.Trimesh:
        if mesh_id == 0:
            mesh = _plane()
        elif mesh_id == 1:
            mesh = trimesh.creation.box(extents=(200.0, 200.0, 200.0))
        elif mesh_id == 2:
            mesh = trimesh.creation.cylinder(radius=200.0, height=400.0, sections=8)
            mesh.apply_transform(_Z_TO_Y)
        elif mesh_id == 3:
            mesh = trimesh.creation.cone(radius=200.0, height=200.0, sections=3)
            mesh.apply_transform(_Z_TO_Y)
        elif mesh_id == 4:
            if self.mesh_path is None:
                raise ValueError("Mesh id 4 needs a mesh_path to load from.")
            mesh = trimesh.load_mesh(str(self.mesh_path))
        else:
            raise ValueError(f"Unknown mesh id {mesh_id}; expected 0..4.")
        self.mesh = mesh
        self.depth = 0
        _log.info("Loaded %s mesh: %d faces", MESH_PRESETS[mesh_id], len(mesh.faces))
        return mesh

    def load_terrain(self, terrain: Terrain, ground_level: Optional[float] = None) -> trimesh.Trimesh:
        self.mesh = terrain.to_mesh(ground_level)
        self.depth = 0
        return self.mesh

    def subdivide(self) -> trimesh.Trimesh:
        """Midpoint subdivision; new vertices are pushed away from (or towards) the centroid."""
        amount = 0.25 if self.depth % 3 == 0 else -0.55
        centroid = self.mesh.centroid.copy()
        n_old = len(self.mesh.vertices)
        mesh = self.mesh.subdivide()
        verts = np.array(mesh.vertices, dtype=np.float64)
        mids = verts[n_old:]
        verts[n_old:] = mids + (mids - centroid) * amount
        mesh = trimesh.Trimesh(vertices=verts, faces=mesh.faces, process=False)
        mesh.fix_normals()
        self.depth += 1
        self.mesh = mesh
        _log.info("Subdivision %d (displacement %.2f): %d faces", self.depth, amount, len(mesh.faces))
        return mesh

    def smooth(self, iterations: int = 1) -> trimesh.Trimesh:
        trimesh.smoothing.filter_laplacian(self.mesh, iterations=iterations)
        return self.mesh

    def perforate(self, ratio: float = 0.85) -> trimesh.Trimesh:
        """Replace every face by a ring of six triangles around a hole.

        The hole is the face shrunk towards its centroid by ``ratio``; each
        face gets its own three inner vertices so the holes stay open.
        """
        if not 0.0 < ratio < 1.0:
            raise ValueError(f"Perforation ratio must be in (0, 1), got {ratio}.")
        verts = np.asarray(self.mesh.vertices, dtype=np.float64)
        faces = np.asarray(self.mesh.faces, dtype=np.int64)
        tri = verts[faces]
        centroid = tri.mean(axis=1, keepdims=True)
        inner = centroid + (tri - centroid) * ratio

        a, b, c = faces.T
        a2, b2, c2 = (len(verts) + np.arange(3 * len(faces)).reshape(-1, 3)).T
        ring = np.array([
            [a, b, b2], [a, b2, a2],
            [b, c, c2], [b, c2, b2],
            [c, a, a2], [c, a2, c2],
        ])
        new_faces = ring.transpose(2, 0, 1).reshape(-1, 3)
        self.mesh = trimesh.Trimesh(
            vertices=np.vstack([verts, inner.reshape(-1, 3)]), faces=new_faces, process=False
        )
        _log.info("Perforated at %.2f: %d faces", ratio, len(new_faces))
        return self.mesh

    def voxelize(self, resolution: int = 128) -> trimesh.Trimesh:
        """Rebuild the mesh as the surface of its filled voxelization."""
        extent = float(np.max(self.mesh.extents))
        if extent <= 0.0:
            raise ValueError("Cannot voxelize a mesh without spatial extent.")
        pitch = extent / float(resolution)
        grid = self.mesh.voxelized(pitch).fill().hollow()
        self.mesh = grid.as_boxes()
        _log.info("Voxelized at pitch %.4f: %d faces", pitch, len(self.mesh.faces))
        return self.mesh

    def save(self, path: Optional[Path] = None) -> Path:
        if path is None:
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
            path = self.output_dir / f"subdiv-{stamp}.stl"
        out = export_mesh(self.mesh, path, file_type="stl")
        self.saved.append(out)
        return out

    def toggle_wireframe(self) -> bool:
        self.wireframe = not self.wireframe
        return self.wireframe

    def toggle_normals(self) -> bool:
        self.show_normals = not self.show_normals
        return self.show_normals

    def zoom_by(self, delta: float) -> float:
        self.zoom += delta
        return self.zoom
