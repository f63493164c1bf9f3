from collections import Counter
from pathlib import Path

import numpy as np
import pytest
import trimesh

from terramesh.core.terrain import Terrain
from terramesh.shell import MeshShell


def test_starts_with_plane() -> None:
    shell = MeshShell()
    assert len(shell.mesh.faces) == 2
    np.testing.assert_allclose(shell.mesh.bounds, [[-400.0, 0.0, -400.0], [400.0, 0.0, 400.0]])


@pytest.mark.parametrize("key,faces", [("1", 2), ("2", 12)])
def test_number_keys_select_meshes(key, faces) -> None:
    shell = MeshShell()
    shell.press(key)
    assert len(shell.mesh.faces) == faces


@pytest.mark.parametrize("key", ["3", "4"])
def test_number_keys_select_closed_primitives(key) -> None:
    shell = MeshShell()
    shell.press(key)
    assert shell.mesh.is_watertight
    assert shell.mesh.volume > 0.0


def test_cylinder_is_y_up() -> None:
    shell = MeshShell()
    shell.init_mesh(2)
    extents = shell.mesh.extents
    assert extents[1] == pytest.approx(400.0)


def test_file_mesh_needs_path(tmp_path: Path) -> None:
    shell = MeshShell()
    with pytest.raises(ValueError):
        shell.press("5")
    path = tmp_path / "box.stl"
    trimesh.creation.box(extents=(1.0, 1.0, 1.0)).export(str(path))
    shell = MeshShell(mesh_path=path)
    shell.press("5")
    assert len(shell.mesh.faces) == 12


def test_unknown_mesh_id_raises() -> None:
    with pytest.raises(ValueError):
        MeshShell().init_mesh(9)


def test_subdivide_quadruples_faces_and_alternates_displacement() -> None:
    shell = MeshShell()
    shell.init_mesh(1)
    shell.press("s")
    assert shell.depth == 1
    assert len(shell.mesh.faces) == 48
    # first pass pushes the new edge midpoints outwards
    assert np.max(np.abs(shell.mesh.vertices)) > 100.0
    shell.press("s")
    assert shell.depth == 2
    assert len(shell.mesh.faces) == 192


def test_smooth_keeps_topology() -> None:
    shell = MeshShell()
    shell.init_mesh(1)
    shell.subdivide()
    before = np.array(shell.mesh.vertices)
    shell.press("l")
    assert len(shell.mesh.vertices) == len(before)
    assert not np.allclose(shell.mesh.vertices, before)


def test_voxelize_rebuilds_mesh() -> None:
    shell = MeshShell()
    shell.init_mesh(1)
    mesh = shell.voxelize(resolution=4)
    assert mesh is shell.mesh
    assert len(mesh.faces) > 0
    assert np.all(mesh.extents > 150.0)


def test_save_writes_stl(tmp_path: Path) -> None:
    shell = MeshShell(output_dir=tmp_path)
    shell.init_mesh(1)
    shell.press("x")
    assert len(shell.saved) == 1
    assert shell.saved[0].suffix == ".stl"
    assert len(trimesh.load_mesh(str(shell.saved[0])).faces) == 12


def test_view_state_keys() -> None:
    shell = MeshShell()
    shell.replay("wn==-?")
    assert shell.wireframe and shell.show_normals
    assert shell.zoom == pytest.approx(1.6)


def test_load_terrain() -> None:
    shell = MeshShell()
    mesh = shell.load_terrain(Terrain(3, 3, 1.0), ground_level=-1.0)
    assert mesh.is_watertight


def test_perforate_key_opens_a_hole_in_every_face() -> None:
    shell = MeshShell()
    shell.press("2")
    normals = np.array(shell.mesh.face_normals)

    shell.press("h")

    mesh = shell.mesh
    assert len(mesh.faces) == 12 * 6
    assert len(mesh.vertices) == 8 + 12 * 3
    edges = Counter(tuple(sorted(e)) for f in mesh.faces for e in ((f[0], f[1]), (f[1], f[2]), (f[2], f[0])))
    boundary = [e for e, n in edges.items() if n == 1]
    assert len(boundary) == 12 * 3
    assert all(min(e) >= 8 for e in boundary)
    assert not mesh.is_watertight
    # ring triangles keep the orientation of the face they replace
    assert np.all(np.einsum("ij,ij->i", mesh.face_normals, np.repeat(normals, 6, axis=0)) > 0.0)


def test_perforate_hole_is_shrunk_face() -> None:
    shell = MeshShell()
    shell.perforate(ratio=0.5)
    plane = MeshShell().mesh
    tri = plane.vertices[plane.faces[0]]
    centroid = tri.mean(axis=0)
    np.testing.assert_allclose(shell.mesh.vertices[4:7], centroid + (tri - centroid) * 0.5)


@pytest.mark.parametrize("ratio", [0.0, 1.0, 1.5])
def test_perforate_rejects_bad_ratio(ratio) -> None:
    with pytest.raises(ValueError):
        MeshShell().perforate(ratio)
