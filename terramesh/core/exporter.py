from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple, Union
import numpy as np
import pathlib

import laspy  # type: ignore
import trimesh

from .pointcloud import PointBatch
from .utils import get_logger

_log = get_logger()

MESH_FORMATS = {"stl", "ply", "obj", "off", "glb"}
POINT_FORMATS = {"las", "laz", "npz", "ply"}

# sampled attribute -> per-component LAS extra-bytes names (all float32)
_EXTRA_DIMS: Dict[str, Tuple[str, ...]] = {
    "normal": ("NormalX", "NormalY", "NormalZ"),
    "slope_deg": ("Slope",),
    "aspect_deg": ("Aspect",),
    "height_m": ("Height",),
}

# LAS class code for ground points
GROUND_CLASS = 2


def _columns(batch: PointBatch) -> List[Tuple[str, np.ndarray]]:
    """Flatten the known terrain attributes of a batch into named float32 columns."""
    cols: List[Tuple[str, np.ndarray]] = []
    for attr, names in _EXTRA_DIMS.items():
        values = batch.attrs.get(attr)
        if values is None:
            continue
        values = np.asarray(values, dtype=np.float32).reshape(len(batch), len(names))
        cols.extend((name, values[:, i]) for i, name in enumerate(names))
    return cols


def export_mesh(mesh: trimesh.Trimesh, path: Union[str, pathlib.Path], file_type: Optional[str] = None) -> pathlib.Path:
    """Write a mesh with trimesh's exporters; the format follows the suffix unless given."""
    path = pathlib.Path(path)
    fmt = (file_type or path.suffix.lstrip(".")).lower()
    if fmt not in MESH_FORMATS:
        raise ValueError(f"Unsupported mesh format '{fmt}'")
    path.parent.mkdir(parents=True, exist_ok=True)
    mesh.export(str(path), file_type=fmt)
    _log.info("Wrote %s (%d faces)", path.name, len(mesh.faces))
    return path


@dataclass
class LasWriter:
    """Streaming LAS 1.4 / LAZ writer for sampled terrain points.

    The file is opened on the first batch: its minimum corner becomes the
    header offset and every terrain attribute present in it is declared as a
    float32 extra-bytes dimension. Every point is stored as a single ground
    return.
    """
    path: str
    point_format: int = 6
    compress: bool = False
    scale: Tuple[float, float, float] = (1e-3, 1e-3, 1e-3)
    _fh: Optional["laspy.LasWriter"] = field(default=None, init=False, repr=False)
    _header: Optional["laspy.LasHeader"] = field(default=None, init=False, repr=False)
    _extras: Tuple[str, ...] = field(default=(), init=False, repr=False)

    def write_batch(self, batch: PointBatch) -> None:
        if len(batch) == 0:
            return
        if self._fh is None:
            self._open(batch)
        assert self._fh is not None and self._header is not None
        record = laspy.ScaleAwarePointRecord.zeros(len(batch), header=self._header)
        record.x = batch.xyz[:, 0]
        record.y = batch.xyz[:, 1]
        record.z = batch.xyz[:, 2]
        record.return_number = np.ones(len(batch), dtype=np.uint8)
        record.number_of_returns = np.ones(len(batch), dtype=np.uint8)
        record.classification = np.full(len(batch), GROUND_CLASS, dtype=np.uint8)
        for name, values in _columns(batch):
            if name not in self._extras:
                _log.warning("Attribute column '%s' appeared after the header was written; dropped", name)
                continue
            record[name] = values
        self._fh.write_points(record)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def _open(self, batch: PointBatch) -> None:
        header = laspy.LasHeader(point_format=laspy.PointFormat(self.point_format), version="1.4")
        header.scales = np.asarray(self.scale, dtype=np.float64)
        header.offsets = np.floor(np.min(batch.xyz, axis=0))
        names = tuple(name for name, _ in _columns(batch))
        for name in names:
            header.add_extra_dim(laspy.ExtraBytesParams(name=name, type="float32"))
        self._extras = names

        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = laspy.open(path, mode="w", header=header, do_compress=self.compress)
        self._header = header
        _log.info("Opened %s (PF=%d, compress=%s, extras=%s)", path.name, self.point_format, self.compress, ",".join(names) or "-")


class PlyWriter:
    """ASCII PLY point cloud; scalar terrain attributes become extra vertex properties.

    Points are buffered and written once on close. The property layout is
    fixed by the first batch.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._rows: List[np.ndarray] = []
        self._names: Optional[List[str]] = None

    def write_batch(self, batch: PointBatch) -> None:
        cols = _columns(batch)
        if self._names is None:
            self._names = [name for name, _ in cols]
        by_name = dict(cols)
        extra = [by_name.get(name, np.zeros(len(batch), dtype=np.float32)) for name in self._names]
        self._rows.append(np.column_stack([batch.xyz.astype(np.float32)] + extra) if extra else batch.xyz.astype(np.float32))

    def close(self) -> None:
        if not self._rows:
            return
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        rows = np.vstack(self._rows)
        props = ["x", "y", "z"] + list(self._names or [])
        with open(path, "w", encoding="utf-8") as f:
            f.write("ply\nformat ascii 1.0\n")
            f.write(f"element vertex {len(rows)}\n")
            for name in props:
                f.write(f"property float {name}\n")
            f.write("end_header\n")
            for row in rows:
                f.write(" ".join(repr(float(v)) for v in row) + "\n")
        _log.info("Wrote %s (%d points)", path.name, len(rows))
        self._rows.clear()


class NpzWriter:
    """Compressed NPZ with ``xyz`` plus one array per attribute.

    Batches lacking an attribute that others carry are zero-filled.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._batches: List[PointBatch] = []

    def write_batch(self, batch: PointBatch) -> None:
        self._batches.append(batch)

    def close(self) -> None:
        if not self._batches:
            return
        path = pathlib.Path(self.path)
        path.parent.mkdir(parents=True, exist_ok=True)
        out: Dict[str, np.ndarray] = {"xyz": np.vstack([b.xyz for b in self._batches])}
        keys = sorted({k for b in self._batches for k in b.attrs})
        for key in keys:
            template = next(b.attrs[key] for b in self._batches if key in b.attrs)
            out[key] = np.concatenate([
                b.attrs[key].astype(template.dtype, copy=False) if key in b.attrs
                else np.zeros((len(b),) + template.shape[1:], dtype=template.dtype)
                for b in self._batches
            ])
        np.savez_compressed(path, **out)
        _log.info("Wrote %s (%d points)", path.name, len(out["xyz"]))
        self._batches.clear()


def writer_for_path(
    path: Union[str, pathlib.Path],
    fmt: Optional[str] = None,
    compress: Optional[bool] = None,
    point_format: int = 6,
) -> Union[LasWriter, NpzWriter, PlyWriter]:
    """Pick a point cloud writer from an explicit format or the path suffix."""
    path = pathlib.Path(path)
    fmt = (fmt or path.suffix.lstrip(".")).lower()
    if fmt not in POINT_FORMATS:
        raise ValueError(f"Unsupported point cloud format '{fmt}'")
    if fmt in ("las", "laz"):
        do_compress = compress if compress is not None else fmt == "laz"
        return LasWriter(str(path), point_format=point_format, compress=do_compress)
    if fmt == "npz":
        return NpzWriter(str(path))
    return PlyWriter(str(path))
