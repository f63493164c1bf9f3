from __future__ import annotations
from typing import Set
import numpy as np
from .pointcloud import PointBatch
from .terrain import Terrain
from .utils import ensure_unit_vectors

class AttributeComputer:
    name: str = "base"
    requires: Set[str] = set()        # prerequisite attribute names
    produces: Set[str] = set()        # names it will produce

    def compute(self, batch: PointBatch, terrain: Terrain) -> None:  # pragma: no cover - abstract
        raise NotImplementedError


class NormalComputer(AttributeComputer):
    name = "normal"
    requires = {"_normal"}
    produces = {"normal"}
    def compute(self, batch: PointBatch, terrain: Terrain) -> None:
        nrm = batch.attrs.get("_normal")
        if nrm is None:
            raise ValueError("NormalComputer requires per-point '_normal'.")
        batch.attrs["normal"] = ensure_unit_vectors(nrm.astype(np.float64, copy=False)).astype(np.float32)


class SlopeComputer(AttributeComputer):
    name = "slope"
    requires = {"_normal"}
    produces = {"slope_deg"}
    def compute(self, batch: PointBatch, terrain: Terrain) -> None:
        nrm = batch.attrs.get("_normal")
        if nrm is None:
            raise ValueError("SlopeComputer requires per-point '_normal'.")
        nrm = ensure_unit_vectors(nrm.astype(np.float64, copy=False))
        cos_theta = np.clip(np.abs(nrm[:, 1]), 0.0, 1.0)
        batch.attrs["slope_deg"] = np.degrees(np.arccos(cos_theta)).astype(np.float32)


class AspectComputer(AttributeComputer):
    """Compass direction of steepest descent, degrees clockwise from -Z."""
    name = "aspect"
    requires = {"_normal"}
    produces = {"aspect_deg"}
    def compute(self, batch: PointBatch, terrain: Terrain) -> None:
        nrm = batch.attrs.get("_normal")
        if nrm is None:
            raise ValueError("AspectComputer requires per-point '_normal'.")
        aspect = np.degrees(np.arctan2(nrm[:, 0], -nrm[:, 2])) % 360.0
        # flat ground has no aspect
        flat = np.hypot(nrm[:, 0], nrm[:, 2]) < 1e-9
        aspect[flat] = 0.0
        batch.attrs["aspect_deg"] = aspect.astype(np.float32)


class HeightComputer(AttributeComputer):
    name = "height"
    produces = {"height_m"}
    def compute(self, batch: PointBatch, terrain: Terrain) -> None:
        batch.attrs["height_m"] = batch.xyz[:, 1].astype(np.float32)
