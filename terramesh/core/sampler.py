from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Iterable, Optional, Set
import numpy as np

from .terrain import Terrain
from .pointcloud import PointBatch
from .attributes import (
    AttributeComputer, NormalComputer, SlopeComputer, AspectComputer, HeightComputer
)
from .utils import get_logger, y_up_to_z_up

_log = get_logger()

@dataclass
class SamplerConfig:
    step: Optional[float] = None          # world units between samples; terrain scale if None
    batch_size: int = 100_000
    attributes: List[str] = field(default_factory=lambda: ["normal", "slope", "height"])
    z_up: bool = True

_ATTR_FACTORY: Dict[str, Any] = {
    "normal": NormalComputer,
    "slope": SlopeComputer,
    "aspect": AspectComputer,
    "height": HeightComputer,
}

_PRODUCER_BY_ATTR: Dict[str, str] = {}
for _name, _cls in _ATTR_FACTORY.items():
    produces = getattr(_cls, "produces", set())
    for attr in produces:
        _PRODUCER_BY_ATTR[attr] = _name

class HeightSampler:
    """Samples a terrain on a regular XZ lattice and streams points to a writer.

    Every lattice position is probed with ``Terrain.intersect_at_point``;
    misses are dropped. Attributes are computed in the terrain's Y-up frame
    and the batch is rotated to Z-up afterwards when ``cfg.z_up`` is set.
    """
    def __init__(self, terrain: Terrain, cfg: Optional[SamplerConfig] = None) -> None:
        self.terrain = terrain
        self.cfg = cfg or SamplerConfig()
        step = self.cfg.step if self.cfg.step is not None else terrain.scale
        if not step > 0:
            raise ValueError(f"Sampling step must be positive, got {step}.")
        self.step = float(step)

    def _build_attribute_chain(self) -> List[AttributeComputer]:
        resolved: List[str] = []
        added: Set[str] = set()

        def add_with_dependencies(name: str) -> None:
            if name in added:
                return
            if name not in _ATTR_FACTORY:
                _log.warning("Unknown attribute '%s'; skipping.", name)
                return
            cls = _ATTR_FACTORY[name]
            requires = getattr(cls, "requires", set())
            for attr in sorted(requires):
                producer = _PRODUCER_BY_ATTR.get(attr)
                if producer is not None:
                    add_with_dependencies(producer)
            added.add(name)
            resolved.append(name)

        for name in self.cfg.attributes:
            add_with_dependencies(name)
        return [_ATTR_FACTORY[name]() for name in resolved]

    def sample_positions(self) -> np.ndarray:
        """World XZ positions of the sampling lattice, shape (N, 2)."""
        min_x, max_x, min_z, max_z = self.terrain.bounds
        # small tolerance so the far edge is included when it lies on the lattice
        eps = self.step * 1e-6
        xs = np.arange(min_x, max_x + eps, self.step)
        zs = np.arange(min_z, max_z + eps, self.step)
        gz, gx = np.meshgrid(zs, xs, indexing="ij")
        return np.column_stack([gx.ravel(), gz.ravel()])

    def _position_chunks(self, positions: np.ndarray) -> Iterable[np.ndarray]:
        limit = int(self.cfg.batch_size or 0)
        n = len(positions)
        if limit <= 0 or n <= limit:
            yield positions
            return
        for start in range(0, n, limit):
            yield positions[start:min(start + limit, n)]

    def _sample_chunk(self, positions: np.ndarray) -> PointBatch:
        points: List[np.ndarray] = []
        normals: List[np.ndarray] = []
        for x, z in positions:
            isect = self.terrain.intersect_at_point(float(x), float(z))
            if not isect:
                continue
            points.append(isect.point)
            normals.append(isect.normal)
        if not points:
            return PointBatch(xyz=np.zeros((0, 3)), attrs={})
        return PointBatch(xyz=np.vstack(points), attrs={"_normal": np.vstack(normals)})

    def run_to_writer(self, writer, positions: Optional[np.ndarray] = None) -> Dict[str, Any]:
        """Stream: lattice → intersect → PointBatch → attributes → write.

        Returns run statistics.
        """
        attrs_chain = self._build_attribute_chain()
        if positions is None:
            positions = self.sample_positions()
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)

        total_samples = 0
        total_points = 0
        try:
            for chunk in self._position_chunks(positions):
                total_samples += len(chunk)
                batch = self._sample_chunk(chunk)
                if len(batch) == 0:
                    continue

                for comp in attrs_chain:
                    comp.compute(batch, self.terrain)

                for k in [k for k in list(batch.attrs.keys()) if k.startswith("_")]:
                    del batch.attrs[k]

                if self.cfg.z_up:
                    batch.xyz = y_up_to_z_up(batch.xyz)
                    if "normal" in batch.attrs:
                        batch.attrs["normal"] = y_up_to_z_up(batch.attrs["normal"]).astype(np.float32)

                writer.write_batch(batch)
                total_points += len(batch)
        finally:
            writer.close()
        stats = {"samples": total_samples, "points": total_points}
        _log.info("Sampler finished: %d samples → %d points", total_samples, total_points)
        return stats
