"""terramesh – heightfield terrain toolkit.

This package contains:
- Terrain: grid heightfield with cell/point queries, ray intersection and
  triangle-mesh export (core.terrain)
- Ray / Triangle / TriangleIntersector geometry helpers (core.geometry)
- HeightSampler + attribute computers for point-cloud export (core.sampler)
- Streaming LAS/LAZ, NPZ and PLY writers, mesh export (core.exporter)
- MeshShell: command shell around a mutable mesh (shell.app)
"""

from .core.terrain import Terrain
from .core.errors import TerrainError, TerrainIndexError, ElevationSizeError
from .core.geometry import Ray, Triangle, IntersectionData, TriangleIntersector
from .core.pointcloud import PointBatch
from .core.exporter import LasWriter, PlyWriter, NpzWriter, export_mesh, writer_for_path
from .core.attributes import (
    AttributeComputer,
    NormalComputer, SlopeComputer, AspectComputer, HeightComputer
)
from .core.sampler import HeightSampler, SamplerConfig
from .shell.app import MeshShell
