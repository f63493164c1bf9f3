from __future__ import annotations
from dataclasses import dataclass, field
import numpy as np
from typing import Dict

@dataclass
class PointBatch:
    """A batch of sampled terrain points with arbitrary per-point attributes."""
    xyz: np.ndarray                       # (N, 3)
    attrs: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.xyz = np.asarray(self.xyz, dtype=np.float64).reshape(-1, 3)
        n = len(self.xyz)
        for k, v in list(self.attrs.items()):
            v = np.asarray(v)
            if v.ndim >= 1 and v.shape[0] != n:
                raise ValueError(f"Attribute '{k}' length {v.shape[0]} != {n}")
            self.attrs[k] = v

    def __len__(self) -> int:
        return len(self.xyz)
