from __future__ import annotations
import numpy as np
import logging

def get_logger(name: str = "terramesh") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger

def ensure_unit_vectors(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    norms = np.linalg.norm(v, axis=1, keepdims=True)
    norms = np.clip(norms, eps, None)
    return v / norms

def normalize(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    n = float(np.linalg.norm(v))
    if n < eps:
        return np.zeros_like(v, dtype=np.float64)
    return v / n

def y_up_to_z_up(v: np.ndarray) -> np.ndarray:
    """Rotate (N, 3) Y-up vectors into a Z-up frame: (x, y, z) -> (x, -z, y)."""
    return np.column_stack([v[:, 0], -v[:, 2], v[:, 1]])
