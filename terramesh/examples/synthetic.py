from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

PRESETS = ("flat", "ramp", "hill", "pyramid", "noise")


def _unit_grid(width: int, depth: int) -> tuple[np.ndarray, np.ndarray]:
    u = np.linspace(0.0, 1.0, width) if width > 1 else np.zeros(1)
    v = np.linspace(0.0, 1.0, depth) if depth > 1 else np.zeros(1)
    vv, uu = np.meshgrid(v, u, indexing="ij")
    return uu, vv


def _value_noise(width: int, depth: int, rng: np.random.Generator, octaves: int = 4) -> np.ndarray:
    out = np.zeros((depth, width), dtype=np.float64)
    amp = 1.0
    total = 0.0
    for octave in range(octaves):
        cells = 2 ** (octave + 1) + 1
        lattice = rng.random((cells, cells))
        zs = np.linspace(0.0, cells - 1, depth)
        xs = np.linspace(0.0, cells - 1, width)
        z0 = np.minimum(np.floor(zs).astype(int), cells - 2)
        x0 = np.minimum(np.floor(xs).astype(int), cells - 2)
        fz = (zs - z0)[:, None]
        fx = (xs - x0)[None, :]
        a = lattice[z0][:, x0]
        b = lattice[z0][:, x0 + 1]
        c = lattice[z0 + 1][:, x0]
        d = lattice[z0 + 1][:, x0 + 1]
        near = a + (b - a) * fx
        far = c + (d - c) * fx
        out += amp * (near + (far - near) * fz)
        total += amp
        amp *= 0.5
    return out / total


def generate_elevation(
    preset: str,
    width: int,
    depth: int,
    amplitude: float = 1.0,
    seed: Optional[int] = None,
) -> np.ndarray:
    """Synthetic heightmap of shape ``(depth, width)`` for demos and tests."""
    if width <= 0 or depth <= 0:
        raise ValueError(f"Grid dimensions must be positive, got {width}x{depth}.")
    preset = preset.lower()
    uu, vv = _unit_grid(width, depth)

    if preset == "flat":
        return np.zeros((depth, width), dtype=np.float64)

    if preset == "ramp":
        return amplitude * uu

    if preset == "hill":
        r2 = (uu - 0.5) ** 2 + (vv - 0.5) ** 2
        return amplitude * np.exp(-r2 / (2.0 * 0.18 ** 2))

    if preset == "pyramid":
        return amplitude * (1.0 - 2.0 * np.maximum(np.abs(uu - 0.5), np.abs(vv - 0.5)))

    if preset == "noise":
        rng = np.random.default_rng(seed)
        return amplitude * _value_noise(width, depth, rng)

    raise ValueError(f"Unknown elevation preset '{preset}'.")


def save_elevation(path: Path, heights: np.ndarray) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()
    if suffix == ".npy":
        np.save(path, heights)
    elif suffix == ".npz":
        np.savez_compressed(path, elevation=heights)
    elif suffix in (".csv", ".txt"):
        np.savetxt(path, heights, delimiter=",")
    else:
        raise ValueError(f"Unsupported elevation file extension '{suffix}'.")
    return path


def load_elevation(path: Path) -> np.ndarray:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".npy":
        return np.asarray(np.load(path), dtype=np.float64)
    if suffix == ".npz":
        with np.load(path) as data:
            key = "elevation" if "elevation" in data.files else data.files[0]
            return np.asarray(data[key], dtype=np.float64)
    if suffix in (".csv", ".txt"):
        return np.loadtxt(path, delimiter=",", dtype=np.float64, ndmin=2)
    raise ValueError(f"Unsupported elevation file extension '{suffix}'.")
