from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from ..core.exporter import export_mesh, writer_for_path
from ..core.sampler import HeightSampler, SamplerConfig
from ..core.terrain import Terrain
from ..examples.synthetic import PRESETS, generate_elevation, load_elevation, save_elevation
from ..sdk import build_from_config
from ..shell import MeshShell

app = typer.Typer(help="Heightfield terrain utilities")
elevation_app = typer.Typer(help="Synthetic elevation helpers")
app.add_typer(elevation_app, name="elevation")

DEFAULT_ATTRIBUTES = ["normal", "slope", "height"]


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("terramesh").setLevel(numeric)


def _load_terrain(elevation: Path, scale: float) -> Terrain:
    if scale <= 0:
        raise typer.BadParameter("scale must be positive.", param_hint="--scale")
    try:
        heights = load_elevation(elevation)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="ELEVATION") from exc
    if heights.ndim != 2:
        raise typer.BadParameter(
            f"Elevation must be a 2D grid, got shape {heights.shape}.", param_hint="ELEVATION"
        )
    return Terrain.from_heightmap(heights, scale=scale)


@app.command("build")
def build(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    mesh_output: Optional[Path] = typer.Option(None, "--mesh-output", "-m", help="Override mesh output path (extension sets format)."),
    points_output: Optional[Path] = typer.Option(None, "--points-output", "-p", help="Override point cloud output path (extension sets format)."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Build a terrain described by a YAML config and write its outputs."""

    _configure_logging(log_level)
    try:
        result = build_from_config(config, mesh_output=mesh_output, points_output=points_output)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Built {result.terrain!r}")
    if result.mesh_path is not None:
        typer.echo(f"Mesh → {result.mesh_path}")
    if result.points_path is not None:
        typer.echo(f"Completed {result.stats['points']} points from {result.stats['samples']} samples → {result.points_path}")


@app.command("mesh")
def mesh_cmd(
    elevation: Path = typer.Argument(..., exists=True, readable=True, help="Elevation grid (.npy, .npz or .csv)."),
    output: Path = typer.Argument(..., help="Output mesh path (.stl/.ply/.obj/.off/.glb)."),
    scale: float = typer.Option(1.0, "--scale", help="World units per grid cell."),
    ground_level: Optional[float] = typer.Option(None, "--ground-level", help="Close the surface into a solid down to this level."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Triangulate an elevation grid, optionally as a watertight solid."""

    _configure_logging(log_level)
    terrain = _load_terrain(elevation, scale)
    mesh = terrain.to_mesh(ground_level)
    try:
        out = export_mesh(mesh, output.resolve())
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="OUTPUT") from exc
    typer.echo(f"Wrote {len(mesh.faces)} faces → {out}")


@app.command("height")
def height_cmd(
    elevation: Path = typer.Argument(..., exists=True, readable=True, help="Elevation grid (.npy, .npz or .csv)."),
    x: float = typer.Option(..., "--x", help="World X coordinate."),
    z: float = typer.Option(..., "--z", help="World Z coordinate."),
    scale: float = typer.Option(1.0, "--scale", help="World units per grid cell."),
) -> None:
    """Print the interpolated height and surface intersection at a world XZ point."""

    terrain = _load_terrain(elevation, scale)
    typer.echo(f"height: {terrain.get_height_at_point(x, z):.6f}")
    isect = terrain.intersect_at_point(x, z)
    if not isect:
        typer.echo("intersection: none")
        return
    px, py, pz = isect.point
    nx, ny, nz = isect.normal
    typer.echo(f"intersection: ({px:.6f}, {py:.6f}, {pz:.6f}) normal ({nx:.6f}, {ny:.6f}, {nz:.6f})")


@app.command("sample")
def sample_cmd(
    elevation: Path = typer.Argument(..., exists=True, readable=True, help="Elevation grid (.npy, .npz or .csv)."),
    output: Path = typer.Argument(..., help="Output point cloud path (.las/.laz/.npz/.ply)."),
    scale: float = typer.Option(1.0, "--scale", help="World units per grid cell."),
    step: Optional[float] = typer.Option(None, "--step", help="Sample spacing in world units (defaults to the grid scale)."),
    attribute: List[str] = typer.Option([], "--attribute", "-a", help="Attributes to compute (normal, slope, aspect, height)."),
    z_up: bool = typer.Option(True, "--z-up/--y-up", help="Rotate points into a Z-up frame before writing."),
    batch_size: int = typer.Option(100_000, "--batch-size", help="Points per written batch."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Sample an elevation grid on a regular lattice and write a point cloud."""

    if step is not None and step <= 0:
        raise typer.BadParameter("step must be positive.", param_hint="--step")
    _configure_logging(log_level)
    terrain = _load_terrain(elevation, scale)

    output = output.resolve()
    try:
        writer = writer_for_path(output)
    except ValueError as exc:
        raise typer.BadParameter("Output must end with .las, .laz, .npz, or .ply", param_hint="OUTPUT") from exc

    cfg = SamplerConfig(
        step=step,
        batch_size=batch_size,
        attributes=list(attribute or DEFAULT_ATTRIBUTES),
        z_up=z_up,
    )
    stats = HeightSampler(terrain, cfg=cfg).run_to_writer(writer)
    typer.echo(f"Completed {stats['points']} points from {stats['samples']} samples → {output}")


@elevation_app.command("generate")
def elevation_generate(
    output: Path = typer.Argument(..., help="Output elevation path (.npy, .npz or .csv)."),
    preset: str = typer.Option("hill", "--preset", help=f"Synthetic preset ({', '.join(PRESETS)})."),
    width: int = typer.Option(64, "--width", help="Grid vertices along X."),
    depth: int = typer.Option(64, "--depth", help="Grid vertices along Z."),
    amplitude: float = typer.Option(1.0, "--amplitude", help="Peak height."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for the noise preset."),
) -> None:
    """Generate a synthetic elevation grid useful for demos."""

    try:
        heights = generate_elevation(preset, width, depth, amplitude=amplitude, seed=seed)
        out = save_elevation(output.resolve(), heights)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Wrote {depth}x{width} elevation to {out}")


@app.command("demo")
def demo(
    keys: str = typer.Option("", "--keys", "-k", help="Key presses to replay, e.g. '3ssl' or '2vx'."),
    mesh_id: int = typer.Option(0, "--mesh-id", help="Initial mesh (0 plane, 1 box, 2 cylinder, 3 pyramid, 4 file)."),
    mesh_path: Optional[Path] = typer.Option(None, "--mesh-path", help="Mesh file loaded by mesh id 4 / key '5'."),
    output_dir: Path = typer.Option(Path("."), "--output-dir", help="Directory for meshes saved with key 'x'."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Replay key commands through the mesh shell (subdivide, smooth, voxelize, save)."""

    _configure_logging(log_level)
    shell = MeshShell(mesh_path=mesh_path, output_dir=output_dir.resolve())
    try:
        shell.init_mesh(mesh_id)
        shell.replay(keys)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Mesh: {len(shell.mesh.vertices)} vertices, {len(shell.mesh.faces)} faces")
    for path in shell.saved:
        typer.echo(f"Saved {path}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
