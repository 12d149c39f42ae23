"""
Export run results to CSV, JSON and PNG.

CSV columns (exact schema):
    timing:  tick, duration_s
    nodes:   index, grid_x, grid_y, x, y, vx, vy, fixed
"""

import csv
import json
import subprocess
from pathlib import Path
from typing import Optional
from datetime import datetime

import numpy as np
from PIL import Image, ImageDraw

from .runner import SimulationResult
from .state import LatticeSnapshot
from .topology import drawable_segments


TIMING_COLUMNS = ["tick", "duration_s"]

NODE_COLUMNS = ["index", "grid_x", "grid_y", "x", "y", "vx", "vy", "fixed"]


def export_timing_csv(result: SimulationResult, path: Path) -> None:
    """
    Export per-tick durations to CSV.

    Args:
        result: Simulation result.
        path: Output CSV path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(TIMING_COLUMNS)
        timing = result.timing
        for tick, duration in enumerate(timing.durations_s, start=timing.first_kept_tick):
            writer.writerow([tick, duration])


def export_nodes_csv(snapshot: LatticeSnapshot, fixed: np.ndarray, path: Path) -> None:
    """
    Export final node positions and velocities to CSV.

    Args:
        snapshot: Lattice snapshot.
        fixed: Anchor mask, shape (N,).
        path: Output CSV path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(NODE_COLUMNS)
        for i, (p, v) in enumerate(zip(snapshot.positions, snapshot.velocities)):
            grid_x, grid_y = divmod(i, snapshot.height)
            writer.writerow([i, grid_x, grid_y, p[0], p[1], v[0], v[1], 1 if fixed[i] else 0])


def get_git_commit() -> Optional[str]:
    """Get current git commit hash if available."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode == 0:
        return result.stdout.strip()[:12]
    return None


def export_metadata(result: SimulationResult, path: Path) -> None:
    """
    Export metadata JSON with config and summary.

    Args:
        result: Simulation result.
        path: Output JSON path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    final = result.final
    metadata = {
        "timestamp": datetime.now().isoformat(),
        "git_commit": get_git_commit(),
        "config": result.config.to_dict(),
        "summary": {
            "steps": final.steps,
            "simulated_time_s": final.t,
            "n_nodes": int(len(final.positions)),
            "n_springs": int(len(final.edges)),
            "gravity_enabled": result.controls.gravity_enabled,
            "external_enabled": result.controls.external_enabled,
            "frames_read": result.frames_read,
            "wall_time_s": result.wall_time_s,
            "timing": result.timing.summary(),
            "bounding_box": _bounding_box(final.positions),
        }
    }

    with open(path, 'w') as f:
        json.dump(metadata, f, indent=2)


def render_png(snapshot: LatticeSnapshot, size: int = 800, padding: int = 40) -> Image.Image:
    """
    Draw every spring of a snapshot as a line on a black canvas.

    The drawing keeps the lattice aspect ratio and flips y so up is up.
    """
    img = Image.new("RGB", (size, size), "black")
    segments = drawable_segments(snapshot.positions, snapshot.edges)
    if len(snapshot.positions) == 0:
        return img

    lo = snapshot.positions.min(axis=0)
    hi = snapshot.positions.max(axis=0)
    span = float(max(hi[0] - lo[0], hi[1] - lo[1], 1e-9))
    scale = (size - 2 * padding) / span

    def to_pixel(p):
        return (
            padding + (p[0] - lo[0]) * scale,
            size - (padding + (p[1] - lo[1]) * scale)
        )

    draw = ImageDraw.Draw(img)
    for a, b in segments:
        draw.line((to_pixel(a), to_pixel(b)), fill="white", width=1)
    if len(segments) == 0:
        for p in snapshot.positions:
            x, y = to_pixel(p)
            draw.ellipse([x - 2, y - 2, x + 2, y + 2], fill="white")
    return img


def export_png(snapshot: LatticeSnapshot, path: Path, size: int = 800) -> None:
    """Write a PNG frame of the lattice."""
    path.parent.mkdir(parents=True, exist_ok=True)
    render_png(snapshot, size=size).save(path, format="PNG")


def export_results(
    result: SimulationResult,
    fixed: np.ndarray,
    out_dir: Path,
    run_name: str,
    write_png: bool = False
) -> dict:
    """
    Export all results to output directory.

    Args:
        result: Simulation result.
        fixed: Anchor mask of the simulated lattice.
        out_dir: Output directory.
        run_name: Base name for output files.
        write_png: Also write a PNG of the final frame.

    Returns:
        Dict with paths to exported files.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "timing": out_dir / f"{run_name}_timing.csv",
        "nodes": out_dir / f"{run_name}_nodes.csv",
        "metadata": out_dir / f"{run_name}_metadata.json",
    }
    export_timing_csv(result, paths["timing"])
    export_nodes_csv(result.final, fixed, paths["nodes"])
    export_metadata(result, paths["metadata"])

    if write_png:
        paths["png"] = out_dir / f"{run_name}.png"
        export_png(result.final, paths["png"])

    return {key: str(p) for key, p in paths.items()}


def _bounding_box(positions: np.ndarray) -> dict:
    if len(positions) == 0:
        return {}
    lo = positions.min(axis=0)
    hi = positions.max(axis=0)
    return {
        "x_min": float(lo[0]), "y_min": float(lo[1]),
        "x_max": float(hi[0]), "y_max": float(hi[1]),
    }
