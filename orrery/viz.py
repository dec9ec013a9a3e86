"""Visualization module for the orrery simulator.

Stand-in renderer for the two outputs of the physics core:
- Orbit trail polylines (float32, realigned to the selected reference)
- Observer-relative render transforms (float32, floating origin)

Plots are written to files; pick a non-interactive backend (e.g. Agg)
before importing this module when running headless.
"""

from typing import Dict, Optional, Sequence
import numpy as np
from pathlib import Path

import matplotlib.pyplot as plt

from orrery.bodies import Body

COLORS = ['orange', 'blue', 'red', 'green', 'purple', 'brown', 'pink', 'gray']


def _equal_limits(ax, points: np.ndarray) -> None:
    """Equal aspect ratio for a 3D axis around the given (n, 3) points."""
    if len(points) == 0:
        return
    lo = points.min(axis=0)
    hi = points.max(axis=0)
    mid = 0.5 * (lo + hi)
    half = max(float((hi - lo).max()) / 2.0, 1e-9)
    ax.set_xlim(mid[0] - half, mid[0] + half)
    ax.set_ylim(mid[1] - half, mid[1] + half)
    ax.set_zlim(mid[2] - half, mid[2] + half)


def _save(fig, output_path: str, dpi: int) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    return output_path


def plot_orbit_trails(
    polylines: Dict[str, np.ndarray],
    output_path: str,
    reference: Optional[str] = None,
    dpi: int = 150,
) -> Path:
    """Plot every trail polyline in 3D.

    Parameters
    ----------
    polylines : dict of str -> ndarray, shape (n, 3)
        Trails from OrbitTracker.polylines().
    output_path : str
        Output image path (e.g. "output/trails.png").
    reference : str, optional
        Name of the reference body, used in the title.
    dpi : int, optional
        Output resolution (default: 150).

    Returns
    -------
    Path
        The file written.
    """
    fig = plt.figure(figsize=(10, 9))
    ax = fig.add_subplot(111, projection='3d')

    all_points = []
    for i, (name, line) in enumerate(sorted(polylines.items())):
        line = np.asarray(line, dtype=np.float64)
        if len(line) == 0:
            continue
        color = COLORS[i % len(COLORS)]
        ax.plot(line[:, 0], line[:, 1], line[:, 2], color=color, linewidth=1.2,
                label=name, alpha=0.8)
        ax.scatter(line[-1, 0], line[-1, 1], line[-1, 2], color=color, s=30,
                   edgecolors='black')
        all_points.append(line)

    if all_points:
        _equal_limits(ax, np.concatenate(all_points))
        ax.legend(loc='best', fontsize=9)

    frame = f"relative to {reference}" if reference else "absolute"
    ax.set_title(f"Orbit trails ({frame})", fontsize=13, fontweight='bold')
    ax.set_xlabel('x [m]')
    ax.set_ylabel('y [m]')
    ax.set_zlabel('z [m]')

    path = _save(fig, output_path, dpi)
    print(f"Saved orbit trail plot to {path}")
    return path


def plot_render_frame(
    bodies: Sequence[Body],
    output_path: str,
    dpi: int = 150,
) -> Path:
    """Scatter the observer-relative render transforms of all bodies (x-y plane)."""
    fig, ax = plt.subplots(figsize=(8, 8))
    for i, body in enumerate(bodies):
        p = body.render_transform
        marker = '+' if body.observer else 'o'
        ax.scatter(p[0], p[1], color=COLORS[i % len(COLORS)], marker=marker, s=60)
        ax.annotate(body.name, (p[0], p[1]), textcoords='offset points', xytext=(5, 5))

    ax.set_title('Render frame (observer at origin)', fontsize=13, fontweight='bold')
    ax.set_xlabel('x - x_obs [m]')
    ax.set_ylabel('y - y_obs [m]')
    ax.grid(True, alpha=0.3)
    ax.axis('equal')

    path = _save(fig, output_path, dpi)
    print(f"Saved render frame plot to {path}")
    return path
