"""
Time integration for the orrery physics core.

This module implements the semi-implicit (symplectic) Euler scheme and the
per-frame sub-stepping loop:

1. Accumulate gravitational accelerations a for all effectors
2. Velocity update: v += a * dt
3. Position update with the NEW velocity: x += v * dt
4. Reset the accumulator: a = 0

Step 3 using the updated velocity is what makes the scheme symplectic.
Using the old velocity would be explicit Euler, whose orbits spiral out.

Sub-stepping: one rendered frame of wall-clock length frame_dt runs
`time_scale` sub-steps, each integrating frame_dt * step_scale. A zero
time_scale or step_scale is run as 1.

The decorative planet spin and the simulation clock advance once per frame
by the same simulated time as the physics.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple
import warnings
import numpy as np

from orrery.bodies import Body
from orrery.gravity import accumulate_accelerations
from orrery.settings import SimulationSettings

TWO_PI = 2.0 * np.pi


def integrate_step(bodies: Sequence[Body], dt: float) -> None:
    """
    Apply one semi-implicit Euler step to every effector, then zero its acceleration.

    Parameters
    ----------
    bodies : sequence of Body
        Bodies are modified IN-PLACE. Non-dynamic bodies are skipped.
    dt : float
        Sub-step duration [s].

    Examples
    --------
    >>> b = Body.craft("c", position=[0, 0, 0], velocity=[1, 0, 0])
    >>> b.a[:] = [0, 2, 0]
    >>> integrate_step([b], 0.5)
    >>> b.v, b.x, b.a
    (array([1., 1., 0.]), array([0.5, 0.5, 0. ]), array([0., 0., 0.]))
    """
    for body in bodies:
        if not body.is_effector:
            continue
        body.v += body.a * dt
        body.x += body.v * dt
        body.a[:] = 0.0


def physics_step(bodies: Sequence[Body], dt: float) -> None:
    """One sub-step: force accumulation followed by integration."""
    accumulate_accelerations(bodies)
    integrate_step(bodies, dt)


def substep_plan(frame_dt: float, settings: SimulationSettings) -> Tuple[int, float]:
    """
    Number of sub-steps and per-sub-step dt for one frame.

    Parameters
    ----------
    frame_dt : float
        Wall-clock duration of the rendered frame [s], >= 0.
    settings : SimulationSettings
        Provides time_scale and step_scale.

    Returns
    -------
    (K, dt) : (int, float)
        K = max(1, time_scale); dt = frame_dt * max(1, step_scale).
        The frame advances simulated time by K * dt.

    Warns
    -----
    RuntimeWarning
        When time_scale is 0 and is run as a single sub-step.
    """
    if frame_dt < 0:
        raise ValueError(f"frame_dt must be non-negative, got {frame_dt}")
    if settings.time_scale == 0:
        warnings.warn(
            "time_scale is 0; running one physics sub-step per frame instead",
            RuntimeWarning,
        )
    return settings.substeps, frame_dt * settings.effective_step_scale


def advance_physics(
    bodies: Sequence[Body],
    frame_dt: float,
    settings: SimulationSettings,
) -> Tuple[int, float]:
    """
    Run the force + integrate pair K times for one rendered frame.

    Returns
    -------
    (K, dt) : (int, float)
        The sub-step plan that was executed.
    """
    n_sub, dt = substep_plan(frame_dt, settings)
    for _ in range(n_sub):
        physics_step(bodies, dt)
    return n_sub, dt


def rotate_planets(bodies: Sequence[Body], sim_dt: float) -> None:
    """Advance decorative spin angles by sim_dt simulated seconds, wrapped to [0, 2π)."""
    for body in bodies:
        if body.spin_velocity == 0.0:
            continue
        body.spin_position = float(np.mod(body.spin_position + body.spin_velocity * sim_dt, TWO_PI))


@dataclass
class SimulationClock:
    """Simulated seconds elapsed since the start of the run."""

    elapsed: float = 0.0

    def advance(self, frame_dt: float, settings: SimulationSettings) -> float:
        self.elapsed += settings.simulated_seconds(frame_dt)
        return self.elapsed

    def __str__(self) -> str:
        return f"{self.elapsed:.3f}s"
