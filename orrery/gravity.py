"""
N-body gravitational force accumulation.

Every massive body (mu = G*M) pulls on every effector body, and massive
bodies pull on each other:

    a_target += sum_{source in M, source is not target} mu_s * d / |d|^3,
    d = x_source - x_target

Complexity is O(|M| * (|M| + |E|)) per sub-step. Summation follows the
list order of sources, so results are reproducible for a fixed world.

No softening term is applied. A zero separation is an input error: it is
rejected when initial conditions are loaded (check_separations) and raised
as DegenerateSeparation if it ever occurs during a run.
"""

from typing import Iterable, List, Sequence
import numpy as np
from numpy.typing import NDArray

from orrery.bodies import Body
from orrery.errors import DegenerateSeparation

Vec3 = NDArray[np.float64]  # Shape (3,)


def gravity_acceleration(
    target_x: Vec3,
    source_x: Vec3,
    source_mu: float,
    target_name: str = "target",
    source_name: str = "source",
) -> Vec3:
    """
    Acceleration exerted on a point at target_x by a source mass.

    Parameters
    ----------
    target_x : ndarray, shape (3,)
        Position of the attracted body [m].
    source_x : ndarray, shape (3,)
        Position of the attracting body [m].
    source_mu : float
        Gravitational parameter of the source [m³/s²].
    target_name, source_name : str, optional
        Names used in the error message.

    Returns
    -------
    ndarray, shape (3,)
        mu * d / |d|^3 with d = source_x - target_x [m/s²].

    Raises
    ------
    DegenerateSeparation
        If the two positions coincide exactly.

    Examples
    --------
    >>> gravity_acceleration(np.zeros(3), np.array([2.0, 0, 0]), 4.0)
    array([1., 0., 0.])
    """
    d = source_x - target_x
    r = np.sqrt(np.dot(d, d))
    if r == 0.0:
        raise DegenerateSeparation(target_name, source_name)
    return (source_mu / r**3) * d


def accumulate_accelerations(bodies: Sequence[Body]) -> None:
    """
    Add gravitational accelerations into every effector's accumulator.

    Parameters
    ----------
    bodies : sequence of Body
        All bodies of the world. Massive bodies (mu set) are sources;
        dynamic bodies are targets. Non-dynamic bodies (the observer) are
        ignored. Accelerations are ADDED to body.a; the integrator resets
        them after use.

    Notes
    -----
    Self-interaction is excluded by identity, not by distance. Positions
    are only read here, so every contribution within one call sees the
    same configuration.
    """
    sources = [b for b in bodies if b.is_massive]
    if not sources:
        return

    for target in bodies:
        if not target.is_effector:
            continue
        acc = np.zeros(3, dtype=np.float64)
        for source in sources:
            if source is target:
                continue
            acc += gravity_acceleration(
                target.x, source.x, source.mu, target.name, source.name
            )
        target.a += acc


def acceleration_on(target: Body, sources: Iterable[Body]) -> Vec3:
    """Total acceleration on target from the massive bodies in sources (read-only)."""
    acc = np.zeros(3, dtype=np.float64)
    for source in sources:
        if source is target or not source.is_massive:
            continue
        acc += gravity_acceleration(target.x, source.x, source.mu, target.name, source.name)
    return acc


def check_separations(bodies: Sequence[Body]) -> None:
    """
    Reject initial conditions where a gravity source coincides with a body it acts on.

    Every pair in which one body is massive and the other is a target
    (massive or effector) must have a non-zero separation. The observer
    and other non-dynamic, massless bodies are never part of the force
    sum and are skipped.

    Raises
    ------
    DegenerateSeparation
        For the first offending pair, in list order.
    """
    relevant: List[Body] = [b for b in bodies if b.is_massive or b.is_effector]
    for i, first in enumerate(relevant):
        for second in relevant[i + 1:]:
            if not (first.is_massive or second.is_massive):
                continue
            if np.array_equal(first.x, second.x):
                raise DegenerateSeparation(first.name, second.name)
