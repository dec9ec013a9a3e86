"""Diagnostics for the orrery simulator.

Conserved quantities of the massive subsystem, used to judge step size:
- Kinetic energy: T = Σ (1/2) M_a v_a²
- Potential energy: U = -Σ_{a<b} G M_a M_b / r_ab = -Σ_{a<b} mu_a M_b / r_ab
- Total momentum: p = Σ M_a v_a

Crafts carry no mass and are excluded. Masses are recovered as mu / G.
Semi-implicit Euler keeps energy bounded (oscillating, no secular drift)
for a fixed dt, so a growing drift means dt is too large.
"""

from typing import Dict, Sequence
import numpy as np

from orrery.bodies import Body


def total_kinetic_energy(bodies: Sequence[Body]) -> float:
    """T = Σ_a (1/2) M_a v_a² over massive bodies [J]."""
    T = 0.0
    for body in bodies:
        if body.is_massive:
            T += 0.5 * body.mass * np.dot(body.v, body.v)
    return float(T)


def potential_energy(bodies: Sequence[Body]) -> float:
    """U = -Σ_{a<b} mu_a M_b / r_ab over massive pairs [J]."""
    massive = [b for b in bodies if b.is_massive]
    U = 0.0
    for i, body_a in enumerate(massive):
        for body_b in massive[i + 1:]:
            r_ab = np.linalg.norm(body_b.x - body_a.x)
            U -= body_a.mu * body_b.mass / r_ab
    return float(U)


def total_energy(bodies: Sequence[Body]) -> float:
    return total_kinetic_energy(bodies) + potential_energy(bodies)


def total_momentum(bodies: Sequence[Body]) -> np.ndarray:
    """p = Σ_a M_a v_a over massive bodies, shape (3,)."""
    p = np.zeros(3)
    for body in bodies:
        if body.is_massive:
            p += body.mass * body.v
    return p


def energy_drift(E_initial: float, E_final: float) -> float:
    """Relative energy drift (E_final - E_initial) / |E_initial|; 0 if E_initial is 0."""
    if E_initial == 0.0:
        return 0.0
    return (E_final - E_initial) / abs(E_initial)


def compute_diagnostics(bodies: Sequence[Body]) -> Dict:
    """Snapshot of energy and momentum for the massive subsystem."""
    T = total_kinetic_energy(bodies)
    U = potential_energy(bodies)
    p = total_momentum(bodies)
    return {
        'kinetic_energy': T,
        'potential_energy': U,
        'total_energy': T + U,
        'total_momentum': p,
        'momentum_magnitude': float(np.linalg.norm(p)),
    }
