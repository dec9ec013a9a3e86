#!/usr/bin/env python3
"""
Circular Orbit Validation
=========================

Checks the semi-implicit Euler integrator and the floating origin against
closed-form expectations:

1. **Orbit closure**: a massless probe on a circular orbit (mu = 1, r = 1,
   v = 1) must return to its start after one period T = 2π. The closure
   error should shrink linearly with dt.
2. **Energy bound**: the specific orbital energy oscillates but does not
   drift secularly over many orbits.
3. **Render precision**: with the observer parked next to a body at
   1 AU, the float32 render offset keeps sub-metre detail that a direct
   float32 cast of absolute positions loses.

Usage
-----
    python scripts/validate_orbit.py
    python scripts/validate_orbit.py --steps 1000 4000 16000
    python scripts/validate_orbit.py --n-orbits 20 --plot output/closure.png
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse
import numpy as np
from typing import Dict, List

from orrery.bodies import Body
from orrery.dynamics import physics_step
from orrery.floating_origin import relocate


# ============================================================================
# Orbit closure
# ============================================================================

def circular_pair():
    sun = Body(name="Sun", x=[0.0, 0.0, 0.0], v=[0.0, 0.0, 0.0], mu=1.0, kind="planet")
    probe = Body.craft("Probe", position=[1.0, 0.0, 0.0], velocity=[0.0, 1.0, 0.0])
    return sun, probe


def specific_energy(probe: Body, mu: float = 1.0) -> float:
    r = np.linalg.norm(probe.x)
    return 0.5 * np.dot(probe.v, probe.v) - mu / r


def run_closure(steps_per_orbit: int, n_orbits: int) -> Dict[str, float]:
    """
    Integrate n_orbits periods and measure closure and energy errors.

    Returns
    -------
    result : dict
        'dt', 'closure' (|x - x0| after the last orbit),
        'radius_error' (max | |x| - 1 | over the run),
        'energy_drift' (relative, last vs first).
    """
    sun, probe = circular_pair()
    bodies = [sun, probe]
    dt = 2.0 * np.pi / steps_per_orbit
    E0 = specific_energy(probe)

    radius_error = 0.0
    for _ in range(n_orbits * steps_per_orbit):
        physics_step(bodies, dt)
        radius_error = max(radius_error, abs(np.linalg.norm(probe.x) - 1.0))

    return {
        'dt': dt,
        'closure': float(np.linalg.norm(probe.x - np.array([1.0, 0.0, 0.0]))),
        'radius_error': float(radius_error),
        'energy_drift': float((specific_energy(probe) - E0) / abs(E0)),
    }


# ============================================================================
# Render precision
# ============================================================================

def render_precision(offset: float = 0.25) -> Dict[str, float]:
    """Compare floating-origin narrowing with a direct float32 cast at 1 AU."""
    au = 1.495978707e11
    cam = Body.camera([au, 0.0, 0.0])
    probe = Body.craft("Probe", position=[au + offset, 0.0, 0.0], velocity=[0, 0, 0])
    relocate([cam, probe])

    direct = float(np.float32(probe.x[0]) - np.float32(cam.x[0]))
    return {
        'expected': offset,
        'floating_origin': float(probe.render_transform[0]),
        'direct_cast': direct,
    }


# ============================================================================
# Main
# ============================================================================

def main(argv=None):
    parser = argparse.ArgumentParser(description="Validate orbit closure and render precision")
    parser.add_argument('--steps', type=int, nargs='+', default=[500, 2000, 8000],
                        help='Steps per orbit to test')
    parser.add_argument('--n-orbits', type=int, default=5, help='Orbits per run')
    parser.add_argument('--plot', type=str, help='Write closure-vs-dt plot to this path')
    args = parser.parse_args(argv)

    print("=" * 80)
    print("CIRCULAR ORBIT CLOSURE (mu = 1, r = 1, T = 2π)")
    print("=" * 80)
    print(f"{'steps/orbit':>12s} {'dt':>12s} {'closure':>12s} {'max |r|-1':>12s} {'dE/E':>12s}")

    results: List[Dict[str, float]] = []
    for steps in args.steps:
        res = run_closure(steps, args.n_orbits)
        results.append(res)
        print(f"{steps:12d} {res['dt']:12.4e} {res['closure']:12.4e} "
              f"{res['radius_error']:12.4e} {res['energy_drift']:+12.4e}")

    if len(results) >= 2:
        dts = np.array([r['dt'] for r in results])
        errs = np.array([r['closure'] for r in results])
        order = np.polyfit(np.log(dts), np.log(errs), 1)[0]
        print()
        print(f"Observed convergence order: {order:.2f} (expected ~1)")

    print()
    print("=" * 80)
    print("FLOATING ORIGIN PRECISION AT 1 AU")
    print("=" * 80)
    prec = render_precision()
    print(f"  Expected offset:       {prec['expected']:.6f} m")
    print(f"  Floating origin:       {prec['floating_origin']:.6f} m")
    print(f"  Direct float32 cast:   {prec['direct_cast']:.6f} m")

    if args.plot:
        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(7, 5))
        ax.loglog([r['dt'] for r in results], [r['closure'] for r in results], 'o-',
                  label='closure error')
        ax.set_xlabel('dt')
        ax.set_ylabel(f'|x - x0| after {args.n_orbits} orbits')
        ax.grid(True, which='both', alpha=0.3)
        ax.legend()
        output = Path(args.plot)
        output.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output, dpi=150, bbox_inches='tight')
        plt.close(fig)
        print(f"\nSaved closure plot to {output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
