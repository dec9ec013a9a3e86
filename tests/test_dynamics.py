"""
Tests for the semi-implicit Euler integrator and frame sub-stepping.

Validates:
1. Velocity is updated before position (not explicit Euler)
2. Acceleration accumulators are zero after integration
3. A circular two-body orbit closes after one period
4. Sub-step counts, dt scaling and the time_scale = 0 rule
5. Decorative spin and the simulation clock
"""

import numpy as np
import pytest

from orrery.bodies import Body
from orrery.dynamics import (
    integrate_step,
    physics_step,
    substep_plan,
    advance_physics,
    rotate_planets,
    SimulationClock,
)
from orrery.settings import SimulationSettings


class TestIntegrateStep:
    """Tests for a single semi-implicit Euler step."""

    def test_semi_implicit_order(self):
        x0 = np.array([1.0, 2.0, 3.0])
        v0 = np.array([0.5, 0.0, -1.0])
        a = np.array([2.0, -1.0, 0.5])
        dt = 0.1

        body = Body.craft("c", position=x0, velocity=v0)
        body.a[:] = a
        integrate_step([body], dt)

        v_expected = v0 + a * dt
        x_expected = x0 + v_expected * dt
        assert np.allclose(body.v, v_expected, rtol=0, atol=1e-15)
        assert np.allclose(body.x, x_expected, rtol=0, atol=1e-15)

        # Explicit Euler would have used v0
        assert not np.allclose(body.x, x0 + v0 * dt, rtol=0, atol=1e-6)

    def test_acceleration_reset(self):
        bodies = [
            Body(name="A", x=[0, 0, 0], v=[0, 0, 0], mu=1.0, kind="planet"),
            Body.craft("B", position=[1, 0, 0], velocity=[0, 1, 0]),
        ]
        physics_step(bodies, 0.01)
        for body in bodies:
            assert np.array_equal(body.a, np.zeros(3))

    def test_non_dynamic_untouched(self):
        cam = Body.camera([1.0, 2.0, 3.0])
        cam.a[:] = [1.0, 1.0, 1.0]
        integrate_step([cam], 1.0)
        assert np.array_equal(cam.x, [1.0, 2.0, 3.0])
        assert np.array_equal(cam.v, np.zeros(3))


class TestCircularOrbit:
    """Two-body circular orbit with mu = 1, r = 1, v = 1 (period 2π)."""

    def test_returns_after_one_period(self):
        sun = Body(name="Sun", x=[0.0, 0.0, 0.0], v=[0.0, 0.0, 0.0], mu=1.0, kind="planet")
        probe = Body.craft("Probe", position=[1.0, 0.0, 0.0], velocity=[0.0, 1.0, 0.0])
        bodies = [sun, probe]

        n_steps = 10000
        dt = 2.0 * np.pi / n_steps
        for _ in range(n_steps):
            physics_step(bodies, dt)

        assert np.allclose(probe.x, [1.0, 0.0, 0.0], atol=1e-2)
        assert np.allclose(probe.v, [0.0, 1.0, 0.0], atol=1e-2)
        # Radius stays close to 1 throughout for a symplectic scheme
        assert abs(np.linalg.norm(probe.x) - 1.0) < 1e-3
        # Massless probe does not move the Sun
        assert np.array_equal(sun.x, np.zeros(3))


class TestSubstepping:
    """Tests for per-frame sub-stepping."""

    def test_plan(self):
        settings = SimulationSettings(time_scale=10, step_scale=3)
        n_sub, dt = substep_plan(0.5, settings)
        assert n_sub == 10
        assert dt == 1.5

    def test_zero_time_scale_runs_once(self):
        settings = SimulationSettings(time_scale=0)
        with pytest.warns(RuntimeWarning):
            n_sub, dt = substep_plan(0.25, settings)
        assert n_sub == 1
        assert dt == 0.25

    def test_zero_step_scale_is_one(self):
        settings = SimulationSettings(step_scale=0)
        _, dt = substep_plan(0.25, settings)
        assert dt == 0.25

    def test_negative_frame_dt(self):
        with pytest.raises(ValueError):
            substep_plan(-1.0, SimulationSettings())

    def test_free_flight_distance(self):
        # 4 sub-steps of 0.5 * 2 = 1.0 s each at 1 m/s
        settings = SimulationSettings(time_scale=4, step_scale=2)
        probe = Body.craft("Probe", position=[0.0, 0.0, 0.0], velocity=[1.0, 0.0, 0.0])
        n_sub, dt = advance_physics([probe], 0.5, settings)
        assert (n_sub, dt) == (4, 1.0)
        assert np.allclose(probe.x, [4.0, 0.0, 0.0])
        assert settings.simulated_seconds(0.5) == 4.0


class TestSpinAndClock:

    def test_spin_wraps(self):
        planet = Body.planet("P", mass=1.0, radius=1.0, position=[0, 0, 0],
                             velocity=[0, 0, 0], angular_velocity=1.0)
        rotate_planets([planet], 7.0)
        assert np.isclose(planet.spin_position, 7.0 - 2.0 * np.pi)
        assert 0.0 <= planet.spin_position < 2.0 * np.pi

    def test_orientation_is_rotation(self):
        planet = Body.planet("P", mass=1.0, radius=1.0, position=[0, 0, 0],
                             velocity=[0, 0, 0], axial_tilt=0.4, angular_velocity=1.0)
        planet.spin_position = 1.3
        R = planet.orientation
        assert R.dtype == np.float32
        assert np.allclose(R @ R.T, np.eye(3), atol=1e-6)

    def test_clock(self):
        clock = SimulationClock()
        settings = SimulationSettings(time_scale=3, step_scale=2)
        clock.advance(0.5, settings)
        clock.advance(0.5, settings)
        assert clock.elapsed == 6.0
