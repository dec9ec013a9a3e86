"""
Tests for SimulationSettings and the Body/World containers.
"""

import numpy as np
import pytest

from orrery.bodies import Body, World
from orrery.constants import G
from orrery.settings import SimulationSettings


class TestSimulationSettings:

    def test_defaults(self):
        s = SimulationSettings()
        assert s.time_scale == 1
        assert s.step_scale == 1
        assert s.history_max_size == 1_000_000
        assert s.selected_reference is None

    @pytest.mark.parametrize("field", ["time_scale", "step_scale"])
    @pytest.mark.parametrize("value", [-1, 65536, 1.5, True])
    def test_u16_range(self, field, value):
        with pytest.raises(ValueError):
            SimulationSettings(**{field: value})

    def test_upper_bound_accepted(self):
        assert SimulationSettings(time_scale=65535).substeps == 65535

    def test_zero_scales_run_as_one(self):
        s = SimulationSettings(time_scale=0, step_scale=0)
        assert s.substeps == 1
        assert s.effective_step_scale == 1
        assert s.simulated_seconds(0.5) == 0.5

    def test_simulated_seconds(self):
        s = SimulationSettings(time_scale=60, step_scale=60)
        assert np.isclose(s.simulated_seconds(1.0 / 60.0), 60.0)

    def test_invalid_history(self):
        with pytest.raises(ValueError):
            SimulationSettings(history_max_size=0)
        with pytest.raises(ValueError):
            SimulationSettings(history_sample_interval=0.0)

    def test_from_dict(self):
        s = SimulationSettings.from_dict({'time_scale': 10, 'selected_reference': 'Earth'})
        assert s.time_scale == 10
        assert s.selected_reference == 'Earth'
        assert SimulationSettings.from_dict(None) == SimulationSettings()
        assert SimulationSettings.from_dict(s.to_dict()) == s

    def test_from_dict_unknown_key(self):
        with pytest.raises(KeyError):
            SimulationSettings.from_dict({'time_scael': 10})


class TestBody:

    def test_planet_mu(self):
        p = Body.planet("P", mass=2.0e20, radius=1.0, position=[0, 0, 0], velocity=[0, 0, 0])
        assert np.isclose(p.mu, 2.0e20 * G)
        assert np.isclose(p.mass, 2.0e20)
        assert p.is_massive and p.is_effector

    def test_camera(self):
        cam = Body.camera([1.0, 2.0, 3.0])
        assert cam.observer
        assert not cam.is_effector
        assert not cam.is_massive
        assert cam.mass is None

    def test_vectors_are_float64(self):
        b = Body.craft("c", position=[1, 2, 3], velocity=[0, 0, 0])
        assert b.x.dtype == np.float64
        assert b.render_transform.dtype == np.float32

    @pytest.mark.parametrize("kwargs", [
        dict(x=[0, 0], v=[0, 0, 0]),
        dict(x=[0, 0, np.nan], v=[0, 0, 0]),
        dict(x=[0, 0, 0], v=[0, 0, 0], mu=-1.0),
        dict(x=[0, 0, 0], v=[0, 0, 0], mu=1.0, dynamic=False),
        dict(x=[0, 0, 0], v=[0, 0, 0], kind="asteroid"),
        dict(x=[0, 0, 0], v=[0, 0, 0], radius=-1.0),
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            Body(name="bad", **kwargs)

    def test_identity_equality(self):
        a = Body.craft("c", position=[1, 2, 3], velocity=[0, 0, 0])
        b = Body.craft("c", position=[1, 2, 3], velocity=[0, 0, 0])
        assert a != b
        assert a == a


class TestWorld:

    def test_order_and_lookup(self):
        sun = Body(name="Sun", x=[0, 0, 0], v=[0, 0, 0], mu=1.0, kind="planet")
        probe = Body.craft("Probe", position=[1, 0, 0], velocity=[0, 1, 0])
        cam = Body.camera([0, 0, 1])
        world = World([sun, probe, cam])

        assert world.names() == ["Sun", "Probe", "Camera"]
        assert world.get("Probe") is probe
        assert "Sun" in world
        assert len(world) == 3
        assert world.massive() == [sun]
        assert world.effectors() == [sun, probe]
        assert world.observers() == [cam]

    def test_duplicate_name(self):
        world = World([Body.craft("P", position=[0, 0, 0], velocity=[0, 0, 0])])
        with pytest.raises(ValueError):
            world.add(Body.craft("P", position=[1, 0, 0], velocity=[0, 0, 0]))

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            World().get("Nobody")
