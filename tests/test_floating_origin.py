"""
Tests for floating-origin relocation.

Validates:
1. Observer-relative float32 transforms are computed in float64 first
2. Exactly one observer is required
3. A failed relocation leaves every transform untouched
"""

import numpy as np
import pytest

from orrery.bodies import Body
from orrery.errors import MissingObserver, MultipleObservers, ObserverError
from orrery.floating_origin import find_observer, relocate
from orrery.history import OrbitHistory


class TestRelocate:
    """Tests for render transform computation."""

    def test_round_trip_small_values(self):
        cam = Body.camera([100.0, 200.0, 300.0])
        body = Body.craft("b", position=[105.0, 203.0, 301.0], velocity=[0, 0, 0])

        relocate([cam, body])

        assert body.render_transform.dtype == np.float32
        assert np.array_equal(body.render_transform, np.array([5.0, 3.0, 1.0], dtype=np.float32))
        assert np.array_equal(cam.render_transform, np.zeros(3, dtype=np.float32))

    def test_precision_at_large_distance(self):
        # float32 spacing near 1.5e11 is 8192 m; the difference must survive
        au = 1.5e11
        cam = Body.camera([au, 0.0, 0.0])
        body = Body.craft("b", position=[au + 1.25, -0.5, 0.0], velocity=[0, 0, 0])

        relocate([cam, body])

        assert np.array_equal(body.render_transform, np.array([1.25, -0.5, 0.0], dtype=np.float32))
        naive = np.float32(au + 1.25) - np.float32(au)
        assert naive != np.float32(1.25)

    def test_returns_observer(self):
        cam = Body.camera([1.0, 1.0, 1.0])
        assert relocate([cam]) is cam

    def test_explicit_observer(self):
        cam = Body.camera([1.0, 0.0, 0.0])
        body = Body.craft("b", position=[3.0, 0.0, 0.0], velocity=[0, 0, 0])
        relocate([cam, body], observer=cam)
        assert np.array_equal(body.render_transform, np.array([2.0, 0.0, 0.0], dtype=np.float32))

    def test_anchors_relocated(self):
        cam = Body.camera([10.0, -20.0, 30.0])
        trail = OrbitHistory("b", 4)

        relocate([cam], anchors=[trail])

        assert np.array_equal(trail.render_transform,
                              np.array([-10.0, 20.0, -30.0], dtype=np.float32))

    def test_state_untouched(self):
        cam = Body.camera([100.0, 200.0, 300.0])
        body = Body.craft("b", position=[105.0, 203.0, 301.0], velocity=[1.0, 2.0, 3.0])
        relocate([cam, body])
        assert np.array_equal(body.x, [105.0, 203.0, 301.0])
        assert np.array_equal(body.v, [1.0, 2.0, 3.0])
        assert body.x.dtype == np.float64


class TestObserverErrors:
    """Missing or duplicated observer halts relocation with no partial update."""

    SENTINEL = np.array([7.0, 7.0, 7.0], dtype=np.float32)

    def _bodies(self):
        a = Body.craft("a", position=[1.0, 2.0, 3.0], velocity=[0, 0, 0])
        b = Body.craft("b", position=[4.0, 5.0, 6.0], velocity=[0, 0, 0])
        for body in (a, b):
            body.render_transform = self.SENTINEL.copy()
        return [a, b]

    def test_missing_observer(self):
        bodies = self._bodies()
        with pytest.raises(MissingObserver):
            relocate(bodies)
        for body in bodies:
            assert np.array_equal(body.render_transform, self.SENTINEL)

    def test_multiple_observers(self):
        bodies = self._bodies()
        cam1 = Body.camera([0.0, 0.0, 0.0], name="Cam1")
        cam2 = Body.camera([1.0, 0.0, 0.0], name="Cam2")
        cam1.render_transform = self.SENTINEL.copy()
        cam2.render_transform = self.SENTINEL.copy()
        bodies += [cam1, cam2]

        with pytest.raises(MultipleObservers) as excinfo:
            relocate(bodies)

        assert excinfo.value.names == ["Cam1", "Cam2"]
        for body in bodies:
            assert np.array_equal(body.render_transform, self.SENTINEL)

    def test_common_base_class(self):
        with pytest.raises(ObserverError):
            find_observer([])
