"""
Per-frame simulation pipeline.

One call to Simulation.frame(frame_dt) runs, strictly in this order:

1. Physics: K sub-steps of force accumulation + semi-implicit Euler
2. Decorative planet spin and the simulation clock
3. Orbit history: interval-gated sampling of ABSOLUTE positions and
   trail realignment
4. Floating origin: observer-relative float32 render transforms

Step 3 must see the frame's final positions and samples absolute
coordinates, so it sits between physics and relocation. Every stage runs
to completion before the next starts.

The observer is looked up before step 1: a missing or duplicated observer
raises and the frame does not advance at all.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import numpy as np

from orrery.bodies import Body, World
from orrery.dynamics import SimulationClock, advance_physics, rotate_planets
from orrery.floating_origin import find_observer, relocate
from orrery.gravity import check_separations
from orrery.history import OrbitTracker
from orrery.settings import SimulationSettings


@dataclass
class FrameReport:
    """Summary of one simulated frame."""

    frame: int
    substeps: int
    dt: float
    sim_time: float
    sampled: bool


class Simulation:
    """
    World, settings, trail tracker and clock driven frame by frame.

    Parameters
    ----------
    world : World
        Bodies to simulate. Exactly one must be an observer before the
        first frame is run.
    settings : SimulationSettings, optional
        Tunables; defaults are used when omitted.
    validate : bool, optional
        Run check_separations() on construction (default: True).

    Raises
    ------
    DegenerateSeparation
        If validate is True and two interacting bodies coincide.

    Examples
    --------
    >>> world = World([
    ...     Body.planet("Sun", mass=1.989e30, radius=6.96e8,
    ...                 position=[0, 0, 0], velocity=[0, 0, 0]),
    ...     Body.planet("Earth", mass=5.972e24, radius=6.371e6,
    ...                 position=[1.496e11, 0, 0], velocity=[0, 2.978e4, 0]),
    ...     Body.camera([1.496e11, 0, 1e7]),
    ... ])
    >>> sim = Simulation(world, SimulationSettings(time_scale=100, step_scale=60))
    >>> report = sim.frame(1 / 60)
    >>> report.substeps
    100
    """

    def __init__(
        self,
        world: World,
        settings: Optional[SimulationSettings] = None,
        validate: bool = True,
    ):
        self.world = world
        self.settings = settings if settings is not None else SimulationSettings()
        if validate:
            check_separations(world.bodies)
        self.tracker = OrbitTracker(self.settings)
        self.tracker.track_all(world)
        self.clock = SimulationClock()
        self.frames = 0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Simulation":
        """Build from a configuration dict as returned by io_cfg.load_config()."""
        return cls(World(config['bodies']), config['settings'])

    # ------------------------------------------------------------------

    @property
    def observer(self) -> Body:
        return find_observer(self.world)

    def select_reference(self, name: Optional[str]) -> None:
        self.tracker.select_reference(name)

    def frame(self, frame_dt: float) -> FrameReport:
        """
        Advance one rendered frame of wall-clock duration frame_dt [s].

        Raises
        ------
        MissingObserver, MultipleObservers
            Checked before any stage runs, so a failing frame advances
            nothing.
        """
        bodies = self.world.bodies
        observer = find_observer(bodies)

        n_sub, dt = advance_physics(bodies, frame_dt, self.settings)

        sim_dt = self.settings.simulated_seconds(frame_dt)
        rotate_planets(bodies, sim_dt)
        self.clock.advance(frame_dt, self.settings)

        sampled = self.tracker.tick(bodies, frame_dt)

        relocate(bodies, observer, anchors=self.tracker.histories())

        self.frames += 1
        return FrameReport(
            frame=self.frames,
            substeps=n_sub,
            dt=dt,
            sim_time=self.clock.elapsed,
            sampled=sampled,
        )

    def run(
        self,
        n_frames: int,
        frame_dt: float,
        save_every: int = 1,
        progress=None,
    ) -> Dict[str, Any]:
        """
        Run n_frames frames, saving dynamic body states every save_every frames.

        Parameters
        ----------
        n_frames : int
            Number of frames to run.
        frame_dt : float
            Wall-clock duration of each frame [s].
        save_every : int, optional
            Snapshot interval in frames (default: 1).
        progress : callable, optional
            Called as progress(report) after every frame.

        Returns
        -------
        trajectory : dict
            'names' : list of str, saved body names (dynamic bodies)
            't' : ndarray, shape (n_saved,), simulated times
            'x' : ndarray, shape (n_saved, N, 3), positions
            'v' : ndarray, shape (n_saved, N, 3), velocities
            where n_saved = n_frames // save_every + 1 (initial state included).
        """
        if save_every < 1:
            raise ValueError(f"save_every must be >= 1, got {save_every}")

        saved = [b for b in self.world if b.is_effector]
        names = [b.name for b in saved]
        times: List[float] = []
        positions: List[np.ndarray] = []
        velocities: List[np.ndarray] = []

        def snapshot():
            times.append(self.clock.elapsed)
            positions.append(np.array([b.x for b in saved]).reshape(len(saved), 3))
            velocities.append(np.array([b.v for b in saved]).reshape(len(saved), 3))

        snapshot()
        for i in range(1, n_frames + 1):
            report = self.frame(frame_dt)
            if i % save_every == 0:
                snapshot()
            if progress is not None:
                progress(report)

        return {
            'names': names,
            't': np.array(times),
            'x': np.array(positions),
            'v': np.array(velocities),
        }

    def render_state(self) -> Tuple[Dict[str, np.ndarray], Dict[str, np.ndarray]]:
        """Renderer inputs: float32 body transforms and float32 trail polylines."""
        transforms = {b.name: b.render_transform for b in self.world}
        return transforms, self.tracker.polylines()
