"""Orbit history tracking for trail rendering.

Each tracked body owns an OrbitHistory: a bounded FIFO of absolute float64
positions, oldest first. At a fixed wall-clock interval every tracked body
is sampled, then every history is turned into a float32 polyline for the
renderer.

When a reference body is selected, each polyline is expressed relative to
the reference's own history, matching samples by age (from the newest
sample backwards) and anchored at the reference's latest position:

    P[i] = H[i] - R[i] + R[-1]

The reference body therefore stays put at its current position while the
other trails show how they moved relative to it. Histories of unequal
length (a body tracked later than the others) are zipped from the newest
end, so the output has min(len(H), len(R)) points.

Alignment assumes every history was sampled in the same passes at a fixed
interval. If the interval is changed at runtime, older samples are still
matched by position from the tail, which is an approximation.
"""

from collections import deque
from typing import Deque, Dict, Iterable, List, Optional
import warnings
import numpy as np
from numpy.typing import NDArray

from orrery.bodies import Body
from orrery.errors import UnresolvedReferenceHistory
from orrery.settings import SimulationSettings

Polyline = NDArray[np.float32]  # Shape (n, 3)


class IntervalGate:
    """Fires once each time accumulated wall-clock time reaches the interval.

    The interval is subtracted on firing and the remainder carried over, so
    frame times that do not divide the interval evenly do not drift.

    Examples
    --------
    >>> gate = IntervalGate(1.0)
    >>> [gate.tick(0.4) for _ in range(5)]
    [False, False, True, False, True]
    """

    def __init__(self, interval: float):
        self.interval = interval
        self.accumulated = 0.0

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        value = float(value)
        if not value > 0:
            raise ValueError(f"Sampling interval must be positive, got {value}")
        self._interval = value

    def tick(self, elapsed: float) -> bool:
        if elapsed < 0:
            raise ValueError(f"Elapsed time must be non-negative, got {elapsed}")
        self.accumulated += elapsed
        if self.accumulated >= self._interval:
            self.accumulated -= self._interval
            return True
        return False

    def reset(self) -> None:
        self.accumulated = 0.0


class OrbitHistory:
    """Bounded position history of one tracked body.

    Attributes
    ----------
    body_name : str
        Name of the tracked body.
    max_size : int
        Capacity; pushing onto a full history evicts the oldest sample.
    polyline : ndarray, shape (n, 3), float32
        Last realigned trail, as handed to the renderer.
    x : ndarray, shape (3,), float64
        Origin of the trail object (the world origin). The polyline is in
        world coordinates, so the trail is relocated like a body at x.
    render_transform : ndarray, shape (3,), float32
        Observer-relative offset of the trail object.
    """

    def __init__(self, body_name: str, max_size: int):
        if int(max_size) != max_size or max_size < 1:
            raise ValueError(f"max_size must be a positive integer, got {max_size!r}")
        self.body_name = body_name
        self._samples: Deque[NDArray[np.float64]] = deque(maxlen=int(max_size))
        self.polyline: Polyline = np.zeros((0, 3), dtype=np.float32)
        self.x = np.zeros(3, dtype=np.float64)
        self.render_transform = np.zeros(3, dtype=np.float32)

    @property
    def max_size(self) -> int:
        return self._samples.maxlen

    def push(self, position) -> None:
        """Append a copy of an absolute position; evicts the oldest sample when full."""
        self._samples.append(np.array(position, dtype=np.float64))

    def resize(self, max_size: int) -> None:
        """Change capacity, keeping the newest samples."""
        if int(max_size) != max_size or max_size < 1:
            raise ValueError(f"max_size must be a positive integer, got {max_size!r}")
        self._samples = deque(self._samples, maxlen=int(max_size))

    def samples(self) -> NDArray[np.float64]:
        """All samples oldest-first as an (n, 3) float64 array."""
        if not self._samples:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array(self._samples, dtype=np.float64)

    def last(self) -> Optional[NDArray[np.float64]]:
        if not self._samples:
            return None
        return self._samples[-1].copy()

    def clear(self) -> None:
        self._samples.clear()
        self.polyline = np.zeros((0, 3), dtype=np.float32)

    def __len__(self) -> int:
        return len(self._samples)

    def __repr__(self) -> str:
        return f"OrbitHistory({self.body_name!r}, {len(self)}/{self.max_size} samples)"


def align_history(
    history: OrbitHistory,
    reference: Optional[OrbitHistory] = None,
) -> Polyline:
    """
    Express a history relative to a reference history, matched by sample age.

    Parameters
    ----------
    history : OrbitHistory
        Trail to convert.
    reference : OrbitHistory, optional
        Reference trail. None or an empty history means no realignment.

    Returns
    -------
    ndarray, shape (L, 3), float32
        Without a reference: the absolute samples, L = len(history).
        With a reference: H[-L+i] - R[-L+i] + R[-1] for i in range(L),
        L = min(len(history), len(reference)). The subtraction happens in
        float64 before narrowing.

    Examples
    --------
    >>> ref, own = OrbitHistory("ref", 10), OrbitHistory("own", 10)
    >>> for p in ([0, 0, 0], [1, 0, 0]): ref.push(p)
    >>> for p in ([5, 5, 0], [6, 5, 0]): own.push(p)
    >>> align_history(own, ref)
    array([[6., 5., 0.],
           [6., 5., 0.]], dtype=float32)
    """
    own = history.samples()
    if reference is None or len(reference) == 0:
        return own.astype(np.float32)

    ref = reference.samples()
    n = min(len(own), len(ref))
    if n == 0:
        return np.zeros((0, 3), dtype=np.float32)
    aligned = own[len(own) - n:] - ref[len(ref) - n:] + ref[-1]
    return aligned.astype(np.float32)


class OrbitTracker:
    """Owns one OrbitHistory per tracked body and the selected reference frame.

    Parameters
    ----------
    settings : SimulationSettings
        Provides history_max_size, history_sample_interval and the initial
        selected_reference. The tracker keeps a reference to the settings,
        so later changes to the interval or reference are picked up.

    Notes
    -----
    The tracker samples absolute positions, so it must run after the
    frame's physics sub-steps and before floating-origin relocation.
    """

    def __init__(self, settings: SimulationSettings):
        self.settings = settings
        self.gate = IntervalGate(settings.history_sample_interval)
        self._histories: Dict[str, OrbitHistory] = {}
        self.passes = 0

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def track(self, body: Body) -> OrbitHistory:
        """Create the history associated with body (one per body)."""
        if body.name in self._histories:
            raise ValueError(f"Body {body.name!r} is already tracked")
        history = OrbitHistory(body.name, self.settings.history_max_size)
        self._histories[body.name] = history
        return history

    def track_all(self, bodies: Iterable[Body]) -> None:
        """Track every effector body that is not tracked yet."""
        for body in bodies:
            if body.is_effector and body.name not in self._histories:
                self.track(body)

    def history(self, name: str) -> OrbitHistory:
        try:
            return self._histories[name]
        except KeyError:
            raise KeyError(f"Body {name!r} has no orbit history") from None

    def histories(self) -> List[OrbitHistory]:
        return list(self._histories.values())

    def __contains__(self, name: str) -> bool:
        return name in self._histories

    # ------------------------------------------------------------------
    # Reference frame
    # ------------------------------------------------------------------

    @property
    def selected_reference(self) -> Optional[str]:
        return self.settings.selected_reference

    def select_reference(self, name: Optional[str]) -> None:
        """Select the reference body by name; None shows absolute trails."""
        self.settings.selected_reference = name

    def reference_history(self) -> Optional[OrbitHistory]:
        """History of the selected reference, or None.

        Warns with UnresolvedReferenceHistory if a reference is selected
        but has no history.
        """
        name = self.settings.selected_reference
        if name is None:
            return None
        history = self._histories.get(name)
        if history is None:
            warnings.warn(
                f"Reference body {name!r} has no orbit history; "
                f"drawing trails in absolute coordinates",
                UnresolvedReferenceHistory,
            )
        return history

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample(self, bodies: Iterable[Body]) -> int:
        """Push the current absolute position of every tracked body. Returns the count."""
        count = 0
        for body in bodies:
            history = self._histories.get(body.name)
            if history is None:
                continue
            history.push(body.x)
            count += 1
        return count

    def realign(self) -> Dict[str, Polyline]:
        """Recompute every polyline against the selected reference."""
        reference = self.reference_history()
        for history in self._histories.values():
            history.polyline = align_history(history, reference)
        return self.polylines()

    def tick(self, bodies: Iterable[Body], elapsed: float) -> bool:
        """
        Advance the sampling gate by elapsed wall-clock seconds.

        When the gate fires, samples every tracked body and realigns all
        polylines. Returns True if a sampling pass ran.
        """
        self._sync_settings()
        if not self.gate.tick(elapsed):
            return False
        self.sample(bodies)
        self.realign()
        self.passes += 1
        return True

    def polylines(self) -> Dict[str, Polyline]:
        return {name: h.polyline for name, h in self._histories.items()}

    def _sync_settings(self) -> None:
        # Interval and capacity may be changed by the host between frames
        if self.gate.interval != self.settings.history_sample_interval:
            self.gate.interval = self.settings.history_sample_interval
        for history in self._histories.values():
            if history.max_size != self.settings.history_max_size:
                history.resize(self.settings.history_max_size)
