"""Simulation settings dataclass for the orrery simulator.

These are the knobs a host or UI may change while the simulation runs:
- time_scale: physics sub-steps per rendered frame
- step_scale: integer multiplier on each sub-step's dt
- history_max_size: capacity of each orbit history buffer
- history_sample_interval: wall-clock seconds between history samples
- selected_reference: body whose history anchors all drawn trails

Settings are threaded explicitly through the simulation update; nothing is
kept in module globals.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from orrery.constants import (
    U16_MAX,
    DEFAULT_TIME_SCALE,
    DEFAULT_STEP_SCALE,
    DEFAULT_HISTORY_MAX_SIZE,
    DEFAULT_HISTORY_SAMPLE_INTERVAL,
)


@dataclass
class SimulationSettings:
    """Tunable simulation parameters.

    Attributes
    ----------
    time_scale : int
        Physics sub-steps per frame, 0..65535. Zero is run as one
        sub-step; integration is never skipped.
    step_scale : int
        Multiplier on the per-sub-step dt, 0..65535. Zero is run as one.
    history_max_size : int
        Maximum samples kept per orbit history (>= 1). Oldest samples are
        evicted first.
    history_sample_interval : float
        Wall-clock seconds between history samples (> 0).
    selected_reference : str or None
        Name of the reference body for trail realignment.

    Notes
    -----
    Simulated seconds per frame = frame_dt * substeps * effective_step_scale.
    Each of the `substeps` sub-steps integrates frame_dt * effective_step_scale.

    Examples
    --------
    >>> s = SimulationSettings(time_scale=10)
    >>> s.substeps, s.effective_step_scale
    (10, 1)
    >>> SimulationSettings(time_scale=0).substeps
    1
    """

    time_scale: int = DEFAULT_TIME_SCALE
    step_scale: int = DEFAULT_STEP_SCALE
    history_max_size: int = DEFAULT_HISTORY_MAX_SIZE
    history_sample_interval: float = DEFAULT_HISTORY_SAMPLE_INTERVAL
    selected_reference: Optional[str] = None

    def __post_init__(self):
        for label in ("time_scale", "step_scale"):
            value = getattr(self, label)
            if isinstance(value, bool) or int(value) != value:
                raise ValueError(f"{label} must be an integer, got {value!r}")
            value = int(value)
            if not 0 <= value <= U16_MAX:
                raise ValueError(f"{label} must be in [0, {U16_MAX}], got {value}")
            setattr(self, label, value)

        if int(self.history_max_size) != self.history_max_size or self.history_max_size < 1:
            raise ValueError(
                f"history_max_size must be a positive integer, got {self.history_max_size!r}"
            )
        self.history_max_size = int(self.history_max_size)

        self.history_sample_interval = float(self.history_sample_interval)
        if not self.history_sample_interval > 0:
            raise ValueError(
                f"history_sample_interval must be positive, got {self.history_sample_interval}"
            )

    @property
    def substeps(self) -> int:
        return max(1, self.time_scale)

    @property
    def effective_step_scale(self) -> int:
        return max(1, self.step_scale)

    def simulated_seconds(self, frame_dt: float) -> float:
        """Simulated time advanced by one frame of wall-clock length frame_dt."""
        return frame_dt * self.substeps * self.effective_step_scale

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SimulationSettings":
        data = dict(data or {})
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise KeyError(f"Unknown settings keys: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        ref = self.selected_reference if self.selected_reference is not None else "none"
        return (
            f"SimulationSettings(time_scale={self.time_scale}, step_scale={self.step_scale}, "
            f"history_max_size={self.history_max_size}, "
            f"history_sample_interval={self.history_sample_interval:.3f}s, reference={ref})"
        )
