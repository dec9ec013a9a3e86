"""N-body orbit simulator core: gravity, symplectic Euler sub-stepping,
floating-origin render transforms and reference-frame orbit trails."""

from orrery.bodies import Body, World
from orrery.errors import (
    DegenerateSeparation,
    MissingObserver,
    MultipleObservers,
    UnresolvedReferenceHistory,
)
from orrery.settings import SimulationSettings
from orrery.simulation import Simulation

__version__ = "0.1.0"
