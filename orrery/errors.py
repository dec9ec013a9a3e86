"""Exceptions and warnings raised by the orrery physics core.

Setup problems (degenerate initial conditions, a missing or duplicated
observer) are fatal and raised as exceptions. A selected reference frame
without a history is a transient UI state and is only warned about.
"""

from typing import Sequence


class OrreryError(Exception):
    """Base class for orrery errors."""


class DegenerateSeparation(OrreryError, ValueError):
    """Two bodies share a position, so the 1/r^2 law divides by zero.

    Attributes
    ----------
    first, second : str
        Names of the coincident bodies.
    """

    def __init__(self, first: str, second: str):
        self.first = first
        self.second = second
        super().__init__(
            f"Bodies '{first}' and '{second}' are at zero separation; "
            f"gravitational acceleration is undefined"
        )


class ObserverError(OrreryError, RuntimeError):
    """The floating origin needs exactly one observer."""


class MissingObserver(ObserverError):
    def __init__(self):
        super().__init__("No observer body found; exactly one is required")


class MultipleObservers(ObserverError):
    def __init__(self, names: Sequence[str]):
        self.names = list(names)
        super().__init__(
            f"Found {len(self.names)} observer bodies ({', '.join(self.names)}); "
            f"exactly one is required"
        )


class UnresolvedReferenceHistory(UserWarning):
    """Selected reference body has no orbit history; trails stay absolute."""
