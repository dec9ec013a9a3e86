"""
Floating-origin relocation.

The renderer works in single precision. At interplanetary distances
(~1e11 m) a float32 has a resolution of kilometres, so absolute positions
cannot be handed to it directly. Once per frame, after all physics
sub-steps, every body's absolute float64 position is re-expressed
relative to the observer and only then narrowed:

    render_transform = float32(x - x_observer)

Rendered magnitudes are then bounded by the observer-to-body distance,
independent of where in the system the observer is.
"""

from typing import Iterable, Optional, Sequence
import numpy as np

from orrery.bodies import Body
from orrery.errors import MissingObserver, MultipleObservers


def find_observer(bodies: Iterable[Body]) -> Body:
    """
    Return the single observer body.

    Raises
    ------
    MissingObserver
        If no body has observer=True.
    MultipleObservers
        If more than one body has observer=True.
    """
    observers = [b for b in bodies if b.observer]
    if not observers:
        raise MissingObserver()
    if len(observers) > 1:
        raise MultipleObservers([b.name for b in observers])
    return observers[0]


def relocate(
    bodies: Sequence[Body],
    observer: Optional[Body] = None,
    anchors: Iterable = (),
) -> Body:
    """
    Set render_transform on every body (and anchor) relative to the observer.

    Parameters
    ----------
    bodies : sequence of Body
        All bodies of the world, observer included.
    observer : Body, optional
        Observer to use. Looked up with find_observer() when omitted.
    anchors : iterable, optional
        Other render objects with a float64 `x` and a float32
        `render_transform` attribute (e.g. orbit history trails, whose
        origin is the world origin).

    Returns
    -------
    Body
        The observer used.

    Raises
    ------
    MissingObserver, MultipleObservers
        Raised before any render_transform is written, so a failed call
        leaves the previous frame's values intact.

    Examples
    --------
    >>> cam = Body.camera([100.0, 200.0, 300.0])
    >>> b = Body.craft("b", position=[105.0, 203.0, 301.0], velocity=[0, 0, 0])
    >>> _ = relocate([cam, b])
    >>> b.render_transform
    array([5., 3., 1.], dtype=float32)
    """
    if observer is None:
        observer = find_observer(bodies)
    origin = observer.x.copy()

    for body in bodies:
        body.render_transform = (body.x - origin).astype(np.float32)
    for anchor in anchors:
        anchor.render_transform = (anchor.x - origin).astype(np.float32)
    return observer
