"""Body dataclass and world container for the orrery physics core.

Each body carries a double-precision kinematic record:
- Position x, velocity v and an acceleration accumulator a (3D vectors)
- An optional gravitational parameter mu = G * M

Bodies with mu are "massive" and act as gravity sources. Bodies without
mu (small craft) are pure effectors: they feel gravity but are too light
to perturb anything. Massive bodies are effectors of each other.

The single-precision render_transform is derived every frame by the
floating-origin relocator and is never read back as simulation state.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional
import numpy as np
from numpy.typing import NDArray

from orrery.constants import G

Vec3 = NDArray[np.float64]  # Shape (3,)

PLANET = "planet"
CRAFT = "craft"
OBSERVER = "observer"
KINDS = (PLANET, CRAFT, OBSERVER)


def as_vec3(value, label: str) -> Vec3:
    """Coerce a 3-sequence into a float64 vector, validating shape and finiteness."""
    vec = np.array(value, dtype=np.float64)
    if vec.shape != (3,):
        raise ValueError(f"{label} must have shape (3,), got {vec.shape}")
    if not np.all(np.isfinite(vec)):
        raise ValueError(f"{label} must be finite, got {vec}")
    return vec


@dataclass(eq=False)
class Body:
    """A simulated body (planet, craft or observer).

    Attributes
    ----------
    name : str
        Identifier for this body; unique within a World.
    x : np.ndarray
        Absolute position [m], shape (3,), float64.
    v : np.ndarray
        Velocity [m/s], shape (3,), float64.
    mu : float or None
        Gravitational parameter G*M [m³/s²]. None for effector-only bodies.
    radius : float
        Physical radius [m]. Informational; no collisions are resolved.
    kind : str
        One of "planet", "craft", "observer".
    dynamic : bool
        True if the body is integrated (an effector). Massive bodies must
        be dynamic.
    observer : bool
        True for the active viewpoint used as floating origin.
    axial_tilt, spin_velocity, spin_position : float
        Decorative rotation state [rad, rad/s, rad].
    a : np.ndarray
        Acceleration accumulator [m/s²], zero between sub-steps.
    render_transform : np.ndarray
        Observer-relative position narrowed to float32.

    Notes
    -----
    Equality is identity: two bodies at the same place with the same name
    are still different bodies, and the force accumulator excludes
    self-interaction by identity.

    Examples
    --------
    >>> sun = Body.planet("Sun", mass=1.989e30, radius=6.96e8,
    ...                   position=[0, 0, 0], velocity=[0, 0, 0])
    >>> sun.is_massive
    True
    >>> probe = Body.craft("Probe", position=[1.5e11, 0, 0], velocity=[0, 3e4, 0])
    >>> probe.is_massive, probe.is_effector
    (False, True)
    """

    name: str
    x: Vec3
    v: Vec3
    mu: Optional[float] = None
    radius: float = 0.0
    kind: str = CRAFT
    dynamic: bool = True
    observer: bool = False
    axial_tilt: float = 0.0
    spin_velocity: float = 0.0
    spin_position: float = 0.0
    a: Vec3 = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    render_transform: NDArray[np.float32] = field(
        default_factory=lambda: np.zeros(3, dtype=np.float32)
    )

    def __post_init__(self):
        """Validate parameters and ensure vectors are float64 numpy arrays."""
        self.x = as_vec3(self.x, f"Body '{self.name}' position")
        self.v = as_vec3(self.v, f"Body '{self.name}' velocity")
        self.a = as_vec3(self.a, f"Body '{self.name}' acceleration")
        self.render_transform = np.asarray(self.render_transform, dtype=np.float32)

        if self.kind not in KINDS:
            raise ValueError(f"Body '{self.name}': kind must be one of {KINDS}, got {self.kind!r}")
        if self.mu is not None:
            self.mu = float(self.mu)
            if not np.isfinite(self.mu) or self.mu <= 0:
                raise ValueError(f"Body '{self.name}': mu must be positive, got {self.mu}")
            if not self.dynamic:
                raise ValueError(f"Body '{self.name}': massive bodies must be dynamic")
            if self.observer:
                raise ValueError(f"Body '{self.name}': an observer cannot be massive")
        if self.radius < 0:
            raise ValueError(f"Body '{self.name}': radius must be non-negative, got {self.radius}")

    # ------------------------------------------------------------------
    # Constructors matching the loaded definition types
    # ------------------------------------------------------------------

    @classmethod
    def planet(
        cls,
        name: str,
        mass: float,
        radius: float,
        position,
        velocity,
        axial_tilt: float = 0.0,
        angular_velocity: float = 0.0,
    ) -> "Body":
        """Massive body from a planet definition; mu = mass * G."""
        if mass <= 0:
            raise ValueError(f"Planet '{name}': mass must be positive, got {mass}")
        return cls(
            name=name,
            x=position,
            v=velocity,
            mu=mass * G,
            radius=float(radius),
            kind=PLANET,
            axial_tilt=float(axial_tilt),
            spin_velocity=float(angular_velocity),
        )

    @classmethod
    def craft(cls, name: str, position, velocity) -> "Body":
        """Effector-only body from a craft definition."""
        return cls(name=name, x=position, v=velocity, kind=CRAFT)

    @classmethod
    def camera(cls, position, name: str = "Camera") -> "Body":
        """Static observer body used as the floating origin."""
        return cls(
            name=name,
            x=position,
            v=np.zeros(3),
            kind=OBSERVER,
            dynamic=False,
            observer=True,
        )

    # ------------------------------------------------------------------

    @property
    def is_massive(self) -> bool:
        return self.mu is not None

    @property
    def is_effector(self) -> bool:
        return self.dynamic

    @property
    def mass(self) -> Optional[float]:
        """Inertial mass recovered from mu, or None for effector-only bodies."""
        if self.mu is None:
            return None
        return self.mu / G

    @property
    def orientation(self) -> NDArray[np.float32]:
        """Decorative rotation matrix: tilt about x, then spin about z."""
        ct, st = np.cos(self.axial_tilt), np.sin(self.axial_tilt)
        cs, ss = np.cos(self.spin_position), np.sin(self.spin_position)
        tilt = np.array([[1.0, 0.0, 0.0], [0.0, ct, -st], [0.0, st, ct]])
        spin = np.array([[cs, -ss, 0.0], [ss, cs, 0.0], [0.0, 0.0, 1.0]])
        return (tilt @ spin).astype(np.float32)

    def __str__(self) -> str:
        lines = [f"Body '{self.name}' ({self.kind})"]
        if self.mu is not None:
            lines[0] += f": mu={self.mu:.6e}, R={self.radius:.3e}"
        lines.append(f"  x = [{self.x[0]:.6e}, {self.x[1]:.6e}, {self.x[2]:.6e}]")
        lines.append(f"  v = [{self.v[0]:.6e}, {self.v[1]:.6e}, {self.v[2]:.6e}]")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Body(name={self.name!r}, kind={self.kind!r}, mu={self.mu!r}, "
            f"x={self.x!r}, v={self.v!r})"
        )


class World:
    """Ordered collection of bodies.

    Iteration order is insertion order, which makes force summation
    deterministic within a sub-step. Bodies live for the whole run; there
    is no removal.
    """

    def __init__(self, bodies: Optional[List[Body]] = None):
        self._bodies: List[Body] = []
        self._by_name: Dict[str, Body] = {}
        for body in bodies or []:
            self.add(body)

    def add(self, body: Body) -> Body:
        if body.name in self._by_name:
            raise ValueError(f"Duplicate body name: {body.name!r}")
        self._bodies.append(body)
        self._by_name[body.name] = body
        return body

    def get(self, name: str) -> Body:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"No body named {name!r}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Body]:
        return iter(self._bodies)

    def __len__(self) -> int:
        return len(self._bodies)

    @property
    def bodies(self) -> List[Body]:
        return list(self._bodies)

    def names(self) -> List[str]:
        return [b.name for b in self._bodies]

    def massive(self) -> List[Body]:
        return [b for b in self._bodies if b.is_massive]

    def effectors(self) -> List[Body]:
        return [b for b in self._bodies if b.is_effector]

    def observers(self) -> List[Body]:
        return [b for b in self._bodies if b.observer]
