"""Configuration and I/O module for the orrery simulator.

This module provides:
- YAML configuration loading and validation
- Body definition records (one planet or craft per JSON file) and data directories
- Example config and example data directory generation
- CSV output for trajectories
- JSON output for trail polylines and diagnostics

Initial conditions are validated before a simulation is built: two
interacting bodies at the same position abort loading with
DegenerateSeparation.
"""

from typing import Dict, List, Tuple, Optional, Any
import numpy as np
import yaml
import json
from pathlib import Path

from orrery.bodies import Body, PLANET, CRAFT
from orrery.constants import G, DEFAULT_FRAME_DT
from orrery.errors import DegenerateSeparation
from orrery.gravity import check_separations
from orrery.settings import SimulationSettings

PLANETS_DIR = "planets"
CRAFTS_DIR = "crafts"


# ============================================================================
# Body records
# ============================================================================

def body_from_record(
    record: Dict[str, Any],
    kind: Optional[str] = None,
    default_name: Optional[str] = None,
) -> Body:
    """Build a Body from a parsed initial-condition record.

    Parameters
    ----------
    record : dict
        Planet records: name, position, velocity, mass, radius and
        optionally axial_tilt [rad] and angular_velocity [rad/s].
        Craft records: position, velocity and optionally name.
    kind : str, optional
        "planet" or "craft". Defaults to record['kind'], else "planet" when
        the record has a mass and "craft" otherwise.
    default_name : str, optional
        Name used when the record has none (e.g. the file stem).

    Returns
    -------
    Body

    Raises
    ------
    KeyError
        If a required field is missing.
    ValueError
        If a value has the wrong shape or is out of range.

    Examples
    --------
    >>> earth = body_from_record({
    ...     'name': 'Earth', 'position': [1.496e11, 0, 0], 'velocity': [0, 2.978e4, 0],
    ...     'mass': 5.972e24, 'radius': 6.371e6,
    ... })
    >>> earth.kind
    'planet'
    """
    if kind is None:
        kind = record.get('kind', PLANET if 'mass' in record else CRAFT)
    name = record.get('name', default_name)
    if name is None:
        raise KeyError("Body record missing required field 'name'")

    if kind == PLANET:
        return Body.planet(
            name=str(name),
            mass=float(record['mass']),
            radius=float(record['radius']),
            position=record['position'],
            velocity=record['velocity'],
            axial_tilt=float(record.get('axial_tilt', 0.0)),
            angular_velocity=float(record.get('angular_velocity', 0.0)),
        )
    if kind == CRAFT:
        return Body.craft(str(name), record['position'], record['velocity'])
    raise ValueError(f"Body {name!r}: unknown kind {kind!r} (expected 'planet' or 'craft')")


def load_body_file(path, kind: str) -> Body:
    """Load a single JSON body definition; the file stem is the default name."""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        record = json.load(f)
    try:
        return body_from_record(record, kind=kind, default_name=path.stem)
    except KeyError as e:
        raise KeyError(f"{path}: missing required field {e}") from None
    except (ValueError, TypeError) as e:
        raise ValueError(f"{path}: {e}") from None


def load_data_dir(data_dir) -> List[Body]:
    """Load every planets/*.json and crafts/*.json file in a data directory.

    Files are read in sorted order (planets first), which fixes the body
    order and therefore the force summation order.

    Raises
    ------
    FileNotFoundError
        If data_dir does not exist.
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Data directory not found: {data_dir}")

    bodies = []
    for sub, kind in ((PLANETS_DIR, PLANET), (CRAFTS_DIR, CRAFT)):
        folder = data_dir / sub
        if not folder.is_dir():
            continue
        for path in sorted(folder.glob("*.json")):
            bodies.append(load_body_file(path, kind))
    return bodies


# ============================================================================
# YAML configuration
# ============================================================================

def load_config(yaml_path: str) -> Dict[str, Any]:
    """Load and parse a YAML configuration file.

    Parameters
    ----------
    yaml_path : str
        Path to YAML configuration file.

    Returns
    -------
    dict
        Configuration dictionary with keys:
        - 'settings': SimulationSettings instance
        - 'bodies': list of Body instances, observer included
        - 'run': dict with frame_dt and frames
        - 'outputs': dict with save_every, write_csv, write_trails, plot_trails

    Raises
    ------
    FileNotFoundError
        If yaml_path (or a referenced data_dir) does not exist.
    yaml.YAMLError
        If YAML parsing fails.
    KeyError
        If required configuration fields are missing.
    ValueError
        If configuration values are invalid.
    DegenerateSeparation
        If two interacting bodies start at the same position.

    Notes
    -----
    Bodies come from the 'bodies' list, from 'data_dir' (resolved relative
    to the YAML file), or both. The 'observer' section places the camera
    body; if absent, a camera is placed at the world origin.

    Examples
    --------
    >>> config = load_config("solar_system.yaml")
    >>> print(config['settings'])
    SimulationSettings(time_scale=60, step_scale=60, ...)
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with open(yaml_path, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")

    settings = SimulationSettings.from_dict(raw_config.get('settings'))

    # Parse bodies
    if 'bodies' not in raw_config and 'data_dir' not in raw_config:
        raise KeyError("Configuration needs a 'bodies' list or a 'data_dir'")

    bodies: List[Body] = []
    if 'data_dir' in raw_config:
        data_dir = Path(raw_config['data_dir'])
        if not data_dir.is_absolute():
            data_dir = yaml_path.parent / data_dir
        bodies.extend(load_data_dir(data_dir))

    bodies_cfg = raw_config.get('bodies') or []
    if not isinstance(bodies_cfg, list):
        raise ValueError("Configuration 'bodies' must be a list")
    for i, body_cfg in enumerate(bodies_cfg):
        try:
            bodies.append(body_from_record(body_cfg))
        except KeyError as e:
            raise KeyError(f"Body {i} missing required field {e}")
        except (ValueError, TypeError) as e:
            raise ValueError(f"Body {i} ('{body_cfg.get('name', 'unnamed')}'): {e}")

    if not bodies:
        raise ValueError("Configuration defines no bodies")

    # Parse observer
    observer_cfg = raw_config.get('observer') or {}
    bodies.append(Body.camera(
        observer_cfg.get('position', [0.0, 0.0, 0.0]),
        name=str(observer_cfg.get('name', 'Camera')),
    ))

    names = [b.name for b in bodies]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate body names: {duplicates}")

    check_separations(bodies)

    # Parse run and output options
    run_cfg = raw_config.get('run') or {}
    run = {
        'frame_dt': float(run_cfg.get('frame_dt', DEFAULT_FRAME_DT)),
        'frames': int(run_cfg.get('frames', 600)),
    }

    outputs_cfg = raw_config.get('outputs') or {}
    outputs = {
        'save_every': int(outputs_cfg.get('save_every', 10)),
        'write_csv': bool(outputs_cfg.get('write_csv', True)),
        'write_trails': bool(outputs_cfg.get('write_trails', True)),
        'plot_trails': bool(outputs_cfg.get('plot_trails', False)),
    }

    return {
        'settings': settings,
        'bodies': bodies,
        'run': run,
        'outputs': outputs,
    }


def validate_config(config: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate configuration for consistency and numerical sanity.

    Parameters
    ----------
    config : dict
        Configuration dictionary from load_config().

    Returns
    -------
    is_valid : bool
        True if the configuration can be run (may still have warnings).
    warnings_list : list of str
        Messages about errors and potential issues.

    Notes
    -----
    **Checks performed**:

    1. Exactly one observer body
    2. No degenerate separations
    3. frame_dt > 0, frames > 0, save_every > 0
    4. Selected reference names a tracked (dynamic) body
    5. Sampling interval not shorter than a frame (samples would lag)
    6. Sub-step dt small compared to the tightest orbit
    7. History memory footprint
    """
    warnings_list = []
    is_valid = True

    try:
        settings = config['settings']
        bodies = config['bodies']
        run = config['run']
        outputs = config['outputs']
    except KeyError as e:
        return False, [f"Missing required config section: {e}"]

    observers = [b.name for b in bodies if b.observer]
    if len(observers) != 1:
        is_valid = False
        warnings_list.append(
            f"Exactly one observer is required, found {len(observers)}: {observers}"
        )

    try:
        check_separations(bodies)
    except DegenerateSeparation as e:
        is_valid = False
        warnings_list.append(str(e))

    if run['frame_dt'] <= 0:
        is_valid = False
        warnings_list.append(f"frame_dt must be positive, got {run['frame_dt']}")
    if run['frames'] <= 0:
        is_valid = False
        warnings_list.append(f"frames must be positive, got {run['frames']}")
    if outputs['save_every'] <= 0:
        is_valid = False
        warnings_list.append(f"save_every must be positive, got {outputs['save_every']}")

    tracked = [b for b in bodies if b.is_effector]
    ref = settings.selected_reference
    if ref is not None and ref not in [b.name for b in tracked]:
        warnings_list.append(
            f"Selected reference {ref!r} is not a tracked body; "
            f"trails will be drawn in absolute coordinates"
        )

    if run['frame_dt'] > 0 and settings.history_sample_interval < run['frame_dt']:
        warnings_list.append(
            f"history_sample_interval = {settings.history_sample_interval:.3e}s is shorter "
            f"than a frame ({run['frame_dt']:.3e}s); at most one sample is taken per frame"
        )

    # Tightest orbit: for each effector, period around its nearest massive body
    massive = [b for b in bodies if b.is_massive]
    dt_sub = run['frame_dt'] * settings.effective_step_scale
    periods = []
    for target in tracked:
        others = [m for m in massive if m is not target]
        if not others:
            continue
        nearest = min(others, key=lambda m: np.linalg.norm(m.x - target.x))
        r = np.linalg.norm(nearest.x - target.x)
        if r > 0:
            periods.append((2.0 * np.pi * np.sqrt(r**3 / nearest.mu), target.name, nearest.name))
    if periods and dt_sub > 0:
        T_min, target_name, source_name = min(periods)
        if dt_sub > 0.01 * T_min:
            warnings_list.append(
                f"Sub-step dt = {dt_sub:.3e}s is large compared to the orbital period "
                f"T ~ {T_min:.3e}s of '{target_name}' around '{source_name}'. "
                f"Consider dt < {0.01 * T_min:.3e}s (lower step_scale)."
            )

    # Each sample is a 3-vector float64 array held in a deque (~120 bytes)
    history_bytes = settings.history_max_size * len(tracked) * 120
    if history_bytes > 2**30:
        warnings_list.append(
            f"Orbit histories may use up to {history_bytes / 2**30:.1f} GiB "
            f"({settings.history_max_size} samples x {len(tracked)} bodies)"
        )

    return is_valid, warnings_list


# ============================================================================
# Example generation
# ============================================================================

def _example_records() -> Dict[str, List[Dict[str, Any]]]:
    """Sun, Earth, Moon and a low Earth orbit probe in SI units."""
    au = 1.495978707e11
    M_sun = 1.98847e30
    M_earth = 5.972e24
    M_moon = 7.342e22

    v_earth = float(np.sqrt(G * M_sun / au))
    r_moon = 3.844e8
    v_moon = float(np.sqrt(G * M_earth / r_moon))
    r_leo = 6.371e6 + 4.0e5
    v_leo = float(np.sqrt(G * M_earth / r_leo))

    planets = [
        {'name': 'Sun', 'position': [0.0, 0.0, 0.0], 'velocity': [0.0, 0.0, 0.0],
         'mass': M_sun, 'radius': 6.96342e8, 'axial_tilt': 0.1265,
         'angular_velocity': 2.865e-6},
        {'name': 'Earth', 'position': [au, 0.0, 0.0], 'velocity': [0.0, v_earth, 0.0],
         'mass': M_earth, 'radius': 6.371e6, 'axial_tilt': 0.4091,
         'angular_velocity': 7.2921e-5},
        {'name': 'Moon', 'position': [au + r_moon, 0.0, 0.0],
         'velocity': [0.0, v_earth + v_moon, 0.0],
         'mass': M_moon, 'radius': 1.7374e6, 'axial_tilt': 0.1167,
         'angular_velocity': 2.6617e-6},
    ]
    crafts = [
        {'name': 'Probe', 'position': [au, -r_leo, 0.0],
         'velocity': [v_leo, v_earth, 0.0]},
    ]
    return {'planets': planets, 'crafts': crafts}


def create_example_data(data_dir: str) -> List[Path]:
    """Write example body definitions: planets/*.json and crafts/*.json.

    Returns
    -------
    list of Path
        Files written.
    """
    data_dir = Path(data_dir)
    records = _example_records()
    written = []
    for sub, items in ((PLANETS_DIR, records['planets']), (CRAFTS_DIR, records['crafts'])):
        folder = data_dir / sub
        folder.mkdir(parents=True, exist_ok=True)
        for record in items:
            path = folder / f"{record['name']}.json"
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(record, f, indent=2)
            written.append(path)

    print(f"Example data written to: {data_dir} ({len(written)} files)")
    return written


def create_example_config(output_path: str) -> None:
    """Generate an example YAML configuration (Sun, Earth, Moon, LEO probe).

    The example runs 60 sub-steps per frame of 1 simulated second each
    (frame_dt = 1/60 s, step_scale = 60), i.e. one simulated hour per frame,
    with trails drawn relative to Earth.
    """
    records = _example_records()
    earth = records['planets'][1]
    config = {
        'settings': {
            'time_scale': 60,
            'step_scale': 60,
            'history_max_size': 100000,
            'history_sample_interval': 0.5,
            'selected_reference': 'Earth',
        },
        'observer': {
            'name': 'Camera',
            'position': [earth['position'][0], 0.0, 5.0e8],
        },
        'bodies': records['planets'] + records['crafts'],
        'run': {'frame_dt': 1.0 / 60.0, 'frames': 2000},
        'outputs': {
            'save_every': 10,
            'write_csv': True,
            'write_trails': True,
            'plot_trails': False,
        },
    }

    header = (
        "# Orrery configuration: Sun, Earth, Moon and a probe in low Earth orbit\n"
        "#\n"
        "# settings.time_scale   physics sub-steps per frame\n"
        "# settings.step_scale   multiplier on each sub-step's dt (frame_dt * step_scale)\n"
        "# Simulated seconds per frame = frame_dt * time_scale * step_scale.\n"
        "# Bodies may also be loaded from a data directory with `data_dir: <path>`.\n\n"
    )

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write(header)
        yaml.safe_dump(config, f, sort_keys=False)

    sim_per_frame = config['run']['frame_dt'] * 60 * 60
    print(f"Example configuration written to: {output_path}")
    print(f"  Simulated time per frame: {sim_per_frame:.1f} s")
    print(f"  Reference frame: {config['settings']['selected_reference']}")


# ============================================================================
# Output
# ============================================================================

def save_state_csv(filepath: str, trajectory: Dict[str, Any]) -> None:
    """Save trajectory data to CSV file.

    Writes columns: time, body_name, x, y, z, vx, vy, vz. Each row is one
    body at one saved frame.

    Parameters
    ----------
    filepath : str
        Output CSV file path.
    trajectory : dict
        From Simulation.run(): 'names', 't' (n,), 'x' (n, N, 3), 'v' (n, N, 3).
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    names = trajectory['names']
    with open(filepath, 'w') as f:
        f.write("time,body_name,x,y,z,vx,vy,vz\n")
        for t, xs, vs in zip(trajectory['t'], trajectory['x'], trajectory['v']):
            for name, x, v in zip(names, xs, vs):
                f.write(
                    f"{t:.15e},{name},"
                    f"{x[0]:.15e},{x[1]:.15e},{x[2]:.15e},"
                    f"{v[0]:.15e},{v[1]:.15e},{v[2]:.15e}\n"
                )

    n_snapshots = len(trajectory['t'])
    print(f"Saved {n_snapshots * len(names)} states "
          f"({n_snapshots} snapshots × {len(names)} bodies) to {filepath}")


def save_polylines_json(
    filepath: str,
    polylines: Dict[str, np.ndarray],
    reference: Optional[str] = None,
) -> None:
    """Save trail polylines (float32 points) keyed by body name."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    data = {
        'reference': reference,
        'trails': {name: np.asarray(p, dtype=np.float32).tolist() for name, p in polylines.items()},
    }
    with open(filepath, 'w') as f:
        json.dump(data, f)
    print(f"Saved {len(polylines)} trails to {filepath}")


def save_diagnostics_json(filepath: str, diagnostics: Dict[str, Any]) -> None:
    """Save diagnostics data to JSON file, converting numpy types."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    def convert_to_json_serializable(obj):
        """Recursively convert numpy arrays to lists."""
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, dict):
            return {key: convert_to_json_serializable(val) for key, val in obj.items()}
        elif isinstance(obj, list):
            return [convert_to_json_serializable(item) for item in obj]
        elif isinstance(obj, (np.integer, np.floating)):
            return obj.item()
        else:
            return obj

    with open(filepath, 'w') as f:
        json.dump(convert_to_json_serializable(diagnostics), f, indent=2)

    print(f"Saved diagnostics to {filepath} ({len(diagnostics)} top-level keys)")
