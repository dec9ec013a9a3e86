#!/usr/bin/env python3
"""
Command-line interface for the orrery simulator.

Runs the frame pipeline headless (physics sub-steps, orbit history,
floating origin) for a fixed number of frames and writes the results:
- trajectory.csv: absolute states of all dynamic bodies
- trails.json: float32 trail polylines as the renderer would receive them
- diagnostics.json: energy/momentum of the massive subsystem and summary
- trails.png / frame.png: optional plots

Usage:
    python -m orrery.run config.yaml
    python -m orrery.run config.yaml --output-dir results --verbose
    python -m orrery.run config.yaml --validate-only
    python -m orrery.run config.yaml --reference Moon --frames 5000 --plot
    python -m orrery.run --create-example example.yaml
    python -m orrery.run --create-data data/
"""

import argparse
import dataclasses
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from orrery.diagnostics import compute_diagnostics, energy_drift
from orrery.errors import OrreryError
from orrery.io_cfg import (
    load_config,
    validate_config,
    create_example_config,
    create_example_data,
    save_state_csv,
    save_polylines_json,
    save_diagnostics_json,
)
from orrery.simulation import Simulation


def run_simulation(
    config: Dict[str, Any],
    verbose: bool = False,
    progress_every: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run the configured number of frames.

    Parameters
    ----------
    config : dict
        Loaded and validated configuration.
    verbose : bool
        Print header and progress.
    progress_every : int, optional
        Progress line interval in frames (default: ~10 lines per run).

    Returns
    -------
    results : dict
        - 'simulation': the Simulation (final state, tracker, clock)
        - 'trajectory': dict from Simulation.run()
        - 'diagnostics': dict with initial/final diagnostics
        - 'summary': summary statistics dict
    """
    sim = Simulation.from_config(config)
    settings = sim.settings
    n_frames = config['run']['frames']
    frame_dt = config['run']['frame_dt']
    save_every = config['outputs']['save_every']

    if progress_every is None:
        progress_every = max(1, n_frames // 10)

    if verbose:
        print("=" * 80)
        print("ORRERY")
        print("=" * 80)
        print()
        print(settings)
        print()
        print(f"Bodies ({len(sim.world)}):")
        for body in sim.world:
            mu = f"mu={body.mu:.6e}" if body.is_massive else "massless"
            print(f"  {body.name:12s}: {body.kind:8s} {mu}")
        print()
        print("Run parameters:")
        print(f"  Frames:             {n_frames:,}")
        print(f"  Frame dt:           {frame_dt:.6e} s")
        print(f"  Sub-steps/frame:    {settings.substeps}")
        print(f"  Sub-step dt:        {frame_dt * settings.effective_step_scale:.6e} s")
        print(f"  Simulated/frame:    {settings.simulated_seconds(frame_dt):.6e} s")
        print()

    diag_initial = compute_diagnostics(sim.world.bodies)

    def progress(report):
        if verbose and report.frame % progress_every == 0:
            print(f"  Frame {report.frame:8d}/{n_frames}  "
                  f"t_sim={report.sim_time:.6e}s  "
                  f"history passes={sim.tracker.passes}")

    t_start = time.time()
    trajectory = sim.run(n_frames, frame_dt, save_every=save_every, progress=progress)
    elapsed = time.time() - t_start

    diag_final = compute_diagnostics(sim.world.bodies)
    summary = {
        'timing': {
            'elapsed_seconds': elapsed,
            'frames_per_second': n_frames / elapsed if elapsed > 0 else float('inf'),
        },
        'integration': {
            'frames': n_frames,
            'substeps': n_frames * settings.substeps,
            'simulated_seconds': sim.clock.elapsed,
        },
        'energy': {
            'initial': diag_initial['total_energy'],
            'final': diag_final['total_energy'],
            'drift_relative': energy_drift(
                diag_initial['total_energy'], diag_final['total_energy']
            ),
        },
        'history': {
            'passes': sim.tracker.passes,
            'reference': sim.tracker.selected_reference,
            'samples': {h.body_name: len(h) for h in sim.tracker.histories()},
        },
    }

    return {
        'simulation': sim,
        'trajectory': trajectory,
        'diagnostics': {'initial': diag_initial, 'final': diag_final},
        'summary': summary,
    }


def print_summary(summary: Dict[str, Any]) -> None:
    """Print human-readable run summary."""
    print()
    print("=" * 80)
    print("SIMULATION SUMMARY")
    print("=" * 80)
    print()

    t = summary['timing']
    print("Performance:")
    print(f"  Wall time:          {t['elapsed_seconds']:.2f} seconds")
    print(f"  Speed:              {t['frames_per_second']:.1f} frames/second")
    print()

    i = summary['integration']
    print("Integration:")
    print(f"  Frames:             {i['frames']:,}")
    print(f"  Sub-steps:          {i['substeps']:,}")
    print(f"  Simulated time:     {i['simulated_seconds']:.6e} s")
    print()

    e = summary['energy']
    print("Energy (massive bodies):")
    print(f"  Initial energy:     {e['initial']:+.10e}")
    print(f"  Final energy:       {e['final']:+.10e}")
    print(f"  Relative drift:     {e['drift_relative']:+.6e}")
    print()

    h = summary['history']
    print("Orbit history:")
    print(f"  Sampling passes:    {h['passes']}")
    print(f"  Reference frame:    {h['reference'] or 'none (absolute)'}")
    for name, n in h['samples'].items():
        print(f"    {name:12s}: {n} samples")
    print()


def save_outputs(
    config: Dict[str, Any],
    results: Dict[str, Any],
    output_dir: Path,
    plot: bool = False,
) -> List[Path]:
    """Save CSV, trail JSON, diagnostics JSON and optional plots."""
    output_dir.mkdir(parents=True, exist_ok=True)
    sim = results['simulation']
    written = []

    if config['outputs']['write_csv']:
        path = output_dir / "trajectory.csv"
        save_state_csv(str(path), results['trajectory'])
        written.append(path)

    if config['outputs']['write_trails']:
        path = output_dir / "trails.json"
        save_polylines_json(str(path), sim.tracker.polylines(), sim.tracker.selected_reference)
        written.append(path)

    path = output_dir / "diagnostics.json"
    save_diagnostics_json(str(path), {**results['diagnostics'], 'summary': results['summary']})
    written.append(path)

    if plot or config['outputs']['plot_trails']:
        import matplotlib
        matplotlib.use('Agg')
        from orrery.viz import plot_orbit_trails, plot_render_frame

        written.append(plot_orbit_trails(
            sim.tracker.polylines(), str(output_dir / "trails.png"),
            reference=sim.tracker.selected_reference,
        ))
        written.append(plot_render_frame(sim.world.bodies, str(output_dir / "frame.png")))

    print()
    print(f"✓ Outputs saved to: {output_dir.absolute()}")
    for path in written:
        print(f"  - {path.name}")
    print()
    return written


# ============================================================================
# Command-line interface
# ============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='orrery.run',
        description=(
            'N-body orbit simulator with floating-origin render transforms '
            'and reference-frame orbit trails.'
        ),
        epilog=(
            'Examples:\n'
            '  python -m orrery.run example.yaml --verbose\n'
            '  python -m orrery.run example.yaml --reference Moon --plot\n'
            '  python -m orrery.run --create-example example.yaml\n'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument('config', type=str, nargs='?', help='Path to YAML configuration file')
    parser.add_argument('--output-dir', type=str, default='output',
                        help='Output directory for results (default: output/)')
    parser.add_argument('--frames', type=int, help='Override number of frames')
    parser.add_argument('--frame-dt', type=float, help='Override frame duration [s]')
    parser.add_argument('--time-scale', type=int, help='Override sub-steps per frame')
    parser.add_argument('--step-scale', type=int, help='Override sub-step dt multiplier')
    parser.add_argument('--reference', type=str,
                        help="Reference body for trails ('none' for absolute)")
    parser.add_argument('--plot', action='store_true', help='Write trail and frame plots')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output')
    parser.add_argument('--validate-only', action='store_true',
                        help='Validate configuration and exit (no simulation)')
    parser.add_argument('--create-example', type=str, metavar='PATH',
                        help='Write an example YAML configuration and exit')
    parser.add_argument('--create-data', type=str, metavar='DIR',
                        help='Write example planets/ and crafts/ definitions and exit')
    return parser


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> None:
    """Apply command-line overrides onto a loaded configuration."""
    if args.frames is not None:
        config['run']['frames'] = args.frames
    if args.frame_dt is not None:
        config['run']['frame_dt'] = args.frame_dt

    changes = {}
    if args.time_scale is not None:
        changes['time_scale'] = args.time_scale
    if args.step_scale is not None:
        changes['step_scale'] = args.step_scale
    if args.reference is not None:
        changes['selected_reference'] = None if args.reference.lower() == 'none' else args.reference
    if changes:
        # replace() re-runs the range checks
        config['settings'] = dataclasses.replace(config['settings'], **changes)


def main(argv=None):
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.create_example or args.create_data:
        if args.create_example:
            create_example_config(args.create_example)
        if args.create_data:
            create_example_data(args.create_data)
        return 0

    if args.config is None:
        parser.print_usage(sys.stderr)
        print("ERROR: a configuration file is required", file=sys.stderr)
        return 1

    # 1) Load configuration
    try:
        if args.verbose:
            print(f"Loading configuration from: {args.config}")
            print()
        config = load_config(args.config)
        apply_overrides(config, args)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except (KeyError, ValueError, OrreryError) as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    # 2) Validate configuration
    is_valid, warnings_list = validate_config(config)
    if warnings_list:
        print("⚠️  Configuration warnings/errors:")
        for w in warnings_list:
            print(f"    - {w}")
        print()

    if not is_valid:
        print("❌ Configuration is INVALID. Please fix errors above.", file=sys.stderr)
        return 1

    if args.validate_only:
        print("✓ Configuration validated successfully. Exiting (--validate-only mode).")
        return 0

    # 3) Run simulation
    try:
        results = run_simulation(config, verbose=args.verbose)
    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user. Exiting without saving.")
        return 130
    except OrreryError as e:
        print(f"\nERROR: Simulation halted: {e}", file=sys.stderr)
        return 1

    # 4) Summary and outputs
    print_summary(results['summary'])
    try:
        save_outputs(config, results, Path(args.output_dir), plot=args.plot)
    except OSError as e:
        print(f"ERROR: Failed to save outputs: {e}", file=sys.stderr)
        return 1

    print("✓ Simulation complete!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
