"""
Command-line interface for lattice simulation.

Usage:
    spring-lattice --config configs/default.yaml --ticks 500 --out output/
    python -m spring_lattice.cli --duration 10 --workers 4 --png
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import SimulationConfig, load_config
from .exceptions import LatticeConstructionError, LatticeError
from .exporters import export_results
from .runner import build_simulation
from .logger import Logger, ConsoleStrategy, LocalFileStrategy


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Damped spring lattice simulation with anchors, gravity and random forcing"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to YAML configuration file (defaults if omitted)"
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--ticks", "-t",
        type=int,
        default=None,
        help="Run this many scheduler ticks headless, without pacing"
    )
    mode.add_argument(
        "--duration", "-d",
        type=float,
        default=None,
        help="Run in real time for this many seconds with a frame reader"
    )
    parser.add_argument("--width", type=int, default=None, help="Lattice width (overrides config)")
    parser.add_argument("--height", type=int, default=None, help="Lattice height (overrides config)")
    parser.add_argument("--workers", "-w", type=int, default=None, help="Worker threads per step")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the external perturbation")
    parser.add_argument(
        "--gravity",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable gravity (overrides config)"
    )
    parser.add_argument(
        "--external",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable the random external force (overrides config)"
    )
    parser.add_argument("--out", "-o", type=Path, default=None, help="Output directory (overrides config)")
    parser.add_argument("--name", "-n", type=str, default=None, help="Run name (overrides config)")
    parser.add_argument("--png", action="store_true", help="Write a PNG of the final frame")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress output except errors")
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write the full debug log to this file instead of the console"
    )
    return parser


def apply_overrides(config: SimulationConfig, args) -> SimulationConfig:
    """Fold command-line overrides into a validated copy of config."""
    lattice = config.lattice
    if args.width is not None or args.height is not None:
        lattice = replace(
            lattice,
            width=args.width if args.width is not None else lattice.width,
            height=args.height if args.height is not None else lattice.height,
            anchors=None
        )

    dynamics = config.dynamics
    if args.workers is not None:
        dynamics = replace(dynamics, n_workers=args.workers)

    controls = config.controls
    if args.seed is not None:
        controls = replace(controls, seed=args.seed)
    if args.gravity is not None:
        controls = replace(controls, gravity_enabled=args.gravity)
    if args.external is not None:
        controls = replace(controls, external_enabled=args.external)

    output = config.output
    if args.out is not None:
        output = replace(output, out_dir=str(args.out))
    if args.name is not None:
        output = replace(output, run_name=args.name)
    if args.png:
        output = replace(output, write_png=True)

    new_config = replace(config, lattice=lattice, dynamics=dynamics, controls=controls, output=output)
    is_valid, error = new_config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {error}")
    return new_config


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_file is not None:
        Logger.set_log_storage_strategy(LocalFileStrategy(args.log_file))
    else:
        Logger.set_log_storage_strategy(
            ConsoleStrategy(min_priority="ERROR" if args.quiet else "INFO")
        )

    # Load and validate config
    try:
        config = load_config(args.config) if args.config is not None else SimulationConfig()
        config = apply_overrides(config, args)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        simulation = build_simulation(config)
    except LatticeConstructionError as e:
        print(f"Error: Invalid lattice: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print("Running lattice simulation...")
        print(f"  Lattice: {config.lattice.width}x{config.lattice.height}")
        print(f"  Sub-steps per tick: {simulation.scheduler.substeps_per_tick()}")
        print(f"  Worker threads: {simulation.integrator.n_workers}")
        print(f"  Gravity: {'on' if config.controls.gravity_enabled else 'off'}")
        print(f"  External force: {'on' if config.controls.external_enabled else 'off'}")

    try:
        with simulation:
            if args.duration is not None:
                result = simulation.run_realtime(args.duration)
            else:
                ticks = args.ticks if args.ticks is not None else 100
                result = simulation.run_headless(ticks)
            fixed = simulation.shared.state.fixed
    except LatticeError as e:
        print(f"Error: Simulation failed: {e}", file=sys.stderr)
        sys.exit(2)

    paths = export_results(
        result,
        fixed,
        Path(config.output.out_dir),
        config.output.run_name,
        write_png=config.output.write_png
    )

    # Print summary
    if not args.quiet:
        timing = result.timing
        print()
        print("=" * 50)
        print("SIMULATION COMPLETE")
        print("=" * 50)
        print(f"  Steps: {result.steps} ({timing.ticks} ticks)")
        print(f"  Simulated time: {result.final.t:.3f} s")
        print(f"  Mean tick: {timing.mean_s * 1e3:.3f} ms")
        if args.duration is not None:
            print(f"  Frames read: {result.frames_read}")
        print()
        print("Output files:")
        for key, path in paths.items():
            print(f"  {key}: {path}")

    sys.exit(0)


if __name__ == "__main__":
    main()
