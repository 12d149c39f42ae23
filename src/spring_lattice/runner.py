"""
Main simulation runner.

Builds the lattice, anchors, integrator, toggles and scheduler from a
SimulationConfig and runs them either headless (deterministic, no
pacing) or in real time with a reader sampling frames while the
simulation thread writes.
"""

import time
from dataclasses import dataclass
from typing import Optional

from .config import SimulationConfig
from .controls import ControlPanel, ControlSnapshot
from .gate import SharedLattice
from .integrator import LatticeIntegrator
from .scheduler import StepScheduler, TimingStats
from .state import LatticeSnapshot, LatticeState
from .logger import Logger


@dataclass
class SimulationResult:
    """
    Complete run results.

    Attributes:
        config: Configuration used.
        final: Snapshot of the lattice at the end of the run.
        timing: Per-tick timing statistics.
        controls: Toggle values at the end of the run.
        frames_read: Snapshots taken by the reader (real-time runs only).
        wall_time_s: Wall-clock length of the run.
    """
    config: SimulationConfig
    final: LatticeSnapshot
    timing: TimingStats
    controls: ControlSnapshot
    frames_read: int = 0
    wall_time_s: float = 0.0

    @property
    def steps(self) -> int:
        return self.final.steps


class LatticeSimulation:
    """
    A configured lattice with everything needed to step it.
    """

    def __init__(self, config: SimulationConfig):
        """
        Initialize simulation from configuration.

        Args:
            config: Complete simulation configuration.

        Raises:
            LatticeConstructionError: If dimensions or anchors are invalid.
        """
        self.config = config

        state = LatticeState.create(
            config.lattice.width,
            config.lattice.height,
            y_offset=config.lattice.y_offset
        )
        anchors = state.anchor_indices(config.lattice.anchors)
        state.mark_fixed(anchors)
        Logger.log(
            f"Lattice {state.width}x{state.height} built: {state.n_nodes} nodes, "
            f"{state.n_edges} springs, anchors {anchors}",
            Logger.LogPriority.INFO
        )

        self.shared = SharedLattice(state)
        self.controls = ControlPanel.from_config(config.controls)
        self.integrator = LatticeIntegrator.from_config(
            config.physics, config.dynamics, seed=config.controls.seed
        )
        self.scheduler = StepScheduler(
            self.shared,
            self.integrator,
            self.controls,
            config.dynamics,
            config.scheduler
        )

    def step(self, dt: Optional[float] = None, gravity_enabled: bool = True, external_enabled: bool = False) -> None:
        """
        Advance the shared lattice by one time step in place.

        Args:
            dt: Time step in s; the configured dt if None.
            gravity_enabled: Include gravity.
            external_enabled: Include the random perturbation.
        """
        dt = self.config.dynamics.dt if dt is None else dt
        controls = ControlSnapshot(gravity_enabled=gravity_enabled, external_enabled=external_enabled)
        with self.shared.write():
            self.shared.commit(self.integrator.advance(self.shared.state, dt, controls))

    def snapshot(self) -> LatticeSnapshot:
        return self.shared.snapshot()

    def run_headless(self, ticks: int) -> SimulationResult:
        """
        Run a fixed number of scheduler ticks on the calling thread,
        without wall-clock pacing.
        """
        start = time.monotonic()
        stats = self.scheduler.run(max_ticks=ticks, pace=False)
        return self._result(stats, 0, time.monotonic() - start)

    def run_realtime(self, duration_s: float, frame_interval_s: Optional[float] = None) -> SimulationResult:
        """
        Run the scheduler thread for duration_s while this thread reads
        drawable frames at frame_interval_s, as a renderer would.

        Raises:
            The error that terminated the simulation thread, if any.
        """
        if frame_interval_s is None:
            frame_interval_s = self.config.scheduler.frame_interval_s

        frames = 0
        start = time.monotonic()
        self.scheduler.start(duration_s=duration_s)
        try:
            while self.scheduler.running:
                self.shared.drawable_segments()
                frames += 1
                time.sleep(frame_interval_s)
        finally:
            self.scheduler.stop()
            stats = self.scheduler.join()
        return self._result(stats, frames, time.monotonic() - start)

    def _result(self, stats: TimingStats, frames: int, wall_time_s: float) -> SimulationResult:
        return SimulationResult(
            config=self.config,
            final=self.shared.snapshot(),
            timing=stats,
            controls=self.controls.snapshot(),
            frames_read=frames,
            wall_time_s=wall_time_s
        )

    def close(self) -> None:
        """Stop the scheduler and release the worker pool."""
        self.scheduler.stop()
        if self.scheduler.running:
            self.scheduler.join()
        self.integrator.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def build_simulation(config: Optional[SimulationConfig] = None) -> LatticeSimulation:
    """Build a simulation from config (defaults if None)."""
    return LatticeSimulation(config if config is not None else SimulationConfig())


def run_simulation(config: SimulationConfig, ticks: int) -> SimulationResult:
    """
    Convenience function: build, run headless for ticks, and clean up.
    """
    with build_simulation(config) as simulation:
        return simulation.run_headless(ticks)
