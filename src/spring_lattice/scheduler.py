"""
Step scheduler: the single writer of the shared lattice.

Each tick reads the published toggles once, takes the write side of the
gate, runs the tick's sub-steps back to back and commits after each one,
then releases. Readers see the lattice only between ticks.

Sub-stepping:
    height <  substep_height_threshold -> small_lattice_substeps per tick
    height >= substep_height_threshold -> 1 per tick

Ticks are paced by waiting dt of wall-clock time between them. The loop
runs until stopped; a fixed duration can be given for benchmarking.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from .config import DynamicsConfig, SchedulerConfig
from .controls import ControlPanel
from .exceptions import GatePoisonedError, LatticeError
from .gate import SharedLattice
from .integrator import LatticeIntegrator
from .logger import Logger


DEFAULT_HISTORY = 10_000


@dataclass
class TimingStats:
    """
    Wall-clock time spent inside write holds, per tick.

    Diagnostic only; nothing reads it back into the simulation. Only the
    last `history` per-tick durations are kept, so an open-ended run uses
    bounded memory; the aggregates cover every tick.
    """
    ticks: int = 0
    substeps: int = 0
    total_s: float = 0.0
    min_s: float = float("inf")
    max_s: float = 0.0
    keep_durations: bool = True
    history: int = DEFAULT_HISTORY
    durations_s: Deque[float] = field(init=False, repr=False)

    def __post_init__(self):
        self.durations_s = deque(maxlen=self.history if self.keep_durations else 0)

    def record(self, duration_s: float, substeps: int) -> None:
        self.ticks += 1
        self.substeps += substeps
        self.total_s += duration_s
        self.min_s = min(self.min_s, duration_s)
        self.max_s = max(self.max_s, duration_s)
        self.durations_s.append(duration_s)

    @property
    def first_kept_tick(self) -> int:
        """Tick number (from 1) of the oldest duration still held."""
        return self.ticks - len(self.durations_s) + 1

    @property
    def mean_s(self) -> float:
        return self.total_s / self.ticks if self.ticks else 0.0

    def summary(self) -> dict:
        return {
            "ticks": self.ticks,
            "substeps": self.substeps,
            "total_s": self.total_s,
            "mean_s": self.mean_s,
            "min_s": self.min_s if self.ticks else 0.0,
            "max_s": self.max_s,
        }


class StepScheduler:
    """
    Drives repeated integration of a SharedLattice.
    """

    def __init__(
        self,
        shared: SharedLattice,
        integrator: LatticeIntegrator,
        controls: ControlPanel,
        dynamics: Optional[DynamicsConfig] = None,
        scheduler: Optional[SchedulerConfig] = None
    ):
        """
        Initialize scheduler.

        Args:
            shared: Lattice shared with readers.
            integrator: Integrator used for every sub-step.
            controls: Published toggle values.
            dynamics: Time step and sub-step policy.
            scheduler: Pacing and benchmark settings.
        """
        self.shared = shared
        self.integrator = integrator
        self.controls = controls
        self.dynamics = dynamics if dynamics is not None else DynamicsConfig()
        self.config = scheduler if scheduler is not None else SchedulerConfig()
        self.dt = self.dynamics.dt

        self.stats = TimingStats()
        self.error: Optional[BaseException] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def substeps_per_tick(self) -> int:
        """Number of integration sub-steps run under one write hold."""
        if self.shared.state.height < self.dynamics.substep_height_threshold:
            return self.dynamics.small_lattice_substeps
        return 1

    def tick(self) -> float:
        """
        Run one tick: every sub-step under a single write hold.

        Returns:
            Wall-clock duration of the tick in s.
        """
        controls = self.controls.snapshot()
        n_substeps = self.substeps_per_tick()

        start = time.perf_counter()
        with self.shared.write():
            for _ in range(n_substeps):
                new_state = self.integrator.advance(self.shared.state, self.dt, controls)
                self.shared.commit(new_state)
        duration = time.perf_counter() - start

        self.stats.record(duration, n_substeps)
        return duration

    def run(
        self,
        max_ticks: Optional[int] = None,
        duration_s: Optional[float] = None,
        pace: Optional[bool] = None
    ) -> TimingStats:
        """
        Tick until stopped, max_ticks reached or duration_s elapsed.

        Runs on the calling thread. Errors propagate to the caller.

        Args:
            max_ticks: Stop after this many ticks.
            duration_s: Stop after this much wall-clock time.
            pace: Wait dt between ticks; config.pace if None. Applies to
                this call only.
        """
        if duration_s is None:
            duration_s = self.config.benchmark_duration_s
        if pace is None:
            pace = self.config.pace

        Logger.log(
            f"StepScheduler started: {self.substeps_per_tick()} sub-step(s) per tick, dt={self.dt}",
            Logger.LogPriority.INFO
        )
        start = time.monotonic()
        ticks = 0
        while not self._stop.is_set():
            if max_ticks is not None and ticks >= max_ticks:
                break
            if duration_s is not None and time.monotonic() - start >= duration_s:
                break

            self.tick()
            ticks += 1

            if pace:
                self._stop.wait(self.dt)

        self.report(time.monotonic() - start)
        return self.stats

    def report(self, elapsed_s: float) -> None:
        """Log the average tick time of this run."""
        Logger.log(
            f"Average time taken for update with {self.integrator.n_workers} threads "
            f"over {elapsed_s:.2f} seconds: {self.stats.mean_s * 1e3:.3f} ms "
            f"({self.stats.ticks} ticks)",
            Logger.LogPriority.INFO
        )

    # THREADED LIFECYCLE

    def start(
        self,
        max_ticks: Optional[int] = None,
        duration_s: Optional[float] = None,
        pace: Optional[bool] = None
    ) -> threading.Thread:
        """Run the scheduler on a dedicated simulation thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("StepScheduler is already running")
        self._stop.clear()
        self.error = None
        self._thread = threading.Thread(
            target=self._run_guarded,
            args=(max_ticks, duration_s, pace),
            name="lattice-step-scheduler",
            daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        """Ask the scheduler to finish its current tick and exit."""
        self._stop.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> TimingStats:
        """
        Wait for the simulation thread.

        Raises:
            The exception that terminated the thread, if any.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        if self.error is not None:
            raise self.error
        return self.stats

    def _run_guarded(self, max_ticks, duration_s, pace):
        try:
            self.run(max_ticks=max_ticks, duration_s=duration_s, pace=pace)
        except GatePoisonedError as e:
            Logger.log(f"StepScheduler terminated, gate unusable: {e}", Logger.LogPriority.CRITICAL)
            self.error = e
        except LatticeError as e:
            Logger.log(f"StepScheduler terminated by simulation error: {e}", Logger.LogPriority.ERROR)
            self.error = e
        except Exception as e:
            # The gate has been poisoned by the failed write hold.
            Logger.log(f"StepScheduler terminated by unexpected error: {e!r}", Logger.LogPriority.CRITICAL)
            self.error = e
        finally:
            Logger.log("StepScheduler stopped", Logger.LogPriority.INFO)
