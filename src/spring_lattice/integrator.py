"""
Two-phase lattice integrator.

Phase 1 (positions), every node against the same pre-step snapshot:
    a  = F / m
    p' = p + v dt + 0.5 a dt^2
Phase 2 (velocities), only after phase 1 has finished:
    v' = (p' - p) / dt

Phase 2 gives v' = v + 0.5 a dt, the average velocity over the step,
not v + a dt. Fixed nodes keep p and v unchanged.

Both phases are data-parallel maps over contiguous node blocks. Each
block reads the immutable snapshot and writes only its own slots of
freshly allocated output arrays, so the result does not depend on how
blocks are scheduled.

Units:
    - Position: lattice spacing
    - Time: s
"""

import os
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .config import DynamicsConfig, PhysicsConfig
from .controls import ControlSnapshot
from .exceptions import NonFiniteStateError
from .model import LatticeModel
from .perturbation import ExternalPerturbation
from .state import LatticeState
from .logger import Logger


def default_worker_count() -> int:
    """Half the available hardware threads, at least one."""
    return max(1, (os.cpu_count() or 2) // 2)


class LatticeIntegrator:
    """
    Advances a LatticeState by one time step.

    Owns the worker pool used for the per-node map. Close it when done,
    or use the integrator as a context manager.
    """

    def __init__(
        self,
        physics: Optional[PhysicsConfig] = None,
        n_workers: Optional[int] = None,
        perturbation: Optional[ExternalPerturbation] = None
    ):
        """
        Initialize integrator.

        Args:
            physics: Physical constants (defaults if None).
            n_workers: Worker pool size; None picks default_worker_count().
            perturbation: Random force source; a system-seeded one is
                created if None.
        """
        self.physics = physics if physics is not None else PhysicsConfig()
        self.model = LatticeModel(self.physics)
        self.mass = self.physics.mass
        self.n_workers = n_workers if n_workers is not None else default_worker_count()
        if self.n_workers < 1:
            raise ValueError("n_workers must be >= 1")
        self.perturbation = (
            perturbation if perturbation is not None
            else ExternalPerturbation(self.physics.external_magnitude)
        )
        self._pool = (
            ThreadPoolExecutor(max_workers=self.n_workers, thread_name_prefix="lattice-worker")
            if self.n_workers > 1 else None
        )
        Logger.log(f"LatticeIntegrator using {self.n_workers} worker thread(s)", Logger.LogPriority.INFO)

    @classmethod
    def from_config(
        cls,
        physics: PhysicsConfig,
        dynamics: DynamicsConfig,
        seed: Optional[int] = None
    ) -> "LatticeIntegrator":
        return cls(
            physics=physics,
            n_workers=dynamics.n_workers,
            perturbation=ExternalPerturbation(physics.external_magnitude, seed)
        )

    def advance(self, state: LatticeState, dt: float, controls: ControlSnapshot) -> LatticeState:
        """
        Compute the state one time step later.

        The input state is never modified.

        Args:
            state: Pre-step snapshot.
            dt: Time step in s.
            controls: Toggles for this step.

        Returns:
            New LatticeState with freshly allocated position and velocity arrays.

        Raises:
            ValueError: If dt is not positive.
            DegenerateGeometryError: If connected nodes coincide.
            NonFiniteStateError: If the result is not finite.
        """
        if not dt > 0:
            raise ValueError(f"dt must be positive, got {dt}")

        n = state.n_nodes
        external = self.perturbation.sample(n) if controls.external_enabled else None

        new_positions = np.empty((n, 2), dtype=np.float64)
        new_velocities = np.empty((n, 2), dtype=np.float64)
        blocks = self._blocks(n)

        self._map(
            lambda nodes: self._advance_positions(
                state, nodes, dt, controls.gravity_enabled, external, new_positions
            ),
            blocks
        )
        self._map(
            lambda nodes: self._advance_velocities(state, nodes, dt, new_positions, new_velocities),
            blocks
        )

        new_state = state.advanced(new_positions, new_velocities, dt)
        bad = new_state.non_finite_indices()
        if bad:
            raise NonFiniteStateError(
                f"Step {state.steps + 1} produced non-finite state at {len(bad)} node(s): {bad[:10]}",
                indices=bad
            )
        return new_state

    def _advance_positions(self, state, nodes, dt, gravity_enabled, external, out):
        fixed = state.fixed[nodes]
        position = state.positions[nodes]
        velocity = state.velocities[nodes]

        with np.errstate(over="ignore", invalid="ignore"):
            forces = self.model.compute_forces(
                state.positions,
                state.velocities,
                state.fixed,
                state.table,
                nodes,
                gravity_enabled,
                None if external is None else external[nodes]
            )
            acceleration = forces.net / self.mass
            moved = position + velocity * dt + 0.5 * acceleration * dt ** 2

        out[nodes] = np.where(fixed[:, None], position, moved)

    def _advance_velocities(self, state, nodes, dt, new_positions, out):
        fixed = state.fixed[nodes]
        with np.errstate(over="ignore", invalid="ignore"):
            derived = (new_positions[nodes] - state.positions[nodes]) / dt
        out[nodes] = np.where(fixed[:, None], state.velocities[nodes], derived)

    def _blocks(self, n: int) -> List[np.ndarray]:
        n_blocks = min(self.n_workers, n)
        return [b for b in np.array_split(np.arange(n), n_blocks) if len(b)]

    def _map(self, fn, blocks) -> None:
        if self._pool is None or len(blocks) == 1:
            for block in blocks:
                fn(block)
            return
        # list() waits for every block and re-raises the first failure.
        list(self._pool.map(fn, blocks))

    def close(self) -> None:
        """Shut down the worker pool."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
