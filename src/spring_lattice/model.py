"""
Force computation model for the spring lattice.

Net force on a free node i:
    F_i = sum_j k (|d_ij| - L0) d_ij / |d_ij|     springs, d_ij = p_j - p_i
        - c v_i                                  damping
        + (0, g m)                               gravity, if enabled
        + xi_i                                   external perturbation, if enabled

Fixed nodes never accumulate force; they still act as spring ends for
their neighbours.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from .config import PhysicsConfig
from .force_laws import hooke_spring_forces
from .topology import MAX_DEGREE


@dataclass
class NodeForces:
    """
    Forces evaluated for a block of nodes.

    Attributes:
        nodes: Node indices, shape (M,).
        net: Net force on each node, shape (M, 2). Zero for fixed nodes.
    """
    nodes: np.ndarray
    net: np.ndarray

    @property
    def max_force(self) -> float:
        """Largest net force magnitude in the block."""
        if len(self.net) == 0:
            return 0.0
        return float(np.max(np.hypot(self.net[:, 0], self.net[:, 1])))


class LatticeModel:
    """
    Force model shared by the gravity-on and gravity-off step variants.

    The gravity term is selected by a flag per call; everything else is
    the same code path.
    """

    def __init__(self, config: Optional[PhysicsConfig] = None):
        """
        Initialize model with physical constants.

        Args:
            config: Physics configuration (defaults if None).
        """
        self.config = config if config is not None else PhysicsConfig()
        self.spring = self.config.spring_params
        self.mass = self.config.mass
        self.damping = self.config.damping_coefficient
        self.gravity_force = self.config.gravity * self.config.mass

    def compute_forces(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        fixed: np.ndarray,
        table: np.ndarray,
        nodes: np.ndarray,
        gravity_enabled: bool,
        external: Optional[np.ndarray] = None
    ) -> NodeForces:
        """
        Net force on a block of nodes against one snapshot.

        Args:
            positions: Snapshot positions of all nodes, shape (N, 2).
            velocities: Snapshot velocities of all nodes, shape (N, 2).
            fixed: Anchor mask, shape (N,).
            table: Padded neighbour table, shape (N, 4), -1 for no neighbour.
            nodes: Indices of the nodes to evaluate, shape (M,).
            gravity_enabled: Add the gravity term.
            external: Perturbation force for the evaluated nodes, shape (M, 2),
                or None when perturbation is off.

        Returns:
            NodeForces for the block.

        Raises:
            DegenerateGeometryError: If a free node coincides with a neighbour.
        """
        own = positions[nodes]
        free = ~fixed[nodes]
        total = np.zeros((len(nodes), 2), dtype=np.float64)

        # Accumulate one neighbour slot at a time so each node sums its
        # springs in adjacency order regardless of how nodes are blocked.
        for slot in range(MAX_DEGREE):
            other = table[nodes, slot]
            active = free & (other >= 0)
            if not active.any():
                continue
            displacement = positions[other] - own
            pairs = np.column_stack((nodes, other))
            total += hooke_spring_forces(displacement, self.spring, active=active, pairs=pairs)

        total += -velocities[nodes] * self.damping

        if gravity_enabled:
            total[:, 1] += self.gravity_force

        if external is not None:
            total += external

        total[~free] = 0.0
        return NodeForces(nodes=nodes, net=total)

    def compute_all(self, state, gravity_enabled: bool, external: Optional[np.ndarray] = None) -> NodeForces:
        """Net force on every node of a LatticeState."""
        return self.compute_forces(
            state.positions,
            state.velocities,
            state.fixed,
            state.table,
            np.arange(state.n_nodes),
            gravity_enabled,
            external
        )
