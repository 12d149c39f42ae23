"""
Lattice state representation.

Lattice = width x height point masses on a regular grid, joined to their
axis-aligned neighbours by springs. Node (x, y) lives at linear index
x * height + y in every per-node array.

Units:
    - Positions: lattice spacing (rest length 1.0)
    - Time: s
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .exceptions import LatticeConstructionError
from .topology import build_neighbours, neighbour_table, edge_list

DEFAULT_Y_OFFSET = 10.0


@dataclass(eq=False)
class LatticeState:
    """
    Complete state of the lattice at one instant.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        positions: Node positions, shape (N, 2).
        velocities: Node velocities, shape (N, 2).
        fixed: Anchor mask, shape (N,). Anchors never move.
        neighbours: Adjacency list, N tuples of node indices.
        t: Simulated time in s.
        steps: Number of integration steps taken so far.
    """
    width: int
    height: int
    positions: np.ndarray
    velocities: np.ndarray
    fixed: np.ndarray
    neighbours: List[Tuple[int, ...]]
    t: float = 0.0
    steps: int = 0
    table: np.ndarray = field(default=None, repr=False, compare=False)
    edges: np.ndarray = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        _check_dimensions(self.width, self.height)
        n = self.width * self.height

        self.positions = np.asarray(self.positions, dtype=np.float64)
        self.velocities = np.asarray(self.velocities, dtype=np.float64)
        self.fixed = np.asarray(self.fixed, dtype=bool)

        if self.positions.shape != (n, 2):
            raise LatticeConstructionError(f"Expected positions of shape ({n}, 2), got {self.positions.shape}")
        if self.velocities.shape != (n, 2):
            raise LatticeConstructionError(f"Expected velocities of shape ({n}, 2), got {self.velocities.shape}")
        if self.fixed.shape != (n,):
            raise LatticeConstructionError(f"Expected fixed mask of shape ({n},), got {self.fixed.shape}")
        if len(self.neighbours) != n:
            raise LatticeConstructionError(f"Expected {n} adjacency entries, got {len(self.neighbours)}")

        if self.table is None:
            self.table = neighbour_table(self.neighbours)
        if self.edges is None:
            self.edges = edge_list(self.neighbours)

    @classmethod
    def create(cls, width: int, height: int, y_offset: float = DEFAULT_Y_OFFSET) -> "LatticeState":
        """
        Create a lattice in its initial layout.

        Nodes sit on a unit-spaced grid centred horizontally on x = 0 and
        vertically on y = y_offset. All velocities are zero, no node is
        fixed, and the neighbour graph is built immediately.

        Raises:
            LatticeConstructionError: If width or height is not a positive integer.
        """
        _check_dimensions(width, height)

        xs, ys = np.meshgrid(np.arange(width), np.arange(height), indexing="ij")
        positions = np.column_stack((
            (xs.ravel() - width // 2).astype(np.float64),
            y_offset + (ys.ravel() - height // 2).astype(np.float64),
        ))
        n = width * height

        return cls(
            width=width,
            height=height,
            positions=positions,
            velocities=np.zeros((n, 2), dtype=np.float64),
            fixed=np.zeros(n, dtype=bool),
            neighbours=build_neighbours(width, height),
        )

    @property
    def n_nodes(self) -> int:
        """Number of nodes N."""
        return self.width * self.height

    @property
    def n_edges(self) -> int:
        """Number of springs."""
        return len(self.edges)

    def index(self, x: int, y: int) -> int:
        """
        Linear index of grid coordinate (x, y).

        Raises:
            IndexError: If (x, y) lies outside the lattice.
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height} lattice")
        return x * self.height + y

    def coords(self, i: int) -> Tuple[int, int]:
        """Grid coordinate (x, y) of linear index i."""
        if not 0 <= i < self.n_nodes:
            raise IndexError(f"Node {i} outside lattice of {self.n_nodes} nodes")
        return divmod(i, self.height)

    def anchor_indices(self, anchors: Optional[Iterable[Sequence[int]]] = None) -> List[int]:
        """
        Resolve (x, y) anchor coordinates to linear indices.

        Default anchors are the two top corners, (0, height-1) and
        (width-1, height-1). On a single-column lattice they coincide.
        """
        if anchors is None:
            anchors = [(0, self.height - 1), (self.width - 1, self.height - 1)]
        indices = []
        for anchor in anchors:
            x, y = anchor
            try:
                i = self.index(x, y)
            except IndexError as e:
                raise LatticeConstructionError(f"Anchor {tuple(anchor)}: {e}") from e
            if i not in indices:
                indices.append(i)
        return indices

    def mark_fixed(self, indices: Iterable[int]) -> None:
        """
        Pin nodes as anchors. One-time configuration before stepping.

        All indices are checked before any node is marked.

        Raises:
            LatticeConstructionError: If any index is out of range.
        """
        indices = list(indices)
        bad = [
            i for i in indices
            if isinstance(i, bool) or not (isinstance(i, (int, np.integer)) and 0 <= i < self.n_nodes)
        ]
        if bad:
            raise LatticeConstructionError(
                f"Fixed indices out of range for {self.n_nodes} nodes: {bad}"
            )
        fixed = self.fixed.copy()
        fixed[indices] = True
        self.fixed = fixed

    @property
    def fixed_indices(self) -> List[int]:
        """Indices of all anchor nodes."""
        return [int(i) for i in np.flatnonzero(self.fixed)]

    def degree(self, i: int) -> int:
        """Number of springs attached to node i."""
        return len(self.neighbours[i])

    def is_finite(self) -> bool:
        """Whether every position and velocity is finite."""
        return bool(np.isfinite(self.positions).all() and np.isfinite(self.velocities).all())

    def non_finite_indices(self) -> List[int]:
        """Indices of nodes whose position or velocity is not finite."""
        bad = ~(np.isfinite(self.positions).all(axis=1) & np.isfinite(self.velocities).all(axis=1))
        return [int(i) for i in np.flatnonzero(bad)]

    def advanced(self, positions: np.ndarray, velocities: np.ndarray, dt: float) -> "LatticeState":
        """
        Successor state carrying new position and velocity arrays.

        Topology and the anchor mask are shared; they never change after
        configuration.
        """
        return LatticeState(
            width=self.width,
            height=self.height,
            positions=positions,
            velocities=velocities,
            fixed=self.fixed,
            neighbours=self.neighbours,
            t=self.t + dt,
            steps=self.steps + 1,
            table=self.table,
            edges=self.edges,
        )

    def copy(self) -> "LatticeState":
        """Create a deep copy of the per-node arrays."""
        return LatticeState(
            width=self.width,
            height=self.height,
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            fixed=self.fixed.copy(),
            neighbours=list(self.neighbours),
            t=self.t,
            steps=self.steps,
            table=self.table,
            edges=self.edges,
        )


@dataclass(frozen=True)
class LatticeSnapshot:
    """
    Read-only copy of the lattice handed to readers.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        positions: Read-only copy of node positions, shape (N, 2).
        velocities: Read-only copy of node velocities, shape (N, 2).
        edges: Read-only spring index pairs, shape (E, 2).
        t: Simulated time in s.
        steps: Integration steps taken.
    """
    width: int
    height: int
    positions: np.ndarray
    velocities: np.ndarray
    edges: np.ndarray
    t: float
    steps: int

    @classmethod
    def from_state(cls, state: LatticeState) -> "LatticeSnapshot":
        positions = state.positions.copy()
        velocities = state.velocities.copy()
        edges = state.edges.copy()
        for arr in (positions, velocities, edges):
            arr.flags.writeable = False
        return cls(
            width=state.width,
            height=state.height,
            positions=positions,
            velocities=velocities,
            edges=edges,
            t=state.t,
            steps=state.steps,
        )


def _check_dimensions(width, height) -> None:
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise LatticeConstructionError(f"{name} must be an integer, got {value!r}")
        if value <= 0:
            raise LatticeConstructionError(f"{name} must be positive, got {value}")
