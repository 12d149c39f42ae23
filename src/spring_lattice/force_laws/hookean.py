"""
Hookean (linear) spring force law.

Springs push as well as pull: a compressed spring repels its ends.

Physics:
    T = k * (L - L0)
    F_on_i = T * (p_j - p_i) / L

Units:
    - k: force per unit length
    - L, L0: lattice spacing
"""

import numpy as np

from ..exceptions import DegenerateGeometryError
from .types import SpringParams


def hooke_tension(length: float, params: SpringParams) -> float:
    """
    Scalar spring tension for one spring of the given length.

    Example:
        >>> hooke_tension(1.5, SpringParams(k=10.0, rest_length=1.0))
        5.0
    """
    return params.k * (length - params.rest_length)


def hooke_spring_forces(
    displacement: np.ndarray,
    params: SpringParams,
    active: np.ndarray = None,
    pairs: np.ndarray = None
) -> np.ndarray:
    """
    Spring force on each node from one neighbour each.

    Args:
        displacement: neighbour_position - position, shape (M, 2).
        params: Spring parameters.
        active: Optional bool mask (M,); inactive rows contribute zero and
            are never checked for degeneracy.
        pairs: Optional (M, 2) node index pairs, only used in error reports.

    Returns:
        Force vectors, shape (M, 2).

    Raises:
        DegenerateGeometryError: If an active spring has zero length. The
            direction of such a spring is undefined.
    """
    if active is None:
        active = np.ones(len(displacement), dtype=bool)

    distance = np.sqrt(displacement[:, 0] * displacement[:, 0] + displacement[:, 1] * displacement[:, 1])

    degenerate = active & (distance == 0.0)
    if degenerate.any():
        bad = [] if pairs is None else [tuple(int(v) for v in p) for p in pairs[degenerate]]
        raise DegenerateGeometryError(
            f"{int(degenerate.sum())} spring(s) with coincident end nodes: {bad}",
            pairs=bad
        )

    safe_distance = np.where(active, distance, 1.0)
    magnitude = params.k * (safe_distance - params.rest_length)
    force = magnitude[:, None] * displacement / safe_distance[:, None]
    return np.where(active[:, None], force, 0.0)
