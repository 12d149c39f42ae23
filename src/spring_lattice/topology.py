"""
Neighbour graph construction for regular 4-connected lattices.

Node (x, y) has linear index x * height + y. Each node is joined to the
nodes at (x+1, y), (x-1, y), (x, y+1) and (x, y-1) when those exist.
No diagonals, no wraparound.
"""

import numpy as np
from typing import List, Sequence, Tuple

MAX_DEGREE = 4


def build_neighbours(width: int, height: int) -> List[Tuple[int, ...]]:
    """
    Build the adjacency list of a width x height lattice.

    Args:
        width: Number of columns.
        height: Number of rows.

    Returns:
        List of N tuples; entry i holds the neighbour indices of node i
        in the order +x, -x, +y, -y.
    """
    neighbours: List[Tuple[int, ...]] = []
    for x in range(width):
        for y in range(height):
            adjacent = []
            if x != width - 1:
                adjacent.append((x + 1) * height + y)
            if x != 0:
                adjacent.append((x - 1) * height + y)
            if y != height - 1:
                adjacent.append(x * height + y + 1)
            if y != 0:
                adjacent.append(x * height + y - 1)
            neighbours.append(tuple(adjacent))
    return neighbours


def neighbour_table(neighbours: Sequence[Sequence[int]]) -> np.ndarray:
    """
    Pack an adjacency list into a fixed-width index table.

    Missing slots hold -1. Slot order matches the adjacency list so the
    per-node force sum is always accumulated in the same order.

    Returns:
        Integer array of shape (N, 4).
    """
    table = np.full((len(neighbours), MAX_DEGREE), -1, dtype=np.int64)
    for i, adjacent in enumerate(neighbours):
        if len(adjacent) > MAX_DEGREE:
            raise ValueError(f"Node {i} has {len(adjacent)} neighbours, max is {MAX_DEGREE}")
        table[i, :len(adjacent)] = adjacent
    return table


def edge_list(neighbours: Sequence[Sequence[int]]) -> np.ndarray:
    """
    Unique undirected edges of the graph.

    Returns:
        Integer array of shape (E, 2) with a < b in every row, sorted.
    """
    edges = sorted({(i, j) for i, adjacent in enumerate(neighbours) for j in adjacent if i < j})
    if not edges:
        return np.zeros((0, 2), dtype=np.int64)
    return np.array(edges, dtype=np.int64)


def drawable_segments(positions: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """
    Line segments for every lattice edge.

    Args:
        positions: Node positions, shape (N, 2).
        edges: Edge index pairs, shape (E, 2).

    Returns:
        Array of shape (E, 2, 2): segment k runs from positions[a] to positions[b].
    """
    return np.stack((positions[edges[:, 0]], positions[edges[:, 1]]), axis=1)


def degree_counts(neighbours: Sequence[Sequence[int]]) -> dict:
    """Histogram of node degrees, {degree: count}."""
    counts: dict = {}
    for adjacent in neighbours:
        counts[len(adjacent)] = counts.get(len(adjacent), 0) + 1
    return counts
