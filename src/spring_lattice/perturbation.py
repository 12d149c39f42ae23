"""
External random perturbation source.

Each enabled step draws an independent uniform force for every node,
per axis in [-1, 1) times the configured magnitude.
"""

import numpy as np
from typing import Optional


class ExternalPerturbation:
    """
    Seedable source of per-node random forces.

    With seed=None the generator is seeded from the operating system, so
    every run differs. A fixed seed makes perturbed runs reproducible.
    """

    def __init__(self, magnitude: float = 0.2, seed: Optional[int] = None):
        """
        Initialize perturbation source.

        Args:
            magnitude: Per-axis force scale.
            seed: RNG seed for reproducibility, or None for a system-seeded source.
        """
        self.magnitude = magnitude
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def sample(self, n_nodes: int) -> np.ndarray:
        """
        Draw one force vector per node.

        Returns:
            Array of shape (n_nodes, 2).
        """
        return self.rng.uniform(-1.0, 1.0, size=(n_nodes, 2)) * self.magnitude

    def reset(self, seed: Optional[int] = None):
        """Re-seed the generator (keeps the old seed if none given)."""
        if seed is not None:
            self.seed = seed
        self.rng = np.random.default_rng(self.seed)
