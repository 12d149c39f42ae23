"""
Parameter types for spring force laws.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SpringParams:
    """
    Parameters for the bidirectional Hookean lattice spring.

    Attributes:
        k: Spring coefficient (force per unit length).
        rest_length: Zero-force separation of connected nodes.
    """
    k: float = 10.0
    rest_length: float = 1.0

    def validate(self) -> tuple[bool, Optional[str]]:
        """
        Validate parameter values.

        Returns:
            (is_valid, error_message) tuple.
        """
        if self.k <= 0:
            return False, "Spring coefficient k must be positive"
        if self.rest_length <= 0:
            return False, "Rest length must be positive"
        return True, None
