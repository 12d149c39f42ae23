"""
Force laws for lattice springs.

Usage:
    from spring_lattice.force_laws import SpringParams, hooke_spring_forces
"""

from .types import SpringParams
from .hookean import hooke_tension, hooke_spring_forces

__all__ = [
    'SpringParams',
    'hooke_tension',
    'hooke_spring_forces',
]
