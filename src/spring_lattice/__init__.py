"""
Spring Lattice Simulation

Real-time deformable lattice: a rectangular grid of point masses joined
to their axis-aligned neighbours by damped springs, stepped under
optional gravity and random forcing, with some nodes pinned as anchors.
One simulation thread writes; any number of readers take snapshots.

Units:
    - Length: lattice spacing (spring rest length)
    - Time: s
    - Mass: shared node mass (config)
"""

__version__ = "0.1.0"

from .state import LatticeState, LatticeSnapshot
from .topology import build_neighbours, neighbour_table, edge_list, drawable_segments
from .model import LatticeModel, NodeForces
from .perturbation import ExternalPerturbation
from .integrator import LatticeIntegrator, default_worker_count
from .controls import ControlPanel, ControlSnapshot
from .gate import ReadWriteGate, SharedLattice
from .scheduler import StepScheduler, TimingStats
from .runner import LatticeSimulation, SimulationResult, build_simulation, run_simulation

from .exceptions import (
    LatticeError,
    LatticeConstructionError,
    DegenerateGeometryError,
    NonFiniteStateError,
    GatePoisonedError,
    GateUsageError
)

# Config exports
from .config import (
    SimulationConfig,
    LatticeConfig,
    PhysicsConfig,
    DynamicsConfig,
    ControlConfig,
    SchedulerConfig,
    OutputConfig,
    config_from_dict,
    load_config
)
