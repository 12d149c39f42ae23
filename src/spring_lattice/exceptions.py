class LatticeError(Exception):
    """Base class for lattice simulation errors."""
    def __init__(self, message="Lattice simulation error."):
        super().__init__(message)


class LatticeConstructionError(LatticeError):
    """Invalid lattice dimensions or anchor index."""
    def __init__(self, message="Invalid lattice construction."):
        super().__init__(message)


class DegenerateGeometryError(LatticeError):
    """Two spring-connected nodes are coincident."""
    def __init__(self, message="Coincident connected nodes.", pairs=None):
        super().__init__(message)
        self.pairs = list(pairs) if pairs is not None else []


class NonFiniteStateError(LatticeError):
    """A step produced a non-finite position or velocity."""
    def __init__(self, message="Non-finite lattice state.", indices=None):
        super().__init__(message)
        self.indices = list(indices) if indices is not None else []


class GatePoisonedError(LatticeError):
    """The shared-state gate failed while held and can no longer be used."""
    def __init__(self, message="Shared-state gate is poisoned."):
        super().__init__(message)


class GateUsageError(LatticeError):
    """Shared state touched without holding the required side of the gate."""
    def __init__(self, message="Write access to the shared lattice is not held."):
        super().__init__(message)
