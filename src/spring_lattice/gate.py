"""
Shared-state gate between the simulation writer and renderer readers.

One writer (the step scheduler) against any number of readers. The
writer holds the gate for a whole batch of sub-steps; readers hold it
only long enough to copy a snapshot.

An unexpected exception inside a write hold poisons the gate: every
later acquire raises GatePoisonedError. LatticeError subclasses are
raised before anything is committed, so they release the gate cleanly.
"""

import threading
from contextlib import contextmanager
from typing import Optional

import numpy as np

from .exceptions import GatePoisonedError, GateUsageError, LatticeError
from .state import LatticeSnapshot, LatticeState
from .topology import drawable_segments
from .logger import Logger


class ReadWriteGate:
    """
    Exclusive-writer / many-reader lock with writer preference.

    Not re-entrant: a thread must not take the gate while it already
    holds either side.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: Optional[int] = None
        self._writers_waiting = 0
        self._poisoned = False
        self._poison_cause: Optional[BaseException] = None

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @property
    def poison_cause(self) -> Optional[BaseException]:
        """Exception that poisoned the gate, if any."""
        return self._poison_cause

    def held_by_current_thread(self) -> bool:
        """Whether the calling thread holds the write side."""
        with self._cond:
            return self._writer == threading.get_ident()

    @contextmanager
    def read(self):
        """Hold the shared side."""
        with self._cond:
            self._check_poison()
            while self._writer is not None or self._writers_waiting:
                self._cond.wait()
                self._check_poison()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        """Hold the exclusive side."""
        me = threading.get_ident()
        with self._cond:
            self._check_poison()
            if self._writer == me:
                raise GateUsageError("Write side is already held by this thread")
            self._writers_waiting += 1
            try:
                while self._writer is not None or self._readers:
                    self._cond.wait()
                    self._check_poison()
            finally:
                self._writers_waiting -= 1
            self._writer = me
        try:
            yield
        except LatticeError:
            raise
        except BaseException as e:
            self.poison(e)
            raise
        finally:
            with self._cond:
                self._writer = None
                self._cond.notify_all()

    def poison(self, cause: Optional[BaseException] = None) -> None:
        """Mark the gate unusable and wake every waiter."""
        with self._cond:
            if not self._poisoned:
                self._poisoned = True
                self._poison_cause = cause
                Logger.log(f"Shared-state gate poisoned: {cause!r}", Logger.LogPriority.CRITICAL)
            self._cond.notify_all()

    def _check_poison(self) -> None:
        if self._poisoned:
            raise GatePoisonedError(f"Shared-state gate is poisoned (cause: {self._poison_cause!r})")


class SharedLattice:
    """
    A LatticeState shared between one writer and many readers.

    The writer replaces the whole state with commit(); readers copy it
    out with snapshot() or drawable_segments().
    """

    def __init__(self, state: LatticeState, gate: Optional[ReadWriteGate] = None):
        self._state = state
        self.gate = gate if gate is not None else ReadWriteGate()

    @property
    def state(self) -> LatticeState:
        """
        Current state. Only meaningful while holding one side of the gate.
        """
        return self._state

    def read(self):
        return self.gate.read()

    def write(self):
        return self.gate.write()

    def commit(self, new_state: LatticeState) -> None:
        """
        Replace the shared state wholesale.

        Raises:
            GateUsageError: If the calling thread does not hold the write side.
        """
        if not self.gate.held_by_current_thread():
            raise GateUsageError()
        self._state = new_state

    def snapshot(self) -> LatticeSnapshot:
        """Consistent read-only copy of the current state."""
        with self.gate.read():
            state = self._state
            return LatticeSnapshot.from_state(state)

    def drawable_segments(self) -> np.ndarray:
        """
        Line segments for every spring, shape (E, 2, 2), from one
        consistent snapshot.
        """
        with self.gate.read():
            state = self._state
            return drawable_segments(state.positions, state.edges)
