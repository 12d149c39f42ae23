"""
Live simulation toggles.

The input side publishes new values at any time; the scheduler reads one
immutable ControlSnapshot per tick and passes it into every sub-step of
that tick. A flip therefore takes effect from the next tick.
"""

import threading
from dataclasses import dataclass, replace

from .logger import Logger


@dataclass(frozen=True)
class ControlSnapshot:
    """
    Toggle values seen by one tick.

    Attributes:
        gravity_enabled: Include the gravity term in the force model.
        external_enabled: Include the random external perturbation.
    """
    gravity_enabled: bool = True
    external_enabled: bool = False


class ControlPanel:
    """
    Thread-safe holder of the latest published ControlSnapshot.
    """

    def __init__(self, gravity_enabled: bool = True, external_enabled: bool = False):
        self._lock = threading.Lock()
        self._snapshot = ControlSnapshot(
            gravity_enabled=bool(gravity_enabled),
            external_enabled=bool(external_enabled)
        )

    @classmethod
    def from_config(cls, config) -> "ControlPanel":
        """Build from a ControlConfig."""
        return cls(config.gravity_enabled, config.external_enabled)

    def snapshot(self) -> ControlSnapshot:
        """Latest published toggle values."""
        with self._lock:
            return self._snapshot

    def set_gravity(self, enabled: bool) -> ControlSnapshot:
        return self._publish(lambda s: {"gravity_enabled": bool(enabled)})

    def set_external(self, enabled: bool) -> ControlSnapshot:
        return self._publish(lambda s: {"external_enabled": bool(enabled)})

    def toggle_gravity(self) -> ControlSnapshot:
        """Flip gravity and return the new snapshot."""
        return self._publish(lambda s: {"gravity_enabled": not s.gravity_enabled})

    def toggle_external(self) -> ControlSnapshot:
        """Flip external perturbation and return the new snapshot."""
        return self._publish(lambda s: {"external_enabled": not s.external_enabled})

    def _publish(self, changes_from) -> ControlSnapshot:
        with self._lock:
            changes = changes_from(self._snapshot)
            self._snapshot = replace(self._snapshot, **changes)
            snapshot = self._snapshot
        for name, value in changes.items():
            Logger.log(f"{name} toggled: {value}", Logger.LogPriority.INFO)
        return snapshot
