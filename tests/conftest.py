"""
Pytest configuration for spring_lattice tests.

This file ensures src/ is in sys.path so the tests run without an install,
and detaches the global Logger from any storage between tests.
"""

import sys
import os

import pytest

# Add src/ to sys.path for imports
_src_root = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if _src_root not in sys.path:
    sys.path.insert(0, _src_root)

from spring_lattice.logger import Logger, LogStorageStrategy  # noqa: E402


class MemoryStrategy(LogStorageStrategy):
    """Collects log entries in a list."""

    def __init__(self):
        super().__init__()
        self.entries = []

    def store_log(self, message, priority, timestamp):
        self.entries.append((priority, message))

    def flush_logs(self):
        self.entries.clear()


@pytest.fixture(autouse=True)
def _reset_logger():
    Logger.set_log_storage_strategy(None)
    Logger.is_logging_enabled = True
    yield
    Logger.set_log_storage_strategy(None)


@pytest.fixture
def log_memory():
    """Route Logger output into a list for the duration of a test."""
    strategy = MemoryStrategy()
    Logger.set_log_storage_strategy(strategy)
    return strategy
