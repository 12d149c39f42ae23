import os
import threading
from datetime import datetime
from enum import Enum

from .local_file_strategy import LocalFileStrategy

DEFAULT_LOG_PATH = "/tmp/spring_lattice_logs.txt"
LOG_PATH_ENV = "SPRING_LATTICE_LOG_PATH"


class Logger:
    """
    Process-wide logger used as a static class.

    Called from the simulation thread, reader threads and integrator
    workers alike; every call goes through one re-entrant lock so entries
    from different threads never interleave inside a storage strategy.
    Without a storage strategy, messages are dropped.
    """

    class LogPriority(Enum):
        DEBUG = 1
        INFO = 2
        WARNING = 3
        ERROR = 4
        CRITICAL = 5
        DEFAULT = 6

    is_logging_enabled = True
    log_storage_strategy = None
    _lock = threading.RLock()

    # INITIALIZE LOGGER
    @classmethod
    def initialize(cls, file_location=None):
        """
        Attach a LocalFileStrategy unless a strategy is already set.

        The file is file_location, else $SPRING_LATTICE_LOG_PATH, else
        /tmp/spring_lattice_logs.txt.
        """
        with cls._lock:
            if cls.log_storage_strategy is not None:
                return
            if file_location is None:
                file_location = os.getenv(LOG_PATH_ENV, DEFAULT_LOG_PATH)
            cls.log_storage_strategy = LocalFileStrategy(file_location)
            cls.log(f"Logger initialized with default file storage at {file_location}.")

    # LOG WITH MESSAGE AND PRIORITY
    @classmethod
    def log(cls, message, priority=LogPriority.DEBUG):
        """
        Stores a message through the current strategy.

        Parameters:
        message (str): The log message.
        priority (LogPriority): The priority level of the log (default is DEBUG).
        """
        with cls._lock:
            strategy = cls.log_storage_strategy
            if not cls.is_logging_enabled or strategy is None:
                return
            if not strategy.accepts(priority.name):
                return
            strategy.store_log(message, priority.name, datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    @classmethod
    def set_log_storage_strategy(cls, log_storage_strategy):
        """Replace the storage strategy. None detaches storage."""
        with cls._lock:
            cls.log_storage_strategy = log_storage_strategy

    @classmethod
    def flush_logs(cls):
        with cls._lock:
            if cls.is_logging_enabled and cls.log_storage_strategy is not None:
                cls.log_storage_strategy.flush_logs()

    @classmethod
    def disable_logging(cls):
        cls.log("Logging disabled")
        cls.is_logging_enabled = False

    @classmethod
    def enable_logging(cls):
        cls.is_logging_enabled = True
        cls.log("Logging enabled")
