from datetime import datetime
from pathlib import Path

from .log_storage_strategy import LogStorageStrategy


class LocalFileStrategy(LogStorageStrategy):
    """
    Appends log entries to a local text file.

    The file is started fresh when the strategy is created, so each run
    gets its own log.
    """

    def __init__(self, file_location, min_priority="DEBUG"):
        """
        Args:
            file_location (str | Path): Log file; relative paths resolve
                against the working directory. Parent directories are created.
            min_priority (str): Lowest priority name that is written.
        """
        super().__init__(min_priority)
        self.file_location = Path(file_location).resolve()
        self.file_location.parent.mkdir(parents=True, exist_ok=True)
        self._rewrite(f"LOG INITIALIZATION: {datetime.now()}\n")

    def store_log(self, message, priority, timestamp):
        with open(self.file_location, 'a') as log_file:
            log_file.write(self.format_entry(message, priority, timestamp))

    # TRUNCATE, LEAVING A FLUSH MARKER
    def flush_logs(self):
        self._rewrite(f"LOG FLUSHED: {datetime.now()}\n")

    def _rewrite(self, header):
        with open(self.file_location, 'w') as log_file:
            log_file.write(header)
