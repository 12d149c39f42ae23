import sys

from .log_storage_strategy import LogStorageStrategy


class ConsoleStrategy(LogStorageStrategy):
    """
    Writes log entries to a text stream (stderr by default).

    The CLI uses min_priority="INFO" so timing reports and toggles show up
    without the per-step debug traffic.
    """

    def __init__(self, stream=None, min_priority="INFO"):
        super().__init__(min_priority)
        self.stream = stream if stream is not None else sys.stderr

    def store_log(self, message, priority, timestamp):
        self.stream.write(self.format_entry(message, priority, timestamp))
        self.stream.flush()

    def flush_logs(self):
        self.stream.flush()
