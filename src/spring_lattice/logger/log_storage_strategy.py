class LogStorageStrategy:
    """
    Base class for log storage strategies.

    Subclasses implement store_log and flush_logs. Entries below
    min_priority are dropped by the Logger before store_log is called.
    """

    PRIORITY_ORDER = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "DEFAULT"]

    def __init__(self, min_priority="DEBUG"):
        if min_priority not in self.PRIORITY_ORDER:
            raise ValueError(f"Unknown log priority: {min_priority}")
        self.min_priority = min_priority

    # PRIORITY FILTER
    def accepts(self, priority):
        """
        Whether an entry of the given priority name should be stored.
        """
        return self.PRIORITY_ORDER.index(priority) >= self.PRIORITY_ORDER.index(self.min_priority)

    @staticmethod
    def format_entry(message, priority, timestamp):
        return f"[{timestamp}] [{priority}] {message}\n"

    # STORE ONE ENTRY
    def store_log(self, message, priority, timestamp):
        """
        Stores a log message.

        Parameters:
        message (str): The log message to be stored.
        priority (str): Name of the priority level of the log.
        timestamp (str): The timestamp of the log message.
        """
        raise NotImplementedError()

    # DISCARD STORED ENTRIES
    def flush_logs(self):
        raise NotImplementedError()
