from .logger import Logger
from .log_storage_strategy import LogStorageStrategy
from .local_file_strategy import LocalFileStrategy
from .console_strategy import ConsoleStrategy

__all__ = ["Logger", "LogStorageStrategy", "LocalFileStrategy", "ConsoleStrategy"]
