#!filepath: logmerge/__init__.py

from .utils.logger import Logging, logs
from .core.entry import LogEntry
from .config.app_config import AppConfig
from .merge.engine import AsyncMergeEngine, async_sorted_merge
from .merge.sync_merge import iter_sorted, sync_sorted_merge

__version__ = "0.1.0"

__all__ = [
    "logs", "Logging",
    "LogEntry",
    "AppConfig",
    "AsyncMergeEngine", "async_sorted_merge",
    "iter_sorted", "sync_sorted_merge",
]
