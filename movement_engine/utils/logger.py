"""
Logger Module.

Logging setup and the in-memory session journal.
"""

import logging
import logging.config
import os
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional


class LogLevel(Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogCategory(Enum):
    """Log categories."""
    VALIDITY = "validity"
    PHASE = "phase"
    REP = "rep"
    FORM = "form"
    SYSTEM = "system"


_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def configure_logging(config_file: Optional[str] = None, level: int = logging.INFO) -> None:
    """
    Apply a fileConfig logging setup, or basicConfig when the file is missing.
    """
    if config_file and os.path.exists(config_file):
        logging.config.fileConfig(config_file, disable_existing_loggers=False)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


@dataclass
class LogEntry:
    """Log entry."""
    timestamp: float
    level: LogLevel
    category: LogCategory
    message: str
    data: Optional[Dict] = None

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp,
            'level': self.level.value,
            'category': self.category.value,
            'message': self.message,
            'data': self.data,
        }


@dataclass
class SessionLogger:
    """
    Bounded in-memory journal of one engine session.

    Entries are mirrored to the stdlib logger; nothing is written to disk.
    """

    session_id: str
    max_entries: int = 500
    entries: Deque[LogEntry] = field(default_factory=deque)

    def __post_init__(self):
        self.entries = deque(self.entries, maxlen=self.max_entries)
        self._logger = logging.getLogger(f"{__name__}.session")

    def log(self, level: LogLevel, category: LogCategory, message: str, data: Optional[Dict] = None):
        """
        Log a message.

        Args:
            level: Log level
            category: Log category
            message: Log message
            data: Optional data
        """
        entry = LogEntry(
            timestamp=time.time(),
            level=level,
            category=category,
            message=message,
            data=data
        )
        self.entries.append(entry)
        self._logger.log(
            _STDLIB_LEVELS[level], "[%s] [%s] %s", self.session_id[:8], category.value.upper(), message
        )

    def debug(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        self.log(LogLevel.DEBUG, category, message, data)

    def info(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        """Log info message."""
        self.log(LogLevel.INFO, category, message, data)

    def warning(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        """Log warning message."""
        self.log(LogLevel.WARNING, category, message, data)

    def error(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        """Log error message."""
        self.log(LogLevel.ERROR, category, message, data)

    def filter(self, category: Optional[LogCategory] = None, level: Optional[LogLevel] = None) -> List[LogEntry]:
        return [
            e for e in self.entries
            if (category is None or e.category == category) and (level is None or e.level == level)
        ]

    def clear(self) -> None:
        self.entries.clear()

    def summary(self) -> Dict[str, Any]:
        """Counts per category and level plus the latest entries."""
        by_category: Dict[str, int] = {}
        by_level: Dict[str, int] = {}
        for entry in self.entries:
            by_category[entry.category.value] = by_category.get(entry.category.value, 0) + 1
            by_level[entry.level.value] = by_level.get(entry.level.value, 0) + 1
        return {
            'session_id': self.session_id,
            'total_entries': len(self.entries),
            'by_category': by_category,
            'by_level': by_level,
            'recent': [e.to_dict() for e in list(self.entries)[-10:]],
        }
