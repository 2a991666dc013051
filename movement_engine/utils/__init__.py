"""
Utilities Module.
"""

from .logger import LogCategory, LogEntry, LogLevel, SessionLogger, configure_logging

__all__ = ['LogCategory', 'LogEntry', 'LogLevel', 'SessionLogger', 'configure_logging']
