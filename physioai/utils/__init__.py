"""
Utils Package for PHYSIOAI.

- logger: logging setup and the session journal

Author: PHYSIOAI Team
Version: 1.0.0
"""

from .logger import (
    SessionLogger,
    LogLevel,
    LogCategory,
    LogEntry,
    configure_logging,
    create_session_logger,
)

__all__ = [
    "SessionLogger",
    "LogLevel",
    "LogCategory",
    "LogEntry",
    "configure_logging",
    "create_session_logger",
]
