"""
Logger Module for PHYSIOAI.

Application logging setup and an in-memory journal of one exercise session.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from pathlib import Path
import json
import logging
import logging.config
import os
import time

from ..core.config import settings


def configure_logging(config_file: Optional[str] = None) -> None:
    """
    Apply the logging.ini configuration.

    Falls back to logging.basicConfig when the file does not exist.
    """
    config_file = config_file or settings.LOGGING_CONFIG_FILE
    if os.path.exists(config_file):
        logging.config.fileConfig(config_file, disable_existing_loggers=False)
    else:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


class LogLevel(Enum):
    """Log levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogCategory(Enum):
    """Log categories."""
    CALIBRATION = "calibration"
    PHASE = "phase"
    REP = "rep"
    FORM = "form"
    SAFETY = "safety"
    SYSTEM = "system"


@dataclass
class LogEntry:
    """Log entry."""
    timestamp: float
    level: LogLevel
    category: LogCategory
    message: str
    data: Optional[Dict] = None

    def to_dict(self) -> Dict[str, Any]:
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
    Journal of one exercise session.

    The engine writes through the record_* helpers; entries stay in memory
    until save_session_log is called.
    """

    session_id: str
    entries: List[LogEntry] = field(default_factory=list)

    def log(self, level: LogLevel, category: LogCategory, message: str, data: Optional[Dict] = None):
        self.entries.append(LogEntry(
            timestamp=time.time(),
            level=level,
            category=category,
            message=message,
            data=data,
        ))

    def debug(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        self.log(LogLevel.DEBUG, category, message, data)

    def info(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        self.log(LogLevel.INFO, category, message, data)

    def warning(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        self.log(LogLevel.WARNING, category, message, data)

    def error(self, category: LogCategory, message: str, data: Optional[Dict] = None):
        self.log(LogLevel.ERROR, category, message, data)

    # ==================== SESSION EVENTS ====================

    def record_calibration(self, result: Dict):
        """Calibration outcome; a fallback to the default baseline is a warning."""
        level = LogLevel.WARNING if result.get('used_default') else LogLevel.INFO
        self.log(level, LogCategory.CALIBRATION, "Calibration completed", result)

    def record_phase_change(self, old_phase: str, new_phase: str, timestamp_ms: float, angle: float):
        self.debug(LogCategory.PHASE, f"{old_phase} -> {new_phase}", {
            'timestamp_ms': timestamp_ms,
            'angle': round(angle, 1),
        })

    def record_rep(self, count: int, timestamp_ms: float, form_score: Optional[int] = None, held: bool = False):
        """
        Rep (or whole second of a hold) completed.

        Args:
            count: Rep count, or seconds held when held is True.
            timestamp_ms: Frame timestamp.
            form_score: Form score at that frame.
            held: True for time-based exercises.
        """
        data = {'count': count, 'timestamp_ms': timestamp_ms}
        if form_score is not None:
            data['form_score'] = form_score
        self.info(LogCategory.REP, f"Held {count}s" if held else f"Rep {count}", data)

    def record_safety(self, message: str, timestamp_ms: float, **details):
        self.warning(LogCategory.SAFETY, message, {'timestamp_ms': timestamp_ms, **details})

    # ==================== QUERIES ====================

    def filter(self, category: LogCategory) -> List[LogEntry]:
        return [entry for entry in self.entries if entry.category == category]

    def summary(self) -> Dict[str, int]:
        """Number of entries per category."""
        counts: Dict[str, int] = {}
        for entry in self.entries:
            counts[entry.category.value] = counts.get(entry.category.value, 0) + 1
        return counts

    def clear(self):
        self.entries = []

    def save_session_log(self, log_dir: str = "./data/logs") -> Path:
        """
        Write the journal as JSON.

        Args:
            log_dir: Target directory, created when missing.

        Returns:
            Path of the written file.
        """
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / f"session_{self.session_id}_{int(time.time())}.json"

        payload = {
            'session_id': self.session_id,
            'saved_at': time.time(),
            'summary': self.summary(),
            'entries': [entry.to_dict() for entry in self.entries],
        }
        with open(log_file, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        return log_file


def create_session_logger(session_id: str) -> SessionLogger:
    """Empty journal for a new session."""
    return SessionLogger(session_id)
