"""
Logging and audit utilities for the Portability Engine.

This module provides structured JSON logging, Rich console logging,
rotating log files and an audit logger for state-changing operations.
"""

import json
import logging
import logging.handlers
import sys
import threading
from collections import deque
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional
from dataclasses import dataclass, field, asdict
from enum import Enum

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "portability_engine"


class LogLevel(str, Enum):
    """Log levels for structured logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogCategory(str, Enum):
    """Categories for structured logging."""
    SYSTEM = "system"
    AUDIT = "audit"


@dataclass
class LogEntry:
    """Structured log entry with metadata."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    level: LogLevel = LogLevel.INFO
    category: LogCategory = LogCategory.SYSTEM
    message: str = ""
    tenant_id: Optional[str] = None
    entity_id: Optional[str] = None
    operation: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        """Convert log entry to JSON string."""
        return json.dumps(self.to_dict(), default=str)


_RESERVED_RECORD_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName',
    'exc_info', 'exc_text', 'stack_info', 'message', 'asctime',
])


class StructuredFormatter(logging.Formatter):
    """Formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = getattr(record, 'log_entry', None)

        if log_entry and isinstance(log_entry, LogEntry):
            return log_entry.to_json()

        log_entry = LogEntry(
            timestamp=datetime.fromtimestamp(record.created, UTC),
            level=LogLevel(record.levelname),
            message=record.getMessage(),
            metadata={
                'logger': record.name,
                'module': record.module,
                'function': record.funcName,
                'line': record.lineno,
            }
        )

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS and key != 'log_entry':
                log_entry.metadata[key] = value

        if record.exc_info:
            log_entry.metadata['exception'] = self.formatException(record.exc_info)

        return log_entry.to_json()


class AuditLogger:
    """
    Specialized logger for audit events.

    Every event goes to the ``portability_engine.audit`` logger; when a
    log file is given it is also written there as rotating JSON lines.
    The most recent events are kept in memory for inspection.
    """

    def __init__(self, log_file: Optional[str] = None, history_size: int = 1000):
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.audit")
        self._events: Deque[LogEntry] = deque(maxlen=history_size)
        self._lock = threading.Lock()

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=10
            )
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)

    def log_event(
        self,
        event_type: str,
        tenant_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> LogEntry:
        """Log an audit event."""
        log_entry = LogEntry(
            level=LogLevel.INFO,
            category=LogCategory.AUDIT,
            message=f"Audit event: {event_type}",
            tenant_id=tenant_id,
            entity_id=entity_id,
            operation=event_type,
            metadata={
                'event_type': event_type,
                'details': details or {}
            }
        )

        with self._lock:
            self._events.append(log_entry)

        self.logger.info(log_entry.message, extra={'log_entry': log_entry})
        return log_entry

    def recent_events(
        self,
        event_type: Optional[str] = None,
        entity_id: Optional[str] = None
    ) -> List[LogEntry]:
        """Return recorded events, optionally filtered, oldest first."""
        with self._lock:
            events = list(self._events)
        if event_type:
            events = [e for e in events if e.operation == event_type]
        if entity_id:
            events = [e for e in events if e.entity_id == entity_id]
        return events


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    rich_console: bool = True,
    structured_logging: bool = False,
    log_rotation: bool = True,
    max_log_size: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Set up logging for the Portability Engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        rich_console: Whether to use the Rich console handler
        structured_logging: Whether to emit structured JSON logs
        log_rotation: Whether to rotate the log file
        max_log_size: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep

    Returns:
        The configured ``portability_engine`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    logger.handlers.clear()

    if rich_console and not structured_logging:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True
        )
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        if structured_logging:
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))

    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        if log_rotation:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_log_size,
                backupCount=backup_count
            )
        else:
            file_handler = logging.FileHandler(log_file)

        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the engine's root logger."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
