"""
Logging configuration for the scheduler application.

File handlers run behind a QueueHandler/QueueListener pair so log writes
never block the event loop; the console handler writes directly.
"""

import atexit
import logging
import logging.handlers
import queue
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


# Global queue listener for cleanup
_queue_listener: Optional[logging.handlers.QueueListener] = None


class LogConfig(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_file_logging: bool = True
    log_dir: str = "logs"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_console: bool = True
    enable_query_logging: bool = False


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name for console output."""

    grey = "\x1b[38;21m"
    yellow = "\x1b[33;21m"
    red = "\x1b[31;21m"
    bold_red = "\x1b[31;1m"
    blue = "\x1b[34;21m"
    reset = "\x1b[0m"

    COLORS = {
        logging.DEBUG: grey,
        logging.INFO: blue,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def format(self, record):
        # Work on a copy so queued file handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, self.grey)
        record.levelname = f"{color}{record.levelname}{self.reset}"
        return f"{super().format(record)}{self.reset}"


class _NameFilter(logging.Filter):
    """Pass only records from loggers under the given prefix."""

    def __init__(self, prefix: str):
        super().__init__()
        self.prefix = prefix

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(self.prefix)


def _rotating_handler(config: LogConfig, filename: str, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        Path(config.log_dir) / filename,
        maxBytes=config.max_file_size,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, config.level.upper()))
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[LogConfig] = None) -> None:
    """Setup application logging.

    Writes ``app.log`` for everything, ``assignments.log`` for the
    ``assignments.*`` lifecycle loggers and ``database.log`` for SQLAlchemy.
    """
    global _queue_listener

    if config is None:
        config = LogConfig()

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None

    if config.enable_file_logging:
        Path(config.log_dir).mkdir(parents=True, exist_ok=True)

    level = getattr(logging, config.level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            ColoredFormatter(
                fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt=config.date_format,
            )
        )
        root_logger.addHandler(console_handler)

    file_handlers = []

    if config.enable_file_logging:
        file_formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt=config.date_format,
        )

        file_handlers.append(_rotating_handler(config, "app.log", file_formatter))

        assignment_handler = _rotating_handler(config, "assignments.log", file_formatter)
        assignment_handler.addFilter(_NameFilter("assignments"))
        file_handlers.append(assignment_handler)

        db_handler = _rotating_handler(config, "database.log", file_formatter)
        db_handler.addFilter(_NameFilter("sqlalchemy"))
        file_handlers.append(db_handler)

    if file_handlers:
        log_queue = queue.Queue(-1)
        root_logger.addHandler(logging.handlers.QueueHandler(log_queue))

        _queue_listener = logging.handlers.QueueListener(
            log_queue,
            *file_handlers,
            respect_handler_level=True,
        )
        _queue_listener.start()
        atexit.register(stop_queue_listener)

    sqlalchemy_logger = logging.getLogger("sqlalchemy.engine")
    sqlalchemy_logger.setLevel(level if config.enable_query_logging else logging.WARNING)


def stop_queue_listener() -> None:
    """Stop the queue listener gracefully.

    Called automatically on exit via atexit and explicitly during shutdown.
    """
    global _queue_listener

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None


class AssignmentLogger:
    """Structured logger for work-assignment lifecycle events."""

    def __init__(self, name: str = "lifecycle"):
        self.logger = logging.getLogger(f"assignments.{name}")

    def assignment_created(
        self,
        assignment_id: int,
        request_id: int,
        technician_id: int,
        scheduled_date: Optional[datetime],
        mode: str,
    ) -> None:
        """Log when an assignment is created."""
        scheduled = scheduled_date.isoformat() if scheduled_date else "unscheduled"
        self.logger.info(
            f"Assignment created | ID: {assignment_id} | Request: {request_id} | "
            f"Technician: {technician_id} | Scheduled: {scheduled} | Mode: {mode}"
        )

    def status_changed(
        self,
        assignment_id: int,
        from_status: str,
        to_status: str,
    ) -> None:
        """Log an assignment state transition."""
        self.logger.info(
            f"Assignment status changed | ID: {assignment_id} | {from_status} -> {to_status}"
        )

    def request_completed(self, request_id: int, assignment_count: int) -> None:
        """Log when a request is marked completed by the sync rule."""
        self.logger.info(
            f"Request completed | Request: {request_id} | Assignments: {assignment_count}"
        )

    def reassigned(
        self,
        old_assignment_id: int,
        new_assignment_id: int,
        new_technician_id: int,
        reason: Optional[str],
    ) -> None:
        """Log a reassignment."""
        self.logger.info(
            f"Assignment reassigned | Old: {old_assignment_id} | New: {new_assignment_id} | "
            f"Technician: {new_technician_id} | Reason: {reason or 'Not specified'}"
        )

    def auto_assign_skipped(self, request_id: int, technician_id: int) -> None:
        """Log a candidate skipped because it is at capacity."""
        self.logger.debug(
            f"Auto-assign skipped technician | Request: {request_id} | Technician: {technician_id}"
        )

    def auto_assign_failed(self, request_id: int, candidate_count: int) -> None:
        """Log when no candidate could take a request."""
        self.logger.warning(
            f"Auto-assign failed | Request: {request_id} | Candidates checked: {candidate_count}"
        )
