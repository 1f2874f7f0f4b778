"""
Structured logging for the placement engine.

Console output plus an optional daily log file, and counters that
track how the allocation engine behaves (commits, conflicts, promotions).
"""

import json
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks engine counters for monitoring.
    """

    def __init__(
        self,
        name: str = "placement_engine",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self._metrics_lock = threading.Lock()
        self.metrics = {
            "transactions_committed": 0,
            "conflicts_retried": 0,
            "promotions": 0,
            "status_update_failures": 0,
            "notifications_sent": 0,
            "errors_by_kind": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"placement_engine_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Counters (shared by request threads)

    def _increment(self, counter: str):
        with self._metrics_lock:
            self.metrics[counter] += 1

    def record_commit(self):
        self._increment("transactions_committed")

    def record_conflict(self):
        self._increment("conflicts_retried")

    def record_promotion(self):
        self._increment("promotions")

    def record_status_update_failure(self):
        self._increment("status_update_failures")

    def record_notification(self):
        self._increment("notifications_sent")

    def record_error(self, kind: str):
        """Count a surfaced engine failure by kind."""
        with self._metrics_lock:
            errors = self.metrics["errors_by_kind"]
            errors[kind] = errors.get(kind, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of current counters."""
        with self._metrics_lock:
            metrics = dict(self.metrics)
            metrics["errors_by_kind"] = dict(self.metrics["errors_by_kind"])
        return metrics


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "placement_engine",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level and file output default to the application settings.
    """
    global _global_logger

    if _global_logger is None:
        from placement_engine.core.config import get_settings
        settings = get_settings()
        if settings.log_dir and "log_dir" not in kwargs:
            kwargs["log_dir"] = Path(settings.log_dir)
            kwargs.setdefault("enable_file", True)
        _global_logger = StructuredLogger(
            name=name, level=level or settings.log_level, **kwargs
        )

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
