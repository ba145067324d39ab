"""
Structured logging for job orchestration.

Wraps the standard ``logging`` module with per-component structured metadata
and keeps a short in-memory history for display. Nothing is persisted.
"""

import logging
import time
import traceback
from collections import deque
from typing import Optional, Dict, Any

LOGGER_NAMESPACE = "webspeech"


class JobLogger:
    """
    Logger for one orchestration component (a job kind, a poller, the reconciler).

    Features:
    - Structured metadata attached to each entry
    - Standard Python logging integration
    - Bounded history of recent entries for the presentation layer
    """

    # Log levels
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def __init__(self, component: str, history_size: int = 200):
        """
        Initialize logger for a component.

        Args:
            component: Component name, e.g. "job.tts" or "poller.sts-status"
            history_size: Number of recent entries kept in memory
        """
        self.component = component
        self._history = deque(maxlen=history_size)
        self._py_logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")

    def _log(
        self,
        level: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self._history.append({
            'timestamp': time.time(),
            'component': self.component,
            'level': level,
            'message': message,
            'metadata': metadata,
        })

        py_level = self._level_to_py_level(level)
        if self._py_logger.isEnabledFor(py_level):
            extra_msg = f" [{metadata}]" if metadata else ""
            self._py_logger.log(py_level, f"{message}{extra_msg}")

    @staticmethod
    def _level_to_py_level(level: str) -> int:
        """Convert string level to Python logging level."""
        return {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }.get(level, logging.INFO)

    def debug(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._log(self.DEBUG, message, metadata)

    def info(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._log(self.INFO, message, metadata)

    def warning(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._log(self.WARNING, message, metadata)

    def error(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._log(self.ERROR, message, metadata)

    def critical(self, message: str, metadata: Optional[Dict[str, Any]] = None):
        self._log(self.CRITICAL, message, metadata)

    def log_error_with_context(self, error: Exception, context: str):
        """
        Log an error with full context.

        Args:
            error: Exception that occurred
            context: Description of what was being done
        """
        self.error(
            f"Error during {context}: {type(error).__name__}: {str(error)}",
            metadata={
                "error_type": type(error).__name__,
                "error_message": str(error),
                "context": context,
                "traceback": traceback.format_exc(),
            }
        )

    def get_recent_logs(self, limit: int = 50) -> list:
        """
        Get recent log entries, newest first.

        Args:
            limit: Maximum number of entries to return

        Returns:
            List of log entry dictionaries
        """
        entries = list(self._history)
        entries.reverse()
        return entries[:limit]

    def get_error_logs(self) -> list:
        """Get all error and critical entries still in history, newest first."""
        return [
            entry for entry in self.get_recent_logs(limit=len(self._history))
            if entry['level'] in (self.ERROR, self.CRITICAL)
        ]


def create_logger(component: str, history_size: int = 200) -> JobLogger:
    """
    Factory function to create a JobLogger.

    Args:
        component: Component name
        history_size: Number of recent entries kept in memory

    Returns:
        JobLogger instance
    """
    return JobLogger(component, history_size=history_size)


def setup_logging(level: str = "INFO"):
    """Configure console logging for the webspeech namespace."""
    root = logging.getLogger(LOGGER_NAMESPACE)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
