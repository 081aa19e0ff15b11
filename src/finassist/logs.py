"""Logging utilities for the application."""

from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import traceback

from .config.settings import settings


def logs_dir() -> Path:
    """Get the logs directory path."""
    log_dir = Path(settings.logs_dir or "logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _rotating_handler(path: Path, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


class LogManager:
    """Manager for application logs."""
    _instance = None

    @classmethod
    def get_instance(cls) -> LogManager:
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = LogManager()
        return cls._instance

    def __init__(self):
        """Initialize loggers."""
        self.loggers = {}
        self._setup_loggers()

    def _setup_loggers(self):
        """Set up the different loggers."""
        log_dir = logs_dir()

        # Configure root logger to capture all module-level logging
        root_logger = logging.getLogger()
        if not root_logger.handlers:  # Only add handler if none exists
            root_logger.addHandler(
                _rotating_handler(log_dir / "system.log", '%(asctime)s - %(levelname)s - %(name)s - %(message)s')
            )
            root_logger.setLevel(logging.INFO)

        for name, level, fmt in (
            ("system", logging.INFO, '%(asctime)s - %(levelname)s - %(message)s'),
            ("assistant", logging.INFO, '%(asctime)s - %(levelname)s - %(message)s'),
            ("error", logging.ERROR, '%(asctime)s - %(levelname)s - %(message)s\n%(pathname)s:%(lineno)d'),
        ):
            logger = logging.getLogger(f"finassist.{name}")
            logger.propagate = False  # Don't propagate to root logger
            logger.setLevel(level)
            if not logger.handlers:
                logger.addHandler(_rotating_handler(log_dir / f"{name}.log", fmt))
            self.loggers[name] = logger

    def _log(self, channel: str, message: str, level: str):
        logger = self.loggers[channel]
        if level == "INFO":
            logger.info(message)
        elif level == "WARNING":
            logger.warning(message)
        elif level == "ERROR":
            logger.error(message)
            # Also log to error logger
            self.loggers["error"].error(f"{channel.upper()}: {message}")
        elif level == "DEBUG":
            logger.debug(message)

    def log_system(self, message: str, level: str = "INFO"):
        """Log a system message."""
        self._log("system", message, level)

    def log_assistant(self, message: str, level: str = "INFO"):
        """Log a chat assistant message (questions, filters, intents)."""
        self._log("assistant", message, level)

    def log_error(self, message: str, exception=None):
        """Log an error with optional exception details."""
        if exception:
            tb = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
            self.loggers["error"].error(f"{message}\n{tb}")
        else:
            self.loggers["error"].error(message)


def get_log_manager() -> LogManager:
    """Get the log manager instance."""
    return LogManager.get_instance()


# Helper functions for easy logging
def log_system(message: str, level: str = "INFO"):
    """Log a system message."""
    get_log_manager().log_system(message, level)


def log_assistant(message: str, level: str = "INFO"):
    """Log a chat assistant message."""
    get_log_manager().log_assistant(message, level)


def log_error(message: str, exception=None):
    """Log an error with optional exception details."""
    get_log_manager().log_error(message, exception)
