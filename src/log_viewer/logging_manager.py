"""Structured logging manager for the log viewer.

Configures the ``log_viewer`` logger with a human-readable console handler
and a rotating JSON Lines file handler.
"""

import json
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

ROOT_LOGGER = "log_viewer"

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRIBUTES = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "taskName",
    ]
)


class JsonLineFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES:
                continue
            try:
                json.dumps(value)  # Ensure serializable
                log_obj[key] = value
            except (TypeError, ValueError):
                log_obj[key] = str(value)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


class LoggingManager:
    """Manages logging for the viewer process."""

    def __init__(
        self,
        log_dir: str | Path | None = "/tmp/cc_log_viewer",
        log_level: str = "INFO",
    ):
        """Initialize logging manager.

        Args:
            log_dir: Directory for the JSON log file, None for console only
            log_level: Console log level name

        Raises:
            ValueError: If log_level is not a logging level name
        """
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")
        self.log_level = level
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.log_file: Path | None = None

        self.logger = self._setup_logger()

        # Module loggers created at import time defer to the package logger
        for name in list(logging.Logger.manager.loggerDict.keys()):
            if name.startswith(f"{ROOT_LOGGER}."):
                child_logger = logging.getLogger(name)
                child_logger.setLevel(logging.NOTSET)
                child_logger.propagate = True
                child_logger.handlers.clear()

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers.clear()

        # Console handler - human readable
        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / "viewer.log"
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
            )
            file_handler.setLevel(logging.DEBUG)  # Capture everything to file
            file_handler.setFormatter(JsonLineFormatter())
            logger.addHandler(file_handler)

        return logger

    def close(self) -> None:
        """Flush and detach every handler installed by this manager."""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
