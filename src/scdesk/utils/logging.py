"""Logging configuration utilities and structured logging system."""

from datetime import datetime
import json
import logging
import logging.handlers
from pathlib import Path
import sys
import traceback

from rich.console import Console
from rich.logging import RichHandler


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Download context attached via ``extra=``
        if hasattr(record, "item_id"):
            log_entry["item_id"] = record.item_id
        if hasattr(record, "url"):
            log_entry["url"] = record.url
        if hasattr(record, "return_code"):
            log_entry["return_code"] = record.return_code

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    rich_console: bool = True,
    structured_logging: bool = False,
    max_log_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for log output
        rich_console: Whether to use rich console handler
        structured_logging: Whether to use JSON structured logging for files
        max_log_size: Maximum size of log files before rotation
        backup_count: Number of backup log files to keep
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(numeric_level)

    standard_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if rich_console:
        console_handler = RichHandler(
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
            console=Console(stderr=True),
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(standard_formatter)
    console_handler.setLevel(numeric_level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_log_size, backupCount=backup_count, encoding="utf-8"
        )

        if structured_logging:
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(detailed_formatter)

        file_handler.setLevel(logging.DEBUG)  # File logs capture everything
        root_logger.addHandler(file_handler)

    logging.getLogger("scdesk.core").setLevel(numeric_level)
    logging.getLogger("scdesk.gui").setLevel(numeric_level)
    # Console mirror is verbose; only shown when explicitly debugging
    logging.getLogger("scdesk.console").setLevel(
        logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    )


def log_system_info() -> None:
    """Log system information for debugging."""
    import platform

    import psutil

    logger = logging.getLogger("scdesk.system")

    logger.info(f"System: {platform.system()} {platform.release()}")
    logger.info(f"Python: {platform.python_version()}")
    logger.info(f"CPU cores: {psutil.cpu_count()}")
    logger.info(f"Memory: {psutil.virtual_memory().total / 1024**3:.1f} GB")


class LogCapture:
    """Context manager for capturing logs during testing."""

    def __init__(self, logger_name: str = "", level: int = logging.INFO):
        self.logger_name = logger_name
        self.level = level
        self.records: list[logging.LogRecord] = []
        self.handler: logging.Handler | None = None
        self._previous_level: int | None = None

    def __enter__(self) -> "LogCapture":
        """Start capturing logs."""
        self.handler = logging.Handler()
        self.handler.emit = self.records.append
        self.handler.setLevel(self.level)

        logger = logging.getLogger(self.logger_name)
        self._previous_level = logger.level
        if logger.level == logging.NOTSET or logger.level > self.level:
            logger.setLevel(self.level)
        logger.addHandler(self.handler)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop capturing logs."""
        if self.handler:
            logger = logging.getLogger(self.logger_name)
            logger.removeHandler(self.handler)
            if self._previous_level is not None:
                logger.setLevel(self._previous_level)

    def get_messages(self) -> list[str]:
        """Get captured log messages."""
        return [record.getMessage() for record in self.records]

    def has_message_containing(self, text: str) -> bool:
        """Check if any captured message contains the given text."""
        return any(text in record.getMessage() for record in self.records)
