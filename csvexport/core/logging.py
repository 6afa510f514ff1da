"""
Structured logging configuration with JSON output and e-mail masking.

Provides an audit trail for every CSV export handed out by the service.
"""

import logging
import re
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from csvexport.core.config import settings

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")


def mask_sensitive_data(text: str) -> str:
    """Mask e-mail addresses in text, keeping the first 2 chars and the domain."""
    return EMAIL_PATTERN.sub(lambda m: _mask_email(m.group(0)), text)


def _mask_email(email: str) -> str:
    username, _, domain = email.partition("@")
    if len(username) > 2:
        masked_username = username[:2] + "*" * (len(username) - 2)
    else:
        masked_username = "*" * len(username)
    return f"{masked_username}@{domain}"


class MaskingJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that masks e-mail addresses.

    Export filenames and queries are logged, and both can carry customer
    addresses when callers build them from user data.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.mask = settings.mask_sensitive_data_in_logs
        super().__init__(*args, **kwargs)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with masking if enabled."""
        if self.mask:
            record.msg = mask_sensitive_data(str(record.msg))

            # Also mask in extra fields
            for key, value in record.__dict__.items():
                if isinstance(value, str):
                    record.__dict__[key] = mask_sensitive_data(value)

        return super().format(record)


class TextFormatter(logging.Formatter):
    """
    Simple text formatter for development/console output.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.mask = settings.mask_sensitive_data_in_logs
        super().__init__(*args, **kwargs)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with optional masking."""
        if self.mask:
            record.msg = mask_sensitive_data(str(record.msg))

        return super().format(record)


def setup_logging() -> None:
    """
    Configure application-wide logging.

    Sets up structured JSON logging for production or text logging for development.
    Respects LOG_LEVEL and LOG_FORMAT from settings.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Root logger configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.log_format == "json":
        formatter: logging.Formatter = MaskingJsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = TextFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    # In development, show SQL queries
    if settings.is_development and settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    root_logger.info(
        "Logging configured",
        extra={
            "log_level": settings.log_level,
            "log_format": settings.log_format,
            "environment": settings.app_env,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class ExportAuditLogger:
    """
    Specialized logger for the export audit trail.

    Every export is logged when prepared and again when it completes or fails.
    """

    def __init__(self, logger_name: str = "audit") -> None:
        self.logger = logging.getLogger(logger_name)

    def log_export_prepared(self, filename: str, columns: int, delimiter: str, **kwargs: Any) -> None:
        """Log export preparation."""
        self.logger.info(
            "Export prepared",
            extra={
                "event": "export_prepared",
                "export_filename": filename,
                "columns": columns,
                "delimiter": delimiter,
                **kwargs,
            },
        )

    def log_export_completed(self, filename: str, rows: int, bytes_sent: int, **kwargs: Any) -> None:
        """Log a fully transferred export."""
        self.logger.info(
            "Export completed",
            extra={
                "event": "export_completed",
                "export_filename": filename,
                "rows": rows,
                "bytes_sent": bytes_sent,
                **kwargs,
            },
        )

    def log_export_failed(self, filename: str, error: BaseException, rows: int, **kwargs: Any) -> None:
        """Log a failed export with the rows written before the failure."""
        self.logger.error(
            "Export failed",
            extra={
                "event": "export_failed",
                "export_filename": filename,
                "rows": rows,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **kwargs,
            },
            exc_info=error,
        )


# Global audit logger instance
audit_logger = ExportAuditLogger()
