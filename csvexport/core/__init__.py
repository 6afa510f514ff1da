"""Core application modules."""

from csvexport.core.config import settings
from csvexport.core.logging import audit_logger, get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "audit_logger",
]
