"""
Observability module.

Provides logging configuration and structured logging helpers.
"""

from backend.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
    redact,
    safe_log_value,
)
from backend.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "log_exception_with_context",
    "log_with_context",
    "redact",
    "safe_log_value",
]
