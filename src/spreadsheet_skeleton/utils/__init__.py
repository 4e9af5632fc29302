"""Utilities package for spreadsheet skeleton extraction.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from spreadsheet_skeleton.utils.exceptions import (
    ErrorCode,
    GridValidationError,
    InvalidOptionsError,
    LoaderError,
    SkeletonError,
)
from spreadsheet_skeleton.utils.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    # Exceptions
    "ErrorCode",
    "GridValidationError",
    "InvalidOptionsError",
    "LoaderError",
    "SkeletonError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
