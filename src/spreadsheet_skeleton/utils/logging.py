"""Structured logging utilities for spreadsheet skeleton extraction.

This module provides:
- Workbook/sheet tracking using contextvars for correlation across workers
- Structured logging with consistent format and metadata
- Performance metrics logging helpers
- Progress tracking for workbook scans

Usage:
    from spreadsheet_skeleton.utils.logging import (
        get_logger,
        LogContext,
    )

    logger = get_logger(__name__)

    with LogContext(workbook="report.xlsx", sheet="Q1"):
        logger.info("Scoring rows", rows=120)

    with timed_operation(logger, "find_anchors") as metrics:
        metrics.cells_processed = 1000
"""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Context variables for workbook/sheet correlation
_workbook_var: ContextVar[str | None] = ContextVar("workbook", default=None)
_sheet_var: ContextVar[str | None] = ContextVar("sheet", default=None)
_extra_context_var: ContextVar[dict[str, Any] | None] = ContextVar(
    "extra_context", default=None
)


def get_workbook() -> str | None:
    """Get the workbook currently being processed.

    Returns:
        The workbook identifier or None if not set.
    """
    return _workbook_var.get()


def set_workbook(workbook: str | None) -> None:
    """Set the workbook identifier in context.

    Args:
        workbook: The workbook identifier to set, or None to clear.
    """
    _workbook_var.set(workbook)


def get_sheet() -> str | None:
    """Get the sheet currently being processed.

    Returns:
        The sheet name or None if not set.
    """
    return _sheet_var.get()


def set_sheet(sheet: str | None) -> None:
    """Set the sheet name in context.

    Args:
        sheet: The sheet name to set, or None to clear.
    """
    _sheet_var.set(sheet)


def get_extra_context() -> dict[str, Any]:
    """Get additional context from context vars.

    Returns:
        Dictionary of extra context values.
    """
    ctx = _extra_context_var.get()
    return ctx if ctx is not None else {}


def set_extra_context(context: dict[str, Any]) -> None:
    """Set additional context in context vars.

    Args:
        context: Dictionary of extra context values.
    """
    _extra_context_var.set(context)


def clear_context() -> None:
    """Clear all context variables."""
    _workbook_var.set(None)
    _sheet_var.set(None)
    _extra_context_var.set(None)


@dataclass
class PerformanceMetrics:
    """Container for performance metrics during processing.

    Attributes:
        operation: Name of the operation being measured.
        start_time: When the operation started.
        end_time: When the operation ended.
        duration_seconds: Duration in seconds.
        sheets_processed: Number of sheets processed.
        cells_processed: Number of cells visited.
        anchors_found: Number of anchor rows and columns produced.
        custom_metrics: Additional custom metrics.
    """

    operation: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    sheets_processed: int = 0
    cells_processed: int = 0
    anchors_found: int = 0
    custom_metrics: dict[str, Any] = field(default_factory=dict)

    def finish(self) -> None:
        """Mark the operation as complete and calculate duration."""
        self.end_time = datetime.now(UTC)
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging.

        Returns:
            Dictionary with all non-zero metrics.
        """
        result: dict[str, Any] = {
            "operation": self.operation,
            "duration_seconds": self.duration_seconds,
        }
        if self.sheets_processed > 0:
            result["sheets_processed"] = self.sheets_processed
        if self.cells_processed > 0:
            result["cells_processed"] = self.cells_processed
        if self.anchors_found > 0:
            result["anchors_found"] = self.anchors_found
        if self.custom_metrics:
            result["custom_metrics"] = self.custom_metrics
        return result


class StructuredLogFormatter(logging.Formatter):
    """Log formatter that prefixes records with the workbook/sheet context."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with context information.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        prefix_parts = []
        workbook = get_workbook()
        sheet = get_sheet()
        if workbook:
            prefix_parts.append(f"workbook={workbook}")
        if sheet:
            prefix_parts.append(f"sheet={sheet}")
        for key, value in get_extra_context().items():
            prefix_parts.append(f"{key}={value}")

        prefix = f"[{' '.join(prefix_parts)}] " if prefix_parts else ""

        original_msg = record.msg
        record.msg = f"{prefix}{original_msg}"
        result = super().format(record)
        record.msg = original_msg

        return result


class StructuredLogger:
    """Logger wrapper that renders keyword arguments as key=value pairs."""

    def __init__(self, name: str) -> None:
        """Initialize the structured logger.

        Args:
            name: Logger name (typically __name__ of the module).
        """
        self._logger = logging.getLogger(name)
        self._name = name

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying Python logger."""
        return self._logger

    def _build_message(self, message: str, **kwargs: Any) -> str:
        if not kwargs:
            return message

        parts = [f"{k}={v}" for k, v in kwargs.items()]
        return f"{message} | {', '.join(parts)}"

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(self._build_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(self._build_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(self._build_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log an error message.

        Args:
            message: Log message.
            exc_info: Whether to include exception info.
            **kwargs: Additional structured data.
        """
        self._logger.error(self._build_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        self._logger.exception(self._build_message(message, **kwargs))

    def log_performance(self, metrics: PerformanceMetrics) -> None:
        """Log performance metrics.

        Args:
            metrics: Performance metrics to log.
        """
        self.debug(f"Performance: {metrics.operation}", **metrics.to_dict())

    def log_progress(
        self,
        stage: str,
        current: int,
        total: int,
        details: str | None = None,
    ) -> None:
        """Log progress for long-running operations.

        Args:
            stage: Current processing stage.
            current: Current progress count.
            total: Total items to process.
            details: Optional additional details.
        """
        percentage = (current / total * 100) if total > 0 else 0
        kwargs: dict[str, Any] = {
            "current": current,
            "total": total,
            "percentage": f"{percentage:.1f}%",
        }
        if details:
            kwargs["details"] = details
        self.debug(f"Progress: {stage}", **kwargs)

    def log_compression_result(
        self,
        sheet_name: str,
        original_cells: int,
        skeleton_cells: int,
        compression_ratio: float,
    ) -> None:
        """Log the outcome of a skeleton extraction.

        Args:
            sheet_name: Name of the compressed sheet.
            original_cells: Cell count before compression.
            skeleton_cells: Cell count after compression.
            compression_ratio: Fraction of cells discarded.
        """
        self.info(
            "Extracted skeleton",
            sheet=sheet_name,
            preserved=f"{skeleton_cells}/{original_cells}",
            compression_ratio=f"{compression_ratio:.1%}",
        )


class LogContext:
    """Context manager for adding temporary context to logs.

    Usage:
        with LogContext(workbook="book.xlsx", sheet="Data"):
            logger.info("Processing...")  # Prefixed with workbook and sheet
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize with context values.

        Args:
            **kwargs: Key-value pairs to add to log context.
        """
        self._new_context = dict(kwargs)
        self._old_context: dict[str, Any] = {}
        self._old_workbook: str | None = None
        self._old_sheet: str | None = None

    def __enter__(self) -> "LogContext":
        """Enter the context, saving old values and setting new ones."""
        self._old_context = get_extra_context().copy()
        self._old_workbook = get_workbook()
        self._old_sheet = get_sheet()

        new_context = dict(self._new_context)
        workbook = new_context.pop("workbook", None)
        sheet = new_context.pop("sheet", None)

        if workbook is not None:
            set_workbook(workbook)
        if sheet is not None:
            set_sheet(sheet)

        merged = self._old_context.copy()
        merged.update(new_context)
        set_extra_context(merged)

        return self

    def __exit__(self, *args: Any) -> None:
        """Exit the context, restoring old values."""
        set_extra_context(self._old_context)
        set_workbook(self._old_workbook)
        set_sheet(self._old_sheet)


@contextmanager
def timed_operation(
    logger: StructuredLogger,
    operation: str,
) -> Generator[PerformanceMetrics, None, None]:
    """Context manager for timing operations.

    Args:
        logger: Logger to use for output.
        operation: Name of the operation.

    Yields:
        PerformanceMetrics instance for tracking.
    """
    metrics = PerformanceMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.finish()
        logger.log_performance(metrics)


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    use_structured_formatter: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (int or string like "INFO").
        format_string: Custom format string (uses default if None).
        use_structured_formatter: Whether to use the structured formatter.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter: logging.Formatter
    if use_structured_formatter:
        formatter = StructuredLogFormatter(format_string)
    else:
        formatter = logging.Formatter(format_string)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        StructuredLogger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Found anchors", rows=12, columns=4)
    """
    return StructuredLogger(name)


class ProgressTracker:
    """Helper for tracking and logging progress of multi-sheet operations.

    Usage:
        tracker = ProgressTracker(logger, "Compressing sheets", total=10)
        for sheet in sheets:
            process(sheet)
            tracker.update(details=sheet.name)
        tracker.complete()
    """

    def __init__(
        self,
        logger: StructuredLogger,
        stage: str,
        total: int,
        log_interval: int = 1,
    ) -> None:
        """Initialize the progress tracker.

        Args:
            logger: Logger to use.
            stage: Description of the stage being tracked.
            total: Total number of items.
            log_interval: Log every N updates (1 = every update).
        """
        self._logger = logger
        self._stage = stage
        self._total = total
        self._current = 0
        self._log_interval = log_interval
        self._start_time = time.time()

    @property
    def current(self) -> int:
        """Number of items completed so far."""
        return self._current

    def update(
        self,
        increment: int = 1,
        details: str | None = None,
    ) -> None:
        """Update progress.

        Args:
            increment: Number of items completed.
            details: Optional details about current item.
        """
        self._current += increment
        if self._current % self._log_interval == 0 or self._current == self._total:
            self._logger.log_progress(
                self._stage,
                self._current,
                self._total,
                details,
            )

    def complete(self) -> float:
        """Mark progress as complete.

        Returns:
            Total duration in seconds.
        """
        duration = time.time() - self._start_time
        self._logger.info(
            f"Completed: {self._stage}",
            completed=self._current,
            total_items=self._total,
            duration_seconds=f"{duration:.2f}",
        )
        return duration
