"""Centralized exception classes for spreadsheet skeleton extraction.

The engine itself raises nothing for well-formed input: empty sheets, single
row sheets and sheets without headers all produce minimal results. Exceptions
are reserved for malformed input handed over by a loader and for option values
that cannot be honoured.

Exception Hierarchy:
    SkeletonError (base)
    ├── GridValidationError
    ├── InvalidOptionsError
    └── LoaderError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the package.

    Error codes are grouped by category:
    - E1xxx: Grid/workbook input errors
    - E2xxx: Option errors
    - E3xxx: Loader errors
    - E9xxx: Internal/unexpected errors
    """

    # Grid errors (E1xxx)
    CELL_OUT_OF_BOUNDS = "E1001"
    ADDRESS_MISMATCH = "E1002"
    INVALID_BOUNDS = "E1003"
    DUPLICATE_SHEET_NAME = "E1004"

    # Option errors (E2xxx)
    INVALID_OPTION = "E2001"
    NEGATIVE_NEIGHBORHOOD = "E2002"

    # Loader errors (E3xxx)
    WORKBOOK_NOT_FOUND = "E3001"
    SHEET_NOT_FOUND = "E3002"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"


class SkeletonError(Exception):
    """Base exception for all spreadsheet skeleton errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


class GridValidationError(SkeletonError):
    """Raised when a grid or workbook handed over by a loader is malformed."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CELL_OUT_OF_BOUNDS,
        sheet_name: str | None = None,
        address: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending sheet and cell.

        Args:
            message: Error message.
            error_code: Error code.
            sheet_name: Name of the malformed sheet.
            address: Address of the offending cell, if any.
            details: Additional details.
        """
        details = details or {}
        if sheet_name is not None:
            details["sheet_name"] = sheet_name
        if address is not None:
            details["address"] = address
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name
        self.address = address


class InvalidOptionsError(SkeletonError):
    """Raised when detection or extraction options hold unusable values."""

    def __init__(
        self,
        option: str,
        value: Any,
        reason: str,
        error_code: ErrorCode = ErrorCode.INVALID_OPTION,
    ) -> None:
        """Initialize with the rejected option.

        Args:
            option: Name of the option.
            value: The rejected value.
            reason: Why the value was rejected.
            error_code: Error code.
        """
        super().__init__(
            f"Invalid value for {option}: {value!r} ({reason})",
            error_code,
            {"option": option, "value": value},
        )
        self.option = option
        self.value = value


class LoaderError(SkeletonError):
    """Raised when the workbook adapter cannot produce grids."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.WORKBOOK_NOT_FOUND,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            error_code: Error code.
            file_path: Path to the problematic workbook.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, error_code, details)
        self.file_path = file_path
