"""Configuration management for spreadsheet skeleton extraction.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
SKELETON_ prefix, or via a .env file in the project root. The values act as
defaults for the detection and extraction option dataclasses; callers can
still override every option per call.

Environment Variables:
    SKELETON_NEIGHBORHOOD_K: Anchor expansion radius (default: 2)
    SKELETON_MIN_HETEROGENEITY_SCORE: Anchor score threshold (default: 0.7)
    SKELETON_CONSIDER_STYLES: Score style diversity (default: true)
    SKELETON_CONSIDER_NUMBER_FORMATS: Score number format diversity (default: true)
    SKELETON_DETECT_MULTI_LEVEL_HEADERS: Multi-row header detection (default: true)
    SKELETON_MAX_HEADER_DEPTH: Rows scanned for headers (default: 3)
    SKELETON_PRESERVE_NEARBY_NON_EMPTY: Keep anchor intersections (default: true)
    SKELETON_PRESERVE_FORMULAS: Keep formula cells (default: true)
    SKELETON_PRESERVE_FORMATTED_CELLS: Keep styled cells (default: true)
    SKELETON_MIN_COMPRESSION_RATIO: Advisory compression target (default: 0.7)
    SKELETON_CREATE_PLACEHOLDERS: Reserved, no effect (default: false)
    SKELETON_MAX_WORKERS: Thread pool size for workbook scans (default: unset)
    SKELETON_SCAN_TIMEOUT_SECONDS: Workbook scan timeout (default: unset)
    SKELETON_LOG_LEVEL: Logging level (default: INFO)
    SKELETON_DEBUG: Enable debug mode (default: false)
"""

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Example .env file:
        SKELETON_NEIGHBORHOOD_K=1
        SKELETON_LOG_LEVEL=DEBUG
        SKELETON_SCAN_TIMEOUT_SECONDS=30
    """

    model_config = SettingsConfigDict(
        env_prefix="SKELETON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Anchor Detection Settings
    # =========================================================================

    neighborhood_k: int = 2
    """Neighborhood radius added around every raw anchor."""

    min_heterogeneity_score: float = 0.7
    """Score at or above which a row or column becomes an anchor (0.0-1.0)."""

    consider_styles: bool = True
    """Include bold mix and background colour diversity in scoring."""

    consider_number_formats: bool = True
    """Include number format diversity in scoring."""

    detect_multi_level_headers: bool = True
    """Detect header regions spanning several rows."""

    max_header_depth: int = 3
    """Rows below the first row scanned for multi-level headers."""

    # =========================================================================
    # Skeleton Extraction Settings
    # =========================================================================

    preserve_nearby_non_empty: bool = True
    """Keep empty cells at anchor intersections as well."""

    preserve_formulas: bool = True
    """Always keep cells carrying a formula."""

    preserve_formatted_cells: bool = True
    """Always keep bold, merged, filled or bordered cells."""

    min_compression_ratio: float = 0.7
    """Advisory compression target; falling short only logs a warning."""

    create_placeholders: bool = False
    """Reserved for future use. Has no effect."""

    # =========================================================================
    # Workbook Scan Settings
    # =========================================================================

    max_workers: int | None = None
    """Thread pool size for per-sheet work (None uses the executor default)."""

    scan_timeout_seconds: float | None = None
    """Abort workbook scans after this many seconds (None disables)."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("min_heterogeneity_score", "min_compression_ratio")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Validate threshold is between 0.0 and 1.0."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {v}")
        return v

    @field_validator("neighborhood_k", "max_header_depth")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate radius and depth are not negative."""
        if v < 0:
            raise ValueError(f"Value must be at least 0, got {v}")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int | None) -> int | None:
        """Validate worker count override."""
        if v is not None and v < 1:
            raise ValueError(f"max_workers must be at least 1, got {v}")
        return v

    @field_validator("scan_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        """Validate scan timeout is positive."""
        if v is not None and v <= 0:
            raise ValueError(f"scan_timeout_seconds must be positive, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary for logging.

        Returns:
            Dictionary representation of all settings.
        """
        return {
            "neighborhood_k": self.neighborhood_k,
            "min_heterogeneity_score": self.min_heterogeneity_score,
            "consider_styles": self.consider_styles,
            "consider_number_formats": self.consider_number_formats,
            "detect_multi_level_headers": self.detect_multi_level_headers,
            "max_header_depth": self.max_header_depth,
            "preserve_nearby_non_empty": self.preserve_nearby_non_empty,
            "preserve_formulas": self.preserve_formulas,
            "preserve_formatted_cells": self.preserve_formatted_cells,
            "min_compression_ratio": self.min_compression_ratio,
            "create_placeholders": self.create_placeholders,
            "max_workers": self.max_workers,
            "scan_timeout_seconds": self.scan_timeout_seconds,
            "log_level": self.log_level,
            "debug": self.debug,
        }


def log_settings_summary(s: Settings) -> None:
    """Log the effective configuration and warn about unusual values.

    Args:
        s: Settings instance to summarize.
    """
    logger = logging.getLogger(__name__)

    if s.create_placeholders:
        logger.warning(
            "SKELETON_CREATE_PLACEHOLDERS is set but placeholders are not "
            "implemented; the flag has no effect."
        )

    if s.neighborhood_k == 0 and not s.detect_multi_level_headers:
        logger.warning(
            "Anchor expansion is disabled and only single-row headers are "
            "detected; skeletons may lose context around anchors."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"k={s.neighborhood_k}, "
        f"min_heterogeneity_score={s.min_heterogeneity_score}, "
        f"min_compression_ratio={s.min_compression_ratio}"
    )


# Create the global settings instance
settings = Settings()
