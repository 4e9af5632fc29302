"""Options and result snapshots for anchor detection and skeleton extraction.

Every result is computed once per ``(grid, options)`` pair and never mutated
afterwards. ``to_dict`` methods emit keys in a deterministic order so two
identical computations serialize identically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from enum import Enum
from typing import Any

from spreadsheet_skeleton.config import settings
from spreadsheet_skeleton.grid import Cell, Grid
from spreadsheet_skeleton.utils.exceptions import InvalidOptionsError


def _check_ratio(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidOptionsError(name, value, "must be between 0.0 and 1.0")


# =============================================================================
# Options
# =============================================================================


@dataclass(frozen=True)
class AnchorDetectionOptions:
    """Options controlling anchor detection."""

    min_heterogeneity_score: float = field(
        default_factory=lambda: settings.min_heterogeneity_score
    )
    consider_styles: bool = field(default_factory=lambda: settings.consider_styles)
    consider_number_formats: bool = field(
        default_factory=lambda: settings.consider_number_formats
    )
    detect_multi_level_headers: bool = field(
        default_factory=lambda: settings.detect_multi_level_headers
    )
    max_header_depth: int = field(default_factory=lambda: settings.max_header_depth)

    def __post_init__(self) -> None:
        _check_ratio("min_heterogeneity_score", self.min_heterogeneity_score)
        if self.max_header_depth < 0:
            raise InvalidOptionsError(
                "max_header_depth", self.max_header_depth, "must be at least 0"
            )


@dataclass(frozen=True)
class SkeletonExtractionOptions:
    """Options controlling which cells survive into the skeleton."""

    preserve_nearby_non_empty: bool = field(
        default_factory=lambda: settings.preserve_nearby_non_empty
    )
    preserve_formulas: bool = field(default_factory=lambda: settings.preserve_formulas)
    preserve_formatted_cells: bool = field(
        default_factory=lambda: settings.preserve_formatted_cells
    )
    min_compression_ratio: float = field(
        default_factory=lambda: settings.min_compression_ratio
    )
    create_placeholders: bool = field(
        default_factory=lambda: settings.create_placeholders
    )
    """Reserved for future use; extraction ignores it."""

    def __post_init__(self) -> None:
        _check_ratio("min_compression_ratio", self.min_compression_ratio)


# =============================================================================
# Anchor detection results
# =============================================================================


class HeaderType(str, Enum):
    """Shape of a detected header region."""

    SIMPLE = "simple"
    MULTI_LEVEL = "multi_level"
    PIVOTED = "pivoted"
    MIXED = "mixed"


@dataclass(frozen=True)
class HeaderRegion:
    """Rectangular block of header cells, bounds inclusive."""

    start_row: int
    end_row: int
    start_col: int
    end_col: int
    confidence: float
    type: HeaderType = HeaderType.SIMPLE

    def contains(self, row: int, col: int) -> bool:
        return (
            self.start_row <= row <= self.end_row
            and self.start_col <= col <= self.end_col
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_row": self.start_row,
            "end_row": self.end_row,
            "start_col": self.start_col,
            "end_col": self.end_col,
            "confidence": self.confidence,
            "type": self.type.value,
        }


@dataclass(frozen=True)
class AnchorMetrics:
    """Summary numbers describing an anchor set."""

    total_anchors: int = 0
    anchor_density: float = 0.0
    average_anchor_distance: float = 0.0
    heterogeneity_scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_anchors": self.total_anchors,
            "anchor_density": self.anchor_density,
            "average_anchor_distance": self.average_anchor_distance,
            "heterogeneity_scores": dict(sorted(self.heterogeneity_scores.items())),
        }


@dataclass(frozen=True)
class StructuralAnchors:
    """Anchor rows/columns and header regions detected in one sheet."""

    anchor_rows: frozenset[int] = frozenset()
    anchor_columns: frozenset[int] = frozenset()
    header_regions: tuple[HeaderRegion, ...] = ()
    metrics: AnchorMetrics = field(default_factory=AnchorMetrics)

    def __post_init__(self) -> None:
        object.__setattr__(self, "anchor_rows", frozenset(self.anchor_rows))
        object.__setattr__(self, "anchor_columns", frozenset(self.anchor_columns))
        object.__setattr__(self, "header_regions", tuple(self.header_regions))

    @property
    def signature(self) -> str:
        """Structural signature used to match sheets across a workbook."""
        return (
            f"R{len(self.anchor_rows)}_C{len(self.anchor_columns)}"
            f"_H{len(self.header_regions)}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "anchor_rows": sorted(self.anchor_rows),
            "anchor_columns": sorted(self.anchor_columns),
            "header_regions": [h.to_dict() for h in self.header_regions],
            "metrics": self.metrics.to_dict(),
        }


@dataclass(frozen=True)
class CrossSheetPattern:
    """Group of sheets sharing one structural signature."""

    name: str
    affected_sheets: tuple[str, ...]
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "affected_sheets": list(self.affected_sheets),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class WorkbookAnchorMetrics(AnchorMetrics):
    """Anchor metrics aggregated over every analysed sheet."""

    total_worksheets: int = 0
    cross_sheet_consistency: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["total_worksheets"] = self.total_worksheets
        result["cross_sheet_consistency"] = self.cross_sheet_consistency
        return result


@dataclass(frozen=True)
class WorkbookAnchors:
    """Per-sheet anchors plus workbook-wide patterns."""

    per_sheet: dict[str, StructuralAnchors] = field(default_factory=dict)
    cross_sheet_patterns: tuple[CrossSheetPattern, ...] = ()
    global_metrics: WorkbookAnchorMetrics = field(
        default_factory=WorkbookAnchorMetrics
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "per_sheet": {name: a.to_dict() for name, a in self.per_sheet.items()},
            "cross_sheet_patterns": [p.to_dict() for p in self.cross_sheet_patterns],
            "global_metrics": self.global_metrics.to_dict(),
        }


# =============================================================================
# Skeleton results
# =============================================================================


@dataclass(frozen=True)
class AddressRemap:
    """Bidirectional mapping between original and skeleton coordinates.

    ``row_remap`` and ``col_remap`` map every preserved original index onto
    ``0..n-1`` in ascending order.
    """

    skeleton_to_original: dict[str, str] = field(default_factory=dict)
    original_to_skeleton: dict[str, str] = field(default_factory=dict)
    row_remap: dict[int, int] = field(default_factory=dict)
    col_remap: dict[int, int] = field(default_factory=dict)

    def to_original(self, skeleton_address: str) -> str | None:
        """Original address of a skeleton cell, or None if unknown."""
        return self.skeleton_to_original.get(skeleton_address)

    def to_skeleton(self, original_address: str) -> str | None:
        """Skeleton address of an original cell, or None if discarded."""
        return self.original_to_skeleton.get(original_address)

    def original_coordinates(self, row: int, col: int) -> tuple[int, int] | None:
        """Translate skeleton ``(row, col)`` back to original indices.

        Works for any preserved row/column pair, including intersections that
        hold no cell.
        """
        rows, cols = self._inverse_remaps
        if row not in rows or col not in cols:
            return None
        return rows[row], cols[col]

    @cached_property
    def _inverse_remaps(self) -> tuple[dict[int, int], dict[int, int]]:
        return (
            {new: old for old, new in self.row_remap.items()},
            {new: old for old, new in self.col_remap.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "skeleton_to_original": dict(self.skeleton_to_original),
            "original_to_skeleton": dict(self.original_to_skeleton),
            "row_remap": {str(k): v for k, v in sorted(self.row_remap.items())},
            "col_remap": {str(k): v for k, v in sorted(self.col_remap.items())},
        }


@dataclass(frozen=True)
class CompressionStats:
    """Cell counts before and after skeleton extraction."""

    original_cell_count: int = 0
    skeleton_cell_count: int = 0
    preserved_rows: int = 0
    preserved_cols: int = 0
    discarded_cells: int = 0
    compression_ratio: float = 0.0

    @staticmethod
    def ratio(original: int, kept: int) -> float:
        """Fraction of cells discarded, 0 for an empty original."""
        return 1.0 - kept / original if original > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_cell_count": self.original_cell_count,
            "skeleton_cell_count": self.skeleton_cell_count,
            "preserved_rows": self.preserved_rows,
            "preserved_cols": self.preserved_cols,
            "discarded_cells": self.discarded_cells,
            "compression_ratio": self.compression_ratio,
        }


@dataclass(frozen=True)
class WorkbookCompressionStats(CompressionStats):
    """Compression stats summed over sheets, plus sheet counts."""

    original_sheet_count: int = 0
    skeleton_sheet_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["original_sheet_count"] = self.original_sheet_count
        result["skeleton_sheet_count"] = self.skeleton_sheet_count
        return result


@dataclass(frozen=True)
class SkeletonSheet:
    """Compacted view of one sheet with its coordinate remap."""

    original_name: str
    cells: dict[str, Cell] = field(default_factory=dict)
    mapping: AddressRemap = field(default_factory=AddressRemap)
    stats: CompressionStats = field(default_factory=CompressionStats)
    warnings: tuple[str, ...] = ()

    def to_grid(self, index: int = 0) -> Grid:
        """Rebuild the compacted cells as a grid for downstream serializers."""
        if not self.mapping.row_remap or not self.mapping.col_remap:
            return Grid(name=self.original_name, cells=self.cells, index=index)
        return Grid(
            name=self.original_name,
            cells=self.cells,
            first_row=0,
            last_row=len(self.mapping.row_remap) - 1,
            first_col=0,
            last_col=len(self.mapping.col_remap) - 1,
            index=index,
            total_cells=len(self.cells),
            non_empty_cells=sum(1 for c in self.cells.values() if not c.is_empty),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_name": self.original_name,
            "cells": {address: c.to_dict() for address, c in self.cells.items()},
            "mapping": self.mapping.to_dict(),
            "stats": self.stats.to_dict(),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class SkeletonWorkbook:
    """Skeletons of every processed sheet, in workbook order."""

    sheets: tuple[SkeletonSheet, ...] = ()
    global_stats: WorkbookCompressionStats = field(
        default_factory=WorkbookCompressionStats
    )
    warnings: tuple[str, ...] = ()
    cancelled: bool = False

    def get(self, name: str) -> SkeletonSheet | None:
        for sheet in self.sheets:
            if sheet.original_name == name:
                return sheet
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sheets": [s.to_dict() for s in self.sheets],
            "global_stats": self.global_stats.to_dict(),
            "warnings": list(self.warnings),
            "cancelled": self.cancelled,
        }
