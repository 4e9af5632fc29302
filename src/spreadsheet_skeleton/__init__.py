"""Spreadsheet Skeleton - structural anchor detection and grid compaction."""

from spreadsheet_skeleton.grid import Cell, Grid, Workbook
from spreadsheet_skeleton.models import (
    AnchorDetectionOptions,
    SkeletonExtractionOptions,
    SkeletonSheet,
    SkeletonWorkbook,
    StructuralAnchors,
    WorkbookAnchors,
)
from spreadsheet_skeleton.services import (
    AnchorDetector,
    CompressionStrategy,
    ExcelGridLoader,
    SkeletonBuilder,
    WorkbookCoordinator,
)

__all__ = [
    "AnchorDetectionOptions",
    "AnchorDetector",
    "Cell",
    "CompressionStrategy",
    "ExcelGridLoader",
    "Grid",
    "SkeletonBuilder",
    "SkeletonExtractionOptions",
    "SkeletonSheet",
    "SkeletonWorkbook",
    "StructuralAnchors",
    "Workbook",
    "WorkbookAnchors",
    "WorkbookCoordinator",
]
__version__ = "0.1.0"
