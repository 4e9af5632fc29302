"""Services for spreadsheet skeleton extraction."""

from spreadsheet_skeleton.services.anchor_detector import AnchorDetector
from spreadsheet_skeleton.services.excel_loader import (
    ExcelGridLoader,
    ExcelLoadOptions,
)
from spreadsheet_skeleton.services.skeleton_builder import SkeletonBuilder
from spreadsheet_skeleton.services.workbook_coordinator import (
    CompressionStrategy,
    WorkbookAnalysis,
    WorkbookCoordinator,
)

__all__ = [
    "AnchorDetector",
    "CompressionStrategy",
    "ExcelGridLoader",
    "ExcelLoadOptions",
    "SkeletonBuilder",
    "WorkbookAnalysis",
    "WorkbookCoordinator",
]
