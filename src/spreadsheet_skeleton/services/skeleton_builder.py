"""Skeleton extraction: compact a grid down to its structural cells.

Given the anchors of a sheet, the builder decides cell by cell what survives,
renumbers the surviving rows and columns densely and records how every kept
cell maps back to its original address.
"""

import threading
from collections.abc import Iterable

from spreadsheet_skeleton.config import settings
from spreadsheet_skeleton.grid import Cell, Grid, Workbook, cell_address
from spreadsheet_skeleton.models import (
    AddressRemap,
    CompressionStats,
    SkeletonExtractionOptions,
    SkeletonSheet,
    SkeletonWorkbook,
    StructuralAnchors,
    WorkbookAnchors,
    WorkbookCompressionStats,
)
from spreadsheet_skeleton.services.fan_out import fan_out
from spreadsheet_skeleton.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


def build_index_mapping(indices: Iterable[int]) -> dict[int, int]:
    """Map sorted original indices onto ``0..n-1``."""
    return {original: new for new, original in enumerate(sorted(set(indices)))}


def _is_kept(
    cell: Cell,
    rows: frozenset[int],
    cols: frozenset[int],
    anchors: StructuralAnchors,
    options: SkeletonExtractionOptions,
) -> tuple[bool, bool]:
    """Apply the preservation policy to one cell.

    Returns:
        ``(kept, at_intersection)``; the second flag is True when the cell
        was kept because it sits on an anchor row and anchor column.
    """
    if cell.row in rows and cell.col in cols:
        if not cell.is_empty or options.preserve_nearby_non_empty:
            return True, True
    if any(region.contains(cell.row, cell.col) for region in anchors.header_regions):
        return True, False
    if options.preserve_formulas and cell.has_formula:
        return True, False
    if options.preserve_formatted_cells and cell.is_specially_formatted:
        return True, False
    return False, False


class SkeletonBuilder:
    """Build compacted skeletons from grids and their anchors.

    Usage:
        builder = SkeletonBuilder()
        skeleton = builder.extract_skeleton(grid, anchors)
        original = skeleton.mapping.to_original("A1")
    """

    def __init__(self, max_workers: int | None = None) -> None:
        self._max_workers = max_workers if max_workers is not None else settings.max_workers

    def extract_skeleton(
        self,
        grid: Grid,
        anchors: StructuralAnchors,
        options: SkeletonExtractionOptions | None = None,
    ) -> SkeletonSheet:
        """Extract the skeleton of one sheet.

        Args:
            grid: Sheet to compact.
            anchors: Anchors previously detected for ``grid``.
            options: Extraction options (defaults from settings).

        Returns:
            The skeleton sheet with its address remap and stats.
        """
        opts = options or SkeletonExtractionOptions()

        with LogContext(sheet=grid.name):
            if grid.is_empty:
                logger.debug("Sheet is empty, returning empty skeleton")
                return SkeletonSheet(original_name=grid.name)

            candidate_rows = anchors.anchor_rows | {grid.first_row, grid.last_row}
            candidate_cols = anchors.anchor_columns | {grid.first_col, grid.last_col}

            kept: list[Cell] = []
            extra_rows: set[int] = set()
            extra_cols: set[int] = set()
            for cell in sorted(grid.cells.values(), key=lambda c: (c.row, c.col)):
                keep, at_intersection = _is_kept(
                    cell, candidate_rows, candidate_cols, anchors, opts
                )
                if not keep:
                    continue
                kept.append(cell)
                if not at_intersection:
                    extra_rows.add(cell.row)
                    extra_cols.add(cell.col)

            row_remap = build_index_mapping(candidate_rows | extra_rows)
            col_remap = build_index_mapping(candidate_cols | extra_cols)

            cells: dict[str, Cell] = {}
            skeleton_to_original: dict[str, str] = {}
            original_to_skeleton: dict[str, str] = {}
            for cell in kept:
                moved = cell.moved_to(row_remap[cell.row], col_remap[cell.col])
                cells[moved.address] = moved
                skeleton_to_original[moved.address] = cell.address
                original_to_skeleton[cell.address] = moved.address

            original_count = len(grid.cells)
            ratio = CompressionStats.ratio(original_count, len(cells))
            stats = CompressionStats(
                original_cell_count=original_count,
                skeleton_cell_count=len(cells),
                preserved_rows=len(row_remap),
                preserved_cols=len(col_remap),
                discarded_cells=original_count - len(cells),
                compression_ratio=ratio,
            )

            warnings: list[str] = []
            if ratio < opts.min_compression_ratio:
                message = (
                    f"Compression ratio {ratio:.1%} for sheet '{grid.name}' is "
                    f"below the target {opts.min_compression_ratio:.1%}"
                )
                logger.warning(
                    "Compression ratio below target",
                    ratio=f"{ratio:.3f}",
                    target=opts.min_compression_ratio,
                )
                warnings.append(message)

            logger.log_compression_result(grid.name, original_count, len(cells), ratio)

            return SkeletonSheet(
                original_name=grid.name,
                cells=cells,
                mapping=AddressRemap(
                    skeleton_to_original=skeleton_to_original,
                    original_to_skeleton=original_to_skeleton,
                    row_remap=row_remap,
                    col_remap=col_remap,
                ),
                stats=stats,
                warnings=tuple(warnings),
            )

    def identity_skeleton(self, grid: Grid) -> SkeletonSheet:
        """Skeleton that keeps every cell, row and column of ``grid``."""
        if grid.is_empty:
            return SkeletonSheet(original_name=grid.name)

        row_remap = build_index_mapping(range(grid.first_row, grid.last_row + 1))
        col_remap = build_index_mapping(range(grid.first_col, grid.last_col + 1))
        cells: dict[str, Cell] = {}
        skeleton_to_original: dict[str, str] = {}
        for cell in sorted(grid.cells.values(), key=lambda c: (c.row, c.col)):
            moved = cell.moved_to(row_remap[cell.row], col_remap[cell.col])
            cells[moved.address] = moved
            skeleton_to_original[moved.address] = cell.address

        return SkeletonSheet(
            original_name=grid.name,
            cells=cells,
            mapping=AddressRemap(
                skeleton_to_original=skeleton_to_original,
                original_to_skeleton={v: k for k, v in skeleton_to_original.items()},
                row_remap=row_remap,
                col_remap=col_remap,
            ),
            stats=CompressionStats(
                original_cell_count=len(grid.cells),
                skeleton_cell_count=len(cells),
                preserved_rows=len(row_remap),
                preserved_cols=len(col_remap),
            ),
        )

    def extract_workbook_skeleton(
        self,
        workbook: Workbook,
        workbook_anchors: WorkbookAnchors,
        options: SkeletonExtractionOptions | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> SkeletonWorkbook:
        """Extract skeletons for every sheet that has anchors.

        Sheets missing from ``workbook_anchors`` are skipped with a warning;
        the remaining sheets are still processed.

        Args:
            workbook: Workbook to compact.
            workbook_anchors: Anchors from a workbook scan.
            options: Extraction options shared by every sheet.
            cancel_event: Once set, sheets not yet started are skipped.
            timeout: Seconds after which unfinished sheets are abandoned.

        Returns:
            Skeletons in workbook order with aggregated stats.
        """
        opts = options or SkeletonExtractionOptions()

        warnings: list[str] = []
        eligible: list[Grid] = []
        for sheet in workbook.sheets:
            if sheet.name in workbook_anchors.per_sheet:
                eligible.append(sheet)
                continue
            logger.warning("No anchors found for sheet, skipping", sheet=sheet.name)
            warnings.append(f"No anchors found for sheet '{sheet.name}'")

        outcome = fan_out(
            eligible,
            lambda sheet: self.extract_skeleton(
                sheet, workbook_anchors.per_sheet[sheet.name], opts
            ),
            lambda sheet: sheet.name,
            max_workers=self._max_workers,
            cancel_event=cancel_event,
            timeout=timeout,
        )
        if outcome.cancelled:
            logger.warning(
                "Skeleton extraction cancelled",
                completed=len(outcome.results),
                total=len(eligible),
            )

        return summarize(
            list(outcome.results.values()),
            original_sheet_count=len(workbook.sheets),
            warnings=warnings,
            cancelled=outcome.cancelled,
        )


def summarize(
    sheets: list[SkeletonSheet],
    original_sheet_count: int,
    warnings: Iterable[str] = (),
    cancelled: bool = False,
) -> SkeletonWorkbook:
    """Aggregate per-sheet skeletons into a workbook skeleton.

    Args:
        sheets: Skeleton sheets in workbook order.
        original_sheet_count: Number of sheets in the source workbook.
        warnings: Workbook-level warnings collected so far.
        cancelled: Whether the scan was cut short.

    Returns:
        The workbook skeleton with summed stats.
    """
    original = sum(s.stats.original_cell_count for s in sheets)
    kept = sum(s.stats.skeleton_cell_count for s in sheets)

    global_stats = WorkbookCompressionStats(
        original_cell_count=original,
        skeleton_cell_count=kept,
        preserved_rows=sum(s.stats.preserved_rows for s in sheets),
        preserved_cols=sum(s.stats.preserved_cols for s in sheets),
        discarded_cells=sum(s.stats.discarded_cells for s in sheets),
        compression_ratio=CompressionStats.ratio(original, kept),
        original_sheet_count=original_sheet_count,
        skeleton_sheet_count=len(sheets),
    )

    return SkeletonWorkbook(
        sheets=tuple(sheets),
        global_stats=global_stats,
        warnings=tuple(warnings),
        cancelled=cancelled,
    )


def remap_address(sheet: SkeletonSheet, row: int, col: int) -> str | None:
    """Original A1 address for a skeleton ``(row, col)``, or None."""
    coordinates = sheet.mapping.original_coordinates(row, col)
    if coordinates is None:
        return None
    return cell_address(*coordinates)
