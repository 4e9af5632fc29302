"""Structural anchor detection for worksheet grids.

This module scores every populated row and column of a grid for structural
significance and selects the anchor rows/columns a compacted skeleton must
keep:

- Heterogeneity scoring: type, number format, style and text/number diversity
- Significant-change detection between neighbouring rows/columns
- Header region detection (single row or multi-level)
- k-neighbourhood expansion around every raw anchor
- Workbook-wide signatures and cross-sheet patterns

Row scoring, column scoring and header detection of one sheet run as three
concurrent tasks that share no mutable state; their results are joined before
expansion.
"""

import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import dataclass, field
from statistics import fmean

from spreadsheet_skeleton.config import settings
from spreadsheet_skeleton.grid import Cell, CellKind, Grid, Workbook
from spreadsheet_skeleton.models import (
    AnchorDetectionOptions,
    AnchorMetrics,
    CrossSheetPattern,
    HeaderRegion,
    HeaderType,
    StructuralAnchors,
    WorkbookAnchorMetrics,
    WorkbookAnchors,
)
from spreadsheet_skeleton.services.fan_out import fan_out
from spreadsheet_skeleton.utils.exceptions import ErrorCode, InvalidOptionsError
from spreadsheet_skeleton.utils.logging import LogContext, get_logger, timed_operation

logger = get_logger(__name__)

TOTAL_CELL_KINDS = len(CellKind)
FORMAT_DIVERSITY_CAP = 5
COLOR_DIVERSITY_CAP = 3
BOLD_MIX_WEIGHT = 0.5

HEADER_STRING_RATIO = 0.7
HEADER_UNIQUE_RATIO = 0.8
HEADER_STRONG_STRING_RATIO = 0.9

SIMPLE_HEADER_CONFIDENCE = 0.8
MULTI_LEVEL_HEADER_CONFIDENCE = 0.9


# =============================================================================
# Scoring primitives
# =============================================================================


def heterogeneity_score(cells: Sequence[Cell], options: AnchorDetectionOptions) -> float:
    """Score the diversity of one row or column between 0 and 1.

    The score is the mean of the factors that apply: type diversity, number
    format diversity, bold mix and background colour diversity (style
    factors), and the text/number balance when both are present.

    Args:
        cells: Cells sharing a row (or column) index.
        options: Detection options selecting the optional factors.

    Returns:
        The heterogeneity score, 0 for an empty sequence.
    """
    if not cells:
        return 0.0

    factors = [len({c.kind for c in cells}) / TOTAL_CELL_KINDS]

    if options.consider_number_formats:
        formats = len({c.number_format for c in cells})
        factors.append(min(formats / FORMAT_DIVERSITY_CAP, 1.0))

    if options.consider_styles:
        bold = sum(1 for c in cells if c.is_bold)
        colors = len({c.background_color for c in cells})
        factors.append(BOLD_MIX_WEIGHT if 0 < bold < len(cells) else 0.0)
        factors.append(min(colors / COLOR_DIVERSITY_CAP, 1.0))

    text = sum(1 for c in cells if c.kind is CellKind.TEXT)
    numbers = sum(1 for c in cells if c.kind is CellKind.NUMBER)
    if text and numbers:
        factors.append(min(text, numbers) / max(text, numbers))

    return sum(factors) / len(factors)


def has_significant_change(
    previous: Sequence[Cell],
    current: Sequence[Cell],
    options: AnchorDetectionOptions,
) -> bool:
    """Whether two neighbouring rows (or columns) differ structurally.

    A change is either a complete switch of data types or, when styles are
    considered, bold text appearing or disappearing.
    """
    previous_kinds = {c.kind for c in previous}
    current_kinds = {c.kind for c in current}
    if previous_kinds and current_kinds and previous_kinds.isdisjoint(current_kinds):
        return True

    if options.consider_styles:
        previous_bold = any(c.is_bold for c in previous)
        current_bold = any(c.is_bold for c in current)
        if previous_bold != current_bold:
            return True

    return False


def is_likely_header(cells: Iterable[Cell]) -> bool:
    """Whether a row reads like a header: distinct, formula-free labels."""
    non_empty = [c for c in cells if not c.is_empty]
    if not non_empty:
        return False

    count = len(non_empty)
    string_ratio = sum(1 for c in non_empty if c.kind is CellKind.TEXT) / count
    has_bold = any(c.is_bold for c in non_empty)
    has_formulas = any(c.has_formula for c in non_empty)
    unique_ratio = len({c.formatted_text for c in non_empty}) / count

    return (
        string_ratio > HEADER_STRING_RATIO
        and not has_formulas
        and unique_ratio > HEADER_UNIQUE_RATIO
        and (has_bold or string_ratio > HEADER_STRONG_STRING_RATIO)
    )


def expand_anchors(
    anchors: Iterable[int], k: int, lower: int, upper: int
) -> frozenset[int]:
    """Add the ``k`` neighbours on each side of every anchor, within bounds."""
    expanded: set[int] = set()
    for anchor in anchors:
        expanded.update(range(max(lower, anchor - k), min(upper, anchor + k) + 1))
    return frozenset(expanded)


@dataclass
class LineAnalysis:
    """Raw anchors and scores of every populated row (or column)."""

    anchors: set[int] = field(default_factory=set)
    scores: dict[int, float] = field(default_factory=dict)


def analyze_lines(
    lines: dict[int, list[Cell]], options: AnchorDetectionOptions
) -> LineAnalysis:
    """Score rows (or columns) and flag raw anchors.

    Args:
        lines: Cells grouped by row (or column) index, keys ascending.
        options: Detection options.

    Returns:
        The raw anchor set and per-index scores.
    """
    analysis = LineAnalysis()
    previous: tuple[int, list[Cell]] | None = None

    for index, cells in lines.items():
        score = heterogeneity_score(cells, options)
        analysis.scores[index] = score
        if score >= options.min_heterogeneity_score:
            analysis.anchors.add(index)

        if previous is not None and has_significant_change(previous[1], cells, options):
            analysis.anchors.add(previous[0])
            analysis.anchors.add(index)
        previous = (index, cells)

    return analysis


def _column_bounds(cells: Iterable[Cell]) -> tuple[int, int]:
    cols = [c.col for c in cells]
    return min(cols), max(cols)


def detect_headers(grid: Grid, options: AnchorDetectionOptions) -> list[HeaderRegion]:
    """Find the header region at the top of a grid.

    Args:
        grid: Grid to inspect.
        options: Detection options (multi-level switch and scan depth).

    Returns:
        Zero or one header region.
    """
    rows = grid.group_by_row()
    populated = [i for i, cells in rows.items() if any(not c.is_empty for c in cells)]
    # A lone value is data, not a label for anything.
    if sum(1 for c in grid.cells.values() if not c.is_empty) < 2:
        return []

    if not options.detect_multi_level_headers:
        cells = rows[populated[0]]
        if not is_likely_header(cells):
            return []
        start_col, end_col = _column_bounds(cells)
        return [
            HeaderRegion(
                start_row=populated[0],
                end_row=populated[0],
                start_col=start_col,
                end_col=end_col,
                confidence=SIMPLE_HEADER_CONFIDENCE,
                type=HeaderType.SIMPLE,
            )
        ]

    header_rows: list[int] = []
    limit = grid.first_row + options.max_header_depth
    for index, cells in rows.items():
        if index > limit:
            break
        if is_likely_header(cells):
            header_rows.append(index)
        elif header_rows:
            break

    if not header_rows:
        return []

    start_col, end_col = _column_bounds(c for i in header_rows for c in rows[i])
    return [
        HeaderRegion(
            start_row=header_rows[0],
            end_row=header_rows[-1],
            start_col=start_col,
            end_col=end_col,
            confidence=MULTI_LEVEL_HEADER_CONFIDENCE,
            type=HeaderType.MULTI_LEVEL if len(header_rows) > 1 else HeaderType.SIMPLE,
        )
    ]


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return fmean(values) if values else 0.0


def _max(values: Iterable[float]) -> float:
    return max(values, default=0.0)


def compute_metrics(
    grid: Grid,
    rows: frozenset[int],
    columns: frozenset[int],
    row_analysis: LineAnalysis,
    column_analysis: LineAnalysis,
) -> AnchorMetrics:
    """Summary metrics for an expanded anchor set."""
    total = len(rows) + len(columns)
    possible = grid.last_row + grid.last_col + 2

    ordered = sorted(rows)
    gaps = [b - a for a, b in zip(ordered, ordered[1:])]

    return AnchorMetrics(
        total_anchors=total,
        anchor_density=total / possible if possible > 0 else 0.0,
        average_anchor_distance=_mean(gaps),
        heterogeneity_scores={
            "RowAverage": _mean(row_analysis.scores.values()),
            "ColumnAverage": _mean(column_analysis.scores.values()),
            "RowMax": _max(row_analysis.scores.values()),
            "ColumnMax": _max(column_analysis.scores.values()),
        },
    )


# =============================================================================
# Detector
# =============================================================================


class AnchorDetector:
    """Detect structural anchors in grids and workbooks.

    Usage:
        detector = AnchorDetector()
        anchors = detector.find_anchors(grid, k=1)
        workbook_anchors = detector.find_workbook_anchors(workbook)
    """

    def __init__(self, max_workers: int | None = None) -> None:
        """Initialize the detector.

        Args:
            max_workers: Thread pool size for workbook scans. Defaults to the
                configured ``max_workers``.
        """
        self._max_workers = max_workers if max_workers is not None else settings.max_workers

    def find_anchors(
        self,
        grid: Grid,
        k: int | None = None,
        options: AnchorDetectionOptions | None = None,
    ) -> StructuralAnchors:
        """Find the anchor rows, columns and header regions of one grid.

        Args:
            grid: Grid to analyse. An empty grid yields empty anchors.
            k: Neighbourhood radius (defaults to the configured value).
            options: Detection options (defaults from settings).

        Returns:
            The expanded anchors, header regions and metrics.

        Raises:
            InvalidOptionsError: If ``k`` is negative.
        """
        k = settings.neighborhood_k if k is None else k
        if k < 0:
            raise InvalidOptionsError(
                "k", k, "must be at least 0", ErrorCode.NEGATIVE_NEIGHBORHOOD
            )
        opts = options or AnchorDetectionOptions()

        with LogContext(sheet=grid.name):
            if grid.is_empty:
                logger.debug("Sheet is empty, no anchors detected")
                return StructuralAnchors()

            with timed_operation(logger, "find_anchors") as metrics:
                with ThreadPoolExecutor(
                    max_workers=3, thread_name_prefix="skeleton-anchor"
                ) as executor:
                    row_future = executor.submit(
                        copy_context().run, analyze_lines, grid.group_by_row(), opts
                    )
                    column_future = executor.submit(
                        copy_context().run, analyze_lines, grid.group_by_column(), opts
                    )
                    header_future = executor.submit(
                        copy_context().run, detect_headers, grid, opts
                    )
                    row_analysis = row_future.result()
                    column_analysis = column_future.result()
                    header_regions = header_future.result()

                # Sheet edges are always structural.
                raw_rows = row_analysis.anchors | {grid.first_row, grid.last_row}
                raw_columns = column_analysis.anchors | {grid.first_col, grid.last_col}

                rows = expand_anchors(raw_rows, k, grid.first_row, grid.last_row)
                columns = expand_anchors(raw_columns, k, grid.first_col, grid.last_col)

                anchors = StructuralAnchors(
                    anchor_rows=rows,
                    anchor_columns=columns,
                    header_regions=tuple(header_regions),
                    metrics=compute_metrics(
                        grid, rows, columns, row_analysis, column_analysis
                    ),
                )
                metrics.cells_processed = len(grid.cells)
                metrics.anchors_found = anchors.metrics.total_anchors

            logger.info(
                "Found anchors",
                rows=len(rows),
                columns=len(columns),
                headers=len(header_regions),
                k=k,
            )
            return anchors

    def find_workbook_anchors(
        self,
        workbook: Workbook,
        k: int | None = None,
        options: AnchorDetectionOptions | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> WorkbookAnchors:
        """Find anchors for every sheet concurrently and compare sheets.

        Args:
            workbook: Workbook whose sheets are analysed.
            k: Neighbourhood radius.
            options: Detection options shared by every sheet.
            cancel_event: Once set, sheets not yet started are skipped.
            timeout: Seconds after which unfinished sheets are abandoned.

        Returns:
            Per-sheet anchors, cross-sheet patterns and global metrics.
        """
        opts = options or AnchorDetectionOptions()
        logger.debug("Finding anchors across workbook", sheets=len(workbook.sheets))

        outcome = fan_out(
            workbook.sheets,
            lambda sheet: self.find_anchors(sheet, k, opts),
            lambda sheet: sheet.name,
            max_workers=self._max_workers,
            cancel_event=cancel_event,
            timeout=timeout,
        )
        if outcome.cancelled:
            logger.warning(
                "Anchor detection cancelled",
                completed=len(outcome.results),
                total=len(workbook.sheets),
            )
        return summarize_workbook(outcome.results, len(workbook.sheets))


def summarize_workbook(
    per_sheet: dict[str, StructuralAnchors], total_sheets: int
) -> WorkbookAnchors:
    """Group sheets by signature and aggregate workbook metrics.

    Args:
        per_sheet: Anchors of every analysed sheet, in workbook order.
        total_sheets: Number of sheets in the workbook.

    Returns:
        The workbook anchors snapshot.
    """
    groups: dict[str, list[str]] = {}
    for name, anchors in per_sheet.items():
        groups.setdefault(anchors.signature, []).append(name)

    patterns: list[CrossSheetPattern] = []
    for sheets in groups.values():
        if len(sheets) < 2:
            continue
        patterns.append(
            CrossSheetPattern(
                name=f"Pattern_{len(patterns) + 1}",
                affected_sheets=tuple(sheets),
                confidence=len(sheets) / total_sheets,
            )
        )

    total_anchors = sum(a.metrics.total_anchors for a in per_sheet.values())
    analysed = len(per_sheet)
    consistency = 1.0 if analysed < 2 else 1.0 - (len(groups) - 1) / (analysed - 1)

    global_metrics = WorkbookAnchorMetrics(
        total_anchors=total_anchors,
        anchor_density=total_anchors / total_sheets if total_sheets > 0 else 0.0,
        average_anchor_distance=_mean(
            a.metrics.average_anchor_distance
            for a in per_sheet.values()
            if a.metrics.average_anchor_distance > 0
        ),
        heterogeneity_scores={
            "GlobalAverage": _mean(
                score
                for a in per_sheet.values()
                for score in a.metrics.heterogeneity_scores.values()
            )
        },
        total_worksheets=total_sheets,
        cross_sheet_consistency=consistency,
    )

    return WorkbookAnchors(
        per_sheet=dict(per_sheet),
        cross_sheet_patterns=tuple(patterns),
        global_metrics=global_metrics,
    )
