"""Workbook-wide anchor detection and skeleton extraction.

The coordinator runs the detector and the builder back to back for every
sheet as a single task, so a sheet's skeleton is ready as soon as its anchors
are. Results are gathered into an insert-once map keyed by sheet name and
summarized once every task finished (or the scan was cancelled).
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any

from spreadsheet_skeleton.config import settings
from spreadsheet_skeleton.grid import Grid, Workbook
from spreadsheet_skeleton.models import (
    AnchorDetectionOptions,
    SkeletonExtractionOptions,
    SkeletonSheet,
    SkeletonWorkbook,
    StructuralAnchors,
    WorkbookAnchors,
)
from spreadsheet_skeleton.services.anchor_detector import (
    AnchorDetector,
    summarize_workbook,
)
from spreadsheet_skeleton.services.fan_out import fan_out
from spreadsheet_skeleton.services.skeleton_builder import SkeletonBuilder, summarize
from spreadsheet_skeleton.utils.logging import (
    LogContext,
    ProgressTracker,
    get_logger,
    timed_operation,
)

logger = get_logger(__name__)

LOW_COMPRESSION_WARNING_THRESHOLD = 0.3


class CompressionStrategy(str, Enum):
    """Named option presets for workbook compression."""

    NONE = "none"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


@dataclass(frozen=True)
class StrategyPreset:
    """Options a strategy applies to every sheet."""

    k: int
    anchor_options: AnchorDetectionOptions
    skeleton_options: SkeletonExtractionOptions


def strategy_preset(strategy: CompressionStrategy) -> StrategyPreset:
    """Options used by ``strategy``.

    ``NONE`` keeps the configured defaults for anchor detection; its skeleton
    is the identity regardless of the extraction options.
    """
    if strategy is CompressionStrategy.BALANCED:
        return StrategyPreset(
            k=2,
            anchor_options=AnchorDetectionOptions(
                min_heterogeneity_score=0.6,
                consider_styles=True,
                consider_number_formats=True,
                detect_multi_level_headers=True,
            ),
            skeleton_options=SkeletonExtractionOptions(
                preserve_nearby_non_empty=True,
                preserve_formulas=True,
                preserve_formatted_cells=True,
                min_compression_ratio=0.5,
            ),
        )
    if strategy is CompressionStrategy.AGGRESSIVE:
        return StrategyPreset(
            k=0,
            anchor_options=AnchorDetectionOptions(
                min_heterogeneity_score=0.8,
                consider_styles=False,
                consider_number_formats=False,
                detect_multi_level_headers=False,
            ),
            skeleton_options=SkeletonExtractionOptions(
                preserve_nearby_non_empty=False,
                preserve_formulas=False,
                preserve_formatted_cells=False,
                min_compression_ratio=0.8,
            ),
        )
    return StrategyPreset(
        k=settings.neighborhood_k,
        anchor_options=AnchorDetectionOptions(),
        skeleton_options=SkeletonExtractionOptions(),
    )


@dataclass(frozen=True)
class WorkbookAnalysis:
    """Anchors and skeletons of one workbook scan."""

    anchors: WorkbookAnchors
    skeleton: SkeletonWorkbook
    warnings: tuple[str, ...] = ()
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "anchors": self.anchors.to_dict(),
            "skeleton": self.skeleton.to_dict(),
            "warnings": list(self.warnings),
            "cancelled": self.cancelled,
        }


@dataclass
class _SheetOutcome:
    anchors: StructuralAnchors
    skeleton: SkeletonSheet


class WorkbookCoordinator:
    """Run anchor detection and skeleton extraction across a workbook.

    Usage:
        coordinator = WorkbookCoordinator()
        analysis = coordinator.analyze(workbook, strategy=CompressionStrategy.BALANCED)
        for sheet in analysis.skeleton.sheets:
            print(sheet.original_name, sheet.stats.compression_ratio)
    """

    def __init__(
        self,
        detector: AnchorDetector | None = None,
        builder: SkeletonBuilder | None = None,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            detector: Anchor detector (a default one is created if None).
            builder: Skeleton builder (a default one is created if None).
            max_workers: Thread pool size for per-sheet tasks. Defaults to
                the configured ``max_workers``.
        """
        self._detector = detector or AnchorDetector()
        self._builder = builder or SkeletonBuilder()
        self._max_workers = max_workers if max_workers is not None else settings.max_workers

    def analyze(
        self,
        workbook: Workbook,
        k: int | None = None,
        anchor_options: AnchorDetectionOptions | None = None,
        skeleton_options: SkeletonExtractionOptions | None = None,
        strategy: CompressionStrategy | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> WorkbookAnalysis:
        """Detect anchors and extract skeletons for every sheet.

        A strategy replaces ``k`` and both option sets with its preset.

        Args:
            workbook: Workbook to analyse.
            k: Neighbourhood radius.
            anchor_options: Anchor detection options.
            skeleton_options: Skeleton extraction options.
            strategy: Optional compression preset.
            cancel_event: Once set, sheets not yet started are skipped.
            timeout: Seconds before unfinished sheets are abandoned. Defaults
                to the configured ``scan_timeout_seconds``.

        Returns:
            The workbook analysis. When cancelled, only finished sheets are
            present.
        """
        if strategy is not None:
            preset = strategy_preset(strategy)
            k = preset.k
            anchor_options = preset.anchor_options
            skeleton_options = preset.skeleton_options
        if timeout is None:
            timeout = settings.scan_timeout_seconds

        anchor_opts = anchor_options or AnchorDetectionOptions()
        skeleton_opts = skeleton_options or SkeletonExtractionOptions()
        identity = strategy is CompressionStrategy.NONE

        tracker = ProgressTracker(logger, "Analyzing sheets", total=len(workbook.sheets))
        tracker_lock = threading.Lock()

        def process(sheet: Grid) -> _SheetOutcome:
            anchors = self._detector.find_anchors(sheet, k, anchor_opts)
            if identity:
                skeleton = self._builder.identity_skeleton(sheet)
            else:
                skeleton = self._builder.extract_skeleton(sheet, anchors, skeleton_opts)
            with tracker_lock:
                tracker.update(details=sheet.name)
            return _SheetOutcome(anchors=anchors, skeleton=skeleton)

        with LogContext(workbook=workbook.source or "<memory>"):
            with timed_operation(logger, "analyze_workbook") as metrics:
                outcome = fan_out(
                    workbook.sheets,
                    process,
                    lambda sheet: sheet.name,
                    max_workers=self._max_workers,
                    cancel_event=cancel_event,
                    timeout=timeout,
                )
                metrics.sheets_processed = len(outcome.results)

            warnings: list[str] = []
            if outcome.cancelled:
                logger.warning(
                    "Workbook analysis cancelled",
                    completed=len(outcome.results),
                    total=len(workbook.sheets),
                )
                warnings.append(
                    f"Analysis cancelled after {len(outcome.results)} of "
                    f"{len(workbook.sheets)} sheets"
                )

            anchors = summarize_workbook(
                {name: r.anchors for name, r in outcome.results.items()},
                len(workbook.sheets),
            )
            skeleton = summarize(
                [r.skeleton for r in outcome.results.values()],
                original_sheet_count=len(workbook.sheets),
                cancelled=outcome.cancelled,
            )
            warnings.extend(self._strategy_warnings(strategy, skeleton))

            tracker.complete()

        skeleton = SkeletonWorkbook(
            sheets=skeleton.sheets,
            global_stats=skeleton.global_stats,
            warnings=tuple(warnings),
            cancelled=outcome.cancelled,
        )
        return WorkbookAnalysis(
            anchors=anchors,
            skeleton=skeleton,
            warnings=tuple(warnings),
            cancelled=outcome.cancelled,
        )

    def compress_workbook(
        self,
        workbook: Workbook,
        k: int | None = None,
        anchor_options: AnchorDetectionOptions | None = None,
        skeleton_options: SkeletonExtractionOptions | None = None,
        strategy: CompressionStrategy | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> SkeletonWorkbook:
        """Skeleton of every sheet; see :meth:`analyze` for the arguments."""
        return self.analyze(
            workbook,
            k=k,
            anchor_options=anchor_options,
            skeleton_options=skeleton_options,
            strategy=strategy,
            cancel_event=cancel_event,
            timeout=timeout,
        ).skeleton

    @staticmethod
    def _strategy_warnings(
        strategy: CompressionStrategy | None, skeleton: SkeletonWorkbook
    ) -> list[str]:
        warnings: list[str] = []
        ratio = skeleton.global_stats.compression_ratio
        if (
            strategy is CompressionStrategy.BALANCED
            and skeleton.sheets
            and ratio < LOW_COMPRESSION_WARNING_THRESHOLD
        ):
            warnings.append(
                f"Low compression ratio achieved: {ratio:.1%}. "
                "Spreadsheet may have a complex structure."
            )
        if strategy is CompressionStrategy.AGGRESSIVE:
            warnings.append(
                "Aggressive compression may lose important structural details."
            )
        for message in warnings:
            logger.warning(message)
        return warnings
