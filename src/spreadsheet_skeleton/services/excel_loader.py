"""Load Excel workbooks into grids using openpyxl."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.cell import Cell as ExcelCell
from openpyxl.worksheet.worksheet import Worksheet

from spreadsheet_skeleton.grid import (
    Cell,
    CellKind,
    FormulaResult,
    Grid,
    StyleInfo,
    Workbook,
    cell_address,
    cell_value_from,
)
from spreadsheet_skeleton.utils.exceptions import ErrorCode, LoaderError
from spreadsheet_skeleton.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

GENERAL_NUMBER_FORMAT = "General"


@dataclass
class ExcelLoadOptions:
    """Options controlling how a workbook is turned into grids."""

    sheet_name: str | None = None
    include_formulas: bool = True
    include_styles: bool = True
    max_rows: int | None = None
    max_columns: int | None = None


class ExcelGridLoader:
    """Read ``.xlsx`` workbooks into :class:`Workbook` grids."""

    def load_path(
        self, file_path: Path, options: ExcelLoadOptions | None = None
    ) -> Workbook:
        """Load a workbook from disk.

        Raises:
            LoaderError: If the file or the requested sheet does not exist.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise LoaderError(
                f"Excel file not found: {file_path}", file_path=str(file_path)
            )

        opts = options or ExcelLoadOptions()
        # Load twice: once to capture formulas, once for cached values
        workbook = load_workbook(filename=file_path, data_only=False)
        computed_wb = load_workbook(filename=file_path, data_only=True)

        sheet_names = workbook.sheetnames
        if opts.sheet_name and opts.sheet_name not in sheet_names:
            raise LoaderError(
                f"Sheet '{opts.sheet_name}' not found in workbook",
                error_code=ErrorCode.SHEET_NOT_FOUND,
                file_path=str(file_path),
                details={"available_sheets": sheet_names},
            )

        target_names = [opts.sheet_name] if opts.sheet_name else sheet_names
        with LogContext(workbook=file_path.name):
            grids = [
                self.grid_from_worksheet(
                    workbook[name],
                    computed_wb[name],
                    options=opts,
                    index=sheet_names.index(name),
                )
                for name in target_names
            ]
            logger.info("Loaded workbook", sheets=len(grids))

        return Workbook(sheets=grids, source=str(file_path))

    def get_sheet_names(self, file_path: Path) -> list[str]:
        """List all sheet names in a workbook."""
        file_path = Path(file_path)
        if not file_path.exists():
            raise LoaderError(
                f"Excel file not found: {file_path}", file_path=str(file_path)
            )
        wb = load_workbook(filename=file_path, read_only=True)
        try:
            return list(wb.sheetnames)
        finally:
            wb.close()

    def grid_from_worksheet(
        self,
        sheet: Worksheet,
        computed_sheet: Worksheet | None = None,
        options: ExcelLoadOptions | None = None,
        index: int = 0,
    ) -> Grid:
        """Convert an in-memory worksheet into a grid.

        Args:
            sheet: Worksheet loaded with formulas.
            computed_sheet: Same worksheet loaded with cached values. Without
                it, formula cells carry no cached result.
            options: Load options.
            index: Position of the worksheet in its workbook.

        Returns:
            Grid holding every cell with a value (and, when styles are
            included, every specially formatted empty cell).
        """
        opts = options or ExcelLoadOptions()
        merged_spans, merged_cells = self._merged_layout(sheet)

        row_iter: Iterable[tuple[ExcelCell, ...]] = sheet.iter_rows(
            max_row=opts.max_rows, max_col=opts.max_columns
        )
        computed_rows: dict[int, tuple[Any, ...]] = {}
        if computed_sheet is not None:
            computed_iter = computed_sheet.iter_rows(
                max_row=opts.max_rows, max_col=opts.max_columns, values_only=True
            )
            computed_rows = dict(enumerate(computed_iter, start=1))

        cells: list[Cell] = []
        for row_cells in row_iter:
            for cell in row_cells:
                computed_row = computed_rows.get(cell.row, ())
                computed_value = (
                    computed_row[cell.column - 1]
                    if cell.column - 1 < len(computed_row)
                    else None
                )
                built = self._build_cell(
                    cell,
                    computed_value=computed_value,
                    options=opts,
                    merged_span=merged_spans.get(cell.coordinate),
                    is_merged=cell.coordinate in merged_cells,
                )
                if built is not None:
                    cells.append(built)

        return Grid.from_cells(sheet.title, cells, index=index)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _merged_layout(
        sheet: Worksheet,
    ) -> tuple[dict[str, tuple[int, int]], set[str]]:
        """Spans keyed by each range's top-left cell, plus all merged cells."""
        spans: dict[str, tuple[int, int]] = {}
        members: set[str] = set()
        for rng in sheet.merged_cells.ranges:
            spans[cell_address(rng.min_row - 1, rng.min_col - 1)] = (
                rng.max_row - rng.min_row + 1,
                rng.max_col - rng.min_col + 1,
            )
            members.update(cell_address(r - 1, c - 1) for r, c in rng.cells)
        return spans, members

    def _build_cell(
        self,
        cell: ExcelCell,
        *,
        computed_value: Any,
        options: ExcelLoadOptions,
        merged_span: tuple[int, int] | None,
        is_merged: bool,
    ) -> Cell | None:
        """Create a grid cell, or None when the cell carries nothing."""
        formula = None
        if cell.data_type == "f":
            if options.include_formulas:
                # Array formulas wrap their text in an object.
                formula = str(getattr(cell.value, "text", cell.value))
                value = FormulaResult(computed_value)
            else:
                value = cell_value_from(computed_value)
        else:
            value = cell_value_from(cell.value)

        style = None
        if options.include_styles:
            style = self._build_style(cell, merged_span, is_merged)

        if value.kind is CellKind.EMPTY and formula is None:
            if style is None or not style.is_special:
                return None

        number_format = cell.number_format
        if number_format == GENERAL_NUMBER_FORMAT:
            number_format = None

        return Cell(
            row=cell.row - 1,
            col=cell.column - 1,
            value=value,
            number_format=number_format,
            formula=formula,
            style=style,
        )

    @staticmethod
    def _build_style(
        cell: ExcelCell, merged_span: tuple[int, int] | None, is_merged: bool
    ) -> StyleInfo:
        """Map openpyxl font, fill and border settings to StyleInfo."""
        bold = bool(cell.font is not None and cell.font.bold)

        background = None
        fill = cell.fill
        if fill is not None and fill.fill_type == "solid":
            rgb = fill.fgColor.rgb if fill.fgColor is not None else None
            # Theme and indexed colours carry no literal RGB value.
            if isinstance(rgb, str):
                background = rgb

        border = cell.border
        has_borders = border is not None and any(
            side is not None and side.style is not None
            for side in (border.left, border.right, border.top, border.bottom)
        )

        return StyleInfo(
            bold=bold,
            merged=is_merged,
            merged_span=merged_span,
            background_color=background,
            has_borders=has_borders,
        )
