"""Tests for the openpyxl workbook loader."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side

from spreadsheet_skeleton.grid import CellKind, ErrorValue, FormulaResult
from spreadsheet_skeleton.services.excel_loader import (
    ExcelGridLoader,
    ExcelLoadOptions,
)
from spreadsheet_skeleton.services.workbook_coordinator import WorkbookCoordinator
from spreadsheet_skeleton.utils.exceptions import ErrorCode, LoaderError


def _make_workbook(tmp_path: Path) -> Path:
    wb = Workbook()
    ws1 = wb.active
    ws1.title = "Sales"
    ws1["A1"] = "Name"
    ws1["B1"] = "Amount"
    ws1["C1"] = "Paid"
    ws1["D1"] = "Due"
    ws1["E1"] = "Total"
    ws1["A1"].font = Font(bold=True)
    ws1["A2"] = "Alice"
    ws1["B2"] = 123.45
    ws1["B2"].number_format = "0.00"
    ws1["C2"] = True
    ws1["D2"] = datetime(2024, 1, 15)
    ws1["E2"] = "=SUM(B2:B3)"
    ws1["A3"] = "Bob"
    ws1["B3"] = 10
    ws1["C3"] = "#DIV/0!"
    ws1["D3"].fill = PatternFill(fill_type="solid", fgColor="FFFF00")
    ws1["E3"].border = Border(left=Side(style="thin"))
    ws1.merge_cells("A4:C4")
    ws1["A4"] = "Merged"

    ws2 = wb.create_sheet("Notes")
    ws2["A1"] = "Secondary"

    path = tmp_path / "sales.xlsx"
    wb.save(path)
    return path


def test_load_maps_values_to_cell_kinds(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    workbook = loader.load_path(_make_workbook(tmp_path))
    grid = workbook.get("Sales")

    assert workbook.sheet_names == ["Sales", "Notes"]
    assert grid.cells["A2"].kind is CellKind.TEXT
    assert grid.cells["B2"].kind is CellKind.NUMBER
    assert grid.cells["C2"].kind is CellKind.BOOLEAN
    assert grid.cells["D2"].kind is CellKind.DATE_TIME
    assert grid.cells["C3"].value == ErrorValue("#DIV/0!")


def test_formula_cells_keep_formula_text(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    grid = loader.load_path(_make_workbook(tmp_path)).get("Sales")
    cell = grid.cells["E2"]

    assert cell.formula == "=SUM(B2:B3)"
    # openpyxl never calculates, so the cached result is missing.
    assert cell.value == FormulaResult(None)
    assert cell.has_formula


def test_formulas_can_be_excluded(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    grid = loader.load_path(
        _make_workbook(tmp_path), ExcelLoadOptions(include_formulas=False)
    ).get("Sales")

    assert "E2" not in grid.cells


def test_number_formats_and_styles(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    grid = loader.load_path(_make_workbook(tmp_path)).get("Sales")

    assert grid.cells["B2"].number_format == "0.00"
    assert grid.cells["A2"].number_format is None
    assert grid.cells["A1"].is_bold
    assert not grid.cells["B1"].is_bold
    # Styled but empty cells are kept as empty cells.
    assert grid.cells["D3"].is_empty
    assert grid.cells["D3"].background_color.endswith("FFFF00")
    assert grid.cells["E3"].style.has_borders


def test_merged_ranges(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    grid = loader.load_path(_make_workbook(tmp_path)).get("Sales")

    assert grid.cells["A4"].style.merged is True
    assert grid.cells["A4"].style.merged_span == (1, 3)
    assert grid.cells["B4"].style.merged is True
    assert grid.cells["B4"].style.merged_span is None


def test_styles_can_be_excluded(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    grid = loader.load_path(
        _make_workbook(tmp_path), ExcelLoadOptions(include_styles=False)
    ).get("Sales")

    assert grid.cells["A1"].style is None
    assert "D3" not in grid.cells


def test_sheet_selection(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    workbook = loader.load_path(
        _make_workbook(tmp_path), ExcelLoadOptions(sheet_name="Notes")
    )

    assert workbook.sheet_names == ["Notes"]
    assert workbook.sheets[0].index == 1
    assert workbook.sheets[0].cells["A1"].formatted_text == "Secondary"


def test_row_and_column_limits(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    grid = loader.load_path(
        _make_workbook(tmp_path), ExcelLoadOptions(max_rows=2, max_columns=2)
    ).get("Sales")

    assert set(grid.cells) == {"A1", "B1", "A2", "B2"}
    assert (grid.last_row, grid.last_col) == (1, 1)


def test_get_sheet_names(tmp_path: Path) -> None:
    loader = ExcelGridLoader()
    assert loader.get_sheet_names(_make_workbook(tmp_path)) == ["Sales", "Notes"]


def test_missing_file_raises(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    with pytest.raises(LoaderError) as exc_info:
        loader.load_path(tmp_path / "missing.xlsx")
    assert exc_info.value.error_code == ErrorCode.WORKBOOK_NOT_FOUND

    with pytest.raises(LoaderError):
        loader.get_sheet_names(tmp_path / "missing.xlsx")


def test_missing_sheet_raises(tmp_path: Path) -> None:
    loader = ExcelGridLoader()

    with pytest.raises(LoaderError) as exc_info:
        loader.load_path(_make_workbook(tmp_path), ExcelLoadOptions(sheet_name="Nope"))
    assert exc_info.value.error_code == ErrorCode.SHEET_NOT_FOUND


def test_loaded_workbook_can_be_compressed(tmp_path: Path) -> None:
    workbook = ExcelGridLoader().load_path(_make_workbook(tmp_path))

    analysis = WorkbookCoordinator(max_workers=1).analyze(workbook, k=0)

    assert [s.original_name for s in analysis.skeleton.sheets] == ["Sales", "Notes"]
    sales = analysis.skeleton.get("Sales")
    # Formula and bold cells always survive.
    assert sales.mapping.to_skeleton("E2") is not None
    assert sales.mapping.to_skeleton("A1") is not None
