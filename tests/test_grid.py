"""Tests for grid, cell and workbook dataclasses."""

from datetime import date, datetime

import pytest

from spreadsheet_skeleton.grid import (
    EMPTY,
    BooleanValue,
    Cell,
    CellKind,
    DateTimeValue,
    ErrorValue,
    FormulaResult,
    Grid,
    Number,
    StyleInfo,
    Text,
    Workbook,
    cell_address,
    cell_value_from,
    parse_address,
)
from spreadsheet_skeleton.utils.exceptions import ErrorCode, GridValidationError
from tests.fixtures import make_cell, make_grid


class TestAddresses:
    """Tests for A1 address helpers."""

    @pytest.mark.parametrize(
        ("row", "col", "address"),
        [(0, 0, "A1"), (9, 2, "C10"), (0, 25, "Z1"), (4, 26, "AA5")],
    )
    def test_cell_address(self, row: int, col: int, address: str) -> None:
        assert cell_address(row, col) == address
        assert parse_address(address) == (row, col)


class TestCellValues:
    """Tests for the cell value variants."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, EMPTY),
            ("", EMPTY),
            ("text", Text("text")),
            (3, Number(3)),
            (2.5, Number(2.5)),
            (True, BooleanValue(True)),
            (datetime(2024, 1, 2, 3, 4), DateTimeValue(datetime(2024, 1, 2, 3, 4))),
            (date(2024, 1, 2), DateTimeValue(date(2024, 1, 2))),
            ("#N/A", ErrorValue("#N/A")),
        ],
    )
    def test_cell_value_from(self, raw, expected) -> None:
        assert cell_value_from(raw) == expected

    def test_every_variant_reports_its_kind(self) -> None:
        assert EMPTY.kind is CellKind.EMPTY
        assert Text("a").kind is CellKind.TEXT
        assert Number(1).kind is CellKind.NUMBER
        assert BooleanValue(False).kind is CellKind.BOOLEAN
        assert ErrorValue("#REF!").kind is CellKind.ERROR
        assert FormulaResult(4).kind is CellKind.FORMULA_RESULT

    def test_display(self) -> None:
        assert Number(3.0).display() == "3"
        assert Number(2.5).display() == "2.5"
        assert BooleanValue(True).display() == "TRUE"
        assert FormulaResult(None).display() == ""
        assert DateTimeValue(date(2024, 5, 1)).display() == "2024-05-01"


class TestCell:
    """Tests for the Cell dataclass."""

    def test_derived_fields(self) -> None:
        cell = Cell(row=1, col=2, value=Number(7))

        assert cell.address == "C2"
        assert cell.formatted_text == "7"
        assert cell.kind is CellKind.NUMBER
        assert not cell.is_empty

    def test_formula_detection(self) -> None:
        assert Cell(row=0, col=0, value=FormulaResult(1)).has_formula
        assert Cell(row=0, col=0, value=Number(1), formula="=1").has_formula
        assert not Cell(row=0, col=0, value=Number(1)).has_formula

    def test_special_formatting(self) -> None:
        assert make_cell(0, 0, "a", bold=True).is_specially_formatted
        assert make_cell(0, 0, "a", background="FF0000").is_specially_formatted
        assert make_cell(0, 0, "a", borders=True).is_specially_formatted
        assert make_cell(0, 0, "a", merged=True).is_specially_formatted
        assert not make_cell(0, 0, "a").is_specially_formatted
        assert not Cell(row=0, col=0, style=StyleInfo()).is_specially_formatted

    def test_moved_to_keeps_content(self) -> None:
        cell = make_cell(5, 3, 12.5, bold=True, number_format="0.0")
        moved = cell.moved_to(1, 0)

        assert moved.address == "A2"
        assert moved.value == cell.value
        assert moved.formatted_text == cell.formatted_text
        assert moved.number_format == "0.0"
        assert moved.style == cell.style

    def test_to_dict(self) -> None:
        result = make_cell(0, 0, datetime(2024, 1, 1), bold=True).to_dict()

        assert result["address"] == "A1"
        assert result["kind"] == "date_time"
        assert result["value"] == "2024-01-01T00:00:00"
        assert result["style"]["bold"] is True


class TestGrid:
    """Tests for Grid construction and validation."""

    def test_from_cells_derives_bounds(self) -> None:
        grid = Grid.from_cells(
            "Data", [make_cell(2, 1, "a"), make_cell(4, 3, 1), make_cell(3, 2, None)]
        )

        assert (grid.first_row, grid.last_row) == (2, 4)
        assert (grid.first_col, grid.last_col) == (1, 3)
        assert grid.total_cells == 3
        assert grid.non_empty_cells == 2
        assert grid.row_count == 3
        assert grid.column_count == 3

    def test_empty_grid(self) -> None:
        grid = Grid.from_cells("Empty", [])

        assert grid.is_empty
        assert grid.row_count == 0
        assert grid.group_by_row() == {}

    def test_grouping_is_sorted(self) -> None:
        grid = make_grid("Data", [["a", "b"], [1, 2]])

        rows = grid.group_by_row()
        assert list(rows) == [0, 1]
        assert [c.address for c in rows[0]] == ["A1", "B1"]

        cols = grid.group_by_column()
        assert [c.address for c in cols[1]] == ["B1", "B2"]

    def test_address_mismatch_rejected(self) -> None:
        with pytest.raises(GridValidationError) as exc_info:
            Grid(name="Bad", cells={"B2": make_cell(0, 0, "a")})
        assert exc_info.value.error_code == ErrorCode.ADDRESS_MISMATCH

    def test_cell_outside_bounds_rejected(self) -> None:
        with pytest.raises(GridValidationError) as exc_info:
            Grid(name="Bad", cells={"C3": make_cell(2, 2, "a")}, last_row=1, last_col=1)
        assert exc_info.value.error_code == ErrorCode.CELL_OUT_OF_BOUNDS

    def test_inverted_bounds_rejected(self) -> None:
        with pytest.raises(GridValidationError) as exc_info:
            Grid(name="Bad", cells={}, first_row=3, last_row=1)
        assert exc_info.value.error_code == ErrorCode.INVALID_BOUNDS


class TestWorkbook:
    """Tests for the Workbook container."""

    def test_lookup_by_name(self) -> None:
        workbook = Workbook(sheets=[make_grid("A", [["x"]]), make_grid("B", [["y"]])])

        assert workbook.sheet_names == ["A", "B"]
        assert workbook.get("B").name == "B"
        assert workbook.get("C") is None

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(GridValidationError) as exc_info:
            Workbook(sheets=[make_grid("A", [["x"]]), make_grid("A", [["y"]])])
        assert exc_info.value.error_code == ErrorCode.DUPLICATE_SHEET_NAME
