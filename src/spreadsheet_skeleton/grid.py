"""Dataclasses representing a parsed worksheet grid.

A loader hands the engine one :class:`Grid` per worksheet. Rows and columns
are zero-based; addresses use A1 notation (``row=0, col=0`` is ``"A1"``).
Cell values are a closed sum type: every variant carries its own ``kind`` so
the data type of a cell can never disagree with its payload.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar

from openpyxl.utils.cell import coordinate_to_tuple, get_column_letter

from spreadsheet_skeleton.utils.exceptions import ErrorCode, GridValidationError

EXCEL_ERROR_CODES = frozenset(
    {
        "#NULL!",
        "#DIV/0!",
        "#VALUE!",
        "#REF!",
        "#NAME?",
        "#NUM!",
        "#N/A",
        "#GETTING_DATA",
        "#SPILL!",
        "#CALC!",
    }
)


def cell_address(row: int, col: int) -> str:
    """Build an A1 address from zero-based indices."""
    return f"{get_column_letter(col + 1)}{row + 1}"


def parse_address(address: str) -> tuple[int, int]:
    """Split an A1 address into zero-based ``(row, col)``."""
    row, col = coordinate_to_tuple(address)
    return row - 1, col - 1


class CellKind(str, Enum):
    """Data type of a cell value."""

    EMPTY = "empty"
    TEXT = "text"
    NUMBER = "number"
    DATE_TIME = "date_time"
    BOOLEAN = "boolean"
    ERROR = "error"
    FORMULA_RESULT = "formula_result"


@dataclass(frozen=True)
class Empty:
    """A cell with no content."""

    kind: ClassVar[CellKind] = CellKind.EMPTY

    @property
    def raw(self) -> None:
        return None

    def display(self) -> str:
        return ""


@dataclass(frozen=True)
class Text:
    """A string value."""

    text: str
    kind: ClassVar[CellKind] = CellKind.TEXT

    @property
    def raw(self) -> str:
        return self.text

    def display(self) -> str:
        return self.text


@dataclass(frozen=True)
class Number:
    """A numeric value."""

    number: float
    kind: ClassVar[CellKind] = CellKind.NUMBER

    @property
    def raw(self) -> float:
        return self.number

    def display(self) -> str:
        if float(self.number).is_integer():
            return str(int(self.number))
        return str(self.number)


@dataclass(frozen=True)
class DateTimeValue:
    """A date or timestamp value."""

    moment: datetime | date
    kind: ClassVar[CellKind] = CellKind.DATE_TIME

    @property
    def raw(self) -> datetime | date:
        return self.moment

    def display(self) -> str:
        return self.moment.isoformat()


@dataclass(frozen=True)
class BooleanValue:
    """A TRUE/FALSE value."""

    flag: bool
    kind: ClassVar[CellKind] = CellKind.BOOLEAN

    @property
    def raw(self) -> bool:
        return self.flag

    def display(self) -> str:
        return "TRUE" if self.flag else "FALSE"


@dataclass(frozen=True)
class ErrorValue:
    """A spreadsheet error such as ``#DIV/0!``."""

    code: str
    kind: ClassVar[CellKind] = CellKind.ERROR

    @property
    def raw(self) -> str:
        return self.code

    def display(self) -> str:
        return self.code


@dataclass(frozen=True)
class FormulaResult:
    """The cached result of a formula cell (None when never calculated)."""

    result: Any = None
    kind: ClassVar[CellKind] = CellKind.FORMULA_RESULT

    @property
    def raw(self) -> Any:
        return self.result

    def display(self) -> str:
        return "" if self.result is None else str(self.result)


CellValue = (
    Empty | Text | Number | DateTimeValue | BooleanValue | ErrorValue | FormulaResult
)

EMPTY = Empty()


def cell_value_from(raw: Any) -> CellValue:
    """Wrap a plain Python value in the matching :data:`CellValue` variant.

    Args:
        raw: Value as produced by a spreadsheet reader.

    Returns:
        The cell value variant for ``raw``.
    """
    if raw is None or raw == "":
        return EMPTY
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, (int, float)):
        return Number(raw)
    if isinstance(raw, (datetime, date)):
        return DateTimeValue(raw)
    if isinstance(raw, str) and raw in EXCEL_ERROR_CODES:
        return ErrorValue(raw)
    return Text(str(raw))


@dataclass(frozen=True)
class StyleInfo:
    """Cell style information relevant for structural analysis."""

    bold: bool = False
    merged: bool = False
    merged_span: tuple[int, int] | None = None
    background_color: str | None = None
    has_borders: bool = False

    @property
    def is_special(self) -> bool:
        """Whether the style sets the cell apart from plain data."""
        return (
            self.bold or self.merged or bool(self.background_color) or self.has_borders
        )


@dataclass(frozen=True)
class Cell:
    """A single non-empty (or explicitly stored) worksheet cell.

    ``address`` and ``formatted_text`` are derived from the coordinates and
    the value when not supplied.
    """

    row: int
    col: int
    value: CellValue = EMPTY
    formatted_text: str | None = None
    number_format: str | None = None
    formula: str | None = None
    style: StyleInfo | None = None
    address: str = ""

    def __post_init__(self) -> None:
        if not self.address:
            object.__setattr__(self, "address", cell_address(self.row, self.col))
        if self.formatted_text is None:
            object.__setattr__(self, "formatted_text", self.value.display())

    @property
    def kind(self) -> CellKind:
        return self.value.kind

    @property
    def is_empty(self) -> bool:
        return self.value.kind is CellKind.EMPTY

    @property
    def has_formula(self) -> bool:
        return self.formula is not None or self.value.kind is CellKind.FORMULA_RESULT

    @property
    def is_bold(self) -> bool:
        return self.style is not None and self.style.bold

    @property
    def background_color(self) -> str | None:
        return self.style.background_color if self.style is not None else None

    @property
    def is_specially_formatted(self) -> bool:
        return self.style is not None and self.style.is_special

    def moved_to(self, row: int, col: int) -> Cell:
        """Copy of this cell at new coordinates, all other fields unchanged."""
        return Cell(
            row=row,
            col=col,
            value=self.value,
            formatted_text=self.formatted_text,
            number_format=self.number_format,
            formula=self.formula,
            style=self.style,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        raw = self.value.raw
        if isinstance(raw, (datetime, date)):
            raw = raw.isoformat()
        return {
            "address": self.address,
            "row": self.row,
            "col": self.col,
            "kind": self.kind.value,
            "value": raw,
            "formatted_text": self.formatted_text,
            "number_format": self.number_format,
            "formula": self.formula,
            "style": None
            if self.style is None
            else {
                "bold": self.style.bold,
                "merged": self.style.merged,
                "merged_span": self.style.merged_span,
                "background_color": self.style.background_color,
                "has_borders": self.style.has_borders,
            },
        }


@dataclass(frozen=True)
class Grid:
    """One worksheet: its cells keyed by address plus dimensions."""

    name: str
    cells: Mapping[str, Cell]
    first_row: int = 0
    last_row: int = 0
    first_col: int = 0
    last_col: int = 0
    index: int = 0
    total_cells: int = 0
    non_empty_cells: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", dict(self.cells))
        self._validate()

    def _validate(self) -> None:
        if (
            min(self.first_row, self.first_col) < 0
            or self.first_row > self.last_row
            or self.first_col > self.last_col
        ):
            raise GridValidationError(
                f"Invalid bounds rows {self.first_row}..{self.last_row}, "
                f"columns {self.first_col}..{self.last_col}",
                error_code=ErrorCode.INVALID_BOUNDS,
                sheet_name=self.name,
            )
        for address, cell in self.cells.items():
            if address != cell.address:
                raise GridValidationError(
                    f"Cell stored under {address} reports address {cell.address}",
                    error_code=ErrorCode.ADDRESS_MISMATCH,
                    sheet_name=self.name,
                    address=address,
                )
            if not (
                self.first_row <= cell.row <= self.last_row
                and self.first_col <= cell.col <= self.last_col
            ):
                raise GridValidationError(
                    f"Cell {address} lies outside the sheet bounds",
                    error_code=ErrorCode.CELL_OUT_OF_BOUNDS,
                    sheet_name=self.name,
                    address=address,
                )

    @classmethod
    def from_cells(
        cls,
        name: str,
        cells: Iterable[Cell],
        index: int = 0,
    ) -> Grid:
        """Build a grid whose bounds and counts are derived from ``cells``.

        Args:
            name: Worksheet name.
            cells: Cells of the worksheet, in reading order.
            index: Position of the worksheet in its workbook.

        Returns:
            The grid. An empty ``cells`` yields zero bounds and counts.
        """
        by_address = {cell.address: cell for cell in cells}
        if not by_address:
            return cls(name=name, cells={}, index=index)
        rows = [cell.row for cell in by_address.values()]
        cols = [cell.col for cell in by_address.values()]
        return cls(
            name=name,
            cells=by_address,
            first_row=min(rows),
            last_row=max(rows),
            first_col=min(cols),
            last_col=max(cols),
            index=index,
            total_cells=len(by_address),
            non_empty_cells=sum(1 for c in by_address.values() if not c.is_empty),
        )

    @property
    def is_empty(self) -> bool:
        return not self.cells

    @property
    def row_count(self) -> int:
        return 0 if self.is_empty else self.last_row - self.first_row + 1

    @property
    def column_count(self) -> int:
        return 0 if self.is_empty else self.last_col - self.first_col + 1

    def group_by_row(self) -> dict[int, list[Cell]]:
        """Cells grouped by row index, rows ascending, cells left to right."""
        return _group(self.cells.values(), lambda c: c.row, lambda c: c.col)

    def group_by_column(self) -> dict[int, list[Cell]]:
        """Cells grouped by column index, columns ascending, cells top down."""
        return _group(self.cells.values(), lambda c: c.col, lambda c: c.row)


def _group(cells: Iterable[Cell], key: Any, order: Any) -> dict[int, list[Cell]]:
    groups: dict[int, list[Cell]] = {}
    for cell in cells:
        groups.setdefault(key(cell), []).append(cell)
    return {k: sorted(groups[k], key=order) for k in sorted(groups)}


@dataclass
class Workbook:
    """An ordered collection of worksheet grids."""

    sheets: list[Grid] = field(default_factory=list)
    source: str | None = None

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for sheet in self.sheets:
            if sheet.name in seen:
                raise GridValidationError(
                    f"Duplicate sheet name: {sheet.name}",
                    error_code=ErrorCode.DUPLICATE_SHEET_NAME,
                    sheet_name=sheet.name,
                )
            seen.add(sheet.name)

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    def get(self, name: str) -> Grid | None:
        """Look up a sheet by name."""
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        return None
