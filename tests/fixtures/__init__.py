"""Grid builders shared by the test suite.

Example usage:
    from tests.fixtures import make_grid

    grid = make_grid("Sales", [["Region", "Total"], ["North", 120]])
"""

from collections.abc import Iterable, Sequence
from typing import Any

from spreadsheet_skeleton.grid import Cell, Grid, StyleInfo, Workbook, cell_value_from


def make_cell(
    row: int,
    col: int,
    raw: Any = None,
    *,
    bold: bool = False,
    number_format: str | None = None,
    formula: str | None = None,
    background: str | None = None,
    merged: bool = False,
    borders: bool = False,
) -> Cell:
    """Build a cell from a plain Python value and optional styling."""
    style = None
    if bold or background or merged or borders:
        style = StyleInfo(
            bold=bold,
            merged=merged,
            background_color=background,
            has_borders=borders,
        )
    return Cell(
        row=row,
        col=col,
        value=cell_value_from(raw),
        number_format=number_format,
        formula=formula,
        style=style,
    )


def make_grid(
    name: str,
    rows: Sequence[Sequence[Any]],
    *,
    bold_rows: Iterable[int] = (),
    extra_cells: Iterable[Cell] = (),
    index: int = 0,
) -> Grid:
    """Build a grid from row-major values; ``None`` entries are left out.

    Args:
        name: Sheet name.
        rows: Values per row, starting at row 0 and column 0.
        bold_rows: Row indices whose cells are bold.
        extra_cells: Cells added (or replacing) after the plain values.
        index: Sheet position in its workbook.
    """
    bold = set(bold_rows)
    cells = {
        (r, c): make_cell(r, c, value, bold=r in bold)
        for r, values in enumerate(rows)
        for c, value in enumerate(values)
        if value is not None
    }
    for cell in extra_cells:
        cells[(cell.row, cell.col)] = cell
    return Grid.from_cells(name, cells.values(), index=index)


def header_table_rows(data_rows: int = 9, columns: int = 5) -> list[list[Any]]:
    """A text header row followed by purely numeric rows."""
    header = [f"Column {c}" for c in range(columns)]
    return [header] + [
        [r * 10 + c for c in range(columns)] for r in range(1, data_rows + 1)
    ]


def make_workbook(*grids: Grid) -> Workbook:
    """Workbook holding ``grids`` in the given order."""
    return Workbook(sheets=list(grids))
