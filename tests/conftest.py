from __future__ import annotations

import pytest

from spreadsheet_skeleton.grid import Grid
from spreadsheet_skeleton.services.anchor_detector import AnchorDetector
from spreadsheet_skeleton.services.skeleton_builder import SkeletonBuilder
from tests.fixtures import header_table_rows, make_grid


@pytest.fixture
def header_grid() -> Grid:
    """10 rows x 5 columns: one text header row over nine numeric rows."""
    return make_grid("Sales", header_table_rows())


@pytest.fixture
def narrow_grid() -> Grid:
    """10 rows x 3 columns with a text header."""
    return make_grid("Narrow", header_table_rows(columns=3))


@pytest.fixture
def single_cell_grid() -> Grid:
    return make_grid("Single", [["only"]])


@pytest.fixture
def bold_band_grid() -> Grid:
    """20 plain text rows where only rows 9 and 10 are bold."""
    rows = [[f"item {r}", f"note {r}"] for r in range(20)]
    return make_grid("Band", rows, bold_rows=(9, 10))


@pytest.fixture
def empty_grid() -> Grid:
    return Grid.from_cells("Empty", [])


@pytest.fixture
def detector() -> AnchorDetector:
    return AnchorDetector(max_workers=2)


@pytest.fixture
def builder() -> SkeletonBuilder:
    return SkeletonBuilder(max_workers=2)
