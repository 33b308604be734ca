"""Shared test fixtures for ingestkit-structure tests.

Provides an in-memory grid source that counts and can fail or slow down
reads, cache stores that misbehave on purpose, a ``test_config`` fixture,
and session-scoped .xlsx file generators.
"""

from __future__ import annotations

import hashlib
import pathlib
import tempfile
import threading
import time
from datetime import datetime
from typing import Any

import openpyxl
import pytest

from ingestkit_structure.config import StructureAnalysisConfig
from ingestkit_structure.models import Analysis, CellValue, SheetBounds


# ---------------------------------------------------------------------------
# Mock Grid Source
# ---------------------------------------------------------------------------


class StubGridSource:
    """In-memory grid source satisfying the ``GridSource`` protocol.

    Each sheet is a list of rows; an entry may be a raw value or a
    :class:`CellValue` carrying a display format.  Row 1 / column A is the
    first entry.  ``used_range_calls`` counts reads so tests can tell cached
    results from recomputed ones.
    """

    def __init__(
        self,
        sheets: dict[str, list[list[Any]]],
        fail_sheets: set[str] | None = None,
        delay: float = 0.0,
        on_read: Any = None,
    ) -> None:
        self.sheets = sheets
        self.fail_sheets = fail_sheets or set()
        self.delay = delay
        self.on_read = on_read
        self.used_range_calls = 0
        self._lock = threading.Lock()

    def identity(self) -> str:
        return hashlib.sha256(repr(sorted(self.sheets.items())).encode()).hexdigest()

    def sheet_names(self) -> list[str]:
        return list(self.sheets)

    def used_range(self, sheet: str) -> SheetBounds | None:
        with self._lock:
            self.used_range_calls += 1
        if self.on_read is not None:
            self.on_read(sheet)
        if self.delay:
            time.sleep(self.delay)
        if sheet in self.fail_sheets:
            raise OSError(f"sheet {sheet} is corrupt")
        rows = self.sheets[sheet]
        occupied = [
            (r, c)
            for r, row in enumerate(rows, start=1)
            for c, value in enumerate(row, start=1)
            if value is not None
        ]
        if not occupied:
            return None
        return SheetBounds(
            min_row=min(r for r, _ in occupied),
            min_col=min(c for _, c in occupied),
            max_row=max(r for r, _ in occupied),
            max_col=max(c for _, c in occupied),
        )

    def cell(self, sheet: str, row: int, col: int) -> CellValue:
        rows = self.sheets[sheet]
        if row > len(rows) or col > len(rows[row - 1]):
            return CellValue()
        value = rows[row - 1][col - 1]
        if isinstance(value, CellValue):
            return value
        return CellValue(value)


# ---------------------------------------------------------------------------
# Mock Cache Stores
# ---------------------------------------------------------------------------


class FailingCacheStore:
    """Cache store whose every operation raises."""

    def __init__(self) -> None:
        self.get_calls = 0
        self.put_calls = 0

    def get(self, fingerprint: str) -> Analysis | None:
        self.get_calls += 1
        raise ConnectionError("cache unavailable")

    def put(self, fingerprint: str, analysis: Analysis) -> None:
        self.put_calls += 1
        raise ConnectionError("cache unavailable")


class RecordingCacheStore:
    """Dict-backed cache store that records every call."""

    def __init__(self) -> None:
        self.entries: dict[str, Analysis] = {}
        self.get_calls = 0
        self.put_calls = 0

    def get(self, fingerprint: str) -> Analysis | None:
        self.get_calls += 1
        return self.entries.get(fingerprint)

    def put(self, fingerprint: str, analysis: Analysis) -> None:
        self.put_calls += 1
        self.entries[fingerprint] = analysis


# ---------------------------------------------------------------------------
# Sample sheets
# ---------------------------------------------------------------------------


PEOPLE_ROWS: list[list[Any]] = [
    ["Name", "Age"],
    ["Alice", 30],
    ["Bob", 25],
    ["Cara", 41],
]

CUSTOMER_ROWS: list[list[Any]] = [
    ["ID", "Name"],
    [1, "Alice"],
    [2, "Bob"],
    [3, "Cara"],
]

ORDER_ROWS: list[list[Any]] = [
    ["OrderID", "CustomerID", "Amount"],
    [100, 1, 9.5],
    [101, 1, 3.25],
    [102, 2, 4.75],
    [103, 3, 12.5],
]


@pytest.fixture()
def people_source() -> StubGridSource:
    return StubGridSource({"People": [list(r) for r in PEOPLE_ROWS]})


@pytest.fixture()
def customers_orders_source() -> StubGridSource:
    return StubGridSource(
        {
            "Customers": [list(r) for r in CUSTOMER_ROWS],
            "Orders": [list(r) for r in ORDER_ROWS],
        }
    )


@pytest.fixture()
def test_config() -> StructureAnalysisConfig:
    """Config with defaults suitable for unit tests."""
    return StructureAnalysisConfig(concurrency_limit=2)


# ---------------------------------------------------------------------------
# Programmatic .xlsx fixture generators
# ---------------------------------------------------------------------------

_XLSX_TMP_DIR: tempfile.TemporaryDirectory | None = None


def _xlsx_dir() -> pathlib.Path:
    """Return a session-scoped temp directory for generated .xlsx files."""
    global _XLSX_TMP_DIR
    if _XLSX_TMP_DIR is None:
        _XLSX_TMP_DIR = tempfile.TemporaryDirectory(prefix="ingestkit_structure_xlsx_")
    return pathlib.Path(_XLSX_TMP_DIR.name)


@pytest.fixture(scope="session")
def people_xlsx() -> pathlib.Path:
    """Single sheet: Name/Age header plus three data rows."""
    path = _xlsx_dir() / "people.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "People"
    for row in PEOPLE_ROWS:
        ws.append(row)
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def multi_region_xlsx() -> pathlib.Path:
    """Report sheet with a labeled value, a priced table and an empty sheet.

    - ``A1``: "Report Date" label (isolated single cell)
    - ``B4:E8``: Item / Price / Qty / Total / Ordered table with a currency
      format on Price and a formula in Total
    - ``Blank``: a sheet with no cells
    """
    path = _xlsx_dir() / "multi_region.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Report"
    ws["A1"] = "Report Date"

    ws["B4"] = "Item"
    ws["C4"] = "Price"
    ws["D4"] = "Qty"
    ws["E4"] = "Total"
    ws["F4"] = "Ordered"
    items = [("Widget", 2.5, 4), ("Gadget", 10.0, 1), ("Doohickey", 7.25, 3), ("Gizmo", 1.0, 12)]
    for offset, (item, price, qty) in enumerate(items):
        row = 5 + offset
        ws.cell(row=row, column=2, value=item)
        price_cell = ws.cell(row=row, column=3, value=price)
        price_cell.number_format = '"$"#,##0.00'
        ws.cell(row=row, column=4, value=qty)
        ws.cell(row=row, column=5, value=f"=C{row}*D{row}")
        ws.cell(row=row, column=6, value=datetime(2024, 1, 1 + offset))

    wb.create_sheet("Blank")
    wb.save(path)
    return path


@pytest.fixture(scope="session")
def corrupt_xlsx() -> pathlib.Path:
    """A file with an .xlsx extension that is not a workbook."""
    path = _xlsx_dir() / "corrupt.xlsx"
    path.write_bytes(b"this is not a zip archive")
    return path
