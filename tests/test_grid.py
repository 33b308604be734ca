"""Tests for ingestkit_structure.grid -- openpyxl and DataFrame grid sources."""

from __future__ import annotations

import math
from datetime import datetime

import openpyxl
import pandas as pd
import pytest

from ingestkit_structure.errors import AnalysisError, ErrorCode
from ingestkit_structure.grid import DataFrameGridSource, OpenpyxlGridSource, read_grid
from ingestkit_structure.models import CellValue, SheetBounds
from ingestkit_structure.protocols import GridSource


class TestOpenpyxlGridSource:
    def test_satisfies_protocol(self, people_xlsx):
        source = OpenpyxlGridSource(str(people_xlsx))
        assert isinstance(source, GridSource)
        source.close()

    def test_sheet_names_and_used_range(self, multi_region_xlsx):
        source = OpenpyxlGridSource(str(multi_region_xlsx))
        assert source.sheet_names() == ["Report", "Blank"]
        assert source.used_range("Report") == SheetBounds(
            min_row=1, min_col=1, max_row=8, max_col=6
        )
        assert source.used_range("Blank") is None
        source.close()

    def test_cell_values_and_formats(self, multi_region_xlsx):
        source = OpenpyxlGridSource(str(multi_region_xlsx))
        assert source.cell("Report", 4, 2) == CellValue("Item", "General")
        price = source.cell("Report", 5, 3)
        assert price.value == 2.5
        assert "$" in price.number_format
        assert source.cell("Report", 5, 5).value == "=C5*D5"
        assert isinstance(source.cell("Report", 5, 6).value, datetime)
        assert source.cell("Report", 2, 2) == CellValue(None, "General")
        source.close()

    def test_identity_is_content_hash(self, people_xlsx, tmp_path):
        copy = tmp_path / "copy.xlsx"
        copy.write_bytes(people_xlsx.read_bytes())
        a = OpenpyxlGridSource(str(people_xlsx))
        b = OpenpyxlGridSource(str(copy))
        assert a.identity() == b.identity()
        assert len(a.identity()) == 64

    def test_modified_file_changes_identity(self, tmp_path):
        path = tmp_path / "book.xlsx"
        wb = openpyxl.Workbook()
        wb.active.append(["a", 1])
        wb.save(path)
        before = OpenpyxlGridSource(str(path)).identity()

        wb.active.append(["b", 2])
        wb.save(path)
        assert OpenpyxlGridSource(str(path)).identity() != before

    def test_missing_file(self, tmp_path):
        with pytest.raises(AnalysisError) as excinfo:
            OpenpyxlGridSource(str(tmp_path / "missing.xlsx"))
        assert excinfo.value.code is ErrorCode.E_INGEST_WORKBOOK_UNREADABLE
        assert isinstance(excinfo.value.cause, FileNotFoundError)

    def test_corrupt_file(self, corrupt_xlsx):
        with pytest.raises(AnalysisError) as excinfo:
            OpenpyxlGridSource(str(corrupt_xlsx))
        assert excinfo.value.code is ErrorCode.E_INGEST_WORKBOOK_UNREADABLE


class TestDataFrameGridSource:
    def _source(self) -> DataFrameGridSource:
        df = pd.DataFrame(
            [
                [None, None, None],
                [None, "Name", "Age"],
                [None, "Alice", 30],
                [None, "Bob", math.nan],
            ]
        )
        return DataFrameGridSource({"People": df, "Empty": pd.DataFrame()})

    def test_satisfies_protocol(self):
        assert isinstance(self._source(), GridSource)

    def test_used_range_skips_nan_margin(self):
        source = self._source()
        assert source.used_range("People") == SheetBounds(
            min_row=2, min_col=2, max_row=4, max_col=3
        )
        assert source.used_range("Empty") is None

    def test_cell_converts_to_python(self):
        source = self._source()
        assert source.cell("People", 3, 3) == CellValue(30)
        assert type(source.cell("People", 3, 3).value) is int
        assert source.cell("People", 4, 3).value is None
        assert source.cell("People", 2, 2).value == "Name"

    def test_out_of_frame_cell_is_blank(self):
        assert self._source().cell("People", 99, 99) == CellValue()

    def test_identity(self):
        assert self._source().identity() == self._source().identity()
        other = DataFrameGridSource({"People": pd.DataFrame([["x"]])})
        assert other.identity() != self._source().identity()

    def test_timestamps_become_datetimes(self):
        df = pd.DataFrame([["When"], [pd.Timestamp("2024-01-02")]])
        value = DataFrameGridSource({"S": df}).cell("S", 2, 1).value
        assert isinstance(value, datetime)


class TestReadGrid:
    def test_reads_bounds_row_major(self):
        df = pd.DataFrame([["a", "b"], ["c", "d"]])
        source = DataFrameGridSource({"S": df})
        cells = read_grid(source, "S", SheetBounds(min_row=1, min_col=1, max_row=2, max_col=2))
        assert [[c.value for c in row] for row in cells] == [["a", "b"], ["c", "d"]]
