"""Grid sources: uniform cell accessors over workbooks and DataFrames.

Two implementations of :class:`~ingestkit_structure.protocols.GridSource`:

1. :class:`OpenpyxlGridSource` -- a ``.xlsx`` file loaded once with openpyxl
   (formulas kept as ``=...`` strings, number formats preserved).
2. :class:`DataFrameGridSource` -- headerless pandas DataFrames, one per sheet.

Both are fully materialized in memory before analysis starts, so worker
threads reading different sheets never share mutable parser state.
"""

from __future__ import annotations

import hashlib
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any

import openpyxl
import pandas as pd
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from ingestkit_structure.errors import AnalysisError, ErrorCode
from ingestkit_structure.models import DEFAULT_NUMBER_FORMAT, CellValue, SheetBounds
from ingestkit_structure.protocols import GridSource

logger = logging.getLogger("ingestkit_structure")


class OpenpyxlGridSource:
    """Grid source backed by an ``.xlsx`` workbook.

    Parameters
    ----------
    file_path:
        Filesystem path to the workbook.

    Raises
    ------
    AnalysisError
        With ``E_INGEST_WORKBOOK_UNREADABLE`` if the file is missing or
        openpyxl cannot open it.
    """

    def __init__(self, file_path: str) -> None:
        self._file_path = file_path
        path = Path(file_path)
        try:
            self._content_hash = hashlib.sha256(path.read_bytes()).hexdigest()
            self._wb = openpyxl.load_workbook(file_path)
        except Exception as exc:
            raise AnalysisError(
                ErrorCode.E_INGEST_WORKBOOK_UNREADABLE,
                f"Could not open workbook {path.name}: {exc}",
                cause=exc,
            ) from exc

        # Chart sheets carry no cells.
        self._sheets: dict[str, Worksheet] = {
            ws.title: ws for ws in self._wb.worksheets if isinstance(ws, Worksheet)
        }

    @property
    def file_path(self) -> str:
        return self._file_path

    def identity(self) -> str:
        return self._content_hash

    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def used_range(self, sheet: str) -> SheetBounds | None:
        ws = self._sheets[sheet]
        bounds = SheetBounds(
            min_row=ws.min_row,
            min_col=ws.min_column,
            max_row=ws.max_row,
            max_col=ws.max_column,
        )
        if bounds.n_rows == 1 and bounds.n_cols == 1:
            only = self.cell(sheet, bounds.min_row, bounds.min_col)
            if only.value is None and only.number_format == DEFAULT_NUMBER_FORMAT:
                return None
        return bounds

    def cell(self, sheet: str, row: int, col: int) -> CellValue:
        c = self._sheets[sheet].cell(row=row, column=col)
        value = c.value
        if isinstance(value, ArrayFormula):
            value = value.text
        return CellValue(value, c.number_format or DEFAULT_NUMBER_FORMAT)

    def close(self) -> None:
        self._wb.close()


class DataFrameGridSource:
    """Grid source over headerless pandas DataFrames.

    Row 1 of a sheet is the DataFrame's first row and column A its first
    column; NaN/NaT read as blank cells.  No display formats are available,
    so every cell reports ``General``.
    """

    def __init__(self, frames: dict[str, pd.DataFrame]) -> None:
        self._frames = dict(frames)

    def identity(self) -> str:
        digest = hashlib.sha256()
        for name, df in self._frames.items():
            digest.update(name.encode())
            digest.update(str(df.shape).encode())
            if not df.empty:
                hashed = pd.util.hash_pandas_object(
                    df.astype(str), index=False
                )
                digest.update(hashed.values.tobytes())
        return digest.hexdigest()

    def sheet_names(self) -> list[str]:
        return list(self._frames)

    def used_range(self, sheet: str) -> SheetBounds | None:
        df = self._frames[sheet]
        occupied = df.notna().to_numpy().nonzero()
        if len(occupied[0]) == 0:
            return None
        rows, cols = occupied
        return SheetBounds(
            min_row=int(rows.min()) + 1,
            min_col=int(cols.min()) + 1,
            max_row=int(rows.max()) + 1,
            max_col=int(cols.max()) + 1,
        )

    def cell(self, sheet: str, row: int, col: int) -> CellValue:
        df = self._frames[sheet]
        if row > df.shape[0] or col > df.shape[1]:
            return CellValue()
        return CellValue(_to_python(df.iat[row - 1, col - 1]))


def _to_python(value: Any) -> Any:
    """Convert pandas/numpy scalars to plain Python values."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item") and not isinstance(value, (str, bytes, datetime)):
        value = value.item()
        if isinstance(value, float) and math.isnan(value):
            return None
    return value


def read_grid(
    source: GridSource, sheet: str, bounds: SheetBounds
) -> list[list[CellValue]]:
    """Materialize *bounds* of *sheet* as row-major lists of :class:`CellValue`."""
    return [
        [source.cell(sheet, row, col) for col in range(bounds.min_col, bounds.max_col + 1)]
        for row in range(bounds.min_row, bounds.max_row + 1)
    ]
