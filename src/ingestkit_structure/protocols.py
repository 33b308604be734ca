"""Backend protocols for ingestkit-structure.

Defines the two structural-subtyping interfaces the analyzer consumes: the
grid source exposing raw cells and the cache store.  Both protocols are
``@runtime_checkable`` so callers can optionally verify conformance with
``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ingestkit_structure.models import Analysis, CellValue, SheetBounds


@runtime_checkable
class GridSource(Protocol):
    """Uniform per-sheet accessor over cell values and formats.

    Rows and columns are 1-based.  Implementations must tolerate concurrent
    calls from different worker threads as long as each thread reads a
    different sheet.
    """

    def identity(self) -> str:
        """Return a content-derived identity used for cache fingerprints."""
        ...

    def sheet_names(self) -> list[str]:
        """Return worksheet names in workbook order."""
        ...

    def used_range(self, sheet: str) -> SheetBounds | None:
        """Return the used-range bounds of *sheet*, or None if it is empty."""
        ...

    def cell(self, sheet: str, row: int, col: int) -> CellValue:
        """Return the raw value and display format of one cell."""
        ...


@runtime_checkable
class AnalysisCacheStore(Protocol):
    """Interface for analysis cache stores (in-memory, filesystem, ...)."""

    def get(self, fingerprint: str) -> Analysis | None:
        """Return the cached analysis, or None on a miss."""
        ...

    def put(self, fingerprint: str, analysis: Analysis) -> None:
        """Store *analysis* under *fingerprint*, replacing any previous entry."""
        ...
