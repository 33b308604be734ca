"""Normalized error codes, structured notes and exceptions for ingestkit-structure."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the structure analyzer.

    Codes prefixed with ``E_`` are errors; codes prefixed with ``W_`` are
    non-fatal warnings (limit notes and skipped sheets).
    """

    # Ingest errors
    E_INGEST_SHEET_UNREADABLE = "E_INGEST_SHEET_UNREADABLE"
    E_INGEST_WORKBOOK_UNREADABLE = "E_INGEST_WORKBOOK_UNREADABLE"

    # Analysis errors
    E_ANALYSIS_NO_SHEETS = "E_ANALYSIS_NO_SHEETS"
    E_ANALYSIS_CANCELLED = "E_ANALYSIS_CANCELLED"

    # Cache errors (always non-fatal)
    E_CACHE_READ = "E_CACHE_READ"
    E_CACHE_WRITE = "E_CACHE_WRITE"

    # Warnings (non-fatal)
    W_SHEETS_TRUNCATED = "W_SHEETS_TRUNCATED"
    W_ROWS_TRUNCATED = "W_ROWS_TRUNCATED"
    W_SAMPLES_TRUNCATED = "W_SAMPLES_TRUNCATED"
    W_SHEET_EMPTY = "W_SHEET_EMPTY"


class IngestError(BaseModel):
    """Structured note with code, message, and context.

    Attached to :attr:`Analysis.notes` for every non-fatal problem: an
    unreadable sheet, a truncation caused by a configured cap, or an empty
    sheet.  ``recoverable`` is ``True`` for everything that did not stop the
    analysis.
    """

    code: ErrorCode
    message: str
    sheet_name: str | None = None
    stage: str | None = None
    recoverable: bool = True

    @property
    def is_warning(self) -> bool:
        return self.code.value.startswith("W_")


class AnalysisError(Exception):
    """Raised when no analysis could be produced at all.

    Wraps an :class:`ErrorCode` and keeps the originating exception on
    ``cause`` (it is also chained via ``raise ... from``).
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        cause: BaseException | None = None,
        notes: list[IngestError] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause
        self.notes = notes or []


class AnalysisCancelled(AnalysisError):
    """Raised when the caller's cancellation event stopped the fan-out."""

    def __init__(self, message: str = "Analysis cancelled before all sheets ran.") -> None:
        super().__init__(ErrorCode.E_ANALYSIS_CANCELLED, message)
