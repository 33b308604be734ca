"""Pydantic data models and enumerations for ingestkit-structure.

This module defines the data model shared by every analysis stage: the two
enums (``SemanticType`` and ``Cardinality``), the ``CellValue`` tuple read from
a grid source, sheet bounds, relationships, regions, the ``Analysis``
aggregate, and the deterministic ``AnalysisKey`` used to address the cache.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Any, NamedTuple

from openpyxl.utils import get_column_letter
from pydantic import BaseModel, ConfigDict

from ingestkit_structure.errors import IngestError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SemanticType(str, Enum):
    """Semantic type inferred for a region column.

    Declaration order is the precedence order: earlier members are more
    specific and win ties in the per-column vote.
    """

    FORMULA = "Formula"
    CURRENCY = "Currency"
    DATE = "Date"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    TEXT = "Text"
    UNKNOWN = "Unknown"

    @property
    def precedence(self) -> int:
        """0 for the most specific type, larger for less specific ones."""
        return list(SemanticType).index(self)


class Cardinality(str, Enum):
    """Shape of a column correspondence between two regions."""

    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_ONE = "ManyToOne"


# ---------------------------------------------------------------------------
# Grid primitives
# ---------------------------------------------------------------------------


DEFAULT_NUMBER_FORMAT = "General"


class CellValue(NamedTuple):
    """Raw value and display format of one cell, as exposed by a grid source."""

    value: Any = None
    number_format: str = DEFAULT_NUMBER_FORMAT


class SheetBounds(BaseModel):
    """Inclusive, 1-based rectangle on a sheet."""

    min_row: int
    min_col: int
    max_row: int
    max_col: int

    @property
    def n_rows(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def n_cols(self) -> int:
        return self.max_col - self.min_col + 1

    @property
    def address(self) -> str:
        """Spreadsheet address such as ``A1:D10`` (``B2`` for a single cell)."""
        start = f"{get_column_letter(self.min_col)}{self.min_row}"
        if self.n_rows == 1 and self.n_cols == 1:
            return start
        return f"{start}:{get_column_letter(self.max_col)}{self.max_row}"

    def overlaps(self, other: SheetBounds) -> bool:
        return not (
            self.max_row < other.min_row
            or other.max_row < self.min_row
            or self.max_col < other.min_col
            or other.max_col < self.min_col
        )

    def union(self, other: SheetBounds) -> SheetBounds:
        return SheetBounds(
            min_row=min(self.min_row, other.min_row),
            min_col=min(self.min_col, other.min_col),
            max_row=max(self.max_row, other.max_row),
            max_col=max(self.max_col, other.max_col),
        )


# ---------------------------------------------------------------------------
# Core Models
# ---------------------------------------------------------------------------


class Relationship(BaseModel):
    """A foreign-key-like correspondence between two region columns.

    Stored once, on the source region.  For ``ManyToOne`` the source column is
    the "many" side and the target column holds the "one" side's key.
    """

    source_region: str
    source_column: str
    target_region: str
    target_column: str
    cardinality: Cardinality
    overlap_ratio: float

    def inverse(self) -> Relationship:
        """The same correspondence viewed from the target side."""
        flipped = {
            Cardinality.MANY_TO_ONE: Cardinality.ONE_TO_MANY,
            Cardinality.ONE_TO_MANY: Cardinality.MANY_TO_ONE,
            Cardinality.ONE_TO_ONE: Cardinality.ONE_TO_ONE,
        }[self.cardinality]
        return Relationship(
            source_region=self.target_region,
            source_column=self.target_column,
            target_region=self.source_region,
            target_column=self.source_column,
            cardinality=flipped,
            overlap_ratio=self.overlap_ratio,
        )


class DataRegion(BaseModel):
    """A detected rectangular block of related cells (an inferred table).

    Frozen: the analyzer builds each region once its header, type and
    sampling stages have run, and attaches relationships with
    ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    region_id: str
    sheet_name: str
    bounds: SheetBounds
    headers: list[str] = []
    has_headers: bool = False
    row_count: int = 0
    column_types: dict[str, SemanticType] = {}
    sample_rows: list[list[str]] = []
    description: str = ""
    relationships: list[Relationship] = []

    @property
    def address(self) -> str:
        return self.bounds.address

    def column_values(self, header: str) -> list[str]:
        """Sampled display values of one column, blanks removed."""
        idx = self.headers.index(header)
        return [row[idx] for row in self.sample_rows if idx < len(row) and row[idx] != ""]


class Analysis(BaseModel):
    """Aggregate structural model of one workbook.

    Frozen once returned by the analyzer; regions are listed in sheet order,
    then row-major order within each sheet.
    """

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    analyzer_version: str
    sheet_names: list[str]
    regions: list[DataRegion]
    notes: list[IngestError] = []

    @property
    def relationships(self) -> list[Relationship]:
        return [rel for region in self.regions for rel in region.relationships]

    @property
    def warnings(self) -> list[IngestError]:
        return [note for note in self.notes if note.is_warning]

    @property
    def errors(self) -> list[IngestError]:
        return [note for note in self.notes if not note.is_warning]

    def regions_for_sheet(self, sheet_name: str) -> list[DataRegion]:
        return [r for r in self.regions if r.sheet_name == sheet_name]

    def find_region(self, region_id: str) -> DataRegion | None:
        for region in self.regions:
            if region.region_id == region_id:
                return region
        return None


# ---------------------------------------------------------------------------
# Cache addressing
# ---------------------------------------------------------------------------


class AnalysisKey(BaseModel):
    """Deterministic cache key for one analysis request.

    Combines the source's content identity, the analyzer version and the
    limit configuration into a single SHA-256 digest.
    """

    content_hash: str
    analyzer_version: str
    limits: str

    @property
    def key(self) -> str:
        """Deterministic string key for cache lookups."""
        parts = [self.content_hash, self.analyzer_version, self.limits]
        return hashlib.sha256("|".join(parts).encode()).hexdigest()
