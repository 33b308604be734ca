"""Deterministic sample extraction for detected regions."""

from __future__ import annotations

from ingestkit_structure.errors import ErrorCode, IngestError
from ingestkit_structure.models import CellValue
from ingestkit_structure.values import display_value


class SampleExtractor:
    """Captures the first ``max_samples`` data rows of a region, in document order.

    Samples are never random so that cached analyses round-trip and
    downstream consumers see reproducible previews.
    """

    def __init__(self, max_samples: int) -> None:
        self._max_samples = max_samples

    def extract(self, data_rows: list[list[CellValue]]) -> list[list[str]]:
        """Return up to ``max_samples`` rows rendered as display strings."""
        return [
            [display_value(cell.value) for cell in row]
            for row in data_rows[: self._max_samples]
        ]

    def truncation_note(
        self, sheet_name: str, address: str, data_row_count: int
    ) -> IngestError | None:
        """``W_SAMPLES_TRUNCATED`` note when the region has more rows than the cap."""
        if data_row_count <= self._max_samples:
            return None
        return IngestError(
            code=ErrorCode.W_SAMPLES_TRUNCATED,
            message=(
                f"Region {address} has {data_row_count} data rows; sampled the "
                f"first {self._max_samples}."
            ),
            sheet_name=sheet_name,
            stage="sample",
        )
