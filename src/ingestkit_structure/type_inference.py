"""Per-column semantic type inference by majority vote over sampled cells."""

from __future__ import annotations

import logging
from collections import Counter

from ingestkit_structure.models import CellValue, SemanticType
from ingestkit_structure.values import classify_value

logger = logging.getLogger("ingestkit_structure")

_NUMERIC_TYPES = {SemanticType.NUMBER, SemanticType.CURRENCY}


class TypeInferencer:
    """Assigns one :class:`SemanticType` per column.

    Each sampled, non-blank value votes for its most specific successful
    parse (Formula > Currency > Date > Number > Boolean > Text).  The type
    with the most votes wins; ties go to the more specific type.  Plain text
    mixed into a column whose winner is Number or Currency makes the column
    Text.  Columns without any votes are Unknown.

    Parameters
    ----------
    max_samples:
        Cap on the number of data rows inspected per column.
    """

    def __init__(self, max_samples: int) -> None:
        self._max_samples = max_samples

    def infer(
        self, headers: list[str], data_rows: list[list[CellValue]]
    ) -> dict[str, SemanticType]:
        """Return ``{header: type}`` with exactly one entry per header."""
        sample = data_rows[: self._max_samples]
        return {
            header: self.infer_column(
                [row[idx] for row in sample if idx < len(row)]
            )
            for idx, header in enumerate(headers)
        }

    @staticmethod
    def infer_column(cells: list[CellValue]) -> SemanticType:
        votes: Counter[SemanticType] = Counter()
        for cell in cells:
            vote = classify_value(cell)
            if vote is not None:
                votes[vote] += 1

        known = {t: n for t, n in votes.items() if t is not SemanticType.UNKNOWN}
        if not known:
            return SemanticType.UNKNOWN

        winner = min(known, key=lambda t: (-known[t], t.precedence))
        # Text mixed into a numeric column.
        if winner in _NUMERIC_TYPES and SemanticType.TEXT in known:
            return SemanticType.TEXT
        return winner
