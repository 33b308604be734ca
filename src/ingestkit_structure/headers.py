"""Header-row classification for detected regions."""

from __future__ import annotations

import logging

from openpyxl.utils import get_column_letter

from ingestkit_structure.models import CellValue
from ingestkit_structure.values import (
    display_value,
    is_blank,
    is_boolean,
    is_date_like,
    is_text,
    parse_number,
)

logger = logging.getLogger("ingestkit_structure")


def synthesize_labels(count: int) -> list[str]:
    """Return ``Column A``, ``Column B``, ... ``Column AA`` for *count* columns.

    Letters count from the region's left edge, wherever the region sits on
    the sheet.
    """
    return [f"Column {get_column_letter(i + 1)}" for i in range(count)]


def deduplicate_labels(labels: list[str]) -> list[str]:
    """Make header labels unique; blanks take the synthesized column label.

    Repeated labels get ``_2``, ``_3``, ... suffixes in order of appearance.
    """
    fallback = synthesize_labels(len(labels))
    seen: dict[str, int] = {}
    result: list[str] = []
    for i, label in enumerate(labels):
        if not label:
            label = fallback[i]
        if label in seen:
            seen[label] += 1
            candidate = f"{label}_{seen[label]}"
            while candidate in seen:
                seen[label] += 1
                candidate = f"{label}_{seen[label]}"
            seen[candidate] = 1
            result.append(candidate)
        else:
            seen[label] = 1
            result.append(label)
    return result


class HeaderClassifier:
    """Decides whether a region's first row is a header row.

    Two signals, evaluated only for regions with at least two rows:

    * **Type discontinuity** -- per column, the first-row cell is non-numeric
      text while the second-row cell is numeric, date-like, or boolean.  A
      strict majority of such columns classifies the row as a header.
    * **Unique labels** -- every first-row cell is a distinct non-blank
      string, and at least one column's data rows contain a duplicate or a
      non-text value.
    """

    def classify(
        self, cells: list[list[CellValue]]
    ) -> tuple[bool, list[str]]:
        """Return ``(has_headers, header_labels)`` for a region's cells."""
        n_cols = max((len(row) for row in cells), default=0)
        if len(cells) < 2:
            return False, synthesize_labels(n_cols)

        first = cells[0]
        if self._has_type_discontinuity(first, cells[1]) or self._has_unique_labels(
            first, cells[1:]
        ):
            labels = [display_value(c.value) for c in first]
            return True, deduplicate_labels(labels)

        return False, synthesize_labels(n_cols)

    # -- internal helpers ----------------------------------------------------

    @staticmethod
    def _has_type_discontinuity(
        first: list[CellValue], second: list[CellValue]
    ) -> bool:
        signals = 0
        for top, below in zip(first, second):
            if not is_text(top.value):
                continue
            if (
                parse_number(below.value) is not None
                or is_date_like(below)
                or is_boolean(below.value)
            ):
                signals += 1
        return signals * 2 > len(first)

    @staticmethod
    def _has_unique_labels(
        first: list[CellValue], data_rows: list[list[CellValue]]
    ) -> bool:
        if not first:
            return False
        if not all(isinstance(c.value, str) and not is_blank(c.value) for c in first):
            return False
        labels = [c.value.strip() for c in first]
        if len(set(labels)) != len(labels):
            return False

        for col in range(len(first)):
            seen: set[str] = set()
            for row in data_rows:
                if col >= len(row) or is_blank(row[col].value):
                    continue
                value = row[col].value
                if not is_text(value):
                    return True
                key = display_value(value)
                if key in seen:
                    return True
                seen.add(key)
        return False
