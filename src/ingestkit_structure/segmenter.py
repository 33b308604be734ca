"""Region segmentation: split a sheet's used range into data regions.

The occupancy mask of the sheet (a cell is occupied when it has a value or a
non-default display format) is clustered with 4-directional adjacency.  A
run of fewer than ``_BLANK_ROW_THRESHOLD`` blank rows (or
``_BLANK_COL_THRESHOLD`` blank columns) between two occupied cells does not
break connectivity; a longer run does.  Each cluster becomes the minimal
rectangle around its occupied cells, and rectangles that overlap are merged
until none do.
"""

from __future__ import annotations

import logging

from ingestkit_structure.config import StructureAnalysisConfig
from ingestkit_structure.errors import ErrorCode, IngestError
from ingestkit_structure.models import CellValue, SheetBounds
from ingestkit_structure.values import is_occupied

logger = logging.getLogger("ingestkit_structure")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_BLANK_ROW_THRESHOLD = 2
_BLANK_COL_THRESHOLD = 2


# ---------------------------------------------------------------------------
# Union-find over occupied cells
# ---------------------------------------------------------------------------


class _DisjointSet:
    def __init__(self) -> None:
        self._parent: dict[int, int] = {}

    def add(self, item: int) -> None:
        self._parent.setdefault(item, item)

    def find(self, item: int) -> int:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        # Path compression.
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: int, b: int) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra != rb:
            # Smaller id wins so roots are deterministic.
            if rb < ra:
                ra, rb = rb, ra
            self._parent[rb] = ra

    def groups(self) -> dict[int, list[int]]:
        result: dict[int, list[int]] = {}
        for item in self._parent:
            result.setdefault(self.find(item), []).append(item)
        return result


# ---------------------------------------------------------------------------
# Segmenter
# ---------------------------------------------------------------------------


class RegionSegmenter:
    """Partitions a sheet's used range into non-overlapping candidate regions.

    Parameters
    ----------
    config:
        Supplies ``max_rows``, the cap on rows read per sheet.
    """

    def __init__(self, config: StructureAnalysisConfig) -> None:
        self._config = config

    # -- public API ----------------------------------------------------------

    def plan_bounds(
        self, sheet_name: str, used_range: SheetBounds
    ) -> tuple[SheetBounds, IngestError | None]:
        """Clip *used_range* to the configured row cap.

        Returns the bounds to read and, when rows were dropped, a
        ``W_ROWS_TRUNCATED`` note.
        """
        max_rows = self._config.max_rows
        if used_range.n_rows <= max_rows:
            return used_range, None

        clipped = used_range.model_copy(
            update={"max_row": used_range.min_row + max_rows - 1}
        )
        logger.warning(
            "Sheet '%s' has %d used rows, exceeding max_rows (%d); truncated.",
            sheet_name,
            used_range.n_rows,
            max_rows,
        )
        note = IngestError(
            code=ErrorCode.W_ROWS_TRUNCATED,
            message=(
                f"Sheet '{sheet_name}' has {used_range.n_rows} rows, exceeding "
                f"max_rows ({max_rows}). Only rows {clipped.min_row}-"
                f"{clipped.max_row} were analyzed."
            ),
            sheet_name=sheet_name,
            stage="segment",
        )
        return clipped, note

    def segment(
        self, cells: list[list[CellValue]], origin: SheetBounds
    ) -> list[SheetBounds]:
        """Return the regions found in *cells*, in row-major order.

        Args:
            cells: Row-major grid read from *origin*.
            origin: Sheet coordinates of ``cells[0][0]`` and the grid extent.

        Returns:
            Region rectangles in sheet coordinates, ordered by top-left cell.
        """
        boxes = self._cluster_boxes(cells)
        boxes = self._merge_overlapping(boxes)

        regions = [
            SheetBounds(
                min_row=box.min_row + origin.min_row,
                min_col=box.min_col + origin.min_col,
                max_row=box.max_row + origin.min_row,
                max_col=box.max_col + origin.min_col,
            )
            for box in boxes
        ]
        regions.sort(key=lambda b: (b.min_row, b.min_col))
        return regions

    # -- internal helpers ----------------------------------------------------

    @staticmethod
    def _cluster_boxes(cells: list[list[CellValue]]) -> list[SheetBounds]:
        """Cluster occupied cells and return each cluster's 0-based bounding box."""
        if not cells:
            return []

        n_rows = len(cells)
        n_cols = max(len(row) for row in cells)
        occupied = [
            [col < len(row) and is_occupied(row[col]) for col in range(n_cols)]
            for row in cells
        ]

        ds = _DisjointSet()
        for r in range(n_rows):
            for c in range(n_cols):
                if not occupied[r][c]:
                    continue
                cell_id = r * n_cols + c
                ds.add(cell_id)
                for d in range(1, _BLANK_COL_THRESHOLD + 1):
                    if c + d < n_cols and occupied[r][c + d]:
                        ds.add(cell_id + d)
                        ds.union(cell_id, cell_id + d)
                        break
                for d in range(1, _BLANK_ROW_THRESHOLD + 1):
                    if r + d < n_rows and occupied[r + d][c]:
                        other = (r + d) * n_cols + c
                        ds.add(other)
                        ds.union(cell_id, other)
                        break

        boxes: list[SheetBounds] = []
        for members in ds.groups().values():
            rows = [m // n_cols for m in members]
            cols = [m % n_cols for m in members]
            boxes.append(
                SheetBounds(
                    min_row=min(rows),
                    min_col=min(cols),
                    max_row=max(rows),
                    max_col=max(cols),
                )
            )
        return boxes

    @staticmethod
    def _merge_overlapping(boxes: list[SheetBounds]) -> list[SheetBounds]:
        """Merge overlapping rectangles until no two overlap."""
        merged = sorted(boxes, key=lambda b: (b.min_row, b.min_col))
        changed = True
        while changed:
            changed = False
            result: list[SheetBounds] = []
            for box in merged:
                for idx, existing in enumerate(result):
                    if existing.overlaps(box):
                        result[idx] = existing.union(box)
                        changed = True
                        break
                else:
                    result.append(box)
            merged = result
        return merged


def slice_cells(
    cells: list[list[CellValue]], origin: SheetBounds, region: SheetBounds
) -> list[list[CellValue]]:
    """Cut the cells of *region* out of a grid read from *origin*."""
    row_start = region.min_row - origin.min_row
    col_start = region.min_col - origin.min_col
    result: list[list[CellValue]] = []
    for row in cells[row_start : row_start + region.n_rows]:
        window = list(row[col_start : col_start + region.n_cols])
        window.extend(CellValue() for _ in range(region.n_cols - len(window)))
        result.append(window)
    return result
