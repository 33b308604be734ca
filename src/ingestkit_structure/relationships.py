"""Cross-region relationship inference over sampled column values.

Runs once per workbook, after every sheet has been segmented, typed and
sampled.  Only values already captured in each region's ``sample_rows`` are
compared; no further grid access happens here.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import NamedTuple

from ingestkit_structure.models import (
    Cardinality,
    DataRegion,
    Relationship,
    SemanticType,
)

logger = logging.getLogger("ingestkit_structure")

_NUMERIC_TYPES = {SemanticType.NUMBER, SemanticType.CURRENCY}


class _Column(NamedTuple):
    region_index: int
    column_index: int
    region_id: str
    header: str
    kind: str
    values: list[str]


class _Candidate(NamedTuple):
    order: tuple[int, int, int, int]
    relationship: Relationship


def _compatibility_kind(semantic_type: SemanticType) -> str | None:
    if semantic_type is SemanticType.TEXT:
        return "text"
    if semantic_type in _NUMERIC_TYPES:
        return "numeric"
    return None


class RelationshipInferrer:
    """Detects foreign-key-like column correspondences between regions.

    For every ordered pair of distinct regions and every pair of
    type-compatible columns (both Text, or both Number/Currency) the overlap
    ratio ``|a & b| / |a|`` is computed over distinct sampled values.  A pair
    qualifies when the ratio reaches ``overlap_threshold`` and at least
    ``min_shared_values`` distinct values are shared.

    Relationships are stored once, from the "many" side to the "one" side:

    * ``a`` has duplicates, ``b``'s matched values are unique -> ManyToOne a->b
    * ``a`` is unique, ``b``'s matched values repeat -> ManyToOne b->a
    * both unique -> OneToOne a->b
    * both repeat -> no relationship

    Only one relationship is kept per unordered column pair; the direction
    with the higher overlap ratio wins, and the first one found wins ties.
    """

    def __init__(
        self, overlap_threshold: float = 0.8, min_shared_values: int = 2
    ) -> None:
        self._overlap_threshold = overlap_threshold
        self._min_shared_values = min_shared_values

    # -- public API ----------------------------------------------------------

    def infer(self, regions: list[DataRegion]) -> list[Relationship]:
        """Infer relationships between *regions* without modifying them.

        Returns the relationships in deterministic order (source region,
        source column, target region, target column).
        """
        columns = self._collect_columns(regions)
        best: dict[frozenset[tuple[int, int]], _Candidate] = {}

        for a in columns:
            for b in columns:
                if a.region_index == b.region_index or a.kind != b.kind:
                    continue
                candidate = self._evaluate(a, b)
                if candidate is None:
                    continue
                pair = frozenset(
                    {(a.region_index, a.column_index), (b.region_index, b.column_index)}
                )
                current = best.get(pair)
                if (
                    current is None
                    or candidate.relationship.overlap_ratio
                    > current.relationship.overlap_ratio
                ):
                    best[pair] = candidate

        ordered = sorted(best.values(), key=lambda c: c.order)
        for candidate in ordered:
            rel = candidate.relationship
            logger.debug(
                "Relationship %s.%s -> %s.%s (%s, overlap=%.2f)",
                rel.source_region,
                rel.source_column,
                rel.target_region,
                rel.target_column,
                rel.cardinality.value,
                rel.overlap_ratio,
            )

        return [c.relationship for c in ordered]

    # -- internal helpers ----------------------------------------------------

    @staticmethod
    def _collect_columns(regions: list[DataRegion]) -> list[_Column]:
        columns: list[_Column] = []
        for r_idx, region in enumerate(regions):
            for c_idx, header in enumerate(region.headers):
                kind = _compatibility_kind(
                    region.column_types.get(header, SemanticType.UNKNOWN)
                )
                if kind is None:
                    continue
                values = region.column_values(header)
                if values:
                    columns.append(
                        _Column(r_idx, c_idx, region.region_id, header, kind, values)
                    )
        return columns

    def _evaluate(self, a: _Column, b: _Column) -> _Candidate | None:
        a_distinct = set(a.values)
        shared = a_distinct & set(b.values)
        if len(shared) < self._min_shared_values:
            return None
        overlap = len(shared) / len(a_distinct)
        if overlap < self._overlap_threshold:
            return None

        a_repeats = len(a.values) > len(a_distinct)
        b_counts = Counter(b.values)
        b_repeats = any(b_counts[v] > 1 for v in shared)

        if a_repeats and b_repeats:
            return None
        if b_repeats:
            source, target, cardinality = b, a, Cardinality.MANY_TO_ONE
        elif a_repeats:
            source, target, cardinality = a, b, Cardinality.MANY_TO_ONE
        else:
            source, target, cardinality = a, b, Cardinality.ONE_TO_ONE

        relationship = Relationship(
            source_region=source.region_id,
            source_column=source.header,
            target_region=target.region_id,
            target_column=target.header,
            cardinality=cardinality,
            overlap_ratio=round(overlap, 4),
        )
        order = (
            source.region_index,
            source.column_index,
            target.region_index,
            target.column_index,
        )
        return _Candidate(order, relationship)


def attach_relationships(
    regions: list[DataRegion], relationships: list[Relationship]
) -> list[DataRegion]:
    """Return copies of *regions* carrying the relationships they are the source of.

    Region order and the order of each region's relationships are preserved.
    """
    by_source: dict[str, list[Relationship]] = {}
    for rel in relationships:
        by_source.setdefault(rel.source_region, []).append(rel)
    return [
        region.model_copy(update={"relationships": by_source.get(region.region_id, [])})
        for region in regions
    ]
