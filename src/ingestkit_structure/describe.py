"""Human-readable summaries of regions and relationships.

These strings are part of the analysis contract: ``describe_region`` fills
:attr:`DataRegion.description`, and the header/relationship listings are
what region previews display.
"""

from __future__ import annotations

from openpyxl.utils import get_column_letter

from ingestkit_structure.models import DataRegion, Relationship, SemanticType


def describe_region(region: DataRegion) -> str:
    """One-sentence description of a region's shape and columns."""
    if region.bounds.n_rows == 1 and region.bounds.n_cols == 1:
        value = region.sample_rows[0][0] if region.sample_rows else ""
        return f"Labeled value on '{region.sheet_name}' at {region.address}: {value!r}"

    columns = ", ".join(
        f"{header} ({region.column_types.get(header, SemanticType.UNKNOWN).value})"
        for header in region.headers
    )
    noun = "row" if region.row_count == 1 else "rows"
    header_note = "with headers" if region.has_headers else "without headers"
    return (
        f"Table on '{region.sheet_name}' at {region.address} {header_note}, "
        f"{region.row_count} data {noun}: {columns}"
    )


def format_headers(region: DataRegion) -> str:
    """List each column as ``[header:<name>] (Column <letter>, Type: <type>)``.

    Letters count from the region's first column.
    """
    lines = []
    for offset, header in enumerate(region.headers):
        semantic_type = region.column_types.get(header, SemanticType.UNKNOWN)
        letter = get_column_letter(offset + 1)
        lines.append(f"[header:{header}] (Column {letter}, Type: {semantic_type.value})")
    return "\n".join(lines)


def describe_relationships(relationships: list[Relationship]) -> str:
    """Numbered listing of relationships, or a fixed sentence when there are none."""
    if not relationships:
        return "No relationships detected."
    return "\n".join(
        f"{i}. {rel.cardinality.value} relationship: Field [{rel.source_column}] "
        f"connects to [{rel.target_column}] in range {rel.target_region}"
        for i, rel in enumerate(relationships, start=1)
    )
