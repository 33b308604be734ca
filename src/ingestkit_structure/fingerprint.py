"""Deterministic cache-key computation for analysis requests.

:func:`compute_analysis_key` combines a grid source's **content** identity
with the analyzer version and the limit configuration.  A file modified in
place therefore gets a new key; the same bytes analysed under the same
limits always map to the same key, whatever their path.
"""

from __future__ import annotations

from ingestkit_structure.config import StructureAnalysisConfig
from ingestkit_structure.models import AnalysisKey
from ingestkit_structure.protocols import GridSource


def compute_analysis_key(
    source: GridSource, config: StructureAnalysisConfig
) -> AnalysisKey:
    """Compute the cache key for analysing *source* under *config*.

    Parameters
    ----------
    source:
        Grid source whose :meth:`~GridSource.identity` is content-derived
        (e.g. the SHA-256 of the workbook bytes).
    config:
        Active configuration; only output-affecting fields participate.

    Returns
    -------
    AnalysisKey
        A populated key whose :pyattr:`~AnalysisKey.key` property yields the
        composite SHA-256 hex digest.
    """
    return AnalysisKey(
        content_hash=source.identity(),
        analyzer_version=config.analyzer_version,
        limits=config.limits_fingerprint(),
    )
