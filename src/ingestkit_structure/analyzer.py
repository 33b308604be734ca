"""StructureAnalyzer -- orchestrator and public API for ingestkit-structure.

Drives one workbook through the full analysis:

1. Compute the deterministic :class:`AnalysisKey` and consult the cache
   (concurrent requests for one key share a single computation).
2. Fan out one unit of work per sheet on a fixed-size thread pool:
   segment -> classify headers -> infer types -> extract samples.
3. Join in original sheet order and run relationship inference over the
   complete region set.
4. Freeze the :class:`Analysis` and write it to the cache.

Partial success is preferred over total failure: an unreadable sheet becomes
an ``E_INGEST_SHEET_UNREADABLE`` note and the remaining sheets still run.
Only when no sheet can be read does :meth:`StructureAnalyzer.analyze` raise
:class:`AnalysisError`.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

from ingestkit_structure.cache import AnalysisCache, InMemoryAnalysisCache
from ingestkit_structure.config import StructureAnalysisConfig
from ingestkit_structure.describe import describe_region
from ingestkit_structure.errors import (
    AnalysisCancelled,
    AnalysisError,
    ErrorCode,
    IngestError,
)
from ingestkit_structure.fingerprint import compute_analysis_key
from ingestkit_structure.grid import OpenpyxlGridSource, read_grid
from ingestkit_structure.headers import HeaderClassifier
from ingestkit_structure.models import Analysis, CellValue, DataRegion, SheetBounds
from ingestkit_structure.protocols import AnalysisCacheStore, GridSource
from ingestkit_structure.relationships import (
    RelationshipInferrer,
    attach_relationships,
)
from ingestkit_structure.sampler import SampleExtractor
from ingestkit_structure.segmenter import RegionSegmenter, slice_cells
from ingestkit_structure.type_inference import TypeInferencer

logger = logging.getLogger("ingestkit_structure")


class _SheetOutcome(NamedTuple):
    regions: list[DataRegion]
    notes: list[IngestError]
    error: Exception | None = None


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class StructureAnalyzer:
    """Orchestrator that turns a grid source into an :class:`Analysis`.

    Holds only the state needed to run analyses with one configuration: the
    stage components and the cache front-end.  Instances are safe to share
    between threads.

    Parameters
    ----------
    config:
        Analysis limits. Uses defaults when *None*.
    cache_store:
        Backing store for finished analyses. When *None* nothing is
        persisted, but concurrent identical requests are still collapsed.
    """

    def __init__(
        self,
        config: StructureAnalysisConfig | None = None,
        cache_store: AnalysisCacheStore | None = None,
    ) -> None:
        self._config = config or StructureAnalysisConfig()
        config = self._config

        self._segmenter = RegionSegmenter(config)
        self._header_classifier = HeaderClassifier()
        self._type_inferencer = TypeInferencer(config.max_samples)
        self._sampler = SampleExtractor(config.max_samples)
        self._relationship_inferrer = RelationshipInferrer(
            overlap_threshold=config.relationship_overlap_threshold,
            min_shared_values=config.relationship_min_shared_values,
        )
        self._cache = AnalysisCache(cache_store, enabled=config.cache_enabled)

    @property
    def config(self) -> StructureAnalysisConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(
        self,
        source: GridSource,
        cancel_event: threading.Event | None = None,
    ) -> Analysis:
        """Analyze every sheet of *source* (up to ``max_sheets``).

        Parameters
        ----------
        source:
            Grid source exposing the workbook's cells.
        cancel_event:
            Optional cancellation signal. Checked before each sheet starts;
            a sheet already running completes and no further sheets start.
            If any sheet was skipped, :class:`AnalysisCancelled` is raised
            and nothing is cached; concurrent callers sharing this
            computation are unaffected and recompute for themselves.

        Returns
        -------
        Analysis
            The frozen analysis, possibly carrying non-fatal notes.

        Raises
        ------
        AnalysisError
            If the workbook has no readable sheet at all.
        """
        fingerprint = compute_analysis_key(source, self._config).key
        return self._cache.get_or_compute(
            fingerprint,
            lambda: self._compute(source, fingerprint, cancel_event),
        )

    def analyze_file(
        self,
        file_path: str,
        cancel_event: threading.Event | None = None,
    ) -> Analysis:
        """Open an ``.xlsx`` file with openpyxl and analyze it."""
        source = OpenpyxlGridSource(file_path)
        try:
            return self.analyze(source, cancel_event)
        finally:
            source.close()

    def analyze_sheet(
        self, source: GridSource, sheet_name: str
    ) -> tuple[list[DataRegion], list[IngestError]]:
        """Run the per-sheet stages for one sheet, bypassing the cache.

        Returns the sheet's regions (without relationships) and its notes.
        """
        outcome = self._run_sheet(source, sheet_name)
        return outcome.regions, outcome.notes

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def _compute(
        self,
        source: GridSource,
        fingerprint: str,
        cancel_event: threading.Event | None,
    ) -> Analysis:
        start = time.monotonic()
        config = self._config
        notes: list[IngestError] = []

        try:
            sheet_names = source.sheet_names()
        except Exception as exc:
            raise AnalysisError(
                ErrorCode.E_INGEST_WORKBOOK_UNREADABLE,
                f"Could not list worksheets: {exc}",
                cause=exc,
            ) from exc

        if not sheet_names:
            raise AnalysisError(
                ErrorCode.E_ANALYSIS_NO_SHEETS, "Workbook contains no worksheets."
            )

        if len(sheet_names) > config.max_sheets:
            logger.warning(
                "Workbook has %d sheets, exceeding max_sheets (%d); truncated.",
                len(sheet_names),
                config.max_sheets,
            )
            notes.append(
                IngestError(
                    code=ErrorCode.W_SHEETS_TRUNCATED,
                    message=(
                        f"Workbook has {len(sheet_names)} sheets, exceeding "
                        f"max_sheets ({config.max_sheets}). Sheets after "
                        f"'{sheet_names[config.max_sheets - 1]}' were skipped."
                    ),
                    stage="orchestrate",
                )
            )
            sheet_names = sheet_names[: config.max_sheets]

        outcomes = self._fan_out(source, sheet_names, cancel_event)
        completed = [outcome for outcome in outcomes if outcome is not None]
        if len(completed) < len(outcomes):
            logger.info(
                "Analysis %s cancelled after %d of %d sheets; result discarded.",
                fingerprint[:16],
                len(completed),
                len(outcomes),
            )
            raise AnalysisCancelled()

        regions: list[DataRegion] = []
        first_error: Exception | None = None
        readable = 0
        for outcome in completed:
            regions.extend(outcome.regions)
            notes.extend(outcome.notes)
            if outcome.error is None:
                readable += 1
            elif first_error is None:
                first_error = outcome.error

        if readable == 0:
            raise AnalysisError(
                ErrorCode.E_ANALYSIS_NO_SHEETS,
                f"None of the {len(sheet_names)} sheet(s) could be read.",
                cause=first_error,
                notes=notes,
            ) from first_error

        if config.use_advanced_detection:
            regions = attach_relationships(
                regions, self._relationship_inferrer.infer(regions)
            )

        analysis = Analysis(
            fingerprint=fingerprint,
            analyzer_version=config.analyzer_version,
            sheet_names=sheet_names,
            regions=regions,
            notes=notes,
        )

        elapsed = time.monotonic() - start
        logger.info(
            "Analyzed key=%s sheets=%d regions=%d relationships=%d notes=%d "
            "time=%.3fs",
            fingerprint[:16],
            len(sheet_names),
            len(regions),
            len(analysis.relationships),
            len(notes),
            elapsed,
        )
        return analysis

    def _fan_out(
        self,
        source: GridSource,
        sheet_names: list[str],
        cancel_event: threading.Event | None,
    ) -> list[_SheetOutcome | None]:
        """Run every sheet on a bounded pool; results keep sheet order."""
        workers = min(self._config.concurrency_limit, len(sheet_names))

        def task(sheet_name: str) -> _SheetOutcome | None:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self._run_sheet(source, sheet_name)

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="ingestkit-structure"
        ) as executor:
            futures = [executor.submit(task, name) for name in sheet_names]
            return [future.result() for future in futures]

    def _run_sheet(self, source: GridSource, sheet_name: str) -> _SheetOutcome:
        """Segment, classify, type and sample one sheet."""
        notes: list[IngestError] = []
        try:
            used_range = source.used_range(sheet_name)
            if used_range is None:
                notes.append(
                    IngestError(
                        code=ErrorCode.W_SHEET_EMPTY,
                        message=f"Sheet '{sheet_name}' has no occupied cells.",
                        sheet_name=sheet_name,
                        stage="segment",
                    )
                )
                return _SheetOutcome([], notes)

            bounds, truncation = self._segmenter.plan_bounds(sheet_name, used_range)
            if truncation is not None:
                notes.append(truncation)

            cells = read_grid(source, sheet_name, bounds)
            region_bounds = self._segmenter.segment(cells, bounds)
            regions = [
                self._build_region(sheet_name, slice_cells(cells, bounds, rb), rb, notes)
                for rb in region_bounds
            ]
        except Exception as exc:
            logger.exception("Sheet '%s' could not be analyzed: %s", sheet_name, exc)
            notes.append(
                IngestError(
                    code=ErrorCode.E_INGEST_SHEET_UNREADABLE,
                    message=f"Sheet '{sheet_name}' could not be read: {exc}",
                    sheet_name=sheet_name,
                    stage="ingest",
                )
            )
            return _SheetOutcome([], notes, exc)

        logger.debug("Sheet '%s': %d region(s) detected", sheet_name, len(regions))
        return _SheetOutcome(regions, notes)

    def _build_region(
        self,
        sheet_name: str,
        cells: list[list[CellValue]],
        bounds: SheetBounds,
        notes: list[IngestError],
    ) -> DataRegion:
        has_headers, headers = self._header_classifier.classify(cells)
        data_rows = cells[1:] if has_headers else cells

        region = DataRegion(
            region_id=f"{sheet_name}!{bounds.address}",
            sheet_name=sheet_name,
            bounds=bounds,
            headers=headers,
            has_headers=has_headers,
            row_count=len(data_rows),
            column_types=self._type_inferencer.infer(headers, data_rows),
            sample_rows=self._sampler.extract(data_rows),
        )
        region = region.model_copy(update={"description": describe_region(region)})

        truncation = self._sampler.truncation_note(
            sheet_name, bounds.address, len(data_rows)
        )
        if truncation is not None:
            notes.append(truncation)

        if self._config.log_sample_data:
            logger.debug(
                "Region %s samples: %s", region.region_id, region.sample_rows
            )
        return region


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_default_analyzer(**overrides) -> StructureAnalyzer:
    """Create a StructureAnalyzer with an in-memory cache store.

    Convenience factory for local use and tests.  Recognised keyword
    arguments:

    - ``cache_store``: AnalysisCacheStore (default: InMemoryAnalysisCache)
    - ``config``: StructureAnalysisConfig (default: StructureAnalysisConfig())

    Any other keyword arguments are passed to StructureAnalysisConfig.
    """
    analyzer_keys = {"cache_store", "config"}
    analyzer_kwargs = {k: v for k, v in overrides.items() if k in analyzer_keys}
    config_kwargs = {k: v for k, v in overrides.items() if k not in analyzer_keys}

    config = analyzer_kwargs.pop("config", None)
    if config is None:
        config = StructureAnalysisConfig(**config_kwargs)

    cache_store = analyzer_kwargs.pop("cache_store", None)
    if cache_store is None:
        cache_store = InMemoryAnalysisCache()

    return StructureAnalyzer(config=config, cache_store=cache_store)
