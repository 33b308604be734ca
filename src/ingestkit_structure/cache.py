"""Analysis cache stores and the fingerprint-keyed in-flight table.

Two :class:`~ingestkit_structure.protocols.AnalysisCacheStore`
implementations are provided:

* :class:`InMemoryAnalysisCache` -- a lock-guarded, size-bounded LRU dict.
* :class:`FileSystemAnalysisCache` -- one JSON document per fingerprint::

      {base_path}/{fingerprint}.json

:class:`AnalysisCache` wraps a store and guarantees at most one concurrent
computation per fingerprint.  Store failures never fail an analysis: a read
failure is a miss and a write failure is skipped, both logged.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Callable

from ingestkit_structure.errors import AnalysisCancelled, ErrorCode
from ingestkit_structure.models import Analysis
from ingestkit_structure.protocols import AnalysisCacheStore

logger = logging.getLogger("ingestkit_structure")


class InMemoryAnalysisCache:
    """Process-local cache store keyed by fingerprint.

    Holds at most *max_entries* analyses; the least recently used entry is
    evicted first.
    """

    def __init__(self, max_entries: int = 128) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, Analysis] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, fingerprint: str) -> Analysis | None:
        with self._lock:
            analysis = self._entries.get(fingerprint)
            if analysis is not None:
                self._entries.move_to_end(fingerprint)
            return analysis

    def put(self, fingerprint: str, analysis: Analysis) -> None:
        with self._lock:
            self._entries[fingerprint] = analysis
            self._entries.move_to_end(fingerprint)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileSystemAnalysisCache:
    """Filesystem cache store: one JSON file per fingerprint.

    Documents are written with ``model_dump(mode="json")`` and read back with
    ``Analysis.model_validate``; a corrupt document raises, which
    :class:`AnalysisCache` treats as a miss.
    """

    def __init__(self, base_path: str) -> None:
        """Initialize the store.

        Args:
            base_path: Root directory for cached analyses.
                Created if it does not exist.
        """
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)

    def get(self, fingerprint: str) -> Analysis | None:
        path = self._path_for(fingerprint)
        if not path.exists():
            return None
        data = json.loads(path.read_text())
        return Analysis.model_validate(data)

    def put(self, fingerprint: str, analysis: Analysis) -> None:
        path = self._path_for(fingerprint)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(analysis.model_dump(mode="json"), indent=2))
        tmp_path.replace(path)

    def _path_for(self, fingerprint: str) -> Path:
        return self._base_path / f"{fingerprint}.json"


class _InFlight:
    """One running computation that later requests wait on."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Analysis | None = None
        self.error: BaseException | None = None


class AnalysisCache:
    """Cache front-end with stampede prevention.

    Parameters
    ----------
    store:
        Backing store, or ``None`` for no persistence.
    enabled:
        When ``False`` the store is never read or written; concurrent
        requests for one fingerprint still share a single computation.
    """

    def __init__(
        self, store: AnalysisCacheStore | None = None, enabled: bool = True
    ) -> None:
        self._store = store
        self._enabled = enabled and store is not None
        self._lock = threading.Lock()
        self._in_flight: dict[str, _InFlight] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_or_compute(
        self, fingerprint: str, compute: Callable[[], Analysis]
    ) -> Analysis:
        """Return the cached analysis or run *compute* exactly once.

        Requests arriving while a computation for *fingerprint* is running
        block until it finishes and receive the same result (or the same
        exception).  Only successful results are written to the store.

        A leader stopped by its own caller's cancellation publishes nothing:
        its waiters wake up and one of them runs *its* computation instead.
        """
        cached = self._read(fingerprint)
        if cached is not None:
            logger.info("Cache hit for %s", fingerprint[:16])
            return cached

        while True:
            entry, leader = self._claim(fingerprint)
            if leader:
                return self._lead(fingerprint, entry, compute)

            logger.debug("Waiting on in-flight analysis %s", fingerprint[:16])
            entry.done.wait()
            if entry.error is not None:
                raise entry.error
            if entry.result is not None:
                return entry.result
            logger.debug(
                "In-flight analysis %s was cancelled; retrying", fingerprint[:16]
            )

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _claim(self, fingerprint: str) -> tuple[_InFlight, bool]:
        """Return the in-flight entry for *fingerprint* and whether we lead it."""
        with self._lock:
            entry = self._in_flight.get(fingerprint)
            if entry is not None:
                return entry, False
            entry = _InFlight()
            self._in_flight[fingerprint] = entry
            return entry, True

    def _lead(
        self, fingerprint: str, entry: _InFlight, compute: Callable[[], Analysis]
    ) -> Analysis:
        try:
            # A previous leader may have finished between our read and
            # registering as leader.
            result = self._read(fingerprint)
            if result is None:
                result = compute()
                self._write(fingerprint, result)
            entry.result = result
            return result
        except AnalysisCancelled:
            raise
        except BaseException as exc:
            entry.error = exc
            raise
        finally:
            with self._lock:
                self._in_flight.pop(fingerprint, None)
            entry.done.set()

    def _read(self, fingerprint: str) -> Analysis | None:
        if not self._enabled:
            return None
        try:
            return self._store.get(fingerprint)  # type: ignore[union-attr]
        except Exception as exc:
            logger.warning(
                "code=%s | Cache read failed for %s; treating as miss: %s",
                ErrorCode.E_CACHE_READ.value,
                fingerprint[:16],
                exc,
            )
            return None

    def _write(self, fingerprint: str, analysis: Analysis) -> None:
        if not self._enabled:
            return
        try:
            self._store.put(fingerprint, analysis)  # type: ignore[union-attr]
        except Exception as exc:
            logger.warning(
                "code=%s | Cache write failed for %s; skipped: %s",
                ErrorCode.E_CACHE_WRITE.value,
                fingerprint[:16],
                exc,
            )
