"""Configuration model for the ingestkit-structure analyzer.

Provides ``StructureAnalysisConfig`` with every limit the analyzer honours and
sensible defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel, Field

# Fields that never change the analysis output and therefore stay out of the
# cache fingerprint.
_NON_SEMANTIC_FIELDS = {"cache_enabled", "concurrency_limit", "log_sample_data"}


class StructureAnalysisConfig(BaseModel):
    """All tunable limits with sensible defaults.

    An instance is passed explicitly to :class:`StructureAnalyzer`; there is
    no process-wide configuration.  Override individual values via
    constructor kwargs or load a complete config from a file with
    ``StructureAnalysisConfig.from_file(path)``.
    """

    # --- Identity ---
    analyzer_version: str = "ingestkit_structure:1.0.0"

    # --- Limits ---
    max_sheets: int = Field(default=20, ge=1)
    max_rows: int = Field(default=10_000, ge=1)
    max_samples: int = Field(default=5, ge=1)

    # --- Detection ---
    use_advanced_detection: bool = True
    relationship_overlap_threshold: float = Field(default=0.8, gt=0.0, le=1.0)
    relationship_min_shared_values: int = Field(default=2, ge=1)

    # --- Execution ---
    cache_enabled: bool = True
    concurrency_limit: int = Field(default=4, ge=1)

    # --- Logging / PII safety ---
    log_sample_data: bool = False

    def limits_fingerprint(self) -> str:
        """Stable JSON of every field that can change the analysis output."""
        data = self.model_dump(exclude=_NON_SEMANTIC_FIELDS)
        return json.dumps(data, sort_keys=True)

    @classmethod
    def from_file(cls, path: str) -> StructureAnalysisConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            import yaml

            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
