"""Tests for ingestkit_structure.config -- StructureAnalysisConfig."""

from __future__ import annotations

import json

import pytest
import yaml
from pydantic import ValidationError

from ingestkit_structure.config import StructureAnalysisConfig


class TestDefaults:
    def test_default_values(self):
        config = StructureAnalysisConfig()
        assert config.analyzer_version == "ingestkit_structure:1.0.0"
        assert config.max_sheets == 20
        assert config.max_rows == 10_000
        assert config.max_samples == 5
        assert config.use_advanced_detection is True
        assert config.relationship_overlap_threshold == 0.8
        assert config.relationship_min_shared_values == 2
        assert config.cache_enabled is True
        assert config.concurrency_limit == 4
        assert config.log_sample_data is False

    def test_override_via_kwargs(self):
        config = StructureAnalysisConfig(max_samples=10, use_advanced_detection=False)
        assert config.max_samples == 10
        assert config.use_advanced_detection is False

    @pytest.mark.parametrize(
        "field", ["max_sheets", "max_rows", "max_samples", "concurrency_limit"]
    )
    def test_limits_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            StructureAnalysisConfig(**{field: 0})

    def test_overlap_threshold_range(self):
        with pytest.raises(ValidationError):
            StructureAnalysisConfig(relationship_overlap_threshold=0.0)
        with pytest.raises(ValidationError):
            StructureAnalysisConfig(relationship_overlap_threshold=1.5)


class TestLimitsFingerprint:
    def test_stable_for_equal_configs(self):
        assert (
            StructureAnalysisConfig().limits_fingerprint()
            == StructureAnalysisConfig().limits_fingerprint()
        )

    def test_changes_with_output_affecting_field(self):
        base = StructureAnalysisConfig().limits_fingerprint()
        assert StructureAnalysisConfig(max_rows=50).limits_fingerprint() != base
        assert (
            StructureAnalysisConfig(use_advanced_detection=False).limits_fingerprint()
            != base
        )

    def test_ignores_execution_fields(self):
        base = StructureAnalysisConfig().limits_fingerprint()
        other = StructureAnalysisConfig(
            concurrency_limit=16, cache_enabled=False, log_sample_data=True
        )
        assert other.limits_fingerprint() == base


class TestFromFile:
    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"max_rows": 500, "max_samples": 3}))
        config = StructureAnalysisConfig.from_file(str(path))
        assert config.max_rows == 500
        assert config.max_samples == 3
        assert config.max_sheets == 20

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"concurrency_limit": 2}))
        config = StructureAnalysisConfig.from_file(str(path))
        assert config.concurrency_limit == 2

    def test_empty_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert StructureAnalysisConfig.from_file(str(path)) == StructureAnalysisConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            StructureAnalysisConfig.from_file(str(tmp_path / "nope.yaml"))

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("max_rows = 1")
        with pytest.raises(ValueError, match="Unsupported config file extension"):
            StructureAnalysisConfig.from_file(str(path))

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"max_sheets": -1}))
        with pytest.raises(ValidationError):
            StructureAnalysisConfig.from_file(str(path))
