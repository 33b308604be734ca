"""ingestkit-structure -- spreadsheet structure analysis for the ingestkit framework.

Finds the tabular regions of every sheet in a workbook, decides whether each
region has a header row, infers a semantic type per column, captures sample
rows, and detects key relationships between regions.  Finished analyses are
cached by content fingerprint.

Entry points are :class:`StructureAnalyzer` and
:func:`create_default_analyzer`.
"""

from ingestkit_structure.analyzer import StructureAnalyzer, create_default_analyzer
from ingestkit_structure.cache import (
    AnalysisCache,
    FileSystemAnalysisCache,
    InMemoryAnalysisCache,
)
from ingestkit_structure.config import StructureAnalysisConfig
from ingestkit_structure.describe import (
    describe_region,
    describe_relationships,
    format_headers,
)
from ingestkit_structure.errors import (
    AnalysisCancelled,
    AnalysisError,
    ErrorCode,
    IngestError,
)
from ingestkit_structure.fingerprint import compute_analysis_key
from ingestkit_structure.grid import DataFrameGridSource, OpenpyxlGridSource
from ingestkit_structure.headers import HeaderClassifier
from ingestkit_structure.models import (
    Analysis,
    AnalysisKey,
    Cardinality,
    CellValue,
    DataRegion,
    Relationship,
    SemanticType,
    SheetBounds,
)
from ingestkit_structure.protocols import AnalysisCacheStore, GridSource
from ingestkit_structure.relationships import RelationshipInferrer, attach_relationships
from ingestkit_structure.sampler import SampleExtractor
from ingestkit_structure.segmenter import RegionSegmenter
from ingestkit_structure.type_inference import TypeInferencer

__all__ = [
    # Enums
    "SemanticType",
    "Cardinality",
    # Fingerprint
    "AnalysisKey",
    "compute_analysis_key",
    # Core models
    "CellValue",
    "SheetBounds",
    "DataRegion",
    "Relationship",
    "Analysis",
    # Stages
    "RegionSegmenter",
    "HeaderClassifier",
    "TypeInferencer",
    "SampleExtractor",
    "RelationshipInferrer",
    "attach_relationships",
    # Descriptions
    "describe_region",
    "describe_relationships",
    "format_headers",
    # Grid sources
    "OpenpyxlGridSource",
    "DataFrameGridSource",
    # Cache
    "AnalysisCache",
    "InMemoryAnalysisCache",
    "FileSystemAnalysisCache",
    # Analyzer
    "StructureAnalyzer",
    "create_default_analyzer",
    # Errors
    "ErrorCode",
    "IngestError",
    "AnalysisError",
    "AnalysisCancelled",
    # Config
    "StructureAnalysisConfig",
    # Protocols
    "GridSource",
    "AnalysisCacheStore",
]
