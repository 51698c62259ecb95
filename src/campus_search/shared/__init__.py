"""
Shared Module - Common utilities, configuration, schemas, and logging.
======================================================================

This module provides foundational components used across all other modules:

- config: Configuration loading and management
- logging: Rich console logging setup
- errors: Exception types reported to callers
- schemas: Pydantic data models
- utils: Canonical keys, contact normalization, batching, file I/O
"""

from campus_search.shared.config import get_settings, Settings
from campus_search.shared.errors import (
    BulkIndexError,
    IndexUnavailableError,
    SearchInputError,
    SubjectCacheError,
)
from campus_search.shared.logging import get_logger, setup_logging
from campus_search.shared.schemas import (
    AnalyzedQuery,
    ClassDocument,
    CourseOffering,
    Employee,
    EmployeeDocument,
    IngestionReport,
    QueryKind,
    RankedResult,
    SearchHit,
)
from campus_search.shared.utils import (
    canonical_code,
    chunked,
    class_key,
    compute_hash,
    employee_id,
    load_jsonl,
    save_jsonl,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Errors
    "BulkIndexError",
    "IndexUnavailableError",
    "SearchInputError",
    "SubjectCacheError",
    # Logging
    "get_logger",
    "setup_logging",
    # Schemas
    "AnalyzedQuery",
    "ClassDocument",
    "CourseOffering",
    "Employee",
    "EmployeeDocument",
    "IngestionReport",
    "QueryKind",
    "RankedResult",
    "SearchHit",
    # Utils
    "canonical_code",
    "chunked",
    "class_key",
    "compute_hash",
    "employee_id",
    "load_jsonl",
    "save_jsonl",
]
