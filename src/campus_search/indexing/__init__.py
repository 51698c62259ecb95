"""
Indexing Module - Elasticsearch storage and ingestion.
======================================================

This module owns every conversation with the index engine:

- elastic_store: Elasticsearch client wrapper with timeouts and error mapping
- mappings: Fixed index mappings for class and employee documents
- pipeline: Full reindex, batched upsert, partial update, multi-get
- subjects: Cached vocabulary of known subject codes
"""

from campus_search.indexing.elastic_store import (
    ElasticStore,
    create_elastic_store,
    get_elastic_store,
)
from campus_search.indexing.mappings import CLASS_MAPPING, EMPLOYEE_MAPPING, INDEX_SETTINGS
from campus_search.indexing.pipeline import IndexPipeline
from campus_search.indexing.subjects import (
    SubjectVocabulary,
    clear_subject_cache,
    get_subject_vocabulary,
)

__all__ = [
    # Store
    "ElasticStore",
    "create_elastic_store",
    "get_elastic_store",
    # Mappings
    "CLASS_MAPPING",
    "EMPLOYEE_MAPPING",
    "INDEX_SETTINGS",
    # Pipeline
    "IndexPipeline",
    # Subjects
    "SubjectVocabulary",
    "clear_subject_cache",
    "get_subject_vocabulary",
]
