"""
Ingestion Module - Source records to index documents.
=====================================================

- transform: Validate course offering and employee snapshots and build
  index documents keyed by stable ids
"""

from campus_search.ingestion.transform import (
    build_class_documents,
    build_employee_documents,
)

__all__ = [
    "build_class_documents",
    "build_employee_documents",
]
