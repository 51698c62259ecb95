"""
Errors Module - Exception types shared by search and ingestion.
===============================================================

Three kinds of failure reach callers:
- SearchInputError: the caller asked for something malformed; do not retry
- IndexUnavailableError: the engine is unreachable, timed out or refused
  the request; safe to retry later
- BulkIndexError: some documents of a bulk write were rejected by the engine

Per-document data errors during ingestion are not raised; they are listed
in the IngestionReport.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from campus_search.shared.schemas import IngestionReport


class SearchInputError(ValueError):
    """Invalid caller input (term id, pagination, field name, key part)."""


class IndexUnavailableError(RuntimeError):
    """Transient failure talking to the index engine."""

    def __init__(self, message: str, retryable: bool = True, status: Optional[int] = None):
        super().__init__(message)
        self.retryable = retryable
        self.status = status


class SubjectCacheError(IndexUnavailableError):
    """The subject vocabulary could not be computed."""


class BulkIndexError(IndexUnavailableError):
    """One or more documents of a bulk write failed."""

    def __init__(self, report: "IngestionReport"):
        failed = len(report.failed)
        super().__init__(f"{failed} document(s) failed to index")
        self.report = report
