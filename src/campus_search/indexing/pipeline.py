"""
Index Pipeline Module - Batched document ingestion.
===================================================

Writes class and employee documents to Elasticsearch:
- Full reindex (destructive index reset with fixed mappings)
- Idempotent upsert in bounded, sequential batches
- Partial update mode for patching fields
- Multi-get by id

Every write asks the engine to refresh before returning, so a search
issued after upsert() returns sees the written documents.

Pipeline flow:
    Source records → transform → {id: document} → upsert → Elasticsearch
"""

from typing import Any, Iterable, Optional

from campus_search.indexing.elastic_store import ElasticStore, get_elastic_store
from campus_search.indexing.mappings import CLASS_MAPPING, EMPLOYEE_MAPPING, INDEX_SETTINGS
from campus_search.indexing.subjects import SubjectVocabulary
from campus_search.ingestion.transform import (
    CourseInput,
    EmployeeInput,
    build_class_documents,
    build_employee_documents,
)
from campus_search.shared.config import get_settings
from campus_search.shared.errors import SearchInputError
from campus_search.shared.logging import get_logger
from campus_search.shared.schemas import DocumentIssue, DocumentType, IngestionReport
from campus_search.shared.utils import chunked

logger = get_logger(__name__)


class IndexPipeline:
    """
    Writes documents to the class and employee indices.

    Features:
    - Batches of at most `batch_size` documents, one request at a time
    - Per-document failures reported, never swallowed
    - Read-after-write visibility via refresh=wait_for
    - No automatic retries; callers decide using the report

    Example:
        >>> pipeline = IndexPipeline()
        >>> report = pipeline.reindex_all(courses, employees)
        >>> report.raise_for_failures()
    """

    def __init__(
        self,
        store: Optional[ElasticStore] = None,
        batch_size: Optional[int] = None,
        refresh: Optional[str] = None,
        vocabulary: Optional[SubjectVocabulary] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            store: ElasticStore instance (creates default if None)
            batch_size: Documents per bulk request
            refresh: Refresh policy sent with every write
            vocabulary: Subject cache to invalidate after a reindex
        """
        settings = get_settings()

        self._store = store
        self.batch_size = batch_size or settings.ingestion.batch_size
        self.refresh = refresh if refresh is not None else settings.ingestion.refresh
        self._vocabulary = vocabulary

        if self.batch_size < 1:
            raise SearchInputError("batch_size must be positive")

    @property
    def store(self) -> ElasticStore:
        """Lazy load the elastic store."""
        if self._store is None:
            self._store = get_elastic_store()
        return self._store

    def _index_for(self, document: dict[str, Any]) -> str:
        doc_type = document.get("type")
        if doc_type == DocumentType.CLASS.value:
            return self.store.class_index
        if doc_type == DocumentType.EMPLOYEE.value:
            return self.store.employee_index
        raise SearchInputError(f"Unknown document type: {doc_type!r}")

    # ─────────────────────────────────────────────────────────────────────
    # Maintenance
    # ─────────────────────────────────────────────────────────────────────

    def reset(self) -> None:
        """
        Drop and recreate both indices.

        Searches fail or return nothing until documents are written again.
        """
        self.store.reset_index(self.store.class_index, CLASS_MAPPING, settings=INDEX_SETTINGS)
        self.store.reset_index(self.store.employee_index, EMPLOYEE_MAPPING, settings=INDEX_SETTINGS)
        if self._vocabulary is not None:
            self._vocabulary.clear()

    def reindex_all(
        self,
        classes: Iterable[CourseInput] = (),
        employees: Iterable[EmployeeInput] = (),
    ) -> IngestionReport:
        """
        Replace the contents of both indices.

        Records are validated before the indices are touched; invalid ones
        are listed as rejected and the rest are written.

        Args:
            classes: Course offerings (models or raw dicts)
            employees: Employees (models or raw dicts)

        Returns:
            Combined report for both indices
        """
        class_docs, class_report = build_class_documents(classes)
        employee_docs, employee_report = build_employee_documents(employees)

        logger.info(
            f"Reindexing {len(class_docs)} classes and {len(employee_docs)} employees"
        )
        self.reset()

        report = class_report.merge(employee_report)
        report = report.merge(self.upsert(class_docs, index=self.store.class_index))
        report = report.merge(self.upsert(employee_docs, index=self.store.employee_index))

        # Subjects may have changed
        if self._vocabulary is not None:
            self._vocabulary.clear()

        logger.info(f"Reindex finished: {report.summary()}")
        return report

    # ─────────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────────

    def upsert(
        self,
        documents_by_id: dict[str, dict[str, Any]],
        index: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> IngestionReport:
        """
        Index documents, replacing any existing document with the same id.

        Args:
            documents_by_id: Map of document ids to full document bodies
            index: Target index (routed by each document's `type` if None)
            timeout: Per-request timeout in seconds

        Returns:
            Report of indexed and failed ids

        Raises:
            IndexUnavailableError: If a bulk request itself fails; earlier
                batches stay written
        """
        return self._write(documents_by_id, index, action="index", timeout=timeout)

    def update(
        self,
        partial_by_id: dict[str, dict[str, Any]],
        index: str,
        timeout: Optional[float] = None,
    ) -> IngestionReport:
        """
        Patch only the provided fields of existing documents.

        Ids that do not exist are reported as failed.
        """
        return self._write(partial_by_id, index, action="update", timeout=timeout)

    def _write(
        self,
        documents_by_id: dict[str, dict[str, Any]],
        index: Optional[str],
        action: str,
        timeout: Optional[float],
    ) -> IngestionReport:
        report = IngestionReport()
        if not documents_by_id:
            return report

        if index is None:
            by_index: dict[str, dict[str, dict[str, Any]]] = {}
            for doc_id, document in documents_by_id.items():
                by_index.setdefault(self._index_for(document), {})[doc_id] = document
        else:
            by_index = {index: documents_by_id}

        for target, documents in by_index.items():
            for batch_ids in chunked(list(documents), self.batch_size):
                operations: list[dict[str, Any]] = []
                for doc_id in batch_ids:
                    operations.append({action: {"_id": doc_id}})
                    if action == "update":
                        operations.append({"doc": documents[doc_id]})
                    else:
                        operations.append(documents[doc_id])

                response = self.store.bulk(
                    target, operations, refresh=self.refresh, timeout=timeout
                )
                report.batches += 1
                self._collect(response, target, batch_ids, report)

                logger.debug(
                    f"Batch {report.batches} to {target}: "
                    f"{len(report.indexed)} ok, {len(report.failed)} failed so far"
                )

        if report.failed:
            logger.warning(f"{len(report.failed)} document(s) failed to {action}")
        logger.info(f"Wrote {len(report.indexed)} documents in {report.batches} batch(es)")
        return report

    @staticmethod
    def _collect(
        response: dict[str, Any],
        index: str,
        batch_ids: list[str],
        report: IngestionReport,
    ) -> None:
        """Sort the items of a bulk response into indexed and failed."""
        items = response.get("items", [])
        for position, item in enumerate(items):
            result = next(iter(item.values()))
            doc_id = result.get("_id") or batch_ids[position]
            error = result.get("error")
            if error:
                reason = error.get("reason", str(error)) if isinstance(error, dict) else str(error)
                report.failed.append(
                    DocumentIssue(
                        id=doc_id,
                        index=index,
                        reason=reason,
                        status=result.get("status"),
                    )
                )
            else:
                report.indexed.append(doc_id)

        # An item list shorter than the batch means the engine dropped some
        for doc_id in batch_ids[len(items):]:
            report.failed.append(
                DocumentIssue(id=doc_id, index=index, reason="missing from bulk response")
            )

    # ─────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────

    def get_batch(
        self,
        ids: list[str],
        index: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, dict[str, Any]]:
        """
        Fetch documents by id in one round trip.

        Args:
            ids: Document ids
            index: Index to read (both indices if None)
            timeout: Request timeout in seconds

        Returns:
            Map of found ids to documents; missing ids are left out
        """
        target = index or [self.store.class_index, self.store.employee_index]
        return self.store.mget(target, list(ids), timeout=timeout)

    def get(self, doc_id: str, index: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Fetch one document, or None if it does not exist."""
        return self.get_batch([doc_id], index=index).get(doc_id)
