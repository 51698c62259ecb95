"""
Subject Vocabulary Module - Cached set of known subject codes.
==============================================================

The query analyzer needs to know whether the letters of a query like
"thtr1000" are a real subject. The set is computed once from a terms
aggregation over indexed classes and then served from memory.

Lifecycle:
- populated on first use, at most once at a time (single flight)
- never refreshed automatically; call clear() after a reindex
- a failed computation leaves the cache empty so the next call retries
"""

import threading
from typing import Optional

from campus_search.indexing.elastic_store import ElasticStore, get_elastic_store
from campus_search.shared.errors import IndexUnavailableError, SubjectCacheError
from campus_search.shared.logging import get_logger

logger = get_logger(__name__)

SUBJECT_FIELD = "class.subject"


class SubjectVocabulary:
    """
    Process-wide cache of lowercased subject codes.

    Example:
        >>> vocabulary = SubjectVocabulary(store)
        >>> "cs" in vocabulary.subjects()
        True
        >>> vocabulary.clear()
    """

    def __init__(self, store: Optional[ElasticStore] = None, timeout: Optional[float] = None):
        self._store = store
        self._timeout = timeout
        self._subjects: Optional[frozenset[str]] = None
        self._lock = threading.Lock()

    @property
    def store(self) -> ElasticStore:
        """Lazy load the elastic store."""
        if self._store is None:
            self._store = get_elastic_store()
        return self._store

    @property
    def is_loaded(self) -> bool:
        return self._subjects is not None

    def subjects(self) -> frozenset[str]:
        """
        Get the known subject codes, computing them on first call.

        Raises:
            SubjectCacheError: If the aggregation failed
        """
        subjects = self._subjects
        if subjects is not None:
            return subjects

        with self._lock:
            # Another thread may have finished while we waited
            if self._subjects is not None:
                return self._subjects

            try:
                keys = self.store.aggregate_terms(
                    self.store.class_index,
                    SUBJECT_FIELD,
                    timeout=self._timeout,
                )
            except IndexUnavailableError as e:
                logger.error(f"Could not load subject vocabulary: {e}")
                raise SubjectCacheError(str(e), retryable=e.retryable, status=e.status) from e

            self._subjects = frozenset(str(key).lower() for key in keys)
            logger.info(f"Loaded {len(self._subjects)} subjects")
            return self._subjects

    def __contains__(self, subject: str) -> bool:
        return subject.lower() in self.subjects()

    def clear(self) -> None:
        """Forget the cached subjects; the next call recomputes them."""
        with self._lock:
            self._subjects = None
        logger.debug("Subject vocabulary cleared")


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


_vocabulary: Optional[SubjectVocabulary] = None
_vocabulary_lock = threading.Lock()


def get_subject_vocabulary() -> SubjectVocabulary:
    """Get the process-wide subject vocabulary."""
    global _vocabulary
    with _vocabulary_lock:
        if _vocabulary is None:
            _vocabulary = SubjectVocabulary()
        return _vocabulary


def clear_subject_cache() -> None:
    """Clear the process-wide subject vocabulary if it exists."""
    if _vocabulary is not None:
        _vocabulary.clear()
