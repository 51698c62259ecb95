"""
Elastic Store Module - Elasticsearch wrapper for storage and retrieval.
=======================================================================

Provides a thin interface to Elasticsearch for:
- Index reset with fixed mappings
- Bulk writes and multi-get
- Search, suggestion and aggregation requests
- Timeouts and error translation

Everything above this module works with plain response dicts and the
exception types in campus_search.shared.errors; no other module imports
the elasticsearch client.
"""

from typing import Any, Optional, Union

from elasticsearch import ApiError, Elasticsearch, NotFoundError, TransportError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from campus_search.shared.config import ElasticConfig, get_settings
from campus_search.shared.errors import IndexUnavailableError
from campus_search.shared.logging import get_logger

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Error Translation
# ─────────────────────────────────────────────────────────────────────────────


def _status_of(error: Exception) -> Optional[int]:
    meta = getattr(error, "meta", None)
    return getattr(meta, "status", None)


def translate_error(error: Exception, operation: str) -> IndexUnavailableError:
    """
    Map an Elasticsearch client exception to IndexUnavailableError.

    Connection failures, timeouts, 429 and 5xx responses are retryable;
    other API errors are not.
    """
    status = _status_of(error)
    if isinstance(error, ApiError):
        retryable = status is None or status == 429 or status >= 500
    else:
        retryable = True
    return IndexUnavailableError(
        f"Elasticsearch {operation} failed: {error}",
        retryable=retryable,
        status=status,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Elastic Store Class
# ─────────────────────────────────────────────────────────────────────────────


class ElasticStore:
    """
    Elasticsearch wrapper used by search and ingestion.

    Features:
    - Per-call timeout (falls back to the configured request timeout)
    - Client exceptions translated to IndexUnavailableError
    - Startup wait with exponential backoff

    Example:
        >>> store = ElasticStore()
        >>> store.reset_index("classes", mappings=CLASS_MAPPING)
        >>> store.bulk("classes", operations, refresh="wait_for")
    """

    def __init__(
        self,
        client: Optional[Elasticsearch] = None,
        config: Optional[ElasticConfig] = None,
        url: Optional[str] = None,
    ):
        """
        Initialize the store.

        Args:
            client: Existing Elasticsearch client (created from config if None)
            config: Elastic settings (uses application settings if None)
            url: Cluster URL override
        """
        settings = get_settings()

        self.config = config or settings.elastic
        self.url = url or settings.get_effective_elastic_url()
        self._client = client or Elasticsearch(
            self.url,
            request_timeout=self.config.request_timeout,
        )

        logger.debug(f"Elastic store initialized: url={self.url}")

    @property
    def class_index(self) -> str:
        return self.config.class_index

    @property
    def employee_index(self) -> str:
        return self.config.employee_index

    @property
    def all_indices(self) -> str:
        """Comma-joined index expression searching both document kinds."""
        return f"{self.class_index},{self.employee_index}"

    def _client_for(self, timeout: Optional[float]) -> Elasticsearch:
        return self._client.options(
            request_timeout=timeout if timeout is not None else self.config.request_timeout
        )

    # ─────────────────────────────────────────────────────────────────────
    # Connectivity
    # ─────────────────────────────────────────────────────────────────────

    def ping(self, timeout: Optional[float] = None) -> bool:
        """Return True if the cluster answers."""
        try:
            return bool(self._client_for(timeout).ping())
        except (ApiError, TransportError) as e:
            logger.debug(f"Ping failed: {e}")
            return False

    def wait_until_available(self) -> None:
        """
        Block until the cluster answers a ping.

        Raises:
            IndexUnavailableError: If the cluster is still down after
                the configured number of attempts
        """

        @retry(
            retry=retry_if_exception_type(IndexUnavailableError),
            stop=stop_after_attempt(self.config.connect_retries),
            wait=wait_exponential(min=self.config.retry_min_wait, max=self.config.retry_max_wait),
            before_sleep=lambda retry_state: logger.warning(
                f"Elasticsearch not reachable at {self.url}, "
                f"retry {retry_state.attempt_number}/{self.config.connect_retries}"
            ),
            reraise=True,
        )
        def _ping_with_retry() -> None:
            if not self.ping():
                raise IndexUnavailableError(f"Elasticsearch not reachable at {self.url}")

        _ping_with_retry()

    # ─────────────────────────────────────────────────────────────────────
    # Index Management
    # ─────────────────────────────────────────────────────────────────────

    def reset_index(
        self,
        index: str,
        mappings: dict[str, Any],
        settings: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Delete an index if it exists and recreate it with a fixed mapping.

        The index is unavailable between the two calls.
        """
        client = self._client_for(timeout)
        try:
            client.indices.delete(index=index, ignore_unavailable=True)
            client.indices.create(index=index, mappings=mappings, settings=settings)
        except (ApiError, TransportError) as e:
            raise translate_error(e, f"reset of '{index}'") from e

        logger.info(f"Reset index: {index}")

    # ─────────────────────────────────────────────────────────────────────
    # Documents
    # ─────────────────────────────────────────────────────────────────────

    def bulk(
        self,
        index: str,
        operations: list[dict[str, Any]],
        refresh: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Send one bulk request.

        Returns:
            The bulk response body; per-item failures are left for the caller
        """
        kwargs: dict[str, Any] = {"index": index, "operations": operations}
        if refresh:
            kwargs["refresh"] = refresh
        try:
            response = self._client_for(timeout).bulk(**kwargs)
        except (ApiError, TransportError) as e:
            raise translate_error(e, f"bulk write to '{index}'") from e
        return dict(response)

    def mget(
        self,
        index: Union[str, list[str]],
        ids: list[str],
        timeout: Optional[float] = None,
    ) -> dict[str, dict[str, Any]]:
        """
        Fetch many documents by id in one round trip.

        Args:
            index: One index, or several to look each id up in all of them
            ids: Document ids

        Returns:
            Mapping of found ids to document sources; missing ids are omitted
        """
        if not ids:
            return {}
        client = self._client_for(timeout)
        try:
            if isinstance(index, str):
                response = client.mget(index=index, ids=ids)
            else:
                docs = [{"_index": name, "_id": doc_id} for doc_id in ids for name in index]
                response = client.mget(docs=docs)
        except (ApiError, TransportError) as e:
            raise translate_error(e, f"mget from '{index}'") from e

        return {
            doc["_id"]: doc["_source"]
            for doc in response["docs"]
            if doc.get("found")
        }

    def get(
        self,
        index: str,
        doc_id: str,
        timeout: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        """Fetch one document source, or None if it does not exist."""
        try:
            response = self._client_for(timeout).get(index=index, id=doc_id)
        except NotFoundError:
            return None
        except (ApiError, TransportError) as e:
            raise translate_error(e, f"get from '{index}'") from e
        return response["_source"]

    # ─────────────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────────────

    def search(
        self,
        index: str,
        body: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Run a search request.

        Args:
            index: Index name or comma-joined expression
            body: Request body (query, sort, from, size, aggs, suggest, ...)
            timeout: Request timeout in seconds

        Returns:
            The search response body
        """
        params = dict(body)
        if "from" in params:
            params["from_"] = params.pop("from")
        try:
            response = self._client_for(timeout).search(index=index, **params)
        except (ApiError, TransportError) as e:
            raise translate_error(e, f"search on '{index}'") from e

        result = dict(response)
        logger.debug(f"Search on {index} took {result.get('took', 0)}ms")
        return result

    def suggest(
        self,
        index: str,
        suggest: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Run a suggest-only search and return the `suggest` section."""
        response = self.search(index, {"size": 0, "suggest": suggest}, timeout=timeout)
        return response.get("suggest", {})

    def aggregate_terms(
        self,
        index: str,
        field: str,
        size: int = 10000,
        timeout: Optional[float] = None,
    ) -> list[str]:
        """
        Collect every distinct value of a keyword field.

        Returns:
            Bucket keys, most frequent first
        """
        body = {
            "size": 0,
            "aggs": {"values": {"terms": {"field": field, "size": size}}},
        }
        response = self.search(index, body, timeout=timeout)
        buckets = response.get("aggregations", {}).get("values", {}).get("buckets", [])
        return [bucket["key"] for bucket in buckets]


# ─────────────────────────────────────────────────────────────────────────────
# Factory Function
# ─────────────────────────────────────────────────────────────────────────────


_store: Optional[ElasticStore] = None


def create_elastic_store(url: Optional[str] = None) -> ElasticStore:
    """Create an ElasticStore from the application settings."""
    return ElasticStore(url=url)


def get_elastic_store() -> ElasticStore:
    """Get the process-wide store instance."""
    global _store
    if _store is None:
        _store = create_elastic_store()
    return _store
