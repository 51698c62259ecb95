"""
Ranking Module - Build engine queries and merge classes and employees.
======================================================================

Turns an analyzed query into one ranked list of class and employee
documents for a term:
- CRN and contact queries try an exact filtered lookup first
- Course-code queries are restricted to the subject they name
- Free-text queries go through aliases and typo correction
- Lab, recitation and seminar sections are demoted, not hidden

Ordering of every result: score descending, then class number ascending.
A demoted section never precedes a non-demoted section of the same course
family (host, term, subject) that has the same score, and is never the top
hit while such a section is in the fetched window. A section promoted to
the top takes the top score, so scores stay non-increasing.
"""

import re
from typing import Any, Optional, Union

from pydantic import ValidationError

from campus_search.indexing.elastic_store import ElasticStore, get_elastic_store
from campus_search.search.aliases import AliasResolver
from campus_search.search.analyzer import QueryAnalyzer
from campus_search.search.suggest import Suggester
from campus_search.shared.config import SearchConfig, get_settings
from campus_search.shared.errors import IndexUnavailableError, SearchInputError
from campus_search.shared.logging import get_logger
from campus_search.shared.schemas import (
    AnalyzedQuery,
    ClassDocument,
    DocumentType,
    QueryKind,
    RankedResult,
    SearchHit,
)

logger = get_logger(__name__)

# Tie-break after relevance; employees have no class number
SORT_ORDER: list[Any] = [
    "_score",
    {"class.class_id": {"order": "asc", "unmapped_type": "keyword"}},
]

# Boost for an exact class number in a course-code query
CLASS_ID_BOOST = 10.0


def term_filter(term_id: str) -> dict[str, Any]:
    """
    Eligibility filter: classes of the given term, and every employee.

    Example:
        >>> term_filter("202010")["bool"]["minimum_should_match"]
        1
    """
    return {
        "bool": {
            "should": [
                {
                    "bool": {
                        "filter": [
                            {"term": {"type": DocumentType.CLASS.value}},
                            {"term": {"class.term_id": term_id}},
                        ]
                    }
                },
                {"term": {"type": DocumentType.EMPLOYEE.value}},
            ],
            "minimum_should_match": 1,
        }
    }


class SearchOrchestrator:
    """
    Runs searches against the class and employee indices.

    Example:
        >>> orchestrator = SearchOrchestrator()
        >>> result = orchestrator.search("cs2500", "202010", limit=5)
        >>> print(result.top.class_.code)
        CS 2500
    """

    def __init__(
        self,
        store: Optional[ElasticStore] = None,
        analyzer: Optional[QueryAnalyzer] = None,
        aliases: Optional[AliasResolver] = None,
        suggester: Optional[Suggester] = None,
        config: Optional[SearchConfig] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: ElasticStore instance (creates default if None)
            analyzer: Query analyzer (uses the process-wide subjects if None)
            aliases: Alias resolver (uses configured aliases if None)
            suggester: Typo corrector sharing the same store if None
            config: Search settings (uses application settings if None)
        """
        self._store = store
        self.config = config or get_settings().search
        self.analyzer = analyzer or QueryAnalyzer(config=self.config)
        self.aliases = aliases or AliasResolver()
        self._suggester = suggester

        logger.debug(
            f"Search orchestrator initialized: default_limit={self.config.default_limit}, "
            f"aliases={len(self.aliases)}"
        )

    @property
    def store(self) -> ElasticStore:
        """Lazy load the elastic store."""
        if self._store is None:
            self._store = get_elastic_store()
        return self._store

    @property
    def suggester(self) -> Suggester:
        if self._suggester is None:
            self._suggester = Suggester(store=self.store, config=self.config)
        return self._suggester

    # ─────────────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────────────

    def search(
        self,
        query: Union[str, AnalyzedQuery],
        term_id: str,
        offset: int = 0,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> RankedResult:
        """
        Search classes of one term and all employees.

        Args:
            query: Raw query or an already analyzed one
            term_id: Term to restrict classes to (e.g., '202010')
            offset: Number of ranked hits to skip
            limit: Page size (default from settings)
            timeout: Per-request timeout in seconds

        Returns:
            RankedResult for the requested page

        Raises:
            SearchInputError: Malformed term id or pagination
            IndexUnavailableError: Engine unreachable or timed out
        """
        limit = self.config.default_limit if limit is None else limit
        self._validate(term_id, offset, limit)

        analyzed = query if isinstance(query, AnalyzedQuery) else self.analyzer.analyze(query)

        if analyzed.is_empty:
            return RankedResult(query=analyzed)

        if analyzed.kind in (QueryKind.CRN, QueryKind.CONTACT):
            result = self._exact_lookup(analyzed, term_id, offset, limit, timeout)
            if result.total > 0:
                return result
            logger.debug(f"No exact match for '{analyzed.text}', searching as free text")
            analyzed = analyzed.as_free_text()

        if analyzed.kind == QueryKind.FREE_TEXT:
            analyzed = self.aliases.expand(analyzed)

        window = min(offset + limit + self.config.rerank_lookahead, self.config.max_result_window)
        result = self._ranked(analyzed, term_id, window, timeout)

        if analyzed.kind == QueryKind.FREE_TEXT and analyzed.alias_of is None:
            result = self._with_correction(result, term_id, window, timeout)

        logger.info(
            f"Search '{analyzed.raw}' ({analyzed.kind.value}) in {term_id}: "
            f"{result.total} hits in {result.took_ms}ms"
        )
        return result.model_copy(update={"hits": result.hits[offset:offset + limit]})

    def _validate(self, term_id: str, offset: int, limit: int) -> None:
        if not isinstance(term_id, str) or not re.match(self.config.term_id_pattern, term_id):
            raise SearchInputError(f"Malformed term id: {term_id!r}")
        if offset < 0:
            raise SearchInputError(f"offset must not be negative, got {offset}")
        if limit < 0:
            raise SearchInputError(f"limit must not be negative, got {limit}")
        if limit > self.config.max_limit:
            raise SearchInputError(f"limit must be at most {self.config.max_limit}, got {limit}")
        if offset + limit > self.config.max_result_window:
            raise SearchInputError(
                f"offset + limit must be at most {self.config.max_result_window}, "
                f"got {offset + limit}"
            )

    # ─────────────────────────────────────────────────────────────────────
    # Query Building
    # ─────────────────────────────────────────────────────────────────────

    def _exact_lookup(
        self,
        analyzed: AnalyzedQuery,
        term_id: str,
        offset: int,
        limit: int,
        timeout: Optional[float],
    ) -> RankedResult:
        """Filter-only lookup for CRN and contact queries."""
        if analyzed.kind == QueryKind.CRN:
            index = self.store.class_index
            filters = [
                {"term": {"class.crns": analyzed.crn}},
                {"term": {"class.term_id": term_id}},
            ]
        elif analyzed.email:
            index = self.store.employee_index
            filters = [{"term": {"employee.emails": analyzed.email}}]
        else:
            index = self.store.employee_index
            filters = [{"term": {"employee.phones": analyzed.phone}}]

        body = {
            "query": {"constant_score": {"filter": {"bool": {"filter": filters}}}},
            "sort": SORT_ORDER,
            "from": offset,
            "size": limit,
        }
        response = self.store.search(index, body, timeout=timeout)
        return self._to_result(response, analyzed)

    def demotes(self, analyzed: AnalyzedQuery) -> bool:
        """Whether demoted section types are ranked down for this query."""
        if not self.config.demoted_schedule_types:
            return False
        # A query naming one class number asks for that section
        return not (analyzed.kind == QueryKind.COURSE_CODE and analyzed.class_id)

    def build_query(self, analyzed: AnalyzedQuery, term_id: str) -> dict[str, Any]:
        """
        Build the scored query for course-code and free-text searches.

        Returns:
            The `query` section of the request body
        """
        text_query: dict[str, Any] = {
            "multi_match": {
                "query": analyzed.text,
                "type": "most_fields",
                "fields": self.config.search_fields,
            }
        }

        filters: list[dict[str, Any]] = [term_filter(term_id)]
        should: list[dict[str, Any]] = []

        if analyzed.kind == QueryKind.COURSE_CODE:
            filters.append({"term": {"class.subject": analyzed.subject}})
            if analyzed.class_id:
                should.append(
                    {"term": {"class.class_id": {"value": analyzed.class_id, "boost": CLASS_ID_BOOST}}}
                )

        query: dict[str, Any] = {"bool": {"must": text_query, "filter": filters}}
        if should:
            query["bool"]["should"] = should

        if not self.demotes(analyzed):
            return query

        return {
            "function_score": {
                "query": query,
                "functions": [
                    {
                        "filter": {"terms": {"class.schedule_type": self.config.demoted_schedule_types}},
                        "weight": self.config.demotion_weight,
                    }
                ],
                "score_mode": "multiply",
                "boost_mode": "multiply",
            }
        }

    def _ranked(
        self,
        analyzed: AnalyzedQuery,
        term_id: str,
        window: int,
        timeout: Optional[float],
    ) -> RankedResult:
        """Scored search over both indices, fetched from the first hit."""
        body = {
            "query": self.build_query(analyzed, term_id),
            "sort": SORT_ORDER,
            "from": 0,
            "size": window,
        }
        response = self.store.search(self.store.all_indices, body, timeout=timeout)
        result = self._to_result(response, analyzed)
        if not self.demotes(analyzed):
            return result
        hits = self.promote_top(self.demote_ties(result.hits))
        return result.model_copy(update={"hits": hits})

    def _with_correction(
        self,
        result: RankedResult,
        term_id: str,
        window: int,
        timeout: Optional[float],
    ) -> RankedResult:
        """
        Retry a free-text search with a spelling correction.

        An empty result takes any correction; a non-empty one only takes a
        phrase correction whose results score higher.
        """
        analyzed = result.query
        if analyzed is None:
            return result

        correction = self.suggester.best_correction(
            analyzed.text,
            timeout=timeout,
            allow_terms=result.total == 0,
        )
        if correction is None:
            return result

        corrected_query = analyzed.model_copy(update={"text": correction})
        try:
            corrected = self._ranked(corrected_query, term_id, window, timeout)
        except IndexUnavailableError as e:
            logger.warning(f"Corrected search for '{correction}' failed: {e}")
            return result

        if not corrected.hits:
            return result
        if result.hits and corrected.hits[0].score <= result.hits[0].score:
            return result

        logger.info(f"Corrected '{analyzed.text}' to '{correction}'")
        return corrected.model_copy(update={"query": analyzed, "corrected_query": correction})

    # ─────────────────────────────────────────────────────────────────────
    # Results
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _to_result(response: dict[str, Any], analyzed: AnalyzedQuery) -> RankedResult:
        hits_section = response.get("hits", {})
        total = hits_section.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        hits: list[SearchHit] = []
        skipped: list[str] = []
        for hit in hits_section.get("hits", []):
            try:
                hits.append(
                    SearchHit(
                        id=hit["_id"],
                        score=hit.get("_score") or 0.0,
                        document=hit["_source"],
                    )
                )
            except ValidationError as e:
                # Documents written by an older mapping; skip but say so
                logger.warning(f"Skipping unreadable document {hit.get('_id')}: {e}")
                skipped.append(str(hit.get("_id")))

        return RankedResult(
            hits=hits,
            total=total,
            took_ms=response.get("took", 0),
            query=analyzed,
            skipped=skipped,
        )

    def is_demoted(self, hit: SearchHit) -> bool:
        payload = hit.class_
        return payload is not None and payload.schedule_type in self.config.demoted_schedule_types

    def demote_ties(self, hits: list[SearchHit]) -> list[SearchHit]:
        """
        Reorder tied hits so demoted sections follow their family.

        Within each run of equal scores, a demoted class is moved to right
        after the first non-demoted class of the same family. Everything
        else keeps the engine's order.
        """
        ordered: list[SearchHit] = []
        start = 0
        while start < len(hits):
            end = start
            while end < len(hits) and hits[end].score == hits[start].score:
                end += 1
            ordered.extend(self._reorder_group(hits[start:end]))
            start = end
        return ordered

    def _reorder_group(self, group: list[SearchHit]) -> list[SearchHit]:
        leaders = {
            hit.class_.family
            for hit in group
            if hit.class_ is not None and not self.is_demoted(hit)
        }
        emitted: set[tuple[str, str, str]] = set()
        pending: dict[tuple[str, str, str], list[SearchHit]] = {}
        ordered: list[SearchHit] = []

        for hit in group:
            payload = hit.class_
            if payload is None:
                ordered.append(hit)
                continue

            family = payload.family
            if self.is_demoted(hit):
                if family in leaders and family not in emitted:
                    pending.setdefault(family, []).append(hit)
                else:
                    ordered.append(hit)
                continue

            ordered.append(hit)
            if family not in emitted:
                emitted.add(family)
                ordered.extend(pending.pop(family, []))

        return ordered

    def promote_top(self, hits: list[SearchHit]) -> list[SearchHit]:
        """
        Keep a demoted section from being the top hit.

        When the first hit is demoted and a non-demoted class of its family
        is further down the window, that class moves to the top with the
        top score. The remaining hits keep their order.
        """
        if not hits or not self.is_demoted(hits[0]):
            return hits

        family = hits[0].class_.family
        for position, hit in enumerate(hits[1:], start=1):
            payload = hit.class_
            if payload is None or payload.family != family or self.is_demoted(hit):
                continue
            logger.debug(f"Promoting {payload.code} over demoted {hits[0].class_.code}")
            promoted = hit.model_copy(update={"score": hits[0].score})
            return [promoted] + hits[:position] + hits[position + 1:]

        return hits

    # ─────────────────────────────────────────────────────────────────────
    # Class Occurrences
    # ─────────────────────────────────────────────────────────────────────

    def get_class_occurrences(
        self,
        host: str,
        subject: str,
        class_id: str,
        size: int = 10,
        timeout: Optional[float] = None,
    ) -> list[ClassDocument]:
        """
        Find the offerings of one course across terms, latest term first.

        Args:
            host: Institution host (e.g., 'neu.edu')
            subject: Subject code, any case
            class_id: Class number
            size: Maximum number of offerings

        Returns:
            Class documents, one per term
        """
        body = {
            "query": {
                "bool": {
                    "filter": [
                        {"term": {"class.host": host.strip()}},
                        {"term": {"class.subject": subject.strip().upper()}},
                        {"term": {"class.class_id": str(class_id).strip()}},
                    ]
                }
            },
            "sort": [{"class.term_id": {"order": "desc"}}],
            "size": size,
        }
        response = self.store.search(self.store.class_index, body, timeout=timeout)
        return [
            ClassDocument.model_validate(hit["_source"])
            for hit in response.get("hits", {}).get("hits", [])
        ]

    def get_latest_class_occurrence(
        self,
        host: str,
        subject: str,
        class_id: str,
        timeout: Optional[float] = None,
    ) -> Optional[ClassDocument]:
        """Get the offering of a course in its most recent term, or None."""
        occurrences = self.get_class_occurrences(host, subject, class_id, size=1, timeout=timeout)
        return occurrences[0] if occurrences else None


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


# Global orchestrator instance
_orchestrator: Optional[SearchOrchestrator] = None


def get_orchestrator() -> SearchOrchestrator:
    """Get the global orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SearchOrchestrator()
    return _orchestrator


def search(
    query: str,
    term_id: str,
    offset: int = 0,
    limit: Optional[int] = None,
) -> RankedResult:
    """
    Search classes and employees.

    Convenience function using the global orchestrator.
    """
    return get_orchestrator().search(query, term_id, offset=offset, limit=limit)
