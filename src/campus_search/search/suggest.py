"""
Suggestion Module - Spelling correction from the index itself.
==============================================================

Wraps the engine's two suggesters:
- term: per-token edit-distance corrections
- phrase: whole-phrase corrections, kept only when the corrected phrase
  scores at least as well as the input (confidence 1.0) and actually
  matches a document (collate with prune)

The ranking orchestrator uses best_correction() when a free-text query
comes back empty or weak.
"""

from typing import Any, Optional

from campus_search.indexing.elastic_store import ElasticStore, get_elastic_store
from campus_search.shared.config import SearchConfig, get_settings
from campus_search.shared.errors import IndexUnavailableError, SearchInputError
from campus_search.shared.logging import get_logger
from campus_search.shared.utils import normalize_whitespace

logger = get_logger(__name__)

PHRASE_SUGGESTION = "phrase_suggest"
TERM_SUGGESTION = "term_suggest"


class Suggester:
    """
    Phrase and term suggestions for a suggestable field.

    Example:
        >>> suggester = Suggester()
        >>> suggester.suggest("fundimentals of compiter science", "class.name")
        ['fundamentals of computer science']
    """

    def __init__(
        self,
        store: Optional[ElasticStore] = None,
        config: Optional[SearchConfig] = None,
    ):
        self._store = store
        self.config = config or get_settings().search

    @property
    def store(self) -> ElasticStore:
        """Lazy load the elastic store."""
        if self._store is None:
            self._store = get_elastic_store()
        return self._store

    def _index_for(self, field: str) -> str:
        if field not in self.config.suggest_fields:
            raise SearchInputError(
                f"Unknown suggestion field '{field}' "
                f"(expected one of {', '.join(self.config.suggest_fields)})"
            )
        if field.startswith("employee."):
            return self.store.employee_index
        return self.store.class_index

    def suggest(
        self,
        query: str,
        field: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[str]:
        """
        Get phrase corrections that exist in the index, best first.

        Args:
            query: Text to correct
            field: Suggestable field (default from settings)
            timeout: Request timeout in seconds

        Returns:
            Corrected phrases; empty if the input needs no correction

        Raises:
            SearchInputError: If the field is not suggestable
            IndexUnavailableError: If the engine request fails
        """
        field = field or self.config.suggest_field
        index = self._index_for(field)
        text = normalize_whitespace(query)
        if not text:
            return []

        suggest_field = f"{field}.suggestions"
        body: dict[str, Any] = {
            "text": text,
            PHRASE_SUGGESTION: {
                "phrase": {
                    "field": suggest_field,
                    "confidence": 1.0,
                    "collate": {
                        "query": {"source": {"match": {"{{field_name}}": "{{suggestion}}"}}},
                        "params": {"field_name": field},
                        "prune": True,
                    },
                    "direct_generator": [
                        {
                            "field": suggest_field,
                            "prefix_length": self.config.suggest_prefix_length,
                        },
                    ],
                },
            },
        }

        response = self.store.suggest(index, body, timeout=timeout)
        phrases: list[str] = []
        for entry in response.get(PHRASE_SUGGESTION, []):
            for option in entry.get("options", []):
                # With prune on, options that match nothing are flagged, not removed
                if option.get("collate_match", True):
                    phrases.append(option["text"])
        return phrases

    def term_suggest(
        self,
        query: str,
        field: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, list[str]]:
        """
        Get per-token corrections.

        Returns:
            Mapping of each input token to its candidates, best first
        """
        field = field or self.config.suggest_field
        index = self._index_for(field)
        text = normalize_whitespace(query)
        if not text:
            return {}

        body = {
            "text": text,
            TERM_SUGGESTION: {
                "term": {
                    "field": field,
                    "min_word_length": self.config.suggest_min_word_length,
                },
            },
        }

        response = self.store.suggest(index, body, timeout=timeout)
        return {
            entry["text"]: [option["text"] for option in entry.get("options", [])]
            for entry in response.get(TERM_SUGGESTION, [])
        }

    def best_correction(
        self,
        query: str,
        field: Optional[str] = None,
        timeout: Optional[float] = None,
        allow_terms: bool = True,
    ) -> Optional[str]:
        """
        Pick one correction for a query.

        Prefers the top phrase suggestion; falls back to replacing each
        token by its top term suggestion.

        Args:
            query: Text to correct
            field: Suggestable field (default from settings)
            timeout: Request timeout in seconds
            allow_terms: Whether to fall back to term suggestions

        Returns:
            Corrected text, or None if there is nothing better or the
            engine could not be asked
        """
        text = normalize_whitespace(query)
        if not text:
            return None

        try:
            for phrase in self.suggest(text, field, timeout=timeout):
                if phrase.lower() != text.lower():
                    return phrase

            if not allow_terms:
                return None
            corrections = self.term_suggest(text, field, timeout=timeout)
        except IndexUnavailableError as e:
            logger.warning(f"Suggestion lookup failed for '{text}': {e}")
            return None

        # The engine reports tokens as analyzed (lowercased)
        candidates = {token.lower(): options for token, options in corrections.items()}
        tokens = text.split()
        corrected = [
            candidates[token.lower()][0] if candidates.get(token.lower()) else token
            for token in tokens
        ]
        if [t.lower() for t in corrected] == [t.lower() for t in tokens]:
            return None
        return " ".join(corrected)
