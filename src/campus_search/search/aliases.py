"""
Alias Resolver Module - Informal names to canonical search phrases.
===================================================================

Maps nicknames and abbreviations ("fundies", "algo") to the phrase the
index actually contains ("fundamentals of computer science"). Lookup is
exact on the whole query after lowercasing and collapsing whitespace;
typo tolerance belongs to the suggestion layer.
"""

from typing import Optional

from campus_search.shared.config import get_settings
from campus_search.shared.logging import get_logger
from campus_search.shared.schemas import AnalyzedQuery, QueryKind
from campus_search.shared.utils import normalize_whitespace

logger = get_logger(__name__)


def _alias_key(phrase: str) -> str:
    return normalize_whitespace(phrase).lower()


class AliasResolver:
    """
    Case-insensitive alias table.

    Example:
        >>> resolver = AliasResolver({"fundies": "fundamentals of computer science"})
        >>> resolver.resolve("  Fundies ")
        'fundamentals of computer science'
    """

    def __init__(self, aliases: Optional[dict[str, str]] = None):
        """
        Initialize the resolver.

        Args:
            aliases: Alias to canonical phrase (uses configured aliases if None)
        """
        if aliases is None:
            aliases = get_settings().aliases

        self._aliases: dict[str, str] = {}
        for alias, phrase in aliases.items():
            self.add(alias, phrase)

        logger.debug(f"Alias resolver initialized with {len(self._aliases)} aliases")

    def add(self, alias: str, phrase: str) -> None:
        """Register an alias, replacing any earlier target."""
        key = _alias_key(alias)
        if not key:
            raise ValueError("alias must not be blank")
        self._aliases[key] = normalize_whitespace(phrase)

    def resolve(self, phrase: str) -> Optional[str]:
        """Get the canonical phrase for an alias, or None."""
        return self._aliases.get(_alias_key(phrase))

    def expand(self, query: AnalyzedQuery) -> AnalyzedQuery:
        """
        Substitute the canonical phrase into a free-text query.

        Other query kinds are returned unchanged.
        """
        if query.kind != QueryKind.FREE_TEXT:
            return query

        phrase = self.resolve(query.text)
        if phrase is None:
            return query

        logger.debug(f"Alias '{query.text}' -> '{phrase}'")
        return query.model_copy(update={"text": phrase, "alias_of": query.text})

    def __contains__(self, phrase: str) -> bool:
        return _alias_key(phrase) in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)
