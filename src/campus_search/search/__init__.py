"""
Search Module - Query analysis, ranking and suggestions.
========================================================

Request flow:
    raw query → QueryAnalyzer → AliasResolver → SearchOrchestrator → RankedResult

- analyzer: Classify queries (course code, CRN, contact, free text)
- aliases: Informal names to canonical phrases
- ranking: Engine query construction, term filtering, demotion
- suggest: Phrase and term spelling suggestions
"""

from campus_search.search.aliases import AliasResolver
from campus_search.search.analyzer import QueryAnalyzer, analyze_query
from campus_search.search.ranking import SearchOrchestrator, get_orchestrator, search
from campus_search.search.suggest import Suggester

__all__ = [
    "AliasResolver",
    "QueryAnalyzer",
    "analyze_query",
    "SearchOrchestrator",
    "get_orchestrator",
    "search",
    "Suggester",
]
