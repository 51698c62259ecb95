"""
Campus Search - Course and staff search over Elasticsearch
==========================================================

Finds course offerings and staff members by free text, course code,
registration number (CRN), email or phone number, scoped to an academic
term, and returns one relevance-ranked list.

The package covers:

- query analysis: recognizing course codes, CRNs and contact identifiers
- ranking: weighted multi-field queries, term filtering, section demotion
- suggestion: typo correction from the index vocabulary
- ingestion: validating source records and bulk writing them in batches
"""

__version__ = "0.1.0"
__author__ = "Campus Search Team"
__license__ = "MIT"

# Public API - lazy imports to avoid circular dependencies and speed up startup
__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Main modules (imported on demand)
    "shared",
    "ingestion",
    "indexing",
    "search",
    "cli",
]
