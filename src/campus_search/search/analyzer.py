"""
Query Analyzer Module - Recognize what a raw query is asking for.
=================================================================

Classifies a raw query string as one of:
- empty: nothing to search for
- course_code: "cs2500", "CS 2500", "thtr" (subject must be known)
- contact: an email address or a phone number
- crn: a registration number like "10460"
- free_text: everything else

Course-code queries are rewritten to the canonical phrase ("CS 2500") so
every spelling of the same course produces the same engine query.
"""

import re
from typing import Optional

from campus_search.indexing.subjects import SubjectVocabulary, get_subject_vocabulary
from campus_search.shared.config import SearchConfig, get_settings
from campus_search.shared.logging import get_logger
from campus_search.shared.schemas import AnalyzedQuery, QueryKind
from campus_search.shared.utils import (
    PHONE_PUNCTUATION,
    canonical_code,
    normalize_whitespace,
    standardize_email,
    standardize_phone,
)

logger = get_logger(__name__)


# Letters, at most one space, then digits (digits optional)
COURSE_CODE_PATTERN = re.compile(r"^([a-z]+) ?(\d+)?$", re.IGNORECASE)
PHONE_SHAPE_PATTERN = re.compile(r"^[\d\s().\-+]+$")


class QueryAnalyzer:
    """
    Turns raw query strings into AnalyzedQuery objects.

    Checks run in a fixed order and the first one that matches wins:
    empty, course code, email, phone, CRN, free text.

    Example:
        >>> analyzer = QueryAnalyzer()
        >>> analyzer.analyze("cs2500").text
        'CS 2500'
        >>> analyzer.analyze("10460").kind
        <QueryKind.CRN: 'crn'>
    """

    def __init__(
        self,
        vocabulary: Optional[SubjectVocabulary] = None,
        config: Optional[SearchConfig] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            vocabulary: Known subject codes (process-wide cache if None)
            config: Search settings (uses application settings if None)
        """
        self._vocabulary = vocabulary
        self.config = config or get_settings().search

    @property
    def vocabulary(self) -> SubjectVocabulary:
        """Lazy load the subject vocabulary."""
        if self._vocabulary is None:
            self._vocabulary = get_subject_vocabulary()
        return self._vocabulary

    def analyze(self, raw: Optional[str]) -> AnalyzedQuery:
        """
        Analyze a raw query.

        Args:
            raw: Query string as typed by the user

        Returns:
            AnalyzedQuery with kind and normalized parts

        Raises:
            SubjectCacheError: If the subject vocabulary cannot be loaded
        """
        raw = raw or ""
        text = normalize_whitespace(raw)

        if not text:
            return AnalyzedQuery(raw=raw, text="", kind=QueryKind.EMPTY)

        analyzed = (
            self._as_course_code(raw, text)
            or self._as_email(raw, text)
            or self._as_phone(raw, text)
            or self._as_crn(raw, text)
            or AnalyzedQuery(raw=raw, text=text, kind=QueryKind.FREE_TEXT)
        )

        logger.debug(f"Analyzed '{raw}' as {analyzed.kind.value}: '{analyzed.text}'")
        return analyzed

    def _as_course_code(self, raw: str, text: str) -> Optional[AnalyzedQuery]:
        match = COURSE_CODE_PATTERN.match(text)
        if not match:
            return None

        letters, digits = match.group(1), match.group(2)
        if letters.lower() not in self.vocabulary.subjects():
            return None

        subject = letters.upper()
        return AnalyzedQuery(
            raw=raw,
            text=canonical_code(subject, digits),
            kind=QueryKind.COURSE_CODE,
            subject=subject,
            class_id=digits,
        )

    def _as_email(self, raw: str, text: str) -> Optional[AnalyzedQuery]:
        if "@" not in text:
            return None
        email = standardize_email(text)
        if email is None:
            return None
        return AnalyzedQuery(raw=raw, text=email, kind=QueryKind.CONTACT, email=email)

    def _as_phone(self, raw: str, text: str) -> Optional[AnalyzedQuery]:
        if not PHONE_SHAPE_PATTERN.match(text):
            return None
        # A bare CRN is all digits too; only accept phone-length numbers
        digits = PHONE_PUNCTUATION.sub("", text)
        if len(digits) < self.config.phone_length:
            return None
        phone = standardize_phone(text, length=self.config.phone_length)
        if phone is None:
            return None
        return AnalyzedQuery(raw=raw, text=phone, kind=QueryKind.CONTACT, phone=phone)

    def _as_crn(self, raw: str, text: str) -> Optional[AnalyzedQuery]:
        if text.isdigit() and len(text) == self.config.crn_length:
            return AnalyzedQuery(raw=raw, text=text, kind=QueryKind.CRN, crn=text)
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Convenience Functions
# ─────────────────────────────────────────────────────────────────────────────


def analyze_query(raw: str) -> AnalyzedQuery:
    """
    Analyze a query with the process-wide subject vocabulary.

    Example:
        >>> analyze_query("CS 2500").subject
        'CS'
    """
    return QueryAnalyzer().analyze(raw)
