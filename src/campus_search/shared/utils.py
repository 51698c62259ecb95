"""
Utilities Module - Common helper functions.
==========================================

Provides utility functions for:
- Canonical keys (class keys, course codes, employee ids)
- Contact normalization (emails, phone numbers, names)
- Hashing
- File I/O (JSONL)
- Batching
"""

import hashlib
import json
import re
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, TypeVar

from campus_search.shared.errors import SearchInputError
from campus_search.shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

KEY_SEPARATOR = "/"


# ─────────────────────────────────────────────────────────────────────────────
# Hashing Functions
# ─────────────────────────────────────────────────────────────────────────────


def compute_hash(text: str, algorithm: str = "sha256") -> str:
    """
    Compute hash of text content.

    Args:
        text: Text to hash
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Hexadecimal hash string

    Example:
        >>> compute_hash("hello world")
        'b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9'
    """
    hasher = hashlib.new(algorithm)
    hasher.update(text.encode("utf-8"))
    return hasher.hexdigest()


# ─────────────────────────────────────────────────────────────────────────────
# Canonical Keys
# ─────────────────────────────────────────────────────────────────────────────


def _require(name: str, value: Optional[str]) -> str:
    value = (value or "").strip()
    if not value:
        raise SearchInputError(f"{name} must not be empty")
    if KEY_SEPARATOR in value:
        raise SearchInputError(f"{name} must not contain '{KEY_SEPARATOR}': {value!r}")
    return value


def class_key(host: str, term_id: str, subject: str, class_id: str) -> str:
    """
    Build the canonical identity key of a course offering.

    Format: {host}/{term_id}/{SUBJECT}/{class_id}

    Args:
        host: Institution host domain (e.g., "neu.edu")
        term_id: Term identifier (e.g., "202010")
        subject: Subject code, any casing
        class_id: Class number, kept as given

    Returns:
        Canonical key

    Raises:
        SearchInputError: If any component is empty

    Example:
        >>> class_key("neu.edu", "202010", "cs", "2500")
        'neu.edu/202010/CS/2500'
    """
    parts = [
        _require("host", host),
        _require("term_id", term_id),
        _require("subject", subject).upper(),
        _require("class_id", class_id),
    ]
    return KEY_SEPARATOR.join(parts)


def canonical_code(subject: str, class_id: Optional[str] = None) -> str:
    """
    Build the canonical course-code phrase sent to the engine.

    Example:
        >>> canonical_code("cs", "2500")
        'CS 2500'
        >>> canonical_code("thtr")
        'THTR'
    """
    subject = subject.strip().upper()
    if class_id:
        return f"{subject} {class_id.strip()}"
    return subject


def employee_id(name: str, emails: Iterable[str] = (), link: Optional[str] = None) -> str:
    """
    Generate a stable employee document id.

    The id is derived from the lowercased name and the primary email, or the
    profile link when the employee has no email.

    Returns:
        First 16 hex chars of a sha256 digest
    """
    name = (name or "").strip().lower()
    if not name:
        raise SearchInputError("name must not be empty")
    emails = [e for e in emails if e]
    anchor = emails[0].lower() if emails else (link or "").strip().lower()
    return compute_hash(f"{name}|{anchor}")[:16]


# ─────────────────────────────────────────────────────────────────────────────
# Contact Normalization
# ─────────────────────────────────────────────────────────────────────────────


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$", re.IGNORECASE)
PHONE_PUNCTUATION = re.compile(r"[\s().\-+]")


def standardize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize an email address.

    Strips a mailto: prefix and surrounding whitespace, lowercases.
    Returns None if the result is not email-shaped.

    Example:
        >>> standardize_email(" mailto:A.Mislove@Northeastern.edu ")
        'a.mislove@northeastern.edu'
    """
    if not email:
        return None
    email = email.strip()
    if email.lower().startswith("mailto:"):
        email = email[len("mailto:"):]
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        return None
    return email


def standardize_phone(phone: Optional[str], length: int = 10) -> Optional[str]:
    """
    Normalize a phone number to digits only.

    A leading country code 1 on an 11-digit number is dropped.
    Returns None if the result does not have the expected length.

    Example:
        >>> standardize_phone("+1 (617) 373-7069")
        '6173737069'
    """
    if not phone:
        return None
    digits = PHONE_PUNCTUATION.sub("", phone.strip())
    if not digits.isdigit():
        return None
    if len(digits) == length + 1 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != length:
        return None
    return digits


def parse_name_with_spaces(name: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Split a display name into first and last name.

    Example:
        >>> parse_name_with_spaces("Alan  Mislove")
        ('Alan', 'Mislove')
        >>> parse_name_with_spaces("Cher")
        (None, None)
    """
    if not name:
        return None, None
    parts = name.split()
    if len(parts) < 2:
        return None, None
    return parts[0], parts[-1]


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return re.sub(r"\s+", " ", text).strip()


# ─────────────────────────────────────────────────────────────────────────────
# Batching
# ─────────────────────────────────────────────────────────────────────────────


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """
    Split an iterable into lists of at most `size` items.

    Example:
        >>> list(chunked([1, 2, 3, 4, 5], 2))
        [[1, 2], [3, 4], [5]]
    """
    if size < 1:
        raise ValueError("size must be positive")
    batch: list[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


# ─────────────────────────────────────────────────────────────────────────────
# File I/O
# ─────────────────────────────────────────────────────────────────────────────


def ensure_parent_directory(file_path: Path) -> Path:
    """Ensure the parent directory of a file exists."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    return file_path


def load_jsonl(file_path: Path) -> Iterator[dict[str, Any]]:
    """
    Load data from a JSONL (JSON Lines) file.

    Yields one record at a time. Invalid lines are logged and skipped.

    Example:
        >>> for course in load_jsonl(Path("data/courses.jsonl")):
        ...     print(course["subject"], course["class_id"])
    """
    file_path = Path(file_path)

    with open(file_path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON at line {line_num} in {file_path}: {e}")
                continue


def save_jsonl(file_path: Path, records: Iterable[dict[str, Any]]) -> int:
    """
    Save records to a JSONL file.

    Returns:
        Number of records written
    """
    file_path = ensure_parent_directory(Path(file_path))
    count = 0

    with open(file_path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False, default=str))
            f.write("\n")
            count += 1

    logger.debug(f"Saved {count} records to {file_path}")
    return count
