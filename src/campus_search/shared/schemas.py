"""
Schemas Module - Pydantic data models for the application.
==========================================================

Defines all data contracts used across the application:
- Source records (course offerings, employees)
- Index documents (class and employee documents)
- Query analysis and ranked results
- Ingestion reports
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator

from campus_search.shared.errors import BulkIndexError
from campus_search.shared.utils import (
    canonical_code,
    class_key,
    employee_id,
    parse_name_with_spaces,
    standardize_email,
    standardize_phone,
)


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class DocumentType(str, Enum):
    """Discriminator of index documents."""

    CLASS = "class"
    EMPLOYEE = "employee"


class QueryKind(str, Enum):
    """What a raw query string was recognized as."""

    EMPTY = "empty"
    COURSE_CODE = "course_code"
    CRN = "crn"
    CONTACT = "contact"
    FREE_TEXT = "free_text"


# ─────────────────────────────────────────────────────────────────────────────
# Requisite Graphs
# ─────────────────────────────────────────────────────────────────────────────


class CourseReference(BaseModel):
    """A reference to another course inside a requisite tree."""

    subject: str
    class_id: str = Field(..., validation_alias=AliasChoices("class_id", "classId"))
    missing: bool = Field(default=False, description="Course not offered in the catalog")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("subject")
    @classmethod
    def upper_subject(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("class_id", mode="before")
    @classmethod
    def class_id_to_str(cls, v: Any) -> str:
        return str(v).strip()


class RequisiteGroup(BaseModel):
    """
    A boolean combination of requisites.

    Leaves are course references or free-text requirements such as
    "Graduate Admission REQ".
    """

    type: Literal["and", "or"]
    values: list[Union[RequisiteGroup, CourseReference, str]] = Field(default_factory=list)

    def course_references(self) -> list[CourseReference]:
        """Flatten every course reference in the tree."""
        found: list[CourseReference] = []
        for value in self.values:
            if isinstance(value, CourseReference):
                found.append(value)
            elif isinstance(value, RequisiteGroup):
                found.extend(value.course_references())
        return found


RequisiteGroup.model_rebuild()


# ─────────────────────────────────────────────────────────────────────────────
# Source Records
# ─────────────────────────────────────────────────────────────────────────────


class CourseOffering(BaseModel):
    """
    A course as offered in one term.

    (host, term_id, subject, class_id) identifies the offering; the same
    course in another term is a different offering.
    """

    # Identity
    host: str = Field(..., min_length=1, description="Institution host (e.g., 'neu.edu')")
    term_id: str = Field(..., min_length=1, alias="termId", description="Term id (e.g., '202010')")
    subject: str = Field(..., min_length=1, description="Subject code (e.g., 'CS')")
    class_id: str = Field(..., min_length=1, alias="classId", description="Class number")

    # Content
    name: str = Field(default="", description="Course title")
    desc: Optional[str] = Field(default=None, description="Course description")
    schedule_type: Optional[str] = Field(default=None, alias="scheduleType")
    crns: list[str] = Field(default_factory=list, description="CRNs of the sections")

    # Credits
    min_credits: Optional[float] = Field(default=None, alias="minCredits")
    max_credits: Optional[float] = Field(default=None, alias="maxCredits")

    # Requisites
    prereqs: Optional[RequisiteGroup] = None
    coreqs: Optional[RequisiteGroup] = None
    prereqs_for: Optional[RequisiteGroup] = Field(default=None, alias="prereqsFor")
    opt_prereqs_for: Optional[RequisiteGroup] = Field(default=None, alias="optPrereqsFor")
    class_attributes: list[str] = Field(default_factory=list, alias="classAttributes")

    # Metadata
    url: Optional[str] = None
    pretty_url: Optional[str] = Field(default=None, alias="prettyUrl")
    last_update_time: Optional[datetime] = Field(default=None, alias="lastUpdateTime")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("host", "term_id", "class_id", mode="before")
    @classmethod
    def strip_identity(cls, v: Any) -> Any:
        if v is None:
            return v
        return str(v).strip()

    @field_validator("subject", mode="before")
    @classmethod
    def upper_subject(cls, v: Any) -> Any:
        if v is None:
            return v
        return str(v).strip().upper()

    @field_validator("crns", mode="before")
    @classmethod
    def crns_to_str(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, (str, int)):
            v = [v]
        return [str(crn).strip() for crn in v if str(crn).strip()]

    @computed_field
    @property
    def key(self) -> str:
        """Canonical class key."""
        return class_key(self.host, self.term_id, self.subject, self.class_id)

    @property
    def code(self) -> str:
        """Canonical course code phrase (e.g., 'CS 2500')."""
        return canonical_code(self.subject, self.class_id)


class Employee(BaseModel):
    """A staff member as scraped from a directory page."""

    name: str = Field(..., min_length=1)
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    link: Optional[str] = None
    title: Optional[str] = None
    interests: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if v is None:
            return v
        return " ".join(str(v).split())

    @field_validator("emails", mode="before")
    @classmethod
    def standardize_emails(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        emails = [standardize_email(email) for email in v]
        return list(dict.fromkeys(email for email in emails if email))

    @field_validator("phones", mode="before")
    @classmethod
    def standardize_phones(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, (str, int)):
            v = [v]
        phones = [standardize_phone(str(phone)) for phone in v]
        return list(dict.fromkeys(phone for phone in phones if phone))

    def model_post_init(self, __context: Any) -> None:
        if not self.first_name and not self.last_name:
            self.first_name, self.last_name = parse_name_with_spaces(self.name)

    @computed_field
    @property
    def id(self) -> str:
        """Stable employee id."""
        return employee_id(self.name, self.emails, self.link)


# ─────────────────────────────────────────────────────────────────────────────
# Index Documents
# ─────────────────────────────────────────────────────────────────────────────


class ClassPayload(BaseModel):
    """Class fields as stored in the index."""

    key: str
    code: str
    host: str
    term_id: str
    subject: str
    class_id: str
    name: str = ""
    desc: Optional[str] = None
    schedule_type: Optional[str] = None
    crns: list[str] = Field(default_factory=list)
    min_credits: Optional[float] = None
    max_credits: Optional[float] = None
    prereqs: Optional[RequisiteGroup] = None
    coreqs: Optional[RequisiteGroup] = None
    prereqs_for: Optional[RequisiteGroup] = None
    opt_prereqs_for: Optional[RequisiteGroup] = None
    class_attributes: list[str] = Field(default_factory=list)
    url: Optional[str] = None
    pretty_url: Optional[str] = None
    last_update_time: Optional[datetime] = None

    @property
    def family(self) -> tuple[str, str, str]:
        """Course family used by the demotion pass."""
        return (self.host, self.term_id, self.subject)


class ClassDocument(BaseModel):
    """Index document for a course offering."""

    type: Literal["class"] = "class"
    class_: ClassPayload = Field(..., alias="class")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_offering(cls, offering: CourseOffering) -> ClassDocument:
        """Build the index document of an offering."""
        fields = offering.model_dump(by_alias=False, exclude={"key"})
        return cls(**{"class": ClassPayload(key=offering.key, code=offering.code, **fields)})

    @property
    def id(self) -> str:
        return self.class_.key

    def to_source(self) -> dict[str, Any]:
        """JSON-ready document body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EmployeePayload(BaseModel):
    """Employee fields as stored in the index."""

    id: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    link: Optional[str] = None
    title: Optional[str] = None
    interests: Optional[str] = None


class EmployeeDocument(BaseModel):
    """Index document for an employee."""

    type: Literal["employee"] = "employee"
    employee: EmployeePayload

    @classmethod
    def from_employee(cls, employee: Employee) -> EmployeeDocument:
        """Build the index document of an employee."""
        return cls(employee=EmployeePayload(**employee.model_dump(by_alias=False)))

    @property
    def id(self) -> str:
        return self.employee.id

    def to_source(self) -> dict[str, Any]:
        """JSON-ready document body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


SearchDocument = Annotated[Union[ClassDocument, EmployeeDocument], Field(discriminator="type")]


# ─────────────────────────────────────────────────────────────────────────────
# Query and Result Models
# ─────────────────────────────────────────────────────────────────────────────


class AnalyzedQuery(BaseModel):
    """
    A raw query plus what the analyzer recognized in it.

    `text` is what gets sent to the engine: the canonical course code for
    course-code queries, the alias target for aliased queries, otherwise the
    whitespace-normalized raw string.
    """

    raw: str
    text: str = ""
    kind: QueryKind = QueryKind.FREE_TEXT
    subject: Optional[str] = None
    class_id: Optional[str] = None
    crn: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    alias_of: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.kind == QueryKind.EMPTY

    def as_free_text(self) -> AnalyzedQuery:
        """Copy of this query reinterpreted as free text."""
        return self.model_copy(
            update={
                "kind": QueryKind.FREE_TEXT,
                "subject": None,
                "class_id": None,
                "crn": None,
                "email": None,
                "phone": None,
            }
        )


class SearchHit(BaseModel):
    """A ranked search hit."""

    id: str
    score: float
    document: SearchDocument

    @property
    def type(self) -> str:
        return self.document.type

    @property
    def class_(self) -> Optional[ClassPayload]:
        if isinstance(self.document, ClassDocument):
            return self.document.class_
        return None

    @property
    def employee(self) -> Optional[EmployeePayload]:
        if isinstance(self.document, EmployeeDocument):
            return self.document.employee
        return None


class RankedResult(BaseModel):
    """Ordered search results plus diagnostics."""

    hits: list[SearchHit] = Field(default_factory=list)
    total: int = Field(default=0, description="Total matching documents")
    took_ms: int = Field(default=0, description="Engine time in ms")
    query: Optional[AnalyzedQuery] = None
    corrected_query: Optional[str] = Field(
        default=None, description="Suggested phrase the results were computed for"
    )
    skipped: list[str] = Field(
        default_factory=list, description="Ids of counted hits whose source could not be read"
    )

    def __len__(self) -> int:
        return len(self.hits)

    @property
    def top(self) -> Optional[SearchHit]:
        return self.hits[0] if self.hits else None


# ─────────────────────────────────────────────────────────────────────────────
# Ingestion Reports
# ─────────────────────────────────────────────────────────────────────────────


class DocumentIssue(BaseModel):
    """A document that was rejected before indexing or failed in the engine."""

    id: Optional[str] = None
    index: Optional[str] = None
    reason: str
    status: Optional[int] = None
    record: Optional[dict[str, Any]] = None


class IngestionReport(BaseModel):
    """Outcome of an ingestion call."""

    indexed: list[str] = Field(default_factory=list)
    rejected: list[DocumentIssue] = Field(default_factory=list)
    failed: list[DocumentIssue] = Field(default_factory=list)
    batches: int = 0

    @property
    def ok(self) -> bool:
        """True if no document failed in the engine."""
        return not self.failed

    def merge(self, other: IngestionReport) -> IngestionReport:
        """Combine two reports into a new one."""
        return IngestionReport(
            indexed=self.indexed + other.indexed,
            rejected=self.rejected + other.rejected,
            failed=self.failed + other.failed,
            batches=self.batches + other.batches,
        )

    def raise_for_failures(self) -> None:
        """Raise BulkIndexError if any document failed in the engine."""
        if self.failed:
            raise BulkIndexError(self)

    def summary(self) -> str:
        return (
            f"indexed={len(self.indexed)} rejected={len(self.rejected)} "
            f"failed={len(self.failed)} batches={self.batches}"
        )
