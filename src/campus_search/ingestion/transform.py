"""
Transform Module - Source records to index documents.
=====================================================

Converts course offering and employee snapshots (dicts loaded from the
relational store export, or already-built models) into index documents
keyed by their stable ids.

Records that fail validation are not dropped silently: each one becomes a
DocumentIssue in the returned report and the rest of the batch continues.
"""

from typing import Any, Iterable, Union

from pydantic import BaseModel, ValidationError

from campus_search.shared.errors import SearchInputError
from campus_search.shared.logging import get_logger
from campus_search.shared.schemas import (
    ClassDocument,
    CourseOffering,
    DocumentIssue,
    Employee,
    EmployeeDocument,
    IngestionReport,
)

logger = get_logger(__name__)

CourseInput = Union[CourseOffering, dict[str, Any]]
EmployeeInput = Union[Employee, dict[str, Any]]


def _describe(error: ValidationError) -> str:
    """One-line summary of a pydantic validation error."""
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"]) or "record"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _record_of(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return item
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json", exclude={"key", "id"})
    # JSONL lines may hold null, lists or scalars
    return {"value": item}


def build_class_documents(
    offerings: Iterable[CourseInput],
) -> tuple[dict[str, dict[str, Any]], IngestionReport]:
    """
    Build class documents keyed by canonical class key.

    A later record with the same key replaces an earlier one.

    Args:
        offerings: CourseOffering models or raw dicts

    Returns:
        (documents by id, report listing rejected records)
    """
    documents: dict[str, dict[str, Any]] = {}
    report = IngestionReport()

    for item in offerings:
        try:
            offering = item if isinstance(item, CourseOffering) else CourseOffering.model_validate(item)
            document = ClassDocument.from_offering(offering)
        except ValidationError as e:
            reason = _describe(e)
            logger.warning(f"Rejected course record: {reason}")
            report.rejected.append(DocumentIssue(reason=reason, record=_record_of(item)))
            continue
        except SearchInputError as e:
            logger.warning(f"Rejected course record: {e}")
            report.rejected.append(DocumentIssue(reason=str(e), record=_record_of(item)))
            continue

        if document.id in documents:
            logger.debug(f"Duplicate class key {document.id}, keeping last")
        documents[document.id] = document.to_source()

    logger.info(f"Built {len(documents)} class documents ({len(report.rejected)} rejected)")
    return documents, report


def build_employee_documents(
    employees: Iterable[EmployeeInput],
) -> tuple[dict[str, dict[str, Any]], IngestionReport]:
    """
    Build employee documents keyed by employee id.

    Employees without any email, phone or profile link are still indexed;
    only a missing name is a data error.
    """
    documents: dict[str, dict[str, Any]] = {}
    report = IngestionReport()

    for item in employees:
        try:
            employee = item if isinstance(item, Employee) else Employee.model_validate(item)
            document = EmployeeDocument.from_employee(employee)
        except ValidationError as e:
            reason = _describe(e)
            logger.warning(f"Rejected employee record: {reason}")
            report.rejected.append(DocumentIssue(reason=reason, record=_record_of(item)))
            continue
        except SearchInputError as e:
            logger.warning(f"Rejected employee record: {e}")
            report.rejected.append(DocumentIssue(reason=str(e), record=_record_of(item)))
            continue

        for attr in ("emails", "phones", "link"):
            if not getattr(employee, attr):
                logger.debug(f"No {attr} for {employee.name}")

        documents[document.id] = document.to_source()

    logger.info(f"Built {len(documents)} employee documents ({len(report.rejected)} rejected)")
    return documents, report
