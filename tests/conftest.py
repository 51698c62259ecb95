"""
Pytest Configuration and Fixtures.
===================================

Shared fixtures for all test modules:
- Sample course offerings and employees
- Mock Elasticsearch clients and stores
- Search response builders
- Temporary directories
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Generator, Optional
from unittest.mock import MagicMock

import pytest

# Set test environment before importing app modules
os.environ.setdefault("LOG_LEVEL", "WARNING")


# ─────────────────────────────────────────────────────────────────────────────
# Path Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return project_root / "config" / "settings.yaml"


# ─────────────────────────────────────────────────────────────────────────────
# Sample Data Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_course_data() -> dict:
    """A single course offering as exported by the course database."""
    return {
        "host": "neu.edu",
        "termId": "202010",
        "subject": "cs",
        "classId": "2500",
        "name": "Fundamentals of Computer Science 1",
        "desc": "Introduces the fundamental ideas of computing and the principles of programming.",
        "scheduleType": "Lecture",
        "crns": ["10460", "10461"],
        "minCredits": 4,
        "maxCredits": 4,
        "coreqs": {
            "type": "and",
            "values": [{"subject": "CS", "classId": "2501"}],
        },
        "prettyUrl": "https://catalog.northeastern.edu/search/?P=CS%202500",
        "lastUpdateTime": "2019-11-08T10:00:00",
    }


@pytest.fixture
def sample_courses(sample_course_data: dict) -> list[dict]:
    """A small catalog for one term plus one earlier offering."""
    return [
        sample_course_data,
        {
            "host": "neu.edu",
            "termId": "202010",
            "subject": "CS",
            "classId": "2501",
            "name": "Lab for CS 2500",
            "desc": "Accompanies CS 2500. Covers topics from the course through various experiments.",
            "scheduleType": "Lab",
            "crns": ["10470"],
        },
        {
            "host": "neu.edu",
            "termId": "202010",
            "subject": "CS",
            "classId": "2510",
            "name": "Fundamentals of Computer Science 2",
            "desc": "Continues CS 2500. Examines object-oriented programming and associated algorithms.",
            "scheduleType": "Lecture",
            "crns": ["10480"],
            "prereqs": {
                "type": "or",
                "values": [
                    {"subject": "CS", "classId": "2500"},
                    "Graduate Admission REQ",
                ],
            },
        },
        {
            "host": "neu.edu",
            "termId": "202010",
            "subject": "CS",
            "classId": "1210",
            "name": "Professional Development for Khoury Co-op",
            "desc": "Provides an overview of the co-op program.",
            "scheduleType": "Seminar",
            "crns": ["10490"],
        },
        {
            "host": "neu.edu",
            "termId": "202010",
            "subject": "THTR",
            "classId": "1000",
            "name": "The World of Theatre",
            "desc": "Explores the world of theatre from its origins to the present.",
            "scheduleType": "Lecture",
            "crns": ["30001"],
        },
        {
            "host": "neu.edu",
            "termId": "201960",
            "subject": "CS",
            "classId": "2500",
            "name": "Fundamentals of Computer Science 1",
            "desc": "Introduces the fundamental ideas of computing and the principles of programming.",
            "scheduleType": "Lecture",
            "crns": ["60460"],
        },
    ]


@pytest.fixture
def sample_employee_data() -> dict:
    """A staff member as scraped from the faculty directory."""
    return {
        "name": "Alan  Mislove",
        "emails": ["mailto:A.Mislove@Northeastern.edu"],
        "phones": ["(617) 373-7069"],
        "link": "https://www.khoury.northeastern.edu/people/alan-mislove/",
        "title": "Professor",
        "interests": "Distributed systems, online social networks, security and privacy",
    }


@pytest.fixture
def sample_employees(sample_employee_data: dict) -> list[dict]:
    """A small staff directory."""
    return [
        sample_employee_data,
        {
            "name": "Ben Lerner",
            "emails": ["be.lerner@northeastern.edu"],
            "phones": ["6173732462"],
            "title": "Associate Teaching Professor",
        },
    ]


@pytest.fixture
def class_source() -> Any:
    """Build an index source for a class document."""

    def build(
        subject: str = "CS",
        class_id: str = "2500",
        name: str = "Fundamentals of Computer Science 1",
        schedule_type: Optional[str] = "Lecture",
        term_id: str = "202010",
        host: str = "neu.edu",
        crns: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        from campus_search.shared.schemas import ClassDocument, CourseOffering

        offering = CourseOffering(
            host=host,
            term_id=term_id,
            subject=subject,
            class_id=class_id,
            name=name,
            schedule_type=schedule_type,
            crns=crns or [],
        )
        return ClassDocument.from_offering(offering).to_source()

    return build


@pytest.fixture
def employee_source(sample_employee_data: dict) -> dict[str, Any]:
    """Index source for the sample employee."""
    from campus_search.shared.schemas import Employee, EmployeeDocument

    return EmployeeDocument.from_employee(Employee(**sample_employee_data)).to_source()


# ─────────────────────────────────────────────────────────────────────────────
# Engine Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def search_response():
    """Build an Elasticsearch search response from (source, score) pairs."""

    def build(
        hits: list[tuple[dict[str, Any], Optional[float]]],
        total: Optional[int] = None,
        took: int = 3,
    ) -> dict[str, Any]:
        documents = []
        for source, score in hits:
            if source["type"] == "class":
                doc_id = source["class"]["key"]
                index = "classes"
            else:
                doc_id = source["employee"]["id"]
                index = "employees"
            documents.append({"_index": index, "_id": doc_id, "_score": score, "_source": source})
        return {
            "took": took,
            "hits": {
                "total": {"value": len(hits) if total is None else total, "relation": "eq"},
                "hits": documents,
            },
        }

    return build


@pytest.fixture
def mock_client() -> MagicMock:
    """Elasticsearch client double; options() returns the same client."""
    client = MagicMock()
    client.options.return_value = client
    return client


@pytest.fixture
def elastic_config():
    """Elastic settings with fast retries."""
    from campus_search.shared.config import ElasticConfig

    return ElasticConfig(
        url="http://localhost:9200",
        connect_retries=3,
        retry_min_wait=0,
        retry_max_wait=0,
    )


@pytest.fixture
def elastic_store(mock_client: MagicMock, elastic_config):
    """ElasticStore wrapping the mock client."""
    from campus_search.indexing.elastic_store import ElasticStore

    return ElasticStore(client=mock_client, config=elastic_config)


@pytest.fixture
def mock_store() -> MagicMock:
    """Store double for components above the engine wrapper."""
    from campus_search.indexing.elastic_store import ElasticStore

    store = MagicMock(spec=ElasticStore)
    store.class_index = "classes"
    store.employee_index = "employees"
    store.all_indices = "classes,employees"
    store.aggregate_terms.return_value = ["CS", "THTR", "MATH"]
    return store


@pytest.fixture
def vocabulary(mock_store: MagicMock):
    """Subject vocabulary backed by the mock store."""
    from campus_search.indexing.subjects import SubjectVocabulary

    return SubjectVocabulary(store=mock_store)


@pytest.fixture
def api_error():
    """Build an elasticsearch ApiError subclass with an HTTP status."""
    from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig

    def build(error_class: type, status: int, message: str = "error") -> Exception:
        meta = ApiResponseMeta(
            status=status,
            http_version="1.1",
            headers=HttpHeaders(),
            duration=0.0,
            node=NodeConfig("http", "localhost", 9200),
        )
        return error_class(message, meta=meta, body={"error": message})

    return build


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that need a running Elasticsearch"
    )


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global singletons between tests."""
    import campus_search.indexing.elastic_store as store_module
    import campus_search.indexing.subjects as subjects_module
    import campus_search.search.ranking as ranking_module

    store_module._store = None
    subjects_module._vocabulary = None
    ranking_module._orchestrator = None

    yield

    store_module._store = None
    subjects_module._vocabulary = None
    ranking_module._orchestrator = None
