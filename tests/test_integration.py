"""
Integration Tests.
==================

End-to-end checks against a running Elasticsearch (ELASTIC_URL, default
http://localhost:9200). Skipped when the cluster is not reachable.

Uses separate test indices so a development index is never touched.
"""

import os

import pytest

pytestmark = pytest.mark.integration

TEST_CLASS_INDEX = "test_campus_classes"
TEST_EMPLOYEE_INDEX = "test_campus_employees"
TERM = "202010"


@pytest.fixture(scope="module")
def live_store():
    """Store bound to the test indices, or skip if the cluster is down."""
    from campus_search.indexing.elastic_store import ElasticStore
    from campus_search.shared.config import ElasticConfig

    url = os.environ.get("ELASTIC_URL", "http://localhost:9200")
    store = ElasticStore(
        config=ElasticConfig(
            url=url,
            class_index=TEST_CLASS_INDEX,
            employee_index=TEST_EMPLOYEE_INDEX,
        ),
        url=url,
    )
    if not store.ping(timeout=2.0):
        pytest.skip(f"Elasticsearch not reachable at {url}")
    return store


@pytest.fixture
def live_vocabulary(live_store):
    """Subject vocabulary over the test class index."""
    from campus_search.indexing.subjects import SubjectVocabulary

    return SubjectVocabulary(store=live_store)


@pytest.fixture
def pipeline(live_store, live_vocabulary):
    """Pipeline writing to the test indices."""
    from campus_search.indexing.pipeline import IndexPipeline

    return IndexPipeline(store=live_store, batch_size=2, vocabulary=live_vocabulary)


@pytest.fixture
def loaded(pipeline, sample_courses, sample_employees):
    """Reindex the sample catalog and directory."""
    report = pipeline.reindex_all(sample_courses, sample_employees)
    report.raise_for_failures()
    return report


@pytest.fixture
def engine(live_store, live_vocabulary, loaded):
    """Orchestrator over the freshly loaded test indices."""
    from campus_search.search.analyzer import QueryAnalyzer
    from campus_search.search.ranking import SearchOrchestrator

    return SearchOrchestrator(
        store=live_store,
        analyzer=QueryAnalyzer(vocabulary=live_vocabulary),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Ingestion
# ─────────────────────────────────────────────────────────────────────────────


class TestReindex:
    """Tests for loading the indices."""

    def test_all_documents_indexed(self, loaded, sample_courses, sample_employees):
        """Test that every sample record was written."""
        assert loaded.ok
        assert len(loaded.indexed) == len(sample_courses) + len(sample_employees)

    def test_subjects_from_index(self, loaded, live_vocabulary):
        """Test that the vocabulary reflects the indexed subjects."""
        assert live_vocabulary.subjects() == frozenset({"cs", "thtr"})

    def test_get_batch(self, loaded, pipeline):
        """Test fetching documents across both indices."""
        documents = pipeline.get_batch(["neu.edu/202010/CS/2500", "neu.edu/202010/CS/0000"])

        assert list(documents) == ["neu.edu/202010/CS/2500"]
        assert documents["neu.edu/202010/CS/2500"]["class"]["crns"] == ["10460", "10461"]

    def test_read_after_write(self, engine, pipeline):
        """Test that an upserted class is searchable right away."""
        from campus_search.ingestion.transform import build_class_documents

        documents, _ = build_class_documents([{
            "host": "neu.edu",
            "termId": TERM,
            "subject": "CS",
            "classId": "4410",
            "name": "Compilers",
            "scheduleType": "Lecture",
            "crns": ["10999"],
        }])
        report = pipeline.upsert(documents)

        result = engine.search("compilers", TERM)

        assert report.ok
        assert result.top.class_.key == "neu.edu/202010/CS/4410"


# ─────────────────────────────────────────────────────────────────────────────
# Search
# ─────────────────────────────────────────────────────────────────────────────


class TestSearchScenarios:
    """Ranking checks on the sample data."""

    @pytest.mark.parametrize("query", ["cs2500", "CS 2500", "cs  2500", "Cs2500"])
    def test_course_code_variants(self, engine, query):
        """Test that every spelling of a course finds it first."""
        result = engine.search(query, TERM)

        assert result.top.class_.key == "neu.edu/202010/CS/2500"

    def test_course_code_names_a_lab(self, engine):
        """Test that asking for a lab by number returns the lab first."""
        result = engine.search("cs 2501", TERM)

        assert result.top.class_.key == "neu.edu/202010/CS/2501"

    def test_subject_query(self, engine):
        """Test that a bare subject lists only its courses, lecture first."""
        result = engine.search("cs", TERM)

        assert result.total == 4
        assert all(hit.class_.subject == "CS" for hit in result.hits)
        assert result.top.class_.schedule_type not in ("Lab", "Recitation & Discussion", "Seminar")

    def test_term_restriction(self, engine):
        """Test that offerings of other terms are excluded."""
        result = engine.search("fundamentals of computer science", TERM)

        terms = {hit.class_.term_id for hit in result.hits if hit.class_ is not None}
        assert terms == {TERM}

    def test_crn(self, engine):
        """Test lookup by registration number."""
        result = engine.search("10460", TERM)

        assert result.total == 1
        assert result.top.class_.key == "neu.edu/202010/CS/2500"

    @pytest.mark.parametrize("query", ["mislove", "a.mislove@northeastern.edu", "617-373-7069"])
    def test_employee_lookups(self, engine, query):
        """Test finding a person by name, email or phone."""
        result = engine.search(query, TERM)

        assert result.top.type == "employee"
        assert result.top.employee.name == "Alan Mislove"

    def test_empty_query(self, engine):
        """Test that a blank query returns nothing."""
        assert engine.search("   ", TERM).total == 0

    def test_alias(self, engine):
        """Test that a nickname finds the course it stands for."""
        result = engine.search("fundies", TERM)

        assert result.query.alias_of == "fundies"
        assert result.top.class_.name.startswith("Fundamentals of Computer Science")

    def test_misspelled_query(self, engine):
        """Test that a misspelled title still finds the course."""
        result = engine.search("fundimentals of compiter science", TERM)

        assert result.top.class_.name.startswith("Fundamentals of Computer Science")

    def test_pagination(self, engine):
        """Test that pages partition the ranked list."""
        everything = engine.search("cs", TERM, limit=10)
        first = engine.search("cs", TERM, offset=0, limit=2)
        second = engine.search("cs", TERM, offset=2, limit=2)

        assert [hit.id for hit in first.hits + second.hits] == [hit.id for hit in everything.hits]

    def test_occurrences(self, engine):
        """Test finding a course across terms, latest first."""
        occurrences = engine.get_class_occurrences("neu.edu", "CS", "2500")

        assert [doc.class_.term_id for doc in occurrences] == ["202010", "201960"]
        assert engine.get_latest_class_occurrence("neu.edu", "CS", "2500").class_.term_id == "202010"
