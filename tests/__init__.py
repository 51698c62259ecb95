"""
Tests Package - Unit and integration tests for Campus Search.
=============================================================

Test modules:
- test_shared: Keys, contact normalization, schemas, config
- test_ingestion: Record to document transforms
- test_indexing: Elastic store, bulk pipeline, subject vocabulary
- test_search: Analyzer, aliases, suggester, ranking
- test_integration: End-to-end checks against a live Elasticsearch

Run tests with:
    pytest tests/
    pytest tests/ -m "not integration"
    pytest tests/ -v --cov=src/campus_search
"""
