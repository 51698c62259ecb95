"""
Index Mappings - Fixed Elasticsearch schemas for classes and employees.
=======================================================================

Elasticsearch cannot change the mapping of an existing field, so these
mappings are applied by recreating the index (see IndexPipeline.reset).

Every field that feeds phrase suggestions carries a `.suggestions`
sub-field analyzed into word shingles.
"""

from typing import Any

INDEX_SETTINGS: dict[str, Any] = {
    "number_of_shards": 1,
    "analysis": {
        "filter": {
            "shingle": {
                "type": "shingle",
                "min_shingle_size": 2,
                "max_shingle_size": 3,
            },
        },
        "analyzer": {
            "trigram": {
                "type": "custom",
                "tokenizer": "standard",
                "filter": ["lowercase", "shingle"],
            },
        },
    },
}

# Sub-fields for phrase suggestion and exact matching
_SUGGESTABLE_TEXT: dict[str, Any] = {
    "type": "text",
    "fields": {
        "keyword": {"type": "keyword", "ignore_above": 256},
        "suggestions": {"type": "text", "analyzer": "trigram"},
    },
}

_REQUISITES: dict[str, Any] = {"type": "object", "enabled": False}

CLASS_MAPPING: dict[str, Any] = {
    "properties": {
        "type": {"type": "keyword"},
        "class": {
            "properties": {
                "key": {"type": "keyword"},
                "code": {"type": "text", "fields": {"keyword": {"type": "keyword"}}},
                "host": {"type": "keyword"},
                "term_id": {"type": "keyword"},
                "subject": {"type": "keyword"},
                "class_id": {"type": "keyword"},
                "name": _SUGGESTABLE_TEXT,
                "desc": {"type": "text"},
                "schedule_type": {"type": "keyword"},
                "crns": {"type": "keyword"},
                "min_credits": {"type": "float"},
                "max_credits": {"type": "float"},
                "prereqs": _REQUISITES,
                "coreqs": _REQUISITES,
                "prereqs_for": _REQUISITES,
                "opt_prereqs_for": _REQUISITES,
                "class_attributes": {"type": "keyword"},
                "url": {"type": "keyword", "index": False},
                "pretty_url": {"type": "keyword", "index": False},
                "last_update_time": {"type": "date"},
            },
        },
    },
}

EMPLOYEE_MAPPING: dict[str, Any] = {
    "properties": {
        "type": {"type": "keyword"},
        "employee": {
            "properties": {
                "id": {"type": "keyword"},
                "name": _SUGGESTABLE_TEXT,
                "first_name": {"type": "text"},
                "last_name": {"type": "text"},
                "emails": {"type": "keyword"},
                "phones": {"type": "keyword"},
                "link": {"type": "keyword", "index": False},
                "title": {"type": "text"},
                "interests": {"type": "text"},
            },
        },
    },
}
