"""Tests for request options and filter translation."""

from datetime import datetime, timezone

import pytest

from hybrid_search.backends.opensearch import build_filter_clauses
from hybrid_search.common.errors import ValidationError
from hybrid_search.retrievers.filters import FilterPredicate, SearchFilters, translate


def test_translate_without_filters_requires_field():
    predicate = translate(None)
    assert predicate.exists == ["title"]
    assert predicate.created_after is None
    assert predicate.meta_equals == {}
    assert predicate.ids == []


def test_translate_without_required_field_is_empty():
    assert translate(SearchFilters(), required_field=None).is_empty()


def test_translate_every_filter():
    filters = SearchFilters.from_request({
        "createdAfter": "2024-01-01T00:00:00Z",
        "createdBefore": "2024-06-30T23:59:59Z",
        "meta": {"source": "docs", "lang": "en"},
        "ids": ["a", "b"],
    })
    predicate = translate(filters)

    assert predicate.exists == ["title"]
    assert predicate.created_after == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert predicate.created_before == datetime(2024, 6, 30, 23, 59, 59, tzinfo=timezone.utc)
    assert predicate.meta_equals == {"meta.source": "docs", "meta.lang": "en"}
    assert predicate.ids == ["a", "b"]


def test_translate_empty_ids_adds_no_constraint():
    predicate = translate(SearchFilters(ids=[]))
    assert predicate.ids == []


def test_search_filters_accepts_both_spellings():
    camel = SearchFilters.from_request({"preRerankK": 20, "maxDocChars": 500, "rerank": True})
    snake = SearchFilters.from_request({"pre_rerank_k": 20, "max_doc_chars": 500, "rerank": True})
    assert camel == snake
    assert camel.fusion == "rrf"


@pytest.mark.parametrize("filters", [
    {"fusion": "combsum"},
    {"createdAfter": "not-a-date"},
    {"preRerankK": 0},
    {"preRerankK": 101},
    {"maxDocChars": 0},
    {"ids": "abc"},
    "rrf",
])
def test_search_filters_rejects_malformed(filters):
    with pytest.raises(ValidationError) as exc_info:
        SearchFilters.from_request(filters)
    assert exc_info.value.stage == "request"


def test_opensearch_clauses():
    predicate = FilterPredicate(
        exists=["title"],
        created_after=datetime(2024, 1, 1, tzinfo=timezone.utc),
        meta_equals={"meta.source": "docs"},
        ids=["1", "2"],
    )
    clauses = build_filter_clauses(predicate)
    assert clauses == [
        {"exists": {"field": "title"}},
        {"range": {"created_at": {"gte": "2024-01-01T00:00:00+00:00"}}},
        {"term": {"meta.source.keyword": "docs"}},
        {"ids": {"values": ["1", "2"]}},
    ]


def test_opensearch_clauses_empty_predicate():
    assert build_filter_clauses(FilterPredicate()) == []


def test_opensearch_clauses_keyword_suffix():
    predicate = FilterPredicate(meta_equals={"meta.source": "Docs", "meta.version": 3, "meta.public": True})

    assert build_filter_clauses(predicate) == [
        {"term": {"meta.source.keyword": "Docs"}},
        {"term": {"meta.version": 3}},
        {"term": {"meta.public": True}},
    ]
    # indexes that map meta.* as keyword match the field itself
    assert build_filter_clauses(predicate, keyword_suffix="")[0] == {"term": {"meta.source": "Docs"}}


def test_integer_ids_are_accepted_as_strings():
    filters = SearchFilters.from_request({"ids": [1, "b", 3]})

    assert filters.ids == ["1", "b", "3"]
    assert translate(filters).ids == ["1", "b", "3"]


def test_boolean_ids_are_rejected():
    with pytest.raises(ValidationError):
        SearchFilters.from_request({"ids": [True]})
