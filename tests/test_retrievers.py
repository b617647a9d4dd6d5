"""Tests for the lexical and vector retrieval adapters."""

import pytest

from hybrid_search.common.errors import ResponseShapeError, UpstreamError
from hybrid_search.models import LEXICAL, VECTOR
from hybrid_search.retrievers.filters import translate
from hybrid_search.retrievers.lexical import LexicalRetriever
from hybrid_search.retrievers.vector import VectorRetriever

from tests.conftest import FakeEmbedder, FakeLexicalIndex, FakeVectorIndex, lex_row, vec_row


@pytest.mark.asyncio
async def test_lexical_ranks_follow_backend_order():
    index = FakeLexicalIndex([lex_row("b", 2.0), lex_row("a", 5.0), lex_row("c", 1.0)])
    candidates = await LexicalRetriever(index).retrieve("solar power", 10)

    # backend order is kept even when scores disagree with it
    assert [c.id for c in candidates] == ["b", "a", "c"]
    assert [c.source_ranks[LEXICAL] for c in candidates] == [1, 2, 3]
    assert candidates[1].source_scores == {LEXICAL: 5.0}
    assert VECTOR not in candidates[0].source_ranks


@pytest.mark.asyncio
async def test_lexical_caps_at_k_and_defaults_missing_score():
    index = FakeLexicalIndex([lex_row(i, None) for i in range(5)])
    candidates = await LexicalRetriever(index).retrieve("query", 3)

    assert len(candidates) == 3
    assert all(c.source_scores[LEXICAL] == 0.0 for c in candidates)
    assert index.calls[0]["k"] == 3


@pytest.mark.asyncio
async def test_lexical_carries_metadata_and_ids_as_strings():
    row = lex_row(42, 1.5, title="Title", tags=["x"], created_at="2024-01-01", meta={"source": "docs"})
    candidates = await LexicalRetriever(FakeLexicalIndex([row])).retrieve("q", 5)

    c = candidates[0]
    assert c.id == "42"
    assert (c.title, c.tags, c.created_at, c.meta) == ("Title", ["x"], "2024-01-01", {"source": "docs"})


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", "\n\t", None])
async def test_empty_query_short_circuits(query):
    lexical_index = FakeLexicalIndex([lex_row(1)])
    vector_index = FakeVectorIndex([vec_row(1)])
    embedder = FakeEmbedder()

    assert await LexicalRetriever(lexical_index).retrieve(query, 10) == []
    assert await VectorRetriever(vector_index, embedder).retrieve(query, 10) == []
    assert lexical_index.calls == []
    assert vector_index.calls == []
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_row_without_id_is_a_shape_error():
    index = FakeLexicalIndex([lex_row(1), {"text": "orphan", "lexical_score": 1.0}])
    with pytest.raises(ResponseShapeError):
        await LexicalRetriever(index).retrieve("q", 10)


@pytest.mark.asyncio
async def test_vector_embeds_once_and_uses_k_as_pool():
    index = FakeVectorIndex([vec_row("x", 0.8), vec_row("y", 0.7)])
    embedder = FakeEmbedder()
    predicate = translate(None)

    candidates = await VectorRetriever(index, embedder).retrieve("  wind turbines ", 7, predicate)

    assert embedder.calls == ["wind turbines"]
    assert index.calls[0]["num_candidates"] == 7
    assert index.calls[0]["k"] == 7
    assert index.calls[0]["predicate"] is predicate
    assert index.calls[0]["vector"].shape == (1536,)
    assert [(c.id, c.source_ranks[VECTOR]) for c in candidates] == [("x", 1), ("y", 2)]
    assert candidates[0].source_scores == {VECTOR: 0.8}


@pytest.mark.asyncio
async def test_vector_pool_size_can_exceed_k():
    index = FakeVectorIndex([vec_row("x")])
    await VectorRetriever(index, FakeEmbedder(), num_candidates=100).retrieve("q", 10)
    assert index.calls[0]["num_candidates"] == 100


@pytest.mark.asyncio
async def test_embedding_failure_propagates_unwrapped():
    error = UpstreamError("embedding", "quota exceeded", status_code=429, stage="retrieval")
    index = FakeVectorIndex([vec_row("x")])
    retriever = VectorRetriever(index, FakeEmbedder(error=error))

    with pytest.raises(UpstreamError) as exc_info:
        await retriever.retrieve("q", 10)

    assert exc_info.value is error
    assert index.calls == []
