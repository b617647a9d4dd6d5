"""Tests for the command-line entrypoint."""

import json

import pytest

from hybrid_search import cli
from hybrid_search.common.errors import UpstreamError


@pytest.fixture
def captured(monkeypatch):
    calls = []

    async def fake_run_query(query, k, filters, strategy="hybrid", config=None):
        calls.append({"query": query, "k": k, "filters": filters, "strategy": strategy})
        return [{"id": "1", "rank": 1, "fused_score": 0.016}]

    monkeypatch.setattr(cli, "run_query", fake_run_query)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    return calls


def test_prints_results_as_json(captured, capsys):
    cli.main(["solar power", "--k", "5"])

    output = json.loads(capsys.readouterr().out)
    assert output == {"query": "solar power", "count": 1, "results": [{"id": "1", "rank": 1, "fused_score": 0.016}]}
    assert captured[0]["k"] == 5
    assert captured[0]["strategy"] == "hybrid"
    assert captured[0]["filters"] == {"fusion": "rrf", "rerank": False}


def test_builds_filters_from_flags(captured, capsys):
    cli.main([
        "wind",
        "--strategy", "vector",
        "--fusion", "weighted",
        "--rerank",
        "--pre-rerank-k", "20",
        "--max-doc-chars", "800",
        "--model", "rerank-2.5",
        "--created-after", "2024-01-01",
        "--meta", "lang=en",
        "--meta", "source=docs",
        "--id", "a",
        "--id", "b",
    ])

    assert captured[0]["strategy"] == "vector"
    assert captured[0]["filters"] == {
        "fusion": "weighted",
        "rerank": True,
        "preRerankK": 20,
        "maxDocChars": 800,
        "model": "rerank-2.5",
        "createdAfter": "2024-01-01",
        "ids": ["a", "b"],
        "meta": {"lang": "en", "source": "docs"},
    }


def test_malformed_meta_flag(captured):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["wind", "--meta", "lang"])
    assert exc_info.value.code == 2
    assert captured == []


def test_search_errors_exit_non_zero(monkeypatch, capsys):
    async def failing_run_query(*args, **kwargs):
        raise UpstreamError("rerank", "503 Service Unavailable", status_code=503, stage="rerank")

    monkeypatch.setattr(cli, "run_query", failing_run_query)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["wind"])

    assert exc_info.value.code == 1
    assert "503 Service Unavailable" in capsys.readouterr().err
