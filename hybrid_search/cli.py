"""Command-line entrypoint for ad-hoc hybrid searches."""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional
import structlog

from .backends.factory import create_search_manager
from .common.config import SearchConfig
from .common.errors import HybridSearchError
from .common.logging import configure_logging

logger = structlog.get_logger("hybrid_search.cli")


async def run_query(
    query: str,
    k: int,
    filters: Dict[str, Any],
    strategy: str = "hybrid",
    config: Optional[SearchConfig] = None
) -> List[Dict[str, Any]]:
    """Run one search and return the response-shaped results."""
    manager = create_search_manager(config)
    try:
        results = await manager.search(query, k=k, filters=filters, strategy=strategy)
        return [r.to_dict() for r in results]
    finally:
        await manager.close()


def main(argv: Optional[List[str]] = None) -> None:
    """Main function for CLI."""
    parser = argparse.ArgumentParser(description="Query the hybrid search engine")
    parser.add_argument("query", help="Search query")
    parser.add_argument("--k", type=int, default=10, help="Number of results")
    parser.add_argument("--strategy", choices=["lexical", "vector", "hybrid"], default="hybrid")
    parser.add_argument("--fusion", choices=["rrf", "weighted"], default="rrf")
    parser.add_argument("--rerank", action="store_true", help="Rerank fused results")
    parser.add_argument("--pre-rerank-k", type=int, help="Candidates sent to the reranker")
    parser.add_argument("--max-doc-chars", type=int, help="Characters of each document sent to the reranker")
    parser.add_argument("--model", help="Rerank model override")
    parser.add_argument("--created-after", help="ISO8601 lower bound on created_at")
    parser.add_argument("--created-before", help="ISO8601 upper bound on created_at")
    parser.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE",
                        help="Equality filter on meta.KEY (repeatable)")
    parser.add_argument("--id", dest="ids", action="append", help="Restrict to this id (repeatable)")

    args = parser.parse_args(argv)

    config = SearchConfig()
    configure_logging("hybrid-search-cli", config.hs_log_level, config.hs_log_format)

    filters: Dict[str, Any] = {"fusion": args.fusion, "rerank": args.rerank}
    if args.pre_rerank_k:
        filters["preRerankK"] = args.pre_rerank_k
    if args.max_doc_chars:
        filters["maxDocChars"] = args.max_doc_chars
    if args.model:
        filters["model"] = args.model
    if args.created_after:
        filters["createdAfter"] = args.created_after
    if args.created_before:
        filters["createdBefore"] = args.created_before
    if args.ids:
        filters["ids"] = args.ids
    if args.meta:
        meta = {}
        for item in args.meta:
            key, sep, value = item.partition("=")
            if not sep:
                parser.error(f"--meta expects KEY=VALUE, got {item!r}")
            meta[key] = value
        filters["meta"] = meta

    try:
        results = asyncio.run(run_query(args.query, args.k, filters, args.strategy, config))
    except HybridSearchError as e:
        logger.error("Search failed", stage=e.stage, error=str(e))
        print(f"Search failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps({"query": args.query, "count": len(results), "results": results},
                     indent=2, default=str))


if __name__ == "__main__":
    main()
