"""Hybrid search orchestration.

Includes the ``HybridSearchManager`` which fans out to the lexical and
vector retrievers concurrently, fuses their results, and optionally reranks.
"""
