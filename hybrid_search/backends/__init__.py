"""Collaborator interfaces and concrete providers.

Primary components:
- ``base``: abstract index, embedding, and rerank interfaces.
- ``opensearch``: lexical and kNN indexes backed by OpenSearch.
- ``embedding``: Gemini embedding provider over HTTP.
- ``rerank``: Voyage rerank provider over HTTP.
- ``factory``: builds a fully wired ``HybridSearchManager`` from config.
"""
