"""Ranking components: result fusion and cross-encoder reranking.

Contents
- ``fusion``: RRF and weighted-score fusion over ranked candidate lists
- ``rerank``: adapter around an external relevance-scoring provider
"""
