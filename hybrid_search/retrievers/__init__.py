"""Retrievers for the lexical and vector sources.

Retrievers encapsulate how candidates are fetched from backends before
ranking, and the filter translation both of them share. Splitting retrieval
from ranking keeps the pipeline modular and testable.
"""
