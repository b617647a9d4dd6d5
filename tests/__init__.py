"""Tests for hybrid search.

Unit tests run against in-process fakes of every collaborator (see
``conftest.py``); the HTTP providers are exercised through
``httpx.MockTransport`` and the OpenSearch indexes through a mocked client.
"""
