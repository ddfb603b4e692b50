"""Shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest
from fakes import FakeHTTPClient, no_sleep

from calaim.records import Credentials, PartitionPolicy, RetrievalEngine, TokenCache, TokenProvider


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(
        base_url="https://example.caspio.test/rest/v2",
        client_id="client-id",
        client_secret="client-secret",
    )


@pytest.fixture
def token_cache() -> TokenCache:
    return TokenCache()


@pytest.fixture
def make_engine(token_cache: TokenCache):
    """Build an engine over a fake HTTP client with an isolated token cache."""

    def _make(http: FakeHTTPClient, **kwargs: Any) -> RetrievalEngine:
        kwargs.setdefault("policy", PartitionPolicy(page_size=1000, max_pages=10))
        kwargs.setdefault("token_cache", token_cache)
        kwargs.setdefault("token_provider", TokenProvider(http, sleep=no_sleep))
        return RetrievalEngine(http, **kwargs)

    return _make
