"""Unit tests for HTTPClient and HTTPResponse.

Tests focus on session management and on returning (not raising) non-2xx
responses.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from calaim.records.utils import HTTPClient, HTTPResponse


def mock_session_returning(status: int, text: str, method: str = "get") -> tuple[MagicMock, AsyncMock]:
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.text = AsyncMock(return_value=text)
    mock_response.headers = {"Content-Type": "application/json"}
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = MagicMock()
    mock_session.closed = False
    setattr(mock_session, method, MagicMock(return_value=mock_response))
    return mock_session, mock_response


class TestHTTPClientSessionManagement:
    """Test HTTPClient session management."""

    def test_init(self):
        client = HTTPClient(timeout=10.0)
        assert client.timeout.total == 10.0
        assert client._session is None

    @pytest.mark.asyncio
    async def test_session_property_creates_session(self):
        """Test session property creates session when needed."""
        client = HTTPClient()

        session = client.session
        assert isinstance(session, aiohttp.ClientSession)
        assert client._session is session
        await client.close()

    @pytest.mark.asyncio
    async def test_session_property_recreates_closed_session(self):
        client = HTTPClient()
        session1 = client.session
        await session1.close()

        session2 = client.session
        assert session1 is not session2
        assert not session2.closed
        await client.close()

    @pytest.mark.asyncio
    async def test_close_idempotent(self):
        client = HTTPClient()
        await client.close()
        await client.close()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test HTTPClient as async context manager."""
        async with HTTPClient() as client:
            assert client.session is not None

        assert client._session is None or client._session.closed


class TestHTTPClientRequests:
    """Test request helpers."""

    @pytest.mark.asyncio
    async def test_get_returns_response(self):
        client = HTTPClient()
        client._session, _ = mock_session_returning(200, '{"Result": []}')

        response = await client.get("https://x/rest/v2/tables/T/records", params={"q.where": "1=1"})

        assert response.ok is True
        assert response.json() == {"Result": []}
        assert response.headers["Content-Type"] == "application/json"
        client._session.get.assert_called_once_with(
            "https://x/rest/v2/tables/T/records", params={"q.where": "1=1"}, headers=None
        )

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self):
        """Test that a 500 comes back as a response object."""
        client = HTTPClient()
        client._session, _ = mock_session_returning(500, "Internal error")

        response = await client.get("https://x/anything")

        assert response.ok is False
        assert response.status == 500
        assert response.text == "Internal error"

    @pytest.mark.asyncio
    async def test_post_form(self):
        client = HTTPClient()
        client._session, _ = mock_session_returning(200, '{"access_token": "t"}', method="post")

        response = await client.post("https://x/oauth/token", data={"grant_type": "client_credentials"})

        assert response.json()["access_token"] == "t"
        client._session.post.assert_called_once_with(
            "https://x/oauth/token", data={"grant_type": "client_credentials"}, headers=None
        )

    @pytest.mark.asyncio
    async def test_base_url_prefix(self):
        client = HTTPClient(base_url="https://x")
        client._session, _ = mock_session_returning(200, "{}")

        await client.get("/oauth/token")

        assert client._session.get.call_args.args[0] == "https://x/oauth/token"


class TestHTTPResponse:
    """Test HTTPResponse helpers."""

    @pytest.mark.parametrize("status, ok", [(200, True), (204, True), (301, False), (404, False)])
    def test_ok(self, status, ok):
        assert HTTPResponse(status=status).ok is ok

    def test_empty_body_is_none(self):
        assert HTTPResponse(status=200, text="").json() is None

    def test_malformed_json_raises_value_error(self):
        with pytest.raises(ValueError):
            HTTPResponse(status=200, text="<html>").json()
