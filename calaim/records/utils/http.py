"""HTTP client helper."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp


@dataclass(frozen=True)
class HTTPResponse:
    """Status and body of a completed request."""

    status: int
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body; raises ``ValueError`` on malformed JSON."""
        return json.loads(self.text) if self.text else None


class HTTPClient:
    """Async HTTP client wrapper.

    Non-2xx responses are returned, not raised, so callers can decide how
    each status is handled. Transport failures and timeouts still raise
    ``aiohttp.ClientError`` / ``asyncio.TimeoutError``.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def _url(self, url: str) -> str:
        # If base_url is set and url is relative, combine them
        if self.base_url and not url.startswith("http"):
            return f"{self.base_url}{url}"
        return url

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        """GET request."""
        async with self.session.get(self._url(url), params=params, headers=headers) as response:
            return HTTPResponse(
                status=response.status,
                text=await response.text(),
                headers=dict(response.headers),
            )

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HTTPResponse:
        """POST a form-encoded body."""
        async with self.session.post(self._url(url), data=data, headers=headers) as response:
            return HTTPResponse(
                status=response.status,
                text=await response.text(),
                headers=dict(response.headers),
            )

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HTTPClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
