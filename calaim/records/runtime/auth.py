"""OAuth2 client-credentials token acquisition and caching.

Architecture:
    - TokenProvider: one network exchange against ``/oauth/token``, with
      exponential backoff on transient failures (5xx, connection errors,
      timeouts). 4xx means bad credentials and fails immediately.
    - TokenCache: process-wide cache keyed by credential identity
      (base URL + client id). Refresh is single-flight per key, so
      concurrent retrievals sharing credentials trigger one token request.

Invalidation:
    A cached token is dropped when it is within ``refresh_margin`` seconds
    of expiry, when ``invalidate()`` is called, or when a retrieval sees a
    401 from a page request (the engine calls ``invalidate()``).

See Also:
    - RetrievalEngine: acquires one token per retrieval through the cache
"""

from __future__ import annotations

import asyncio
import base64
import logging
import weakref
from collections.abc import Awaitable, Callable

import aiohttp

from ..core.exceptions import AuthError
from ..models import AccessToken, Credentials
from ..utils.http import HTTPClient
from ..utils.retry import retry_async
from .endpoints import TOKEN_PATH, token_form

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MARGIN = 60.0


def _basic_auth(credentials: Credentials) -> str:
    raw = f"{credentials.client_id}:{credentials.client_secret.get_secret_value()}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


def _is_transient(error: Exception) -> bool:
    if not isinstance(error, AuthError):
        return False
    return error.status_code is None or error.status_code >= 500


class TokenProvider:
    """Acquires bearer tokens from the upstream token endpoint."""

    def __init__(
        self,
        http: HTTPClient,
        *,
        retries: int = 3,
        backoff: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize token provider.

        Args:
            http: HTTP client used for the token exchange
            retries: Total attempts for transient failures
            backoff: Base delay for exponential backoff (seconds)
            sleep: Awaitable sleep (injectable for tests)
        """
        self._http = http
        self._retries = retries
        self._backoff = backoff
        self._sleep = sleep

    async def get_token(self, credentials: Credentials) -> AccessToken:
        """Exchange client credentials for an access token.

        Args:
            credentials: Client credentials for the upstream account

        Returns:
            AccessToken with its computed expiry

        Raises:
            AuthError: On any non-2xx response, a response without
                ``access_token``, or transport failure after retries
        """
        return await retry_async(
            lambda: self._request_token(credentials),
            attempts=self._retries,
            base_delay=self._backoff,
            should_retry=_is_transient,
            sleep=self._sleep,
        )

    async def _request_token(self, credentials: Credentials) -> AccessToken:
        url = f"{credentials.base_url}{TOKEN_PATH}"
        headers = {
            "Authorization": _basic_auth(credentials),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        try:
            response = await self._http.post(url, data=token_form(), headers=headers)
        except (aiohttp.ClientError, TimeoutError) as e:
            raise AuthError(f"Token request failed: {type(e).__name__}: {e}") from e

        if not response.ok:
            raise AuthError(
                f"Failed to get access token: {response.status}",
                status_code=response.status,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthError(
                "Token response is not valid JSON",
                status_code=response.status,
                body=response.text,
            ) from e

        if not isinstance(payload, dict) or not isinstance(payload.get("access_token"), str):
            raise AuthError(
                "Token response has no access_token",
                status_code=response.status,
                body=response.text,
            )
        return AccessToken.from_response(payload)


class TokenCache:
    """Expiry-aware token cache with single-flight refresh."""

    def __init__(self, refresh_margin: float = DEFAULT_REFRESH_MARGIN) -> None:
        self._refresh_margin = refresh_margin
        self._tokens: dict[tuple[str, str], AccessToken] = {}
        # Locks are bound to the loop that first contends on them
        self._locks: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, dict[tuple[str, str], asyncio.Lock]
        ] = weakref.WeakKeyDictionary()

    def _lock_for(self, key: tuple[str, str]) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        per_loop = self._locks.setdefault(loop, {})
        return per_loop.setdefault(key, asyncio.Lock())

    def peek(self, credentials: Credentials) -> AccessToken | None:
        """Return the cached token if still usable, without refreshing."""
        token = self._tokens.get(credentials.cache_key)
        if token is None or token.is_expired(self._refresh_margin):
            return None
        return token

    async def get(self, credentials: Credentials, provider: TokenProvider) -> AccessToken:
        """Return a valid token, refreshing through ``provider`` when needed.

        Raises:
            AuthError: If the refresh fails
        """
        token = self.peek(credentials)
        if token is not None:
            return token

        async with self._lock_for(credentials.cache_key):
            # Another waiter may have refreshed while we queued on the lock
            token = self.peek(credentials)
            if token is not None:
                return token
            token = await provider.get_token(credentials)
            self._tokens[credentials.cache_key] = token
            logger.info(
                "token_refreshed",
                extra={
                    "base_url": credentials.base_url,
                    "client_id": credentials.client_id,
                    "expires_at": token.expires_at.isoformat(),
                },
            )
            return token

    def invalidate(self, credentials: Credentials, token: AccessToken | None = None) -> None:
        """Drop the cached token for ``credentials``.

        When ``token`` is given, only that exact token is dropped, so a
        stale 401 cannot evict a token another caller just refreshed.
        """
        key = credentials.cache_key
        current = self._tokens.get(key)
        if current is None:
            return
        if token is None or current.value == token.value:
            del self._tokens[key]

    def clear(self) -> None:
        self._tokens.clear()


_default_cache = TokenCache()


def get_token_cache() -> TokenCache:
    """Process-wide token cache."""
    return _default_cache
