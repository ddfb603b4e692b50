"""Credential and access-token models."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

_REST_SUFFIX = re.compile(r"/rest/v2/?$")


class Credentials(BaseModel):
    """OAuth2 client-credentials for one upstream account.

    The secret is a ``SecretStr`` so it never shows up in ``repr`` or logs.
    """

    base_url: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    client_secret: SecretStr

    @field_validator("base_url")
    @classmethod
    def strip_rest_suffix(cls, v: str) -> str:
        """Accept both ``https://host`` and ``https://host/rest/v2``."""
        return _REST_SUFFIX.sub("", v.strip()).rstrip("/")

    @property
    def cache_key(self) -> tuple[str, str]:
        """Identity used by the token cache."""
        return (self.base_url, self.client_id)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class AccessToken(BaseModel):
    """Short-lived bearer credential."""

    value: str = Field(..., min_length=1, repr=False)
    expires_at: datetime
    token_type: str = "bearer"

    @classmethod
    def from_response(
        cls,
        payload: dict,
        *,
        now: datetime | None = None,
        default_lifetime: float = 3600.0,
    ) -> AccessToken:
        """Build a token from an ``/oauth/token`` response body."""
        issued = now or datetime.now(UTC)
        expires_in = payload.get("expires_in")
        try:
            lifetime = float(expires_in) if expires_in is not None else default_lifetime
        except (TypeError, ValueError):
            lifetime = default_lifetime
        return cls(
            value=payload["access_token"],
            expires_at=issued + timedelta(seconds=lifetime),
            token_type=str(payload.get("token_type") or "bearer"),
        )

    def is_expired(self, margin: float = 0.0, *, now: datetime | None = None) -> bool:
        """Whether the token is expired, or will be within ``margin`` seconds."""
        current = now or datetime.now(UTC)
        return current >= self.expires_at - timedelta(seconds=margin)

    @property
    def authorization(self) -> str:
        return f"Bearer {self.value}"

    model_config = ConfigDict(frozen=True)
