"""Utility functions."""

from .http import HTTPClient, HTTPResponse
from .retry import retry_async

__all__ = ["HTTPClient", "HTTPResponse", "retry_async"]
