"""Exceptions raised by the REST cache client."""

from __future__ import annotations

from typing import Any


class RestCacheError(Exception):
    """Base exception for the REST cache client."""


class TransportError(RestCacheError):
    """
    A request completed with a failing status or could not be sent.

    Attributes:
        payload: Decoded response body, if any.
        status: HTTP status code (synthesized for network failures).
    """

    def __init__(self, payload: Any, status: int):
        self.payload = payload
        self.status = status
        super().__init__(f"Request failed with status {status}")


class RequestFailed(RestCacheError):
    """Raised through a ``wait()`` future when the awaited event did not succeed."""

    def __init__(self, subject: Any, status: int):
        self.subject = subject
        self.status = status
        super().__init__(f"{subject!r} settled with status {status}")


__all__ = ["RestCacheError", "TransportError", "RequestFailed"]
