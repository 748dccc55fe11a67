"""
HTTP transport built on aiohttp.

``HttpTransport(method, path)`` returns an ``HttpRequest`` dispatcher;
awaiting the dispatcher sends the request and returns ``(payload, status)``,
or raises ``TransportError`` with the same pair when the status is 400 or
above.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from .config_loader import config
from .errors import TransportError
from .utils import make_url

METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"})

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"
TEXT_CONTENT_TYPE = "text/plain; charset=UTF-8"

logger = logging.getLogger(__name__)


def encode_data(data: Any, headers: dict[str, str]) -> Any:
    """
    Encode a request body and set a matching Content-Type header.

    Headers already set by the caller are left untouched.
    """

    def default_content_type(content_type: str) -> None:
        headers.setdefault("Content-Type", content_type)

    if data is None or isinstance(data, aiohttp.FormData):
        return data
    if isinstance(data, (bytes, bytearray)):
        if "Content-Type" not in headers:
            logger.warning("No 'Content-Type' header for binary data")
        return data
    if isinstance(data, str):
        default_content_type(TEXT_CONTENT_TYPE)
        return data

    # Assume JSON payload
    default_content_type(JSON_CONTENT_TYPE)
    return json.dumps(data)


def decode_data(text: str, content_type: str | None) -> Any:
    """Decode a response body according to its Content-Type."""
    if not content_type:
        logger.warning("No 'Content-Type' response header found")
        return text or None
    if not text:
        return None

    media_type = content_type.split(";")[0].strip().lower()
    if media_type == "application/json" or media_type.endswith("+json"):
        try:
            return json.loads(text)
        except ValueError as exc:
            logger.warning("Invalid JSON response body: %s", exc)
            return text
    return text


class HttpRequest:
    """A single request, dispatched by awaiting the object."""

    def __init__(self, transport: HttpTransport, method: str, path: str):
        method = method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        self.transport = transport
        self.method = method
        self.path = path
        self.url = make_url(path, transport.base_url)
        self.headers: dict[str, str] = dict(transport.default_headers)
        self.params: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"<HttpRequest {self.method} {self.url}>"

    def header(self, header: str | dict[str, str], value: str | None = None) -> HttpRequest:
        """Add or replace one header, or merge a mapping of headers. A None value removes it."""
        if isinstance(header, str):
            if value is None:
                self.headers.pop(header, None)
            else:
                self.headers[header] = value
        else:
            self.headers.update(header)
        return self

    def query(self, params: dict[str, Any] | None = None, **kwargs: Any) -> HttpRequest:
        """Add query string parameters."""
        self.params.update(params or {}, **kwargs)
        return self

    async def __call__(self, data: Any = None) -> tuple[Any, int]:
        headers = dict(self.headers)
        body = encode_data(data, headers)
        session = self.transport.session()

        try:
            async with session.request(
                self.method,
                self.url,
                data=body,
                headers=headers,
                params=self.params or None,
                timeout=aiohttp.ClientTimeout(total=self.transport.timeout),
            ) as response:
                payload = None
                if self.method != "HEAD":
                    text = await response.text()
                    payload = decode_data(text, response.headers.get("Content-Type"))
                status = response.status
        except TimeoutError:
            self.transport.logger.error("%s %s timed out", self.method, self.url)
            raise TransportError({"detail": "timeout"}, 504) from None
        except aiohttp.ClientError as exc:
            self.transport.logger.error("%s %s connection error: %s", self.method, self.url, exc)
            raise TransportError({"detail": str(exc)}, 503) from exc

        self.transport.logger.debug("%s %s -> %s", self.method, self.url, status)
        if status >= 400:
            raise TransportError(payload, status)
        return payload, status


class HttpTransport:
    """Creates request dispatchers sharing one aiohttp session."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.base_url = config.base_url if base_url is None else base_url
        self.timeout = config.request_timeout if timeout is None else timeout
        self.default_headers = {"User-Agent": config.user_agent, **config.default_headers}
        self.default_headers.update(headers or {})
        self.logger = logger or logging.getLogger(self.__class__.__module__)
        self._session: aiohttp.ClientSession | None = None

    def __call__(self, method: str, path: str) -> HttpRequest:
        return HttpRequest(self, method, path)

    def session(self) -> aiohttp.ClientSession:
        """
        Lazily create the aiohttp session once an event loop exists.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = ["HttpRequest", "HttpTransport", "decode_data", "encode_data"]
