"""
REST client tying the cache layers together.

A ``Client`` owns the record store, the request factory and the
``Model`` base class of its resource types. Background refreshes are
scheduled on the running event loop through ``spawn``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from .collection import Collection, make_collection
from .config_loader import config
from .entity import Model, make_model
from .errors import TransportError
from .record import Record
from .store import InMemoryStore, Store
from .transport import HttpTransport

RequestFactory = Callable[[str, str], Any]


class Client:
    """
    An asynchronous REST client with a shared record cache.

    Args:
        base_url: Base URL of all endpoints (defaults to the configured one)
        authorize: Callback receiving every new request dispatcher, used to
            add credentials such as an ``Authorization`` header
        store: Record store; must provide ``get(key)`` and ``set(key, record)``
        request_factory: Callable ``(method, path) -> dispatcher`` replacing
            the aiohttp transport
        default_max_age: Freshness window in seconds for types that set none
        clock: Time source used for record timestamps
        diagnostics: Optional hook called once with the client, for debugging
            tools that want to inspect the store
        logger: Logger used by the client
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        authorize: Callable[[Any], None] | None = None,
        store: Store | None = None,
        request_factory: RequestFactory | None = None,
        default_max_age: float | None = None,
        clock: Callable[[], float] = time.time,
        diagnostics: Callable[[Client], None] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.base_url = config.base_url if base_url is None else base_url
        self.authorize = authorize
        self.store: Store = store if store is not None else InMemoryStore()
        self.default_max_age = config.default_max_age if default_max_age is None else default_max_age
        self.clock = clock
        self.logger = logger or logging.getLogger(self.__class__.__module__)

        self.transport = request_factory or HttpTransport(self.base_url, logger=self.logger)
        self.models: dict[str, type[Model]] = {}
        self.Model = make_model(self)
        self._tasks: set[asyncio.Task[Any]] = set()

        if diagnostics is not None:
            diagnostics(self)

    def __repr__(self) -> str:
        return f"<Client {self.base_url!r} models={sorted(self.models)}>"

    # Resource types

    def register(self, model: type[Model]) -> None:
        """Make a model class resolvable by name in reference declarations."""
        if model.__name__ in self.models:
            self.logger.debug("Replacing model %s", model.__name__)
        self.models[model.__name__] = model

    def resolve_model(self, target: str | type[Model]) -> type[Model]:
        if isinstance(target, type):
            return target
        try:
            return self.models[target]
        except KeyError:
            raise LookupError(f"Unknown model '{target}'") from None

    def collection(self, model: type[Model], *, max_age: float | None = None) -> type[Collection]:
        """Return a collection class whose elements are ``model`` entities."""
        return make_collection(self, model, max_age=max_age)

    def new_record(self, data: Any = None) -> Record:
        return Record(data, clock=self.clock)

    # Requests

    def request(self, method: str, path: str) -> Any:
        """Create a request dispatcher, authorized when a callback is set."""
        dispatch = self.transport(method, path)
        if self.authorize is not None:
            self.authorize(dispatch)
        return dispatch

    async def send(self, method: str, path: str, data: Any = None) -> tuple[Any, int]:
        """
        Dispatch a request and return ``(payload, status)``.

        Failing statuses are returned rather than raised so records can
        settle with the error payload.
        """
        dispatch = self.request(method, path)
        try:
            return await dispatch(data)
        except TransportError as exc:
            self.logger.info("%s %s failed with status %s", method, path, exc.status)
            return exc.payload, exc.status

    # Background work

    def spawn(self, awaitable: Awaitable[Any]) -> asyncio.Task[Any]:
        """Schedule a background update and keep a reference until it finishes."""
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait until all background updates, including ones they schedule, are done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.join()
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["Client"]
