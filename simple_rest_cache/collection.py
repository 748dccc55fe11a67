"""
Collection resolver.

A collection is a lazy view over a record whose data is a list. Each item
is either a key, resolved through the element model's ``get``, or inline
entity data, wrapped into an entity that is not stored anywhere.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from .entity import Model
from .models import READ
from .record import Record
from .utils import is_sequence

if TYPE_CHECKING:
    from .client import Client

logger = logging.getLogger(__name__)

_NO_INITIAL = object()


def load_entity(model: type[Model], key_or_data: Any) -> Model:
    """Wrap inline data into an entity or resolve a key."""
    if isinstance(key_or_data, Mapping):
        return model(Record(dict(key_or_data)))
    return model.get(key_or_data)


class Collection:
    """A set of entities of the same type, backed by one record."""

    client: ClassVar[Client]
    model: ClassVar[type[Model]]
    max_age: ClassVar[float | None] = None

    def __init__(self, record: Record, path: str | None = None) -> None:
        self.record = record
        self.path = path

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.path} status={self.record.status}>"

    @property
    def data(self) -> Any:
        return self.record.data

    @property
    def status(self) -> int:
        return self.record.status

    def _items(self) -> list[Any]:
        data = self.record.data
        if data is None:
            return []
        if not is_sequence(data):
            logger.error("Endpoint %s did not return a list of keys", self.path)
            return []
        return list(data)

    def __iter__(self) -> Iterator[Model]:
        for key_or_data in self._items():
            yield load_entity(self.model, key_or_data)

    def __len__(self) -> int:
        return len(self._items())

    def __getitem__(self, index: int | slice) -> Model | list[Model]:
        if isinstance(index, slice):
            return [load_entity(self.model, item) for item in self._items()[index]]
        return load_entity(self.model, self._items()[index])

    def first(self) -> Model | None:
        return next(iter(self), None)

    def for_each(self, fn: Callable[[Model, int], Any]) -> None:
        for index, entity in enumerate(self):
            fn(entity, index)

    def map(self, fn: Callable[[Model, int], Any]) -> list[Any]:
        return [fn(entity, index) for index, entity in enumerate(self)]

    def reduce(self, fn: Callable[[Any, Model, int], Any], initial: Any = _NO_INITIAL) -> Any:
        """
        Fold the entities from left to right.

        Without ``initial`` the first entity is the starting value; reducing
        an empty collection then raises ``TypeError``.
        """
        entities = iter(enumerate(self))
        if initial is _NO_INITIAL:
            try:
                _, accum = next(entities)
            except StopIteration:
                raise TypeError("reduce() of empty collection with no initial value") from None
        else:
            accum = initial

        for index, entity in entities:
            accum = fn(accum, entity, index)
        return accum

    def wait(self, event: str | None = None) -> asyncio.Future[Collection]:
        """See ``Model.wait``."""
        return self.record.wait_event(self, event)

    @classmethod
    def get(
        cls,
        path: str,
        *,
        max_age: float | None = None,
        force_refresh: bool = False,
    ) -> Collection:
        """Return the collection at ``path``, refreshing it in the background."""
        client = cls.client
        record = client.store.get(path)
        if record is None:
            record = client.store.set(path, client.new_record())
        collection = cls(record, path)
        if max_age is None:
            max_age = cls.max_age if cls.max_age is not None else client.default_max_age

        async def refresh(rec: Record) -> str | None:
            if not force_refresh and not rec.is_stale(max_age):
                return None

            payload, status = await client.send("GET", path)
            rec.data = payload
            rec.status = status
            return READ

        client.spawn(record.update_async(refresh))
        return collection

    @classmethod
    def in_(cls, owner: Model, **options: Any) -> Collection:
        """Return the collection of this type nested under ``owner``."""
        return cls.get("/".join([owner.path, cls.model.dirname()]), **options)


def make_collection(
    client: Client,
    model: type[Model],
    *,
    max_age: float | None = None,
) -> type[Collection]:
    """Return a ``Collection`` class bound to ``client`` and the element ``model``."""
    return type(
        f"{model.__name__}Collection",
        (Collection,),
        {"client": client, "model": model, "max_age": max_age, "__module__": Collection.__module__},
    )


__all__ = ["Collection", "load_entity", "make_collection"]
