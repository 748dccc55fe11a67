"""
Entity resolver.

Every client owns a ``Model`` base class; resource types subclass it and
declare their configuration with class keywords::

    class User(api.Model, dirname="users"):
        pass

    class Post(api.Model, dirname="posts", references={"userId": "User"}):
        @property
        def comments(self):
            return api.collection(Comment).in_(self)

An entity is a cheap view over a ``Record``; resolving the same key twice
returns two entities sharing one record. Field access goes through
``get_field``/``set_field``, which attribute access falls back to.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, ClassVar

from .models import CREATE, DELETE, READ, UPDATE, ResourceConfig
from .record import Record
from .utils import arrify, hybridmethod, is_success

if TYPE_CHECKING:
    from .client import Client

logger = logging.getLogger(__name__)

_MISSING = object()


def _inline_value(value: Any, shallow: bool) -> Any:
    if isinstance(value, Model):
        pk = value.pk
        return pk[0] if len(pk) == 1 else pk
    if shallow or value is None:
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return inline_entities(value, shallow)
    return value


def inline_entities(data: Any, shallow: bool = False) -> Any:
    """
    Replace every entity found in ``data`` with its primary key.

    Args:
        data: Mapping or list to inline, left unmodified.
        shallow: When True, values nested in mappings or lists of ``data``
            are not inspected.

    Returns:
        A copy of ``data`` with entities replaced.
    """
    if isinstance(data, Mapping):
        return {name: _inline_value(value, shallow) for name, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [_inline_value(value, shallow) for value in data]
    return _inline_value(data, shallow)


class Model:
    """Base class of all resource types."""

    client: ClassVar[Client]
    config: ClassVar[ResourceConfig] = ResourceConfig()

    def __init_subclass__(cls, config: ResourceConfig | None = None, **options: Any) -> None:
        super().__init_subclass__()
        if "client" in cls.__dict__:
            # Client-bound base class, nothing to declare
            return

        if config is not None and options:
            raise TypeError("Pass either a ResourceConfig or keyword options, not both")
        cls.config = config if config is not None else ResourceConfig(**options)

        client = getattr(cls, "client", None)
        if client is not None:
            client.register(cls)

    def __init__(self, record: Record, key: Any = None) -> None:
        self._record = record
        # Key the entity was resolved with, used until the data carries one
        self._key = arrify(key)

    # Type-level configuration

    @classmethod
    def dirname(cls) -> str:
        return cls.config.dirname or cls.__name__.lower()

    @classmethod
    def path_for(cls, key: Any) -> str:
        """Return the path of the entity identified by a (composite) key."""
        keys = arrify(key)
        if cls.config.path_builder is not None:
            return cls.config.path_builder(keys)
        return "/" + "/".join(str(part) for part in [cls.dirname(), *keys])

    @classmethod
    def max_age(cls) -> float | None:
        if cls.config.max_age is not None:
            return cls.config.max_age
        return cls.client.default_max_age

    # Record views

    @property
    def record(self) -> Record:
        return self._record

    @property
    def data(self) -> Any:
        return self._record.data

    @property
    def status(self) -> int:
        return self._record.status

    @property
    def dirty(self) -> bool:
        return self._record.dirty

    @property
    def pk(self) -> list[Any]:
        """Primary key components, taken from the first present key field."""
        data = self._record.data
        if isinstance(data, Mapping):
            for name in self.config.key_fields:
                value = data.get(name)
                if value is not None:
                    return arrify(value)
        return list(self._key)

    @property
    def path(self) -> str:
        return type(self).path_for(self.pk)

    # Field access

    def get_field(self, name: str) -> Any:
        """
        Read a field of the entity.

        Declared references resolve to the referenced entity, entity
        attributes (methods, properties) come next, then raw data values.
        Unknown fields read as None.
        """
        target = self.config.references.get(name)
        if target is not None:
            return self._resolve_reference(name, target)

        if name in self.__dict__ or inspect.getattr_static(type(self), name, _MISSING) is not _MISSING:
            return getattr(self, name)

        data = self._record.data
        if isinstance(data, Mapping) and name in data:
            return data[name]
        return None

    def set_field(self, name: str, value: Any) -> bool:
        """
        Write a field of the entity.

        Properties with a setter are assigned directly; existing data fields
        are staged as patches on the record. Returns False when the field is
        not writable.
        """
        attr = inspect.getattr_static(type(self), name, _MISSING)
        if isinstance(attr, property) and attr.fset is not None:
            attr.fset(self, value)
            return True
        if name in self.__dict__:
            self.__dict__[name] = value
            return True

        data = self._record.data
        if isinstance(data, MutableMapping) and name in data:
            self._record.patch({name: value})
            return True
        return False

    def _resolve_reference(self, name: str, target: str | type) -> Model | None:
        data = self._record.data
        if not isinstance(data, Mapping):
            return None
        if name not in data:
            logger.error("'%s' is not a field of %s", name, type(self).__name__)
            return None

        raw = data[name]
        if raw is None:
            return None
        if isinstance(raw, Model):
            # Entity assigned locally, not yet written back
            return raw
        return self.client.resolve_model(target).get(raw)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup failed
        if name.startswith("_") or inspect.getattr_static(type(self), name, _MISSING) is not _MISSING:
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
        return self.get_field(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        elif not self.set_field(name, value):
            logger.debug("Field '%s' of %s is not writable", name, type(self).__name__)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return type(self) is type(other) and self.path == other.path

    def __hash__(self) -> int:
        return hash((type(self), self.path))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.path} status={self.status}>"

    # Resolution

    @classmethod
    def get(cls, key: Any, *, force_refresh: bool = False) -> Model:
        """
        Return the entity identified by ``key``, refreshing it in the background.

        The entity is returned right away and may still be empty. A GET is
        issued when ``force_refresh`` is set or the cached record is stale.
        """
        client = cls.client
        keys = arrify(key)
        path = cls.path_for(keys)
        record = client.store.get(path)
        if record is None:
            record = client.store.set(path, client.new_record())
        entity = cls(record, keys)
        max_age = cls.max_age()

        async def refresh(rec: Record) -> str | None:
            if not force_refresh and not rec.is_stale(max_age):
                return None

            payload, status = await client.send("GET", path)
            rec.data = payload
            rec.status = status

            # Alias keys such as "me" also become reachable by their canonical path
            canonical = entity.path
            if is_success(status) and canonical != path and client.store.get(canonical) is None:
                client.store.set(canonical, rec)
            return READ

        client.spawn(record.update_async(refresh))
        return entity

    @classmethod
    def create(cls, data: Mapping[str, Any]) -> Model:
        """
        Create a new entity of this type.

        The POST runs in the background; the record is stored under the
        entity's path once the server assigned its key.
        """
        client = cls.client
        path = cls.path_for([])
        record = client.new_record()
        entity = cls(record)

        async def do_create(rec: Record) -> str:
            payload, status = await client.send("POST", path, inline_entities(data))
            rec.data = payload
            rec.status = status
            if is_success(status) and entity.pk:
                client.store.set(entity.path, rec)
            return CREATE

        client.spawn(record.update_async(do_create))
        return entity

    async def patch(self) -> Model:
        """
        Send the locally staged changes with a PATCH request.

        The response is merged into the existing data, except for fields
        staged again while the request was in flight: those keep their local
        value and stay pending. Sent fields stop being pending once the
        server accepted them.
        """
        if not self._record.get_patches():
            return self

        client = self.client
        path = self.path

        async def write_back(rec: Record) -> str | None:
            sent = rec.get_patches()
            if not sent:
                return None

            payload, status = await client.send("PATCH", path, inline_entities(sent))
            rec.status = status
            if is_success(status):
                restaged = {
                    name
                    for name, value in rec.get_patches().items()
                    if name not in sent or sent[name] != value
                }
                if isinstance(payload, Mapping) and isinstance(rec.data, MutableMapping):
                    rec.data.update(
                        {name: value for name, value in payload.items() if name not in restaged}
                    )
                rec.clear_patches(name for name in sent if name not in restaged)
            return UPDATE

        await self._record.update_async(write_back)
        return self

    @hybridmethod
    async def delete(cls, key: Any) -> tuple[Any, int]:
        """Delete the entity identified by ``key`` and return ``(payload, status)``."""
        return await cls.client.send("DELETE", cls.path_for(key))

    @delete.instancemethod
    async def delete(self) -> Model:
        path = self.path
        client = self.client

        async def do_delete(rec: Record) -> str:
            payload, status = await client.send("DELETE", path)
            rec.data = payload
            rec.status = status
            return DELETE

        await self._record.update_async(do_delete)
        return self

    def wait(self, event: str | None = None) -> asyncio.Future[Model]:
        """
        Return a future resolved with the entity once ``event`` happens.

        ``None`` and ``"ready"`` match any event. The future fails with
        ``RequestFailed`` when the record settles with an error status.
        """
        return self._record.wait_event(self, event)


def make_model(client: Client) -> type[Model]:
    """Return a ``Model`` base class bound to ``client``."""
    return type(
        "Model",
        (Model,),
        {"client": client, "__module__": Model.__module__, "__doc__": Model.__doc__},
    )


__all__ = ["Model", "inline_entities", "make_model"]
