"""Keyed storage of records."""

from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Any, Protocol

from .record import Record
from .utils import identity


class Store(Protocol):
    """Interface the client expects from a record store."""

    def get(self, key: str) -> Record | None: ...

    def set(self, key: str, record: Record) -> Record: ...


class InMemoryStore:
    """
    Process-local, unbounded record store.

    Args:
        hash: Function applied to keys before storage.
    """

    def __init__(self, hash: Callable[[Any], Hashable] = identity) -> None:  # noqa: A002
        self._hash = hash
        self._records: dict[Hashable, Record] = {}

    def get(self, key: str) -> Record | None:
        return self._records.get(self._hash(key))

    def set(self, key: str, record: Record) -> Record:
        self._records[self._hash(key)] = record
        return record

    def __contains__(self, key: object) -> bool:
        return self._hash(key) in self._records

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["InMemoryStore", "Store"]
