"""
Small helpers shared by the record, model and collection layers.

All functions are stateless and free of I/O.
"""

from __future__ import annotations

import types
from collections.abc import Callable
from typing import Any

SUCCESS_STATUS_MIN = 200
SUCCESS_STATUS_MAX = 400


def identity(value: Any) -> Any:
    """Return the argument unchanged."""
    return value


def arrify(*args: Any) -> list[Any]:
    """
    Flatten the arguments into a single list of key components.

    Lists and tuples are expanded one level, ``None`` values are dropped, so
    ``arrify(1)``, ``arrify([1])`` and ``arrify(None, 1)`` all give ``[1]``.
    """
    components: list[Any] = []
    for arg in args:
        if arg is None:
            continue
        if isinstance(arg, (list, tuple)):
            components.extend(item for item in arg if item is not None)
        else:
            components.append(arg)
    return components


def is_sequence(value: Any) -> bool:
    """True for list-shaped payloads (strings and mappings excluded)."""
    return isinstance(value, (list, tuple))


def is_success(status: int | None) -> bool:
    """True for status codes in the success/redirect range ``[200, 400)``."""
    return status is not None and SUCCESS_STATUS_MIN <= status < SUCCESS_STATUS_MAX


def make_url(path: str, base: str | None) -> str:
    """Join a resource path onto the API base URL."""
    if not base:
        return path
    return "/".join([base.rstrip("/"), path.lstrip("/")])


class hybridmethod:
    """
    Method that binds to the class or to the instance, with separate bodies.

    Usage mirrors ``property.setter``::

        @hybridmethod
        def delete(cls, key): ...

        @delete.instancemethod
        def delete(self): ...
    """

    def __init__(self, fclass: Callable[..., Any], finstance: Callable[..., Any] | None = None):
        self.fclass = fclass
        self.finstance = finstance
        self.__doc__ = fclass.__doc__

    def instancemethod(self, finstance: Callable[..., Any]) -> hybridmethod:
        return type(self)(self.fclass, finstance)

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None or self.finstance is None:
            return types.MethodType(self.fclass, objtype if objtype is not None else type(obj))
        return types.MethodType(self.finstance, obj)


__all__ = [
    "arrify",
    "hybridmethod",
    "identity",
    "is_sequence",
    "is_success",
    "make_url",
]
