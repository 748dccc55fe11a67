"""
Simple REST cache package.

An asyncio client for resource-oriented APIs that returns cached entities
immediately, refreshes them in the background, serializes concurrent
updates per resource and tracks local changes until they are written back.
"""
from .client import Client
from .collection import Collection
from .entity import Model, inline_entities
from .errors import RequestFailed, RestCacheError, TransportError
from .models import CREATE, DELETE, READ, READY, UPDATE, ResourceConfig
from .record import Record
from .store import InMemoryStore, Store
from .transport import HttpTransport

__version__ = "1.0.0"
__all__ = [
    "CREATE",
    "DELETE",
    "READ",
    "READY",
    "UPDATE",
    "Client",
    "Collection",
    "HttpTransport",
    "InMemoryStore",
    "Model",
    "Record",
    "RequestFailed",
    "ResourceConfig",
    "RestCacheError",
    "Store",
    "TransportError",
    "inline_entities",
]
