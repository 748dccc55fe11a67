import asyncio
import pathlib
import sys
from copy import deepcopy

import pytest

# Ensure repo root on sys.path for direct module imports when running tests locally.
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from simple_rest_cache.client import Client
from simple_rest_cache.errors import TransportError


class StubRequest:
    def __init__(self, transport, method, path):
        self.transport = transport
        self.method = method
        self.path = path
        self.headers = {}
        self.params = {}

    def header(self, header, value=None):
        self.headers[header] = value
        return self

    def query(self, params=None, **kwargs):
        self.params.update(params or {}, **kwargs)
        return self

    async def __call__(self, data=None):
        self.transport.calls.append((self.method, self.path, data))
        if self.transport.gate is not None:
            await self.transport.gate.wait()
        else:
            await asyncio.sleep(0)

        response = self.transport.routes.get((self.method, self.path))
        if response is None:
            raise TransportError({"detail": "not found"}, 404)
        if callable(response):
            response = response(data)
        payload, status = response
        if status >= 400:
            raise TransportError(deepcopy(payload), status)
        return deepcopy(payload), status


class StubTransport:
    """Request factory answering from a route table and recording calls."""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.requests = []
        self.gate = None

    def respond(self, method, path, payload, status=200):
        self.routes[(method, path)] = (payload, status)

    def __call__(self, method, path):
        request = StubRequest(self, method, path)
        self.requests.append(request)
        return request


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(transport, clock):
    return Client("http://api.test", request_factory=transport, clock=clock, default_max_age=15)
