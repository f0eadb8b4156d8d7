"""Shared fixtures: an in-process backend and store, and an engine wired to them."""
from __future__ import annotations

import pytest

from cartsync.engine import CartEngine
from cartsync.model import SessionBinding
from cartsync.orders import OrderCoordinator
from cartsync.remote import MemoryBackend, RemoteCartClient
from cartsync.store import MemoryStore


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend(stock={"A": 10, "B": 10, "C": 10})


@pytest.fixture
def local() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def client(backend: MemoryBackend) -> RemoteCartClient:
    return RemoteCartClient(backend, timeout=1.0)


@pytest.fixture
def engine(local: MemoryStore, client: RemoteCartClient) -> CartEngine:
    return CartEngine(local, client)


@pytest.fixture
def orders(engine: CartEngine, client: RemoteCartClient) -> OrderCoordinator:
    return OrderCoordinator(engine, client)


@pytest.fixture
def user(backend: MemoryBackend) -> SessionBinding:
    """Signed-in binding for user u1 with a token the backend accepts."""
    return SessionBinding.signed_in("u1", backend.issue_token("u1"))
