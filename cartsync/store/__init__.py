"""
Store — durable local cart snapshots.

    from cartsync import store as St

    local = St.MemoryStore()
    await St.write_cart(local, scope, cart)
    cached = await St.read_cart(local, scope)
"""

from __future__ import annotations

from cartsync.store._types import (
    LocalStore,
    StoreError,
    MemoryStore,
)
from cartsync.store._ops import read_cart, write_cart, drop_cart
from cartsync.store._sqlalchemy import (
    CartSnapshotTable,
    SQLAlchemyStore,
    create_store,
)

__all__ = (
    "LocalStore",
    "StoreError",
    "MemoryStore",
    "read_cart",
    "write_cart",
    "drop_cart",
    "CartSnapshotTable",
    "SQLAlchemyStore",
    "create_store",
)
