"""
Store operations — cart-level reads and writes over any LocalStore.
"""

from __future__ import annotations

import logging

from kungfu import LazyCoroResult, Result, Ok, Error

from cartsync.model import Cart, Scope, cart_from_snapshot, cart_to_snapshot
from cartsync.store._types import LocalStore, StoreError

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# read_cart() — Snapshot for a Scope
# ═══════════════════════════════════════════════════════════════════════════════


def read_cart(store: LocalStore, scope: Scope) -> LazyCoroResult[Cart | None, StoreError]:
    """
    Read the snapshot stored for scope.

    Returns Ok(None) when nothing is stored. A snapshot that cannot be
    decoded is an Error, which callers treat as absent.

    Example:
        match await read_cart(store, Scope.guest()):
            case Ok(None): ...
            case Ok(cart): ...
    """
    key = scope.storage_key

    async def do_read() -> Result[Cart | None, StoreError]:
        match await store.get(key):
            case Ok(None):
                return Ok(None)
            case Ok(snapshot):
                try:
                    return Ok(cart_from_snapshot(snapshot))
                except (TypeError, ValueError) as e:
                    return Error(StoreError(f"Unreadable snapshot under {key}: {e}", e, corrupt=True))
            case Error(e):
                return Error(e)

    return LazyCoroResult(do_read)


# ═══════════════════════════════════════════════════════════════════════════════
# write_cart() — Full Replace
# ═══════════════════════════════════════════════════════════════════════════════


def write_cart(store: LocalStore, scope: Scope, cart: Cart) -> LazyCoroResult[None, StoreError]:
    """Store cart as the full snapshot for scope, empty carts included."""
    key = scope.storage_key
    snapshot = cart_to_snapshot(cart)

    async def do_write() -> Result[None, StoreError]:
        result = await store.set(key, snapshot)
        match result:
            case Ok(_):
                logger.debug("Stored %d line(s) under %s", len(snapshot), key)
        return result

    return LazyCoroResult(do_write)


# ═══════════════════════════════════════════════════════════════════════════════
# drop_cart() — Remove Snapshot
# ═══════════════════════════════════════════════════════════════════════════════


def drop_cart(store: LocalStore, scope: Scope) -> LazyCoroResult[bool, StoreError]:
    """
    Remove the snapshot for scope.

    Returns:
        True if a snapshot existed
    """
    key = scope.storage_key

    async def do_drop() -> Result[bool, StoreError]:
        return await store.remove(key)

    return LazyCoroResult(do_drop)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("read_cart", "write_cart", "drop_cart")
