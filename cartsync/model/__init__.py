"""
Model — line items, carts, ownership scopes and their wire mapping.

    from cartsync import model as M

    cart = M.Cart.empty().add(M.CartLineItem("A", "Aspirin", 50), quantity=2)
    merged = M.merge_items(remote_items, guest_items)
"""

from __future__ import annotations

from cartsync.model._types import (
    CartLineItem,
    Cart,
    Scope,
    SessionBinding,
    GUEST,
    GUEST_KEY,
)
from cartsync.model._merge import collapse, merge_items
from cartsync.model._mapping import (
    item_from_remote,
    item_to_remote,
    items_from_remote,
    cart_to_snapshot,
    cart_from_snapshot,
)

__all__ = (
    "CartLineItem",
    "Cart",
    "Scope",
    "SessionBinding",
    "GUEST",
    "GUEST_KEY",
    "collapse",
    "merge_items",
    "item_from_remote",
    "item_to_remote",
    "items_from_remote",
    "cart_to_snapshot",
    "cart_from_snapshot",
)
