"""
Merge — reconciling a guest cart with a user's remote cart.
"""

from __future__ import annotations

from collections.abc import Iterable

from cartsync._types import ProductId
from cartsync.model._types import CartLineItem


def collapse(items: Iterable[CartLineItem]) -> tuple[CartLineItem, ...]:
    """
    One line per product, quantities summed, first-seen order kept.

    The first occurrence's metadata wins.
    """
    merged: dict[ProductId, CartLineItem] = {}
    for item in items:
        existing = merged.get(item.product_id)
        if existing is None:
            merged[item.product_id] = item
        else:
            merged[item.product_id] = existing.with_quantity(existing.quantity + item.quantity)
    return tuple(merged.values())


def merge_items(
    remote: Iterable[CartLineItem],
    guest: Iterable[CartLineItem],
) -> tuple[CartLineItem, ...]:
    """
    Merge guest lines into the remote list.

    Remote lines come first; a guest line for a product already present
    adds its quantity, any other guest line is appended unchanged.

    Example:
        remote {A:3, B:1} + guest {A:2}  →  {A:5, B:1}
    """
    return collapse((*remote, *guest))


__all__ = ("collapse", "merge_items")
