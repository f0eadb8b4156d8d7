"""
Mapping between the wire/snapshot shape and CartLineItem.

The contract is total: every field has a default when absent, so a
partial row from an older backend or an older local snapshot still maps.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from cartsync._types import Snapshot
from cartsync.model._merge import collapse
from cartsync.model._types import Cart, CartLineItem

logger = logging.getLogger(__name__)


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _int_or(value: Any, default: int | None) -> int | None:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def item_from_remote(data: Mapping[str, Any]) -> CartLineItem:
    """
    Translate one remote (or snapshot) row.

    Raises ValueError when the row has no product id, a quantity below 1
    or a negative price; items_from_remote drops such rows.
    """
    product_id = data.get("productId") or data.get("_id")
    if not product_id:
        raise ValueError("row has no productId")
    quantity = _int_or(data.get("qty"), 1)
    return CartLineItem(
        product_id=str(product_id),
        name=_text(data, "name"),
        unit_price=data.get("price") if data.get("price") is not None else 0,
        quantity=quantity if quantity is not None else 1,
        image_ref=_text(data, "image"),
        dosage_label=_text(data, "dosage"),
        manufacturer_label=_text(data, "manufacturer"),
        category=_text(data, "category"),
        stock_hint=_int_or(data.get("stock"), None),
    )


def item_to_remote(item: CartLineItem) -> dict[str, Any]:
    return {
        "productId": item.product_id,
        "name": item.name,
        "price": _number(item.unit_price),
        "qty": item.quantity,
        "image": item.image_ref,
        "dosage": item.dosage_label,
        "manufacturer": item.manufacturer_label,
        "category": item.category,
        "stock": item.stock_hint,
    }


def items_from_remote(rows: Iterable[Any]) -> tuple[CartLineItem, ...]:
    """Translate a row list, dropping unusable rows and collapsing duplicates."""
    items: list[CartLineItem] = []
    for row in rows:
        if not isinstance(row, Mapping):
            logger.warning("Dropping cart row of type %s", type(row).__name__)
            continue
        try:
            items.append(item_from_remote(row))
        except ValueError as e:
            logger.warning("Dropping cart row %r: %s", row.get("productId") or row.get("_id"), e)
    return collapse(items)


def cart_to_snapshot(cart: Cart) -> Snapshot:
    return [item_to_remote(item) for item in cart.items]


def cart_from_snapshot(snapshot: Iterable[Any]) -> Cart:
    return Cart(items_from_remote(snapshot))


__all__ = (
    "item_from_remote",
    "item_to_remote",
    "items_from_remote",
    "cart_to_snapshot",
    "cart_from_snapshot",
)
