"""Small assertion helpers shared by the test modules."""
from __future__ import annotations

from typing import Any

import pytest
from kungfu import Result, Ok, Error

from cartsync.model import CartLineItem


def ok[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"expected Ok, got Error({e!r})")


def err[E](result: Result[Any, E]) -> E:
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"expected Error, got Ok({value!r})")


def item(
    product_id: str = "A",
    price: int | str = 50,
    *,
    stock: int | None = None,
    name: str | None = None,
) -> CartLineItem:
    return CartLineItem(
        product_id=product_id,
        name=name or f"Product {product_id}",
        unit_price=price,
        stock_hint=stock,
    )


def row(product_id: str, qty: int, price: int = 50, **extra: Any) -> dict[str, Any]:
    """A cart row in the wire shape."""
    return {
        "productId": product_id,
        "name": f"Product {product_id}",
        "price": price,
        "qty": qty,
        "image": "",
        "dosage": "",
        "manufacturer": "",
        "category": "",
        "stock": None,
        **extra,
    }


def quantities(rows: list[dict[str, Any]] | None) -> dict[str, int]:
    return {r["productId"]: r["qty"] for r in rows or []}
