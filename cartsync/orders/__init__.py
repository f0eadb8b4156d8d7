"""
Orders — checkout on top of the cart engine.

    from cartsync.orders import OrderCoordinator

    orders = OrderCoordinator(engine, client)
    match await orders.place_order({"address": "12 Main St", "phone": "555-0100"}):
        case Ok(record): print(record.id)
        case Error(e): print(e.message)
"""

from __future__ import annotations

from cartsync.orders._types import (
    ShippingInfo,
    parse_shipping,
    OrderState,
    OrderRecord,
)
from cartsync.orders._coordinator import OrderCoordinator

__all__ = (
    "ShippingInfo",
    "parse_shipping",
    "OrderState",
    "OrderRecord",
    "OrderCoordinator",
)
