"""
Order placement — submit the cart, drain it only on confirmed commit.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from kungfu import Result, Ok, Error

from cartsync.engine import CartEngine
from cartsync.errors import CartError, CartErrors
from cartsync.model import SessionBinding
from cartsync.orders._types import OrderRecord, OrderState, ShippingInfo, parse_shipping
from cartsync.remote import RemoteCartClient

logger = logging.getLogger(__name__)


class OrderCoordinator:
    """
    Places orders for the engine's cart.

    The cart is never modified before the backend confirmed the order:
    a failed submission leaves cart, local snapshot and remote cart as
    they were. Only one submission runs at a time.
    """

    def __init__(self, engine: CartEngine, remote: RemoteCartClient) -> None:
        self._engine = engine
        self._remote = remote
        self._state = OrderState.IDLE
        self._last_error: CartError | None = None

    @property
    def state(self) -> OrderState:
        return self._state

    @property
    def last_error(self) -> CartError | None:
        return self._last_error

    async def place_order(
        self,
        shipping: Mapping[str, Any] | ShippingInfo | None,
    ) -> Result[OrderRecord, CartError]:
        if self._state is OrderState.SUBMITTING:
            return Error(CartErrors.order_in_progress())

        cart = self._engine.cart
        if cart.is_empty:
            return Error(CartErrors.empty_cart())

        match parse_shipping(shipping):
            case Ok(info):
                pass
            case Error(e):
                return Error(e)

        binding = self._engine.binding
        self._state = OrderState.SUBMITTING
        logger.info("Submitting order of %d item(s) for %s", cart.total_item_count, binding.scope)

        try:
            submitted = await self._remote.submit_order(binding, cart, info.to_payload())
        except BaseException:
            self._state = OrderState.IDLE
            raise

        match submitted:
            case Ok(payload):
                self._state = OrderState.COMMITTED
                self._last_error = None
                record = OrderRecord(payload)
                logger.info("Order %s committed for %s", record.id, binding.scope)
                await self._drain(binding)
                return Ok(record)
            case Error(e):
                self._state = OrderState.FAILED
                self._last_error = e
                logger.warning("Order for %s failed, cart kept: %s", binding.scope, e)
                self._state = OrderState.IDLE
                return Error(e)

    async def order_history(self) -> Result[list[OrderRecord], CartError]:
        match await self._remote.list_orders(self._engine.binding):
            case Ok(rows):
                return Ok([OrderRecord(row) for row in rows])
            case Error(e):
                return Error(e)

    async def _drain(self, binding: SessionBinding) -> None:
        match await self._engine.drain(binding):
            case Error(e):
                logger.warning("Order committed but the remote cart was not cleared: %s", e)


__all__ = ("OrderCoordinator",)
