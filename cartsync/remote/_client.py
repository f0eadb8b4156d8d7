"""
Remote cart store client — thin Result-returning operations over a Transport.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from kungfu import LazyCoroResult, Result, Ok, Error

from cartsync.config import DEFAULT_TIMEOUT_SECONDS
from cartsync.errors import CartError, CartErrors, error_from_exception, error_from_response
from cartsync.lift import bounded, from_result
from cartsync.model import Cart, CartLineItem, SessionBinding, cart_to_snapshot, items_from_remote
from cartsync.remote._transport import HttpResponse, Method, Transport

logger = logging.getLogger(__name__)


def _body_of(response: HttpResponse) -> Result[Any, CartError]:
    if response.ok:
        return Ok(response.body)
    return Error(error_from_response(response.status, response.body))


class RemoteCartClient:
    """
    The authoritative backend, as seen by the engine.

    Every call is bounded by a timeout and resolves to a Result; nothing
    raises. Calls without a signed-in binding fail with UNAUTHORIZED
    before any I/O, so guest carts can never reach the network.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        order_timeout: float | None = None,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        self._order_timeout = order_timeout if order_timeout is not None else timeout

    def _send(
        self,
        method: Method,
        path: str,
        binding: SessionBinding,
        *,
        json: Any = None,
        timeout: float | None = None,
    ) -> LazyCoroResult[Any, CartError]:
        if not binding.is_signed_in:
            return from_result(Error(CartErrors.unauthorized("Please login to continue", status=None)))

        seconds = timeout if timeout is not None else self._timeout
        call = bounded(
            lambda: self._transport.request(
                method, path, json=json, token=binding.credential, timeout=seconds,
            ),
            seconds=seconds,
            on_error=error_from_exception,
        )

        async def execute() -> Result[Any, CartError]:
            match await call:
                case Ok(response):
                    result = _body_of(response)
                    match result:
                        case Error(e):
                            logger.warning("%s %s for %s failed: %s", method, path, binding.scope, e)
                    return result
                case Error(e):
                    logger.warning("%s %s for %s failed: %s", method, path, binding.scope, e)
                    return Error(e)

        return LazyCoroResult(execute)

    # ═══════════════════════════════════════════════════════════════════════════
    # Cart
    # ═══════════════════════════════════════════════════════════════════════════

    def fetch(self, binding: SessionBinding) -> LazyCoroResult[tuple[CartLineItem, ...], CartError]:
        """GET /cart, translated to line items."""
        send = self._send("GET", "/cart", binding)

        async def execute() -> Result[tuple[CartLineItem, ...], CartError]:
            match await send:
                case Ok(body) if isinstance(body, Mapping) and body.get("success"):
                    rows = body.get("items") or []
                    if not isinstance(rows, list):
                        return Error(CartErrors.remote("Malformed cart response"))
                    return Ok(items_from_remote(rows))
                case Ok(_):
                    return Error(CartErrors.remote("Malformed cart response"))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    def replace(self, binding: SessionBinding, cart: Cart) -> LazyCoroResult[None, CartError]:
        """POST /cart with full-replace semantics."""
        send = self._send("POST", "/cart", binding, json={"items": cart_to_snapshot(cart)})

        async def execute() -> Result[None, CartError]:
            match await send:
                case Ok(_):
                    return Ok(None)
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    def clear(self, binding: SessionBinding) -> LazyCoroResult[None, CartError]:
        """DELETE /cart for the authenticated identity."""
        send = self._send("DELETE", "/cart", binding)

        async def execute() -> Result[None, CartError]:
            match await send:
                case Ok(_):
                    return Ok(None)
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    # ═══════════════════════════════════════════════════════════════════════════
    # Orders
    # ═══════════════════════════════════════════════════════════════════════════

    def submit_order(
        self,
        binding: SessionBinding,
        cart: Cart,
        shipping: Mapping[str, Any],
    ) -> LazyCoroResult[dict[str, Any], CartError]:
        """POST /orders with the cart snapshot and shipping data."""
        payload = {"cart": cart_to_snapshot(cart), "shippingInfo": dict(shipping)}
        send = self._send("POST", "/orders", binding, json=payload, timeout=self._order_timeout)

        async def execute() -> Result[dict[str, Any], CartError]:
            match await send:
                case Ok(body) if isinstance(body, Mapping):
                    return Ok(dict(body))
                case Ok(_):
                    return Ok({})
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    def list_orders(self, binding: SessionBinding) -> LazyCoroResult[list[dict[str, Any]], CartError]:
        """GET /orders for the authenticated identity."""
        send = self._send("GET", "/orders", binding)

        async def execute() -> Result[list[dict[str, Any]], CartError]:
            match await send:
                case Ok(body) if isinstance(body, list):
                    return Ok([dict(row) for row in body if isinstance(row, Mapping)])
                case Ok(body) if isinstance(body, Mapping) and isinstance(body.get("orders"), list):
                    return Ok([dict(row) for row in body["orders"] if isinstance(row, Mapping)])
                case Ok(_):
                    return Error(CartErrors.remote("Malformed orders response"))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)


__all__ = ("RemoteCartClient",)
