"""
UI facade — the surface screens talk to.

Wraps one CartEngine and one OrderCoordinator, drives the session
transitions (start, sign in, sign out) and reports expired sessions
through a single callback.

Example:
    facade = await CartFacade.from_settings(load_settings())
    await facade.start()
    await facade.add_to_cart(item)
    await facade.sign_in("u1", token)        # guest cart merged once
    match await facade.place_order({"address": "...", "phone": "..."}):
        case Ok(order): ...
        case Error(e): show(e.message)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from decimal import Decimal
from typing import Any

from kungfu import Result, Error

from cartsync._types import Listener, ProductId, Unsubscribe
from cartsync.config import Settings
from cartsync.engine import CartEngine
from cartsync.errors import CartError
from cartsync.model import Cart, CartLineItem, SessionBinding
from cartsync.orders import OrderCoordinator, OrderRecord, OrderState, ShippingInfo
from cartsync.remote import AiohttpTransport, RemoteCartClient
from cartsync.store import create_store

logger = logging.getLogger(__name__)

type SessionExpiredHandler = Callable[[CartError], None]


class CartFacade:
    def __init__(
        self,
        engine: CartEngine,
        orders: OrderCoordinator,
        *,
        on_session_expired: SessionExpiredHandler | None = None,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._engine = engine
        self._orders = orders
        self._on_session_expired = on_session_expired
        self._on_close = on_close

    @classmethod
    def create(
        cls,
        engine: CartEngine,
        remote: RemoteCartClient,
        *,
        on_session_expired: SessionExpiredHandler | None = None,
    ) -> CartFacade:
        return cls(engine, OrderCoordinator(engine, remote), on_session_expired=on_session_expired)

    @classmethod
    async def from_settings(
        cls,
        settings: Settings,
        *,
        on_session_expired: SessionExpiredHandler | None = None,
    ) -> CartFacade:
        """Wire the SQLAlchemy store, the aiohttp transport and the engine."""
        store, db = await create_store(settings.database_url)
        transport = AiohttpTransport(settings.api_url)
        remote = RemoteCartClient(
            transport,
            timeout=settings.request_timeout,
            order_timeout=settings.order_timeout,
        )
        engine = CartEngine(store, remote)

        async def close() -> None:
            await transport.close()
            await db.dispose()

        logger.info("Cart facade ready (api=%s, db=%s)", settings.api_url, settings.database_url)
        return cls(
            engine,
            OrderCoordinator(engine, remote),
            on_session_expired=on_session_expired,
            on_close=close,
        )

    async def close(self) -> None:
        if self._on_close is not None:
            await self._on_close()

    # ═══════════════════════════════════════════════════════════════════════════
    # State
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def cart(self) -> Cart:
        return self._engine.cart

    @property
    def cart_total(self) -> Decimal:
        return self._engine.cart.subtotal

    @property
    def cart_count(self) -> int:
        return self._engine.cart.total_item_count

    @property
    def loading(self) -> bool:
        return self._engine.loading

    @property
    def order_state(self) -> OrderState:
        return self._orders.state

    @property
    def binding(self) -> SessionBinding:
        return self._engine.binding

    def subscribe(self, listener: Listener[Cart]) -> Unsubscribe:
        return self._engine.subscribe(listener)

    # ═══════════════════════════════════════════════════════════════════════════
    # Session
    # ═══════════════════════════════════════════════════════════════════════════

    async def start(self, binding: SessionBinding | None = None) -> Result[Cart, CartError]:
        """Bind the initial session (guest by default) and load its cart."""
        binding = binding if binding is not None else SessionBinding.guest()
        if binding.scope.is_guest:
            return self._report(await self._engine.load(binding))
        self._engine.bind(binding)
        return self._report(await self._engine.merge_on_sign_in())

    async def sign_in(self, user_id: str, credential: str) -> Result[Cart, CartError]:
        """Switch to the user's cart, folding in whatever the guest collected."""
        self._engine.bind(SessionBinding.signed_in(user_id, credential))
        return self._report(await self._engine.merge_on_sign_in())

    async def sign_out(self) -> Result[Cart, CartError]:
        """Back to the guest cart. The user's cart stays where it is."""
        return self._report(await self._engine.load(SessionBinding.guest()))

    async def refresh_cart(self) -> Result[Cart, CartError]:
        if self._engine.needs_merge:
            return self._report(await self._engine.merge_on_sign_in())
        return self._report(await self._engine.load())

    # ═══════════════════════════════════════════════════════════════════════════
    # Cart
    # ═══════════════════════════════════════════════════════════════════════════

    async def add_to_cart(self, item: CartLineItem, quantity: int = 1) -> Result[Cart, CartError]:
        return self._report(await self._engine.add_item(item, quantity))

    async def remove_from_cart(self, product_id: ProductId) -> Result[Cart, CartError]:
        return self._report(await self._engine.remove_item(product_id))

    async def update_qty(self, product_id: ProductId, quantity: int) -> Result[Cart, CartError]:
        return self._report(await self._engine.set_quantity(product_id, quantity))

    async def clear_cart(self) -> Result[Cart, CartError]:
        return self._report(await self._engine.clear())

    # ═══════════════════════════════════════════════════════════════════════════
    # Orders
    # ═══════════════════════════════════════════════════════════════════════════

    async def place_order(
        self,
        shipping: Mapping[str, Any] | ShippingInfo | None,
    ) -> Result[OrderRecord, CartError]:
        return self._report(await self._orders.place_order(shipping))

    async def order_history(self) -> Result[list[OrderRecord], CartError]:
        return self._report(await self._orders.order_history())

    def _report[T](self, result: Result[T, CartError]) -> Result[T, CartError]:
        match result:
            case Error(e) if e.session_expired and self._engine.binding.is_signed_in:
                logger.info("Session expired for %s: %s", self._engine.scope, e.message)
                if self._on_session_expired is not None:
                    try:
                        self._on_session_expired(e)
                    except Exception:
                        logger.exception("Session-expired handler failed")
        return result


__all__ = ("CartFacade", "SessionExpiredHandler")
