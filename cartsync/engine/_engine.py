"""
Cart reconciliation engine — the single owner of the in-memory cart.

Every mutation follows the same protocol:

    1. validate locally (no I/O on failure)
    2. capture the current cart as a Checkpoint
    3. apply the change in memory, synchronously
    4. persist: guest → local store; user → remote write, then local cache
    5. on failure, restore the checkpoint and re-cache it

Steps 2–5 are a rollback chain: `checkpoint(point, restore).then(push)`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from kungfu import LazyCoroResult, Result, Ok, Error

from cartsync import rollback as R
from cartsync._types import Listener, ProductId, Unsubscribe
from cartsync.errors import CartError, CartErrors
from cartsync.model import GUEST, Cart, CartLineItem, Scope, SessionBinding, merge_items
from cartsync.remote import RemoteCartClient
from cartsync.store import LocalStore, StoreError, drop_cart, read_cart, write_cart

logger = logging.getLogger(__name__)

type RemoteWrite = Callable[[SessionBinding, Cart], LazyCoroResult[None, CartError]]


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """The cart before an optimistic change, and the revision the change produced."""

    scope: Scope
    before: Cart
    revision: int


class CartEngine:
    """
    Owns the authoritative cart for one session.

    Construct once and hand the instance to every consumer; nothing else
    mutates the cart. In-memory changes happen before the first await of
    each operation, so they are applied strictly in call order even when
    their persistence completes out of order.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteCartClient,
        binding: SessionBinding | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._binding = binding if binding is not None else SessionBinding.guest()
        self._cart = Cart.empty()
        self._revision = 0
        self._reads = 0
        self._listeners: list[Listener[Cart]] = []
        self._remote_lock = asyncio.Lock()
        self._merged_scope: Scope | None = None
        self._merging: tuple[Scope, asyncio.Future[Result[Cart, CartError]]] | None = None
        self._guest_merge_pending = False

    # ═══════════════════════════════════════════════════════════════════════════
    # Accessors
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def binding(self) -> SessionBinding:
        return self._binding

    @property
    def scope(self) -> Scope:
        return self._binding.scope

    @property
    def revision(self) -> int:
        """Incremented on every in-memory change."""
        return self._revision

    @property
    def loading(self) -> bool:
        return self._reads > 0

    @property
    def needs_merge(self) -> bool:
        """Signed in, but the sign-in merge has not completed yet."""
        return not self.scope.is_guest and self._merged_scope != self.scope

    def subscribe(self, listener: Listener[Cart]) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ═══════════════════════════════════════════════════════════════════════════
    # Session
    # ═══════════════════════════════════════════════════════════════════════════

    def bind(self, binding: SessionBinding) -> None:
        """
        Switch the active scope.

        The in-memory cart is discarded; nothing is deleted from the local
        store or the remote. Call load() or merge_on_sign_in() next.
        """
        previous = self._binding.scope
        self._binding = binding
        self._merged_scope = None
        self._merging = None
        self._guest_merge_pending = False
        logger.info("Cart bound to %s (was %s)", binding.scope, previous)
        self._apply(Cart.empty())

    # ═══════════════════════════════════════════════════════════════════════════
    # Reads
    # ═══════════════════════════════════════════════════════════════════════════

    async def load(self, binding: SessionBinding | None = None) -> Result[Cart, CartError]:
        """
        Load the cart for the bound scope (re-binding first if given).

        User scope reads the remote and caches it locally; if the remote
        fails, the cached snapshot (or an empty cart) is shown and the
        remote error is returned. Guest scope reads the local store only.
        Loading never writes to the remote, except that a signed-in scope
        whose merged cart has not reached the remote yet is merged again
        instead, so the guest lines are not replaced by the bare remote cart.
        """
        if binding is not None:
            self.bind(binding)
        binding = self._binding
        scope = binding.scope
        if not scope.is_guest and self._guest_merge_pending:
            logger.info("Merged cart for %s not saved yet, merging again", scope)
            return await self.merge_on_sign_in()

        with self._reading():
            if scope.is_guest:
                self._adopt(scope, await self._read_local(scope))
                return Ok(self._cart)

            match await self._remote.fetch(binding):
                case Ok(items):
                    fetched = Cart(items)
                    if self._adopt(scope, fetched):
                        await self._cache(scope)
                    return Ok(fetched)
                case Error(error):
                    cached = await self._read_local(scope)
                    logger.warning(
                        "Remote cart for %s unavailable (%s), showing %d cached line(s)",
                        scope, error, len(cached.items),
                    )
                    self._adopt(scope, cached)
                    return Error(error)

    # ═══════════════════════════════════════════════════════════════════════════
    # Mutations
    # ═══════════════════════════════════════════════════════════════════════════

    async def add_item(self, item: CartLineItem, quantity: int = 1) -> Result[Cart, CartError]:
        """Add `quantity` of item, enforcing its stock hint."""
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        existing = self._cart.get(item.product_id)
        current = existing.quantity if existing is not None else 0
        hint = item.stock_hint
        if hint is None and existing is not None:
            hint = existing.stock_hint

        if hint is not None:
            if hint < 1:
                return Error(CartErrors.out_of_stock(item.name, hint))
            if current >= hint:
                return Error(CartErrors.at_stock_limit(item.name, hint))
            if current + quantity > hint:
                return Error(CartErrors.out_of_stock(item.name, hint))

        return await self._change(self._cart.add(item, quantity))

    async def remove_item(self, product_id: ProductId) -> Result[Cart, CartError]:
        if self._cart.get(product_id) is None:
            return Ok(self._cart)
        return await self._change(self._cart.remove(product_id))

    async def set_quantity(self, product_id: ProductId, quantity: int) -> Result[Cart, CartError]:
        """Set a line's quantity; anything below 1 removes the line."""
        if quantity < 1:
            return await self.remove_item(product_id)
        existing = self._cart.get(product_id)
        if existing is None or existing.quantity == quantity:
            return Ok(self._cart)
        return await self._change(self._cart.set_quantity(product_id, quantity))

    async def clear(self) -> Result[Cart, CartError]:
        return await self._change(Cart.empty(), remote_write=self._remote_clear)

    # ═══════════════════════════════════════════════════════════════════════════
    # Sign-in merge
    # ═══════════════════════════════════════════════════════════════════════════

    async def merge_on_sign_in(self) -> Result[Cart, CartError]:
        """
        Fold the guest snapshot into the signed-in user's remote cart.

        Runs once per sign-in transition; a call made while the merge is
        still running waits for it and gets the same result. The guest
        snapshot is dropped only after the merged cart reached the remote.
        If anything before that fails, the snapshot is kept, needs_merge
        stays true and the next call (or load) merges again.
        """
        scope = self.scope
        if scope.is_guest:
            raise ValueError("merge_on_sign_in requires a signed-in binding")

        running = self._merging
        if running is not None and running[0] == scope:
            logger.debug("Joining the merge already running for %s", scope)
            return await asyncio.shield(running[1])
        if self._merged_scope == scope:
            logger.debug("Merge already ran for %s", scope)
            return Ok(self._cart)

        task = asyncio.ensure_future(self._merge(self._binding))
        self._merging = (scope, task)
        try:
            return await task
        finally:
            if self._merging is not None and self._merging[1] is task:
                self._merging = None

    async def _merge(self, binding: SessionBinding) -> Result[Cart, CartError]:
        scope = binding.scope
        with self._reading():
            match await read_cart(self._store, GUEST):
                case Ok(None):
                    guest = Cart.empty()
                case Ok(cart):
                    guest = cart
                case Error(e) if e.corrupt:
                    logger.warning("Discarding unreadable guest cart: %s", e)
                    guest = Cart.empty()
                case Error(e):
                    logger.warning("Merge for %s postponed, guest cart unreadable: %s", scope, e)
                    self._adopt(scope, await self._read_local(scope))
                    return Error(CartErrors.storage(f"Could not read guest cart: {e}"))

            match await self._remote.fetch(binding):
                case Ok(remote_items):
                    pass
                case Error(error):
                    logger.warning("Merge for %s postponed, remote cart unavailable: %s", scope, error)
                    self._adopt(scope, await self._read_local(scope))
                    return Error(error)

            merged = Cart(merge_items(remote_items, guest.items))
            if not self._adopt(scope, merged):
                return Ok(merged)

            if guest.is_empty:
                await self._cache(scope)
                await self._drop(GUEST)
                if self._binding.scope == scope:
                    self._merged_scope = scope
                return Ok(self._cart)

            logger.info(
                "Merging %d guest line(s) into %d remote line(s) for %s",
                len(guest.items), len(remote_items), scope,
            )
            self._guest_merge_pending = True
            pushed = await self._push(binding, merged, self._remote_replace)
            await self._cache(scope)

            match pushed:
                case Ok(_):
                    await self._settle_guest_merge(scope)
                    return Ok(self._cart)
                case Error(error):
                    logger.warning("Merged cart for %s not saved remotely, guest snapshot kept: %s", scope, error)
                    return Error(error)

    # ═══════════════════════════════════════════════════════════════════════════
    # Order handoff
    # ═══════════════════════════════════════════════════════════════════════════

    async def drain(self, binding: SessionBinding | None = None) -> Result[None, CartError]:
        """
        Empty the cart after a committed order.

        Memory (if `binding` is still the bound session) and the local
        snapshot are always cleared; the result is the outcome of the
        remote clear, which callers treat as best-effort.
        """
        binding = binding if binding is not None else self._binding
        scope = binding.scope
        if self._binding.scope == scope:
            self._apply(Cart.empty())
        else:
            logger.info("Draining %s after the session moved to %s", scope, self._binding.scope)

        cleared: Result[None, CartError] = Ok(None)
        if not scope.is_guest:
            cleared = await self._push(binding, Cart.empty(), self._remote_clear)
        await self._drop(scope)
        return cleared

    # ═══════════════════════════════════════════════════════════════════════════
    # Persistence
    # ═══════════════════════════════════════════════════════════════════════════

    async def _change(
        self,
        after: Cart,
        remote_write: RemoteWrite | None = None,
    ) -> Result[Cart, CartError]:
        binding = self._binding
        scope = binding.scope
        before = self._cart
        self._apply(after)
        point = Checkpoint(scope, before, self._revision)

        if scope.is_guest:
            push = self._write_guest()
        else:
            push = self._push(binding, after, remote_write or self._remote_replace)

        change = R.checkpoint(point, self._restore).then(lambda _: R.step(push))
        outcome = await R.run_chain(change)

        if not scope.is_guest:
            # Resilience cache: the resulting or restored cart, whatever the remote said
            await self._cache(scope)

        match outcome:
            case Ok(_):
                if not scope.is_guest and self._guest_merge_pending and self._binding.scope == scope:
                    await self._settle_guest_merge(scope)
                return Ok(self._cart)
            case Error(rolled_back):
                logger.warning(
                    "Change to %s rolled back (%d compensator(s)): %s",
                    scope, rolled_back.compensators_run, rolled_back.error,
                )
                return Error(rolled_back.error)

    def _push(self, binding: SessionBinding, fallback: Cart, write: RemoteWrite) -> LazyCoroResult[None, CartError]:
        """
        Remote write of the cart as it is when the request goes out.

        Writes are serialized so a slow request cannot land after a newer
        one. If the scope was unbound meanwhile, the operation's own
        result is sent instead of another scope's cart.
        """
        async def execute() -> Result[None, CartError]:
            async with self._remote_lock:
                cart = self._cart if self._binding.scope == binding.scope else fallback
                return await write(binding, cart)

        return LazyCoroResult(execute)

    def _remote_replace(self, binding: SessionBinding, cart: Cart) -> LazyCoroResult[None, CartError]:
        return self._remote.replace(binding, cart)

    def _remote_clear(self, binding: SessionBinding, cart: Cart) -> LazyCoroResult[None, CartError]:
        return self._remote.clear(binding)

    def _write_guest(self) -> LazyCoroResult[None, CartError]:
        async def execute() -> Result[None, CartError]:
            match await write_cart(self._store, GUEST, self._cart):
                case Ok(_):
                    return Ok(None)
                case Error(e):
                    return Error(CartErrors.storage(f"Could not save cart: {e}"))

        return LazyCoroResult(execute)

    async def _restore(self, point: Checkpoint) -> None:
        if self._binding.scope != point.scope:
            logger.info("Not restoring %s: session is now %s", point.scope, self._binding.scope)
            return
        if self._revision != point.revision:
            logger.warning(
                "Restoring %s over %d newer change(s)",
                point.scope, self._revision - point.revision,
            )
        self._apply(point.before)

    async def _cache(self, scope: Scope) -> None:
        """Write the current cart under scope's key, if scope is still bound."""
        if self._binding.scope != scope:
            logger.debug("Skipping cache write for unbound %s", scope)
            return
        match await write_cart(self._store, scope, self._cart):
            case Error(e):
                logger.warning("Could not cache cart for %s: %s", scope, e)

    async def _drop(self, scope: Scope) -> None:
        match await drop_cart(self._store, scope):
            case Error(e):
                logger.warning("Could not remove local cart for %s: %s", scope, e)

    async def _read_local(self, scope: Scope) -> Cart:
        result: Result[Cart | None, StoreError] = await read_cart(self._store, scope)
        match result:
            case Ok(None):
                return Cart.empty()
            case Ok(cart):
                return cart
            case Error(e):
                logger.warning("Ignoring local cart for %s: %s", scope, e)
                return Cart.empty()

    async def _settle_guest_merge(self, scope: Scope) -> None:
        """The merged cart reached the remote: the merge is done and the guest snapshot goes."""
        if self._binding.scope == scope:
            self._merged_scope = scope
            self._guest_merge_pending = False
        match await drop_cart(self._store, GUEST):
            case Ok(_):
                logger.info("Guest cart merged into %s", scope)
            case Error(e):
                logger.warning("Could not drop merged guest cart: %s", e)

    # ═══════════════════════════════════════════════════════════════════════════
    # State
    # ═══════════════════════════════════════════════════════════════════════════

    def _adopt(self, scope: Scope, cart: Cart) -> bool:
        """Apply a read result, unless the session moved to another scope."""
        if self._binding.scope != scope:
            logger.debug("Discarding read for unbound %s", scope)
            return False
        self._apply(cart)
        return True

    def _apply(self, cart: Cart) -> None:
        self._cart = cart
        self._revision += 1
        for listener in list(self._listeners):
            try:
                listener(cart)
            except Exception:
                logger.exception("Cart listener %r failed", listener)

    @contextmanager
    def _reading(self) -> Iterator[None]:
        self._reads += 1
        try:
            yield
        finally:
            self._reads -= 1


__all__ = ("CartEngine", "Checkpoint", "RemoteWrite")
