from __future__ import annotations

import asyncio

import pytest
from kungfu import Result, Error

from cartsync._types import Snapshot
from cartsync.engine import CartEngine
from cartsync.errors import CartErrorKind
from cartsync.model import Cart, SessionBinding
from cartsync.remote import MemoryBackend, RemoteCartClient
from cartsync.store import MemoryStore, StoreError
from tests.helpers import err, item, ok, quantities, row


async def settle() -> None:
    await asyncio.sleep(0.01)


def lines(cart: Cart) -> dict[str, int]:
    return {i.product_id: i.quantity for i in cart.items}


class BrokenStore(MemoryStore):
    async def set(self, key: str, snapshot: Snapshot) -> Result[None, StoreError]:
        return Error(StoreError("disk full"))


# ═══════════════════════════════════════════════════════════════════════════════
# Guest scope
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_guest_changes_are_written_through_locally(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend,
) -> None:
    ok(await engine.load())
    ok(await engine.add_item(item("A", 50), 2))
    ok(await engine.add_item(item("B", 30)))

    assert engine.cart.subtotal == 130
    assert engine.cart.total_item_count == 3
    assert quantities(local.peek("guest_cart")) == {"A": 2, "B": 1}
    assert backend.calls == []


@pytest.mark.asyncio
async def test_guest_cart_survives_a_new_engine(local: MemoryStore, client: RemoteCartClient) -> None:
    first = CartEngine(local, client)
    ok(await first.add_item(item("A"), 3))

    second = CartEngine(local, client)
    ok(await second.load())

    assert lines(second.cart) == {"A": 3}


@pytest.mark.asyncio
async def test_stock_ceiling(engine: CartEngine, local: MemoryStore) -> None:
    ok(await engine.add_item(item("A", stock=2)))
    ok(await engine.add_item(item("A", stock=2)))

    at_limit = err(await engine.add_item(item("A", stock=2)))
    sold_out = err(await engine.add_item(item("B", stock=0)))
    too_many = err(await engine.add_item(item("C", stock=3), 5))

    assert at_limit.kind is CartErrorKind.ALREADY_AT_STOCK_LIMIT
    assert sold_out.kind is CartErrorKind.OUT_OF_STOCK
    assert too_many.kind is CartErrorKind.OUT_OF_STOCK
    assert lines(engine.cart) == {"A": 2}
    assert quantities(local.peek("guest_cart")) == {"A": 2}


@pytest.mark.asyncio
async def test_stock_hint_is_remembered_from_earlier_adds(engine: CartEngine) -> None:
    ok(await engine.add_item(item("A", stock=1)))

    error = err(await engine.add_item(item("A")))

    assert error.kind is CartErrorKind.ALREADY_AT_STOCK_LIMIT


@pytest.mark.asyncio
async def test_add_rejects_non_positive_quantity(engine: CartEngine) -> None:
    with pytest.raises(ValueError):
        await engine.add_item(item("A"), 0)


@pytest.mark.asyncio
async def test_guest_storage_failure_restores_cart(client: RemoteCartClient) -> None:
    engine = CartEngine(BrokenStore(), client)

    error = err(await engine.add_item(item("A")))

    assert error.kind is CartErrorKind.STORAGE_FAILURE
    assert engine.cart == Cart.empty()


@pytest.mark.asyncio
async def test_missing_products_are_no_ops(engine: CartEngine, local: MemoryStore) -> None:
    revision = engine.revision

    assert ok(await engine.remove_item("Z")) == Cart.empty()
    assert ok(await engine.set_quantity("Z", 3)) == Cart.empty()
    assert engine.revision == revision
    assert local.peek("guest_cart") is None


# ═══════════════════════════════════════════════════════════════════════════════
# User scope
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_load_caches_remote_cart(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    backend.seed_cart("u1", [row("A", 2), row("B", 1)])

    cart = ok(await engine.load(user))

    assert lines(cart) == {"A": 2, "B": 1}
    assert quantities(local.peek("cart_u1")) == {"A": 2, "B": 1}
    assert backend.calls_to("POST", "/cart") == []


@pytest.mark.asyncio
async def test_load_falls_back_to_cache_when_offline(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await local.set("cart_u1", [row("A", 3)]))
    backend.fail("GET", "/cart", network=True)

    error = err(await engine.load(user))

    assert error.kind is CartErrorKind.REMOTE_UNAVAILABLE
    assert lines(engine.cart) == {"A": 3}
    assert backend.calls_to("POST", "/cart") == []


@pytest.mark.asyncio
async def test_load_reports_loading(engine: CartEngine, backend: MemoryBackend, user: SessionBinding) -> None:
    gate = backend.gate("GET", "/cart")

    task = asyncio.create_task(engine.load(user))
    await settle()
    assert engine.loading

    gate.set()
    ok(await task)
    assert not engine.loading


@pytest.mark.asyncio
async def test_user_changes_replace_remote_and_cache(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.load(user))

    ok(await engine.add_item(item("A"), 2))
    ok(await engine.set_quantity("A", 5))

    assert quantities(backend.cart_of("u1")) == {"A": 5}
    assert quantities(local.peek("cart_u1")) == {"A": 5}
    assert local.peek("guest_cart") is None


@pytest.mark.asyncio
async def test_failed_remove_restores_line_everywhere(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    backend.seed_cart("u1", [row("A", 1)])
    ok(await engine.load(user))
    seen: list[dict[str, int]] = []
    engine.subscribe(lambda cart: seen.append(lines(cart)))
    backend.fail("POST", "/cart", status=500)

    error = err(await engine.remove_item("A"))

    assert error.kind is CartErrorKind.REMOTE_UNAVAILABLE
    assert seen == [{}, {"A": 1}]
    assert lines(engine.cart) == {"A": 1}
    assert quantities(local.peek("cart_u1")) == {"A": 1}
    assert quantities(backend.cart_of("u1")) == {"A": 1}


@pytest.mark.asyncio
async def test_zero_quantity_is_a_remove(engine: CartEngine, backend: MemoryBackend, user: SessionBinding) -> None:
    backend.seed_cart("u1", [row("A", 1), row("B", 2)])
    ok(await engine.load(user))

    ok(await engine.set_quantity("A", 0))

    assert lines(engine.cart) == {"B": 2}
    assert quantities(backend.cart_of("u1")) == {"B": 2}


@pytest.mark.asyncio
async def test_clear_uses_remote_clear(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    backend.seed_cart("u1", [row("A", 1)])
    ok(await engine.load(user))

    ok(await engine.clear())

    assert len(backend.calls_to("DELETE", "/cart")) == 1
    assert backend.cart_of("u1") == []
    assert local.peek("cart_u1") == []


@pytest.mark.asyncio
async def test_failed_clear_restores_cart(engine: CartEngine, backend: MemoryBackend, user: SessionBinding) -> None:
    backend.seed_cart("u1", [row("A", 1)])
    ok(await engine.load(user))
    backend.fail("DELETE", "/cart", timeout=True)

    error = err(await engine.clear())

    assert error.message == "Request timeout. Please try again."
    assert lines(engine.cart) == {"A": 1}


@pytest.mark.asyncio
async def test_remote_writes_are_serialized_and_send_latest_cart(
    engine: CartEngine, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.load(user))
    gate = backend.gate("POST", "/cart")

    first = asyncio.create_task(engine.add_item(item("A")))
    second = asyncio.create_task(engine.add_item(item("B")))
    await settle()

    assert lines(engine.cart) == {"A": 1, "B": 1}
    assert len(backend.calls_to("POST", "/cart")) == 1

    gate.set()
    ok(await first)
    ok(await second)

    sent = [quantities(c.json["items"]) for c in backend.calls_to("POST", "/cart")]
    assert sent == [{"A": 1}, {"A": 1, "B": 1}]
    assert quantities(backend.cart_of("u1")) == lines(engine.cart)


@pytest.mark.asyncio
async def test_rollback_restores_exact_snapshot_over_newer_changes(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.load(user))
    gate = backend.gate("POST", "/cart")
    backend.fail("POST", "/cart", status=503)

    first = asyncio.create_task(engine.add_item(item("A")))
    second = asyncio.create_task(engine.add_item(item("B")))
    await settle()
    gate.set()

    err(await first)
    ok(await second)

    # The restore drops B too; the queued write then sends the restored cart
    assert engine.cart == Cart.empty()
    assert backend.cart_of("u1") == []
    assert local.peek("cart_u1") == []


@pytest.mark.asyncio
async def test_failure_after_sign_out_leaves_guest_cart_alone(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.load(user))
    gate = backend.gate("POST", "/cart")
    backend.fail("POST", "/cart", status=500)

    pending = asyncio.create_task(engine.add_item(item("A")))
    await settle()
    ok(await engine.load(SessionBinding.guest()))
    gate.set()

    err(await pending)
    assert engine.cart == Cart.empty()
    assert local.peek("guest_cart") is None


# ═══════════════════════════════════════════════════════════════════════════════
# Sign-in merge
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_merge_folds_guest_cart_into_remote(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.add_item(item("A"), 2))
    backend.seed_cart("u1", [row("A", 3), row("B", 1)])

    engine.bind(user)
    merged = ok(await engine.merge_on_sign_in())

    assert lines(merged) == {"A": 5, "B": 1}
    assert quantities(backend.cart_of("u1")) == {"A": 5, "B": 1}
    assert quantities(local.peek("cart_u1")) == {"A": 5, "B": 1}
    assert local.peek("guest_cart") is None
    assert not engine.needs_merge


@pytest.mark.asyncio
async def test_merge_runs_once_per_sign_in(engine: CartEngine, backend: MemoryBackend, user: SessionBinding) -> None:
    ok(await engine.add_item(item("A"), 2))
    engine.bind(user)

    ok(await engine.merge_on_sign_in())
    ok(await engine.merge_on_sign_in())

    assert len(backend.calls_to("POST", "/cart")) == 1
    assert quantities(backend.cart_of("u1")) == {"A": 2}


@pytest.mark.asyncio
async def test_merge_without_guest_items_just_adopts_remote(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    backend.seed_cart("u1", [row("B", 4)])
    engine.bind(user)

    ok(await engine.merge_on_sign_in())

    assert lines(engine.cart) == {"B": 4}
    assert backend.calls_to("POST", "/cart") == []
    assert quantities(local.peek("cart_u1")) == {"B": 4}


@pytest.mark.asyncio
async def test_failed_merge_write_keeps_guest_cart_until_next_write(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.add_item(item("A"), 2))
    engine.bind(user)
    backend.fail("POST", "/cart", status=500)

    err(await engine.merge_on_sign_in())

    assert lines(engine.cart) == {"A": 2}
    assert quantities(local.peek("guest_cart")) == {"A": 2}

    ok(await engine.add_item(item("B")))

    assert local.peek("guest_cart") is None
    assert quantities(backend.cart_of("u1")) == {"A": 2, "B": 1}


@pytest.mark.asyncio
async def test_reload_after_failed_merge_write_merges_again(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.add_item(item("A"), 2))
    backend.seed_cart("u1", [row("B", 1)])
    engine.bind(user)
    backend.fail("POST", "/cart", status=500)

    err(await engine.merge_on_sign_in())
    assert engine.needs_merge

    assert lines(ok(await engine.load())) == {"B": 1, "A": 2}
    ok(await engine.add_item(item("C")))

    assert quantities(backend.cart_of("u1")) == {"B": 1, "A": 2, "C": 1}
    assert quantities(local.peek("cart_u1")) == {"B": 1, "A": 2, "C": 1}
    assert local.peek("guest_cart") is None
    assert not engine.needs_merge


class FlakyReadStore(MemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.failing_reads: dict[str, StoreError] = {}

    async def get(self, key: str) -> Result[Snapshot | None, StoreError]:
        error = self.failing_reads.pop(key, None)
        if error is not None:
            return Error(error)
        return await super().get(key)


@pytest.mark.asyncio
async def test_unreadable_guest_cart_is_kept_for_a_later_merge(
    client: RemoteCartClient, backend: MemoryBackend, user: SessionBinding,
) -> None:
    store = FlakyReadStore()
    engine = CartEngine(store, client)
    ok(await engine.add_item(item("A"), 2))
    engine.bind(user)
    store.failing_reads["guest_cart"] = StoreError("Failed to get guest_cart: database is locked")

    error = err(await engine.merge_on_sign_in())

    assert error.kind is CartErrorKind.STORAGE_FAILURE
    assert engine.needs_merge
    assert quantities(store.peek("guest_cart")) == {"A": 2}
    assert backend.calls_to("POST", "/cart") == []

    ok(await engine.merge_on_sign_in())

    assert quantities(backend.cart_of("u1")) == {"A": 2}
    assert store.peek("guest_cart") is None


@pytest.mark.asyncio
async def test_corrupt_guest_cart_is_discarded_on_merge(
    client: RemoteCartClient, backend: MemoryBackend, user: SessionBinding,
) -> None:
    local = FlakyReadStore()
    engine = CartEngine(local, client)
    ok(await engine.add_item(item("A")))
    local.failing_reads["guest_cart"] = StoreError("Corrupt snapshot under guest_cart", corrupt=True)
    backend.seed_cart("u1", [row("B", 1)])
    engine.bind(user)

    assert lines(ok(await engine.merge_on_sign_in())) == {"B": 1}
    assert local.peek("guest_cart") is None
    assert not engine.needs_merge


@pytest.mark.asyncio
async def test_concurrent_merges_share_one_run(
    engine: CartEngine, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.add_item(item("A"), 2))
    backend.seed_cart("u1", [row("B", 1)])
    engine.bind(user)
    gate = backend.gate("GET", "/cart")

    first = asyncio.create_task(engine.merge_on_sign_in())
    second = asyncio.create_task(engine.merge_on_sign_in())
    await settle()
    assert engine.loading
    gate.set()

    assert lines(ok(await first)) == {"B": 1, "A": 2}
    assert lines(ok(await second)) == {"B": 1, "A": 2}
    assert len(backend.calls_to("GET", "/cart")) == 1
    assert len(backend.calls_to("POST", "/cart")) == 1


@pytest.mark.asyncio
async def test_merge_is_retried_after_failed_fetch(
    engine: CartEngine, local: MemoryStore, backend: MemoryBackend, user: SessionBinding,
) -> None:
    ok(await engine.add_item(item("A"), 2))
    engine.bind(user)
    backend.fail("GET", "/cart", network=True)

    err(await engine.merge_on_sign_in())

    assert engine.needs_merge
    assert quantities(local.peek("guest_cart")) == {"A": 2}

    ok(await engine.merge_on_sign_in())

    assert quantities(backend.cart_of("u1")) == {"A": 2}
    assert local.peek("guest_cart") is None


@pytest.mark.asyncio
async def test_merge_requires_signed_in_binding(engine: CartEngine) -> None:
    with pytest.raises(ValueError):
        await engine.merge_on_sign_in()


# ═══════════════════════════════════════════════════════════════════════════════
# Listeners
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_subscribe_and_unsubscribe(engine: CartEngine) -> None:
    counts: list[int] = []
    unsubscribe = engine.subscribe(lambda cart: counts.append(cart.total_item_count))

    ok(await engine.add_item(item("A"), 2))
    unsubscribe()
    ok(await engine.add_item(item("B")))

    assert counts == [2]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_changes(engine: CartEngine) -> None:
    def explode(cart: Cart) -> None:
        raise RuntimeError("render failed")

    engine.subscribe(explode)

    assert lines(ok(await engine.add_item(item("A")))) == {"A": 1}


@pytest.mark.asyncio
async def test_revision_increases_with_every_change(engine: CartEngine) -> None:
    start = engine.revision

    ok(await engine.add_item(item("A")))
    ok(await engine.set_quantity("A", 3))
    ok(await engine.remove_item("A"))

    assert engine.revision == start + 3
