"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine

from cartsync.config import configure_logging
from cartsync.engine import CartEngine
from cartsync.facade import CartFacade
from cartsync.model import Cart, CartLineItem
from cartsync.remote import MemoryBackend, RemoteCartClient
from cartsync.store import MemoryStore


# Catalog
CATALOG: dict[str, CartLineItem] = {
    "aspirin": CartLineItem("aspirin", "Aspirin 500mg", 50, dosage_label="500mg",
                            manufacturer_label="Bayer", category="pain", stock_hint=5),
    "vitc": CartLineItem("vitc", "Vitamin C", 30, dosage_label="1000mg",
                         manufacturer_label="Nature's Way", category="vitamins", stock_hint=20),
    "bandage": CartLineItem("bandage", "Bandage roll", "12.50", category="first aid"),
}


# Wiring
def make_facade(backend: MemoryBackend | None = None) -> tuple[CartFacade, MemoryBackend, MemoryStore]:
    backend = backend or MemoryBackend(stock={"aspirin": 5, "vitc": 20})
    store = MemoryStore()
    client = RemoteCartClient(backend, timeout=2)
    facade = CartFacade.create(
        CartEngine(store, client),
        client,
        on_session_expired=lambda e: print(f"  ! session expired: {e.message}"),
    )
    return facade, backend, store


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def show(cart: Cart) -> None:
    if cart.is_empty:
        print("  (empty)")
    for line in cart.items:
        print(f"  {line.quantity} × {line.name:<16} {line.line_total:>8}")
    print(f"  {'total':>20} {cart.subtotal:>8}  ({cart.total_item_count} items)")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    configure_logging("WARNING")
    asyncio.run(main())
