"""
Engine — the single authoritative in-memory cart and its persistence.

    from cartsync.engine import CartEngine

    engine = CartEngine(store, client)
    await engine.load(SessionBinding.guest())
    match await engine.add_item(item):
        case Ok(cart): ...
        case Error(e): ...
"""

from __future__ import annotations

from cartsync.engine._engine import CartEngine, Checkpoint, RemoteWrite

__all__ = ("CartEngine", "Checkpoint", "RemoteWrite")
