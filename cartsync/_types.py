"""
Core types for cartsync.

Re-exports from kungfu + custom type aliases.
"""

from __future__ import annotations

from collections.abc import Callable

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Identity
# ═══════════════════════════════════════════════════════════════════════════════

type ProductId = str
"""Opaque product identifier, unique within a cart."""

type UserId = str
"""Opaque identifier of a signed-in user."""

type Snapshot = list[dict[str, object]]
"""Serialized cart: the list-of-dicts shape shared by the API and local store."""

# ═══════════════════════════════════════════════════════════════════════════════
# Callbacks
# ═══════════════════════════════════════════════════════════════════════════════

type Listener[T] = Callable[[T], None]
"""Receives the new value after every change."""

type Unsubscribe = Callable[[], None]

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Type aliases
    "ProductId",
    "UserId",
    "Snapshot",
    "Listener",
    "Unsubscribe",
)
