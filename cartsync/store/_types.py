"""
Local store types.
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Protocol

from kungfu import Result, Ok

from cartsync._types import Snapshot

# ═══════════════════════════════════════════════════════════════════════════════
# Store Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StoreError:
    """Local storage operation error."""

    message: str
    cause: Exception | None = None
    corrupt: bool = False
    """The key exists but its content can never be decoded."""

    def __str__(self) -> str:
        return self.message


# ═══════════════════════════════════════════════════════════════════════════════
# LocalStore Protocol — Users Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class LocalStore(Protocol):
    """
    Durable key/value store for cart snapshots.

    Keys follow the scope naming convention (`guest_cart`, `cart_<userId>`).
    All methods return Result; a missing key is `Ok(None)` / `Ok(False)`,
    never an error.

    Example:
        class RedisStore:
            def __init__(self, client: Redis) -> None:
                self.client = client

            async def get(self, key: str) -> Result[Snapshot | None, StoreError]:
                try:
                    data = await self.client.get(key)
                    return Ok(json.loads(data) if data else None)
                except Exception as e:
                    return Error(StoreError(f"Failed to get {key}: {e}", e))

            # ... set / remove
    """

    async def get(self, key: str) -> Result[Snapshot | None, StoreError]:
        """Get snapshot. Returns Ok(None) on miss."""
        ...

    async def set(self, key: str, snapshot: Snapshot) -> Result[None, StoreError]:
        """Replace the snapshot stored under key."""
        ...

    async def remove(self, key: str) -> Result[bool, StoreError]:
        """Delete key. Returns Ok(True) if it existed."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store — For Testing
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryStore:
    """
    In-memory snapshot store.

    Snapshots are deep-copied on the way in and out so callers can never
    alias stored state.
    """

    def __init__(self) -> None:
        self._data: dict[str, Snapshot] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Result[Snapshot | None, StoreError]:
        async with self._lock:
            snapshot = self._data.get(key)
            return Ok(copy.deepcopy(snapshot) if snapshot is not None else None)

    async def set(self, key: str, snapshot: Snapshot) -> Result[None, StoreError]:
        async with self._lock:
            self._data[key] = copy.deepcopy(snapshot)
            return Ok(None)

    async def remove(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._data.pop(key, None) is not None)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._data)

    def peek(self, key: str) -> Snapshot | None:
        """Synchronous read for assertions and debugging."""
        snapshot = self._data.get(key)
        return copy.deepcopy(snapshot) if snapshot is not None else None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "StoreError",
    "LocalStore",
    "MemoryStore",
)
