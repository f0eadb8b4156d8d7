"""
SQLAlchemy integration — durable snapshot store.

Usage:
    store, engine = await create_store("sqlite+aiosqlite:///cartsync.db")
    await store.set("guest_cart", [{"productId": "A", "qty": 2}])
    ...
    await engine.dispose()
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Text, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from cartsync._types import Snapshot
from cartsync.store._types import StoreError


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════

class Base(DeclarativeBase):
    pass


class CartSnapshotTable(Base):
    """One row per ownership scope key."""

    __tablename__ = "cart_snapshots"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyStore:
    """
    LocalStore backed by an async SQLAlchemy session factory.

    Snapshots are stored as JSON text; a row that no longer parses is
    reported as a StoreError so the caller can treat it as absent.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> Result[Snapshot | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(CartSnapshotTable, key)
                if row is None:
                    return Ok(None)
                payload = row.payload
        except Exception as e:
            return Error(StoreError(f"Failed to get {key}: {e}", e))

        try:
            snapshot = json.loads(payload)
        except ValueError as e:
            return Error(StoreError(f"Corrupt snapshot under {key}: {e}", e, corrupt=True))
        if not isinstance(snapshot, list):
            return Error(StoreError(f"Corrupt snapshot under {key}: expected a list", corrupt=True))
        return Ok(snapshot)

    async def set(self, key: str, snapshot: Snapshot) -> Result[None, StoreError]:
        try:
            payload = json.dumps(snapshot)
            async with self._session_factory() as session:
                row = await session.get(CartSnapshotTable, key)
                now = datetime.now(timezone.utc).replace(tzinfo=None)
                if row is None:
                    session.add(CartSnapshotTable(key=key, payload=payload, updated_at=now))
                else:
                    row.payload = payload
                    row.updated_at = now
                await session.commit()
                return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to set {key}: {e}", e))

    async def remove(self, key: str) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(CartSnapshotTable, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
                await session.commit()
                return Ok(True)
        except Exception as e:
            return Error(StoreError(f"Failed to remove {key}: {e}", e))

    async def keys(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(select(CartSnapshotTable.key))
            return list(result.scalars())


# ═══════════════════════════════════════════════════════════════════════════════
# Setup
# ═══════════════════════════════════════════════════════════════════════════════

async def create_store(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[SQLAlchemyStore, AsyncEngine]:
    """Create the snapshot table and return (store, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return SQLAlchemyStore(async_sessionmaker(engine, expire_on_commit=False)), engine


__all__ = (
    "CartSnapshotTable",
    "SQLAlchemyStore",
    "create_store",
)
