"""
Order types — shipping payload, coordinator state and confirmed orders.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cartsync.errors import CartError, CartErrors

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Shipping Info
# ═══════════════════════════════════════════════════════════════════════════════


class ShippingInfo(BaseModel):
    """
    Checkout form payload.

    Address and phone are required; the other checkout fields pass
    through to the order endpoint unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, str_strip_whitespace=True)

    address: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    full_name: str | None = Field(default=None, alias="fullName")
    email: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    payment_method: str | None = Field(default=None, alias="paymentMethod")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_shipping(data: Mapping[str, Any] | ShippingInfo | None) -> Result[ShippingInfo, CartError]:
    """Validate a checkout payload, naming the failing fields on error."""
    if isinstance(data, ShippingInfo):
        return Ok(data)
    if not isinstance(data, Mapping):
        return Error(CartErrors.invalid_shipping(("address", "phone")))
    try:
        return Ok(ShippingInfo.model_validate(dict(data)))
    except ValidationError as e:
        fields = tuple(dict.fromkeys(str(err["loc"][0]) for err in e.errors() if err["loc"]))
        logger.debug("Rejected shipping info: %s", fields)
        return Error(CartErrors.invalid_shipping(fields))


# ═══════════════════════════════════════════════════════════════════════════════
# Order State — Attempt Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class OrderState(Enum):
    """
    State of the order coordinator.

    Lifecycle:
        IDLE → SUBMITTING → COMMITTED (cart drained)
                          → FAILED → IDLE (cart untouched)
    """

    IDLE = auto()
    SUBMITTING = auto()
    COMMITTED = auto()
    FAILED = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# Order Record — Confirmed Order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderRecord:
    """An order as returned by the backend."""

    payload: dict[str, Any]

    @property
    def id(self) -> str | None:
        value = self.payload.get("_id", self.payload.get("id"))
        return str(value) if value is not None else None

    @property
    def status(self) -> str | None:
        return self.payload.get("status")

    @property
    def items(self) -> list[dict[str, Any]]:
        items = self.payload.get("items")
        return items if isinstance(items, list) else []


__all__ = (
    "ShippingInfo",
    "parse_shipping",
    "OrderState",
    "OrderRecord",
)
