"""
Cart model — immutable line items, carts and ownership scopes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation

from cartsync._types import ProductId, UserId

# ═══════════════════════════════════════════════════════════════════════════════
# Line Item
# ═══════════════════════════════════════════════════════════════════════════════


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"unit_price must be numeric, got {value!r}") from None


@dataclass(frozen=True, slots=True)
class CartLineItem:
    """
    One product quantity in a cart.

    stock_hint is advisory: it comes from the catalog at the time the
    item was added and is only used for local validation.
    """

    product_id: ProductId
    name: str
    unit_price: Decimal
    quantity: int = 1
    image_ref: str = ""
    dosage_label: str = ""
    manufacturer_label: str = ""
    category: str = ""
    stock_hint: int | None = None

    def __post_init__(self) -> None:
        if not self.product_id:
            raise ValueError("product_id is required")
        price = _to_decimal(self.unit_price)
        if not price.is_finite() or price < 0:
            raise ValueError(f"unit_price must be >= 0, got {self.unit_price!r}")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"quantity must be an int, got {self.quantity!r}")
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")
        object.__setattr__(self, "unit_price", price)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> CartLineItem:
        return replace(self, quantity=quantity)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Cart:
    """
    Immutable cart snapshot.

    Every transformation returns a new Cart, so any instance can be kept
    as a rollback point. Totals are derived on access and never stored.
    """

    items: tuple[CartLineItem, ...] = ()

    def __post_init__(self) -> None:
        items = tuple(self.items)
        seen: set[ProductId] = set()
        for item in items:
            if item.product_id in seen:
                raise ValueError(f"duplicate line item for product {item.product_id!r}")
            seen.add(item.product_id)
        object.__setattr__(self, "items", items)

    @classmethod
    def empty(cls) -> Cart:
        return cls(())

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal(0))

    @property
    def product_ids(self) -> tuple[ProductId, ...]:
        return tuple(item.product_id for item in self.items)

    def get(self, product_id: ProductId) -> CartLineItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def quantity_of(self, product_id: ProductId) -> int:
        item = self.get(product_id)
        return item.quantity if item is not None else 0

    def add(self, item: CartLineItem, quantity: int = 1) -> Cart:
        """
        Increment an existing line or append a new one with `quantity`.

        Fresh catalog metadata on `item` replaces the stored metadata.
        """
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")
        existing = self.get(item.product_id)
        if existing is None:
            return Cart((*self.items, item.with_quantity(quantity)))
        updated = item.with_quantity(existing.quantity + quantity)
        if updated.stock_hint is None and existing.stock_hint is not None:
            updated = replace(updated, stock_hint=existing.stock_hint)
        return Cart(tuple(updated if i.product_id == item.product_id else i for i in self.items))

    def remove(self, product_id: ProductId) -> Cart:
        return Cart(tuple(i for i in self.items if i.product_id != product_id))

    def set_quantity(self, product_id: ProductId, quantity: int) -> Cart:
        if quantity < 1:
            return self.remove(product_id)
        return Cart(tuple(
            i.with_quantity(quantity) if i.product_id == product_id else i
            for i in self.items
        ))


# ═══════════════════════════════════════════════════════════════════════════════
# Ownership
# ═══════════════════════════════════════════════════════════════════════════════

GUEST_KEY = "guest_cart"


@dataclass(frozen=True, slots=True)
class Scope:
    """Cart ownership: the guest, or one signed-in user."""

    user_id: UserId | None = None

    @classmethod
    def guest(cls) -> Scope:
        return cls(None)

    @classmethod
    def user(cls, user_id: UserId) -> Scope:
        if not user_id:
            raise ValueError("user scope requires a user id")
        return cls(str(user_id))

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def storage_key(self) -> str:
        if self.user_id is None:
            return GUEST_KEY
        return f"cart_{self.user_id}"

    def __str__(self) -> str:
        return "guest" if self.user_id is None else f"user:{self.user_id}"


GUEST = Scope.guest()


@dataclass(frozen=True, slots=True)
class SessionBinding:
    """Active scope plus the credential that authorizes remote calls."""

    scope: Scope = GUEST
    credential: str | None = field(default=None, repr=False)

    @classmethod
    def guest(cls) -> SessionBinding:
        return cls(GUEST, None)

    @classmethod
    def signed_in(cls, user_id: UserId, credential: str) -> SessionBinding:
        return cls(Scope.user(user_id), credential)

    @property
    def is_signed_in(self) -> bool:
        return not self.scope.is_guest and bool(self.credential)


__all__ = (
    "CartLineItem",
    "Cart",
    "Scope",
    "SessionBinding",
    "GUEST",
    "GUEST_KEY",
)
