"""
Error taxonomy shared by the engine, the remote client and order placement.

Every public operation resolves to `Ok(...)` or `Error(CartError)`.
`CartErrors` builds the individual entries; `error_from_response` and
`error_from_exception` translate transport outcomes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Kinds
# ═══════════════════════════════════════════════════════════════════════════════


class CartErrorKind(Enum):
    """Cart error kinds."""

    OUT_OF_STOCK = auto()
    ALREADY_AT_STOCK_LIMIT = auto()
    EMPTY_CART = auto()
    INVALID_SHIPPING_INFO = auto()
    REMOTE_UNAVAILABLE = auto()
    UNAUTHORIZED = auto()
    INVALID_ORDER_DATA = auto()
    STORAGE_FAILURE = auto()
    ORDER_IN_PROGRESS = auto()


@dataclass(frozen=True, slots=True)
class StockIssue:
    """One line of a stock conflict reported by the order endpoint."""

    name: str
    available: int
    insufficient: bool = True

    def describe(self) -> str:
        return f"{self.name}: Only {self.available} available"


@dataclass(frozen=True, slots=True)
class CartError:
    """Cart operation error."""

    kind: CartErrorKind
    message: str
    status: int | None = None
    stock_issues: tuple[StockIssue, ...] = ()

    @property
    def session_expired(self) -> bool:
        return self.kind is CartErrorKind.UNAUTHORIZED

    def __str__(self) -> str:
        return self.message


# ═══════════════════════════════════════════════════════════════════════════════
# Factory
# ═══════════════════════════════════════════════════════════════════════════════


class CartErrors:
    @staticmethod
    def out_of_stock(name: str, available: int) -> CartError:
        if available < 1:
            return CartError(CartErrorKind.OUT_OF_STOCK, f"{name} is out of stock")
        return CartError(CartErrorKind.OUT_OF_STOCK, f"Only {available} units available")

    @staticmethod
    def at_stock_limit(name: str, available: int) -> CartError:
        return CartError(
            CartErrorKind.ALREADY_AT_STOCK_LIMIT,
            f"Only {available} units of {name} available",
        )

    @staticmethod
    def empty_cart() -> CartError:
        return CartError(CartErrorKind.EMPTY_CART, "Your cart is empty")

    @staticmethod
    def invalid_shipping(fields: tuple[str, ...] = ()) -> CartError:
        message = "Shipping information is required"
        if fields:
            message = f"{message}: {', '.join(fields)}"
        return CartError(CartErrorKind.INVALID_SHIPPING_INFO, message)

    @staticmethod
    def timeout() -> CartError:
        return CartError(CartErrorKind.REMOTE_UNAVAILABLE, "Request timeout. Please try again.")

    @staticmethod
    def network(detail: str | None = None) -> CartError:
        message = "Network error. Please check your connection."
        if detail:
            logger.debug("Network failure detail: %s", detail)
        return CartError(CartErrorKind.REMOTE_UNAVAILABLE, message)

    @staticmethod
    def remote(message: str, status: int | None = None) -> CartError:
        return CartError(CartErrorKind.REMOTE_UNAVAILABLE, message, status)

    @staticmethod
    def unauthorized(message: str = "Session expired. Please login again.", status: int | None = 401) -> CartError:
        return CartError(CartErrorKind.UNAUTHORIZED, message, status)

    @staticmethod
    def invalid_order(
        message: str = "Invalid order data",
        status: int | None = 400,
        stock_issues: tuple[StockIssue, ...] = (),
    ) -> CartError:
        return CartError(CartErrorKind.INVALID_ORDER_DATA, message, status, stock_issues)

    @staticmethod
    def storage(message: str) -> CartError:
        return CartError(CartErrorKind.STORAGE_FAILURE, message)

    @staticmethod
    def order_in_progress() -> CartError:
        return CartError(CartErrorKind.ORDER_IN_PROGRESS, "An order is already being placed")


# ═══════════════════════════════════════════════════════════════════════════════
# Translation
# ═══════════════════════════════════════════════════════════════════════════════


def _message_of(body: Any) -> str | None:
    if isinstance(body, Mapping):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return None


def _stock_issues_of(body: Any) -> tuple[StockIssue, ...]:
    if not isinstance(body, Mapping):
        return ()
    rows = body.get("stockIssues")
    if not isinstance(rows, list):
        return ()
    issues: list[StockIssue] = []
    for row in rows:
        if not isinstance(row, Mapping) or not row.get("insufficient"):
            continue
        try:
            available = int(row.get("available", 0))
        except (TypeError, ValueError):
            available = 0
        issues.append(StockIssue(str(row.get("name", "")), available))
    return tuple(issues)


def error_from_response(status: int, body: Any) -> CartError:
    """Map a non-2xx HTTP response onto the taxonomy."""
    message = _message_of(body)

    if status in (400, 409, 422):
        issues = _stock_issues_of(body)
        if issues:
            summary = ", ".join(issue.describe() for issue in issues)
            return CartErrors.invalid_order(f"Stock issues: {summary}", status, issues)
        return CartErrors.invalid_order(message or "Invalid order data", status)
    if status == 401:
        return CartErrors.unauthorized(status=status)
    if status == 403:
        return CartErrors.unauthorized("You don't have permission to access this.", status)
    if status == 404:
        return CartErrors.remote("Resource not found.", status)
    if status >= 500:
        return CartErrors.remote("Server error. Please try again later.", status)
    return CartErrors.remote(message or f"Error: {status}", status)


def error_from_exception(exc: Exception) -> CartError:
    """Map an exception raised by a transport call onto the taxonomy."""
    # Imported here: remote depends on this module.
    from cartsync.remote._transport import TransportFailure

    if isinstance(exc, TimeoutError):
        return CartErrors.timeout()
    if isinstance(exc, TransportFailure):
        return CartErrors.network(exc.message)
    logger.error("Unexpected transport exception", exc_info=exc)
    return CartErrors.remote(str(exc) or type(exc).__name__)


__all__ = (
    "CartErrorKind",
    "CartError",
    "CartErrors",
    "StockIssue",
    "error_from_response",
    "error_from_exception",
)
