"""
In-process backend implementing the cart and order routes.

Used by tests and examples in place of the network. Faults and gates let
a caller script partial failure: the next N calls to a route can answer
with a status code, time out or drop the connection, and a gated route
suspends until released.
"""

from __future__ import annotations

import asyncio
import copy
import secrets
from collections import defaultdict, deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from cartsync.remote._transport import HttpResponse, Method, TransportFailure

type Route = tuple[str, str]


def _route(method: str, path: str) -> Route:
    return method.upper(), "/" + path.strip("/")


@dataclass(frozen=True, slots=True)
class Call:
    method: str
    path: str
    json: Any
    token: str | None


@dataclass(frozen=True, slots=True)
class Fault:
    status: int | None = None
    body: Any = None
    timeout: bool = False
    network: bool = False

    def apply(self) -> HttpResponse:
        if self.timeout:
            raise TimeoutError("simulated timeout")
        if self.network:
            raise TransportFailure("Network Error")
        return HttpResponse(self.status or 500, self.body)


@dataclass
class MemoryBackend:
    stock: dict[str, int] = field(default_factory=dict)
    latency: float = 0.0
    carts: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    orders: dict[str, list[dict[str, Any]]] = field(default_factory=lambda: defaultdict(list))
    calls: list[Call] = field(default_factory=list)
    _tokens: dict[str, str] = field(default_factory=dict)
    _faults: dict[Route, deque[Fault]] = field(default_factory=lambda: defaultdict(deque))
    _gates: dict[Route, asyncio.Event] = field(default_factory=dict)
    _order_counter: int = 0

    # ── setup ────────────────────────────────────────────────────────────────

    def issue_token(self, user_id: str) -> str:
        token = f"tok_{secrets.token_hex(8)}"
        self._tokens[token] = str(user_id)
        return token

    def revoke(self, token: str) -> None:
        self._tokens.pop(token, None)

    def seed_cart(self, user_id: str, rows: list[dict[str, Any]]) -> None:
        self.carts[str(user_id)] = copy.deepcopy(rows)

    def cart_of(self, user_id: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self.carts.get(str(user_id), []))

    def fail(
        self,
        method: str,
        path: str,
        *,
        status: int | None = None,
        message: str | None = None,
        body: Any = None,
        timeout: bool = False,
        network: bool = False,
        times: int = 1,
    ) -> None:
        """Make the next `times` calls to the route fail."""
        if body is None and status is not None:
            body = {"message": message or f"Simulated {status}"}
        fault = Fault(status=status, body=body, timeout=timeout, network=network)
        self._faults[_route(method, path)].extend([fault] * times)

    def gate(self, method: str, path: str) -> asyncio.Event:
        """Suspend calls to the route until the returned event is set."""
        event = asyncio.Event()
        self._gates[_route(method, path)] = event
        return event

    def calls_to(self, method: str, path: str) -> list[Call]:
        route = _route(method, path)
        return [c for c in self.calls if (c.method, c.path) == route]

    # ── Transport ────────────────────────────────────────────────────────────

    async def request(
        self,
        method: Method,
        path: str,
        *,
        json: Any = None,
        token: str | None = None,
        timeout: float,
    ) -> HttpResponse:
        route = _route(method, path)
        self.calls.append(Call(route[0], route[1], copy.deepcopy(json), token))

        gate = self._gates.get(route)
        if gate is not None:
            await gate.wait()
        if self.latency:
            await asyncio.sleep(self.latency)

        faults = self._faults.get(route)
        if faults:
            return faults.popleft().apply()

        user_id = self._tokens.get(token) if token else None
        if user_id is None:
            return HttpResponse(401, {"message": "Not authorized, token failed"})

        match route:
            case ("GET", "/cart"):
                return HttpResponse(200, {"success": True, "items": self.cart_of(user_id)})
            case ("POST", "/cart"):
                return self._replace_cart(user_id, json)
            case ("DELETE", "/cart"):
                self.carts[user_id] = []
                return HttpResponse(200, {"success": True, "message": "Cart cleared"})
            case ("POST", "/orders"):
                return self._create_order(user_id, json)
            case ("GET", "/orders"):
                return HttpResponse(200, copy.deepcopy(self.orders[user_id]))
            case _:
                return HttpResponse(404, {"message": "Not found"})

    # ── handlers ─────────────────────────────────────────────────────────────

    def _replace_cart(self, user_id: str, payload: Any) -> HttpResponse:
        items = payload.get("items") if isinstance(payload, Mapping) else None
        if not isinstance(items, list):
            return HttpResponse(400, {"message": "items must be a list"})
        self.carts[user_id] = copy.deepcopy(items)
        return HttpResponse(200, {"success": True, "items": copy.deepcopy(items)})

    def _create_order(self, user_id: str, payload: Any) -> HttpResponse:
        if not isinstance(payload, Mapping) or not payload.get("cart"):
            return HttpResponse(400, {"message": "No order items"})

        issues = []
        for row in payload["cart"]:
            available = self.stock.get(str(row.get("productId")))
            if available is not None and int(row.get("qty", 0)) > available:
                issues.append({
                    "productId": row.get("productId"),
                    "name": row.get("name", ""),
                    "requested": row.get("qty"),
                    "available": available,
                    "insufficient": True,
                })
        if issues:
            return HttpResponse(400, {"message": "Insufficient stock", "stockIssues": issues})

        self._order_counter += 1
        order = {
            "_id": f"ord_{self._order_counter:04d}",
            "user": user_id,
            "items": copy.deepcopy(payload["cart"]),
            "shippingInfo": copy.deepcopy(payload.get("shippingInfo")),
            "status": "pending",
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        self.orders[user_id].append(order)
        return HttpResponse(201, copy.deepcopy(order))


__all__ = ("MemoryBackend", "Call", "Fault")
