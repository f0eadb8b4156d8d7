"""
cartsync — shopping cart synchronization for guest and signed-in sessions.

    from cartsync import model as M      # Line items, carts, scopes
    from cartsync import store as St     # Local snapshots
    from cartsync import remote as Rm    # Authoritative backend client
    from cartsync import rollback as R   # Optimistic changes with compensation

    from cartsync import CartEngine, OrderCoordinator, CartFacade
"""

from cartsync import model
from cartsync import store
from cartsync import remote
from cartsync import rollback
from cartsync import lift
from cartsync._types import (
    ProductId,
    UserId,
    Snapshot,
)
from cartsync.errors import CartError, CartErrorKind, CartErrors
from cartsync.engine import CartEngine
from cartsync.orders import OrderCoordinator, OrderRecord, OrderState, ShippingInfo
from cartsync.facade import CartFacade
from cartsync.config import Settings, load_settings, configure_logging

__version__ = "0.1.0"

__all__ = (
    "model",
    "store",
    "remote",
    "rollback",
    "lift",
    "ProductId",
    "UserId",
    "Snapshot",
    "CartError",
    "CartErrorKind",
    "CartErrors",
    "CartEngine",
    "OrderCoordinator",
    "OrderRecord",
    "OrderState",
    "ShippingInfo",
    "CartFacade",
    "Settings",
    "load_settings",
    "configure_logging",
)
