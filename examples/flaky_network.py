"""
Flaky network — optimistic changes and their rollback.

Every change shows up immediately; when the backend rejects the write
the cart snaps back to exactly what it was, in memory and in the local
cache. A failed checkout leaves the cart alone.
"""

from kungfu import Ok, Error

from examples._infra import CATALOG, banner, make_facade, run, show


async def main() -> None:
    facade, backend, store = make_facade()
    token = backend.issue_token("bob")
    await facade.sign_in("bob", token)
    facade.subscribe(lambda cart: print(f"    · view: {cart.total_item_count} item(s)"))

    banner("Healthy backend")
    await facade.add_to_cart(CATALOG["vitc"], 3)
    show(facade.cart)

    banner("Server error on remove")
    backend.fail("POST", "/cart", status=503)
    match await facade.remove_from_cart("vitc"):
        case Error(e):
            print(f"  ✗ {e.message}")
        case Ok(_):
            print("  ✓ removed")
    show(facade.cart)
    print(f"  cached: {store.peek('cart_bob')}")

    banner("Timeout on clear")
    backend.fail("DELETE", "/cart", timeout=True)
    match await facade.clear_cart():
        case Error(e):
            print(f"  ✗ {e.message}")
        case Ok(_):
            print("  ✓ cleared")
    show(facade.cart)

    banner("Offline refresh uses the cache")
    backend.fail("GET", "/cart", network=True)
    match await facade.refresh_cart():
        case Error(e):
            print(f"  ✗ {e.message} (showing cached cart)")
        case Ok(_):
            print("  ✓ refreshed")
    show(facade.cart)

    banner("Checkout fails, cart kept")
    backend.stock["vitc"] = 1
    match await facade.place_order({"address": "7 Elm St", "phone": "555-0199"}):
        case Error(e):
            print(f"  ✗ {e.kind.name}: {e.message}")
        case Ok(order):
            print(f"  ✓ order {order.id}")
    show(facade.cart)


if __name__ == "__main__":
    run(main)
