"""
Guest to checkout — the full session lifecycle.

Browse as a guest, sign in (guest cart merged into the saved cart once),
check out, then look at the order history.
"""

from kungfu import Ok, Error

from examples._infra import CATALOG, banner, make_facade, run, show


async def main() -> None:
    facade, backend, store = make_facade()
    backend.seed_cart("alice", [
        {"productId": "vitc", "name": "Vitamin C", "price": 30, "qty": 1, "stock": 20},
    ])
    token = backend.issue_token("alice")

    banner("Guest browsing")
    await facade.start()
    await facade.add_to_cart(CATALOG["aspirin"], 2)
    await facade.add_to_cart(CATALOG["bandage"])
    show(facade.cart)
    print(f"  local keys: {store.keys()}")

    banner("Stock ceiling")
    match await facade.add_to_cart(CATALOG["aspirin"], 4):
        case Error(e):
            print(f"  ✗ {e.kind.name}: {e.message}")
        case Ok(_):
            print("  ✓ added")

    banner("Sign in as alice (merge)")
    await facade.sign_in("alice", token)
    show(facade.cart)
    print(f"  local keys: {store.keys()}")

    banner("Checkout")
    match await facade.place_order({"address": "12 Main St"}):
        case Error(e):
            print(f"  ✗ {e.kind.name}: {e.message}")
        case Ok(_):
            print("  ✓ accepted without a phone?")

    match await facade.place_order({
        "fullName": "Alice Doe",
        "address": "12 Main St",
        "phone": "555-0100",
        "paymentMethod": "cod",
    }):
        case Ok(order):
            print(f"  ✓ order {order.id} ({order.status})")
        case Error(e):
            print(f"  ✗ {e.message}")
    show(facade.cart)

    banner("Order history")
    match await facade.order_history():
        case Ok(history):
            for order in history:
                print(f"  {order.id}: {len(order.items)} line(s), {order.status}")
        case Error(e):
            print(f"  ✗ {e.message}")


if __name__ == "__main__":
    run(main)
