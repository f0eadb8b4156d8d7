"""
Live backend — the production wiring.

Reads CARTSYNC_* settings (and .env), keeps snapshots in SQLite and talks
to the real cart API over aiohttp. Without a reachable API the user
cart falls back to the local cache.

    CARTSYNC_API_URL=http://localhost:5000/api python -m examples.live_backend
"""

import asyncio
import os

from kungfu import Ok, Error

from cartsync import CartFacade, load_settings
from cartsync.config import configure_logging
from examples._infra import CATALOG, banner, show


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    facade = await CartFacade.from_settings(settings)

    try:
        banner(f"Guest cart ({settings.database_url})")
        await facade.start()
        await facade.add_to_cart(CATALOG["vitc"])
        show(facade.cart)

        user_id = os.getenv("CARTSYNC_DEMO_USER")
        token = os.getenv("CARTSYNC_DEMO_TOKEN")
        if not (user_id and token):
            print("\n  set CARTSYNC_DEMO_USER / CARTSYNC_DEMO_TOKEN to sign in")
            return

        banner(f"Signed in as {user_id} ({settings.api_url})")
        match await facade.sign_in(user_id, token):
            case Ok(_):
                print("  ✓ merged")
            case Error(e):
                print(f"  ✗ {e.message}")
        show(facade.cart)
    finally:
        await facade.close()


if __name__ == "__main__":
    asyncio.run(main())
