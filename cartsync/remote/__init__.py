"""
Remote — the authoritative cart store behind an unreliable network.

    from cartsync import remote as Rm

    async with Rm.AiohttpTransport(settings.api_url) as transport:
        client = Rm.RemoteCartClient(transport, timeout=15)
        items = await client.fetch(binding)
"""

from __future__ import annotations

from cartsync.remote._transport import (
    Method,
    HttpResponse,
    TransportFailure,
    Transport,
    AiohttpTransport,
)
from cartsync.remote._memory import MemoryBackend, Call, Fault
from cartsync.remote._client import RemoteCartClient

__all__ = (
    "Method",
    "HttpResponse",
    "TransportFailure",
    "Transport",
    "AiohttpTransport",
    "MemoryBackend",
    "Call",
    "Fault",
    "RemoteCartClient",
)
