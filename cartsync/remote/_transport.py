"""
Transport — the generic request client the remote cart client talks through.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Protocol

import aiohttp

logger = logging.getLogger(__name__)

type Method = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class TransportFailure(Exception):
    """The request never produced an HTTP response (DNS, refused, reset...)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Transport(Protocol):
    """
    Request client protocol.

    Implementations return an HttpResponse for every HTTP outcome,
    raise TransportFailure when no response was received and may raise
    TimeoutError when `timeout` elapses.
    """

    async def request(
        self,
        method: Method,
        path: str,
        *,
        json: Any = None,
        token: str | None = None,
        timeout: float,
    ) -> HttpResponse:
        ...


def _decode(text: str) -> Any:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return {"message": text}


class AiohttpTransport:
    """
    Transport over an aiohttp ClientSession.

    Example:
        async with AiohttpTransport("http://localhost:5000/api") as transport:
            client = RemoteCartClient(transport, timeout=15)
    """

    def __init__(self, base_url: str, *, session: aiohttp.ClientSession | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def request(
        self,
        method: Method,
        path: str,
        *,
        json: Any = None,
        token: str | None = None,
        timeout: float,
    ) -> HttpResponse:
        session = await self._ensure_session()
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        logger.debug("%s %s", method, url)
        try:
            async with session.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                text = await resp.text()
                return HttpResponse(resp.status, _decode(text))
        except TimeoutError:
            # aiohttp's timeout errors also subclass ClientError
            raise
        except aiohttp.ClientError as e:
            raise TransportFailure(f"{method} {url}: {e}") from e

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> AiohttpTransport:
        await self._ensure_session()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()


__all__ = (
    "Method",
    "HttpResponse",
    "TransportFailure",
    "Transport",
    "AiohttpTransport",
)
