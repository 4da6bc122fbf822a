"""
Bitfinex Client - HTTP Transport.

============================================================
PURPOSE
============================================================
Executes a built RequestDescriptor and returns status and body.

The transport does not interpret responses and does not map
errors: ``aiohttp.ClientError`` and ``asyncio.TimeoutError`` are
left to the dispatcher.

============================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from .config import DEFAULT_TIMEOUT_SECONDS
from .types import RequestDescriptor, TransportResponse


logger = logging.getLogger(__name__)


# ============================================================
# TRANSPORT INTERFACE
# ============================================================

class Transport(ABC):
    """Sends requests over the network."""

    @abstractmethod
    async def send(
        self,
        request: RequestDescriptor,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        """
        Send a request.

        Args:
            request: Fully built request
            timeout: Total timeout in seconds, overriding any
                transport default

        Returns:
            TransportResponse

        Raises:
            aiohttp.ClientError, OSError: Network failure
            asyncio.TimeoutError: Timeout expired
        """
        pass

    async def close(self) -> None:
        """Release resources."""
        pass


# ============================================================
# AIOHTTP TRANSPORT
# ============================================================

class AiohttpTransport(Transport):
    """Transport backed by a lazily created aiohttp session."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            timeout_seconds: Session-wide default timeout
            session: Externally owned session (not closed by us)
        """
        self._timeout = timeout_seconds
        self._session = session
        self._owns_session = session is None

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def send(
        self,
        request: RequestDescriptor,
        timeout: Optional[float] = None,
    ) -> TransportResponse:
        session = self._get_session()

        kwargs = {"headers": request.headers}
        if request.body is not None:
            kwargs["data"] = request.body.encode("utf-8")
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

        async with session.request(request.method.value, request.url, **kwargs) as resp:
            body = await resp.read()
            return TransportResponse(
                status=resp.status,
                body=body,
                headers=dict(resp.headers),
            )

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
            logger.debug("HTTP session closed")
        self._session = None
