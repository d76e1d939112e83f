"""
The gateway's connection to the upstream origin.
"""

import asyncio
import logging

import aiohttp

from work_timesheet.exceptions import NetworkError

from .messages import GatewayResponse, Headers, filter_headers

log = logging.getLogger(__name__)


class NetworkClient:
    """
    Thin async HTTP client returning fully-read `GatewayResponse` objects.

    Only connection-level failures raise; any HTTP status is a response.
    No request timeout is set beyond aiohttp's defaults.
    """

    def __init__(self, max_connections: int = 16):
        self.max_connections = max_connections
        self._session: aiohttp.ClientSession | None = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(connector=connector)

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def request(
        self,
        method: str,
        url: str,
        headers: Headers = (),
        body: bytes | None = None,
        allow_redirects: bool = True,
    ) -> GatewayResponse:
        """
        Sends a request upstream and reads the whole response.

        Raises:
            NetworkError: If the upstream cannot be reached.
        """
        await self._initialize_session()
        try:
            async with self._session.request(
                method,
                url,
                headers=list(headers),
                data=body,
                allow_redirects=allow_redirects,
            ) as r:
                payload = await r.read()
                return GatewayResponse(
                    url=url,
                    status=r.status,
                    headers=filter_headers(r.headers),
                    body=payload,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"{method} {url} failed: {e!r}")
            raise NetworkError(f"{method} {url} failed: {e}") from e

    async def fetch(self, url: str) -> GatewayResponse:
        return await self.request("GET", url)
