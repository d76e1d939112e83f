"""
The offline cache gateway: a cache-first interceptor in front of the
upstream origin that serves the timesheet's web assets.

Lifecycle:
- install: precache a fixed manifest into the static bucket
- activate: delete buckets from superseded versions and take control
- fetch: cache first, then network (caching static text assets), then the
  offline fallback document for navigations
- sync: a background-sync hook that currently does nothing
"""

import logging
import time
from urllib.parse import urlsplit

from work_timesheet.exceptions import NetworkError
from work_timesheet.models.config import AppConfig
from work_timesheet.utils.structured_logger import GatewayLogger, StructuredLogger

from .cache_store import CacheStorage
from .messages import FetchOutcome, FetchResult, GatewayRequest
from .network import NetworkClient

log = logging.getLogger(__name__)

CACHEABLE_EXTENSIONS = (".html", ".css", ".js", ".json")
BACKGROUND_SYNC_TAG = "background-sync"


class OfflineCacheGateway:
    """
    Intercepts GET requests for the upstream origin and answers them from
    versioned cache buckets whenever possible.
    """

    def __init__(
        self,
        config: AppConfig,
        caches: CacheStorage,
        network: NetworkClient,
        gateway_logger: GatewayLogger | None = None,
    ):
        """
        Args:
            config: Supplies the bucket names, precache manifest and upstream
            origin (the gateway's scope).
            caches: Where buckets are stored.
            network: Client used to reach the upstream origin.
        """
        self.config = config
        self.caches = caches
        self.network = network
        self.scope = config.upstream_url
        self._events = gateway_logger or GatewayLogger(
            StructuredLogger(__name__, enable_json=False)
        )

        self.installed = False
        self.controlling = False

    @property
    def expected_buckets(self) -> tuple[str, str]:
        return (self.config.cache_name, self.config.static_cache_name)

    def resolve(self, path: str) -> str:
        """Resolves a root-relative path against the gateway's scope."""
        return f"{self.scope}/{path.lstrip('/')}"

    def is_same_origin(self, url: str) -> bool:
        scope, target = urlsplit(self.scope), urlsplit(url)
        return (scope.scheme, scope.netloc) == (target.scheme, target.netloc)

    @staticmethod
    def is_cacheable(url: str) -> bool:
        """Only text assets fetched from the network are added to the cache."""
        return urlsplit(url).path.endswith(CACHEABLE_EXTENSIONS)

    async def install(self) -> int:
        """
        Precaches the asset manifest into the static bucket and skips waiting.

        Raises:
            GatewayInstallError: If any manifest asset could not be fetched;
            nothing is cached in that case.
        """
        log.info("[cyan]Gateway: installing...[/cyan]")
        bucket = await self.caches.open(self.config.static_cache_name)
        urls = [self.resolve(path) for path in self.config.precache]
        count = await bucket.add_all(urls, self.network.fetch)
        self.installed = True
        self._events.lifecycle("installed", bucket=bucket.name, assets=count)
        return count

    async def activate(self) -> list[str]:
        """
        Deletes every bucket other than the current main and static buckets
        and takes control of incoming requests.

        Returns:
            The names of the deleted buckets.
        """
        log.info("[cyan]Gateway: activating...[/cyan]")
        deleted = []
        for name in await self.caches.keys():
            if name not in self.expected_buckets:
                log.info(f"Gateway: deleting old cache '{name}'")
                if await self.caches.delete(name):
                    deleted.append(name)
                    self._events.bucket_deleted(name)
        self.controlling = True
        self._events.lifecycle("activated", deleted=len(deleted))
        return deleted

    async def handle_fetch(self, request: GatewayRequest) -> FetchResult:
        """
        Answers an intercepted request.

        Non-GET and cross-origin requests, and any request before activation,
        come back as PASSTHROUGH for the caller to send on unchanged.
        """
        if (
            not self.controlling
            or request.method != "GET"
            or not self.is_same_origin(request.url)
        ):
            return FetchResult(FetchOutcome.PASSTHROUGH)

        cached = await self.caches.match(request.url)
        if cached is not None:
            self._events.cache_hit(request.url)
            return FetchResult(FetchOutcome.CACHED, cached)

        start_time = time.monotonic()
        try:
            response = await self.network.fetch(request.url)
        except NetworkError as e:
            return await self._handle_network_failure(request, e)

        stored = False
        if response.ok and self.is_cacheable(request.url):
            try:
                bucket = await self.caches.open(self.config.static_cache_name)
                await bucket.put(request.url, response)
                stored = True
            except OSError as e:
                log.warning(f"Gateway: could not cache '{request.url}': {e}")

        self._events.network_fetch(
            request.url,
            response.status,
            stored,
            (time.monotonic() - start_time) * 1000,
        )
        return FetchResult(FetchOutcome.NETWORK, response)

    async def _handle_network_failure(
        self, request: GatewayRequest, error: NetworkError
    ) -> FetchResult:
        if request.is_navigation:
            fallback = await self.caches.match(
                self.resolve(self.config.fallback_document)
            )
            if fallback is not None:
                self._events.fetch_failed(request.url, str(error), fallback=True)
                return FetchResult(FetchOutcome.FALLBACK, fallback, error=error)

        self._events.fetch_failed(request.url, str(error), fallback=False)
        return FetchResult(FetchOutcome.FAILED, error=error)

    async def handle_sync(self, tag: str) -> bool:
        """Runs the handler for a background-sync tag. Unknown tags are ignored."""
        if tag != BACKGROUND_SYNC_TAG:
            log.debug(f"Gateway: ignoring sync tag '{tag}'.")
            return False
        self._events.lifecycle("sync", tag=tag)
        await self.do_background_sync()
        return True

    async def do_background_sync(self) -> None:
        # There is no backend to push entries to yet.
        log.info("Gateway: background sync running")
