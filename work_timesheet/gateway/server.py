"""
aiohttp application that runs the offline cache gateway as a local
reverse proxy in front of the upstream origin.
"""

import logging
from pathlib import Path

from aiohttp import web

from work_timesheet.exceptions import GatewayInstallError, NetworkError
from work_timesheet.models.config import AppConfig
from work_timesheet.utils.structured_logger import GatewayLogger

from .cache_store import CacheStorage
from .messages import FetchOutcome, GatewayRequest, GatewayResponse
from .network import NetworkClient
from .offline_gateway import OfflineCacheGateway

log = logging.getLogger(__name__)

GATEWAY_KEY = web.AppKey("gateway", OfflineCacheGateway)
SYNC_ROUTE = "/_gateway/sync/{tag}"
OUTCOME_HEADER = "X-Gateway-Outcome"


def _to_web_response(
    response: GatewayResponse, outcome: FetchOutcome
) -> web.Response:
    web_response = web.Response(
        status=response.status, body=response.body, headers=list(response.headers)
    )
    web_response.headers[OUTCOME_HEADER] = outcome.value
    return web_response


async def _forward(
    request: web.Request, gateway: OfflineCacheGateway, url: str
) -> web.Response:
    """Sends a request the gateway did not intercept straight upstream."""
    gw_request = GatewayRequest.from_headers(request.method, url, request.headers)
    body = await request.read() if request.body_exists else None
    try:
        response = await gateway.network.request(
            request.method,
            url,
            headers=gw_request.headers,
            body=body,
            allow_redirects=False,
        )
    except NetworkError as e:
        return web.Response(status=502, text=f"Upstream unreachable: {e}")
    return _to_web_response(response, FetchOutcome.PASSTHROUGH)


async def handle_request(request: web.Request) -> web.Response:
    """Catch-all route: every request goes through the gateway first."""
    gateway = request.app[GATEWAY_KEY]
    url = gateway.resolve(request.path_qs)
    gw_request = GatewayRequest.from_headers(request.method, url, request.headers)

    result = await gateway.handle_fetch(gw_request)

    if result.outcome is FetchOutcome.PASSTHROUGH:
        return await _forward(request, gateway, url)
    if result.outcome is FetchOutcome.FAILED:
        return web.Response(
            status=504,
            text=f"Offline and '{request.path}' is not cached.",
            headers={OUTCOME_HEADER: result.outcome.value},
        )
    return _to_web_response(result.response, result.outcome)


async def handle_sync(request: web.Request) -> web.Response:
    gateway = request.app[GATEWAY_KEY]
    handled = await gateway.handle_sync(request.match_info["tag"])
    return web.json_response({"handled": handled}, status=200 if handled else 404)


async def _on_startup(app: web.Application) -> None:
    gateway = app[GATEWAY_KEY]
    try:
        await gateway.install()
    except GatewayInstallError as e:
        # Without a complete install the gateway never activates; requests
        # pass straight through until the next start.
        log.error(f"[red]Gateway install failed: {e}[/red]")
        return
    await gateway.activate()


async def _on_cleanup(app: web.Application) -> None:
    await app[GATEWAY_KEY].network.close()


def create_gateway_app(
    config: AppConfig,
    caches: CacheStorage | None = None,
    network: NetworkClient | None = None,
    gateway_logger: GatewayLogger | None = None,
) -> web.Application:
    """
    Builds the gateway web application.

    Startup runs install then activate; shutdown closes the upstream client.
    """
    caches = caches or CacheStorage(Path(config.data_dir) / "caches")
    network = network or NetworkClient()
    gateway = OfflineCacheGateway(config, caches, network, gateway_logger)

    app = web.Application()
    app[GATEWAY_KEY] = gateway
    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    app.router.add_post(SYNC_ROUTE, handle_sync)
    app.router.add_route("*", "/{tail:.*}", handle_request)
    return app


def run_gateway(config: AppConfig, gateway_logger: GatewayLogger | None = None) -> None:
    """Serves the gateway until interrupted."""
    app = create_gateway_app(config, gateway_logger=gateway_logger)
    log.info(
        f"[bold cyan]Gateway listening on http://{config.gateway_host}:"
        f"{config.gateway_port} → {config.upstream_url}[/bold cyan]"
    )
    web.run_app(
        app,
        host=config.gateway_host,
        port=config.gateway_port,
        print=None,
        access_log=log,
    )
