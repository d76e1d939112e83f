"""
Offline Cache Gateway.

This package serves the timesheet's web assets cache-first from versioned
on-disk buckets, so the app keeps loading while the upstream is unreachable.
"""

from .cache_store import CacheBucket, CacheStorage
from .messages import FetchOutcome, FetchResult, GatewayRequest, GatewayResponse
from .network import NetworkClient
from .offline_gateway import OfflineCacheGateway
from .server import create_gateway_app, run_gateway

__all__ = [
    "CacheBucket",
    "CacheStorage",
    "FetchOutcome",
    "FetchResult",
    "GatewayRequest",
    "GatewayResponse",
    "NetworkClient",
    "OfflineCacheGateway",
    "create_gateway_app",
    "run_gateway",
]
