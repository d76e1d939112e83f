"""
Request, response and result types exchanged with the offline cache gateway.
"""

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

# Headers that describe a single hop or a transfer encoding that has already
# been undone; they are never stored or forwarded.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "content-encoding",
        "content-length",
        "host",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

Headers = tuple[tuple[str, str], ...]


def filter_headers(headers) -> Headers:
    """Drops hop-by-hop headers from any (name, value) iterable or mapping."""
    items = headers.items() if hasattr(headers, "items") else headers
    return tuple(
        (str(name), str(value))
        for name, value in items
        if str(name).lower() not in HOP_BY_HOP_HEADERS
    )


@dataclass(frozen=True)
class GatewayRequest:
    """
    An intercepted request.

    `destination` mirrors the browser's request destination; "document"
    marks a navigation.
    """

    method: str
    url: str
    destination: str = ""
    headers: Headers = ()

    @property
    def is_navigation(self) -> bool:
        return self.destination == "document"

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @classmethod
    def from_headers(cls, method: str, url: str, headers) -> "GatewayRequest":
        """Builds a request, inferring the destination from fetch metadata."""
        return cls(
            method=method.upper(),
            url=url,
            destination=infer_destination(headers),
            headers=filter_headers(headers),
        )


def infer_destination(headers) -> str:
    """
    Works out the request destination from `Sec-Fetch-Dest`, falling back to
    `Sec-Fetch-Mode: navigate` or an `Accept` header that leads with HTML.
    """
    dest = headers.get("Sec-Fetch-Dest", "")
    if dest:
        return dest.lower()
    if headers.get("Sec-Fetch-Mode", "").lower() == "navigate":
        return "document"
    accept = headers.get("Accept", "")
    if accept.split(",", 1)[0].strip().lower() == "text/html":
        return "document"
    return ""


@dataclass(frozen=True)
class GatewayResponse:
    """A fully-read HTTP response, as fetched from upstream or stored in a bucket."""

    url: str
    status: int
    headers: Headers = ()
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status == 200

    def header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return default


class FetchOutcome(Enum):
    """How the gateway answered an intercepted request."""

    CACHED = "cached"  # Served from a cache bucket
    NETWORK = "network"  # Fetched from upstream
    FALLBACK = "fallback"  # Upstream failed; served the offline document
    FAILED = "failed"  # Upstream failed and nothing could stand in
    PASSTHROUGH = "passthrough"  # Not intercepted


@dataclass
class FetchResult:
    outcome: FetchOutcome
    response: GatewayResponse | None = None
    error: Exception | None = field(default=None, repr=False)
