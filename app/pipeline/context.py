# =============================================================================
# app/pipeline/context.py - Per-Request State
# =============================================================================
# InboundRequest is the frozen view of what the client sent. RequestContext
# wraps it together with everything the stages derive along the way.
# =============================================================================

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import Receive, Scope

API_PREFIX = "/api"

# Marks "no body was decoded", since None is a valid JSON document
UNDECODED = object()

# Called as wrapper(message, send=next_send) for every outgoing message
SendWrapper = Callable[..., Awaitable[None]]


@dataclass(frozen=True)
class InboundRequest:
    method: str
    path: str
    query_string: bytes
    headers: Headers
    client_host: Optional[str]

    @classmethod
    def from_scope(cls, scope: Scope) -> "InboundRequest":
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            query_string=scope.get("query_string", b""),
            headers=Headers(scope=scope),
            client_host=client[0] if client else None,
        )

    @property
    def is_api(self) -> bool:
        """True for paths in the API namespace (/api and below)."""
        return self.path == API_PREFIX or self.path.startswith(API_PREFIX + "/")


@dataclass
class RequestContext:
    """
    Everything the pipeline knows about one request.

    `receive` starts as the server's receive channel; the body decoder swaps
    it for one that replays the bytes it already consumed. Stages that need to
    touch the outgoing response register a send wrapper.
    """
    request: InboundRequest
    scope: Scope
    receive: Receive
    response_headers: MutableHeaders = field(default_factory=MutableHeaders)
    send_wrappers: list[SendWrapper] = field(default_factory=list)
    raw_body: Optional[bytes] = None
    body: Any = UNDECODED
    response_started: bool = False

    @property
    def has_decoded_body(self) -> bool:
        return self.body is not UNDECODED
