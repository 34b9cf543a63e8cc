# =============================================================================
# app/pipeline/middleware.py - Request Pipeline
# =============================================================================
# ASGI middleware that runs every HTTP request through the stages in order:
#
#   security headers -> rate limit -> CORS -> body -> static -> dispatcher
#
# A stage either continues, responds, or delegates to the wrapped API
# application. Headers staged by the policies, and any send wrappers they
# register, apply to whichever response goes out. Any exception ends in the
# ErrorNormalizer.
#
# Usage:
#   app.add_middleware(RequestPipeline, stages=build_stages(...), normalizer=normalizer)
# =============================================================================

import logging
from functools import partial
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Sequence

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.config import Settings
from app.pipeline.body import BodyDecoder
from app.pipeline.context import InboundRequest, RequestContext
from app.pipeline.cors import CorsPolicy
from app.pipeline.dispatcher import RouteDispatcher, build_route_table
from app.pipeline.normalizer import ErrorNormalizer
from app.pipeline.rate_limit import RateLimiter, RateLimitPolicy
from app.pipeline.results import Delegate, Respond, StageResult
from app.pipeline.security import SecurityHeaderPolicy
from app.pipeline.static import StaticAssetServer
from app.routers import RouteGroup

logger = logging.getLogger(__name__)

Stage = Callable[[RequestContext], Awaitable[StageResult]]


def build_stages(
    settings: Settings,
    rate_limiter: RateLimiter,
    groups: Iterable[RouteGroup],
) -> list[Stage]:
    """Assemble the stages in the order every request visits them."""
    public_dir = Path(settings.PUBLIC_DIR)
    return [
        SecurityHeaderPolicy(),
        RateLimitPolicy(rate_limiter, trust_proxy=settings.TRUST_PROXY),
        CorsPolicy(
            allow_any_origin=not settings.is_production,
            allowed_origin=settings.CORS_ORIGIN,
        ),
        BodyDecoder(limit=settings.max_body_size_bytes),
        StaticAssetServer(public_dir),
        RouteDispatcher(build_route_table(groups), public_dir),
    ]


class RequestPipeline:
    """
    Runs the stages for HTTP requests; other scopes (lifespan) pass through.

    Args:
        app: The API application that serves delegated route groups
        stages: Ordered stages, the last of which must always decide
        normalizer: Renders any error raised along the way
    """

    def __init__(self, app: ASGIApp, stages: Sequence[Stage], normalizer: ErrorNormalizer):
        self.app = app
        self.stages = tuple(stages)
        self.normalizer = normalizer

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext(
            request=InboundRequest.from_scope(scope),
            scope=scope,
            receive=receive,
        )

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                ctx.response_started = True
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                for name, value in ctx.response_headers.items():
                    if name == "vary":
                        headers.add_vary_header(value)
                    else:
                        headers[name] = value
            deliver = send
            for wrapper in ctx.send_wrappers:
                deliver = partial(wrapper, send=deliver)
            await deliver(message)

        try:
            await self._run(ctx, scope, send_with_headers)
        except Exception as exc:
            if ctx.response_started:
                logger.exception(
                    f"Error after response started: {ctx.request.method} {ctx.request.path}"
                )
                return
            response = self.normalizer.render(exc, ctx.request.method, ctx.request.path)
            await response(scope, ctx.receive, send_with_headers)

    async def _run(self, ctx: RequestContext, scope: Scope, send: Send) -> None:
        for stage in self.stages:
            result = await stage(ctx)
            if isinstance(result, Respond):
                await result.response(scope, ctx.receive, send)
                return
            if isinstance(result, Delegate):
                await self.app(scope, ctx.receive, send)
                return
        raise RuntimeError(f"No pipeline stage handled {ctx.request.method} {ctx.request.path}")
