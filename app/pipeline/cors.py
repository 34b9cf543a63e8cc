# =============================================================================
# app/pipeline/cors.py - CORS Policy
# =============================================================================
# Decides which origin may read the response. Outside production any origin
# is echoed back; in production only the configured origin is allowed.
# A mismatch is never an error for the actual request, the browser enforces it.
#
# The rules themselves are Starlette's CORSMiddleware. This stage answers
# preflights with its preflight response and hooks its header logic into the
# response of every other cross-origin request, whichever stage produces it.
# =============================================================================

from functools import partial
from typing import Optional

from starlette.middleware.cors import CORSMiddleware

from app.pipeline.context import RequestContext
from app.pipeline.results import CONTINUE, Respond, StageResult

CORS_METHODS = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")

# Matches every origin; with credentials on, Starlette echoes the origin back
ANY_ORIGIN_PATTERN = ".*"


class CorsPolicy:
    """
    Pipeline stage for cross-origin requests.

    Args:
        allow_any_origin: Allow whatever Origin the request declares
        allowed_origin: The one origin allowed when allow_any_origin is off
    """

    def __init__(self, allow_any_origin: bool, allowed_origin: Optional[str] = None):
        self.allow_any_origin = allow_any_origin
        self.allowed_origin = allowed_origin

        origins = [allowed_origin] if allowed_origin and not allow_any_origin else []
        # The pipeline runs the request, so the middleware never wraps an app
        self.middleware = CORSMiddleware(
            app=None,
            allow_origins=origins,
            allow_origin_regex=ANY_ORIGIN_PATTERN if allow_any_origin else None,
            allow_methods=CORS_METHODS,
            allow_headers=["*"],
            allow_credentials=True,
        )

    def is_allowed(self, origin: str) -> bool:
        return self.middleware.is_allowed_origin(origin=origin)

    async def __call__(self, ctx: RequestContext) -> StageResult:
        headers = ctx.request.headers
        if "origin" not in headers:
            return CONTINUE

        if ctx.request.method == "OPTIONS" and "access-control-request-method" in headers:
            return Respond(self.middleware.preflight_response(request_headers=headers))

        ctx.send_wrappers.append(partial(self.middleware.send, request_headers=headers))
        return CONTINUE
