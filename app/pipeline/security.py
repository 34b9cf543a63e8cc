# =============================================================================
# app/pipeline/security.py - Security Header Policy
# =============================================================================
# Attaches a Content-Security-Policy and the usual hardening headers to
# every response, error responses included. The headers are staged on the
# request context up front and merged into whatever response goes out.
# =============================================================================

from app.pipeline.context import RequestContext
from app.pipeline.results import CONTINUE, StageResult

# Directive order is preserved in the rendered header
CSP_DIRECTIVES: dict[str, list[str]] = {
    "default-src": ["'self'"],
    "base-uri": ["'self'"],
    "font-src": ["'self'", "https://fonts.gstatic.com"],
    "form-action": ["'self'"],
    "frame-ancestors": ["'self'"],
    "img-src": ["'self'", "data:", "https:", "blob:"],
    "object-src": ["'none'"],
    "script-src": ["'self'", "'unsafe-inline'"],
    "script-src-attr": ["'none'"],
    "style-src": ["'self'", "'unsafe-inline'", "https://fonts.googleapis.com"],
    "connect-src": ["'self'", "https:"],
    "upgrade-insecure-requests": [],
}

HARDENING_HEADERS: dict[str, str] = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def build_csp(directives: dict[str, list[str]]) -> str:
    """
    Render CSP directives as a header value.

    Example: {"default-src": ["'self'"], "upgrade-insecure-requests": []}
        -> "default-src 'self';upgrade-insecure-requests"
    """
    parts = []
    for name, sources in directives.items():
        parts.append(" ".join([name, *sources]))
    return ";".join(parts)


class SecurityHeaderPolicy:
    """Pipeline stage that stages the security headers for the response."""

    def __init__(self, directives: dict[str, list[str]] = CSP_DIRECTIVES):
        self.headers = {
            "Content-Security-Policy": build_csp(directives),
            **HARDENING_HEADERS,
        }

    async def __call__(self, ctx: RequestContext) -> StageResult:
        for name, value in self.headers.items():
            ctx.response_headers[name] = value
        return CONTINUE
