# =============================================================================
# app/pipeline/ - Request Pipeline
# =============================================================================
# The ordered stages every HTTP request passes through:
# - security.py: Content-Security-Policy and hardening headers
# - rate_limit.py: Per-client fixed window limiter for /api paths
# - cors.py: Allowed origin, credentials, preflights
# - body.py: JSON / URL-encoded body decoding with a size ceiling
# - static.py: Files from the public directory
# - dispatcher.py: API route groups, HTML pages, fallback
# - normalizer.py: One error shape for every failure
# - middleware.py: The ASGI middleware that runs them
# =============================================================================

from app.pipeline.middleware import RequestPipeline, build_stages
from app.pipeline.normalizer import ErrorNormalizer
from app.pipeline.rate_limit import RateLimiter

__all__ = [
    "ErrorNormalizer",
    "RateLimiter",
    "RequestPipeline",
    "build_stages",
]
