# =============================================================================
# app/pipeline/rate_limit.py - Fixed Window Rate Limiter
# =============================================================================
# Counts requests per client over a fixed window and rejects the ones above
# the ceiling. Only the API namespace is limited.
#
# Usage:
#   limiter = RateLimiter(window_seconds=900, max_requests=100)
#   decision = limiter.hit("203.0.113.7")
#   if not decision.allowed:
#       ...
#
# Counting is done by the `limits` fixed window strategy over its in-memory
# storage, which increments per key atomically and drops expired windows on
# its own. The limiter is the only state shared between requests.
# =============================================================================

import logging
import math
import time
from dataclasses import dataclass
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from app.exceptions import RateLimitError
from app.pipeline.context import RequestContext
from app.pipeline.results import CONTINUE, StageResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int


class RateLimiter:
    """
    Fixed window counter keyed by client identity.

    Args:
        window_seconds: Length of one window
        max_requests: Requests allowed per client per window
        storage: `limits` storage backend (defaults to process memory)
    """

    def __init__(
        self,
        window_seconds: int = 15 * 60,
        max_requests: int = 100,
        storage: Optional[Storage] = None,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.storage = storage if storage is not None else MemoryStorage()
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)

    def hit(self, key: str) -> RateLimitDecision:
        """
        Count one request for `key` and decide whether it may proceed.

        Requests above the ceiling are still counted.
        """
        allowed = self.strategy.hit(self.item, key)
        stats = self.strategy.get_window_stats(self.item, key)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.max_requests,
            remaining=stats.remaining,
            reset_at=stats.reset_time,
            retry_after=max(0, math.ceil(stats.reset_time - time.time())),
        )

    def count_for(self, key: str) -> int:
        """Requests counted for `key` in its current window (0 if none)."""
        return self.storage.get(self.item.key_for(key))

    def reset(self) -> None:
        self.storage.reset()


def client_identity(ctx: RequestContext, trust_proxy: bool = False) -> str:
    """
    Key used to bucket a request.

    With trust_proxy the left-most X-Forwarded-For hop wins, otherwise the
    peer address of the connection.
    """
    if trust_proxy:
        forwarded = ctx.request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    return ctx.request.client_host or "unknown"


class RateLimitPolicy:
    """Pipeline stage that applies a RateLimiter to API paths."""

    def __init__(self, limiter: RateLimiter, trust_proxy: bool = False):
        self.limiter = limiter
        self.trust_proxy = trust_proxy

    async def __call__(self, ctx: RequestContext) -> StageResult:
        if not ctx.request.is_api:
            return CONTINUE

        key = client_identity(ctx, self.trust_proxy)
        decision = self.limiter.hit(key)

        ctx.response_headers["X-RateLimit-Limit"] = str(decision.limit)
        ctx.response_headers["X-RateLimit-Remaining"] = str(decision.remaining)
        ctx.response_headers["X-RateLimit-Reset"] = str(math.ceil(decision.reset_at))

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {key} on {ctx.request.path}")
            raise RateLimitError(retry_after=decision.retry_after)

        return CONTINUE
