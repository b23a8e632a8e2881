"""Per-endpoint-group rate limiting middleware."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from coursefinder.dependencies import client_ip
from coursefinder.ratelimit.limiter import RateLimiter, rate_limit_headers

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitRule:
    """Requests whose path starts with ``prefix`` count against ``endpoint``."""

    endpoint: str
    prefix: str
    limit: int
    window_ms: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit the search and click endpoints per client IP.

    Paths matching no rule (health checks, docs) pass through untouched.
    """

    def __init__(self, app: Any, limiter: RateLimiter, rules: list[RateLimitRule]) -> None:  # noqa: ANN401
        super().__init__(app)
        self.limiter = limiter
        self.rules = rules

    def _rule_for(self, path: str) -> RateLimitRule | None:
        for rule in self.rules:
            if path == rule.prefix or path.startswith(rule.prefix + "/"):
                return rule
        return None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check the quota, return 429 if exceeded, else stamp quota headers on the response."""
        rule = self._rule_for(request.url.path)
        if rule is None:
            return await call_next(request)

        ip = client_ip(request)
        result = await self.limiter.check(ip, rule.endpoint, rule.limit, rule.window_ms)
        headers = rate_limit_headers(result)

        if not result.success:
            logger.info("rate_limited", endpoint=rule.endpoint, limit=rule.limit)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests"},
                headers={
                    **headers,
                    "Retry-After": str(result.retry_after),
                },
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            # Answer here so the 500 still carries the quota headers
            logger.error(
                "unhandled_exception",
                path=request.url.path,
                method=request.method,
                error=str(exc),
                exc_info=exc,
            )
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"},
                headers=headers,
            )

        response.headers.update(headers)
        return response
