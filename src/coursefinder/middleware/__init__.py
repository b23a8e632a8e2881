"""Middleware registration."""

from fastapi import FastAPI

from coursefinder.config import Settings
from coursefinder.middleware.cors import setup_cors
from coursefinder.middleware.error_handler import setup_error_handlers
from coursefinder.middleware.logging import setup_logging
from coursefinder.middleware.rate_limit import RateLimitMiddleware, RateLimitRule
from coursefinder.middleware.request_id import RequestIdMiddleware
from coursefinder.ratelimit.limiter import RateLimiter

SEARCH_PREFIX = "/api/v1/courses"
CLICK_PREFIX = "/out"


def rate_limit_rules(settings: Settings) -> list[RateLimitRule]:
    """Endpoint groups and their per-window quotas."""
    window_ms = settings.rate_limit_window_seconds * 1000
    return [
        RateLimitRule(endpoint="search", prefix=SEARCH_PREFIX, limit=settings.rate_limit_search, window_ms=window_ms),
        RateLimitRule(endpoint="click", prefix=CLICK_PREFIX, limit=settings.rate_limit_click, window_ms=window_ms),
    ]


def setup_middleware(app: FastAPI, settings: Settings, limiter: RateLimiter) -> None:
    """Register all middleware in the correct order.

    FastAPI/Starlette executes middleware in reverse-add order (last added = outermost).
    CORS must be outermost so it wraps error responses from inner middleware (e.g. 429).
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RateLimitMiddleware, limiter=limiter, rules=rate_limit_rules(settings))
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
