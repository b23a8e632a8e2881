"""Shared FastAPI dependencies and request helpers."""

from fastapi import Request

from coursefinder.config import Settings
from coursefinder.ratelimit.limiter import RateLimiter
from coursefinder.redirect.clicks import ClickRecorder


def client_ip(request: Request) -> str:
    """Caller address: first X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def get_rate_limiter(request: Request) -> RateLimiter:
    """Process-wide limiter built by the application factory."""
    return request.app.state.rate_limiter


def get_click_recorder(request: Request) -> ClickRecorder:
    """Click recorder attached to the application during startup."""
    return request.app.state.click_recorder


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings
