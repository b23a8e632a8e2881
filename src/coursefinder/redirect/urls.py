"""Outbound URL resolution and coupon-code injection."""

from __future__ import annotations

from collections.abc import Mapping

from starlette.datastructures import URL

from coursefinder.db.models import Course


def outbound_url(course: Course) -> str:
    """Affiliate link when the course has one, else the platform page."""
    return course.affiliate_url or course.direct_url


def coupon_param_for(url: str, coupon_params: Mapping[str, str]) -> str | None:
    """Query parameter that carries a coupon code on ``url``'s platform.

    A platform domain matches itself and any of its subdomains.
    """
    host = (URL(url).hostname or "").lower().rstrip(".")
    if not host:
        return None
    for domain, param in coupon_params.items():
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return param
    return None


def apply_coupon_code(url: str, code: str | None, coupon_params: Mapping[str, str]) -> str:
    """Add ``code`` to ``url`` for coupon-bearing platforms; otherwise leave it alone."""
    if not code:
        return url
    param = coupon_param_for(url, coupon_params)
    if param is None:
        return url
    return str(URL(url).include_query_params(**{param: code}))
