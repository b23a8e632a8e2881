"""Outbound click redirector: GET /out/{course_id}.

Rate limiting happens in ``RateLimitMiddleware`` before this handler runs,
and the same middleware stamps the quota headers on the redirect. Every
path through here ends in a 302: a missing course or a failing store sends
the visitor to the site root instead of an error page.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coursefinder.catalog.service import get_course_for_redirect
from coursefinder.coupons.resolver import quote_price
from coursefinder.database import get_session
from coursefinder.dependencies import client_ip, get_app_settings, get_click_recorder
from coursefinder.redirect.clicks import ClickEventData, ClickRecorder
from coursefinder.redirect.urls import apply_coupon_code, outbound_url

logger = structlog.get_logger()

router = APIRouter(tags=["Redirect"])


def _home(request: Request) -> RedirectResponse:
    target = get_app_settings(request).site_url or str(request.base_url)
    return RedirectResponse(target, status_code=302)


@router.get("/out/{course_id}", response_class=RedirectResponse, status_code=302)
async def redirect_to_course(
    course_id: str,
    request: Request,
    src: str | None = None,
    db: AsyncSession = Depends(get_session),
    recorder: ClickRecorder = Depends(get_click_recorder),
) -> RedirectResponse:
    """Send the visitor to the course page, coupon applied, and log the click."""
    settings = get_app_settings(request)

    try:
        course = await get_course_for_redirect(db, course_id)
    except SQLAlchemyError:
        logger.error("redirect_lookup_failed", course_id=course_id, exc_info=True)
        return _home(request)

    if course is None:
        logger.info("redirect_course_not_found", course_id=course_id)
        return _home(request)

    quote = quote_price(course, course.coupons, datetime.now(timezone.utc))
    target = apply_coupon_code(outbound_url(course), quote.coupon_code, settings.coupon_query_params)

    recorder.dispatch(
        ClickEventData.build(
            course.id,
            src=src,
            ip=client_ip(request),
            salt=settings.ip_salt,
            user_agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
            country=request.headers.get("cf-ipcountry"),
        )
    )

    return RedirectResponse(target, status_code=302)
