"""SQL expressions mirroring the coupon resolver.

Eligible coupons are filtered exactly as ``is_eligible`` does, and the
effective price is the lowest eligible ``final_price``, which is the price of
the coupon ``resolve_active_coupon`` picks.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, and_, case, func, or_, select

from coursefinder.db.models import Coupon, Course


def eligible_coupon_filter(now: datetime) -> ColumnElement[bool]:
    """Coupon is flagged active and unexpired at ``now``."""
    return and_(
        Coupon.is_active.is_(True),
        or_(Coupon.expires_at.is_(None), Coupon.expires_at > now),
    )


def has_active_coupon(now: datetime) -> ColumnElement[bool]:
    """Course has at least one eligible coupon."""
    return Course.coupons.any(eligible_coupon_filter(now))


def effective_price_expression(now: datetime) -> ColumnElement:
    """Correlated expression for the price a visitor pays at ``now``."""
    best_coupon_price = (
        select(func.min(Coupon.final_price))
        .where(Coupon.course_id == Course.id, eligible_coupon_filter(now))
        .correlate(Course)
        .scalar_subquery()
    )
    return func.coalesce(best_coupon_price, Course.original_price)


def discount_ratio_expression(now: datetime) -> ColumnElement:
    """Unrounded discount percentage; 0 when the course has no positive price.

    Rounding and clamping are monotone, so ordering on this expression orders
    by the displayed ``discount_percent`` as well.
    """
    price = effective_price_expression(now)
    return case(
        (Course.original_price <= 0, 0),
        else_=(Course.original_price - price) * 100 / Course.original_price,
    )
