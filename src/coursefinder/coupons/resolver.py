"""Coupon resolution: which discount applies to a course right now.

The same rule backs catalog listings and outbound redirects, so the price a
visitor sees is the price the redirect carries. ``coursefinder.coupons.sql``
holds the SQL mirror used for filtering and sorting.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from coursefinder.db.models import Coupon, Course

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_eligible(coupon: Coupon, now: datetime) -> bool:
    """Active flag set and not yet expired (no expiry means never)."""
    if not coupon.is_active:
        return False
    if coupon.expires_at is None:
        return True
    return _as_utc(coupon.expires_at) > _as_utc(now)


def _selection_key(coupon: Coupon) -> tuple[Decimal, float, str]:
    created = _as_utc(coupon.created_at) if coupon.created_at else _EPOCH
    # Lowest final price, then newest, then id for a total order
    return (_to_decimal(coupon.final_price), -created.timestamp(), coupon.id or "")


def resolve_active_coupon(course: Course, coupons: Iterable[Coupon], now: datetime) -> Coupon | None:
    """Pick the single coupon that sets ``course``'s price at ``now``.

    Coupons belonging to other courses are ignored. When several are eligible
    the cheapest wins; ties go to the most recently created.
    """
    eligible = [
        c for c in coupons
        if (c.course_id is None or course.id is None or c.course_id == course.id) and is_eligible(c, now)
    ]
    if not eligible:
        return None
    return min(eligible, key=_selection_key)


def effective_price(course: Course, active_coupon: Coupon | None) -> Decimal:
    if active_coupon is None:
        return _to_decimal(course.original_price)
    return _to_decimal(active_coupon.final_price)


def discount_percent(original_price: Decimal, price: Decimal) -> int:
    """Whole-number discount, clamped to [0, 100]; 0 for free or unpriced courses."""
    original = _to_decimal(original_price)
    if original <= 0:
        return 0
    percent = ((original - _to_decimal(price)) * 100 / original).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, min(100, int(percent)))


@dataclass(frozen=True)
class PriceQuote:
    active_coupon: Coupon | None
    original_price: Decimal
    effective_price: Decimal
    discount_percent: int

    @property
    def coupon_code(self) -> str | None:
        """Code to hand to the platform, if the active coupon has one."""
        if self.active_coupon is None or not self.active_coupon.code:
            return None
        return self.active_coupon.code.strip() or None


def quote_price(course: Course, coupons: Iterable[Coupon], now: datetime) -> PriceQuote:
    """Resolve the active coupon and derive the prices shown to visitors."""
    active = resolve_active_coupon(course, coupons, now)
    price = effective_price(course, active)
    original = _to_decimal(course.original_price)
    return PriceQuote(
        active_coupon=active,
        original_price=original,
        effective_price=price,
        discount_percent=discount_percent(original, price) if active is not None else 0,
    )
