"""Unit tests for coupon eligibility, selection and discount math."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from coursefinder.coupons.resolver import (
    discount_percent,
    effective_price,
    is_eligible,
    quote_price,
    resolve_active_coupon,
)
from coursefinder.db.models import Coupon, Course

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _course(original_price: str = "100.00", course_id: str = "course-1") -> Course:
    return Course(id=course_id, title="Course", original_price=Decimal(original_price))


def _coupon(
    final_price: str,
    *,
    coupon_id: str = "coupon-1",
    course_id: str = "course-1",
    code: str | None = None,
    is_active: bool = True,
    expires_at: datetime | None = None,
    created_at: datetime = NOW - timedelta(days=1),
) -> Coupon:
    return Coupon(
        id=coupon_id,
        course_id=course_id,
        code=code,
        final_price=Decimal(final_price),
        discount_value=Decimal("0"),
        is_active=is_active,
        expires_at=expires_at,
        created_at=created_at,
    )


class TestEligibility:
    def test_active_without_expiry(self):
        assert is_eligible(_coupon("10"), NOW) is True

    def test_inactive_never_eligible(self):
        assert is_eligible(_coupon("10", is_active=False), NOW) is False

    def test_future_expiry(self):
        assert is_eligible(_coupon("10", expires_at=NOW + timedelta(seconds=1)), NOW) is True

    def test_expiry_is_exclusive(self):
        """A coupon expiring exactly now is already gone."""
        assert is_eligible(_coupon("10", expires_at=NOW), NOW) is False

    def test_past_expiry(self):
        assert is_eligible(_coupon("10", expires_at=NOW - timedelta(days=1)), NOW) is False

    def test_naive_expiry_treated_as_utc(self):
        naive = (NOW + timedelta(hours=1)).replace(tzinfo=None)
        assert is_eligible(_coupon("10", expires_at=naive), NOW) is True


class TestResolveActiveCoupon:
    def test_no_coupons(self):
        assert resolve_active_coupon(_course(), [], NOW) is None

    def test_expired_never_selected(self):
        expired = _coupon("5", expires_at=NOW - timedelta(minutes=1))
        assert resolve_active_coupon(_course(), [expired], NOW) is None

    def test_lowest_final_price_wins(self):
        cheap = _coupon("9.99", coupon_id="cheap", created_at=NOW - timedelta(days=5))
        pricey = _coupon("19.99", coupon_id="pricey", created_at=NOW - timedelta(hours=1))
        assert resolve_active_coupon(_course(), [pricey, cheap], NOW) is cheap

    def test_price_tie_goes_to_newest(self):
        old = _coupon("9.99", coupon_id="old", created_at=NOW - timedelta(days=3))
        new = _coupon("9.99", coupon_id="new", created_at=NOW - timedelta(days=1))
        assert resolve_active_coupon(_course(), [old, new], NOW) is new

    def test_full_tie_is_deterministic(self):
        a = _coupon("9.99", coupon_id="a")
        b = _coupon("9.99", coupon_id="b")
        assert resolve_active_coupon(_course(), [b, a], NOW) is a
        assert resolve_active_coupon(_course(), [a, b], NOW) is a

    def test_cheaper_expired_loses_to_eligible(self):
        expired = _coupon("1", coupon_id="expired", expires_at=NOW - timedelta(seconds=1))
        live = _coupon("50", coupon_id="live")
        assert resolve_active_coupon(_course(), [expired, live], NOW) is live

    def test_other_course_coupon_ignored(self):
        foreign = _coupon("1", course_id="course-2")
        assert resolve_active_coupon(_course(), [foreign], NOW) is None


class TestDiscountMath:
    def test_effective_price_without_coupon(self):
        assert effective_price(_course("49.99"), None) == Decimal("49.99")

    def test_effective_price_with_coupon(self):
        assert effective_price(_course("49.99"), _coupon("12.99")) == Decimal("12.99")

    @pytest.mark.parametrize(
        ("original", "price", "expected"),
        [
            ("100", "70", 30),
            ("100", "100", 0),
            ("100", "0", 100),
            ("84.99", "12.99", 85),  # 84.72 rounds up
            ("3", "2.5", 17),  # 16.67
            ("200", "199", 1),  # 0.5 rounds half up
        ],
    )
    def test_discount_percent(self, original, price, expected):
        assert discount_percent(Decimal(original), Decimal(price)) == expected

    def test_coupon_above_original_clamps_to_zero(self):
        assert discount_percent(Decimal("10"), Decimal("15")) == 0

    def test_negative_final_price_clamps_to_hundred(self):
        assert discount_percent(Decimal("10"), Decimal("-5")) == 100

    @pytest.mark.parametrize("original", ["0", "-1"])
    def test_non_positive_original_is_zero(self, original):
        assert discount_percent(Decimal(original), Decimal("0")) == 0


class TestQuotePrice:
    def test_save30(self):
        course = _course("100.00")
        quote = quote_price(course, [_coupon("70.00", code="SAVE30")], NOW)
        assert quote.effective_price == Decimal("70.00")
        assert quote.discount_percent == 30
        assert quote.coupon_code == "SAVE30"

    def test_no_active_coupon(self):
        course = _course("100.00")
        quote = quote_price(course, [_coupon("70.00", is_active=False)], NOW)
        assert quote.active_coupon is None
        assert quote.effective_price == Decimal("100.00")
        assert quote.discount_percent == 0
        assert quote.coupon_code is None

    def test_codeless_coupon_still_discounts(self):
        quote = quote_price(_course("40"), [_coupon("10")], NOW)
        assert quote.discount_percent == 75
        assert quote.coupon_code is None

    def test_blank_code_is_no_code(self):
        quote = quote_price(_course("40"), [_coupon("10", code="   ")], NOW)
        assert quote.coupon_code is None
