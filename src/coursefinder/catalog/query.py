"""Compile catalog search parameters into SQL.

One ``CourseSearchParams`` becomes a filtered, ordered and paginated
``SELECT`` plus a matching ``COUNT``. Price and discount filters/sorts go
through the coupon SQL mirror so they agree with the resolved prices in the
response. Every ordering ends with ``courses.id ASC`` so that offset pages
never overlap or skip rows.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, Select, func, not_, or_, select
from sqlalchemy.orm import joinedload, selectinload

from coursefinder.catalog.schemas import CourseSearchParams
from coursefinder.coupons.sql import (
    discount_ratio_expression,
    effective_price_expression,
    has_active_coupon,
)
from coursefinder.db.models import Category, Course, Platform


def _filters(params: CourseSearchParams, now: datetime) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Course.is_active.is_(True)]

    if params.query:
        conditions.append(
            or_(
                Course.title.icontains(params.query, autoescape=True),
                Course.instructor_name.icontains(params.query, autoescape=True),
                Course.description.icontains(params.query, autoescape=True),
            )
        )

    # Unknown slugs simply match nothing
    if params.platform:
        conditions.append(Course.platform.has(Platform.slug == params.platform))
    if params.category:
        conditions.append(Course.category.has(Category.slug == params.category))

    if params.level:
        conditions.append(Course.level == params.level)
    if params.min_rating is not None:
        conditions.append(Course.rating >= params.min_rating)
    if params.is_featured is not None:
        conditions.append(Course.is_featured.is_(params.is_featured))

    if params.has_discount is True:
        conditions.append(has_active_coupon(now))
    elif params.has_discount is False:
        conditions.append(not_(has_active_coupon(now)))

    if params.max_price is not None:
        conditions.append(effective_price_expression(now) <= params.max_price)

    return conditions


def _ordering(params: CourseSearchParams, now: datetime) -> list[ColumnElement]:
    descending = params.sort_order == "desc"

    if params.sort_by == "price":
        key = effective_price_expression(now)
    elif params.sort_by == "discount":
        key = discount_ratio_expression(now)
    elif params.sort_by == "rating":
        key = Course.rating
    elif params.sort_by == "popularity":
        key = Course.student_count
    else:
        key = Course.created_at

    primary = key.desc() if descending else key.asc()
    if params.sort_by == "rating":
        primary = primary.nulls_last()

    return [primary, Course.id.asc()]


def build_search_query(params: CourseSearchParams, now: datetime) -> Select:  # type: ignore[type-arg]
    """Page of matching courses with platform, category and coupons loaded."""
    return (
        select(Course)
        .where(*_filters(params, now))
        .order_by(*_ordering(params, now))
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
        .options(
            joinedload(Course.platform),
            joinedload(Course.category),
            selectinload(Course.coupons),
        )
    )


def build_count_query(params: CourseSearchParams, now: datetime) -> Select:  # type: ignore[type-arg]
    """Total number of courses matching the same filters."""
    return select(func.count()).select_from(Course).where(*_filters(params, now))
