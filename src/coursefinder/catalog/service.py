"""Catalog service: search, detail and course lookup for redirects."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from coursefinder.catalog.query import build_count_query, build_search_query
from coursefinder.catalog.schemas import (
    ActiveCouponResponse,
    CategorySummary,
    CourseDetail,
    CourseSearchParams,
    CourseSearchResponse,
    CourseSummary,
    LearningOutcomeResponse,
    PaginationInfo,
    PlatformSummary,
    SyllabusItemResponse,
    SyllabusSectionResponse,
)
from coursefinder.coupons.resolver import PriceQuote, quote_price
from coursefinder.db.models import Course, CourseSyllabusSection


def _summary_fields(course: Course, quote: PriceQuote) -> dict:
    coupon = quote.active_coupon
    return {
        "id": course.id,
        "title": course.title,
        "slug": course.slug,
        "short_description": course.short_description,
        "instructor_name": course.instructor_name,
        "thumbnail_url": course.thumbnail_url,
        "original_price": float(quote.original_price),
        "effective_price": float(quote.effective_price),
        "discount_percent": quote.discount_percent,
        "currency": course.currency,
        "level": course.level,
        "rating": float(course.rating) if course.rating is not None else None,
        "review_count": course.review_count,
        "student_count": course.student_count,
        "duration": course.duration,
        "lecture_count": course.lecture_count,
        "direct_url": course.direct_url,
        "affiliate_url": course.affiliate_url,
        "is_featured": course.is_featured,
        "last_verified_at": course.last_verified_at,
        "created_at": course.created_at,
        "platform": PlatformSummary(
            id=course.platform.id,
            name=course.platform.name,
            slug=course.platform.slug,
            logo_url=course.platform.logo_url,
        ),
        "category": CategorySummary(
            id=course.category.id,
            name=course.category.name,
            slug=course.category.slug,
        ),
        "active_coupon": ActiveCouponResponse(
            id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=float(coupon.discount_value),
            final_price=float(coupon.final_price),
            expires_at=coupon.expires_at,
        ) if coupon is not None else None,
    }


def to_summary(course: Course, now: datetime) -> CourseSummary:
    """Serialize a course with its resolved price at ``now``."""
    return CourseSummary(**_summary_fields(course, quote_price(course, course.coupons, now)))


async def search_courses(
    db: AsyncSession,
    params: CourseSearchParams,
    now: datetime | None = None,
) -> CourseSearchResponse:
    """Run a catalog search and return one page plus pagination info.

    ``now`` is fixed once per call so that the SQL ordering and the prices
    in the response are resolved against the same instant.
    """
    now = now or datetime.now(timezone.utc)

    total = (await db.execute(build_count_query(params, now))).scalar_one()
    result = await db.execute(build_search_query(params, now))
    courses = list(result.unique().scalars().all())

    total_pages = math.ceil(total / params.limit) if total else 0
    return CourseSearchResponse(
        data=[to_summary(course, now) for course in courses],
        pagination=PaginationInfo(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        ),
    )


async def get_course_by_slug(
    db: AsyncSession,
    slug: str,
    now: datetime | None = None,
) -> CourseDetail | None:
    """Active course detail with resolved pricing, or None.

    Learning outcomes, syllabus sections and each section's items come back
    in their ``sort_order``.
    """
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(Course)
        .where(Course.slug == slug, Course.is_active.is_(True))
        .options(
            joinedload(Course.platform),
            joinedload(Course.category),
            selectinload(Course.coupons),
            selectinload(Course.learning_outcomes),
            selectinload(Course.syllabus_sections).selectinload(CourseSyllabusSection.items),
        )
    )
    course = result.unique().scalar_one_or_none()
    if course is None:
        return None
    fields = _summary_fields(course, quote_price(course, course.coupons, now))
    return CourseDetail(
        **fields,
        description=course.description,
        instructor_bio=course.instructor_bio,
        learning_outcomes=[
            LearningOutcomeResponse(id=o.id, text=o.text, sort_order=o.sort_order)
            for o in course.learning_outcomes
        ],
        syllabus_sections=[
            SyllabusSectionResponse(
                id=section.id,
                title=section.title,
                duration=section.duration,
                sort_order=section.sort_order,
                items=[
                    SyllabusItemResponse(id=item.id, title=item.title, sort_order=item.sort_order)
                    for item in section.items
                ],
            )
            for section in course.syllabus_sections
        ],
    )


async def get_course_for_redirect(db: AsyncSession, course_id: str) -> Course | None:
    """Course by id with its coupons, only if it is still listed."""
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id, Course.is_active.is_(True))
        .options(selectinload(Course.coupons))
    )
    return result.scalar_one_or_none()


async def get_featured_courses(db: AsyncSession, limit: int = 8) -> CourseSearchResponse:
    """Featured courses, best rated first."""
    params = CourseSearchParams(is_featured=True, sort_by="rating", sort_order="desc", limit=limit)
    return await search_courses(db, params)


async def get_top_discount_courses(db: AsyncSession, limit: int = 8) -> CourseSearchResponse:
    """Discounted courses, deepest discount first."""
    params = CourseSearchParams(has_discount=True, sort_by="discount", sort_order="desc", limit=limit)
    return await search_courses(db, params)
