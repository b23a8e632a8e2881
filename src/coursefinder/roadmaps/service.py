"""Roadmap service: listing and priced detail.

A roadmap only shows steps whose course is still listed. Each step's course
is priced with the same resolver as the catalog, so the totals on a roadmap
always add up to the prices on the individual course pages.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from coursefinder.catalog.schemas import CategorySummary, PaginationInfo
from coursefinder.catalog.service import to_summary
from coursefinder.coupons.resolver import quote_price
from coursefinder.db.models import Category, Course, Roadmap, RoadmapStep
from coursefinder.roadmaps.schemas import (
    RoadmapDetail,
    RoadmapSearchParams,
    RoadmapSearchResponse,
    RoadmapStepResponse,
    RoadmapSummary,
)

_CENT = Decimal("0.01")


def _course_count_expression() -> ColumnElement[int]:
    """Number of steps on the roadmap whose course is active."""
    return (
        select(func.count(RoadmapStep.id))
        .join(Course, Course.id == RoadmapStep.course_id)
        .where(RoadmapStep.roadmap_id == Roadmap.id, Course.is_active.is_(True))
        .correlate(Roadmap)
        .scalar_subquery()
    )


def _filters(params: RoadmapSearchParams) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Roadmap.is_active.is_(True)]
    if params.query:
        conditions.append(
            or_(
                Roadmap.title.icontains(params.query, autoescape=True),
                Roadmap.description.icontains(params.query, autoescape=True),
            )
        )
    if params.level:
        conditions.append(Roadmap.level == params.level)
    if params.category:
        conditions.append(Roadmap.category.has(Category.slug == params.category))
    if params.is_featured is not None:
        conditions.append(Roadmap.is_featured.is_(params.is_featured))
    return conditions


def _summary_fields(roadmap: Roadmap, course_count: int) -> dict:
    category = roadmap.category
    return {
        "id": roadmap.id,
        "title": roadmap.title,
        "slug": roadmap.slug,
        "subtitle": roadmap.subtitle,
        "description": roadmap.description,
        "icon_name": roadmap.icon_name,
        "estimated_hours": roadmap.estimated_hours,
        "level": roadmap.level,
        "skill_tags": list(roadmap.skill_tags or []),
        "has_job_guarantee": roadmap.has_job_guarantee,
        "has_certificate": roadmap.has_certificate,
        "has_free_resources": roadmap.has_free_resources,
        "is_short_path": roadmap.is_short_path,
        "is_featured": roadmap.is_featured,
        "category": CategorySummary(id=category.id, name=category.name, slug=category.slug)
        if category is not None else None,
        "course_count": course_count,
    }


async def search_roadmaps(db: AsyncSession, params: RoadmapSearchParams) -> RoadmapSearchResponse:
    """Active roadmaps in editorial order (``sort_order``, then newest)."""
    conditions = _filters(params)
    total = (await db.execute(select(func.count()).select_from(Roadmap).where(*conditions))).scalar_one()

    stmt = (
        select(Roadmap, _course_count_expression().label("course_count"))
        .where(*conditions)
        .options(joinedload(Roadmap.category))
        .order_by(Roadmap.sort_order.asc(), Roadmap.created_at.desc(), Roadmap.id.asc())
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
    )
    rows = (await db.execute(stmt)).all()

    total_pages = math.ceil(total / params.limit) if total else 0
    return RoadmapSearchResponse(
        data=[RoadmapSummary(**_summary_fields(roadmap, count)) for roadmap, count in rows],
        pagination=PaginationInfo(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        ),
    )


async def get_featured_roadmaps(db: AsyncSession, limit: int = 4) -> RoadmapSearchResponse:
    params = RoadmapSearchParams(is_featured=True, limit=limit)
    return await search_roadmaps(db, params)


async def get_roadmap_by_slug(
    db: AsyncSession,
    slug: str,
    now: datetime | None = None,
) -> RoadmapDetail | None:
    """Active roadmap with its ordered, priced steps, or None.

    Totals are summed in Decimal from every step's quote at ``now``;
    ``total_savings`` is the original total minus the discounted total.
    """
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(Roadmap)
        .where(Roadmap.slug == slug, Roadmap.is_active.is_(True))
        .options(
            joinedload(Roadmap.category),
            selectinload(Roadmap.steps)
            .selectinload(RoadmapStep.course)
            .options(
                joinedload(Course.platform),
                joinedload(Course.category),
                selectinload(Course.coupons),
            ),
        )
    )
    roadmap = result.unique().scalar_one_or_none()
    if roadmap is None:
        return None

    steps: list[RoadmapStepResponse] = []
    total_original = Decimal("0")
    total_discounted = Decimal("0")
    for step in roadmap.steps:
        course = step.course
        if not course.is_active:
            continue
        quote = quote_price(course, course.coupons, now)
        total_original += quote.original_price
        total_discounted += quote.effective_price
        steps.append(
            RoadmapStepResponse(
                id=step.id,
                title=step.title,
                description=step.description,
                order_index=step.order_index,
                course=to_summary(course, now),
            )
        )

    total_original = total_original.quantize(_CENT)
    total_discounted = total_discounted.quantize(_CENT)
    return RoadmapDetail(
        **_summary_fields(roadmap, len(steps)),
        steps=steps,
        total_original_price=float(total_original),
        total_discounted_price=float(total_discounted),
        total_savings=float(total_original - total_discounted),
    )
