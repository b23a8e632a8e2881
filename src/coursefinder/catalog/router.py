"""Public catalog endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from coursefinder.catalog import service
from coursefinder.catalog.schemas import CourseDetail, CourseSearchParams, CourseSearchResponse
from coursefinder.database import get_session
from coursefinder.dependencies import get_app_settings

router = APIRouter(prefix="/api/v1/courses", tags=["Catalog"])


def _cacheable(request: Request, response: Response) -> None:
    response.headers["Cache-Control"] = get_app_settings(request).search_cache_control


@router.get("", response_model=CourseSearchResponse)
async def search(
    params: Annotated[CourseSearchParams, Query()],
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> CourseSearchResponse:
    """Search active courses with filters, sorting and offset pagination."""
    result = await service.search_courses(db, params)
    _cacheable(request, response)
    return result


@router.get("/featured", response_model=CourseSearchResponse)
async def featured(
    request: Request,
    response: Response,
    limit: int = Query(8, ge=1, le=50),
    db: AsyncSession = Depends(get_session),
) -> CourseSearchResponse:
    """Featured courses for the landing page."""
    result = await service.get_featured_courses(db, limit=limit)
    _cacheable(request, response)
    return result


@router.get("/top-discounts", response_model=CourseSearchResponse)
async def top_discounts(
    request: Request,
    response: Response,
    limit: int = Query(8, ge=1, le=50),
    db: AsyncSession = Depends(get_session),
) -> CourseSearchResponse:
    """Courses with the deepest current discounts."""
    result = await service.get_top_discount_courses(db, limit=limit)
    _cacheable(request, response)
    return result


@router.get("/{slug}", response_model=CourseDetail)
async def course_detail(
    slug: str,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> CourseDetail:
    """Single active course with its current price."""
    course = await service.get_course_by_slug(db, slug)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    _cacheable(request, response)
    return course
