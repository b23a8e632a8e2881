"""Public roadmap endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from coursefinder.database import get_session
from coursefinder.dependencies import get_app_settings
from coursefinder.roadmaps import service
from coursefinder.roadmaps.schemas import RoadmapDetail, RoadmapSearchParams, RoadmapSearchResponse

router = APIRouter(prefix="/api/v1/roadmaps", tags=["Roadmaps"])


def _cacheable(request: Request, response: Response) -> None:
    response.headers["Cache-Control"] = get_app_settings(request).search_cache_control


@router.get("", response_model=RoadmapSearchResponse)
async def list_roadmaps(
    params: Annotated[RoadmapSearchParams, Query()],
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> RoadmapSearchResponse:
    """Active roadmaps, filterable by text, level, category and featured flag."""
    result = await service.search_roadmaps(db, params)
    _cacheable(request, response)
    return result


@router.get("/featured", response_model=RoadmapSearchResponse)
async def featured(
    request: Request,
    response: Response,
    limit: int = Query(4, ge=1, le=20),
    db: AsyncSession = Depends(get_session),
) -> RoadmapSearchResponse:
    result = await service.get_featured_roadmaps(db, limit=limit)
    _cacheable(request, response)
    return result


@router.get("/{slug}", response_model=RoadmapDetail)
async def roadmap_detail(
    slug: str,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> RoadmapDetail:
    """Roadmap with its steps in order and the summed course prices."""
    roadmap = await service.get_roadmap_by_slug(db, slug)
    if roadmap is None:
        raise HTTPException(status_code=404, detail="Roadmap not found")
    _cacheable(request, response)
    return roadmap
