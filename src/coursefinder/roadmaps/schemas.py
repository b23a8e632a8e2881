"""Pydantic schemas for learning roadmaps."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from coursefinder.catalog.schemas import CategorySummary, CourseLevel, CourseSummary, PaginationInfo

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 20


class RoadmapSearchParams(BaseModel):
    query: str | None = Field(default=None, max_length=100)
    level: CourseLevel | None = None
    category: str | None = Field(default=None, max_length=100)  # slug
    is_featured: bool | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("query", "category", mode="after")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class RoadmapSummary(BaseModel):
    id: str
    title: str
    slug: str
    subtitle: str | None
    description: str | None
    icon_name: str | None
    estimated_hours: int | None
    level: str
    skill_tags: list[str]
    has_job_guarantee: bool
    has_certificate: bool
    has_free_resources: bool
    is_short_path: bool
    is_featured: bool
    category: CategorySummary | None
    course_count: int


class RoadmapStepResponse(BaseModel):
    id: str
    title: str | None
    description: str | None
    order_index: int
    course: CourseSummary


class RoadmapDetail(RoadmapSummary):
    steps: list[RoadmapStepResponse]
    total_original_price: float
    total_discounted_price: float
    total_savings: float


class RoadmapSearchResponse(BaseModel):
    data: list[RoadmapSummary]
    pagination: PaginationInfo
