"""Pydantic schemas for catalog search requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

CourseLevel = Literal["BEGINNER", "INTERMEDIATE", "ADVANCED", "ALL_LEVELS"]
SortKey = Literal["date", "price", "rating", "discount", "popularity"]
SortOrder = Literal["asc", "desc"]

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100


# --- Request ---


class CourseSearchParams(BaseModel):
    """Every filter the search endpoint understands, with its default."""

    query: str | None = Field(default=None, max_length=200)
    platform: str | None = Field(default=None, max_length=100)  # slug
    category: str | None = Field(default=None, max_length=100)  # slug
    level: CourseLevel | None = None
    min_rating: float | None = Field(default=None, ge=0, le=5)
    max_price: float | None = Field(default=None, ge=0)
    has_discount: bool | None = None
    is_featured: bool | None = None
    sort_by: SortKey = "date"
    sort_order: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("sort_by", mode="before")
    @classmethod
    def _popular_alias(cls, value: object) -> object:
        return "popularity" if value == "popular" else value

    @field_validator("query", "platform", "category", mode="after")
    @classmethod
    def _blank_is_unset(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


# --- Response ---


class PlatformSummary(BaseModel):
    id: str
    name: str
    slug: str
    logo_url: str | None


class CategorySummary(BaseModel):
    id: str
    name: str
    slug: str


class ActiveCouponResponse(BaseModel):
    id: str
    code: str | None
    discount_type: str
    discount_value: float
    final_price: float
    expires_at: datetime | None


class CourseSummary(BaseModel):
    id: str
    title: str
    slug: str
    short_description: str | None
    instructor_name: str | None
    thumbnail_url: str | None
    original_price: float
    effective_price: float
    discount_percent: int
    currency: str
    level: str
    rating: float | None
    review_count: int
    student_count: int
    duration: str | None
    lecture_count: int | None
    direct_url: str
    affiliate_url: str | None
    is_featured: bool
    last_verified_at: datetime
    created_at: datetime
    platform: PlatformSummary
    category: CategorySummary
    active_coupon: ActiveCouponResponse | None = None


class LearningOutcomeResponse(BaseModel):
    id: str
    text: str
    sort_order: int


class SyllabusItemResponse(BaseModel):
    id: str
    title: str
    sort_order: int


class SyllabusSectionResponse(BaseModel):
    id: str
    title: str
    duration: str | None
    sort_order: int
    items: list[SyllabusItemResponse] = []


class CourseDetail(CourseSummary):
    description: str | None
    instructor_bio: str | None = None
    learning_outcomes: list[LearningOutcomeResponse] = []
    syllabus_sections: list[SyllabusSectionResponse] = []


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class CourseSearchResponse(BaseModel):
    data: list[CourseSummary]
    pagination: PaginationInfo
