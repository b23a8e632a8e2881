"""ORM models for the course catalog.

Platforms, categories, courses, coupons, course content and roadmaps are
written by the admin tooling; this service only reads them. Click events are append-only.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coursefinder.db.base import Base

# Course levels
LEVEL_BEGINNER = "BEGINNER"
LEVEL_INTERMEDIATE = "INTERMEDIATE"
LEVEL_ADVANCED = "ADVANCED"
LEVEL_ALL = "ALL_LEVELS"

# Coupon discount types
DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FIXED = "FIXED"

# Click sources
CLICK_SOURCE_WEB = "WEB"
CLICK_SOURCE_TELEGRAM = "TELEGRAM"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class Platform(Base):
    """Course marketplace (Udemy, Coursera, ...)."""

    __tablename__ = "platforms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    website_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )

    courses: Mapped[list[Course]] = relationship("Course", back_populates="platform")


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )

    courses: Mapped[list[Course]] = relationship("Course", back_populates="category")
    roadmaps: Mapped[list[Roadmap]] = relationship("Roadmap", back_populates="category")


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class Course(Base):
    """A third-party course listed in the catalog."""

    __tablename__ = "courses"
    __table_args__ = (
        Index("ix_courses_active_created", "is_active", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_description: Mapped[str | None] = mapped_column(String(320), nullable=True)
    instructor_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    instructor_bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    original_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD", server_default="USD")

    level: Mapped[str] = mapped_column(String(16), nullable=False, default=LEVEL_ALL, server_default=LEVEL_ALL)
    rating: Mapped[Decimal | None] = mapped_column(Numeric(2, 1), nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    student_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    duration: Mapped[str | None] = mapped_column(String(20), nullable=True)
    lecture_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    direct_url: Mapped[str] = mapped_column(Text, nullable=False)
    affiliate_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    last_verified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow,
    )

    platform_id: Mapped[str] = mapped_column(String(36), ForeignKey("platforms.id"), nullable=False)
    category_id: Mapped[str] = mapped_column(String(36), ForeignKey("categories.id"), nullable=False)

    platform: Mapped[Platform] = relationship("Platform", back_populates="courses")
    category: Mapped[Category] = relationship("Category", back_populates="courses")
    coupons: Mapped[list[Coupon]] = relationship(
        "Coupon", back_populates="course", cascade="all, delete-orphan",
    )
    clicks: Mapped[list[ClickEvent]] = relationship("ClickEvent", back_populates="course")
    learning_outcomes: Mapped[list[CourseLearningOutcome]] = relationship(
        "CourseLearningOutcome",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="[CourseLearningOutcome.sort_order, CourseLearningOutcome.id]",
    )
    syllabus_sections: Mapped[list[CourseSyllabusSection]] = relationship(
        "CourseSyllabusSection",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="[CourseSyllabusSection.sort_order, CourseSyllabusSection.id]",
    )


class Coupon(Base):
    """Time-limited discount for a single course.

    ``code`` is None for auto-applied discounts. ``final_price`` is stored
    rather than derived so editors can override the formula.
    """

    __tablename__ = "coupons"
    __table_args__ = (
        Index("ix_coupons_course_active", "course_id", "is_active", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False,
    )
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    discount_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DISCOUNT_PERCENTAGE, server_default=DISCOUNT_PERCENTAGE,
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    final_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    verified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow,
    )

    course: Mapped[Course] = relationship("Course", back_populates="coupons")


class CourseLearningOutcome(Base):
    __tablename__ = "course_learning_outcomes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    course: Mapped[Course] = relationship("Course", back_populates="learning_outcomes")


class CourseSyllabusSection(Base):
    """A chapter of the course curriculum; its items are the lectures."""

    __tablename__ = "course_syllabus_sections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    duration: Mapped[str | None] = mapped_column(String(20), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    course: Mapped[Course] = relationship("Course", back_populates="syllabus_sections")
    items: Mapped[list[SyllabusItem]] = relationship(
        "SyllabusItem",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="[SyllabusItem.sort_order, SyllabusItem.id]",
    )


class SyllabusItem(Base):
    __tablename__ = "course_syllabus_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    section_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("course_syllabus_sections.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    section: Mapped[CourseSyllabusSection] = relationship("CourseSyllabusSection", back_populates="items")


# ---------------------------------------------------------------------------
# Roadmaps
# ---------------------------------------------------------------------------


class Roadmap(Base):
    """Curated learning path: an ordered sequence of catalog courses."""

    __tablename__ = "roadmaps"
    __table_args__ = (
        Index("ix_roadmaps_active_sort", "is_active", "sort_order"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(320), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    estimated_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    level: Mapped[str] = mapped_column(String(16), nullable=False, default=LEVEL_ALL, server_default=LEVEL_ALL)
    skill_tags: Mapped[list[str]] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)

    has_job_guarantee: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    has_certificate: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    has_free_resources: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_short_path: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    category_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("categories.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow,
    )

    category: Mapped[Category | None] = relationship("Category", back_populates="roadmaps")
    steps: Mapped[list[RoadmapStep]] = relationship(
        "RoadmapStep",
        back_populates="roadmap",
        cascade="all, delete-orphan",
        order_by="[RoadmapStep.order_index, RoadmapStep.id]",
    )


class RoadmapStep(Base):
    __tablename__ = "roadmap_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    roadmap_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("roadmaps.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    roadmap: Mapped[Roadmap] = relationship("Roadmap", back_populates="steps")
    course: Mapped[Course] = relationship("Course")


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class ClickEvent(Base):
    """One outbound redirect. Never updated or deleted by the API."""

    __tablename__ = "click_events"
    __table_args__ = (
        Index("ix_click_events_course_created", "course_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False,
    )
    source: Mapped[str] = mapped_column(String(16), nullable=False, default=CLICK_SOURCE_WEB)
    ip_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    referer: Mapped[str | None] = mapped_column(String(512), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )

    course: Mapped[Course] = relationship("Course", back_populates="clicks")
