"""Shared test fixtures."""

from __future__ import annotations

import itertools
import os
import time
from collections.abc import AsyncGenerator, Iterable
from datetime import datetime, timezone
from decimal import Decimal

# Must be set before coursefinder.main builds its module-level app
os.environ.setdefault("COURSEFINDER_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from coursefinder.config import Settings
from coursefinder.database import close_db, get_engine, get_session_factory, init_db
from coursefinder.db.base import Base
from coursefinder.db.models import (
    DISCOUNT_PERCENTAGE,
    Category,
    Coupon,
    Course,
    CourseLearningOutcome,
    CourseSyllabusSection,
    Platform,
    Roadmap,
    RoadmapStep,
    SyllabusItem,
)
from coursefinder.main import create_app
from coursefinder.ratelimit.limiter import MemoryRateLimiter
from coursefinder.redirect.clicks import ClickEventData, ClickRecorder, ClickWriter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Settable epoch-seconds clock for the in-memory limiter."""

    def __init__(self, start: float | None = None) -> None:
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingClickWriter(ClickWriter):
    """Keeps click events in memory instead of writing them to the database."""

    def __init__(self) -> None:
        self.events: list[ClickEventData] = []

    async def write(self, event: ClickEventData) -> None:
        self.events.append(event)


class CatalogSeeder:
    """Inserts platforms, categories, courses and coupons for a test."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._platforms: dict[str, Platform] = {}
        self._categories: dict[str, Category] = {}
        self._counter = itertools.count(1)

    async def platform(self, slug: str = "udemy") -> Platform:
        if slug not in self._platforms:
            platform = Platform(name=slug.title(), slug=slug, website_url=f"https://www.{slug}.com")
            self.session.add(platform)
            await self.session.flush()
            self._platforms[slug] = platform
        return self._platforms[slug]

    async def category(self, slug: str = "development") -> Category:
        if slug not in self._categories:
            category = Category(name=slug.title(), slug=slug)
            self.session.add(category)
            await self.session.flush()
            self._categories[slug] = category
        return self._categories[slug]

    async def course(
        self,
        title: str = "Complete Python Bootcamp",
        *,
        original_price: str | int | float = "100.00",
        platform: str = "udemy",
        category: str = "development",
        **fields: object,
    ) -> Course:
        n = next(self._counter)
        fields.setdefault("slug", f"course-{n}")
        fields.setdefault("direct_url", f"https://www.{platform}.com/course/course-{n}/")
        if fields.get("rating") is not None:
            fields["rating"] = Decimal(str(fields["rating"]))
        course = Course(
            title=title,
            original_price=Decimal(str(original_price)),
            platform=await self.platform(platform),
            category=await self.category(category),
            **fields,
        )
        self.session.add(course)
        await self.session.commit()
        return course

    async def coupon(
        self,
        course: Course,
        *,
        final_price: str | int | float,
        code: str | None = None,
        expires_at: datetime | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
    ) -> Coupon:
        final = Decimal(str(final_price))
        coupon = Coupon(
            course_id=course.id,
            code=code,
            discount_type=DISCOUNT_PERCENTAGE,
            discount_value=Decimal(str(course.original_price)) - final,
            final_price=final,
            expires_at=expires_at,
            is_active=is_active,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self.session.add(coupon)
        await self.session.commit()
        return coupon

    async def courses(self, titles: Iterable[str], **fields: object) -> list[Course]:
        return [await self.course(title, **fields) for title in titles]

    async def outcome(self, course: Course, text: str, sort_order: int = 0) -> CourseLearningOutcome:
        outcome = CourseLearningOutcome(course_id=course.id, text=text, sort_order=sort_order)
        self.session.add(outcome)
        await self.session.commit()
        return outcome

    async def section(
        self,
        course: Course,
        title: str,
        *,
        sort_order: int = 0,
        duration: str | None = None,
        items: Iterable[tuple[str, int]] = (),
    ) -> CourseSyllabusSection:
        section = CourseSyllabusSection(course_id=course.id, title=title, duration=duration, sort_order=sort_order)
        self.session.add(section)
        await self.session.flush()
        self.session.add_all(SyllabusItem(section_id=section.id, title=item, sort_order=order) for item, order in items)
        await self.session.commit()
        return section

    async def roadmap(
        self,
        title: str = "Backend Developer",
        *,
        category: str | None = None,
        steps: Iterable[Course] = (),
        **fields: object,
    ) -> Roadmap:
        n = next(self._counter)
        fields.setdefault("slug", f"roadmap-{n}")
        if category is not None:
            fields["category_id"] = (await self.category(category)).id
        roadmap = Roadmap(title=title, **fields)
        self.session.add(roadmap)
        await self.session.flush()
        for i, course in enumerate(steps, start=1):
            await self.step(roadmap, course, order_index=i)
        await self.session.commit()
        return roadmap

    async def step(self, roadmap: Roadmap, course: Course, *, order_index: int) -> RoadmapStep:
        step = RoadmapStep(
            roadmap_id=roadmap.id, course_id=course.id, title=f"Step {order_index}", order_index=order_index,
        )
        self.session.add(step)
        await self.session.commit()
        return step


# --- Database ---


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema for one test."""
    await init_db(TEST_DATABASE_URL)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def seed(db_session: AsyncSession) -> CatalogSeeder:
    return CatalogSeeder(db_session)


# --- Application ---


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url=TEST_DATABASE_URL, log_format="json")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> MemoryRateLimiter:
    return MemoryRateLimiter(max_tracked=1000, clock=clock)


@pytest.fixture
def click_writer() -> RecordingClickWriter:
    return RecordingClickWriter()


@pytest.fixture
def click_recorder(click_writer: RecordingClickWriter) -> ClickRecorder:
    return ClickRecorder(click_writer)


@pytest.fixture
def app(settings: Settings, rate_limiter: MemoryRateLimiter, click_recorder: ClickRecorder) -> FastAPI:
    return create_app(settings, rate_limiter=rate_limiter, click_recorder=click_recorder)


@pytest_asyncio.fixture
async def client(app: FastAPI, database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app; unhandled errors come back as 500s."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
