"""Catalog endpoint tests over HTTP."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


class TestSearchEndpoint:
    async def test_empty_catalog(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/courses")
        assert response.status_code == 200
        assert response.json() == {
            "data": [],
            "pagination": {
                "page": 1,
                "limit": 12,
                "total": 0,
                "total_pages": 0,
                "has_next": False,
                "has_prev": False,
            },
        }

    async def test_search_returns_resolved_prices(self, client: AsyncClient, seed) -> None:
        course = await seed.course("Python Bootcamp", original_price="84.99")
        await seed.coupon(course, final_price="12.99", code="PYDEAL")

        response = await client.get("/api/v1/courses", params={"query": "python", "has_discount": "true"})
        assert response.status_code == 200
        item = response.json()["data"][0]
        assert item["original_price"] == 84.99
        assert item["effective_price"] == 12.99
        assert item["discount_percent"] == 85
        assert item["active_coupon"]["code"] == "PYDEAL"
        assert item["platform"]["slug"] == "udemy"

    async def test_cache_control_header(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/courses")
        assert response.headers["cache-control"] == "public, s-maxage=60, stale-while-revalidate=300"

    async def test_rate_limit_headers_present(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/courses")
        assert response.headers["x-ratelimit-limit"] == "30"
        assert response.headers["x-ratelimit-remaining"] == "29"
        assert int(response.headers["x-ratelimit-reset"]) > 0

    async def test_popular_alias_accepted(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/courses", params={"sort_by": "popular"})
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "params",
        [
            {"page": "0"},
            {"limit": "500"},
            {"min_rating": "6"},
            {"sort_by": "title"},
            {"sort_order": "sideways"},
            {"level": "EXPERT"},
            {"has_discount": "maybe"},
            {"page": "abc"},
        ],
    )
    async def test_invalid_params_are_400(self, client: AsyncClient, params: dict[str, str]) -> None:
        response = await client.get("/api/v1/courses", params=params)
        assert response.status_code == 400
        data = response.json()
        assert data["detail"] == "Invalid parameters"
        assert data["errors"]


class TestCourseDetailEndpoint:
    async def test_detail(self, client: AsyncClient, seed) -> None:
        await seed.course("Django Deep Dive", slug="django-deep-dive", description="ORM, views and more")
        response = await client.get("/api/v1/courses/django-deep-dive")
        assert response.status_code == 200
        data = response.json()
        assert data["slug"] == "django-deep-dive"
        assert data["description"] == "ORM, views and more"
        assert "cache-control" in response.headers

    async def test_unknown_slug_404(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/courses/missing-course")
        assert response.status_code == 404
        assert response.json() == {"detail": "Course not found"}

    async def test_detail_includes_course_content(self, client: AsyncClient, seed) -> None:
        course = await seed.course("Flask", slug="flask", instructor_bio="Core contributor")
        await seed.outcome(course, "Write blueprints")
        await seed.section(course, "Getting started", duration="45m", items=[("Install", 1)])
        data = (await client.get("/api/v1/courses/flask")).json()
        assert data["instructor_bio"] == "Core contributor"
        assert [o["text"] for o in data["learning_outcomes"]] == ["Write blueprints"]
        assert data["syllabus_sections"][0]["items"][0]["title"] == "Install"


class TestListingEndpoints:
    async def test_featured(self, client: AsyncClient, seed) -> None:
        await seed.course("Featured", is_featured=True, rating=4.5)
        await seed.course("Plain")
        response = await client.get("/api/v1/courses/featured")
        assert response.status_code == 200
        assert [c["title"] for c in response.json()["data"]] == ["Featured"]

    async def test_top_discounts(self, client: AsyncClient, seed) -> None:
        course = await seed.course("Deal", original_price="50")
        await seed.coupon(course, final_price="10")
        await seed.course("Plain")
        response = await client.get("/api/v1/courses/top-discounts", params={"limit": 3})
        assert response.status_code == 200
        data = response.json()
        assert [c["title"] for c in data["data"]] == ["Deal"]
        assert data["data"][0]["discount_percent"] == 80
        assert data["pagination"]["limit"] == 3

    async def test_listing_limit_validated(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/courses/featured", params={"limit": 0})
        assert response.status_code == 400
