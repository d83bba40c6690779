"""
Unit tests for app.main – health check, fallback routes, middleware, error handlers.
"""
import json

import pytest
import pytest_asyncio
from fastapi import HTTPException
from httpx import AsyncClient, ASGITransport

from app.main import (
    app,
    rate_limiter,
    http_exception_handler,
    unhandled_exception_handler,
)


@pytest_asyncio.fixture
async def test_client():
    """Simple test client without a database (for endpoints that don't need one)."""
    rate_limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    rate_limiter.reset()


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_health_returns_200(self, test_client):
        resp = await test_client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Server is running"}


class TestUnknownRoute:
    @pytest.mark.asyncio
    async def test_unmatched_route_returns_404_message(self, test_client):
        resp = await test_client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Route not found"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", "/api/borrow"),
            ("POST", "/api/health"),
            ("PATCH", "/api/books"),
            ("POST", "/api/borrow/summary"),
        ],
    )
    async def test_unsupported_method_on_known_path_returns_404(self, test_client, method, path):
        resp = await test_client.request(method, path)
        assert resp.status_code == 404
        assert resp.json() == {"message": "Route not found"}
        assert "allow" not in resp.headers


class TestRequestMiddleware:
    @pytest.mark.asyncio
    async def test_response_has_request_id_header(self, test_client):
        resp = await test_client.get("/api/health")
        assert "x-request-id" in resp.headers

    @pytest.mark.asyncio
    async def test_request_id_is_string(self, test_client):
        resp = await test_client.get("/api/health")
        req_id = resp.headers.get("x-request-id")
        assert isinstance(req_id, str)
        assert len(req_id) > 0


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_headers_report_remaining(self, test_client):
        resp = await test_client.get("/api/health")
        assert resp.headers["x-ratelimit-limit"] == str(rate_limiter.max_requests)
        assert int(resp.headers["x-ratelimit-remaining"]) == rate_limiter.max_requests - 1

    @pytest.mark.asyncio
    async def test_exceeding_limit_returns_429(self, test_client):
        for _ in range(rate_limiter.max_requests):
            resp = await test_client.get("/api/health")
            assert resp.status_code == 200

        resp = await test_client.get("/api/health")
        assert resp.status_code == 429
        assert resp.json() == {"message": "Too many requests, please try again later."}
        assert "retry-after" in resp.headers

    @pytest.mark.asyncio
    async def test_disabled_limiter_lets_everything_through(self, test_client, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
        for _ in range(rate_limiter.max_requests + 5):
            resp = await test_client.get("/api/health")
        assert resp.status_code == 200


class TestErrorHandlers:
    @pytest.mark.asyncio
    async def test_http_exception_with_text_detail(self):
        resp = await http_exception_handler(None, HTTPException(status_code=404, detail="Book not found"))
        assert resp.status_code == 404
        assert json.loads(resp.body) == {"message": "Book not found"}

    @pytest.mark.asyncio
    async def test_method_not_allowed_rendered_as_missing_route(self):
        exc = HTTPException(status_code=405, detail="Method Not Allowed", headers={"Allow": "POST"})
        resp = await http_exception_handler(None, exc)
        assert resp.status_code == 404
        assert json.loads(resp.body) == {"message": "Route not found"}

    @pytest.mark.asyncio
    async def test_http_exception_with_dict_detail_passes_through(self):
        detail = {"message": "Error creating book", "error": "disk full"}
        resp = await http_exception_handler(None, HTTPException(status_code=500, detail=detail))
        assert resp.status_code == 500
        assert json.loads(resp.body) == detail

    @pytest.mark.asyncio
    async def test_unhandled_exception_becomes_500(self):
        class FakeRequest:
            method = "GET"
            url = type("U", (), {"path": "/api/books"})()

        resp = await unhandled_exception_handler(FakeRequest(), RuntimeError("boom"))
        assert resp.status_code == 500
        assert json.loads(resp.body) == {"message": "Something went wrong", "error": "boom"}


class TestOpenAPISpec:
    @pytest.mark.asyncio
    async def test_docs_endpoint_accessible(self, test_client):
        resp = await test_client.get("/docs")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_redoc_endpoint_accessible(self, test_client):
        resp = await test_client.get("/redoc")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_openapi_lists_catalog_routes(self, test_client):
        resp = await test_client.get("/openapi.json")
        paths = resp.json()["paths"]
        assert "/api/books" in paths
        assert "/api/books/{book_id}" in paths
        assert "/api/borrow" in paths
        assert "/api/borrow/summary" in paths
        assert "/api/borrow/{borrow_id}" in paths
