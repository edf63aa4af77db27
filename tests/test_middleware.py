"""Tests for middleware — security headers and request IDs."""

import pytest


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "X-XSS-Protection" not in r.headers


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/v1/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/v1/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_headers_on_error_responses(client):
    r = await client.get("/api/v1/tasks/not-a-uuid")
    assert r.status_code == 422
    assert r.headers["X-Frame-Options"] == "DENY"
