"""User directory tests — listing and the invite-member search."""

import pytest


@pytest.mark.asyncio
async def test_list_users(client, user, other_user):
    r = await client.get("/api/v1/users")
    assert r.status_code == 200
    assert [u["username"] for u in r.json()] == ["alice", "bob"]


@pytest.mark.asyncio
async def test_search_users(client, user, other_user):
    r = await client.get("/api/v1/users/search", params={"q": "BOB"})
    assert [u["username"] for u in r.json()] == ["bob"]

    r = await client.get("/api/v1/users/search", params={"q": "example.com"})
    assert len(r.json()) == 2

    r = await client.get("/api/v1/users/search", params={"q": "zed"})
    assert r.json() == []


@pytest.mark.asyncio
async def test_search_requires_query(client):
    r = await client.get("/api/v1/users/search", params={"q": "  "})
    assert r.status_code == 400
