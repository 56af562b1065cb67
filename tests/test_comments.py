"""
Comment endpoint tests: adding comments and reading them back through
the post detail.

Comments are append-only (no edit/delete endpoints), so the surface is
creation, validation and read-through.
"""
import pytest
from httpx import AsyncClient


async def _create_post(client: AsyncClient, headers: dict) -> int:
    resp = await client.post(
        "/api/v1/posts", json={"content": "Rate my resume", "category": "DISCUSSION"}, headers=headers
    )
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


@pytest.mark.asyncio
async def test_add_comment(async_client: AsyncClient, auth_headers):
    post_id = await _create_post(async_client, auth_headers("user_a"))

    resp = await async_client.post(
        f"/api/v1/posts/{post_id}/comments",
        json={"body": "Looks great!"},
        headers=auth_headers("user_r", "Reader"),
    )
    assert resp.status_code == 201
    comment = resp.json()["data"]
    assert comment["body"] == "Looks great!"
    assert comment["post_id"] == post_id
    assert comment["user_id"] == "user_r"
    assert comment["user"]["name"] == "Reader"
    assert "created_at" in comment


@pytest.mark.asyncio
async def test_post_detail_includes_comments(async_client: AsyncClient, auth_headers):
    post_id = await _create_post(async_client, auth_headers("user_a"))
    for i in range(3):
        resp = await async_client.post(
            f"/api/v1/posts/{post_id}/comments",
            json={"body": f"Comment {i}"},
            headers=auth_headers(f"user_{i}"),
        )
        assert resp.status_code == 201

    detail = (await async_client.get(f"/api/v1/posts/{post_id}")).json()["data"]
    assert [c["body"] for c in detail["comments"]] == ["Comment 0", "Comment 1", "Comment 2"]
    assert detail["comment_count"] == 3
    for comment in detail["comments"]:
        assert comment["post_id"] == post_id
        assert comment["user"]["id"] == comment["user_id"]


@pytest.mark.asyncio
async def test_comment_on_missing_post(async_client: AsyncClient, auth_headers):
    resp = await async_client.post(
        "/api/v1/posts/99999/comments", json={"body": "Ghost comment"}, headers=auth_headers("user_g")
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "unexisting"

    metrics = (await async_client.get("/api/v1/metrics")).json()
    assert metrics["total_comments"] == 0


@pytest.mark.asyncio
async def test_comment_missing_body_field(async_client: AsyncClient, auth_headers):
    post_id = await _create_post(async_client, auth_headers("user_a"))
    resp = await async_client.post(
        f"/api/v1/posts/{post_id}/comments", json={}, headers=auth_headers("user_a")
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_comment_whitespace_body(async_client: AsyncClient, auth_headers):
    post_id = await _create_post(async_client, auth_headers("user_a"))
    resp = await async_client.post(
        f"/api/v1/posts/{post_id}/comments", json={"body": "   "}, headers=auth_headers("user_a")
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "invalid"


@pytest.mark.asyncio
async def test_comment_without_token(async_client: AsyncClient, auth_headers):
    post_id = await _create_post(async_client, auth_headers("user_a"))
    resp = await async_client.post(f"/api/v1/posts/{post_id}/comments", json={"body": "hi"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_deleting_post_removes_its_comments(async_client: AsyncClient, auth_headers):
    as_a = auth_headers("user_a")
    post_id = await _create_post(async_client, as_a)
    await async_client.post(f"/api/v1/posts/{post_id}/comments", json={"body": "bye"}, headers=as_a)

    assert (await async_client.delete(f"/api/v1/posts/{post_id}", headers=as_a)).status_code == 200
    metrics = (await async_client.get("/api/v1/metrics")).json()
    assert metrics["total_comments"] == 0
    assert metrics["total_posts"] == 0
