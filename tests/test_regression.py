"""
Regression tests for issues found during code review.

1. A liker list that already holds duplicates must not keep a like alive
   after the user toggles it off.
2. A repeated delete of the same post must report it as missing.
3. X-Query-Count header must report the actual query count.
4. CORS must not set allow_credentials=true with allow_origins=*.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Category, Post
from app.services import post_service


# ---------------------------------------------------------------------------
# 1. Duplicate liker ids
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_toggle_collapses_stored_duplicates(db_session: AsyncSession, alice, bob):
    post_id = (await post_service.create_post(db_session, alice, "dupes", Category.GENERAL)).data["id"]
    post = await db_session.get(Post, post_id)
    post.liked_ids = [bob.user_id, alice.user_id, bob.user_id]
    await db_session.flush()

    await post_service.like_post_toggle(db_session, bob, post_id)

    liked = (await post_service.get_post(db_session, post_id)).data["liked_ids"]
    assert liked == [alice.user_id]


# ---------------------------------------------------------------------------
# 2. Double-submitted delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_second_delete_reports_unexisting(db_session: AsyncSession, alice):
    post_id = (await post_service.create_post(db_session, alice, "once", Category.GENERAL)).data["id"]

    assert (await post_service.delete_post(db_session, alice, post_id)).success
    again = await post_service.delete_post(db_session, alice, post_id)
    assert again.success is False
    assert again.error == "unexisting"


# ---------------------------------------------------------------------------
# 3. X-Query-Count reports actual query count
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_query_count_header_exact_for_post_list(async_client: AsyncClient, auth_headers):
    """
    Listing issues: COUNT + SELECT(joinedload author) + comment counts = 3.
    """
    await async_client.post(
        "/api/v1/posts", json={"content": "qc", "category": "GENERAL"}, headers=auth_headers("user_qc")
    )

    resp = await async_client.get("/api/v1/posts")
    assert resp.status_code == 200
    count = int(resp.headers["x-query-count"])
    assert count == 3, f"Expected exactly 3 queries for post list, got {count}"


@pytest.mark.asyncio
async def test_query_count_header_exact_for_post_detail(async_client: AsyncClient, auth_headers):
    """
    Detail issues: SELECT(joinedload author) + selectinload(comments, joinedload user) = 2.
    """
    resp = await async_client.post(
        "/api/v1/posts", json={"content": "qc", "category": "GENERAL"}, headers=auth_headers("user_qc")
    )
    post_id = resp.json()["data"]["id"]

    resp = await async_client.get(f"/api/v1/posts/{post_id}")
    assert resp.status_code == 200
    count = int(resp.headers["x-query-count"])
    assert count == 2, f"Expected exactly 2 queries for post detail, got {count}"


# ---------------------------------------------------------------------------
# 4. CORS headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    resp = await async_client.options(
        "/api/v1/posts",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    cred_header = resp.headers.get("access-control-allow-credentials", "").lower()
    assert cred_header != "true", (
        "CORS must not combine allow_origins=* with allow_credentials=true"
    )
