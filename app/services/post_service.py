"""
Post service: handlers for the Post aggregate.

Design notes
------------
- Every mutation re-reads the post from the database before acting on
  it.  Authorization (author check on delete) and the like toggle are
  decided against that fresh row, never against data sent by the
  client.  ``populate_existing`` forces the re-read even when the
  session already holds the instance.
- The like toggle loads the row ``FOR UPDATE`` so concurrent toggles on
  PostgreSQL serialize on the row lock for the rest of the request
  transaction.  SQLite ignores the clause and serializes writers itself.
- Each successful mutation queues one invalidation of the cached views of
  ``settings.REVALIDATE_PATH``; it runs after the request transaction
  commits.  Failures do not invalidate.
- Handlers flush but do not commit; the transaction boundary is owned
  by the ``get_db`` dependency in the router layer.
"""
import logging
import math

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from app.cache import cache, view_key
from app.config import settings
from app.errors import Forbidden, InvalidInput, NotFound
from app.identity import Identity, require_user_id
from app.models import Category, Comment, Post
from app.schemas import ActionResult, PaginatedResponse
from app.services import user_service
from app.services.actions import action

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "body": comment.body,
        "post_id": comment.post_id,
        "user_id": comment.user_id,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "user": user_service.user_to_dict(comment.user),
    }


def _post_to_dict(post: Post, comment_count: int = 0) -> dict:
    """Serialise a Post ORM instance to a plain dict (list view)."""
    return {
        "id": post.id,
        "body": post.body,
        "category": post.category.value,
        "auth_user_id": post.auth_user_id,
        "liked_ids": list(post.liked_ids or []),
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "author": user_service.user_to_dict(post.author),
        "comment_count": comment_count,
    }


def _post_detail_to_dict(post: Post) -> dict:
    """Serialise a Post ORM instance to a plain dict (detail view)."""
    data = _post_to_dict(post, comment_count=len(post.comments))
    data["comments"] = [comment_to_dict(c) for c in post.comments]
    return data


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------

def _parse_category(category) -> Category:
    if isinstance(category, Category):
        return category
    try:
        return Category(category)
    except ValueError:
        raise InvalidInput(f"Unknown category: {category!r}")


async def _fetch_post(db: AsyncSession, post_id: int, for_update: bool = False) -> Post | None:
    """Authoritative re-read of a single post, bypassing the identity map."""
    q = select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    if for_update:
        q = q.with_for_update()
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def _comment_counts(db: AsyncSession, post_ids: list[int]) -> dict[int, int]:
    if not post_ids:
        return {}
    q = (
        select(Comment.post_id, func.count())
        .where(Comment.post_id.in_(post_ids))
        .group_by(Comment.post_id)
    )
    result = await db.execute(q)
    return {post_id: count for post_id, count in result.all()}


def toggle_member(liked_ids: list[str], user_id: str) -> list[str]:
    """
    Return a new liker list with *user_id* removed if present, else appended.

    Duplicates already in *liked_ids* are collapsed first so the result
    never holds the same id twice.
    """
    liked = list(dict.fromkeys(liked_ids or []))
    if user_id in liked:
        liked.remove(user_id)
    else:
        liked.append(user_id)
    return liked


# ---------------------------------------------------------------------------
# Listing (backs the /learn page)
# ---------------------------------------------------------------------------

async def list_posts(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    category: Category | None = None,
) -> PaginatedResponse:
    """
    Return a page of posts, newest first, using Redis as a cache layer.

    Cache keys live under the revalidated path so that any mutation drops
    every cached page at once.
    """
    cache_key = view_key(
        settings.REVALIDATE_PATH, "list", page, page_size, category.value if category else "all"
    )
    cached = await cache.get(cache_key)
    if cached:
        return PaginatedResponse(**cached)

    filters = [Post.category == category] if category else []

    count_q = select(func.count()).select_from(Post).where(*filters)
    total: int = (await db.execute(count_q)).scalar_one()

    posts_q = (
        select(Post)
        .where(*filters)
        .options(joinedload(Post.author))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(posts_q)
    posts = result.unique().scalars().all()
    counts = await _comment_counts(db, [p.id for p in posts])

    response = PaginatedResponse(
        items=[_post_to_dict(p, counts.get(p.id, 0)) for p in posts],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

@action("An error occurred while creating the post")
async def create_post(
    db: AsyncSession,
    identity: Identity | None,
    content: str,
    category: Category | str,
) -> ActionResult:
    """Create a post owned by the caller with an empty liker list."""
    require_user_id(identity)
    if not content or not content.strip():
        raise InvalidInput("Post content must not be empty")
    category = _parse_category(category)

    author = await user_service.resolve_profile(db, identity)
    post = Post(
        body=content,
        category=category,
        auth_user_id=author.id,
        author=author,
        liked_ids=[],
    )
    db.add(post)
    await db.flush()

    cache.invalidate_on_commit(db, settings.REVALIDATE_PATH)
    logger.info("User %s created post %s", author.id, post.id)
    return ActionResult.ok(_post_to_dict(post))


@action("An error occurred")
async def like_post_toggle(
    db: AsyncSession,
    identity: Identity | None,
    post_id: int,
) -> ActionResult:
    """
    Flip the caller's membership in the post's liker list.

    Succeeds with no payload; callers re-fetch the post to see the new
    state.
    """
    user = await user_service.resolve_profile(db, identity)

    post = await _fetch_post(db, post_id, for_update=True)
    if post is None:
        raise NotFound("Post not found")

    post.liked_ids = toggle_member(post.liked_ids, user.id)
    await db.flush()

    cache.invalidate_on_commit(db, settings.REVALIDATE_PATH)
    logger.debug("User %s toggled like on post %s", user.id, post_id)
    return ActionResult.ok()


@action("An error occurred while deleting the post")
async def delete_post(
    db: AsyncSession,
    identity: Identity | None,
    post_id: int,
) -> ActionResult:
    """Delete a post.  Only its author may do so."""
    user = await user_service.resolve_profile(db, identity)

    post = await _fetch_post(db, post_id, for_update=True)
    if post is None:
        raise NotFound("Post not found")
    if post.auth_user_id != user.id:
        raise Forbidden()

    await db.delete(post)
    await db.flush()

    cache.invalidate_on_commit(db, settings.REVALIDATE_PATH)
    logger.info("User %s deleted post %s", user.id, post_id)
    return ActionResult.ok({"id": post_id})


@action("An error occurred while loading the post")
async def get_post(db: AsyncSession, post_id: int) -> ActionResult:
    """Return the post with its author and its comments, oldest comment first."""
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(
            joinedload(Post.author),
            selectinload(Post.comments).joinedload(Comment.user),
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    post = result.unique().scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return ActionResult.ok(_post_detail_to_dict(post))
