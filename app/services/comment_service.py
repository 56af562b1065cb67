"""
Comment service: append-only comment creation for the Post aggregate.

Comments cannot be edited or deleted; they disappear only together with
their post.  Every new comment invalidates the listing views so comment
counts stay current.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.config import settings
from app.errors import InvalidInput, NotFound
from app.identity import Identity, require_user_id
from app.models import Comment, Post
from app.schemas import ActionResult
from app.services import user_service
from app.services.actions import action
from app.services.post_service import comment_to_dict

logger = logging.getLogger(__name__)


@action("An error occurred while creating the comment")
async def create_comment(
    db: AsyncSession,
    identity: Identity | None,
    post_id: int,
    body: str,
) -> ActionResult:
    """
    Append a comment by the caller to the post identified by *post_id*.

    Nothing is written when the post does not exist or the body is blank.
    """
    require_user_id(identity)
    if not body or not body.strip():
        raise InvalidInput("Comment body must not be empty")

    # Verify the post exists before creating the comment.
    result = await db.execute(select(Post.id).where(Post.id == post_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Post not found")

    user = await user_service.resolve_profile(db, identity)
    comment = Comment(body=body, post_id=post_id, user_id=user.id, user=user)
    db.add(comment)
    await db.flush()

    cache.invalidate_on_commit(db, settings.REVALIDATE_PATH)
    logger.info("User %s commented on post %s", user.id, post_id)
    return ActionResult.ok(comment_to_dict(comment))
