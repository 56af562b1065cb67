"""
View state for the server-rendered pages.

``CommentThread`` keeps a local copy of a post, its comments and the
current user, the way a page holds state between renders.  The copy is
refreshed only by an explicit re-fetch after a write; between the write
and the re-fetch another user may have changed the post, and the page
shows whatever the re-fetch returns.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.identity import Identity
from app.schemas import ActionResult
from app.services import comment_service, post_service, user_service

logger = logging.getLogger(__name__)


class PageNotFound(Exception):
    """The page's target record is missing; rendered as a 404."""


@dataclass
class CommentView:
    comment: dict
    expanded: bool = False
    preview_length: int = field(default_factory=lambda: settings.COMMENT_PREVIEW_LENGTH)

    @property
    def id(self) -> int:
        return self.comment["id"]

    @property
    def truncatable(self) -> bool:
        return len(self.comment["body"]) > self.preview_length

    @property
    def visible_body(self) -> str:
        body = self.comment["body"]
        if self.expanded or not self.truncatable:
            return body
        return body[: self.preview_length].rstrip() + "…"

    def toggle(self) -> None:
        self.expanded = not self.expanded


class CommentThread:
    def __init__(self, db: AsyncSession, identity: Identity | None) -> None:
        self.db = db
        self.identity = identity
        self.post: dict | None = None
        self.current_user: dict | None = None
        self.comments: list[CommentView] = []

    async def load(self, post_id: int | None) -> None:
        """Load the post and the current user; raise ``PageNotFound`` if the post is missing."""
        if post_id is None:
            raise PageNotFound("postId is required")

        post_result = await post_service.get_post(self.db, post_id)
        if not post_result.success or not post_result.data:
            raise PageNotFound(f"post {post_id} not found")

        user_result = await user_service.get_current_user(self.db, self.identity)

        self.post = post_result.data
        self._replace_comments(self.post["comments"])
        self.current_user = user_result.data if user_result.success else None

    async def submit(self, body: str) -> ActionResult:
        """
        Create a comment, then re-fetch the post to refresh the local list.

        If either step fails the previously loaded comments stay as they were.
        """
        result = await comment_service.create_comment(self.db, self.identity, self.post["id"], body)
        if not result.success:
            logger.debug("Comment on post %s rejected: %s", self.post["id"], result.error)
            return result

        refreshed = await post_service.get_post(self.db, self.post["id"])
        if refreshed.success and refreshed.data:
            self.post = refreshed.data
            self._replace_comments(refreshed.data["comments"])
        return result

    def toggle(self, comment_id: int) -> None:
        for view in self.comments:
            if view.id == comment_id:
                view.toggle()
                return

    def expand(self, comment_ids) -> None:
        wanted = set(comment_ids)
        for view in self.comments:
            view.expanded = view.id in wanted

    @property
    def expanded_ids(self) -> list[int]:
        return [view.id for view in self.comments if view.expanded]

    def _replace_comments(self, comments: list[dict]) -> None:
        # Expand/collapse flags survive a refresh for comments still present.
        previously_expanded = set(self.expanded_ids)
        self.comments = [CommentView(c, expanded=c["id"] in previously_expanded) for c in comments]
