from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models import Category


# --- User ---

class UserResponse(BaseModel):
    id: str
    name: str | None = None
    image: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Comment ---

class CommentCreate(BaseModel):
    body: str = Field(min_length=1)


class CommentResponse(BaseModel):
    id: int
    body: str
    post_id: int
    user_id: str
    created_at: datetime
    user: UserResponse | None = None
    model_config = ConfigDict(from_attributes=True)


# --- Post ---

class PostCreate(BaseModel):
    content: str = Field(min_length=1)
    category: Category


class PostResponse(BaseModel):
    id: int
    body: str
    category: Category
    auth_user_id: str
    liked_ids: list[str] = []
    created_at: datetime
    author: UserResponse | None = None
    comment_count: int = 0
    model_config = ConfigDict(from_attributes=True)


class PostDetail(PostResponse):
    comments: list[CommentResponse] = []


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list  # PostResponse dicts
    total: int
    page: int
    page_size: int
    pages: int


# --- Handler result ---

class ActionResult(BaseModel):
    """
    Uniform return shape of every handler.

    ``success`` is always set.  On success ``data`` carries the payload
    (``None`` for mutations whose callers re-fetch); on failure ``error``
    carries a machine-readable code and ``message`` a human one.
    """

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, message: str | None = None) -> "ActionResult":
        return cls(success=False, error=error, message=message)


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_posts: int
    total_comments: int
    total_users: int
    total_likes: int
    avg_comments_per_post: float
    cache_info: dict = {}
