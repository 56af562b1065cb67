from typing import Annotated

from fastapi import Depends, Query

from app.config import settings
from app.identity import Identity, get_identity
from app.models import Category


class PaginationParams:
    """
    Reusable FastAPI dependency that parses the listing query parameters.

    Usage in a router::

        @router.get("/posts")
        async def list_posts(pagination: PaginationParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``
        regardless of the value supplied by the caller.
    category:
        Optional ``Category`` filter; unknown values are rejected with 422.
    """

    def __init__(
        self,
        page: int = Query(
            1,
            ge=1,
            description="Page number (1-based).",
        ),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        category: Category | None = Query(
            None,
            description="Only return posts in this category.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.category = category


# Caller identity, or None for anonymous requests.
CurrentIdentity = Annotated[Identity | None, Depends(get_identity)]
