"""
Server-rendered pages.

Every form posts to a handler and redirects (303) back to the page, which
re-reads its data; failures travel back as an ``?error=<code>`` query
parameter and are shown inline.
"""
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies import CurrentIdentity, PaginationParams
from app.models import Category
from app.schemas import ActionResult
from app.services import post_service
from app.views import CommentThread, PageNotFound

router = APIRouter(tags=["pages"], include_in_schema=False)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def _redirect(path: str, result: ActionResult | None = None, **params) -> RedirectResponse:
    if result is not None and not result.success:
        params["error"] = result.error
    query = urlencode({k: v for k, v in params.items() if v is not None}, doseq=True)
    return RedirectResponse(f"{path}?{query}" if query else path, status_code=303)


def _parse_post_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    raw = raw.strip()
    # str.isdigit() also accepts digits int() rejects, such as "²".
    if not (raw.isascii() and raw.isdigit()):
        return None
    return int(raw)


def _local_path(target: str | None) -> str | None:
    """Accept only same-site paths as a redirect target."""
    if not target or not target.startswith("/") or target[1:2] in ("/", "\\"):
        return None
    return target


def _redirect_back(next_path: str | None, result: ActionResult) -> RedirectResponse:
    """Return to the page the form was posted from, or to the listing."""
    target = _local_path(next_path)
    if target is None:
        return _redirect(settings.REVALIDATE_PATH, result)
    if not result.success:
        separator = "&" if "?" in target else "?"
        target = f"{target}{separator}{urlencode({'error': result.error})}"
    return RedirectResponse(target, status_code=303)


def _thread_url(post_id: int, expanded_ids) -> str:
    params = [("postId", post_id)] + [("expanded", i) for i in sorted(expanded_ids)]
    return f"/comments?{urlencode(params)}"


# ---------------------------------------------------------------------------
# Listing page
# ---------------------------------------------------------------------------

@router.get(settings.REVALIDATE_PATH, response_class=HTMLResponse)
async def learn_page(
    request: Request,
    identity: CurrentIdentity,
    pagination: PaginationParams = Depends(),
    error: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    listing = await post_service.list_posts(
        db, pagination.page, pagination.page_size, pagination.category
    )
    return templates.TemplateResponse(
        request,
        "learn.html",
        {
            "listing": listing,
            "categories": list(Category),
            "selected_category": pagination.category,
            "current_user_id": identity.user_id if identity else None,
            "error": error,
        },
    )


@router.post(f"{settings.REVALIDATE_PATH}/posts")
async def create_post_form(
    identity: CurrentIdentity,
    content: str = Form(...),
    category: str = Form(...),
    db: AsyncSession = Depends(get_db),
):
    result = await post_service.create_post(db, identity, content, category)
    return _redirect(settings.REVALIDATE_PATH, result)


@router.post(f"{settings.REVALIDATE_PATH}/posts/{{post_id}}/like")
async def like_post_form(
    post_id: int,
    identity: CurrentIdentity,
    next_path: str | None = Form(None, alias="next"),
    db: AsyncSession = Depends(get_db),
):
    result = await post_service.like_post_toggle(db, identity, post_id)
    return _redirect_back(next_path, result)


@router.post(f"{settings.REVALIDATE_PATH}/posts/{{post_id}}/delete")
async def delete_post_form(
    post_id: int,
    identity: CurrentIdentity,
    next_path: str | None = Form(None, alias="next"),
    db: AsyncSession = Depends(get_db),
):
    result = await post_service.delete_post(db, identity, post_id)
    return _redirect_back(next_path, result)


# ---------------------------------------------------------------------------
# Comment thread page
# ---------------------------------------------------------------------------

@router.get("/comments", response_class=HTMLResponse)
async def comments_page(
    request: Request,
    identity: CurrentIdentity,
    post_id: str | None = Query(None, alias="postId"),
    expanded: list[int] = Query([]),
    error: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    thread = CommentThread(db, identity)
    try:
        await thread.load(_parse_post_id(post_id))
    except PageNotFound:
        raise HTTPException(status_code=404, detail="Post not found")
    thread.expand(expanded)

    toggle_urls = {
        view.id: _thread_url(thread.post["id"], set(thread.expanded_ids) ^ {view.id})
        for view in thread.comments
    }
    return templates.TemplateResponse(
        request,
        "comments.html",
        {
            "thread": thread,
            "toggle_urls": toggle_urls,
            "current_user_id": identity.user_id if identity else None,
            "error": error,
        },
    )


@router.post("/comments")
async def submit_comment_form(
    identity: CurrentIdentity,
    post_id: str = Form(..., alias="postId"),
    body: str = Form(...),
    db: AsyncSession = Depends(get_db),
):
    thread = CommentThread(db, identity)
    try:
        await thread.load(_parse_post_id(post_id))
    except PageNotFound:
        raise HTTPException(status_code=404, detail="Post not found")

    result = await thread.submit(body)
    return _redirect("/comments", result, postId=thread.post["id"])
