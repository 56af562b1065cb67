from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import CurrentIdentity, PaginationParams
from app.errors import status_for
from app.schemas import ActionResult, CommentCreate, PaginatedResponse, PostCreate
from app.services import comment_service, post_service

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


def _respond(result: ActionResult, response: Response, success_status: int = 200) -> ActionResult:
    # Handler failures are results, not exceptions; only the status code changes.
    response.status_code = success_status if result.success else status_for(result.error)
    return result


@router.get("", response_model=PaginatedResponse)
async def list_posts(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.list_posts(
        db, pagination.page, pagination.page_size, pagination.category
    )


@router.post("", response_model=ActionResult, status_code=201)
async def create_post(
    data: PostCreate,
    response: Response,
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_db),
):
    result = await post_service.create_post(db, identity, data.content, data.category)
    return _respond(result, response, 201)


@router.get("/{post_id}", response_model=ActionResult)
async def get_post(post_id: int, response: Response, db: AsyncSession = Depends(get_db)):
    return _respond(await post_service.get_post(db, post_id), response)


@router.post("/{post_id}/like", response_model=ActionResult)
async def like_post_toggle(
    post_id: int,
    response: Response,
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await post_service.like_post_toggle(db, identity, post_id), response)


@router.delete("/{post_id}", response_model=ActionResult)
async def delete_post(
    post_id: int,
    response: Response,
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_db),
):
    return _respond(await post_service.delete_post(db, identity, post_id), response)


@router.post("/{post_id}/comments", response_model=ActionResult, status_code=201)
async def create_comment(
    post_id: int,
    data: CommentCreate,
    response: Response,
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_db),
):
    result = await comment_service.create_comment(db, identity, post_id, data.body)
    return _respond(result, response, 201)
