from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import CurrentIdentity
from app.errors import status_for
from app.schemas import ActionResult
from app.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=ActionResult)
async def get_current_user(
    response: Response,
    identity: CurrentIdentity,
    db: AsyncSession = Depends(get_db),
):
    result = await user_service.get_current_user(db, identity)
    if not result.success:
        response.status_code = status_for(result.error)
    return result
