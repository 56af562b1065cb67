import functools
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import cache
from app.errors import ActionError
from app.schemas import ActionResult

logger = logging.getLogger(__name__)


def action(failure_message: str):
    """
    Wrap an async handler so it always returns an ``ActionResult``.

    ``ActionError`` subclasses become failures carrying their own code.
    They are raised before a handler writes anything, so the session is
    left untouched.  Any other exception is logged with its traceback,
    the session is rolled back along with its queued cache invalidations,
    and the caller receives ``error="failed"`` with *failure_message*.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(db: AsyncSession, *args, **kwargs) -> ActionResult:
            try:
                return await func(db, *args, **kwargs)
            except ActionError as exc:
                logger.info("%s rejected: %s (%s)", func.__name__, exc.message, exc.code)
                return ActionResult.fail(exc.code, exc.message)
            except Exception:
                logger.exception("%s failed: %s", func.__name__, failure_message)
                await db.rollback()
                cache.discard_pending(db)
                return ActionResult.fail(ActionError.code, failure_message)

        return wrapper

    return decorator
