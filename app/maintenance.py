"""
Out-of-band maintenance routines.

These run from ``scripts/`` against the configured database, never from
a request handler.
"""
import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine

from app.models import Comment, Post, User

logger = logging.getLogger(__name__)

# Children before parents so foreign keys never block a delete.
WIPE_ORDER = (Comment, Post, User)


async def clean_database(engine: AsyncEngine) -> bool:
    """
    Delete every comment, then every post, then every user.

    The deletes share one transaction, so a failure part-way leaves the
    data untouched.  Errors are logged, not raised; the return value says
    whether the wipe happened.  The engine is disposed in every case.
    """
    try:
        async with engine.begin() as conn:
            for model in WIPE_ORDER:
                result = await conn.execute(delete(model))
                logger.info("Deleted %d row(s) from %s", result.rowcount, model.__tablename__)
        logger.info("Database cleaned successfully")
        return True
    except Exception:
        logger.exception("Error cleaning database")
        return False
    finally:
        await engine.dispose()
