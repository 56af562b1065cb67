from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from app.cache import cache
from app.config import settings
from app.middleware import install_query_counter

# Module-level engine variable allows tests and scripts to swap in their own engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def commit(session: AsyncSession) -> None:
    """Commit *session*, then drop the cached views its writes made stale."""
    await session.commit()
    await cache.flush_pending(session)


async def get_db():
    """Request-scoped session; commits when the request handler returns cleanly."""
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise
