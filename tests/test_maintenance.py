"""
Database wipe tests.

These use their own file-backed SQLite engine because ``clean_database``
disposes the engine it is given.
"""
import pytest
import pytest_asyncio
from sqlalchemy import event, func, select, text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.database import Base
from app.maintenance import WIPE_ORDER, clean_database
from app.models import Category, Comment, Post, User


@pytest_asyncio.fixture
async def wipe_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wipe.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    disposed = []
    event.listen(engine.sync_engine, "engine_disposed", lambda e: disposed.append(e))

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all([User(id="u1", name="One"), User(id="u2", name="Two")])
        await session.flush()
        post = Post(body="p", category=Category.GENERAL, auth_user_id="u1", liked_ids=["u2"])
        session.add(post)
        await session.flush()
        session.add_all([
            Comment(body="c1", post_id=post.id, user_id="u2"),
            Comment(body="c2", post_id=post.id, user_id="u1"),
        ])
        await session.commit()

    yield engine, disposed
    await engine.dispose()


async def _counts(engine) -> dict[str, int]:
    counts = {}
    async with engine.connect() as conn:
        for model in (Comment, Post, User):
            counts[model.__tablename__] = (
                await conn.execute(select(func.count()).select_from(model))
            ).scalar_one()
    return counts


def test_wipe_order_respects_foreign_keys():
    assert WIPE_ORDER == (Comment, Post, User)


@pytest.mark.asyncio
async def test_clean_database_empties_every_table(wipe_engine):
    engine, disposed = wipe_engine
    assert await _counts(engine) == {"comments": 2, "posts": 1, "users": 2}

    assert await clean_database(engine) is True

    assert len(disposed) == 1
    assert await _counts(engine) == {"comments": 0, "posts": 0, "users": 0}


@pytest.mark.asyncio
async def test_clean_database_disposes_engine_on_failure(wipe_engine):
    engine, disposed = wipe_engine
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE posts"))

    assert await clean_database(engine) is False
    assert len(disposed) == 1

    # The failed wipe ran in one transaction, so nothing was removed.
    async with engine.connect() as conn:
        comments = (await conn.execute(select(func.count()).select_from(Comment))).scalar_one()
        users = (await conn.execute(select(func.count()).select_from(User))).scalar_one()
    assert comments == 2
    assert users == 2


@pytest.mark.asyncio
async def test_clean_database_on_empty_store(wipe_engine):
    engine, _ = wipe_engine
    assert await clean_database(engine) is True
    assert await clean_database(engine) is True
    assert await _counts(engine) == {"comments": 0, "posts": 0, "users": 0}
