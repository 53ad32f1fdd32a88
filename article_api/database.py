import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from article_api.config import settings
from article_api.middleware import install_query_counter

logger = logging.getLogger(__name__)

# Tests swap in their own engine and session factory through the
# ``get_db`` dependency override.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def session_scope(factory: async_sessionmaker = async_session) -> AsyncIterator[AsyncSession]:
    """
    Yield a session that commits when the block exits cleanly and rolls
    back when it raises.

    One scope is one unit of work: a request (via ``get_db``) or a script
    run (``scripts/seed.py``).
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.debug("Rolling back session after error", exc_info=True)
            await session.rollback()
            raise


async def get_db():
    async with session_scope() as session:
        yield session
