"""
TalkToJesus Backend — Database
Async SQLAlchemy engine, session factory and request-scoped session dependency.
"""
import logging
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings
from app.core.errors import PersistenceError

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG, future=True)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request: committed on success, rolled back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def commit(session: AsyncSession, what: str) -> None:
    """Commit before the response is built; ``get_db`` commits only after it is sent."""
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error committing {what}: {e}")
        await session.rollback()
        raise PersistenceError(f"Could not store {what}") from e
