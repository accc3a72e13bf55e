"""
TalkToJesus Backend — Usage Counter
Per-user conversation counter feeding the free-tier allowance.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import commit
from app.core.errors import NotFoundError, PersistenceError
from app.models.user import User

logger = logging.getLogger(__name__)


class UsageCounter:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def increment(self, user_id: int) -> int:
        """Read ``usage_count``, write it back plus one and return the new value.

        The row is read ``FOR UPDATE`` so concurrent increments serialize on
        backends with row locks. SQLite ignores the clause and keeps the plain
        read-then-write behaviour.
        """
        try:
            result = await self.db.execute(
                select(User)
                .where(User.id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFoundError(f"User {user_id} not found", user_id=user_id)

            new_count = (user.usage_count or 0) + 1
            user.usage_count = new_count
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error incrementing usage count for user {user_id}: {e}")
            raise PersistenceError(f"Could not update usage for user {user_id}") from e
        await commit(self.db, f"usage for user {user_id}")

        logger.info(f"Usage count for user {user_id} incremented to {new_count}")
        return new_count
