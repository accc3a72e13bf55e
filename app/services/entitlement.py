"""
TalkToJesus Backend — Entitlement Service
Decides whether a user may start a conversation: free allowance first, then
the status Razorpay last reported for the user's subscriptions.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import EntitlementConfig
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import User

logger = logging.getLogger(__name__)

# Lower wins
STATUS_PRIORITY = {
    SubscriptionStatus.ACTIVE: 0,
    SubscriptionStatus.AUTHENTICATED: 1,
    SubscriptionStatus.CREATED: 2,
}

ACCESS_STATUSES = [s.value for s in STATUS_PRIORITY]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def select_subscription(subscriptions: Sequence[Subscription]) -> Optional[Subscription]:
    """Highest-priority candidate; ``subscriptions`` is newest first, so ties keep recency."""
    candidates = [s for s in subscriptions if SubscriptionStatus.parse(s.status) in STATUS_PRIORITY]
    if not candidates:
        return None
    return min(candidates, key=lambda s: STATUS_PRIORITY[SubscriptionStatus.parse(s.status)])


def decide_access(
    usage_count: int,
    subscriptions: Sequence[Subscription],
    config: EntitlementConfig,
    now: Optional[datetime] = None,
) -> bool:
    """Pure access decision over already-loaded state."""
    if usage_count < config.free_limit:
        return True

    subscription = select_subscription(subscriptions)
    if subscription is None:
        return False

    status = SubscriptionStatus.parse(subscription.status)
    # Razorpay moves a subscription out of active as soon as a charge fails,
    # so active alone means paid up.
    if status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.AUTHENTICATED):
        return True

    if status == SubscriptionStatus.CREATED:
        now = now or datetime.now(timezone.utc)
        return now - _as_utc(subscription.created_at) <= config.grace_window

    return False


class EntitlementEvaluator:
    """Loads a user's state and runs :func:`decide_access` on it.

    ``has_access`` never raises: any failure (unknown user, store error) is
    logged and answered with False so a degraded dependency cannot hand out
    free access.
    """

    def __init__(self, db: AsyncSession, config: EntitlementConfig):
        self.db = db
        self.config = config

    async def has_access(self, user_id: int, now: Optional[datetime] = None) -> bool:
        try:
            result = await self.db.execute(select(User.usage_count).where(User.id == user_id))
            usage_count = result.scalar_one_or_none()
            if usage_count is None:
                logger.error(f"User {user_id} not found during entitlement check")
                return False

            if usage_count < self.config.free_limit:
                logger.info(f"User {user_id} within free tier ({usage_count}/{self.config.free_limit})")
                return True

            result = await self.db.execute(
                select(Subscription)
                .where(
                    Subscription.user_id == user_id,
                    Subscription.status.in_(ACCESS_STATUSES),
                )
                .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            )
            subscriptions = result.scalars().all()

            allowed = decide_access(usage_count, subscriptions, self.config, now=now)
            chosen = select_subscription(subscriptions)
            logger.info(
                f"Entitlement for user {user_id}: {'granted' if allowed else 'denied'} "
                f"(subscription={chosen.razorpay_subscription_id if chosen else None}, "
                f"status={chosen.status if chosen else None})"
            )
            return allowed
        except Exception as e:
            logger.error(f"Error checking entitlement for user {user_id}: {e}")
            return False
