"""
TalkToJesus Backend — Subscription Lifecycle
Creating, cancelling and looking up a user's Razorpay subscription. Local rows
mirror what Razorpay returned; provider failures are never hidden.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import EntitlementConfig
from app.core.database import commit
from app.core.errors import AppError, NotFoundError, PersistenceError, PlanNotFoundError
from app.models.plan import Plan
from app.models.subscription import Subscription, SubscriptionStatus
from app.services.billing import RazorpayGateway
from app.services.reconciler import SubscriptionReconciler, provider_fields

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionResult:
    subscription: Subscription
    razorpay_subscription: Optional[dict] = None
    razorpay_key_id: Optional[str] = None


class SubscriptionManager:
    def __init__(self, db: AsyncSession, gateway: RazorpayGateway, config: EntitlementConfig):
        self.db = db
        self.gateway = gateway
        self.config = config
        self.reconciler = SubscriptionReconciler(db, gateway, config)

    async def _store(self, action: str):
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error storing subscription ({action}): {e}")
            raise PersistenceError(f"Could not store subscription ({action})") from e
        await commit(self.db, f"subscription ({action})")

    async def create(self, plan_id: int, user_id: int) -> SubscriptionResult:
        logger.info(f"Creating subscription for user {user_id} on plan {plan_id}")

        plan = await self.db.get(Plan, plan_id)
        if plan is None:
            logger.error(f"Plan {plan_id} not found")
            raise PlanNotFoundError(f"Plan {plan_id} not found", plan_id=plan_id)
        if not plan.razorpay_plan_id:
            logger.error(f"Plan {plan_id} missing razorpay_plan_id")
            raise PlanNotFoundError(f"Plan {plan_id} missing Razorpay plan ID", plan_id=plan_id)

        entity, raw = await self.gateway.create_subscription(
            plan.razorpay_plan_id,
            quantity=self.config.subscription_quantity,
            total_count=self.config.subscription_total_count,
        )
        if not entity.id:
            logger.error(f"Razorpay create returned no subscription id for plan {plan_id}")
            raise PersistenceError("Razorpay returned a subscription without an id")
        logger.info(f"Razorpay subscription {entity.id} created for user {user_id}")

        fields = provider_fields(entity, self.config)
        fields.setdefault("status", SubscriptionStatus.CREATED.value)
        subscription = Subscription(
            user_id=user_id,
            plan_id=plan.id,
            plan=plan,
            razorpay_subscription_id=entity.id,
            last_charged_at=None,  # filled in by the first reconciliation
            **fields,
        )
        self.db.add(subscription)
        await self._store("create")
        await self.db.refresh(subscription)

        return SubscriptionResult(
            subscription=subscription,
            razorpay_subscription=raw,
            razorpay_key_id=self.gateway.key_id,
        )

    async def cancel(self, provider_subscription_id: str, user_id: int) -> SubscriptionResult:
        logger.info(f"Cancelling subscription {provider_subscription_id} for user {user_id}")
        entity, raw = await self.gateway.cancel_subscription(provider_subscription_id, immediate=True)
        logger.info(f"Subscription {provider_subscription_id} cancelled in Razorpay (status={entity.status})")

        result = await self.db.execute(
            select(Subscription).where(
                Subscription.razorpay_subscription_id == provider_subscription_id,
                Subscription.user_id == user_id,
            )
        )
        subscription = result.scalar_one_or_none()
        if subscription is None:
            raise NotFoundError(
                f"Subscription {provider_subscription_id} not found for user {user_id}",
                subscription_id=provider_subscription_id,
            )

        if entity.status is not None:
            subscription.status = entity.status.value
        subscription.current_start = entity.current_start or None
        subscription.current_end = entity.current_end or None
        subscription.end_at = entity.end_at or None
        subscription.updated_at = datetime.now(timezone.utc)
        await self._store("cancel")

        return SubscriptionResult(subscription=subscription, razorpay_subscription=raw)

    async def latest(self, user_id: int) -> Optional[Subscription]:
        """Most recently created subscription row for the user, if any."""
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_current(self, user_id: int) -> Optional[SubscriptionResult]:
        """Latest subscription, refreshed from Razorpay when possible.

        A failed refresh is logged and the stored copy is returned instead.
        """
        subscription = await self.latest(user_id)
        if subscription is None:
            return None

        if subscription.razorpay_subscription_id:
            provider_id = subscription.razorpay_subscription_id
            try:
                subscription, raw = await self.reconciler.fetch_and_reconcile(provider_id, user_id)
                return SubscriptionResult(subscription=subscription, razorpay_subscription=raw)
            except PersistenceError as e:
                logger.warning(f"Error storing refreshed subscription {provider_id}, returning local data: {e}")
                await self.db.rollback()
                subscription = await self.latest(user_id)
            except AppError as e:
                logger.warning(f"Error fetching subscription {provider_id} from Razorpay, returning local data: {e}")

        return SubscriptionResult(subscription=subscription)
