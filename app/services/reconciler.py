"""
TalkToJesus Backend — Subscription Reconciler
Keeps local subscription rows in step with Razorpay, from webhooks (push) and
from on-demand fetches (pull). Both paths go through the same update routine.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import EntitlementConfig
from app.core.database import commit
from app.core.errors import NotFoundError, PersistenceError
from app.models.subscription import Subscription, SubscriptionStatus
from app.schemas.schemas import ProviderSubscription, WebhookEnvelope
from app.services.billing import RazorpayGateway

logger = logging.getLogger(__name__)

SUBSCRIPTION_EVENT_PREFIX = "subscription."

CHARGED_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.AUTHENTICATED)


def provider_fields(entity: ProviderSubscription, config: EntitlementConfig) -> dict:
    """Columns the provider is authoritative for, with local defaults for gaps."""
    fields = {
        "current_start": entity.current_start or None,
        "current_end": entity.current_end or None,
        "charge_at": entity.charge_at or None,
        "start_at": entity.start_at or None,
        "end_at": entity.end_at or None,
        "quantity": entity.quantity or config.subscription_quantity,
        "total_count": entity.total_count or config.subscription_total_count,
        "paid_count": entity.paid_count or 0,
    }
    if entity.status is not None:
        fields["status"] = entity.status.value
    return fields


def advance_last_charged_at(stored: Optional[int], candidate: Optional[int]) -> Optional[int]:
    """New value for last_charged_at, or None when it must stay as it is."""
    if not candidate:
        return None
    if stored is not None and candidate <= stored:
        return None
    return candidate


def notification_update(
    event: str,
    entity: ProviderSubscription,
    stored_last_charged_at: Optional[int],
    config: EntitlementConfig,
    now: Optional[datetime] = None,
) -> dict:
    """Update set for a ``subscription.*`` webhook against the stored row."""
    update = provider_fields(entity, config)
    candidate = None

    if event == "subscription.charged":
        # current_start is the start of the cycle that was just paid for
        now = now or datetime.now(timezone.utc)
        candidate = entity.current_start or int(now.timestamp())
    elif event == "subscription.authenticated":
        candidate = entity.current_start
    elif event == "subscription.cancelled":
        update["end_at"] = entity.end_at or entity.ended_at or None

    last_charged_at = advance_last_charged_at(stored_last_charged_at, candidate)
    if last_charged_at is not None:
        update["last_charged_at"] = last_charged_at
    return update


def fetch_update(
    entity: ProviderSubscription,
    stored_last_charged_at: Optional[int],
    config: EntitlementConfig,
) -> dict:
    """Update set for a subscription fetched from the provider."""
    update = provider_fields(entity, config)
    if entity.status in CHARGED_STATUSES and entity.current_start:
        last_charged_at = advance_last_charged_at(stored_last_charged_at, entity.current_start)
        if last_charged_at is not None:
            update["last_charged_at"] = last_charged_at
    return update


class SubscriptionReconciler:
    def __init__(self, db: AsyncSession, gateway: RazorpayGateway, config: EntitlementConfig):
        self.db = db
        self.gateway = gateway
        self.config = config

    async def _write(self, subscription: Subscription, update: dict) -> Subscription:
        for field, value in update.items():
            setattr(subscription, field, value)
        subscription.updated_at = datetime.now(timezone.utc)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating subscription {subscription.razorpay_subscription_id}: {e}")
            raise PersistenceError(
                f"Could not update subscription {subscription.razorpay_subscription_id}"
            ) from e
        await commit(self.db, f"subscription {subscription.razorpay_subscription_id}")
        return subscription

    async def _load(self, provider_subscription_id: str, user_id: Optional[int] = None) -> Optional[Subscription]:
        query = select(Subscription).where(Subscription.razorpay_subscription_id == provider_subscription_id)
        if user_id is not None:
            query = query.where(Subscription.user_id == user_id)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Error loading subscription {provider_subscription_id}: {e}")
            raise PersistenceError(f"Could not load subscription {provider_subscription_id}") from e
        return result.scalar_one_or_none()

    async def apply_envelope(self, envelope: WebhookEnvelope, now: Optional[datetime] = None) -> Optional[Subscription]:
        """Entry point for a parsed webhook body."""
        if not envelope.event.startswith(SUBSCRIPTION_EVENT_PREFIX):
            logger.info(f"Ignoring non-subscription webhook event {envelope.event!r}")
            return None
        return await self.apply_notification(envelope.event, envelope.subscription_entity(), now=now)

    async def apply_notification(
        self,
        event: str,
        entity: Optional[ProviderSubscription],
        now: Optional[datetime] = None,
    ) -> Optional[Subscription]:
        """Push path. Returns the updated row, or None when the event was a no-op."""
        if not event or not event.startswith(SUBSCRIPTION_EVENT_PREFIX):
            logger.info(f"Ignoring non-subscription webhook event {event!r}")
            return None
        if entity is None or not entity.id:
            logger.error(f"Subscription data missing in {event} webhook payload")
            return None

        logger.info(f"Processing {event} for subscription {entity.id} (status={entity.status})")

        subscription = await self._load(entity.id)
        if subscription is None:
            # may belong to a subscription created outside this backend
            logger.error(f"Subscription {entity.id} not found in database, skipping {event}")
            return None

        update = notification_update(event, entity, subscription.last_charged_at, self.config, now=now)
        if "last_charged_at" in update:
            logger.info(f"Subscription {entity.id} last_charged_at -> {update['last_charged_at']}")

        await self._write(subscription, update)
        logger.info(f"Subscription {entity.id} updated from {event}")
        return subscription

    async def fetch_and_reconcile(
        self, provider_subscription_id: str, user_id: int
    ) -> Tuple[Subscription, dict]:
        """Pull path: fetch from Razorpay and overwrite the user's local row."""
        logger.info(f"Fetching subscription {provider_subscription_id} from Razorpay for user {user_id}")
        entity, raw = await self.gateway.fetch_subscription(provider_subscription_id)

        subscription = await self._load(provider_subscription_id, user_id=user_id)
        if subscription is None:
            raise NotFoundError(
                f"Subscription {provider_subscription_id} not found for user {user_id}",
                subscription_id=provider_subscription_id,
                user_id=user_id,
            )

        update = fetch_update(entity, subscription.last_charged_at, self.config)
        await self._write(subscription, update)
        logger.info(f"Subscription {provider_subscription_id} reconciled (status={subscription.status})")
        return subscription, raw
