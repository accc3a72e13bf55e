"""
Tests for app/services/subscriptions.py

Create / cancel / get-current against a mocked Razorpay client, plus the
end-to-end path from purchase to access.
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import NotFoundError, PersistenceError, PlanNotFoundError, ProviderError
from app.schemas.schemas import WebhookEnvelope
from app.services.entitlement import EntitlementEvaluator
from app.services.reconciler import SubscriptionReconciler
from app.services.subscriptions import SubscriptionManager
from tests.conftest import provider_subscription

T1 = 1_717_200_000


class TestCreate:
    async def test_creates_local_row(self, db, gateway, razorpay_client, config, make_user, make_plan):
        user = await make_user(usage_count=3)
        plan = await make_plan()

        result = await SubscriptionManager(db, gateway, config).create(plan.id, user.id)

        razorpay_client.subscription.create.assert_called_once()
        sent = razorpay_client.subscription.create.call_args.args[0]
        assert sent["plan_id"] == "plan_rzp_monthly"
        assert sent["total_count"] == 12
        assert sent["quantity"] == 1

        subscription = result.subscription
        assert subscription.id is not None
        assert subscription.user_id == user.id
        assert subscription.plan_id == plan.id
        assert subscription.razorpay_subscription_id == "sub_test_123"
        assert subscription.status == "created"
        assert subscription.last_charged_at is None
        assert subscription.plan.name == "Monthly"
        assert result.razorpay_key_id == "rzp_test_key"
        assert result.razorpay_subscription["short_url"] == "https://rzp.io/i/test"

    async def test_row_is_committed(self, db, session_factory, gateway, config, make_user, make_plan):
        user = await make_user()
        plan = await make_plan()

        await SubscriptionManager(db, gateway, config).create(plan.id, user.id)

        async with session_factory() as other:
            assert await SubscriptionManager(other, gateway, config).latest(user.id) is not None

    async def test_status_defaults_to_created(self, db, gateway, razorpay_client, config, make_user, make_plan):
        razorpay_client.subscription.create.return_value = provider_subscription(status=None)
        user = await make_user()
        plan = await make_plan()

        result = await SubscriptionManager(db, gateway, config).create(plan.id, user.id)

        assert result.subscription.status == "created"

    async def test_unknown_plan(self, db, gateway, razorpay_client, config, make_user):
        user = await make_user()

        with pytest.raises(PlanNotFoundError):
            await SubscriptionManager(db, gateway, config).create(999, user.id)
        razorpay_client.subscription.create.assert_not_called()

    async def test_plan_without_provider_reference(self, db, gateway, razorpay_client, config, make_user, make_plan):
        user = await make_user()
        plan = await make_plan(razorpay_plan_id=None)

        with pytest.raises(PlanNotFoundError):
            await SubscriptionManager(db, gateway, config).create(plan.id, user.id)
        razorpay_client.subscription.create.assert_not_called()

    async def test_provider_failure_creates_nothing(self, db, gateway, razorpay_client, config, make_user, make_plan):
        razorpay_client.subscription.create.side_effect = ProviderError("plan inactive")
        user = await make_user()
        plan = await make_plan()
        manager = SubscriptionManager(db, gateway, config)

        with pytest.raises(ProviderError):
            await manager.create(plan.id, user.id)
        assert await manager.latest(user.id) is None

    async def test_response_without_id(self, db, gateway, razorpay_client, config, make_user, make_plan):
        razorpay_client.subscription.create.return_value = provider_subscription(id=None)
        user = await make_user()
        plan = await make_plan()

        with pytest.raises(PersistenceError):
            await SubscriptionManager(db, gateway, config).create(plan.id, user.id)


class TestCancel:
    async def test_mirrors_provider_result(self, db, gateway, razorpay_client, config, make_user, make_subscription):
        user = await make_user()
        await make_subscription(user, status="active", current_start=T1)
        razorpay_client.subscription.cancel.return_value = provider_subscription(
            status="cancelled", current_start=None, end_at=T1 + 100
        )

        result = await SubscriptionManager(db, gateway, config).cancel("sub_test_123", user.id)

        razorpay_client.subscription.cancel.assert_called_once_with("sub_test_123", {"cancel_at_cycle_end": 0})
        assert result.subscription.status == "cancelled"
        assert result.subscription.current_start is None
        assert result.subscription.end_at == T1 + 100

    async def test_provider_failure_leaves_row(self, db, gateway, razorpay_client, config, make_user, make_subscription):
        user = await make_user()
        stored = await make_subscription(user, status="active")
        razorpay_client.subscription.cancel.side_effect = ProviderError("already cancelled")

        with pytest.raises(ProviderError):
            await SubscriptionManager(db, gateway, config).cancel("sub_test_123", user.id)
        assert stored.status == "active"

    async def test_other_users_subscription(self, db, gateway, config, make_user, make_subscription):
        owner = await make_user(email="owner@example.com")
        other = await make_user(email="other@example.com")
        await make_subscription(owner, status="active")

        with pytest.raises(NotFoundError):
            await SubscriptionManager(db, gateway, config).cancel("sub_test_123", other.id)


class TestGetCurrent:
    async def test_no_subscription(self, db, gateway, config, make_user):
        user = await make_user()
        assert await SubscriptionManager(db, gateway, config).get_current(user.id) is None

    async def test_latest_is_refreshed(self, db, gateway, razorpay_client, config, make_user, make_subscription):
        user = await make_user()
        await make_subscription(user, status="cancelled", razorpay_id="sub_old", age=timedelta(days=60))
        await make_subscription(user, status="created", razorpay_id="sub_test_123", age=timedelta(hours=1))
        razorpay_client.subscription.fetch.return_value = provider_subscription(status="active", current_start=T1)

        result = await SubscriptionManager(db, gateway, config).get_current(user.id)

        razorpay_client.subscription.fetch.assert_called_once_with("sub_test_123")
        assert result.subscription.razorpay_subscription_id == "sub_test_123"
        assert result.subscription.status == "active"
        assert result.subscription.last_charged_at == T1
        assert result.razorpay_subscription["status"] == "active"

    async def test_provider_failure_returns_stored_copy(
        self, db, gateway, razorpay_client, config, make_user, make_subscription
    ):
        user = await make_user()
        await make_subscription(user, status="authenticated")
        razorpay_client.subscription.fetch.side_effect = ProviderError("gateway timeout")

        result = await SubscriptionManager(db, gateway, config).get_current(user.id)

        assert result.subscription.status == "authenticated"
        assert result.razorpay_subscription is None


class TestPurchaseToAccess:
    async def test_created_then_authenticated_grants_access(
        self, db, gateway, razorpay_client, config, make_user, make_plan
    ):
        user = await make_user(usage_count=3)
        plan = await make_plan()
        evaluator = EntitlementEvaluator(db, config)
        assert await evaluator.has_access(user.id) is False

        created = await SubscriptionManager(db, gateway, config).create(plan.id, user.id)
        assert await evaluator.has_access(user.id) is True

        # past the grace window, so only the authenticated status can grant access
        created.subscription.created_at = datetime.now(timezone.utc) - timedelta(hours=25)
        await db.commit()
        assert await evaluator.has_access(user.id) is False

        envelope = WebhookEnvelope.model_validate({
            "event": "subscription.authenticated",
            "payload": {"subscription": {"entity": provider_subscription(status="authenticated", current_start=T1)}},
        })
        updated = await SubscriptionReconciler(db, gateway, config).apply_envelope(envelope)

        assert updated.status == "authenticated"
        assert updated.last_charged_at == T1
        assert await evaluator.has_access(user.id) is True
