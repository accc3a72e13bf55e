"""
Tests for app/services/entitlement.py
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.exc import OperationalError

from app.core.config import EntitlementConfig
from app.models.subscription import Subscription
from app.services.entitlement import EntitlementEvaluator, decide_access, select_subscription

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def sub(status, age=timedelta(0), razorpay_id="sub_x"):
    return Subscription(razorpay_subscription_id=razorpay_id, status=status, created_at=NOW - age)


class TestDecideAccess:
    config = EntitlementConfig()

    def test_free_tier_ignores_subscriptions(self):
        for usage in (0, 1, 2):
            assert decide_access(usage, [], self.config, now=NOW) is True
            assert decide_access(usage, [sub("cancelled")], self.config, now=NOW) is True

    def test_limit_reached_without_subscription(self):
        assert decide_access(3, [], self.config, now=NOW) is False

    def test_active_grants_regardless_of_age(self):
        assert decide_access(50, [sub("active", age=timedelta(days=400))], self.config, now=NOW) is True

    def test_authenticated_grants(self):
        assert decide_access(3, [sub("authenticated", age=timedelta(days=3))], self.config, now=NOW) is True

    def test_created_within_grace_window(self):
        assert decide_access(3, [sub("created", age=timedelta(hours=23))], self.config, now=NOW) is True
        assert decide_access(3, [sub("created", age=timedelta(hours=24))], self.config, now=NOW) is True

    def test_created_after_grace_window(self):
        assert decide_access(3, [sub("created", age=timedelta(hours=25))], self.config, now=NOW) is False

    def test_naive_created_at_treated_as_utc(self):
        stale = Subscription(status="created", created_at=(NOW - timedelta(hours=25)).replace(tzinfo=None))
        assert decide_access(3, [stale], self.config, now=NOW) is False

    def test_non_access_statuses_deny(self):
        for status in ("pending", "halted", "cancelled", "completed", "paused", "resumed", "mystery"):
            assert decide_access(3, [sub(status)], self.config, now=NOW) is False

    def test_active_beats_stale_created(self):
        subs = [sub("created", age=timedelta(days=2), razorpay_id="sub_new"), sub("active", age=timedelta(days=40))]
        assert decide_access(3, subs, self.config, now=NOW) is True

    def test_custom_limit_and_window(self):
        config = EntitlementConfig(free_limit=5, grace_window=timedelta(hours=1))
        assert decide_access(4, [], config, now=NOW) is True
        assert decide_access(5, [sub("created", age=timedelta(hours=2))], config, now=NOW) is False


class TestSelectSubscription:
    def test_priority_order(self):
        created, authenticated, active = sub("created"), sub("authenticated"), sub("active")
        assert select_subscription([created, authenticated, active]) is active
        assert select_subscription([created, authenticated]) is authenticated
        assert select_subscription([created]) is created

    def test_ties_keep_first(self):
        newest, older = sub("active", razorpay_id="sub_new"), sub("active", razorpay_id="sub_old")
        assert select_subscription([newest, older]) is newest

    def test_nothing_eligible(self):
        assert select_subscription([sub("cancelled"), sub("halted")]) is None
        assert select_subscription([]) is None


class TestEntitlementEvaluator:
    async def test_unknown_user_is_denied(self, db, config):
        assert await EntitlementEvaluator(db, config).has_access(9999) is False

    async def test_free_tier(self, db, config, make_user):
        user = await make_user(usage_count=2)
        assert await EntitlementEvaluator(db, config).has_access(user.id) is True

    async def test_limit_reached_no_subscription(self, db, config, make_user):
        user = await make_user(usage_count=3)
        assert await EntitlementEvaluator(db, config).has_access(user.id) is False

    async def test_active_subscription(self, db, config, make_user, make_subscription):
        user = await make_user(usage_count=10)
        await make_subscription(user, status="active", age=timedelta(days=90))
        assert await EntitlementEvaluator(db, config).has_access(user.id) is True

    async def test_created_grace_window(self, db, config, make_user, make_subscription):
        fresh = await make_user(usage_count=3, email="fresh@example.com")
        stale = await make_user(usage_count=3, email="stale@example.com")
        await make_subscription(fresh, status="created", razorpay_id="sub_fresh", age=timedelta(hours=23))
        await make_subscription(stale, status="created", razorpay_id="sub_stale", age=timedelta(hours=25))

        evaluator = EntitlementEvaluator(db, config)
        assert await evaluator.has_access(fresh.id) is True
        assert await evaluator.has_access(stale.id) is False

    async def test_cancelled_only_is_denied(self, db, config, make_user, make_subscription):
        user = await make_user(usage_count=3)
        await make_subscription(user, status="cancelled")
        assert await EntitlementEvaluator(db, config).has_access(user.id) is False

    async def test_active_beats_newer_stale_created(self, db, config, make_user, make_subscription):
        user = await make_user(usage_count=3)
        await make_subscription(user, status="active", razorpay_id="sub_old", age=timedelta(days=30))
        await make_subscription(user, status="created", razorpay_id="sub_new", age=timedelta(days=2))
        assert await EntitlementEvaluator(db, config).has_access(user.id) is True

    async def test_other_users_subscription_does_not_count(self, db, config, make_user, make_subscription):
        owner = await make_user(usage_count=3, email="owner@example.com")
        other = await make_user(usage_count=3, email="other@example.com")
        await make_subscription(owner, status="active")
        assert await EntitlementEvaluator(db, config).has_access(other.id) is False

    async def test_store_failure_fails_closed(self, config):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked")))
        assert await EntitlementEvaluator(db, config).has_access(1) is False
