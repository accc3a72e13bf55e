"""
TalkToJesus Backend — Route Dependencies
Builds the entitlement-engine services for a request. Tests swap the gateway
through ``app.dependency_overrides[get_gateway]``.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import EntitlementConfig, settings
from app.core.database import get_db
from app.services.billing import RazorpayGateway, get_razorpay_gateway
from app.services.entitlement import EntitlementEvaluator
from app.services.reconciler import SubscriptionReconciler
from app.services.subscriptions import SubscriptionManager
from app.services.usage import UsageCounter


def get_gateway() -> RazorpayGateway:
    return get_razorpay_gateway()


def get_entitlement_config() -> EntitlementConfig:
    return settings.entitlement_config()


def get_evaluator(
    db: AsyncSession = Depends(get_db),
    config: EntitlementConfig = Depends(get_entitlement_config),
) -> EntitlementEvaluator:
    return EntitlementEvaluator(db, config)


def get_usage_counter(db: AsyncSession = Depends(get_db)) -> UsageCounter:
    return UsageCounter(db)


def get_reconciler(
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
    config: EntitlementConfig = Depends(get_entitlement_config),
) -> SubscriptionReconciler:
    return SubscriptionReconciler(db, gateway, config)


def get_subscription_manager(
    db: AsyncSession = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_gateway),
    config: EntitlementConfig = Depends(get_entitlement_config),
) -> SubscriptionManager:
    return SubscriptionManager(db, gateway, config)
