"""
TalkToJesus — Subscription Routes
Razorpay subscription purchase, lookup and cancellation.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_subscription_manager
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.schemas import (
    CreateSubscriptionRequest,
    CreatedSubscriptionResponse,
    CurrentSubscriptionResponse,
    SubscriptionRecord,
    SubscriptionWithProvider,
)
from app.services.subscriptions import SubscriptionManager, SubscriptionResult

logger = logging.getLogger(__name__)
router = APIRouter()
payment_router = APIRouter()


def _with_provider(result: SubscriptionResult, model=SubscriptionWithProvider, **extra):
    record = SubscriptionRecord.model_validate(result.subscription).model_dump()
    return model(**record, razorpay_subscription=result.razorpay_subscription, **extra)


@router.post(
    "/create",
    response_model=CreatedSubscriptionResponse,
    summary="Create subscription",
    description="Create a 12-cycle Razorpay subscription for a plan. The response carries the key id the client needs to complete payment.",
)
async def create_subscription(
    request: CreateSubscriptionRequest,
    current_user: User = Depends(get_current_user),
    manager: SubscriptionManager = Depends(get_subscription_manager),
):
    logger.info(f"Creating subscription for user {current_user.id} on plan {request.plan_id}")
    result = await manager.create(request.plan_id, current_user.id)
    return _with_provider(result, CreatedSubscriptionResponse, razorpay_key_id=result.razorpay_key_id)


# Older clients still call /payment/create-order
payment_router.add_api_route(
    "/create-order",
    create_subscription,
    methods=["POST"],
    response_model=CreatedSubscriptionResponse,
    summary="Create subscription (legacy path)",
)


@router.get(
    "/current",
    response_model=CurrentSubscriptionResponse,
    summary="Get current subscription",
    description="Latest subscription, refreshed from Razorpay; the stored copy is returned if Razorpay is unreachable.",
)
async def get_current_subscription(
    current_user: User = Depends(get_current_user),
    manager: SubscriptionManager = Depends(get_subscription_manager),
):
    user_id = current_user.id
    result = await manager.get_current(user_id)
    if result is None:
        return CurrentSubscriptionResponse(subscription=None)
    return CurrentSubscriptionResponse(subscription=_with_provider(result))


@router.post(
    "/cancel",
    response_model=CurrentSubscriptionResponse,
    summary="Cancel subscription",
    description="Cancel the latest subscription immediately in Razorpay and mirror the result locally.",
)
async def cancel_subscription(
    current_user: User = Depends(get_current_user),
    manager: SubscriptionManager = Depends(get_subscription_manager),
):
    user_id = current_user.id
    subscription = await manager.latest(user_id)
    if not subscription or not subscription.razorpay_subscription_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active subscription found")

    result = await manager.cancel(subscription.razorpay_subscription_id, user_id)
    return CurrentSubscriptionResponse(subscription=_with_provider(result))
