"""
TalkToJesus — Razorpay Webhook Routes
Signature check on the raw body, then hand-off to the reconciler.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError as PayloadError

from app.api.deps import get_reconciler
from app.core.errors import InvalidSignatureError
from app.schemas.schemas import WebhookEnvelope
from app.services.billing import verify_webhook_signature
from app.services.reconciler import SubscriptionReconciler

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/razorpay", include_in_schema=False)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    reconciler: SubscriptionReconciler = Depends(get_reconciler),
):
    """Handle Razorpay webhook events. A storage failure returns 500 so Razorpay retries."""
    body = await request.body()

    if not x_razorpay_signature:
        logger.warning("No Razorpay signature provided in webhook request")
        raise InvalidSignatureError("No signature provided")

    if not verify_webhook_signature(body, x_razorpay_signature):
        raise InvalidSignatureError()

    try:
        envelope = WebhookEnvelope.model_validate_json(body)
        logger.info(f"Razorpay webhook received: {envelope.event}")
        await reconciler.apply_envelope(envelope)
    except PayloadError as e:
        logger.warning(f"Malformed Razorpay webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload")

    return {"received": True}
