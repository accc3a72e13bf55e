"""
TalkToJesus Backend — Billing Service
Razorpay dual-environment (dev/prod) integration: subscription API calls and
webhook signature verification.
"""
import asyncio
import hashlib
import hmac
import logging
from typing import Optional, Tuple, Union

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError

from app.core.config import settings
from app.core.errors import ProviderError
from app.schemas.schemas import ProviderSubscription

logger = logging.getLogger(__name__)

_PROVIDER_ERRORS = (
    BadRequestError,
    GatewayError,
    ServerError,
    requests.exceptions.RequestException,
)


class RazorpayGateway:
    """Thin async wrapper over the synchronous Razorpay client.

    Every call returns ``(parsed, raw)``: the typed ProviderSubscription and the
    provider's raw dict. SDK and network failures surface as ProviderError.
    """

    def __init__(self, key_id: str, key_secret: str, client: Optional[razorpay.Client] = None):
        self.key_id = key_id
        self._client = client or razorpay.Client(auth=(key_id, key_secret))

    async def _call(self, action: str, func, *args) -> Tuple[ProviderSubscription, dict]:
        try:
            raw = await asyncio.to_thread(func, *args)
        except _PROVIDER_ERRORS as e:
            logger.error(f"Razorpay {action} failed: {e}")
            raise ProviderError(f"Razorpay {action} failed: {e}") from e
        return ProviderSubscription.model_validate(raw), raw

    async def create_subscription(
        self, plan_ref: str, quantity: int, total_count: int
    ) -> Tuple[ProviderSubscription, dict]:
        data = {
            "plan_id": plan_ref,
            "customer_notify": 1,
            "quantity": quantity,
            "total_count": total_count,
        }
        logger.info(f"Creating Razorpay subscription for plan {plan_ref}")
        return await self._call("subscription create", self._client.subscription.create, data)

    async def fetch_subscription(self, subscription_id: str) -> Tuple[ProviderSubscription, dict]:
        return await self._call("subscription fetch", self._client.subscription.fetch, subscription_id)

    async def cancel_subscription(
        self, subscription_id: str, immediate: bool = True
    ) -> Tuple[ProviderSubscription, dict]:
        data = {"cancel_at_cycle_end": 0 if immediate else 1}
        return await self._call("subscription cancel", self._client.subscription.cancel, subscription_id, data)


def get_razorpay_gateway() -> RazorpayGateway:
    """Gateway for the credentials of the running environment."""
    return RazorpayGateway(settings.active_razorpay_key_id, settings.active_razorpay_key_secret)


def sign_payload(payload: Union[bytes, str], secret: str) -> str:
    """HMAC-SHA256 hex digest of ``payload`` keyed with ``secret``."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_webhook_signature(
    raw_body: Union[bytes, str],
    signature: Optional[str],
    secret: Optional[str] = None,
) -> bool:
    """Check an ``X-Razorpay-Signature`` header against the raw request body.

    Returns False instead of raising for a missing, malformed or wrong-length
    signature. The comparison runs in constant time.
    """
    try:
        secret = settings.active_razorpay_webhook_secret if secret is None else secret
        if not secret or not signature:
            logger.warning("Webhook signature or secret missing")
            return False

        expected = sign_payload(raw_body, secret).encode("ascii")
        provided = signature.encode("ascii")
        if len(provided) != len(expected):
            logger.warning("Webhook signature length mismatch")
            return False

        is_valid = hmac.compare_digest(provided, expected)
        if not is_valid:
            logger.warning("Invalid webhook signature")
        return is_valid
    except Exception as e:
        logger.error(f"Error verifying webhook signature: {e}")
        return False
