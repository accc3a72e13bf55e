"""
TalkToJesus Backend — Pydantic Schemas
Request/response models plus the typed view of Razorpay payloads.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.subscription import SubscriptionStatus

logger = logging.getLogger(__name__)


# ── Razorpay payloads ────────────────────────────────────────────────────────
class ProviderSubscription(BaseModel):
    """A Razorpay subscription entity, from an API response or a webhook.

    Timestamps are Unix seconds. ``status`` is None when the provider sent a
    value outside the known set.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    status: Optional[SubscriptionStatus] = None
    current_start: Optional[int] = None
    current_end: Optional[int] = None
    charge_at: Optional[int] = None
    start_at: Optional[int] = None
    end_at: Optional[int] = None
    ended_at: Optional[int] = None
    quantity: Optional[int] = None
    total_count: Optional[int] = None
    paid_count: Optional[int] = None

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value):
        if value is None:
            return None
        status = SubscriptionStatus.parse(value)
        if status is None:
            logger.warning(f"Ignoring unrecognised subscription status from provider: {value!r}")
        return status


class WebhookEnvelope(BaseModel):
    """``{event, payload: {subscription: {entity: {...}}}}``"""
    model_config = ConfigDict(extra="allow")

    event: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict)

    def subscription_entity(self) -> Optional[ProviderSubscription]:
        raw = self.payload.get("subscription") if isinstance(self.payload, dict) else None
        if isinstance(raw, dict) and "entity" in raw:
            raw = raw["entity"]
        if not isinstance(raw, dict):
            return None
        return ProviderSubscription.model_validate(raw)


# ── Auth / Users ─────────────────────────────────────────────────────────────
class GoogleLoginRequest(BaseModel):
    token: str = Field(min_length=1, description="Google Sign-In ID token")


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str]
    photo_url: Optional[str]
    usage_count: int
    created_at: datetime
    last_login_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    user: UserResponse
    token: str


# ── Plans ────────────────────────────────────────────────────────────────────
class PlanResponse(BaseModel):
    id: int
    name: str
    price: int
    razorpay_plan_id: Optional[str]
    interval: int
    period: str
    cycles: int
    is_prod: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ── Songs ────────────────────────────────────────────────────────────────────
class SongResponse(BaseModel):
    id: int
    title: str
    duration: Optional[str]
    image_url: Optional[str]
    audio_url: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SongPage(BaseModel):
    data: List[SongResponse]
    count: int


# ── Subscriptions ────────────────────────────────────────────────────────────
class CreateSubscriptionRequest(BaseModel):
    plan_id: int


class SubscriptionRecord(BaseModel):
    id: int
    user_id: int
    plan_id: Optional[int]
    razorpay_subscription_id: str
    status: str
    current_start: Optional[int]
    current_end: Optional[int]
    charge_at: Optional[int]
    start_at: Optional[int]
    end_at: Optional[int]
    last_charged_at: Optional[int]
    quantity: int
    total_count: int
    paid_count: int
    created_at: datetime
    updated_at: datetime
    plan: Optional[PlanResponse] = None

    model_config = ConfigDict(from_attributes=True)


class SubscriptionWithProvider(SubscriptionRecord):
    razorpay_subscription: Optional[Dict[str, Any]] = None


class CreatedSubscriptionResponse(SubscriptionWithProvider):
    razorpay_key_id: str


class CurrentSubscriptionResponse(BaseModel):
    subscription: Optional[SubscriptionWithProvider]


# ── Conversation ─────────────────────────────────────────────────────────────
class ConversationResponse(BaseModel):
    success: bool = True
    user_message: str
    assistant_text: str
    assistant_audio: str
    conversation_count: int
