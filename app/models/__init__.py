"""TalkToJesus — Database Models"""

from app.models.user import User
from app.models.plan import Plan
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.song import Song

__all__ = ["User", "Plan", "Subscription", "SubscriptionStatus", "Song"]
