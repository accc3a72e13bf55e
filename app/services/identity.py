"""
TalkToJesus Backend — Identity Service
Google Sign-In token verification and create-or-get of the local user.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import commit
from app.core.errors import ProviderError, ValidationError
from app.models.user import User

logger = logging.getLogger(__name__)


def _verify_with_client_ids(token: str, client_ids: List[str]) -> Optional[dict]:
    request = google_requests.Request()
    for client_id in client_ids:
        try:
            payload = id_token.verify_oauth2_token(token, request, audience=client_id)
        except ValueError:
            continue
        except GoogleAuthError as e:
            # certificate fetch or transport failure, not a bad token
            logger.error(f"Google token verification failed: {e}")
            raise ProviderError(f"Google token verification failed: {e}") from e
        if payload and payload.get("email"):
            logger.info(f"Google token verified for client {client_id[:12]}...")
            return payload
    return None


async def verify_google_token(token: str, client_ids: List[str]) -> dict:
    """Claims of a Google ID token valid for any of the web/iOS/Android client IDs."""
    payload = await asyncio.to_thread(_verify_with_client_ids, token, client_ids)
    if payload is None:
        logger.warning("Invalid Google token - could not verify with any client ID")
        raise ValidationError("Invalid Google token")
    return payload


async def create_or_get_user(db: AsyncSession, claims: dict) -> User:
    """Existing user by email (login time refreshed) or a new one with usage_count 0."""
    email = claims["email"]
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    now = datetime.now(timezone.utc)

    if user:
        logger.info(f"Existing user {user.id} signed in")
        user.last_login_at = now
    else:
        logger.info("Creating new user from Google sign-in")
        user = User(
            email=email,
            display_name=claims.get("name"),
            photo_url=claims.get("picture"),
            usage_count=0,
            last_login_at=now,
        )
        db.add(user)

    await commit(db, "user sign-in")
    await db.refresh(user)
    return user
