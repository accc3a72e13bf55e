"""
TalkToJesus — Auth Routes
Google Sign-In exchange and the current-user profile.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import create_access_token, get_current_user
from app.models.user import User
from app.schemas.schemas import GoogleLoginRequest, TokenResponse, UserResponse
from app.services.identity import create_or_get_user, verify_google_token

router = APIRouter()
user_router = APIRouter()


@router.post(
    "/create-or-get-user",
    response_model=TokenResponse,
    summary="Sign in with Google",
    description="Verify a Google ID token, create the account on first sign-in and return an API token.",
)
async def create_or_get_user_handler(
    request: GoogleLoginRequest,
    db: AsyncSession = Depends(get_db),
):
    claims = await verify_google_token(request.token, settings.google_client_ids)
    user = await create_or_get_user(db, claims)
    token = create_access_token(data={"sub": str(user.id)})
    return TokenResponse(user=UserResponse.model_validate(user), token=token)


@user_router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
