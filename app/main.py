"""
TalkToJesus Backend — Main Application
FastAPI server: Google sign-in, voice conversations gated by the
subscription entitlement engine, and Razorpay subscriptions/webhooks.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import engine, Base
from app.core.errors import AppError
from app.api.routes import (
    auth, plans, songs, subscription, webhooks, conversation,
)
from app import models  # noqa: F401  (registers tables on Base.metadata)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Razorpay key: {settings.active_razorpay_key_id[:8] or 'NOT CONFIGURED'}")
    logger.info(f"Free conversations: {settings.FREE_CONVERSATION_LIMIT}")

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Voice conversation API with free-tier allowance and Razorpay "
        "subscriptions."
    ),
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Errors ───────────────────────────────────────────────────────────────────
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        message = exc.public_message
    else:
        message = exc.message
    return JSONResponse(status_code=exc.status_code, content={"message": message})


# ── Routes ───────────────────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(auth.user_router, prefix="/api/user", tags=["Users"])
app.include_router(plans.router, prefix="/api/plans", tags=["Plans"])
app.include_router(songs.router, prefix="/api/songs", tags=["Songs"])
app.include_router(subscription.router, prefix="/api/subscription", tags=["Subscriptions"])
app.include_router(subscription.payment_router, prefix="/api/payment", tags=["Subscriptions"])
app.include_router(webhooks.router, prefix="/api/webhook", tags=["Webhooks"])
app.include_router(conversation.router, prefix="/api/conversation", tags=["Conversation"])


# ── Health Check ─────────────────────────────────────────────────────────────
@app.get("/api/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "app": settings.APP_NAME,
        "message": f"{settings.APP_NAME} API is running!",
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
    }
