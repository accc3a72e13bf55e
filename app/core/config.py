"""
TalkToJesus Backend — Configuration
Standalone settings with Razorpay dual-environment (dev/prod) credentials.
"""
from dataclasses import dataclass
from datetime import timedelta

from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class EntitlementConfig:
    """Knobs the entitlement engine is built with.

    Passed explicitly to the evaluator and reconciler so neither reads
    ``settings`` from inside its logic.
    """
    free_limit: int = 3
    grace_window: timedelta = timedelta(hours=24)
    subscription_total_count: int = 12
    subscription_quantity: int = 1


class Settings(BaseSettings):
    # ── Application ──────────────────────────────────────────────────────
    APP_NAME: str = "TalkToJesus"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # "development" or "production"
    DEBUG: bool = False
    CORS_ORIGINS: str = "*"

    # ── Database ─────────────────────────────────────────────────────────
    DATABASE_URL: str = "postgresql+asyncpg://talktojesus:changeme@db:5432/talktojesus"

    # ── Auth / JWT ───────────────────────────────────────────────────────
    JWT_SECRET: str = "change-me-in-production-use-openssl-rand-hex-32"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 70

    # ── Google Sign-In ───────────────────────────────────────────────────
    GOOGLE_CLIENT_ID_WEB: str = ""
    GOOGLE_CLIENT_ID_IOS: str = ""
    GOOGLE_CLIENT_ID_ANDROID: str = ""

    # ── OpenAI (Whisper + chat) ──────────────────────────────────────────
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_MAX_TOKENS: int = 800
    OPENAI_TEMPERATURE: float = 0.7
    WHISPER_MODEL: str = "whisper-1"

    # ── ElevenLabs TTS ───────────────────────────────────────────────────
    ELEVENLABS_API_KEY: str = ""
    ELEVENLABS_VOICE_ID: str = ""
    ELEVENLABS_MODEL: str = "eleven_multilingual_v2"
    ELEVENLABS_BASE_URL: str = "https://api.elevenlabs.io/v1"

    # ── Razorpay Dual-Environment Billing ────────────────────────────────
    RAZORPAY_KEY_ID_DEV: str = ""
    RAZORPAY_KEY_SECRET_DEV: str = ""
    RAZORPAY_WEBHOOK_SECRET_DEV: str = ""

    RAZORPAY_KEY_ID_PROD: str = ""
    RAZORPAY_KEY_SECRET_PROD: str = ""
    RAZORPAY_WEBHOOK_SECRET_PROD: str = ""

    # ── Entitlements ─────────────────────────────────────────────────────
    FREE_CONVERSATION_LIMIT: int = 3
    NEW_SUBSCRIPTION_GRACE_HOURS: int = 24
    SUBSCRIPTION_TOTAL_COUNT: int = 12  # 12 monthly cycles

    # ── Uploads / outbound HTTP ──────────────────────────────────────────
    MAX_AUDIO_UPLOAD_MB: int = 10
    HTTP_TIMEOUT_SECONDS: int = 60

    # ── Environment Helper Properties ────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def active_razorpay_key_id(self) -> str:
        if self.is_production:
            return self.RAZORPAY_KEY_ID_PROD
        return self.RAZORPAY_KEY_ID_DEV

    @property
    def active_razorpay_key_secret(self) -> str:
        if self.is_production:
            return self.RAZORPAY_KEY_SECRET_PROD
        return self.RAZORPAY_KEY_SECRET_DEV

    @property
    def active_razorpay_webhook_secret(self) -> str:
        if self.is_production:
            return self.RAZORPAY_WEBHOOK_SECRET_PROD
        return self.RAZORPAY_WEBHOOK_SECRET_DEV

    @property
    def google_client_ids(self) -> list:
        return [
            cid for cid in (
                self.GOOGLE_CLIENT_ID_WEB,
                self.GOOGLE_CLIENT_ID_IOS,
                self.GOOGLE_CLIENT_ID_ANDROID,
            ) if cid
        ]

    def entitlement_config(self) -> EntitlementConfig:
        return EntitlementConfig(
            free_limit=self.FREE_CONVERSATION_LIMIT,
            grace_window=timedelta(hours=self.NEW_SUBSCRIPTION_GRACE_HOURS),
            subscription_total_count=self.SUBSCRIPTION_TOTAL_COUNT,
        )

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
