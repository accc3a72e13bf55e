"""
TalkToJesus — Conversation Routes
Voice message in, spoken reply out. Gated by the entitlement check and
counted against the free allowance once the reply is ready.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.api.deps import get_evaluator, get_usage_counter
from app.core.config import settings
from app.core.errors import ProviderError
from app.core.prompts import get_system_prompt
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.schemas import ConversationResponse
from app.services.ai_chat import generate_reply
from app.services.entitlement import EntitlementEvaluator
from app.services.speech import synthesize_speech, transcribe_audio
from app.services.usage import UsageCounter

logger = logging.getLogger(__name__)
router = APIRouter()

GENERIC_AUDIO_TYPES = {"application/octet-stream"}


def _is_audio(content_type: str) -> bool:
    content_type = (content_type or "").lower()
    return content_type.startswith("audio/") or content_type in GENERIC_AUDIO_TYPES


@router.post(
    "/send-message",
    response_model=ConversationResponse,
    summary="Send a voice message",
    description="Upload an audio message and receive the transcribed text, the reply and the reply audio.",
)
async def send_message(
    audio: UploadFile = File(...),
    language: str = Form("en"),
    current_user: User = Depends(get_current_user),
    evaluator: EntitlementEvaluator = Depends(get_evaluator),
    usage: UsageCounter = Depends(get_usage_counter),
):
    user_id = current_user.id

    if not _is_audio(audio.content_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {audio.content_type}. Only audio files are allowed.",
        )

    content = await audio.read()
    if len(content) > settings.MAX_AUDIO_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Audio file must be less than {settings.MAX_AUDIO_UPLOAD_MB}MB",
        )

    if not await evaluator.has_access(user_id):
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="You have exceeded the free tier limit. Please subscribe to continue talking to Jesus.",
        )

    try:
        transcribed = await transcribe_audio(content, audio.filename or "audio.wav")
    except ProviderError as e:
        logger.error(f"Transcription failed for user {user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    if not transcribed or not transcribed.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not transcribe audio. Please try again with clearer audio.",
        )

    reply = await generate_reply(transcribed, get_system_prompt(language))

    audio_data = await synthesize_speech(reply)
    if not audio_data:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate speech",
        )

    count = await usage.increment(user_id)
    logger.info(f"Conversation completed for user {user_id} (count={count})")

    return ConversationResponse(
        user_message=transcribed,
        assistant_text=reply,
        assistant_audio=audio_data,
        conversation_count=count,
    )
