"""
TalkToJesus — Speech Service
Whisper transcription in, ElevenLabs synthesis out.
"""

import base64
import logging
import re
from typing import Optional

import httpx

from app.core.config import settings
from app.core.errors import ProviderError

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPES = {
    ".m4a": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
}

EMOTION_TAG_PATTERN = re.compile(
    r"\[(gentle|warmly|soothing|confidently|reverently|encouragingly|authoritative|compassionate|"
    r"loving|prayerful|encouraging|gently|caringly|peacefully|hopefully)\]",
    re.IGNORECASE,
)

# Telugu keywords -> delivery tags
EMOTION_KEYWORDS = [
    (("ప్రేమ", "ప్రియుడా", "బిడ్డ"), ("[warmly]", "[caringly]")),
    (("ఆదరించు", "ఆదుకో", "సాంత్వన"), ("[gentle]", "[gently]")),
    (("ప్రార్థన", "దీవెన", "ఆశీర్వాద"), ("[reverently]",)),
    (("ధైర్యం", "ఆశ", "ఉత్సాహ"), ("[encouragingly]", "[hopefully]")),
]


def content_type_for(filename: str) -> str:
    lowered = (filename or "").lower()
    for ext, content_type in AUDIO_CONTENT_TYPES.items():
        if lowered.endswith(ext):
            return content_type
    return "audio/wav"


def add_emotional_tags(text: str) -> str:
    """Prefix delivery tags for the TTS model unless the text already has some."""
    if not text or EMOTION_TAG_PATTERN.search(text):
        return text

    tags = []
    for keywords, keyword_tags in EMOTION_KEYWORDS:
        if any(k in text for k in keywords):
            tags.extend(t for t in keyword_tags if t not in tags)
    if not tags:
        tags = ["[warmly]", "[gentle]"]
    return f"{' '.join(tags)} {text}"


async def transcribe_audio(audio: bytes, filename: str) -> str:
    """Send audio to Whisper and return the transcribed text."""
    if not settings.OPENAI_API_KEY:
        raise ProviderError("OPENAI_API_KEY is not configured")

    content_type = content_type_for(filename)
    logger.info(f"Sending audio to Whisper ({filename}, {content_type})")

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        try:
            response = await client.post(
                f"{settings.OPENAI_BASE_URL}/audio/transcriptions",
                headers={"Authorization": f"Bearer {settings.OPENAI_API_KEY}"},
                files={"file": (filename, audio, content_type)},
                data={"model": settings.WHISPER_MODEL},
            )
        except httpx.HTTPError as e:
            logger.error(f"Whisper request failed: {e}")
            raise ProviderError(f"Transcription failed: {e}") from e

    if response.status_code != 200:
        message = response.text
        try:
            message = response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            pass
        logger.error(f"Whisper API error {response.status_code}: {message}")
        raise ProviderError(f"Transcription failed: {message}")

    text = response.json().get("text", "")
    logger.info(f"Audio transcribed: {len(text)} chars")
    return text


async def synthesize_speech(text: str) -> Optional[str]:
    """ElevenLabs audio as a ``data:audio/mpeg;base64`` URI, or None when unavailable."""
    if not settings.ELEVENLABS_API_KEY:
        logger.warning("ElevenLabs API key not configured, skipping TTS")
        return None

    payload = {
        "text": add_emotional_tags(text),
        "model_id": settings.ELEVENLABS_MODEL,
        "voice_settings": {
            "stability": 0.5,
            "similarity_boost": 0.5,
            "style": 0.6,
            "use_speaker_boost": True,
        },
    }
    headers = {
        "Accept": "audio/mpeg",
        "Content-Type": "application/json",
        "xi-api-key": settings.ELEVENLABS_API_KEY,
    }

    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.post(
                f"{settings.ELEVENLABS_BASE_URL}/text-to-speech/{settings.ELEVENLABS_VOICE_ID}",
                headers=headers,
                json=payload,
            )
    except httpx.HTTPError as e:
        logger.error(f"Error generating speech: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"ElevenLabs API error {response.status_code}: {response.text[:200]}")
        return None

    logger.info("Speech generated successfully")
    return f"data:audio/mpeg;base64,{base64.b64encode(response.content).decode('utf-8')}"
