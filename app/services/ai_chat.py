"""
TalkToJesus — AI Chat Service
OpenAI chat completion for conversation replies.
"""

import logging

import httpx

from app.core.config import settings
from app.core.errors import ProviderError

logger = logging.getLogger(__name__)

EMPTY_REPLY = "No response from OpenAI API"


async def generate_reply(message: str, system_prompt: str) -> str:
    """Reply text for ``message`` under ``system_prompt``."""
    if not settings.OPENAI_API_KEY:
        raise ProviderError("OPENAI_API_KEY is not configured")

    body = {
        "model": settings.OPENAI_MODEL,
        "max_tokens": settings.OPENAI_MAX_TOKENS,
        "temperature": settings.OPENAI_TEMPERATURE,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ],
    }
    headers = {
        "Authorization": f"Bearer {settings.OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        try:
            response = await client.post(
                f"{settings.OPENAI_BASE_URL}/chat/completions",
                headers=headers,
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"Error calling OpenAI API: {e}")
            raise ProviderError(f"OpenAI request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"OpenAI API error {response.status_code}: {response.text[:200]}")
        raise ProviderError(f"OpenAI API error: {response.status_code}")

    data = response.json()
    usage = data.get("usage")
    if usage:
        logger.info(
            f"OpenAI usage: prompt={usage.get('prompt_tokens')} "
            f"completion={usage.get('completion_tokens')} total={usage.get('total_tokens')}"
        )

    try:
        return data["choices"][0]["message"]["content"] or EMPTY_REPLY
    except (KeyError, IndexError, TypeError):
        return EMPTY_REPLY
