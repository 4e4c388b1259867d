# ai pipeline — black-box proxies to the generation services
#
#   chat completion:  langchain prompt | gemini | str parser
#   visual prompt:    journal text -> structured VisualPrompt (json reply)
#   image:            openrouter chat-completions image modality, progressive sizes
#   speech:           elevenlabs text-to-speech rest endpoint
#
# the entry store only ever sees the outputs (visualPrompt, mediaUrl, audio
# fields); nothing here writes to storage.

import asyncio
import json
import logging
from typing import Optional

import httpx
from langchain_core.output_parsers import StrOutputParser
from langchain_google_genai import ChatGoogleGenerativeAI

from protagame.config import settings
from protagame.models.journal import VisualPrompt
from protagame.models.media import MediaGenerationResult
from protagame.services.prompts import (
    CHAT_PROMPT,
    JOURNEY_STORY_PROMPT,
    STORY_LENGTH_HINTS,
    VISUAL_PROMPT,
    image_generation_prompt,
)

logger = logging.getLogger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
ELEVENLABS_PLACEHOLDER_KEY = "sk_your_actual_elevenlabs_api_key_here"

# progressive image settings — best quality first, smaller/faster on failure
IMAGE_ATTEMPTS = [
    {"image_size": "1024x1024", "quality": "standard"},
    {"image_size": "768x768", "quality": "standard"},
    {"image_size": "512x512", "quality": "draft"},
]

# error message fragments that mean the account is out of quota/credits
QUOTA_MARKERS = ("quota", "credit", "402", "429", "resource_exhausted", "insufficient")

DEFAULT_VISUAL_STYLE = {
    "mood": "contemplative",
    "colorPalette": "muted tones",
    "cinematicStyle": "steady shot",
    "duration": "gentle loop",
}


class PipelineError(Exception):
    """base class for ai collaborator failures"""


class UpstreamServiceError(PipelineError):
    """generation service returned an error"""


class QuotaExceededError(UpstreamServiceError):
    """generation service rejected the call for quota/credit exhaustion"""


class ImageTooLargeError(PipelineError):
    """generated image exceeded the payload ceiling — retry may pick a smaller size"""


class PipelineTimeoutError(PipelineError):
    """media pipeline did not finish before its deadline"""


class SpeechNotConfiguredError(PipelineError):
    """no elevenlabs api key configured"""


def classify_upstream_error(error: Exception) -> UpstreamServiceError:
    """map a raw provider error to quota-exhausted vs generic failure"""
    message = str(error)
    if any(marker in message.lower() for marker in QUOTA_MARKERS):
        return QuotaExceededError(message)
    return UpstreamServiceError(message or error.__class__.__name__)


def get_llm(model: Optional[str] = None, temperature: float = 0.7) -> ChatGoogleGenerativeAI:
    """create a gemini llm instance"""
    return ChatGoogleGenerativeAI(
        model=model or settings.GEMINI_MODEL,
        google_api_key=settings.GEMINI_API_KEY,
        temperature=temperature,
        max_output_tokens=4096,
    )


async def chat_completion(message: str, model: Optional[str] = None) -> str:
    """send one prompt to the chat model and return its text reply"""
    chain = CHAT_PROMPT | get_llm(model) | StrOutputParser()
    try:
        return await chain.ainvoke({"message": message})
    except Exception as e:
        logger.error(f"Chat completion failed: {e}")
        raise classify_upstream_error(e) from e


def parse_visual_prompt(raw: str) -> VisualPrompt:
    """parse the model's json reply; fall back to default styling for plain text"""
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
        text = text.strip()

    try:
        data = json.loads(text)
        if isinstance(data, dict) and data.get("visualPrompt"):
            return VisualPrompt.model_validate({**DEFAULT_VISUAL_STYLE, **data})
    except (ValueError, TypeError):
        pass

    logger.info("Visual prompt reply was not json, using default styling")
    return VisualPrompt.model_validate({"visualPrompt": raw.strip(), **DEFAULT_VISUAL_STYLE})


async def generate_visual_prompt(journal_entry: str) -> Optional[VisualPrompt]:
    """step 1: journal text -> cinematic visual prompt. None on failure."""
    chain = VISUAL_PROMPT | get_llm(temperature=0.7) | StrOutputParser()
    try:
        raw = await chain.ainvoke({"journal_entry": journal_entry})
    except Exception as e:
        logger.error(f"Visual prompt generation failed: {e}")
        return None

    if not raw or not raw.strip():
        return None
    return parse_visual_prompt(raw)


def estimate_data_uri_bytes(image_url: str) -> Optional[int]:
    """approximate decoded size of a base64 data uri, None for plain urls"""
    if not image_url.startswith("data:image/"):
        return None
    _, _, payload = image_url.partition(",")
    return int(len(payload) * 0.75)


def check_image_size(image_url: str) -> None:
    """raise ImageTooLargeError when a data uri exceeds MAX_IMAGE_SIZE_MB"""
    size = estimate_data_uri_bytes(image_url)
    if size is None:
        return
    limit = settings.MAX_IMAGE_SIZE_MB * 1024 * 1024
    logger.info(f"Image size estimate: {size / 1024 / 1024:.2f} MB")
    if size > limit:
        raise ImageTooLargeError(f"Generated image too large ({size / 1024 / 1024:.2f} MB)")


def _extract_image_url(result: dict) -> Optional[str]:
    choices = result.get("choices") or []
    if not choices:
        return None
    images = choices[0].get("message", {}).get("images") or []
    if not images:
        return None
    return (images[0].get("image_url") or {}).get("url")


async def _attempt_image_generation(client: httpx.AsyncClient, image_prompt: str, attempt: dict) -> Optional[str]:
    """one image request at a given size. None on api error or timeout."""
    size = attempt["image_size"]
    try:
        response = await client.post(
            f"{settings.OPENROUTER_BASE_URL}/chat/completions",
            headers={
                "Authorization": f"Bearer {settings.OPENROUTER_API_KEY}",
                "HTTP-Referer": settings.SITE_URL,
                "X-Title": settings.SITE_NAME,
            },
            json={
                "model": settings.IMAGE_MODEL,
                "messages": [{"role": "user", "content": image_prompt}],
                "modalities": ["image", "text"],
                "max_tokens": 2048,
                "temperature": 0.7,
                "extra": {**attempt, "steps": 20, "guidance_scale": 3.5},
            },
        )
    except httpx.TimeoutException:
        logger.warning(f"Image generation timed out ({size})")
        return None
    except httpx.HTTPError as e:
        logger.error(f"Image generation request failed ({size}): {e}")
        return None

    if response.status_code == 413:
        raise ImageTooLargeError(f"Image model returned 413 ({size})")
    if response.status_code >= 400:
        logger.error(f"Image API error ({size}): {response.status_code} {response.text[:200]}")
        return None

    image_url = _extract_image_url(response.json())
    if not image_url:
        logger.error(f"No image data found in response ({size})")
        return None

    check_image_size(image_url)
    return image_url


async def generate_image(visual_prompt: VisualPrompt) -> Optional[str]:
    """step 2: visual prompt -> image reference.

    tries each size in IMAGE_ATTEMPTS until one succeeds. returns None when
    every attempt fails; raises ImageTooLargeError when the failures were
    oversized results.
    """
    image_prompt = image_generation_prompt(
        visual_prompt.visual_prompt,
        visual_prompt.mood,
        visual_prompt.color_palette,
        visual_prompt.cinematic_style,
    )

    oversized: Optional[ImageTooLargeError] = None
    async with httpx.AsyncClient(timeout=settings.IMAGE_ATTEMPT_TIMEOUT_SECONDS) as client:
        for i, attempt in enumerate(IMAGE_ATTEMPTS, start=1):
            logger.info(f"Image attempt {i}/{len(IMAGE_ATTEMPTS)} at {attempt['image_size']}")
            try:
                image_url = await _attempt_image_generation(client, image_prompt, attempt)
            except ImageTooLargeError as e:
                logger.warning(f"Image rejected: {e}")
                oversized = e
                continue
            if image_url:
                return image_url

    if oversized is not None:
        raise oversized
    logger.error("All image generation attempts failed")
    return None


async def process_journal_entry(journal_entry: str) -> MediaGenerationResult:
    """complete pipeline: journal text -> visual prompt -> image"""
    visual_prompt = await generate_visual_prompt(journal_entry)
    if visual_prompt is None:
        return MediaGenerationResult(success=False, error="Failed to generate visual prompt")

    media_url = await generate_image(visual_prompt)
    return MediaGenerationResult(success=True, visualPrompt=visual_prompt, mediaUrl=media_url)


async def run_media_pipeline(journal_entry: str, timeout: Optional[float] = None) -> MediaGenerationResult:
    """process_journal_entry under a hard deadline"""
    deadline = timeout if timeout is not None else settings.MEDIA_PIPELINE_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(process_journal_entry(journal_entry), timeout=deadline)
    except asyncio.TimeoutError:
        raise PipelineTimeoutError(f"AI pipeline timeout after {deadline:.0f}s") from None


async def generate_journey_story(entries: str, genre: str, mood: str, style: str, length: str = "long") -> str:
    """weave the chronological entry text into one narrative"""
    chain = JOURNEY_STORY_PROMPT | get_llm(temperature=0.8) | StrOutputParser()
    try:
        return await chain.ainvoke({
            "genre": genre,
            "mood": mood,
            "style": style,
            "length_hint": STORY_LENGTH_HINTS.get(length, STORY_LENGTH_HINTS["long"]),
            "entries": entries,
        })
    except Exception as e:
        logger.error(f"Journey story generation failed: {e}")
        raise classify_upstream_error(e) from e


async def synthesize_speech(text: str) -> bytes:
    """text -> mp3 bytes via elevenlabs"""
    api_key = settings.ELEVENLABS_API_KEY
    if not api_key or api_key == ELEVENLABS_PLACEHOLDER_KEY:
        raise SpeechNotConfiguredError("ElevenLabs API key not configured. Please add your API key to .env")

    url = ELEVENLABS_TTS_URL.format(voice_id=settings.ELEVENLABS_VOICE_ID)
    try:
        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                url,
                params={"output_format": "mp3_44100_128"},
                headers={"xi-api-key": api_key, "Accept": "audio/mpeg"},
                json={"text": text, "model_id": settings.ELEVENLABS_MODEL},
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(f"Text-to-speech failed: {e.response.status_code} {e.response.text[:200]}")
        raise classify_upstream_error(e) from e
    except httpx.HTTPError as e:
        logger.error(f"Text-to-speech request failed: {e}")
        raise UpstreamServiceError(str(e)) from e

    return response.content
