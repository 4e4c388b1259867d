# media router — proxies to the ai collaborators
# chat completion, journal -> image pipeline, narration, journey story
# generated outputs are persisted on the entry for their date

import base64
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response, status

from protagame.dependencies import get_store, require_valid_date
from protagame.models.journal import JournalEntryCreate
from protagame.models.media import (
    ChatRequest,
    ChatResponse,
    GenerateMediaRequest,
    GenerateMediaResponse,
    JourneyStoryRequest,
    JourneyStoryResponse,
    SpeechRequest,
)
from protagame.services import ai_pipeline
from protagame.services.ai_pipeline import (
    ImageTooLargeError,
    PipelineTimeoutError,
    QuotaExceededError,
    SpeechNotConfiguredError,
    UpstreamServiceError,
)
from protagame.services.entry_store import EntryStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["media"])

QUOTA_MESSAGE = "AI service quota or credits exhausted. Please check your plan and try again later."


@router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest):
    """forward one prompt to the chat model"""
    if not body.message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    try:
        reply = await ai_pipeline.chat_completion(body.message, model=body.model)
    except QuotaExceededError:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=QUOTA_MESSAGE)
    except UpstreamServiceError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get AI response",
        )

    return ChatResponse(response=reply)


@router.post("/generate-media", response_model=GenerateMediaResponse)
async def generate_media(body: GenerateMediaRequest, store: EntryStore = Depends(get_store)):
    """journal text -> visual prompt -> image, saved on the entry when a date is given"""
    text = (body.journal_entry or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Journal entry is required")

    date = require_valid_date(body.date) if body.date else None
    logger.info(f"Processing journal entry for {date or 'unknown date'}")

    try:
        result = await ai_pipeline.run_media_pipeline(text)
    except PipelineTimeoutError:
        raise HTTPException(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail="Image generation is taking too long. Please try again - the system will use faster settings.",
        )
    except ImageTooLargeError:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Generated image is too large. Please try again - the system will attempt to generate a smaller image.",
        )

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error or "Media generation failed",
        )

    if date and result.visual_prompt:
        try:
            existing = await store.get_entry_by_date(date)
            if existing is not None and existing.content == text:
                # text already stored, only the generated fields change
                saved = await store.update_generated_media(date, result.visual_prompt, result.media_url)
            else:
                saved = await store.save_entry(JournalEntryCreate(
                    date=date,
                    content=text,
                    visualPrompt=result.visual_prompt,
                    mediaUrl=result.media_url,
                ))
            logger.info(f"Saved generated media for {date} (has image: {bool(saved.media_url)})")
        except Exception as e:
            # the generated media is still returned to the caller
            logger.error(f"Failed to save journal entry with media for {date}: {e}")

    message = (
        "Visual prompt and image generated successfully"
        if result.media_url
        else "Visual prompt generated successfully (image generation may have failed)"
    )
    return GenerateMediaResponse(
        visualPrompt=result.visual_prompt,
        mediaUrl=result.media_url,
        message=message,
    )


@router.post("/text-to-speech")
async def text_to_speech(body: SpeechRequest, store: EntryStore = Depends(get_store)):
    """narrate text as mp3; the audio is attached to an existing entry for the date"""
    text = (body.text or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No text provided")

    date = require_valid_date(body.date) if body.date else None

    try:
        audio = await ai_pipeline.synthesize_speech(text)
    except SpeechNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except QuotaExceededError:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=QUOTA_MESSAGE)
    except UpstreamServiceError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate speech",
        )

    if date:
        try:
            existing = await store.get_entry_by_date(date)
            if existing is not None:
                audio_url = "data:audio/mpeg;base64," + base64.b64encode(audio).decode("ascii")
                await store.save_entry(JournalEntryCreate(
                    date=date,
                    audioUrl=audio_url,
                    audioFormat="mp3",
                    audioGenerated=datetime.now(timezone.utc).isoformat(),
                ))
        except Exception as e:
            logger.error(f"Failed to save audio for {date}: {e}")

    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.post("/journey-story", response_model=JourneyStoryResponse)
async def journey_story(body: JourneyStoryRequest, store: EntryStore = Depends(get_store)):
    """narrative woven from every daily entry, oldest first"""
    try:
        entries = await store.get_all_entries_for_story()
    except Exception as e:
        logger.error(f"Failed to load entries for journey story: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate journey story",
        )

    if not entries.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No journal entries found to create a journey story",
        )

    try:
        story = await ai_pipeline.generate_journey_story(
            entries, genre=body.genre, mood=body.mood, style=body.style, length=body.length,
        )
    except QuotaExceededError:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=QUOTA_MESSAGE)
    except UpstreamServiceError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate journey story",
        )

    return JourneyStoryResponse(story=story, entriesCount=len(entries.split("\n\n")))
