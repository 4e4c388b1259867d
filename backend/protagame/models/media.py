# media models — payloads for the ai collaborator endpoints
# chat, media generation, narration, journey story, migration

from typing import Optional
from pydantic import BaseModel, Field

from protagame.models.journal import VisualPrompt


class ChatRequest(BaseModel):
    message: Optional[str] = None
    model: Optional[str] = None


class ChatResponse(BaseModel):
    response: str


class GenerateMediaRequest(BaseModel):
    journal_entry: Optional[str] = Field(None, alias="journalEntry")
    date: Optional[str] = None
    genre: Optional[str] = None

    model_config = {"populate_by_name": True}


class MediaGenerationResult(BaseModel):
    """outcome of the journal -> visual prompt -> image pipeline"""
    success: bool
    visual_prompt: Optional[VisualPrompt] = Field(None, alias="visualPrompt")
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    error: Optional[str] = None

    model_config = {"populate_by_name": True}


class GenerateMediaResponse(BaseModel):
    success: bool = True
    visual_prompt: Optional[VisualPrompt] = Field(None, alias="visualPrompt")
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    message: str

    model_config = {"populate_by_name": True}


class SpeechRequest(BaseModel):
    text: Optional[str] = None
    date: Optional[str] = None


class JourneyStoryRequest(BaseModel):
    genre: str = "adventure"
    mood: str = "hopeful"
    style: str = "literary"
    length: str = "long"


class JourneyStoryResponse(BaseModel):
    success: bool = True
    story: str
    entries_count: int = Field(0, alias="entriesCount")

    model_config = {"populate_by_name": True}


class MigrationResponse(BaseModel):
    success: bool = True
    migrated: int = 0
    errors: int = 0
    message: str = "Journal data migration completed successfully"
