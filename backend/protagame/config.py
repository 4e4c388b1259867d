# backend configuration
# loads env vars for mongodb, storage backend, gemini, openrouter, elevenlabs

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "protagame")
    JOURNAL_COLLECTION: str = "journal_entries"

    # entry store backend: "mongo" or "file"
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "mongo")
    JOURNAL_DATA_DIR: str = os.getenv("JOURNAL_DATA_DIR", "data/journal")

    # gemini (chat completion + visual prompts)
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # openrouter (image generation)
    OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    IMAGE_MODEL: str = os.getenv("IMAGE_MODEL", "black-forest-labs/flux.2-klein-4b")
    SITE_URL: str = os.getenv("SITE_URL", "http://localhost:3000")
    SITE_NAME: str = os.getenv("SITE_NAME", "ProtagaMe")

    # elevenlabs (narration)
    ELEVENLABS_API_KEY: str = os.getenv("ELEVENLABS_API_KEY", "")
    ELEVENLABS_VOICE_ID: str = os.getenv("ELEVENLABS_VOICE_ID", "56AoDkrOh6qfVPDXZ7Pt")
    ELEVENLABS_MODEL: str = "eleven_multilingual_v2"

    # media pipeline limits
    MEDIA_PIPELINE_TIMEOUT_SECONDS: float = 45.0
    IMAGE_ATTEMPT_TIMEOUT_SECONDS: float = 30.0
    MAX_IMAGE_SIZE_MB: float = 5.0

    # editor session (client side)
    AUTOSAVE_DELAY_SECONDS: float = 2.0
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000")

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
