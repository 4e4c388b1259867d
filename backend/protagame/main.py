# protagame backend api
# fastapi app with a date-keyed journal store (mongodb or flat files) and ai media proxies

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from protagame.config import settings
from protagame.dependencies import get_mongo_store
from protagame.services.db import db
from protagame.routers import journal, media, migrate

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb and ensure indexes. shutdown: close connection."""
    logger.info("Starting ProtagaMe backend...")
    if settings.STORAGE_BACKEND == "mongo":
        await db.connect()
        await get_mongo_store().ensure_indexes()
    else:
        logger.info(f"Using file journal store at {settings.JOURNAL_DATA_DIR}")
    logger.info("ProtagaMe backend ready")
    yield
    logger.info("Shutting down ProtagaMe backend...")
    await db.close()


app = FastAPI(
    title="ProtagaMe API",
    description="Backend API for the ProtagaMe journal — date-keyed entries, generated imagery, narration and journey stories",
    version="0.1.0",
    lifespan=lifespan,
)

# cors — allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# register routers
app.include_router(journal.router)
app.include_router(media.router)
app.include_router(migrate.router)


@app.get("/health")
async def health_check():
    """liveness plus the configured storage backend"""
    return {"status": "ok", "service": "protagame-api", "storage": settings.STORAGE_BACKEND}
