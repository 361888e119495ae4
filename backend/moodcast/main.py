# moodcast backend api
# fastapi app with async mongodb, local-first pattern storage, and gemini pattern extraction

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from moodcast.config import settings
from moodcast.dependencies import shutdown_services
from moodcast.services.db import db
from moodcast.routers import patterns, predictions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb. shutdown: flush cloud writes, close connection."""
    logger.info("Starting MoodCast backend...")
    await db.connect()
    logger.info("MoodCast backend ready")
    yield
    logger.info("Shutting down MoodCast backend...")
    await shutdown_services()
    await db.close()


app = FastAPI(
    title="MoodCast API",
    description="Personal mood forecasting: daily predictions, learned personal patterns, journal pattern extraction",
    version="0.1.0",
    lifespan=lifespan,
)

# cors: allow the app frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# register routers
app.include_router(predictions.router)
app.include_router(patterns.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "moodcast-api", "cloud": db.is_connected}
