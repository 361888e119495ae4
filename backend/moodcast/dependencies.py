# fastapi dependency injection
# provides the pattern store registry and the prediction / extraction services

import logging
from typing import Optional

from fastapi import Depends

from moodcast.config import settings
from moodcast.services.context_service import ContextualFactorGatherer
from moodcast.services.db import Database, db, get_db
from moodcast.services.local_store import LocalKeyValueStore
from moodcast.services.pattern_extraction import GeminiPatternClient, PatternExtractionService
from moodcast.services.pattern_store import PatternStoreRegistry
from moodcast.services.prediction_service import MoodPredictionService
from moodcast.services.remote_store import RemoteStore
from moodcast.services.weather_service import OpenWeatherService

logger = logging.getLogger(__name__)

# process-wide singletons (created on first use)
_pattern_stores: Optional[PatternStoreRegistry] = None
_weather_service: Optional[OpenWeatherService] = None
_extraction_client: Optional[GeminiPatternClient] = None


def get_pattern_stores() -> PatternStoreRegistry:
    """one registry of loaded per-user stores for the whole process"""
    global _pattern_stores
    if _pattern_stores is None:
        logger.info(f"Local pattern storage at {settings.LOCAL_STORE_DIR}")
        _pattern_stores = PatternStoreRegistry(
            LocalKeyValueStore(settings.LOCAL_STORE_DIR),
            RemoteStore(db),
        )
    return _pattern_stores


def get_weather_service() -> OpenWeatherService:
    global _weather_service
    if _weather_service is None:
        _weather_service = OpenWeatherService()
    return _weather_service


async def get_remote_store(database: Database = Depends(get_db)) -> RemoteStore:
    return RemoteStore(database)


async def get_prediction_service(
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
    remote: RemoteStore = Depends(get_remote_store),
) -> MoodPredictionService:
    gatherer = ContextualFactorGatherer(get_weather_service())
    return MoodPredictionService(gatherer, remote, stores)


async def get_extraction_service() -> PatternExtractionService:
    global _extraction_client
    if _extraction_client is None:
        _extraction_client = GeminiPatternClient()
    return PatternExtractionService(_extraction_client)


async def shutdown_services():
    """flush pending cloud writes and release http clients"""
    if _pattern_stores is not None:
        await _pattern_stores.wait_for_pending()
    if _weather_service is not None:
        await _weather_service.close()
