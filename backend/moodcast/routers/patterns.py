# patterns router: inspect, override, sync, extract and clear personal patterns

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from moodcast.dependencies import get_extraction_service, get_pattern_stores, get_remote_store
from moodcast.models.extraction import ExtractionResult
from moodcast.models.pattern import (
    ClearResponse,
    OccupationUpdate,
    PatternListResponse,
    PersonalPattern,
    SyncResponse,
    UserMoodProfile,
)
from moodcast.services.pattern_extraction import PatternExtractionService
from moodcast.services.pattern_store import PatternStoreError, PatternStoreRegistry
from moodcast.services.remote_store import RemoteStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/patterns", tags=["patterns"])


@router.get("/{user_id}", response_model=PatternListResponse)
async def list_patterns(
    user_id: str,
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
):
    """all learned patterns for a user"""
    store = await stores.aget(user_id)
    return PatternListResponse(
        user_id=user_id,
        occupation_type=store.occupation_type,
        last_sync_date=store.last_sync_date,
        patterns=store.patterns,
    )


@router.get("/{user_id}/affecting", response_model=list[PersonalPattern])
async def patterns_affecting(
    user_id: str,
    target_date: date = Query(..., alias="date"),
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
):
    """patterns that apply to a given date"""
    store = await stores.aget(user_id)
    return store.get_patterns_affecting(target_date)


@router.put("/{user_id}/occupation", response_model=SyncResponse)
async def set_occupation(
    user_id: str,
    body: OccupationUpdate,
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
):
    """explicit occupation override"""
    store = await stores.aget(user_id)
    try:
        store.set_occupation_type(body.occupation_type)
    except PatternStoreError as e:
        logger.error(f"Occupation update failed for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save occupation type",
        )
    return SyncResponse(
        synced=False,
        pattern_count=len(store.patterns),
        occupation_type=store.occupation_type,
    )


@router.post("/{user_id}/sync", response_model=SyncResponse)
async def sync_patterns(
    user_id: str,
    force: bool = Query(False),
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
):
    """merge local and cloud patterns. force replaces local with the cloud set."""
    store = await stores.aget(user_id)
    try:
        if force:
            synced = await store.force_cloud_sync()
        else:
            synced = await store.sync_with_cloud()
    except PatternStoreError as e:
        logger.error(f"Sync failed for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save synced patterns",
        )
    return SyncResponse(
        synced=synced,
        pattern_count=len(store.patterns),
        occupation_type=store.occupation_type,
    )


@router.post("/{user_id}/extract", response_model=ExtractionResult)
async def extract_patterns(
    user_id: str,
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
    remote: RemoteStore = Depends(get_remote_store),
    service: PatternExtractionService = Depends(get_extraction_service),
):
    """mine the newest journal entries for new patterns"""
    try:
        entries = await remote.get_entries(user_id)
    except Exception as e:
        logger.warning(f"Journal entries unavailable for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Journal entries are unavailable",
        )
    store = await stores.aget(user_id)
    return await service.extract_patterns(entries, store)


@router.get("/{user_id}/profile", response_model=UserMoodProfile)
async def get_profile(
    user_id: str,
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
):
    """compact mood profile, rebuilt from the current pattern set"""
    store = await stores.aget(user_id)
    return store.build_profile()


@router.delete("/{user_id}", response_model=ClearResponse)
async def clear_patterns(
    user_id: str,
    stores: PatternStoreRegistry = Depends(get_pattern_stores),
):
    """remove every pattern for a user, locally and in the cloud"""
    store = await stores.aget(user_id)
    try:
        removed = await store.clear_patterns(user_id)
    except PatternStoreError as e:
        logger.error(f"Clearing patterns failed for {user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not clear patterns",
        )
    return ClearResponse(removed=removed)
