# predictions router: daily and weekly mood forecasts for a user
# never fails because a collaborator is down; degraded inputs lower confidence instead

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from moodcast.dependencies import get_prediction_service
from moodcast.models.context import Location
from moodcast.models.prediction import InsightResponse, MoodPrediction, PredictionResponse
from moodcast.services.insight_formatter import format_insight
from moodcast.services.prediction_service import MAX_FORECAST_DAYS, MoodPredictionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/predictions", tags=["predictions"])


def _tomorrow() -> date:
    return datetime.now(timezone.utc).date() + timedelta(days=1)


def _location(lat: Optional[float], lon: Optional[float]) -> Optional[Location]:
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="lat and lon must be provided together",
        )
    return Location(latitude=lat, longitude=lon)


def _to_response(prediction: MoodPrediction) -> PredictionResponse:
    label, emoji = format_insight(prediction.predicted_mood)
    return PredictionResponse(
        date=prediction.target_date.isoformat(),
        predicted_mood=round(prediction.predicted_mood, 2),
        confidence=round(prediction.confidence, 3),
        confidence_level=prediction.confidence_level.value,
        mood_state=prediction.mood_state.value,
        base_prediction=round(prediction.base_prediction, 2),
        scored_entry_count=prediction.scored_entry_count,
        has_history=prediction.has_history,
        volatility_score=round(prediction.volatility_score, 3),
        mood_range=prediction.mood_range,
        weather_source=prediction.weather_source,
        personal_baseline=round(prediction.personal_baseline, 2) if prediction.personal_baseline is not None else None,
        comparative_score=round(prediction.comparative_score, 2),
        trend=prediction.trend,
        trend_strength=prediction.trend_strength,
        outlook=prediction.outlook,
        support_suggestion=prediction.support_suggestion,
        factors=prediction.factors,
        insight=InsightResponse(label=label, emoji=emoji),
    )


@router.get("/{user_id}", response_model=PredictionResponse)
async def get_prediction(
    user_id: str,
    target_date: Optional[date] = Query(None, alias="date"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    service: MoodPredictionService = Depends(get_prediction_service),
):
    """mood forecast for one day (tomorrow by default)"""
    location = _location(lat, lon)
    prediction = await service.predict_mood(
        target_date or _tomorrow(),
        user_id=user_id,
        location=location,
    )
    return _to_response(prediction)


@router.get("/{user_id}/week", response_model=list[PredictionResponse])
async def get_week_prediction(
    user_id: str,
    start: Optional[date] = Query(None),
    days: int = Query(7, ge=1, le=MAX_FORECAST_DAYS),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    service: MoodPredictionService = Depends(get_prediction_service),
):
    """consecutive daily forecasts starting at start (tomorrow by default)"""
    location = _location(lat, lon)
    predictions = await service.predict_week(
        start or _tomorrow(),
        days=days,
        user_id=user_id,
        location=location,
    )
    return [_to_response(p) for p in predictions]
