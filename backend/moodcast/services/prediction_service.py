# mood prediction service: orchestrates one prediction request
# context gathering and entry loading run concurrently; a failing collaborator
# degrades the prediction instead of failing it

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from moodcast.models.context import Location
from moodcast.models.journal import JournalEntry
from moodcast.models.prediction import MoodPrediction
from moodcast.services.base_predictor import compute_baseline
from moodcast.services.context_service import ContextualFactorGatherer
from moodcast.services.outlook_service import with_outlook
from moodcast.services.pattern_store import PatternStoreRegistry, PersonalPatternStore
from moodcast.services.prediction_combiner import combine_prediction
from moodcast.services.remote_store import RemoteStore

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 14


class MoodPredictionService:
    def __init__(
        self,
        gatherer: ContextualFactorGatherer,
        remote: Optional[RemoteStore] = None,
        stores: Optional[PatternStoreRegistry] = None,
    ):
        self.gatherer = gatherer
        self.remote = remote
        self.stores = stores

    async def _store_for(self, user_id: Optional[str]) -> Optional[PersonalPatternStore]:
        if user_id is None or self.stores is None:
            return None
        return await self.stores.aget(user_id)

    async def load_entries(self, user_id: Optional[str]) -> list[JournalEntry]:
        """journal history for a user. any failure means no history."""
        if user_id is None or self.remote is None:
            return []
        try:
            entries = await self.remote.get_entries(user_id)
            logger.info(f"Loaded {len(entries)} journal entries for {user_id}")
            return entries
        except Exception as e:
            logger.warning(f"Could not load journal entries for {user_id}, predicting without history: {e}")
            return []

    async def predict_mood(
        self,
        target_date: date,
        entries: Optional[list[JournalEntry]] = None,
        user_id: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> MoodPrediction:
        if isinstance(target_date, datetime):
            target_date = target_date.date()
        store = await self._store_for(user_id)

        if entries is None:
            context, entries = await asyncio.gather(
                self.gatherer.gather(target_date, store, location),
                self.load_entries(user_id),
            )
        else:
            context = await self.gatherer.gather(target_date, store, location)

        baseline = compute_baseline(entries, target_date)
        prediction = with_outlook(combine_prediction(target_date, baseline, context), entries)
        logger.info(
            f"Predicted {prediction.predicted_mood:.1f} for {target_date} "
            f"(base {baseline.value:.2f}, {len(prediction.factors)} factors, confidence {prediction.confidence:.2f})"
        )
        return prediction

    async def predict_week(
        self,
        start_date: date,
        days: int = 7,
        entries: Optional[list[JournalEntry]] = None,
        user_id: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> list[MoodPrediction]:
        """consecutive daily predictions from a single entry load"""
        if isinstance(start_date, datetime):
            start_date = start_date.date()
        if days < 1 or days > MAX_FORECAST_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_FORECAST_DAYS}")

        if entries is None:
            entries = await self.load_entries(user_id)

        targets = [start_date + timedelta(days=offset) for offset in range(days)]
        return list(await asyncio.gather(*(
            self.predict_mood(target, entries=entries, user_id=user_id, location=location)
            for target in targets
        )))
