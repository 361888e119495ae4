# prediction combiner: baseline + weighted context -> bounded mood prediction
# confidence reflects how much history backs the baseline, nothing else

import logging
import math
from datetime import date

from moodcast.models.context import ContextualFactors
from moodcast.models.prediction import ConfidenceLevel, MoodPrediction, MoodRange, PredictionFactor
from moodcast.services.base_predictor import NEUTRAL_MOOD, BaselineResult

logger = logging.getLogger(__name__)

MOOD_MIN = 1.0
MOOD_MAX = 10.0
MIN_RANGE_SPREAD = 0.4


def confidence_for_entry_count(count: int) -> float:
    """piecewise-linear trust in the baseline, monotonic in the number of scored entries"""
    if count <= 0:
        return 0.1
    if count < 10:
        return 0.2 + 0.35 * (count - 1) / 8
    if count < 30:
        return 0.6 + 0.19 * (count - 10) / 19
    return 0.8 + 0.2 * min(1.0, (count - 30) / 70)


def _clamp_mood(value: float) -> float:
    return max(MOOD_MIN, min(MOOD_MAX, value))


def mood_range_for(predicted_mood: float, confidence: float, volatility: float) -> MoodRange:
    spread = max(MIN_RANGE_SPREAD, (1 - confidence) * 1.4 + volatility * 1.2)
    return MoodRange(
        lower=_clamp_mood(predicted_mood - spread),
        upper=_clamp_mood(predicted_mood + spread),
    )


def combine_prediction(
    target_date: date,
    baseline: BaselineResult,
    context: ContextualFactors,
) -> MoodPrediction:
    factors = [
        PredictionFactor(
            name=f.name,
            impact=f.weighted_impact,
            description=f.description,
            category=f.category.value,
        )
        for f in context.factors
        if math.isfinite(f.weighted_impact) and f.weighted_impact != 0
    ]
    factors.sort(key=lambda f: abs(f.impact), reverse=True)

    raw = baseline.value + sum(f.impact for f in factors)
    if not math.isfinite(raw):
        logger.warning(f"Non-finite prediction for {target_date}, falling back to neutral")
        raw = NEUTRAL_MOOD
    predicted = _clamp_mood(raw)

    confidence = confidence_for_entry_count(baseline.scored_entry_count)
    return MoodPrediction(
        target_date=target_date,
        predicted_mood=predicted,
        confidence=confidence,
        confidence_level=ConfidenceLevel.from_confidence(confidence),
        factors=factors,
        base_prediction=baseline.value,
        scored_entry_count=baseline.scored_entry_count,
        has_history=baseline.has_history,
        volatility_score=baseline.volatility,
        mood_range=mood_range_for(predicted, confidence, baseline.volatility),
        weather_source="simulated" if context.weather.is_simulated else "live",
    )
