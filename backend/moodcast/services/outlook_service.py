# mood outlook: how a prediction compares with the user's own recent mood
# derives the personal baseline, the current trend, a trajectory read and one support suggestion.
# pure and synchronous, runs after the combiner.

import logging
from datetime import date, timedelta
from typing import Optional

import numpy as np

from moodcast.models.journal import JournalEntry
from moodcast.models.prediction import (
    MicroOutlook,
    MoodPrediction,
    SupportSuggestion,
    TrajectoryDirection,
    TrendDirection,
)
from moodcast.services.base_predictor import scored_entries_before

logger = logging.getLogger(__name__)

BASELINE_DAYS = 14
TREND_SAMPLE = 5
TREND_STREAK_WINDOW = 7
TREND_THRESHOLD = 0.5
STREAK_THRESHOLD = 0.3
MIN_TREND_STRENGTH = 3
COMPARATIVE_THRESHOLD = 0.4
STABLE_THRESHOLD = 0.6
VOLATILE_THRESHOLD = 0.55

SUPPORT_SUGGESTIONS = {
    TrajectoryDirection.RISING: SupportSuggestion(
        title="Double down on what works",
        detail="Protect the routines that sparked this lift, especially your first 10 minutes in the morning.",
    ),
    TrajectoryDirection.STEADY: SupportSuggestion(
        title="Stay consistent",
        detail="Keep the daily cadence: short check-ins and breath resets to maintain the steady state.",
    ),
    TrajectoryDirection.EASING: SupportSuggestion(
        title="Pre-plan support",
        detail="Schedule a gentle ritual before the time of day that usually dips to soften the landing.",
    ),
    TrajectoryDirection.VOLATILE: SupportSuggestion(
        title="Create buffers",
        detail="Keep recovery options ready: 2-minute breaths, light movement, and one person to text.",
    ),
}


def personal_baseline(entries: list[JournalEntry], target_date: date) -> Optional[float]:
    """mean mood of the two weeks before the target, all history when that window is empty"""
    scored = scored_entries_before(entries, target_date)
    if not scored:
        return None
    window_start = target_date - timedelta(days=BASELINE_DAYS)
    recent = [e.mood for e in scored if e.created_at.date() >= window_start]
    return float(np.mean(recent or [e.mood for e in scored]))


def detect_trend(entries: list[JournalEntry], target_date: date) -> tuple[TrendDirection, int]:
    """direction of the newest moods against the ones just before them, plus the streak length"""
    scored = scored_entries_before(entries, target_date)
    if len(scored) < 3:
        return TrendDirection.STABLE, 0

    sample = min(TREND_SAMPLE, len(scored) // 2)
    recent = [e.mood for e in scored[:sample]]
    earlier = [e.mood for e in scored[sample:sample * 2]]
    if not recent or not earlier:
        return TrendDirection.STABLE, 0
    difference = float(np.mean(recent) - np.mean(earlier))

    # walk back from the newest entry while each older mood keeps the direction
    strength = 0
    newer = None
    for entry in scored[:TREND_STREAK_WINDOW]:
        if newer is not None:
            if difference > STREAK_THRESHOLD and entry.mood <= newer:
                strength += 1
            elif difference < -STREAK_THRESHOLD and entry.mood >= newer:
                strength += 1
            else:
                break
        newer = entry.mood

    if difference > TREND_THRESHOLD:
        return TrendDirection.IMPROVING, max(1, strength)
    if difference < -TREND_THRESHOLD:
        return TrendDirection.DECLINING, max(1, strength)
    return TrendDirection.STABLE, 0


def determine_outlook(
    prediction: MoodPrediction,
    trend: TrendDirection,
    trend_strength: int,
    comparative: float,
) -> MicroOutlook:
    state = prediction.mood_state.value
    volatility = prediction.volatility_score
    stability = max(0.0, min(1.0, 1.0 - volatility))

    if trend_strength >= MIN_TREND_STRENGTH and trend == TrendDirection.IMPROVING:
        return MicroOutlook(
            direction=TrajectoryDirection.RISING,
            headline=f"Lifting {state}",
            summary=f"Momentum has been improving for {trend_strength} days.",
        )
    if trend_strength >= MIN_TREND_STRENGTH and trend == TrendDirection.DECLINING:
        return MicroOutlook(
            direction=TrajectoryDirection.EASING,
            headline=f"Softening {state}",
            summary=f"Energy has dipped for {trend_strength} days. Plan lighter touchpoints.",
        )
    if trend_strength >= MIN_TREND_STRENGTH:
        return MicroOutlook(
            direction=TrajectoryDirection.STEADY,
            headline=f"Even {state}",
            summary="Patterns are remarkably steady. Keep your anchors nearby.",
        )
    if comparative >= COMPARATIVE_THRESHOLD:
        return MicroOutlook(
            direction=TrajectoryDirection.RISING,
            headline="Above your usual",
            summary=f"Tracking {comparative:.1f} above baseline. Capture what feels helpful.",
        )
    if comparative <= -COMPARATIVE_THRESHOLD:
        return MicroOutlook(
            direction=TrajectoryDirection.EASING,
            headline="Below your typical",
            summary=f"Running {abs(comparative):.1f} below baseline. Build in softness tomorrow.",
        )
    if volatility > VOLATILE_THRESHOLD:
        return MicroOutlook(
            direction=TrajectoryDirection.VOLATILE,
            headline="Keep anchors nearby",
            summary="Mood has been oscillating this week. Ground yourself with predictable rituals.",
        )
    if stability > STABLE_THRESHOLD:
        summary = "Recent days have hovered in a healthy range. Keep leaning on what works."
    else:
        summary = "You're holding steady, but there is some wobble. Keep routines gentle."
    return MicroOutlook(direction=TrajectoryDirection.STEADY, headline=f"Steady {state}", summary=summary)


def support_suggestion(direction: TrajectoryDirection) -> SupportSuggestion:
    return SUPPORT_SUGGESTIONS[direction]


def with_outlook(prediction: MoodPrediction, entries: list[JournalEntry]) -> MoodPrediction:
    """copy of the prediction enriched with baseline comparison, trend, outlook and suggestion"""
    baseline = personal_baseline(entries, prediction.target_date)
    # without history there is nothing to compare against
    comparative = prediction.predicted_mood - baseline if baseline is not None else 0.0
    trend, strength = detect_trend(entries, prediction.target_date)
    outlook = determine_outlook(prediction, trend, strength, comparative)
    return prediction.model_copy(update={
        "personal_baseline": baseline,
        "comparative_score": comparative,
        "trend": trend,
        "trend_strength": strength,
        "outlook": outlook,
        "support_suggestion": support_suggestion(outlook.direction),
    })
