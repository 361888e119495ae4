# base predictor: history-only mood baseline for a target day
# blends recency, same-weekday and short-trend means. pure and synchronous.

import logging
from datetime import date, datetime, timedelta
from typing import Optional

import numpy as np
from pydantic import BaseModel

from moodcast.models.journal import JournalEntry
from moodcast.models.pattern import weekday_number

logger = logging.getLogger(__name__)

NEUTRAL_MOOD = 5.5

RECENCY_WINDOW = 14
WEEKDAY_WINDOW = 8
TREND_WINDOW = 7

RECENCY_WEIGHT = 0.40
WEEKDAY_WEIGHT = 0.35
TREND_WEIGHT = 0.25

VOLATILITY_DAYS = 14
VOLATILITY_MIN_SAMPLES = 3
VOLATILITY_NORMALIZER = 2.0
DEFAULT_VOLATILITY = 0.45


class BaselineResult(BaseModel):
    value: float
    scored_entry_count: int
    has_history: bool
    recency_mean: Optional[float] = None
    weekday_mean: Optional[float] = None
    trend_mean: Optional[float] = None
    volatility: float = DEFAULT_VOLATILITY


def _entry_day(entry: JournalEntry) -> date:
    return entry.created_at.date()


def scored_entries_before(entries: list[JournalEntry], target_date: date) -> list[JournalEntry]:
    """entries with a mood created before the target day, newest first"""
    scored = [e for e in entries if e.mood is not None and _entry_day(e) < target_date]
    return sorted(scored, key=lambda e: e.created_at, reverse=True)


def volatility_score(entries: list[JournalEntry], target_date: date) -> float:
    """population std of recent moods scaled into [0, 1]"""
    window_start = target_date - timedelta(days=VOLATILITY_DAYS)
    moods = [e.mood for e in entries if e.mood is not None and window_start <= _entry_day(e) < target_date]
    if len(moods) < VOLATILITY_MIN_SAMPLES:
        return DEFAULT_VOLATILITY
    return float(min(1.0, max(0.0, np.std(moods) / VOLATILITY_NORMALIZER)))


def compute_baseline(entries: list[JournalEntry], target_date: date) -> BaselineResult:
    if isinstance(target_date, datetime):
        target_date = target_date.date()

    scored = scored_entries_before(entries, target_date)
    if not scored:
        return BaselineResult(value=NEUTRAL_MOOD, scored_entry_count=0, has_history=False)

    moods = np.array([e.mood for e in scored], dtype=float)
    recency = float(moods[:RECENCY_WINDOW].mean())

    target_weekday = weekday_number(target_date)
    same_weekday = [e.mood for e in scored if weekday_number(_entry_day(e)) == target_weekday][:WEEKDAY_WINDOW]
    weekday = float(np.mean(same_weekday)) if same_weekday else recency

    trend = float(moods[:TREND_WINDOW].mean())

    value = RECENCY_WEIGHT * recency + WEEKDAY_WEIGHT * weekday + TREND_WEIGHT * trend
    return BaselineResult(
        value=value,
        scored_entry_count=len(scored),
        has_history=True,
        recency_mean=recency,
        weekday_mean=weekday,
        trend_mean=trend,
        volatility=volatility_score(scored, target_date),
    )
