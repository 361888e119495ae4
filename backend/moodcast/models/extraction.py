# extraction models: the llm response is untrusted input
# the envelope is parsed leniently (lists of raw items), then every item is
# validated on its own so one malformed candidate never sinks the batch

import math
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


def _require_finite(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("value must be finite")
    return value


class LLMPatternExtractionResponse(BaseModel):
    """top-level shape of the model's json reply"""
    occupation_type: Optional[str] = Field(None, alias="occupationType")
    occupation_confidence: Optional[float] = Field(None, alias="occupationConfidence")
    significant_dates: list[Any] = Field(default_factory=list, alias="significantDates")
    weekday_patterns: list[Any] = Field(default_factory=list, alias="weekdayPatterns")
    emotional_triggers: list[Any] = Field(default_factory=list, alias="emotionalTriggers")
    summary: Optional[str] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("significant_dates", "weekday_patterns", "emotional_triggers", mode="before")
    @classmethod
    def null_to_empty(cls, value):
        return value or []

    @field_validator("occupation_type", "summary", mode="before")
    @classmethod
    def non_string_to_none(cls, value):
        return value if isinstance(value, str) else None

    @field_validator("occupation_confidence", mode="before")
    @classmethod
    def bad_number_to_none(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None


class ExtractedSignificantDate(BaseModel):
    month_day: str = Field(..., alias="monthDay")
    description: str = ""
    is_positive: Optional[bool] = Field(None, alias="isPositive")
    mood_impact: float = Field(..., alias="moodImpact")
    confidence: float

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("mood_impact", "confidence")
    @classmethod
    def finite(cls, value: float) -> float:
        return _require_finite(value)


class ExtractedWeekdayPattern(BaseModel):
    day_name: str = Field(..., alias="dayName")
    description: str = ""
    mood_impact: float = Field(..., alias="moodImpact")
    confidence: float

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("mood_impact", "confidence")
    @classmethod
    def finite(cls, value: float) -> float:
        return _require_finite(value)


class ExtractedTrigger(BaseModel):
    keywords: list[str]
    description: str = ""
    mood_impact: float = Field(..., alias="moodImpact")
    confidence: float

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("mood_impact", "confidence")
    @classmethod
    def finite(cls, value: float) -> float:
        return _require_finite(value)

    @field_validator("keywords")
    @classmethod
    def clean_keywords(cls, value: list[str]) -> list[str]:
        cleaned = [k.strip().lower() for k in value if k and k.strip()]
        if not cleaned:
            raise ValueError("at least one keyword is required")
        return list(dict.fromkeys(cleaned))


class ExtractionResult(BaseModel):
    """outcome of one extraction run"""
    entries_analyzed: int = Field(0, alias="entriesAnalyzed")
    accepted: int = 0
    stored: int = 0
    rejected: int = 0
    occupation_type: Optional[str] = Field(None, alias="occupationType")
    succeeded: bool = True

    model_config = {"populate_by_name": True}
