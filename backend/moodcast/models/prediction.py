# prediction models: returned to callers, never persisted
# predicted mood is bounded to [1, 10], factors are sorted by |impact|

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_confidence(cls, confidence: float) -> "ConfidenceLevel":
        if confidence >= 0.8:
            return cls.HIGH
        if confidence >= 0.6:
            return cls.MEDIUM
        return cls.LOW


class MoodState(str, Enum):
    RADIANT = "Radiant"
    POSITIVE = "Positive"
    BALANCED = "Balanced"
    LOW = "Low"
    CHALLENGING = "Challenging"

    @classmethod
    def from_mood(cls, mood: float) -> "MoodState":
        if mood >= 8.5:
            return cls.RADIANT
        if mood >= 7.0:
            return cls.POSITIVE
        if mood >= 5.5:
            return cls.BALANCED
        if mood >= 4.0:
            return cls.LOW
        return cls.CHALLENGING


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class TrajectoryDirection(str, Enum):
    RISING = "rising"
    STEADY = "steady"
    EASING = "easing"
    VOLATILE = "volatile"


class MicroOutlook(BaseModel):
    """short trajectory read of where the mood is heading"""
    direction: TrajectoryDirection
    headline: str
    summary: str


class SupportSuggestion(BaseModel):
    title: str
    detail: str


class PredictionFactor(BaseModel):
    name: str
    impact: float
    description: str = ""
    category: Optional[str] = None

    @property
    def impact_description(self) -> str:
        magnitude = abs(self.impact)
        direction = "positive" if self.impact > 0 else "negative"
        if magnitude >= 0.5:
            return f"Strong {direction} impact"
        if magnitude >= 0.2:
            return f"Moderate {direction} impact"
        return f"Slight {direction} impact"


class MoodRange(BaseModel):
    lower: float
    upper: float

    @property
    def spread(self) -> float:
        return self.upper - self.lower


class MoodPrediction(BaseModel):
    target_date: date = Field(..., alias="date")
    predicted_mood: float = Field(..., alias="predictedMood")
    confidence: float
    confidence_level: ConfidenceLevel = Field(..., alias="confidenceLevel")
    factors: list[PredictionFactor] = Field(default_factory=list)
    base_prediction: float = Field(..., alias="basePrediction")
    scored_entry_count: int = Field(0, alias="scoredEntryCount")
    has_history: bool = Field(False, alias="hasHistory")
    volatility_score: float = Field(0.0, alias="volatilityScore")
    mood_range: Optional[MoodRange] = Field(None, alias="moodRange")
    weather_source: str = Field("simulated", alias="weatherSource")
    personal_baseline: Optional[float] = Field(None, alias="personalBaseline")
    comparative_score: float = Field(0.0, alias="comparativeScore")
    trend: TrendDirection = TrendDirection.STABLE
    trend_strength: int = Field(0, alias="trendStrength")
    outlook: Optional[MicroOutlook] = None
    support_suggestion: Optional[SupportSuggestion] = Field(None, alias="supportSuggestion")

    model_config = {"populate_by_name": True}

    @property
    def mood_state(self) -> MoodState:
        return MoodState.from_mood(self.predicted_mood)


# api responses


class InsightResponse(BaseModel):
    label: str
    emoji: str


class PredictionResponse(BaseModel):
    """prediction as exposed by the api, with the consumer-facing insight band"""
    date: str
    predicted_mood: float = Field(..., alias="predictedMood")
    confidence: float
    confidence_level: str = Field(..., alias="confidenceLevel")
    mood_state: str = Field(..., alias="moodState")
    base_prediction: float = Field(..., alias="basePrediction")
    scored_entry_count: int = Field(0, alias="scoredEntryCount")
    has_history: bool = Field(False, alias="hasHistory")
    volatility_score: float = Field(0.0, alias="volatilityScore")
    mood_range: Optional[MoodRange] = Field(None, alias="moodRange")
    weather_source: str = Field("simulated", alias="weatherSource")
    personal_baseline: Optional[float] = Field(None, alias="personalBaseline")
    comparative_score: float = Field(0.0, alias="comparativeScore")
    trend: TrendDirection = TrendDirection.STABLE
    trend_strength: int = Field(0, alias="trendStrength")
    outlook: Optional[MicroOutlook] = None
    support_suggestion: Optional[SupportSuggestion] = Field(None, alias="supportSuggestion")
    factors: list[PredictionFactor] = Field(default_factory=list)
    insight: InsightResponse

    model_config = {"populate_by_name": True}
