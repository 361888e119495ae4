# personal pattern models: the durable unit of learned personalization
# one pattern per (user, type, weekday, month-day); impact and confidence are
# clamped on construction so no out-of-range value ever reaches storage
#
# weekday numbering follows the mobile app: 1 = sunday ... 7 = saturday

import calendar
import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

MOOD_IMPACT_MIN = -3.0
MOOD_IMPACT_MAX = 3.0

WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def weekday_number(day: date) -> int:
    """1 = sunday ... 7 = saturday"""
    return day.isoweekday() % 7 + 1


def weekday_name(weekday: int) -> str:
    return WEEKDAY_NAMES[weekday - 1]


def clamp_finite(value, lower: float, upper: float) -> float:
    """coerce to float and clamp into [lower, upper]. non-finite values become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"expected a number, got {value!r}")
    if not math.isfinite(number):
        return 0.0 if lower <= 0.0 <= upper else lower
    return max(lower, min(upper, number))


class PatternType(str, Enum):
    OCCUPATION_TYPE = "occupationType"
    WEEKDAY_PREFERENCE = "weekdayPreference"
    SIGNIFICANT_DATE = "significantDate"
    SEASONAL_PATTERN = "seasonalPattern"
    RECURRING_TRIGGER = "recurringTrigger"


class OccupationType(str, Enum):
    EMPLOYEE = "employee"
    BUSINESS_OWNER = "businessOwner"
    STUDENT = "student"
    FREELANCER = "freelancer"
    UNEMPLOYED = "unemployed"
    RETIRED = "retired"
    UNKNOWN = "unknown"

    def mood_impact_for_weekday(self, weekday: int) -> float:
        """built-in day-of-week curve (1 = sunday). flat for schedule-free occupations."""
        curve = OCCUPATION_WEEKDAY_CURVES.get(self)
        if curve is None or not 1 <= weekday <= 7:
            return 0.0
        return curve[weekday - 1]


# sunday, monday, ..., saturday
OCCUPATION_WEEKDAY_CURVES = {
    # dreads monday, lives for friday
    OccupationType.EMPLOYEE: (0.3, -0.6, -0.3, 0.0, 0.3, 0.8, 0.5),
    # business opens monday, closed sunday
    OccupationType.BUSINESS_OWNER: (-0.2, 0.7, 0.5, 0.4, 0.3, 0.2, -0.1),
    OccupationType.STUDENT: (0.2, -0.4, -0.2, 0.0, 0.2, 0.7, 0.5),
}


class MonthDay(BaseModel):
    """a recurring yearly date, persisted as "MM-DD" """
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_calendar_day(self) -> "MonthDay":
        # 2000 is a leap year so feb 29 is accepted
        if self.day > calendar.monthrange(2000, self.month)[1]:
            raise ValueError(f"{self.month:02d}-{self.day:02d} is not a calendar day")
        return self

    @classmethod
    def parse(cls, value: str) -> "MonthDay":
        """parse "MM-DD". raises ValueError on anything else."""
        parts = str(value).strip().split("-")
        if len(parts) != 2:
            raise ValueError(f"expected MM-DD, got {value!r}")
        try:
            month, day = int(parts[0]), int(parts[1])
        except ValueError:
            raise ValueError(f"expected MM-DD, got {value!r}")
        return cls(month=month, day=day)

    def to_string(self) -> str:
        return f"{self.month:02d}-{self.day:02d}"

    def matches(self, day: date) -> bool:
        return day.month == self.month and day.day == self.day

    def next_occurrence(self, from_date: date) -> date:
        """first date on or after from_date with this month/day"""
        if isinstance(from_date, datetime):
            from_date = from_date.date()
        # feb 29 may need up to 8 years to recur
        for year in range(from_date.year, from_date.year + 9):
            try:
                candidate = date(year, self.month, self.day)
            except ValueError:
                continue
            if candidate >= from_date:
                return candidate
        raise ValueError(f"no occurrence of {self.to_string()} after {from_date}")

    def days_until(self, from_date: date) -> int:
        if isinstance(from_date, datetime):
            from_date = from_date.date()
        return (self.next_occurrence(from_date) - from_date).days


class PersonalPattern(BaseModel):
    """a learned, durable personal mood pattern"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str = Field(..., alias="userId")
    pattern_type: PatternType = Field(..., alias="patternType")
    name: str
    description: str = ""
    mood_impact: float = Field(0.0, alias="moodImpact")
    confidence: float = 0.0

    # type-specific data
    day_of_week: Optional[int] = Field(None, alias="dayOfWeek", ge=1, le=7)
    month_day: Optional[MonthDay] = Field(None, alias="monthDay")
    occupation_type: Optional[OccupationType] = Field(None, alias="occupationType")
    trigger_keywords: Optional[list[str]] = Field(None, alias="triggerKeywords")

    # provenance
    extracted_from_entry_id: Optional[str] = Field(None, alias="extractedFromEntryId")
    extracted_snippet: Optional[str] = Field(None, alias="extractedSnippet")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")
    last_validated: Optional[datetime] = Field(None, alias="lastValidated")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("mood_impact", mode="before")
    @classmethod
    def clamp_mood_impact(cls, value) -> float:
        return clamp_finite(value, MOOD_IMPACT_MIN, MOOD_IMPACT_MAX)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value) -> float:
        return clamp_finite(value, 0.0, 1.0)

    @model_validator(mode="after")
    def check_type_fields(self) -> "PersonalPattern":
        if self.pattern_type == PatternType.WEEKDAY_PREFERENCE and self.day_of_week is None:
            raise ValueError("weekdayPreference patterns need dayOfWeek")
        if self.pattern_type == PatternType.SIGNIFICANT_DATE and self.month_day is None:
            raise ValueError("significantDate patterns need monthDay")
        if self.pattern_type == PatternType.OCCUPATION_TYPE and self.occupation_type is None:
            raise ValueError("occupationType patterns need occupationType")
        return self

    @property
    def merge_key(self) -> tuple:
        """identity used when merging duplicates"""
        month_day = self.month_day.to_string() if self.month_day else None
        return (self.user_id, self.pattern_type, self.day_of_week, month_day)

    def applies_to(self, day: date) -> bool:
        """date matcher. seasonal and trigger patterns are applied elsewhere."""
        if self.pattern_type == PatternType.WEEKDAY_PREFERENCE:
            return self.day_of_week == weekday_number(day)
        if self.pattern_type == PatternType.SIGNIFICANT_DATE:
            return self.month_day is not None and self.month_day.matches(day)
        if self.pattern_type == PatternType.OCCUPATION_TYPE:
            return True
        return False

    # persistence format: shared by the local and cloud stores

    def to_document(self) -> dict:
        doc = self.model_dump(mode="json", exclude_none=True)
        if self.month_day is not None:
            doc["month_day"] = self.month_day.to_string()
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "PersonalPattern":
        data = {k: v for k, v in doc.items() if k != "_id"}
        month_day = data.get("month_day")
        if isinstance(month_day, str):
            data["month_day"] = MonthDay.parse(month_day)
        return cls.model_validate(data)


class UserMoodProfile(BaseModel):
    """compact per-user summary. a cache, always rebuildable from patterns + entries."""
    user_id: str = Field(..., alias="userId")
    occupation_type: OccupationType = Field(OccupationType.UNKNOWN, alias="occupationType")
    llm_summary: Optional[str] = Field(None, alias="llmSummary")
    total_entries_analyzed: int = Field(0, alias="totalEntriesAnalyzed")
    last_extraction_date: Optional[datetime] = Field(None, alias="lastExtractionDate")
    pattern_count: int = Field(0, alias="patternCount")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="updatedAt")

    model_config = {"populate_by_name": True}

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_document(cls, doc: dict) -> "UserMoodProfile":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})


# api schemas


class PatternListResponse(BaseModel):
    user_id: str = Field(..., alias="userId")
    occupation_type: OccupationType = Field(..., alias="occupationType")
    last_sync_date: Optional[datetime] = Field(None, alias="lastSyncDate")
    patterns: list[PersonalPattern] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class OccupationUpdate(BaseModel):
    occupation_type: OccupationType = Field(..., alias="occupationType")

    model_config = {"populate_by_name": True}


class SyncResponse(BaseModel):
    synced: bool
    pattern_count: int = Field(..., alias="patternCount")
    occupation_type: OccupationType = Field(..., alias="occupationType")

    model_config = {"populate_by_name": True}


class ClearResponse(BaseModel):
    removed: int
