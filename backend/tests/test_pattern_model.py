# tests for pattern models: clamping, type rules, month-day math, document round-trip

import math
import pytest
from datetime import date
from pydantic import ValidationError

from moodcast.models.journal import JournalEntry
from moodcast.models.pattern import (
    MonthDay,
    OccupationType,
    PatternType,
    PersonalPattern,
    UserMoodProfile,
    weekday_number,
)
from tests.conftest import USER_ID


def _weekday_pattern(**overrides) -> PersonalPattern:
    data = {
        "user_id": USER_ID,
        "pattern_type": PatternType.WEEKDAY_PREFERENCE,
        "name": "Monday pattern",
        "mood_impact": -1.0,
        "confidence": 0.8,
        "day_of_week": 2,
    }
    data.update(overrides)
    return PersonalPattern(**data)


class TestWeekdayNumbering:
    """1 = sunday ... 7 = saturday"""

    def test_sunday_is_one(self):
        assert weekday_number(date(2025, 6, 8)) == 1

    def test_monday_is_two(self):
        assert weekday_number(date(2025, 6, 9)) == 2

    def test_saturday_is_seven(self):
        assert weekday_number(date(2025, 6, 14)) == 7


class TestPatternClamping:
    """impact and confidence are clamped on construction"""

    def test_impact_clamped_high(self):
        assert _weekday_pattern(mood_impact=7.5).mood_impact == 3.0

    def test_impact_clamped_low(self):
        assert _weekday_pattern(mood_impact=-10).mood_impact == -3.0

    def test_confidence_clamped(self):
        assert _weekday_pattern(confidence=1.7).confidence == 1.0
        assert _weekday_pattern(confidence=-0.2).confidence == 0.0

    def test_non_finite_impact_becomes_zero(self):
        assert _weekday_pattern(mood_impact=math.nan).mood_impact == 0.0
        assert _weekday_pattern(mood_impact=math.inf).mood_impact == 0.0

    def test_non_numeric_impact_rejected(self):
        with pytest.raises(ValidationError):
            _weekday_pattern(mood_impact="lots")

    def test_day_of_week_out_of_range(self):
        with pytest.raises(ValidationError):
            _weekday_pattern(day_of_week=8)

    def test_weekday_pattern_requires_day(self):
        with pytest.raises(ValidationError):
            _weekday_pattern(day_of_week=None)

    def test_significant_date_requires_month_day(self):
        with pytest.raises(ValidationError):
            PersonalPattern(
                user_id=USER_ID,
                pattern_type=PatternType.SIGNIFICANT_DATE,
                name="Anniversary",
                confidence=0.9,
            )

    def test_pattern_is_frozen(self):
        pattern = _weekday_pattern()
        with pytest.raises(ValidationError):
            pattern.confidence = 0.1


class TestMonthDay:
    """recurring yearly dates"""

    def test_parse_valid(self):
        md = MonthDay.parse("03-15")
        assert (md.month, md.day) == (3, 15)
        assert md.to_string() == "03-15"

    @pytest.mark.parametrize("value", ["13-01", "02-30", "0315", "ab-cd", "04-31", ""])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            MonthDay.parse(value)

    def test_feb_29_is_a_calendar_day(self):
        assert MonthDay.parse("02-29").to_string() == "02-29"

    def test_matches_any_year(self):
        md = MonthDay(month=3, day=15)
        assert md.matches(date(2019, 3, 15))
        assert md.matches(date(2031, 3, 15))
        assert not md.matches(date(2031, 3, 16))

    def test_days_until_same_year(self):
        assert MonthDay(month=3, day=15).days_until(date(2025, 3, 10)) == 5

    def test_days_until_today_is_zero(self):
        assert MonthDay(month=3, day=15).days_until(date(2025, 3, 15)) == 0

    def test_days_until_rolls_to_next_year(self):
        assert MonthDay(month=1, day=2).days_until(date(2025, 12, 31)) == 2

    def test_feb_29_rolls_to_next_leap_year(self):
        assert MonthDay(month=2, day=29).next_occurrence(date(2025, 3, 1)) == date(2028, 2, 29)


class TestOccupationCurve:
    """built-in weekday curves"""

    def test_employee_monday_negative_friday_positive(self):
        assert OccupationType.EMPLOYEE.mood_impact_for_weekday(2) == -0.6
        assert OccupationType.EMPLOYEE.mood_impact_for_weekday(6) == 0.8

    def test_business_owner_monday_positive(self):
        assert OccupationType.BUSINESS_OWNER.mood_impact_for_weekday(2) == 0.7

    def test_flat_curves(self):
        for occupation in (OccupationType.RETIRED, OccupationType.FREELANCER, OccupationType.UNKNOWN):
            assert all(occupation.mood_impact_for_weekday(d) == 0.0 for d in range(1, 8))


class TestApplicability:
    """date matching rules"""

    def test_weekday_pattern_applies_on_its_day(self):
        pattern = _weekday_pattern(day_of_week=2)
        assert pattern.applies_to(date(2025, 6, 9))
        assert not pattern.applies_to(date(2025, 6, 10))

    def test_significant_date_applies_every_year(self):
        pattern = PersonalPattern(
            user_id=USER_ID,
            pattern_type=PatternType.SIGNIFICANT_DATE,
            name="Anniversary",
            mood_impact=-2.0,
            confidence=0.9,
            month_day=MonthDay(month=3, day=15),
        )
        assert pattern.applies_to(date(2026, 3, 15))
        assert not pattern.applies_to(date(2026, 3, 14))

    def test_trigger_never_applies_by_date(self):
        pattern = PersonalPattern(
            user_id=USER_ID,
            pattern_type=PatternType.RECURRING_TRIGGER,
            name="Trigger",
            mood_impact=-1.0,
            confidence=0.7,
            trigger_keywords=["deadline"],
        )
        assert not pattern.applies_to(date(2025, 6, 9))


class TestDocumentRoundTrip:
    """the persistence format preserves every field"""

    def test_weekday_round_trip(self):
        pattern = _weekday_pattern(extracted_from_entry_id="e1", extracted_snippet="I hate Mondays.")
        restored = PersonalPattern.from_document(pattern.to_document())
        assert restored.model_dump() == pattern.model_dump()

    def test_significant_date_round_trip(self):
        pattern = PersonalPattern(
            user_id=USER_ID,
            pattern_type=PatternType.SIGNIFICANT_DATE,
            name="Anniversary",
            mood_impact=-2.0,
            confidence=0.9,
            month_day=MonthDay(month=3, day=15),
        )
        doc = pattern.to_document()
        assert doc["month_day"] == "03-15"
        assert PersonalPattern.from_document(doc).model_dump() == pattern.model_dump()

    def test_inapplicable_fields_are_absent(self):
        doc = _weekday_pattern().to_document()
        assert "month_day" not in doc
        assert "occupation_type" not in doc
        assert "trigger_keywords" not in doc
        restored = PersonalPattern.from_document(doc)
        assert restored.month_day is None
        assert restored.trigger_keywords is None

    def test_mongo_id_ignored(self):
        doc = _weekday_pattern().to_document()
        doc["_id"] = "abc"
        assert PersonalPattern.from_document(doc).day_of_week == 2

    def test_profile_round_trip(self):
        profile = UserMoodProfile(user_id=USER_ID, occupation_type=OccupationType.STUDENT, pattern_count=3)
        assert UserMoodProfile.from_document(profile.to_document()).model_dump() == profile.model_dump()


class TestJournalEntry:
    """entries coming from the store are sanitised"""

    def test_nan_mood_becomes_none(self):
        entry = JournalEntry.from_document({
            "id": "j1", "user_id": USER_ID, "created_at": "2025-06-01T12:00:00Z", "mood": float("nan"),
        })
        assert entry.mood is None

    def test_out_of_range_mood_becomes_none(self):
        entry = JournalEntry.from_document({
            "id": "j1", "user_id": USER_ID, "created_at": "2025-06-01T12:00:00Z", "mood": 14,
        })
        assert entry.mood is None

    def test_naive_datetime_assumed_utc(self):
        entry = JournalEntry.from_document({
            "id": "j1", "user_id": USER_ID, "created_at": "2025-06-01T12:00:00", "mood": 5,
        })
        assert entry.created_at.tzinfo is not None
        assert entry.mood == 5
