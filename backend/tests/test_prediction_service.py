# tests for the prediction service: end-to-end predictions, degraded collaborators, weekly runs

import pytest
from datetime import date, timedelta

from moodcast.models.pattern import MonthDay, OccupationType, PatternType, PersonalPattern
from moodcast.services.pattern_store import PatternStoreRegistry
from moodcast.services.prediction_service import MoodPredictionService
from moodcast.services.remote_store import RemoteStore
from tests.conftest import USER_ID, daily_entries, make_entry


@pytest.fixture
def registry(local_store, mock_remote):
    return PatternStoreRegistry(local_store, mock_remote)


@pytest.fixture
def service(gatherer, mock_remote, registry):
    return MoodPredictionService(gatherer, mock_remote, registry)


class TestPredictMood:
    """single-day predictions"""

    async def test_no_history_is_bounded_and_low_confidence(self, service):
        prediction = await service.predict_mood(date(2025, 6, 10), entries=[], user_id=USER_ID)
        assert prediction.has_history is False
        assert prediction.base_prediction == 5.5
        assert prediction.confidence == pytest.approx(0.1)
        assert 1.0 <= prediction.predicted_mood <= 10.0

    async def test_entries_loaded_from_remote(self, service, mock_remote):
        mock_remote.get_entries.return_value = daily_entries(date(2025, 5, 1), 30, mood=7)
        prediction = await service.predict_mood(date(2025, 6, 10), user_id=USER_ID)
        mock_remote.get_entries.assert_awaited_once_with(USER_ID)
        assert prediction.scored_entry_count == 30
        assert prediction.base_prediction == pytest.approx(7.0)

    async def test_entry_load_failure_degrades(self, service, mock_remote):
        mock_remote.get_entries.side_effect = RuntimeError("cloud down")
        prediction = await service.predict_mood(date(2025, 6, 10), user_id=USER_ID)
        assert prediction.has_history is False
        assert prediction.scored_entry_count == 0

    async def test_responds_to_negative_then_positive_event(self, service):
        history = [
            make_entry(date(2025, 6, 1) + timedelta(days=i), 6 if i % 2 == 0 else 7, "A steady, ordinary day.")
            for i in range(14)
        ]
        target = date(2025, 6, 17)
        baseline = await service.predict_mood(target, entries=history, user_id=USER_ID)

        bad_day = make_entry(
            date(2025, 6, 15), 2,
            "Awful day. I was yelled at, I feel hopeless and exhausted and I cried all evening.",
        )
        after_negative = await service.predict_mood(target, entries=history + [bad_day], user_id=USER_ID)
        assert after_negative.predicted_mood < baseline.predicted_mood

        great_day = make_entry(
            date(2025, 6, 16), 9,
            "Wonderful day! Got great news, laughed with friends and feel grateful and full of energy.",
        )
        after_positive = await service.predict_mood(target, entries=history + [bad_day, great_day], user_id=USER_ID)
        assert after_positive.predicted_mood > after_negative.predicted_mood

    async def test_anonymous_prediction(self, gatherer):
        prediction = await MoodPredictionService(gatherer).predict_mood(date(2025, 6, 10))
        assert prediction.has_history is False

    async def test_real_remote_store(self, gatherer, mock_db, local_store):
        remote = RemoteStore(mock_db)
        service = MoodPredictionService(gatherer, remote, PatternStoreRegistry(local_store, remote))
        prediction = await service.predict_mood(date(2025, 6, 23), user_id=USER_ID)
        assert prediction.scored_entry_count == 21
        # mondays dip in the sample journals
        assert prediction.base_prediction < 7.0

    async def test_positive_pattern_never_lowers_prediction(self, service, registry):
        entries = daily_entries(date(2025, 5, 1), 20, mood=6)
        target = date(2025, 6, 10)
        before = await service.predict_mood(target, entries=entries, user_id=USER_ID)

        registry.get(USER_ID).add_pattern(PersonalPattern(
            user_id=USER_ID,
            pattern_type=PatternType.SIGNIFICANT_DATE,
            name="Birthday",
            mood_impact=1.5,
            confidence=0.9,
            month_day=MonthDay(month=6, day=10),
        ))
        after = await service.predict_mood(target, entries=entries, user_id=USER_ID)
        assert after.predicted_mood > before.predicted_mood
        assert after.factors[0].name == "Birthday"

    async def test_negative_pattern_never_raises_prediction(self, service, registry):
        entries = daily_entries(date(2025, 5, 1), 20, mood=6)
        target = date(2025, 6, 10)
        before = await service.predict_mood(target, entries=entries, user_id=USER_ID)

        registry.get(USER_ID).add_pattern(PersonalPattern(
            user_id=USER_ID,
            pattern_type=PatternType.WEEKDAY_PREFERENCE,
            name="Tuesday pattern",
            mood_impact=-1.0,
            confidence=0.8,
            day_of_week=3,
        ))
        after = await service.predict_mood(target, entries=entries, user_id=USER_ID)
        assert after.predicted_mood < before.predicted_mood

    async def test_employee_friday_beats_monday(self, service, registry):
        registry.get(USER_ID).set_occupation_type(OccupationType.EMPLOYEE)
        entries = daily_entries(date(2025, 5, 1), 30, mood=6)
        monday = await service.predict_mood(date(2025, 6, 9), entries=entries, user_id=USER_ID)
        friday = await service.predict_mood(date(2025, 6, 13), entries=entries, user_id=USER_ID)
        assert friday.predicted_mood > monday.predicted_mood

    async def test_confidence_grows_with_history(self, service):
        target = date(2025, 6, 10)
        few = await service.predict_mood(target, entries=daily_entries(date(2025, 6, 1), 3), user_id=USER_ID)
        many = await service.predict_mood(target, entries=daily_entries(date(2025, 3, 1), 90), user_id=USER_ID)
        assert many.confidence > few.confidence


class TestPredictWeek:
    """consecutive daily predictions"""

    async def test_seven_consecutive_days(self, service, mock_remote):
        mock_remote.get_entries.return_value = daily_entries(date(2025, 5, 1), 20, mood=6)
        predictions = await service.predict_week(date(2025, 6, 9), user_id=USER_ID)
        assert [p.target_date for p in predictions] == [date(2025, 6, 9) + timedelta(days=i) for i in range(7)]
        mock_remote.get_entries.assert_awaited_once()

    async def test_days_out_of_range(self, service):
        with pytest.raises(ValueError):
            await service.predict_week(date(2025, 6, 9), days=0)
        with pytest.raises(ValueError):
            await service.predict_week(date(2025, 6, 9), days=30)
