# contextual factor gatherer: weather, season, moon, calendar and personal patterns
# turns one target date into a flat list of weighted factors. no combining happens here.
#
# only the weather lookup awaits; everything else is pure calendar arithmetic

import asyncio
import logging
import math
from datetime import date, datetime, timedelta
from typing import Optional

from moodcast.config import settings
from moodcast.models.context import (
    CATEGORY_MULTIPLIERS,
    ContextualFactors,
    FactorCategory,
    Location,
    MoonPhase,
    Season,
    TimeOfYearContext,
    WeatherData,
    WeightedFactor,
)
from moodcast.models.pattern import OccupationType, PatternType, weekday_name, weekday_number
from moodcast.services.pattern_store import PersonalPatternStore
from moodcast.services.weather_service import OpenWeatherService, simulate_weather

logger = logging.getLogger(__name__)

HOLIDAY_WINDOW_DAYS = 7
HOLIDAY_IMPACT = 0.3
NEW_YEAR_IMPACT = 0.2
TAX_SEASON_IMPACT = -0.3

SYNODIC_MONTH = 29.53


# season

def season_for(day: date) -> Season:
    return Season.from_month(day.month)


# moon phase

def moon_phase_for(day: date) -> MoonPhase:
    """approximate phase from the julian day, relative to the jan 6 2000 new moon"""
    year, month = day.year, day.month
    if month < 3:
        year -= 1
        month += 12
    a = year // 100
    b = a // 4
    c = 2 - a + b
    e = int(365.25 * (year + 4716))
    f = int(30.6001 * (month + 1))
    julian_day = c + day.day + e + f - 1524.5

    cycles = (julian_day - 2451549.5) / SYNODIC_MONTH
    age = (cycles - math.floor(cycles)) * SYNODIC_MONTH

    if age < 1.84566:
        return MoonPhase.NEW_MOON
    if age < 5.53699:
        return MoonPhase.WAXING_CRESCENT
    if age < 9.22831:
        return MoonPhase.FIRST_QUARTER
    if age < 12.91963:
        return MoonPhase.WAXING_GIBBOUS
    if age < 16.61096:
        return MoonPhase.FULL_MOON
    if age < 20.30228:
        return MoonPhase.WANING_GIBBOUS
    if age < 23.99361:
        return MoonPhase.LAST_QUARTER
    return MoonPhase.WANING_CRESCENT


# calendar

def nth_weekday(year: int, month: int, weekday: int, nth: int) -> date:
    """nth occurrence of a python weekday (monday = 0) in a month"""
    first = date(year, month, 1)
    return first + timedelta(days=(weekday - first.weekday()) % 7, weeks=nth - 1)


def last_weekday(year: int, month: int, weekday: int) -> date:
    next_month = date(year + month // 12, month % 12 + 1, 1)
    last = next_month - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def thanksgiving(year: int) -> date:
    """fourth thursday of november"""
    return nth_weekday(year, 11, 3, 4)


def holidays_for(year: int) -> list[tuple[date, str]]:
    """us calendar plus the universal dates"""
    return [
        (date(year, 1, 1), "New Year's Day"),
        (nth_weekday(year, 1, 0, 3), "MLK Day"),
        (date(year, 2, 14), "Valentine's Day"),
        (nth_weekday(year, 2, 0, 3), "Presidents Day"),
        (last_weekday(year, 5, 0), "Memorial Day"),
        (date(year, 7, 4), "Independence Day"),
        (nth_weekday(year, 9, 0, 1), "Labor Day"),
        (date(year, 10, 31), "Halloween"),
        (thanksgiving(year), "Thanksgiving"),
        (date(year, 12, 24), "Christmas Eve"),
        (date(year, 12, 25), "Christmas"),
        (date(year, 12, 31), "New Year's Eve"),
    ]


def next_holiday(day: date) -> tuple[int, str]:
    """(days until, name) of the first holiday on or after day"""
    upcoming = [
        (holiday, name)
        for year in (day.year, day.year + 1)
        for holiday, name in holidays_for(year)
        if holiday >= day
    ]
    holiday, name = min(upcoming, key=lambda item: item[0])
    return (holiday - day).days, name


def time_of_year_for(day: date) -> TimeOfYearContext:
    days_until, name = next_holiday(day)
    return TimeOfYearContext(
        days_until_holiday=days_until,
        holiday_name=name,
        is_back_to_school_season=day.month in (8, 9),
        is_tax_season=day.month in (3, 4) and day.day <= 15,
        is_new_year_period=(day.month == 12 and day.day >= 20) or (day.month == 1 and day.day <= 15),
    )


def _factor(name: str, category: FactorCategory, raw_impact: float, description: str) -> WeightedFactor:
    return WeightedFactor(
        name=name,
        category=category,
        raw_impact=raw_impact,
        multiplier=CATEGORY_MULTIPLIERS[category],
        description=description,
    )


class ContextualFactorGatherer:
    """collects every non-baseline influence for a target date"""

    def __init__(
        self,
        weather_service: Optional[OpenWeatherService] = None,
        weather_enabled: Optional[bool] = None,
        weather_timeout: Optional[float] = None,
    ):
        self.weather_service = weather_service
        self.weather_enabled = settings.WEATHER_ENABLED if weather_enabled is None else weather_enabled
        self.weather_timeout = weather_timeout or settings.WEATHER_TIMEOUT_SECONDS

    async def get_weather(self, target_date: date, location: Optional[Location]) -> WeatherData:
        """live weather when possible, seasonal simulation otherwise"""
        if not self.weather_enabled or self.weather_service is None or location is None:
            return simulate_weather(target_date)
        try:
            return await asyncio.wait_for(
                self.weather_service.fetch_weather(location.latitude, location.longitude, target_date),
                timeout=self.weather_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Weather lookup timed out after {self.weather_timeout}s, using seasonal estimate")
        except Exception as e:
            logger.warning(f"Weather lookup failed, using seasonal estimate: {e}")
        return simulate_weather(target_date)

    async def gather(
        self,
        target_date: date,
        store: Optional[PersonalPatternStore] = None,
        location: Optional[Location] = None,
    ) -> ContextualFactors:
        if isinstance(target_date, datetime):
            target_date = target_date.date()

        weather = await self.get_weather(target_date, location)
        season = season_for(target_date)
        moon_phase = moon_phase_for(target_date)
        time_of_year = time_of_year_for(target_date)

        factors: list[WeightedFactor] = []

        description = f"{weather.condition.label}, {weather.temperature:.0f}°C"
        if weather.is_simulated:
            description += " (seasonal estimate)"
        factors.append(_factor("Weather", FactorCategory.WEATHER, weather.condition.mood_impact, description))

        factors.append(_factor("Season", FactorCategory.SEASON, season.mood_impact, season.value.capitalize()))

        if moon_phase.mood_impact != 0:
            label = "Full moon" if moon_phase == MoonPhase.FULL_MOON else "New moon"
            factors.append(_factor("Moon phase", FactorCategory.MOON_PHASE, moon_phase.mood_impact, label))

        if time_of_year.is_holiday_approaching:
            factors.append(_factor(
                "Holiday", FactorCategory.TIME_OF_YEAR, HOLIDAY_IMPACT, f"Near {time_of_year.holiday_name}",
            ))
        if time_of_year.is_new_year_period:
            factors.append(_factor(
                "New year", FactorCategory.TIME_OF_YEAR, NEW_YEAR_IMPACT, "Fresh-start energy around the new year",
            ))
        if time_of_year.is_tax_season:
            factors.append(_factor(
                "Tax season", FactorCategory.TIME_OF_YEAR, TAX_SEASON_IMPACT, "Tax deadline pressure",
            ))

        patterns = []
        occupation = OccupationType.UNKNOWN
        if store is not None:
            occupation = store.occupation_type
            patterns = [
                p for p in store.get_patterns_affecting(target_date)
                if p.pattern_type != PatternType.OCCUPATION_TYPE
            ]
            for pattern in patterns:
                factors.append(_factor(
                    pattern.name, FactorCategory.PERSONAL, pattern.mood_impact, pattern.description,
                ))

            weekday = weekday_number(target_date)
            occupation_impact = occupation.mood_impact_for_weekday(weekday)
            if occupation_impact != 0:
                factors.append(_factor(
                    "Weekly rhythm",
                    FactorCategory.PERSONAL,
                    occupation_impact,
                    f"Typical {weekday_name(weekday)} for your work pattern",
                ))

        return ContextualFactors(
            target_date=target_date,
            weather=weather,
            season=season,
            moon_phase=moon_phase,
            time_of_year=time_of_year,
            applicable_patterns=patterns,
            occupation_type=occupation,
            factors=[f for f in factors if f.raw_impact != 0],
        )
