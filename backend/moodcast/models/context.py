# contextual factor models: weather, season, moon, calendar, weighted factors
# computed per prediction call, never persisted

from datetime import date
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from moodcast.models.pattern import OccupationType, PersonalPattern


class WeatherCondition(str, Enum):
    SUNNY = "sunny"
    PARTLY_CLOUDY = "partlyCloudy"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    STORMY = "stormy"
    SNOWY = "snowy"
    FOGGY = "foggy"

    @property
    def mood_impact(self) -> float:
        return WEATHER_MOOD_IMPACT[self]

    @property
    def label(self) -> str:
        return WEATHER_LABELS[self]


WEATHER_MOOD_IMPACT = {
    WeatherCondition.SUNNY: 0.8,
    WeatherCondition.PARTLY_CLOUDY: 0.3,
    WeatherCondition.CLOUDY: -0.2,
    WeatherCondition.RAINY: -0.5,
    WeatherCondition.STORMY: -0.8,
    WeatherCondition.SNOWY: -0.3,
    WeatherCondition.FOGGY: -0.4,
}

WEATHER_LABELS = {
    WeatherCondition.SUNNY: "Sunny",
    WeatherCondition.PARTLY_CLOUDY: "Partly cloudy",
    WeatherCondition.CLOUDY: "Cloudy",
    WeatherCondition.RAINY: "Rainy",
    WeatherCondition.STORMY: "Stormy",
    WeatherCondition.SNOWY: "Snowy",
    WeatherCondition.FOGGY: "Foggy",
}


class WeatherData(BaseModel):
    temperature: float
    condition: WeatherCondition
    humidity: Optional[float] = None
    uv_index: Optional[float] = Field(None, alias="uvIndex")
    is_simulated: bool = Field(False, alias="isSimulated")

    model_config = {"populate_by_name": True}


class Season(str, Enum):
    """northern-hemisphere meteorological seasons"""
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"

    @property
    def mood_impact(self) -> float:
        return {
            Season.SPRING: 0.5,
            Season.SUMMER: 0.7,
            Season.FALL: 0.0,
            Season.WINTER: -0.4,
        }[self]

    @classmethod
    def from_month(cls, month: int) -> "Season":
        if month in (3, 4, 5):
            return cls.SPRING
        if month in (6, 7, 8):
            return cls.SUMMER
        if month in (9, 10, 11):
            return cls.FALL
        return cls.WINTER


class MoonPhase(str, Enum):
    NEW_MOON = "newMoon"
    WAXING_CRESCENT = "waxingCrescent"
    FIRST_QUARTER = "firstQuarter"
    WAXING_GIBBOUS = "waxingGibbous"
    FULL_MOON = "fullMoon"
    WANING_GIBBOUS = "waningGibbous"
    LAST_QUARTER = "lastQuarter"
    WANING_CRESCENT = "waningCrescent"

    @property
    def mood_impact(self) -> float:
        if self == MoonPhase.FULL_MOON:
            return -0.2
        if self == MoonPhase.NEW_MOON:
            return 0.1
        return 0.0


class TimeOfYearContext(BaseModel):
    days_until_holiday: Optional[int] = Field(None, alias="daysUntilHoliday")
    holiday_name: Optional[str] = Field(None, alias="holidayName")
    is_back_to_school_season: bool = Field(False, alias="isBackToSchoolSeason")
    is_tax_season: bool = Field(False, alias="isTaxSeason")
    is_new_year_period: bool = Field(False, alias="isNewYearPeriod")

    model_config = {"populate_by_name": True}

    @property
    def is_holiday_approaching(self) -> bool:
        return self.days_until_holiday is not None and self.days_until_holiday <= 7


class FactorCategory(str, Enum):
    WEATHER = "weather"
    SEASON = "season"
    TIME_OF_YEAR = "timeOfYear"
    MOON_PHASE = "moonPhase"
    PERSONAL = "personal"


# personal patterns are first-party signal and stay unscaled
CATEGORY_MULTIPLIERS = {
    FactorCategory.WEATHER: 0.70,
    FactorCategory.SEASON: 0.50,
    FactorCategory.TIME_OF_YEAR: 0.60,
    FactorCategory.MOON_PHASE: 0.30,
    FactorCategory.PERSONAL: 1.0,
}


class WeightedFactor(BaseModel):
    """one (name, raw impact, multiplier) term emitted by the gatherer"""
    name: str
    category: FactorCategory
    raw_impact: float = Field(..., alias="rawImpact")
    multiplier: float
    description: str = ""

    model_config = {"populate_by_name": True}

    @property
    def weighted_impact(self) -> float:
        return self.raw_impact * self.multiplier


class Location(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ContextualFactors(BaseModel):
    """everything the combiner needs besides the baseline, for one target date"""
    target_date: date = Field(..., alias="date")
    weather: WeatherData
    season: Season
    moon_phase: MoonPhase = Field(..., alias="moonPhase")
    time_of_year: TimeOfYearContext = Field(..., alias="timeOfYear")
    applicable_patterns: list[PersonalPattern] = Field(default_factory=list, alias="applicablePatterns")
    occupation_type: OccupationType = Field(OccupationType.UNKNOWN, alias="occupationType")
    factors: list[WeightedFactor] = Field(default_factory=list)

    model_config = {"populate_by_name": True}
