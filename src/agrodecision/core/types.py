"""
Type definitions and type aliases for the decision engine.
Provides strong typing throughout the codebase.
"""
from datetime import date, datetime, timedelta
from typing import Protocol, runtime_checkable, List, Optional, TYPE_CHECKING
from enum import Enum
from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from agrodecision.data.contracts import (
        DailyGDDRecord,
        FieldState,
        SoilReading,
        WeatherAggregate,
    )


# Type aliases for clarity
FieldID: TypeAlias = str
Date: TypeAlias = date
DateTime: TypeAlias = datetime
MoisturePct: TypeAlias = float  # 0-100, sensor scale
TemperatureC: TypeAlias = float
DegreeDays: TypeAlias = float  # °C·day
DepthMm: TypeAlias = float
CacheKey: TypeAlias = str  # "lat,lon" rounded


class GrowthStage(str, Enum):
    """Crop growth stages, in phenological order"""
    INITIAL = "INITIAL"
    DEVELOPMENT = "DEVELOPMENT"
    MID_SEASON = "MID_SEASON"
    LATE_SEASON = "LATE_SEASON"
    HARVEST_READY = "HARVEST_READY"

    @property
    def description(self) -> str:
        descriptions = {
            GrowthStage.INITIAL: "Seed germination and early seedling establishment. Low water demand.",
            GrowthStage.DEVELOPMENT: "Rapid vegetative growth, tillering and leaf expansion. Increasing water demand.",
            GrowthStage.MID_SEASON: "Flowering and grain filling. Peak water demand, most sensitive to stress.",
            GrowthStage.LATE_SEASON: "Grain maturation and senescence. Declining water demand.",
            GrowthStage.HARVEST_READY: "Crop has reached physiological maturity. Minimal water demand.",
        }
        return descriptions[self]


class SoilTexture(str, Enum):
    SANDY = "SANDY"
    LOAM = "LOAM"
    CLAY_LOAM = "CLAY_LOAM"


class Season(str, Enum):
    RABI = "RABI"  # winter crop
    KHARIF = "KHARIF"  # monsoon crop


class Urgency(str, Enum):
    """How soon an irrigation decision should be acted upon"""
    NONE = "NONE"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def score(self) -> int:
        return list(Urgency).index(self)


class IrrigationMethod(str, Enum):
    DRIP = "drip"
    SPRINKLER = "sprinkler"


class GDDMethod(str, Enum):
    """Daily GDD formula applied to the daily temperature aggregate"""
    SOIL_TEMPERATURE = "soil_temperature"  # mean soil temperature minus base
    SIMPLE = "simple"  # (max + min) / 2 minus base
    THRESHOLD = "threshold"  # simple, clamped to [base, upper]


class RuleName(str, Enum):
    """Identifiers reported in IrrigationDecision.rule_triggered"""
    UNSUPPORTED_CROP = "UNSUPPORTED_CROP"
    HIGH_MOISTURE = "HIGH_MOISTURE"
    SUFFICIENT_RAIN_FORECAST = "SUFFICIENT_RAIN_FORECAST"
    CRITICAL_LOW_MOISTURE_MID_SEASON = "CRITICAL_LOW_MOISTURE_MID_SEASON"
    BELOW_STAGE_MINIMUM = "BELOW_STAGE_MINIMUM"
    HIGH_KC_MODERATE_MOISTURE = "HIGH_KC_MODERATE_MOISTURE"
    STABLE_CONDITIONS = "STABLE_CONDITIONS"
    FALLBACK_LOW_MOISTURE = "FALLBACK_LOW_MOISTURE"
    FALLBACK_STABLE = "FALLBACK_STABLE"


# Protocol definitions for dependency injection
@runtime_checkable
class FieldStore(Protocol):
    """Persistence collaborator owning field state, readings and GDD history"""

    def get_field_state(self, field_id: FieldID) -> "FieldState":
        ...

    def get_recent_soil_readings(self, field_id: FieldID, window: timedelta) -> List["SoilReading"]:
        ...

    def get_soil_readings(self, field_id: FieldID, start: DateTime, end: DateTime) -> List["SoilReading"]:
        ...

    def upsert_gdd_record(self, record: "DailyGDDRecord") -> None:
        ...

    def get_latest_gdd_record(self, field_id: FieldID) -> Optional["DailyGDDRecord"]:
        ...

    def get_gdd_records(self, field_id: FieldID, start: Date, end: Date) -> List["DailyGDDRecord"]:
        ...

    def delete_gdd_records(self, field_id: FieldID, start: Date, end: Date) -> int:
        ...


@runtime_checkable
class ForecastProvider(Protocol):
    """Protocol for weather forecast providers"""

    def fetch_forecast(self, latitude: float, longitude: float) -> "WeatherAggregate":
        """Fetch current conditions plus the daily forecast"""
        ...
