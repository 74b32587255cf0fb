"""
Data contracts and schemas for the decision engine.
Ensures data consistency and provides validation.
"""
from datetime import date, datetime, timedelta
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from agrodecision.core.constants import COORDINATE_PRECISION
from agrodecision.core.types import (
    FieldID, MoisturePct, TemperatureC, DegreeDays, DepthMm,
    GrowthStage, SoilTexture, Urgency, IrrigationMethod,
)
from agrodecision.crops.registry import get_crop_parameters


class Location(BaseModel):
    """Geographic position of a field"""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = ConfigDict(frozen=True)

    def cache_key(self, precision: int = COORDINATE_PRECISION) -> str:
        """Coordinates rounded to `precision` decimals, e.g. '28.6139,77.2090'"""
        return f"{self.latitude:.{precision}f},{self.longitude:.{precision}f}"


class FieldState(BaseModel):
    """
    Snapshot of a field as owned by the store.

    The engine works on copies: every change produces a new instance.
    """
    field_id: FieldID
    crop_name: str
    sowing_date: date
    soil_texture: SoilTexture
    base_temperature: TemperatureC
    total_gdd_required: DegreeDays = Field(gt=0)
    location: Location
    accumulated_gdd: DegreeDays = Field(default=0.0, ge=0)
    growth_stage: GrowthStage = GrowthStage.INITIAL

    model_config = ConfigDict(frozen=True)

    @classmethod
    def for_crop(cls, field_id: FieldID, crop_name: str, sowing_date: date,
                 soil_texture: SoilTexture, location: Location) -> "FieldState":
        """New field with GDD constants taken from the crop registry"""
        params = get_crop_parameters(crop_name)
        return cls(
            field_id=field_id,
            crop_name=params.crop.value,
            sowing_date=sowing_date,
            soil_texture=soil_texture,
            base_temperature=params.base_temp_c,
            total_gdd_required=params.total_gdd_required,
            location=location,
        )

    def with_crop(self, crop_name: str, sowing_date: date) -> "FieldState":
        """Replant: new crop constants, GDD reset to zero, stage back to INITIAL"""
        params = get_crop_parameters(crop_name)
        return self.model_copy(update={
            "crop_name": params.crop.value,
            "sowing_date": sowing_date,
            "base_temperature": params.base_temp_c,
            "total_gdd_required": params.total_gdd_required,
            "accumulated_gdd": 0.0,
            "growth_stage": GrowthStage.INITIAL,
        })

    def with_gdd(self, cumulative_gdd: DegreeDays, stage: GrowthStage) -> "FieldState":
        return self.model_copy(update={"accumulated_gdd": cumulative_gdd, "growth_stage": stage})


class SoilReading(BaseModel):
    """One underground sensor sample"""
    moisture_pct: MoisturePct = Field(ge=0, le=100)
    temperature_c: TemperatureC = Field(ge=-40, le=70)
    timestamp: datetime


class DailyGDDRecord(BaseModel):
    """Daily GDD entry; unique per (field_id, date)"""
    field_id: FieldID
    date: date
    avg_temp: TemperatureC
    min_temp: TemperatureC
    max_temp: TemperatureC
    reading_count: int = Field(ge=1)
    daily_gdd: DegreeDays = Field(ge=0)
    cumulative_gdd: DegreeDays = Field(ge=0)
    growth_stage: GrowthStage

    model_config = ConfigDict(frozen=True)


class DailyForecast(BaseModel):
    """One day of the provider's daily forecast"""
    date: date
    temp_max_c: TemperatureC
    temp_min_c: TemperatureC
    precipitation_mm: float = Field(default=0.0, ge=0)

    @field_validator('temp_max_c')
    @classmethod
    def validate_temperature_range(cls, v, info):
        """Ensure temperature max >= min"""
        if 'temp_min_c' in info.data and info.data['temp_min_c'] is not None:
            if v < info.data['temp_min_c']:
                raise ValueError('temp_max_c must be >= temp_min_c')
        return v

    @property
    def mean_temp_c(self) -> float:
        return (self.temp_max_c + self.temp_min_c) / 2.0


class CurrentConditions(BaseModel):
    temp_c: TemperatureC
    humidity_pct: float = Field(ge=0, le=100)


class WeatherAggregate(BaseModel):
    """Forecast for one location as held by the cache"""
    location_key: str
    current: CurrentConditions
    daily_forecast: List[DailyForecast] = Field(max_length=16)
    fetched_at: datetime
    expires_at: datetime
    source: str = "open_meteo"
    is_mock: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_expiry(self):
        if self.expires_at < self.fetched_at:
            raise ValueError('expires_at must not precede fetched_at')
        return self

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def with_expiry(self, fetched_at: datetime, ttl: timedelta) -> "WeatherAggregate":
        return self.model_copy(update={"fetched_at": fetched_at, "expires_at": fetched_at + ttl})


class GrowthStageInfo(BaseModel):
    stage: GrowthStage
    progress_pct: float = Field(ge=0, le=100)
    days_elapsed: int = Field(ge=0)
    gdd_accumulated: DegreeDays = Field(ge=0)
    gdd_required: DegreeDays = Field(gt=0)
    gdd_remaining: DegreeDays = Field(ge=0)
    days_to_maturity: int = Field(ge=0)
    description: str


class IrrigationInput(BaseModel):
    """What a trigger knows about a field at decision time"""
    crop_name: str
    soil_texture: SoilTexture
    current_moisture_pct: MoisturePct = Field(ge=0, le=100)
    sowing_date: date
    accumulated_gdd: DegreeDays = Field(ge=0)
    location: Location
    field_id: Optional[FieldID] = None
    current_temp_c: Optional[TemperatureC] = None


class WeatherSummary(BaseModel):
    next_3_days_rain_mm: float = Field(ge=0)
    avg_temp_next_7_days_c: float
    min_temp_c: float
    max_temp_c: float
    projected_gdd_7d: Optional[DegreeDays] = None


class IrrigationDecision(BaseModel):
    """Outcome of one rule engine evaluation"""
    should_irrigate: bool
    recommended_depth_mm: DepthMm = Field(ge=0)
    urgency: Urgency
    confidence: float = Field(ge=0, le=1)
    rule_triggered: str
    next_check_hours: int = Field(gt=0)
    reason: str
    method: Optional[IrrigationMethod] = None
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    notes: List[str] = Field(default_factory=list)
    kc: Optional[float] = None
    weather: Optional[WeatherSummary] = None
    growth: Optional[GrowthStageInfo] = None
    field_id: Optional[FieldID] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_depth(self):
        if not self.should_irrigate and self.recommended_depth_mm != 0:
            raise ValueError('recommended_depth_mm must be 0 when not irrigating')
        return self


class BackfillResult(BaseModel):
    """Records computed by a backfill plus anything that could not be stored"""
    field_id: FieldID
    records: List[DailyGDDRecord] = Field(default_factory=list)
    skipped_dates: List[date] = Field(default_factory=list)
    persistence_failures: List[date] = Field(default_factory=list)
    field_state: Optional[FieldState] = None

    @property
    def final_cumulative_gdd(self) -> Optional[DegreeDays]:
        return self.records[-1].cumulative_gdd if self.records else None

    @property
    def fully_persisted(self) -> bool:
        return not self.persistence_failures
