"""
Growing Degree Day accumulation and GDD-driven growth stages.

Daily GDD (simple method):
    GDD = max(0, (Tmax + Tmin)/2 - Tbase)

Threshold method: Tmax is capped at the crop's upper temperature and Tmin
raised to Tbase before averaging. Sensor-driven tracking uses the daily mean
soil temperature in place of (Tmax + Tmin)/2.

Stage is a pure function of progress = accumulated / required × 100:
    <15 INITIAL, <40 DEVELOPMENT, <75 MID_SEASON, <95 LATE_SEASON, else HARVEST_READY

References:
- McMaster & Wilhelm (1997) Agric. For. Meteorol. 87:291-300
"""

import logging
import math
from typing import Iterable, Optional

from agrodecision.core.config import get_config
from agrodecision.core.constants import GDD_DECIMALS, STAGE_UPPER_BOUNDS_PCT
from agrodecision.core.types import GrowthStage, DegreeDays, GDDMethod
from agrodecision.crops.registry import get_crop_parameters
from agrodecision.data.contracts import DailyForecast, GrowthStageInfo

logger = logging.getLogger(__name__)


# =============================================================================
# DAILY GDD
# =============================================================================

def daily_gdd(t_max: float, t_min: float, base_temp: float) -> DegreeDays:
    """Simple-average GDD for one day, never negative"""
    mean = (t_max + t_min) / 2.0
    return round(max(0.0, mean - base_temp), GDD_DECIMALS)


def daily_gdd_with_threshold(t_max: float, t_min: float, base_temp: float,
                             upper_temp: float) -> DegreeDays:
    """GDD with Tmax capped at upper_temp and Tmin raised to base_temp"""
    adj_max = min(t_max, upper_temp)
    adj_min = max(t_min, base_temp)
    if adj_min >= adj_max:
        return 0.0
    return round(max(0.0, (adj_max + adj_min) / 2.0 - base_temp), GDD_DECIMALS)


def soil_temperature_gdd(avg_soil_temp: float, base_temp: float) -> DegreeDays:
    """GDD from the daily mean of sensor soil temperatures"""
    return round(max(0.0, avg_soil_temp - base_temp), GDD_DECIMALS)


def gdd_for_day(method: GDDMethod, avg_temp: float, min_temp: float, max_temp: float,
                base_temp: float, upper_temp: float) -> DegreeDays:
    """Daily GDD from a daily temperature aggregate using the chosen method"""
    if method == GDDMethod.SOIL_TEMPERATURE:
        return soil_temperature_gdd(avg_temp, base_temp)
    if method == GDDMethod.THRESHOLD:
        return daily_gdd_with_threshold(max_temp, min_temp, base_temp, upper_temp)
    return daily_gdd(max_temp, min_temp, base_temp)


# =============================================================================
# STAGE MAPPING
# =============================================================================

def stage_of(progress_pct: float) -> GrowthStage:
    """Growth stage for a progress percentage (pure, monotone)"""
    for upper, stage in STAGE_UPPER_BOUNDS_PCT:
        if progress_pct < upper:
            return stage
    return GrowthStage.HARVEST_READY


def progress_pct(accumulated_gdd: DegreeDays, total_required: DegreeDays) -> float:
    # Multiply before dividing so exact boundaries (e.g. 15%) stay exact
    return accumulated_gdd * 100.0 / total_required


def growth_stage_for(accumulated_gdd: DegreeDays, total_required: DegreeDays) -> GrowthStage:
    return stage_of(progress_pct(accumulated_gdd, total_required))


def compute_growth_stage(crop_name: str, accumulated_gdd: DegreeDays, days_elapsed: int,
                         avg_daily_gdd: Optional[float] = None,
                         default_avg_daily_gdd: Optional[float] = None) -> GrowthStageInfo:
    """
    Growth stage and progress for a crop.

    Args:
        crop_name: Registered crop name
        accumulated_gdd: GDD since sowing
        days_elapsed: Days since sowing
        avg_daily_gdd: Expected GDD per remaining day. Defaults to the
            observed average so far, or the regional default when there is
            no history yet.
        default_avg_daily_gdd: GDD per day assumed before any history exists.
            Defaults to the configured `gdd.default_avg_daily_gdd`.

    Raises:
        UnsupportedCropError: if the crop is not registered
    """
    params = get_crop_parameters(crop_name)
    required = params.total_gdd_required
    accumulated = max(0.0, accumulated_gdd)
    days_elapsed = max(0, int(days_elapsed))

    raw_progress = progress_pct(accumulated, required)
    stage = stage_of(raw_progress)
    progress = round(min(100.0, raw_progress), 1)
    remaining = max(0.0, required - accumulated)

    if avg_daily_gdd is None or avg_daily_gdd <= 0:
        if days_elapsed > 0 and accumulated > 0:
            avg_daily_gdd = accumulated / days_elapsed
        else:
            avg_daily_gdd = default_avg_daily_gdd or get_config().gdd.default_avg_daily_gdd

    days_to_maturity = 0 if remaining <= 0 else int(math.ceil(remaining / avg_daily_gdd))

    return GrowthStageInfo(
        stage=stage,
        progress_pct=progress,
        days_elapsed=days_elapsed,
        gdd_accumulated=round(accumulated, GDD_DECIMALS),
        gdd_required=required,
        gdd_remaining=round(remaining, GDD_DECIMALS),
        days_to_maturity=days_to_maturity,
        description=stage.description,
    )


def forecast_gdd(crop_name: str, daily_forecast: Iterable[DailyForecast]) -> DegreeDays:
    """GDD expected over a forecast period (simple method)"""
    base = get_crop_parameters(crop_name).base_temp_c
    total = sum(daily_gdd(day.temp_max_c, day.temp_min_c, base) for day in daily_forecast)
    return round(total, GDD_DECIMALS)
