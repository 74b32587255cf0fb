"""
Decision thresholds, stage boundaries and system-wide constants.
These are fixed: rule order and thresholds are not runtime configuration.
"""
from typing import Dict, Final, Tuple

from agrodecision.core.types import GrowthStage, SoilTexture

# Moisture thresholds (% on the sensor scale)
MOISTURE_OPTIMAL_PCT: Final[float] = 85.0  # at or above: skip irrigation
MOISTURE_CRITICAL_PCT: Final[float] = 40.0  # below: critical during mid-season

# Rain deferral
RAIN_FORECAST_THRESHOLD_MM: Final[float] = 20.0
RAIN_FORECAST_DAYS: Final[int] = 3

# Application depth bounds (mm)
MIN_IRRIGATION_DEPTH_MM: Final[float] = 10.0
MAX_IRRIGATION_DEPTH_MM: Final[float] = 50.0

# Kc above which a crop counts as high water demand
HIGH_KC_THRESHOLD: Final[float] = 1.0

# Fallback when no forecast is available
FALLBACK_DEPTH_MM: Final[float] = 25.0
FALLBACK_DURATION_MINUTES: Final[int] = 50

# Application rate (minutes of run time per mm applied)
CRITICAL_MINUTES_PER_MM: Final[float] = 2.5
STANDARD_MINUTES_PER_MM: Final[float] = 2.0

# Recheck intervals (hours)
DEFAULT_CHECK_INTERVAL_HOURS: Final[int] = 24

# Progress (% of required GDD) at which each stage ends
STAGE_UPPER_BOUNDS_PCT: Final[Tuple[Tuple[float, GrowthStage], ...]] = (
    (15.0, GrowthStage.INITIAL),
    (40.0, GrowthStage.DEVELOPMENT),
    (75.0, GrowthStage.MID_SEASON),
    (95.0, GrowthStage.LATE_SEASON),
)

# Weather cache
WEATHER_CACHE_TTL_SECONDS: Final[int] = 3600
COORDINATE_PRECISION: Final[int] = 4
FORECAST_HORIZON_DAYS: Final[int] = 7

# GDD
GDD_DECIMALS: Final[int] = 1
DEFAULT_AVG_DAILY_GDD: Final[float] = 20.0  # North Indian plains
SUITABILITY_MIN_TEMP_MARGIN_C: Final[float] = 5.0

# Soil texture table: field capacity %, wilting point %, rooting depth cm
SOIL_TEXTURE_PARAMETERS: Final[Dict[SoilTexture, Dict[str, float]]] = {
    SoilTexture.SANDY: {"field_capacity": 15.0, "wilting_point": 8.0, "rooting_depth_cm": 60.0},
    SoilTexture.LOAM: {"field_capacity": 25.0, "wilting_point": 12.0, "rooting_depth_cm": 70.0},
    SoilTexture.CLAY_LOAM: {"field_capacity": 35.0, "wilting_point": 18.0, "rooting_depth_cm": 80.0},
}
