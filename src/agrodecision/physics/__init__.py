"""Physics modules: degree-day phenology and root-zone water."""
from agrodecision.physics.growth_stage import (
    daily_gdd,
    daily_gdd_with_threshold,
    soil_temperature_gdd,
    gdd_for_day,
    stage_of,
    growth_stage_for,
    compute_growth_stage,
    forecast_gdd,
)
from agrodecision.physics.soil_water import (
    TextureProperties,
    available_water_mm,
    required_depth_mm,
    irrigation_duration_minutes,
)

__all__ = [
    "daily_gdd",
    "daily_gdd_with_threshold",
    "soil_temperature_gdd",
    "gdd_for_day",
    "stage_of",
    "growth_stage_for",
    "compute_growth_stage",
    "forecast_gdd",
    "TextureProperties",
    "available_water_mm",
    "required_depth_mm",
    "irrigation_duration_minutes",
]
