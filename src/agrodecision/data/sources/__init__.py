"""Forecast sources behind the weather cache."""
from agrodecision.data.sources.base import ForecastSource
from agrodecision.data.sources.weather import (
    OpenMeteoForecastSource,
    SeasonalMockForecastSource,
)

__all__ = [
    "ForecastSource",
    "OpenMeteoForecastSource",
    "SeasonalMockForecastSource",
]
