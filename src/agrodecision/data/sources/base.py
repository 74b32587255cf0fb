"""
Abstract base class for forecast sources.
Provides the unified interface the weather cache fetches through.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional
import logging

from agrodecision.core.config import AgroConfig, get_config
from agrodecision.data.contracts import (
    CurrentConditions, DailyForecast, Location, WeatherAggregate,
)


class ForecastSource(ABC):
    """
    Abstract base class for weather forecast sources.

    Implementations return a WeatherAggregate whose expiry equals its fetch
    time; the cache stamps the real expiry when it stores the entry.
    """

    def __init__(self, name: str, config: Optional[AgroConfig] = None):
        self.name = name
        self.config = config or get_config()
        self.logger = logging.getLogger(f"agrodecision.data.{name}")

    @abstractmethod
    def fetch_forecast(self, latitude: float, longitude: float) -> WeatherAggregate:
        """
        Fetch current conditions and the daily forecast for a point.
        Must be implemented by concrete sources.
        """
        pass

    def _location_key(self, latitude: float, longitude: float) -> str:
        location = Location(latitude=latitude, longitude=longitude)
        return location.cache_key(self.config.weather.coordinate_precision)

    def _build_aggregate(self, latitude: float, longitude: float,
                         current: CurrentConditions, days: List[DailyForecast],
                         is_mock: bool = False) -> WeatherAggregate:
        now = datetime.now(timezone.utc)
        return WeatherAggregate(
            location_key=self._location_key(latitude, longitude),
            current=current,
            daily_forecast=days[:self.config.weather.forecast_days],
            fetched_at=now,
            expires_at=now,
            source=self.name,
            is_mock=is_mock,
        )
