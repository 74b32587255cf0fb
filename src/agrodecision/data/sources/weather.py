"""
Concrete forecast source implementations.
Supports Open-Meteo forecasts and a deterministic seasonal mock.
"""
import hashlib
import os
from datetime import date, datetime, timedelta
from typing import List, Dict, Any, Optional

import numpy as np
import requests
from dotenv import load_dotenv

from agrodecision.core.config import AgroConfig
from agrodecision.core.exceptions import DataValidationError, WeatherUnavailableError
from agrodecision.data.contracts import CurrentConditions, DailyForecast, WeatherAggregate
from agrodecision.data.sources.base import ForecastSource

load_dotenv()


class OpenMeteoForecastSource(ForecastSource):
    """
    Forecast source using the Open-Meteo API.
    Set OPEN_METEO_API_KEY to use the commercial endpoint.
    """

    CURRENT_VARIABLES = ["temperature_2m", "relative_humidity_2m"]
    DAILY_VARIABLES = ["temperature_2m_max", "temperature_2m_min", "precipitation_sum"]

    def __init__(self, config: Optional[AgroConfig] = None,
                 session: Optional[requests.Session] = None):
        super().__init__("open_meteo", config)
        self.api_key = os.getenv("OPEN_METEO_API_KEY")
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': 'AgroDecision-Irrigation-Engine/1.0'
        })

    def fetch_forecast(self, latitude: float, longitude: float) -> WeatherAggregate:
        weather_cfg = self.config.weather
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join(self.CURRENT_VARIABLES),
            "daily": ",".join(self.DAILY_VARIABLES),
            "forecast_days": weather_cfg.forecast_days,
            "timezone": weather_cfg.timezone,
        }
        if self.api_key:
            params["apikey"] = self.api_key

        self.logger.info(f"Fetching forecast for ({latitude:.4f}, {longitude:.4f})")

        try:
            response = self.session.get(weather_cfg.forecast_url, params=params,
                                        timeout=weather_cfg.http_timeout_seconds)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise WeatherUnavailableError(f"Open-Meteo API error: {e}")

        current, days = self._parse_response(data)
        return self._build_aggregate(latitude, longitude, current, days)

    def _parse_response(self, data: Dict[str, Any]):
        """Parse Open-Meteo JSON into current conditions and daily forecasts"""
        try:
            current_raw = data["current"]
            daily = data["daily"]
            current = CurrentConditions(
                temp_c=current_raw["temperature_2m"],
                humidity_pct=current_raw["relative_humidity_2m"],
            )
            days = []
            for i, day_str in enumerate(daily["time"]):
                precip = daily["precipitation_sum"][i]
                days.append(DailyForecast(
                    date=date.fromisoformat(day_str),
                    temp_max_c=daily["temperature_2m_max"][i],
                    temp_min_c=daily["temperature_2m_min"][i],
                    precipitation_mm=precip if precip is not None else 0.0,
                ))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DataValidationError(f"Malformed Open-Meteo response: {e}")

        if not days:
            raise DataValidationError("Open-Meteo response has no daily forecast")

        return current, days


class SeasonalMockForecastSource(ForecastSource):
    """
    Deterministic synthetic forecast for offline use and degraded operation.

    Values depend only on location and date, follow an annual cycle with a
    monsoon rain peak, and stay in plausible ranges for the Indian plains.
    """

    def __init__(self, config: Optional[AgroConfig] = None,
                 today: Optional[date] = None):
        super().__init__("seasonal_mock", config)
        self._today = today

    def fetch_forecast(self, latitude: float, longitude: float) -> WeatherAggregate:
        start = self._today or datetime.now().date()
        key = self._location_key(latitude, longitude)

        days = [
            self._synthesize_day(key, start + timedelta(days=offset))
            for offset in range(self.config.weather.forecast_days)
        ]
        first = days[0]
        current = CurrentConditions(
            temp_c=round(first.mean_temp_c, 1),
            humidity_pct=self._humidity(first.date),
        )
        return self._build_aggregate(latitude, longitude, current, days, is_mock=True)

    @staticmethod
    def _rng(key: str, day: date) -> np.random.Generator:
        digest = hashlib.md5(f"{key}|{day.isoformat()}".encode()).hexdigest()
        return np.random.default_rng(int(digest[:16], 16))

    @staticmethod
    def _humidity(day: date) -> float:
        day_of_year = day.timetuple().tm_yday
        monsoon = np.exp(-((day_of_year - 210) / 40.0) ** 2)
        return round(float(45 + 40 * monsoon), 1)

    def _synthesize_day(self, key: str, day: date) -> DailyForecast:
        rng = self._rng(key, day)
        day_of_year = day.timetuple().tm_yday

        # Warmest in late May, coolest in early January
        season_factor = np.sin(2 * np.pi * (day_of_year - 60) / 365)
        temp_mean = 24 + 9 * season_factor + rng.normal(0, 1.5)
        spread = 5 + rng.uniform(0, 3)
        temp_min = float(np.clip(temp_mean - spread, 0, 35))
        temp_max = float(np.clip(temp_mean + spread, temp_min, 46))

        # Monsoon peak around late July
        monsoon = np.exp(-((day_of_year - 210) / 40.0) ** 2)
        rain_chance = 0.1 + 0.6 * monsoon
        if rng.random() < rain_chance:
            precip = float(min(60.0, rng.exponential(4 + 12 * monsoon)))
        else:
            precip = 0.0

        return DailyForecast(
            date=day,
            temp_max_c=round(temp_max, 1),
            temp_min_c=round(temp_min, 1),
            precipitation_mm=round(precip, 1),
        )
