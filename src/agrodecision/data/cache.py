"""
Weather Forecast Cache.

Keeps one forecast per location (coordinates rounded to 4 decimals) for a
fixed TTL. Concurrent lookups for the same key share a single in-flight
fetch. When the provider fails, returns invalid data, or does not answer
within the timeout, lookups return a deterministic seasonal mock flagged
with ``is_mock=True``; mock data is never cached.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, NamedTuple, Optional

import numpy as np

from agrodecision.core.config import AgroConfig, get_config
from agrodecision.core.constants import RAIN_FORECAST_DAYS, RAIN_FORECAST_THRESHOLD_MM
from agrodecision.core.exceptions import DataValidationError, ErrorContext
from agrodecision.core.types import CacheKey, ForecastProvider
from agrodecision.data.contracts import Location, WeatherAggregate
from agrodecision.data.sources.weather import SeasonalMockForecastSource

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheStats:
    entries: int
    in_flight: int
    hits: int
    misses: int
    fallbacks: int


class WeatherForecastCache:
    """
    Thread-safe TTL cache in front of a ForecastProvider.

    Example:
        with WeatherForecastCache(OpenMeteoForecastSource()) as cache:
            cache.start_sweeper()
            aggregate = cache.lookup(Location(latitude=28.61, longitude=77.21))
    """

    def __init__(self, source: ForecastProvider, config: Optional[AgroConfig] = None,
                 mock_source: Optional[ForecastProvider] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.config = config or get_config()
        weather_cfg = self.config.weather

        self.source = source
        self.mock_source = mock_source or SeasonalMockForecastSource(self.config)
        self.ttl = timedelta(seconds=weather_cfg.cache_ttl_seconds)
        self.precision = weather_cfg.coordinate_precision
        self.timeout_seconds = weather_cfg.fetch_timeout_seconds
        self.sweep_period_seconds = weather_cfg.sweep_period_seconds
        self._clock = clock

        self._entries: Dict[CacheKey, WeatherAggregate] = {}
        self._in_flight: Dict[CacheKey, Future] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=weather_cfg.max_workers,
                                            thread_name_prefix="forecast-fetch")

        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

        self._hits = 0
        self._misses = 0
        self._fallbacks = 0

    # ------------------------------------------------------------------
    # Entry access
    # ------------------------------------------------------------------

    def key_for(self, location: Location) -> CacheKey:
        return location.cache_key(self.precision)

    def get(self, key: CacheKey) -> Optional[WeatherAggregate]:
        """Live entry for key, or None when missing or expired"""
        with self._lock:
            return self._live_entry(key)

    def put(self, aggregate: WeatherAggregate) -> None:
        with self._lock:
            self._entries[aggregate.location_key] = aggregate

    def sweep(self) -> int:
        """Remove expired entries; returns how many were removed"""
        now = self._clock()
        with self._lock:
            expired = [k for k, v in self._entries.items() if v.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Swept {len(expired)} expired forecast(s)")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Weather cache cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                in_flight=len(self._in_flight),
                hits=self._hits,
                misses=self._misses,
                fallbacks=self._fallbacks,
            )

    def _live_entry(self, key: CacheKey) -> Optional[WeatherAggregate]:
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is not None and not entry.is_expired(self._clock()):
            return entry
        return None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, location: Location) -> WeatherAggregate:
        """
        Forecast for a location: cached, freshly fetched, or mock.

        Never raises for provider problems; check ``is_mock`` on the result.
        """
        key = self.key_for(location)

        try:
            future = self._future_for(key, location)
            return future.result(timeout=self.timeout_seconds)
        except FuturesTimeout:
            logger.warning(
                f"Forecast for {key} not ready after {self.timeout_seconds}s, using seasonal mock"
            )
        except Exception as e:
            logger.warning(f"Forecast fetch for {key} failed ({e}), using seasonal mock")

        return self._mock(key, location)

    def _future_for(self, key: CacheKey, location: Location) -> Future:
        with self._lock:
            entry = self._live_entry(key)
            if entry is not None:
                self._hits += 1
                logger.debug(f"Cache hit for {key}")
                done: Future = Future()
                done.set_result(entry)
                return done

            self._misses += 1
            future = self._in_flight.get(key)
            if future is None:
                future = self._executor.submit(self._fetch_and_store, key, location)
                self._in_flight[key] = future
            else:
                logger.debug(f"Joining in-flight fetch for {key}")
            return future

    def _fetch_and_store(self, key: CacheKey, location: Location) -> WeatherAggregate:
        try:
            aggregate = self.source.fetch_forecast(location.latitude, location.longitude)
            self._validate(key, aggregate)

            fetched_at = self._clock()
            stored = aggregate.model_copy(update={
                "location_key": key,
                "fetched_at": fetched_at,
                "expires_at": fetched_at + self.ttl,
            })
            self.put(stored)
            logger.info(f"Cached forecast for {key} ({len(stored.daily_forecast)} days)")
            return stored
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    @staticmethod
    def _validate(key: CacheKey, aggregate) -> None:
        context = ErrorContext(component="weather_cache", operation="fetch", details={"key": key})
        if not isinstance(aggregate, WeatherAggregate):
            raise DataValidationError(
                f"Provider returned {type(aggregate).__name__}, expected WeatherAggregate", context
            )
        if not aggregate.daily_forecast:
            raise DataValidationError("Provider returned an empty daily forecast", context)

    def _mock(self, key: CacheKey, location: Location) -> WeatherAggregate:
        with self._lock:
            self._fallbacks += 1
        aggregate = self.mock_source.fetch_forecast(location.latitude, location.longitude)
        now = self._clock()
        return aggregate.model_copy(update={
            "location_key": key,
            "fetched_at": now,
            "expires_at": now,
            "is_mock": True,
        })

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_sweeper(self) -> None:
        """Sweep expired entries on a daemon thread every sweep period"""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="forecast-sweeper",
                                         daemon=True)
        self._sweeper.start()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_period_seconds):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Weather cache sweep failed: {e}")

    def close(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "WeatherForecastCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# =============================================================================
# FORECAST AGGREGATES
# =============================================================================

class TemperatureRange(NamedTuple):
    min_c: float
    max_c: float
    avg_c: float


def cumulative_rainfall(aggregate: WeatherAggregate, days: int) -> float:
    """Total precipitation over the first `days` forecast days (mm)"""
    window = aggregate.daily_forecast[:max(0, days)]
    return round(float(sum(d.precipitation_mm for d in window)), 1)


def is_significant_rain(aggregate: WeatherAggregate, days: int = RAIN_FORECAST_DAYS,
                        threshold_mm: float = RAIN_FORECAST_THRESHOLD_MM) -> bool:
    return cumulative_rainfall(aggregate, days) >= threshold_mm


def temperature_range(aggregate: WeatherAggregate) -> TemperatureRange:
    """Lowest minimum, highest maximum and mean daily temperature of the forecast"""
    days = aggregate.daily_forecast
    if not days:
        t = aggregate.current.temp_c
        return TemperatureRange(t, t, t)

    mins = np.array([d.temp_min_c for d in days])
    maxs = np.array([d.temp_max_c for d in days])
    avg = float(np.mean((mins + maxs) / 2.0))
    return TemperatureRange(float(mins.min()), float(maxs.max()), round(avg, 1))


def average_temperature(aggregate: WeatherAggregate) -> float:
    return temperature_range(aggregate).avg_c
