"""Shared fixtures: fake forecast providers, clocks and configuration."""
import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from agrodecision.core.config import AgroConfig, WeatherConfig, set_config
from agrodecision.data.contracts import CurrentConditions, DailyForecast, WeatherAggregate


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def build_aggregate(rain_mm=(0, 0, 0, 0, 0, 0, 0), t_max=32.0, t_min=22.0,
                    start=date(2024, 9, 1), key="28.6139,77.2090") -> WeatherAggregate:
    fetched = datetime(2024, 9, 1, 6, tzinfo=timezone.utc)
    days = [
        DailyForecast(date=start + timedelta(days=i), temp_max_c=t_max, temp_min_c=t_min,
                      precipitation_mm=rain)
        for i, rain in enumerate(rain_mm)
    ]
    return WeatherAggregate(
        location_key=key,
        current=CurrentConditions(temp_c=(t_max + t_min) / 2, humidity_pct=60),
        daily_forecast=days,
        fetched_at=fetched,
        expires_at=fetched,
        source="fake",
    )


class FakeForecastSource:
    """ForecastProvider double with call counting, blocking and failure modes"""

    def __init__(self, aggregate=None, error=None, gate=None):
        self.aggregate = aggregate if aggregate is not None else build_aggregate()
        self.error = error
        self.gate = gate
        self.calls = 0
        self.started = threading.Event()
        self._lock = threading.Lock()

    def fetch_forecast(self, latitude, longitude):
        with self._lock:
            self.calls += 1
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.aggregate


@pytest.fixture(autouse=True)
def reset_config():
    """Each test starts from an environment-derived configuration"""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def config():
    return AgroConfig(weather=WeatherConfig(fetch_timeout_seconds=2.0, cache_ttl_seconds=3600))


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 9, 1, 6, tzinfo=timezone.utc))


@pytest.fixture
def aggregate_factory():
    return build_aggregate


@pytest.fixture
def source_factory():
    return FakeForecastSource
