"""
Tests for field-level recommendations read from the store.
"""
from datetime import date, datetime

import pytest

from agrodecision.core.exceptions import NoSensorDataError
from agrodecision.core.types import GrowthStage, RuleName, SoilTexture, Urgency
from agrodecision.data.cache import WeatherForecastCache
from agrodecision.data.contracts import FieldState, Location, SoilReading
from agrodecision.data.store import InMemoryFieldStore
from agrodecision.irrigation.engine import IrrigationRuleEngine
from agrodecision.irrigation.service import IrrigationService

NOW = datetime(2024, 9, 1, 12)


def add_field(store, field_id, crop, gdd, moisture_readings):
    state = FieldState.for_crop(field_id, crop, date(2024, 7, 1), SoilTexture.LOAM,
                                Location(latitude=28.61, longitude=77.21))
    store.save_field_state(state.with_gdd(gdd, GrowthStage.MID_SEASON))
    store.add_readings(field_id, [
        SoilReading(moisture_pct=m, temperature_c=28.0, timestamp=datetime(2024, 9, 1, hour))
        for hour, m in moisture_readings
    ])


class TestIrrigationService:

    @pytest.fixture
    def store(self):
        store = InMemoryFieldStore(clock=lambda: NOW)
        add_field(store, "critical", "rice", 1100.0, [(6, 38.0), (10, 33.0)])
        add_field(store, "stable", "maize", 1200.0, [(9, 80.0)])
        add_field(store, "silent", "maize", 1200.0, [])
        return store

    @pytest.fixture
    def service(self, store, source_factory, config, clock):
        cache = WeatherForecastCache(source_factory(), config, clock=clock)
        engine = IrrigationRuleEngine(cache, config, today=lambda: NOW.date())
        yield IrrigationService(store, engine)
        cache.close()

    def test_uses_latest_reading(self, service):
        decision = service.decide_for_field("critical")

        assert decision.rule_triggered == RuleName.CRITICAL_LOW_MOISTURE_MID_SEASON.value
        assert decision.field_id == "critical"
        assert "33.0%" in decision.reason

    def test_no_readings_raises(self, service):
        with pytest.raises(NoSensorDataError) as exc_info:
            service.decide_for_field("silent")
        assert exc_info.value.context.field_id == "silent"

    def test_recommend_orders_by_urgency(self, service):
        decisions = service.recommend(["stable", "silent", "critical"])

        assert [d.field_id for d in decisions] == ["critical", "stable"]
        assert decisions[0].urgency == Urgency.CRITICAL
