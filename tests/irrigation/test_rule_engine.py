"""
Tests for the irrigation rule engine: rule order, depths, fallback path
and unsupported crops.
"""
import threading
from datetime import date

import pytest

from agrodecision.core.config import AgroConfig, GDDConfig, WeatherConfig
from agrodecision.core.types import IrrigationMethod, RuleName, SoilTexture, Urgency, GrowthStage
from agrodecision.crops.registry import CropType, get_crop_parameters
from agrodecision.data.cache import WeatherForecastCache
from agrodecision.data.contracts import IrrigationInput, Location
from agrodecision.irrigation.engine import IrrigationRuleEngine, decide_irrigation

TODAY = date(2024, 9, 1)
SOWN = date(2024, 7, 1)
FIELD = Location(latitude=28.6139, longitude=77.2090)


def make_input(crop="rice", moisture=60.0, gdd=1100.0, texture=SoilTexture.LOAM, **kwargs):
    return IrrigationInput(
        crop_name=crop,
        soil_texture=texture,
        current_moisture_pct=moisture,
        sowing_date=SOWN,
        accumulated_gdd=gdd,
        location=FIELD,
        **kwargs,
    )


class TestIrrigationRuleEngine:

    @pytest.fixture
    def make_engine(self, source_factory, aggregate_factory, config, clock):
        engines = []

        def _make(rain_mm=(0, 0, 0, 0, 0, 0, 0), error=None):
            source = source_factory(aggregate=aggregate_factory(rain_mm=rain_mm), error=error)
            cache = WeatherForecastCache(source, config, clock=clock)
            engine = IrrigationRuleEngine(cache, config, today=lambda: TODAY)
            engine.source = source
            engines.append(engine)
            return engine

        yield _make
        for engine in engines:
            engine.cache.close()

    def test_high_moisture_skips(self, make_engine):
        decision = make_engine().decide(make_input(moisture=87.0))

        assert decision.rule_triggered == RuleName.HIGH_MOISTURE.value
        assert not decision.should_irrigate
        assert decision.recommended_depth_mm == 0.0
        assert decision.next_check_hours == 48
        assert decision.confidence == pytest.approx(0.95)
        assert decision.urgency == Urgency.NONE

    def test_rain_deferral(self, make_engine):
        # wheat at 25% progress is in DEVELOPMENT, stage minimum 55%
        engine = make_engine(rain_mm=(10, 8, 7, 0, 0, 0, 0))
        decision = engine.decide(make_input(crop="wheat", moisture=56.0, gdd=500.0))

        assert decision.rule_triggered == RuleName.SUFFICIENT_RAIN_FORECAST.value
        assert not decision.should_irrigate
        assert decision.next_check_hours == 72
        assert decision.weather.next_3_days_rain_mm == pytest.approx(25.0)

    def test_rain_does_not_defer_below_stage_minimum(self, make_engine):
        engine = make_engine(rain_mm=(10, 8, 7, 0, 0, 0, 0))
        decision = engine.decide(make_input(crop="wheat", moisture=54.0, gdd=500.0))

        assert decision.rule_triggered == RuleName.BELOW_STAGE_MINIMUM.value
        assert decision.method == IrrigationMethod.SPRINKLER  # Kc 0.7

    def test_critical_mid_season(self, make_engine):
        decision = make_engine().decide(make_input(crop="rice", moisture=35.0, gdd=1100.0))

        assert decision.growth.stage == GrowthStage.MID_SEASON
        assert decision.rule_triggered == RuleName.CRITICAL_LOW_MOISTURE_MID_SEASON.value
        assert decision.should_irrigate
        assert decision.urgency == Urgency.CRITICAL
        assert decision.next_check_hours == 168
        assert decision.method == IrrigationMethod.DRIP
        # 65% of 91 mm exceeds the cap
        assert decision.recommended_depth_mm == 50.0
        assert decision.duration_minutes == 125

    def test_below_stage_minimum(self, make_engine):
        # maize mid-season: Kc 1.2, band 60-85
        decision = make_engine().decide(make_input(crop="maize", moisture=45.0, gdd=1200.0))

        assert decision.rule_triggered == RuleName.BELOW_STAGE_MINIMUM.value
        assert decision.urgency == Urgency.HIGH
        assert decision.recommended_depth_mm == 36.0  # 40% of 91 mm, whole mm
        assert decision.method == IrrigationMethod.DRIP
        assert decision.duration_minutes == 72
        assert decision.next_check_hours == 120
        assert decision.confidence == pytest.approx(0.85)

    def test_high_kc_moderate_moisture(self, make_engine):
        decision = make_engine().decide(make_input(crop="maize", moisture=65.0, gdd=1200.0))

        assert decision.rule_triggered == RuleName.HIGH_KC_MODERATE_MOISTURE.value
        assert decision.urgency == Urgency.MODERATE
        assert decision.recommended_depth_mm == 10.0
        assert decision.next_check_hours == 96
        assert decision.kc == pytest.approx(1.2)

    def test_stable_conditions(self, make_engine):
        decision = make_engine().decide(make_input(crop="maize", moisture=80.0, gdd=1200.0))

        assert decision.rule_triggered == RuleName.STABLE_CONDITIONS.value
        assert not decision.should_irrigate
        assert decision.next_check_hours == 24
        assert decision.confidence == pytest.approx(0.65)

    def test_unsupported_crop(self, make_engine):
        engine = make_engine()
        decision = engine.decide(make_input(crop="kiwi"))

        assert decision.rule_triggered == RuleName.UNSUPPORTED_CROP.value
        assert decision.confidence == 0.0
        assert not decision.should_irrigate
        assert decision.recommended_depth_mm == 0.0
        assert engine.source.calls == 0

    def test_fallback_low_moisture(self, make_engine):
        engine = make_engine(error=ConnectionError("provider down"))
        decision = engine.decide(make_input(crop="rice", moisture=35.0, gdd=1100.0))

        assert decision.rule_triggered == RuleName.FALLBACK_LOW_MOISTURE.value
        assert decision.should_irrigate
        assert decision.recommended_depth_mm == 25.0
        assert decision.method == IrrigationMethod.SPRINKLER
        assert decision.duration_minutes == 50
        assert decision.confidence == pytest.approx(0.6)
        assert decision.next_check_hours == 48
        assert decision.weather is None

    def test_fallback_stable(self, make_engine):
        engine = make_engine(error=ConnectionError("provider down"))
        decision = engine.decide(make_input(crop="wheat", moisture=60.0, gdd=0.0))

        assert decision.rule_triggered == RuleName.FALLBACK_STABLE.value
        assert not decision.should_irrigate
        assert decision.confidence == pytest.approx(0.5)
        assert decision.next_check_hours == 24

    def test_weather_summary(self, make_engine):
        decision = make_engine(rain_mm=(2, 3, 4, 0, 0, 0, 0)).decide(make_input(moisture=95.0))

        assert decision.weather.next_3_days_rain_mm == pytest.approx(9.0)
        assert decision.weather.avg_temp_next_7_days_c == pytest.approx(27.0)
        # rice base 10: 17 GDD a day for 7 days
        assert decision.weather.projected_gdd_7d == pytest.approx(119.0)

    def test_deterministic(self, make_engine):
        engine = make_engine(rain_mm=(5, 5, 5, 5, 5, 5, 5))
        inp = make_input(crop="mustard", moisture=58.0, gdd=900.0)

        assert engine.decide(inp).rule_triggered == engine.decide(inp).rule_triggered

    def test_skip_at_ceiling_for_every_crop(self, make_engine):
        engine = make_engine(rain_mm=(0, 0, 0, 0, 0, 0, 0))
        for crop in CropType:
            for gdd in (0.0, 600.0, 1300.0, 2500.0):
                decision = engine.decide(make_input(crop=crop.value, moisture=85.0, gdd=gdd))
                assert decision.rule_triggered == RuleName.HIGH_MOISTURE.value

    def test_depth_bounds(self, make_engine):
        engine = make_engine()
        for crop in CropType:
            total = get_crop_parameters(crop).total_gdd_required
            for texture in SoilTexture:
                for fraction in (0.1, 0.3, 0.5, 0.8, 0.97):
                    for moisture in range(0, 101, 10):
                        decision = engine.decide(make_input(
                            crop=crop.value, moisture=float(moisture),
                            gdd=total * fraction, texture=texture,
                        ))
                        if decision.should_irrigate:
                            assert 10.0 <= decision.recommended_depth_mm <= 50.0
                        else:
                            assert decision.recommended_depth_mm == 0.0

    def test_module_entry_point(self, make_engine):
        engine = make_engine()
        decision = decide_irrigation(make_input(moisture=90.0, field_id="plot-7"), engine=engine)

        assert decision.rule_triggered == RuleName.HIGH_MOISTURE.value
        assert decision.field_id == "plot-7"


class TestEngineConfiguration:

    def test_default_daily_gdd_comes_from_engine_config(self, source_factory, clock):
        config = AgroConfig(gdd=GDDConfig(default_avg_daily_gdd=10.0))
        cache = WeatherForecastCache(source_factory(), config, clock=clock)
        try:
            engine = IrrigationRuleEngine(cache, config, today=lambda: TODAY)
            decision = engine.decide(make_input(crop="rice", moisture=90.0, gdd=0.0))
        finally:
            cache.close()

        # 2200 GDD at 10 a day, not the global default of 20
        assert decision.growth.days_to_maturity == 220

    @pytest.mark.slow
    def test_slow_provider_takes_fallback_path(self, source_factory, clock):
        config = AgroConfig(weather=WeatherConfig(fetch_timeout_seconds=0.1))
        gate = threading.Event()
        source = source_factory(gate=gate)
        cache = WeatherForecastCache(source, config, clock=clock)
        try:
            engine = IrrigationRuleEngine(cache, config, today=lambda: TODAY)
            decision = engine.decide(make_input(crop="rice", moisture=35.0, gdd=1100.0))
        finally:
            gate.set()
            cache.close()

        assert source.started.wait(1)
        assert decision.rule_triggered == RuleName.FALLBACK_LOW_MOISTURE.value
        assert decision.should_irrigate
        assert decision.weather is None
