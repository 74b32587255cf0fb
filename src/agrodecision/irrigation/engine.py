"""
Irrigation Rule Engine.

Evaluates a fixed, ordered rule chain for one field and returns a single
IrrigationDecision. The first rule that matches wins:

    1. HIGH_MOISTURE                     moisture >= 85%                      skip
    2. SUFFICIENT_RAIN_FORECAST          3-day rain >= 20 mm, moisture >= min skip
    3. CRITICAL_LOW_MOISTURE_MID_SEASON  moisture < 40% in MID_SEASON         irrigate to stage max
    4. BELOW_STAGE_MINIMUM               moisture < stage min                 irrigate to stage max
    5. HIGH_KC_MODERATE_MOISTURE         Kc > 1.0, moisture < band midpoint   irrigate to midpoint
    6. STABLE_CONDITIONS                 otherwise                            skip

Without a live forecast, rules 2-5 are bypassed and a conservative fallback
decides from the stage minimum alone.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from agrodecision.core.config import AgroConfig, get_config
from agrodecision.core.constants import (
    MOISTURE_OPTIMAL_PCT,
    MOISTURE_CRITICAL_PCT,
    RAIN_FORECAST_THRESHOLD_MM,
    RAIN_FORECAST_DAYS,
    HIGH_KC_THRESHOLD,
    FALLBACK_DEPTH_MM,
    FALLBACK_DURATION_MINUTES,
    CRITICAL_MINUTES_PER_MM,
    STANDARD_MINUTES_PER_MM,
    DEFAULT_CHECK_INTERVAL_HOURS,
    FORECAST_HORIZON_DAYS,
)
from agrodecision.core.exceptions import UnsupportedCropError, WeatherUnavailableError
from agrodecision.core.types import GrowthStage, IrrigationMethod, RuleName, Urgency
from agrodecision.crops.registry import (
    CropParameters, StageParameters, available_crops, get_crop_parameters,
)
from agrodecision.data.cache import (
    WeatherForecastCache, cumulative_rainfall, temperature_range,
)
from agrodecision.data.contracts import (
    GrowthStageInfo, IrrigationDecision, IrrigationInput, Location,
    WeatherAggregate, WeatherSummary,
)
from agrodecision.data.sources.weather import OpenMeteoForecastSource
from agrodecision.physics.growth_stage import compute_growth_stage, forecast_gdd
from agrodecision.physics.soil_water import irrigation_duration_minutes, required_depth_mm


@dataclass
class RuleContext:
    """Everything a rule may look at"""
    inp: IrrigationInput
    crop: CropParameters
    growth: GrowthStageInfo
    stage: StageParameters
    rain_next_3_days_mm: float
    weather: WeatherSummary

    @property
    def moisture(self) -> float:
        return self.inp.current_moisture_pct


class IrrigationRuleEngine:
    """
    Decides whether a field should be irrigated now.

    Args:
        cache: Forecast cache; defaults to one backed by Open-Meteo
        config: Engine configuration
        today: Clock returning the current date, used for days since sowing
    """

    def __init__(self, cache: Optional[WeatherForecastCache] = None,
                 config: Optional[AgroConfig] = None,
                 today: Callable[[], date] = date.today):
        self.config = config or get_config()
        self.cache = cache or WeatherForecastCache(OpenMeteoForecastSource(self.config), self.config)
        self._today = today
        self.logger = logging.getLogger("agrodecision.irrigation.engine")

        self.rules: List[Callable[[RuleContext], Optional[IrrigationDecision]]] = [
            self._rule_high_moisture,
            self._rule_sufficient_rain,
            self._rule_critical_mid_season,
            self._rule_below_stage_minimum,
            self._rule_high_kc_moderate_moisture,
        ]

    def decide(self, inp: IrrigationInput) -> IrrigationDecision:
        try:
            crop = get_crop_parameters(inp.crop_name)
        except UnsupportedCropError:
            return self._unsupported(inp)

        days_elapsed = max(0, (self._today() - inp.sowing_date).days)
        growth = compute_growth_stage(
            crop.crop.value, inp.accumulated_gdd, days_elapsed,
            default_avg_daily_gdd=self.config.gdd.default_avg_daily_gdd,
        )
        stage = crop.stage(growth.stage)

        try:
            aggregate = self._live_forecast(inp.location)
        except WeatherUnavailableError as e:
            self.logger.warning(f"Fallback decision for {inp.field_id or inp.crop_name}: {e}")
            return self._fallback(inp, growth, stage)

        ctx = RuleContext(
            inp=inp,
            crop=crop,
            growth=growth,
            stage=stage,
            rain_next_3_days_mm=cumulative_rainfall(aggregate, RAIN_FORECAST_DAYS),
            weather=self._summarize(crop, aggregate),
        )

        decision = None
        for rule in self.rules:
            decision = rule(ctx)
            if decision is not None:
                break
        if decision is None:
            decision = self._rule_stable(ctx)

        self.logger.info(
            f"{inp.field_id or crop.crop.value}: {decision.rule_triggered} "
            f"(moisture {ctx.moisture:.1f}%, stage {growth.stage.value}, "
            f"irrigate={decision.should_irrigate}, depth {decision.recommended_depth_mm} mm)"
        )
        return decision

    def _live_forecast(self, location: Location) -> WeatherAggregate:
        aggregate = self.cache.lookup(location)
        if aggregate.is_mock:
            raise WeatherUnavailableError(
                f"No live forecast for {aggregate.location_key}"
            )
        return aggregate

    @staticmethod
    def _summarize(crop: CropParameters, aggregate: WeatherAggregate) -> WeatherSummary:
        week = aggregate.daily_forecast[:FORECAST_HORIZON_DAYS]
        temps = temperature_range(aggregate.model_copy(update={"daily_forecast": week}))
        return WeatherSummary(
            next_3_days_rain_mm=cumulative_rainfall(aggregate, RAIN_FORECAST_DAYS),
            avg_temp_next_7_days_c=temps.avg_c,
            min_temp_c=temps.min_c,
            max_temp_c=temps.max_c,
            projected_gdd_7d=forecast_gdd(crop.crop.value, week),
        )

    # =========================================================================
    # RULES
    # =========================================================================

    def _decision(self, ctx: RuleContext, rule: RuleName, *, irrigate: bool, urgency: Urgency,
                  confidence: float, next_check_hours: int, reason: str, depth_mm: float = 0.0,
                  method: Optional[IrrigationMethod] = None,
                  minutes_per_mm: float = STANDARD_MINUTES_PER_MM) -> IrrigationDecision:
        notes = [
            f"{ctx.crop.display_name}: {ctx.growth.stage.value} ({ctx.growth.progress_pct}% of "
            f"{ctx.growth.gdd_required:.0f} GDD), Kc {ctx.stage.kc}",
            f"Stage moisture band {ctx.stage.min_moisture_pct:.0f}-{ctx.stage.max_moisture_pct:.0f}%",
        ]
        return IrrigationDecision(
            should_irrigate=irrigate,
            recommended_depth_mm=depth_mm if irrigate else 0.0,
            urgency=urgency,
            confidence=confidence,
            rule_triggered=rule.value,
            next_check_hours=next_check_hours,
            reason=reason,
            method=method if irrigate else None,
            duration_minutes=irrigation_duration_minutes(depth_mm, minutes_per_mm) if irrigate else None,
            notes=notes,
            kc=ctx.stage.kc,
            weather=ctx.weather,
            growth=ctx.growth,
            field_id=ctx.inp.field_id,
        )

    def _rule_high_moisture(self, ctx: RuleContext) -> Optional[IrrigationDecision]:
        if ctx.moisture < MOISTURE_OPTIMAL_PCT:
            return None
        return self._decision(
            ctx, RuleName.HIGH_MOISTURE, irrigate=False, urgency=Urgency.NONE,
            confidence=0.95, next_check_hours=48,
            reason=(f"Soil moisture ({ctx.moisture:.1f}%) is at or above the optimal "
                    f"level ({MOISTURE_OPTIMAL_PCT:.0f}%)"),
        )

    def _rule_sufficient_rain(self, ctx: RuleContext) -> Optional[IrrigationDecision]:
        if ctx.rain_next_3_days_mm < RAIN_FORECAST_THRESHOLD_MM:
            return None
        if ctx.moisture < ctx.stage.min_moisture_pct:
            return None
        return self._decision(
            ctx, RuleName.SUFFICIENT_RAIN_FORECAST, irrigate=False, urgency=Urgency.NONE,
            confidence=0.85, next_check_hours=72,
            reason=(f"{ctx.rain_next_3_days_mm:.1f} mm of rain expected in the next "
                    f"{RAIN_FORECAST_DAYS} days; moisture ({ctx.moisture:.1f}%) is within the "
                    f"stage minimum ({ctx.stage.min_moisture_pct:.0f}%)"),
        )

    def _rule_critical_mid_season(self, ctx: RuleContext) -> Optional[IrrigationDecision]:
        if ctx.moisture >= MOISTURE_CRITICAL_PCT or ctx.growth.stage != GrowthStage.MID_SEASON:
            return None
        depth = required_depth_mm(ctx.inp.soil_texture, ctx.moisture, ctx.stage.max_moisture_pct)
        return self._decision(
            ctx, RuleName.CRITICAL_LOW_MOISTURE_MID_SEASON, irrigate=True,
            urgency=Urgency.CRITICAL, confidence=0.95, next_check_hours=168,
            depth_mm=depth, method=IrrigationMethod.DRIP, minutes_per_mm=CRITICAL_MINUTES_PER_MM,
            reason=(f"Critical: moisture ({ctx.moisture:.1f}%) is below "
                    f"{MOISTURE_CRITICAL_PCT:.0f}% during mid-season, the most water "
                    f"sensitive stage"),
        )

    def _rule_below_stage_minimum(self, ctx: RuleContext) -> Optional[IrrigationDecision]:
        if ctx.moisture >= ctx.stage.min_moisture_pct:
            return None
        depth = required_depth_mm(ctx.inp.soil_texture, ctx.moisture, ctx.stage.max_moisture_pct)
        method = IrrigationMethod.DRIP if ctx.stage.kc > HIGH_KC_THRESHOLD else IrrigationMethod.SPRINKLER
        return self._decision(
            ctx, RuleName.BELOW_STAGE_MINIMUM, irrigate=True, urgency=Urgency.HIGH,
            confidence=0.85, next_check_hours=120, depth_mm=depth, method=method,
            reason=(f"Moisture ({ctx.moisture:.1f}%) is below the "
                    f"{ctx.growth.stage.value} minimum ({ctx.stage.min_moisture_pct:.0f}%)"),
        )

    def _rule_high_kc_moderate_moisture(self, ctx: RuleContext) -> Optional[IrrigationDecision]:
        if ctx.stage.kc <= HIGH_KC_THRESHOLD or ctx.moisture >= ctx.stage.mid_band_pct:
            return None
        depth = required_depth_mm(ctx.inp.soil_texture, ctx.moisture, ctx.stage.mid_band_pct)
        return self._decision(
            ctx, RuleName.HIGH_KC_MODERATE_MOISTURE, irrigate=True, urgency=Urgency.MODERATE,
            confidence=0.75, next_check_hours=96, depth_mm=depth, method=IrrigationMethod.DRIP,
            reason=(f"High water demand (Kc {ctx.stage.kc}) with moisture ({ctx.moisture:.1f}%) "
                    f"below the band midpoint ({ctx.stage.mid_band_pct:.1f}%)"),
        )

    def _rule_stable(self, ctx: RuleContext) -> Optional[IrrigationDecision]:
        return self._decision(
            ctx, RuleName.STABLE_CONDITIONS, irrigate=False, urgency=Urgency.NONE,
            confidence=0.65, next_check_hours=DEFAULT_CHECK_INTERVAL_HOURS,
            reason=(f"Moisture ({ctx.moisture:.1f}%) is within the "
                    f"{ctx.growth.stage.value} range"),
        )

    # =========================================================================
    # NON-RULE OUTCOMES
    # =========================================================================

    def _fallback(self, inp: IrrigationInput, growth: GrowthStageInfo,
                  stage: StageParameters) -> IrrigationDecision:
        notes = ["Weather forecast unavailable; decision based on soil moisture only"]
        moisture = inp.current_moisture_pct

        if moisture < stage.min_moisture_pct:
            return IrrigationDecision(
                should_irrigate=True,
                recommended_depth_mm=FALLBACK_DEPTH_MM,
                urgency=Urgency.MODERATE,
                confidence=0.6,
                rule_triggered=RuleName.FALLBACK_LOW_MOISTURE.value,
                next_check_hours=48,
                reason=(f"Moisture ({moisture:.1f}%) is below the stage minimum "
                        f"({stage.min_moisture_pct:.0f}%)"),
                method=IrrigationMethod.SPRINKLER,
                duration_minutes=FALLBACK_DURATION_MINUTES,
                notes=notes,
                kc=stage.kc,
                growth=growth,
                field_id=inp.field_id,
            )

        return IrrigationDecision(
            should_irrigate=False,
            recommended_depth_mm=0.0,
            urgency=Urgency.NONE,
            confidence=0.5,
            rule_triggered=RuleName.FALLBACK_STABLE.value,
            next_check_hours=DEFAULT_CHECK_INTERVAL_HOURS,
            reason=f"Moisture ({moisture:.1f}%) is at or above the stage minimum",
            notes=notes,
            kc=stage.kc,
            growth=growth,
            field_id=inp.field_id,
        )

    def _unsupported(self, inp: IrrigationInput) -> IrrigationDecision:
        self.logger.warning(f"Unsupported crop {inp.crop_name!r} for {inp.field_id or 'input'}")
        return IrrigationDecision(
            should_irrigate=False,
            recommended_depth_mm=0.0,
            urgency=Urgency.NONE,
            confidence=0.0,
            rule_triggered=RuleName.UNSUPPORTED_CROP.value,
            next_check_hours=DEFAULT_CHECK_INTERVAL_HOURS,
            reason=(f"Crop {inp.crop_name!r} is not supported. "
                    f"Available crops: {', '.join(available_crops())}"),
            field_id=inp.field_id,
        )


_default_engine: Optional[IrrigationRuleEngine] = None


def get_engine() -> IrrigationRuleEngine:
    """Process-wide engine sharing one forecast cache"""
    global _default_engine
    if _default_engine is None:
        _default_engine = IrrigationRuleEngine()
    return _default_engine


def decide_irrigation(inp: IrrigationInput,
                      engine: Optional[IrrigationRuleEngine] = None) -> IrrigationDecision:
    """Irrigation decision for one field"""
    return (engine or get_engine()).decide(inp)
