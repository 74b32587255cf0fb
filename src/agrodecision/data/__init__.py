"""
Data package.

Provides data contracts, forecast sources, the weather cache and an
in-memory field store.
"""

from agrodecision.data.contracts import (
    Location,
    FieldState,
    SoilReading,
    DailyGDDRecord,
    DailyForecast,
    CurrentConditions,
    WeatherAggregate,
    GrowthStageInfo,
    IrrigationInput,
    WeatherSummary,
    IrrigationDecision,
    BackfillResult,
)

__all__ = [
    "Location",
    "FieldState",
    "SoilReading",
    "DailyGDDRecord",
    "DailyForecast",
    "CurrentConditions",
    "WeatherAggregate",
    "GrowthStageInfo",
    "IrrigationInput",
    "WeatherSummary",
    "IrrigationDecision",
    "BackfillResult",
]
