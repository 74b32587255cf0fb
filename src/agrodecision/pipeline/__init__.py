"""
Pipeline package.

Daily GDD aggregation and backfill from stored soil readings.
"""
from agrodecision.pipeline.gdd_tracker import (
    GrowthStageTracker,
    aggregate_daily_temperatures,
    backfill_gdd,
)

__all__ = [
    "GrowthStageTracker",
    "aggregate_daily_temperatures",
    "backfill_gdd",
]
