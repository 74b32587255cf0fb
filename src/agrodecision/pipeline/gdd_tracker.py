"""
Growth Stage Tracker.

Turns raw soil temperature readings into one DailyGDDRecord per day and
keeps the cumulative GDD of each field in step with its growth stage.
Dates are processed in ascending order because each cumulative value
depends on the previous day's.
"""
import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

import pandas as pd

from agrodecision.core.config import AgroConfig, get_config
from agrodecision.core.constants import GDD_DECIMALS
from agrodecision.core.exceptions import ErrorContext, InvalidDateRangeError, handle_exception
from agrodecision.core.types import FieldID, FieldStore
from agrodecision.crops.registry import get_crop_parameters
from agrodecision.data.contracts import BackfillResult, DailyGDDRecord, FieldState, SoilReading
from agrodecision.physics.growth_stage import gdd_for_day, growth_stage_for

AGGREGATE_COLUMNS = ["avg_temp", "min_temp", "max_temp", "reading_count"]


def aggregate_daily_temperatures(readings: Iterable[SoilReading]) -> pd.DataFrame:
    """
    Daily mean/min/max soil temperature and reading count.

    Returns a frame indexed by calendar date; days without readings are
    absent from the index.
    """
    rows = [{"timestamp": r.timestamp, "temperature_c": r.temperature_c} for r in readings]
    if not rows:
        return pd.DataFrame(columns=AGGREGATE_COLUMNS, index=pd.Index([], name="date"))

    df = pd.DataFrame(rows)
    df["date"] = pd.to_datetime(df["timestamp"]).dt.date
    daily = df.groupby("date")["temperature_c"].agg(
        avg_temp="mean", min_temp="min", max_temp="max", reading_count="count"
    )
    return daily.sort_index()


class GrowthStageTracker:
    """
    Computes and persists daily GDD for fields.

    Backfills of the same field are serialised; different fields may be
    processed concurrently with backfill_many.
    """

    def __init__(self, store: FieldStore, config: Optional[AgroConfig] = None):
        self.store = store
        self.config = config or get_config()
        self.logger = logging.getLogger("agrodecision.pipeline.gdd_tracker")

        self._field_locks: Dict[FieldID, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, field_id: FieldID) -> threading.Lock:
        with self._locks_guard:
            return self._field_locks[field_id]

    def backfill(self, field_id: FieldID, start: date, end: date) -> BackfillResult:
        """
        Recompute daily GDD for start..end (inclusive) and upsert each day.

        Raises:
            InvalidDateRangeError: end before start, or start before sowing
        """
        field = self.store.get_field_state(field_id)
        self._validate_range(field, start, end)

        with self._lock_for(field_id):
            return self._backfill_locked(field, start, end)

    def _validate_range(self, field: FieldState, start: date, end: date) -> None:
        context = ErrorContext(
            field_id=field.field_id,
            component="gdd_tracker",
            operation="backfill",
            details={"start": start.isoformat(), "end": end.isoformat()},
        )
        if end < start:
            raise InvalidDateRangeError(f"End date {end} is before start date {start}", context)
        if start < field.sowing_date:
            raise InvalidDateRangeError(
                f"Start date {start} is before sowing date {field.sowing_date}", context
            )

    def _seed_cumulative(self, field: FieldState, start: date) -> float:
        if start == field.sowing_date:
            return 0.0

        prior = self.store.get_gdd_records(field.field_id, field.sowing_date, start - timedelta(days=1))
        if not prior:
            self.logger.warning(
                f"No GDD history for {field.field_id} before {start}; seeding cumulative at 0"
            )
            return 0.0
        return prior[-1].cumulative_gdd

    def _backfill_locked(self, field: FieldState, start: date, end: date) -> BackfillResult:
        params = get_crop_parameters(field.crop_name)
        method = self.config.gdd.method

        readings = self.store.get_soil_readings(
            field.field_id,
            datetime.combine(start, time.min),
            datetime.combine(end + timedelta(days=1), time.min),
        )
        daily = aggregate_daily_temperatures(readings)

        cumulative = self._seed_cumulative(field, start)
        result = BackfillResult(field_id=field.field_id)

        # Days that lost their readings must not keep a stale record
        try:
            self.store.delete_gdd_records(field.field_id, start, end)
        except Exception as e:
            error = handle_exception(e, ErrorContext(
                field_id=field.field_id, component="gdd_tracker", operation="delete_gdd_records",
            ))
            self.logger.error(f"Failed to clear GDD records {start}..{end}: {error}")

        for day in pd.date_range(start, end, freq="D").date:
            if day not in daily.index:
                result.skipped_dates.append(day)
                continue

            row = daily.loc[day]
            gdd = gdd_for_day(
                method,
                avg_temp=float(row["avg_temp"]),
                min_temp=float(row["min_temp"]),
                max_temp=float(row["max_temp"]),
                base_temp=field.base_temperature,
                upper_temp=params.upper_temp_c,
            )
            cumulative = round(cumulative + gdd, GDD_DECIMALS)

            record = DailyGDDRecord(
                field_id=field.field_id,
                date=day,
                avg_temp=round(float(row["avg_temp"]), 2),
                min_temp=float(row["min_temp"]),
                max_temp=float(row["max_temp"]),
                reading_count=int(row["reading_count"]),
                daily_gdd=gdd,
                cumulative_gdd=cumulative,
                growth_stage=growth_stage_for(cumulative, field.total_gdd_required),
            )
            result.records.append(record)

            try:
                self.store.upsert_gdd_record(record)
            except Exception as e:
                error = handle_exception(e, ErrorContext(
                    field_id=field.field_id, date=day.isoformat(), component="gdd_tracker",
                    operation="upsert_gdd_record",
                ))
                self.logger.error(f"Failed to persist GDD record: {error}")
                result.persistence_failures.append(day)

        result.field_state = field.with_gdd(
            cumulative, growth_stage_for(cumulative, field.total_gdd_required)
        )

        later = self.store.get_gdd_records(field.field_id, end + timedelta(days=1), date.max)
        if later:
            self.logger.warning(
                f"{len(later)} GDD record(s) for {field.field_id} after {end} carry a stale "
                f"cumulative; backfill through {later[-1].date} to refresh them"
            )

        self.logger.info(
            f"Backfilled {field.field_id} {start}..{end}: {len(result.records)} day(s), "
            f"{len(result.skipped_dates)} without readings, cumulative {cumulative:.1f} GDD "
            f"({result.field_state.growth_stage.value})"
        )
        if result.persistence_failures:
            self.logger.warning(
                f"{len(result.persistence_failures)} GDD record(s) for {field.field_id} were not stored"
            )
        return result

    def catch_up(self, field_id: FieldID, today: Optional[date] = None) -> BackfillResult:
        """
        Backfill from the first date since sowing without a stored record to yesterday.
        Today's readings are incomplete and are left for the next run.
        """
        today = today or date.today()
        field = self.store.get_field_state(field_id)
        yesterday = today - timedelta(days=1)

        if yesterday < field.sowing_date:
            return BackfillResult(field_id=field_id, field_state=field)

        stored = {r.date for r in self.store.get_gdd_records(field_id, field.sowing_date, yesterday)}
        missing = [d for d in pd.date_range(field.sowing_date, yesterday, freq="D").date if d not in stored]

        if not missing:
            self.logger.debug(f"GDD for {field_id} is up to date")
            return BackfillResult(field_id=field_id, field_state=field)

        return self.backfill(field_id, missing[0], yesterday)

    def backfill_many(self, field_ids: List[FieldID], start: date, end: date,
                      max_workers: Optional[int] = None) -> Dict[FieldID, BackfillResult]:
        """Backfill several fields in parallel; failed fields are logged and omitted"""
        results = {}
        max_workers = max_workers or self.config.gdd.backfill_workers

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_field = {
                executor.submit(self.backfill, field_id, start, end): field_id
                for field_id in field_ids
            }

            for future in as_completed(future_to_field):
                field_id = future_to_field[future]
                try:
                    results[field_id] = future.result()
                except Exception as e:
                    self.logger.error(f"Backfill failed for {field_id}: {e}")

        return results


def backfill_gdd(store: FieldStore, field_id: FieldID, start: date, end: date,
                 config: Optional[AgroConfig] = None) -> BackfillResult:
    """Recompute and upsert daily GDD for one field over start..end"""
    return GrowthStageTracker(store, config).backfill(field_id, start, end)
