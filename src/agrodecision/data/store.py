"""
In-memory FieldStore.

Holds field state, soil readings and the daily GDD history in process
memory. GDD records are keyed by (field_id, date) so upserts replace.
"""
import logging
import threading
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from agrodecision.core.exceptions import ErrorContext, FieldNotFoundError
from agrodecision.core.types import FieldID
from agrodecision.data.contracts import DailyGDDRecord, FieldState, SoilReading

logger = logging.getLogger(__name__)


class InMemoryFieldStore:
    """Thread-safe dictionary-backed implementation of the FieldStore protocol"""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._fields: Dict[FieldID, FieldState] = {}
        self._readings: Dict[FieldID, List[SoilReading]] = defaultdict(list)
        self._gdd: Dict[Tuple[FieldID, date], DailyGDDRecord] = {}
        self._lock = threading.RLock()

    # Fields -------------------------------------------------------------

    def save_field_state(self, state: FieldState) -> None:
        with self._lock:
            self._fields[state.field_id] = state

    def get_field_state(self, field_id: FieldID) -> FieldState:
        with self._lock:
            try:
                return self._fields[field_id]
            except KeyError:
                raise FieldNotFoundError(
                    f"Unknown field {field_id!r}",
                    ErrorContext(field_id=field_id, component="store"),
                ) from None

    def field_ids(self) -> List[FieldID]:
        with self._lock:
            return list(self._fields)

    def change_crop(self, field_id: FieldID, crop_name: str, sowing_date: date) -> FieldState:
        """Replant a field; GDD history for the previous crop is discarded"""
        with self._lock:
            updated = self.get_field_state(field_id).with_crop(crop_name, sowing_date)
            self._fields[field_id] = updated
            for key in [k for k in self._gdd if k[0] == field_id]:
                del self._gdd[key]
        logger.info(f"Field {field_id} replanted with {updated.crop_name}, GDD reset")
        return updated

    # Soil readings ------------------------------------------------------

    def add_readings(self, field_id: FieldID, readings: Iterable[SoilReading]) -> None:
        with self._lock:
            self._readings[field_id].extend(readings)
            self._readings[field_id].sort(key=lambda r: r.timestamp)

    def get_soil_readings(self, field_id: FieldID, start: datetime, end: datetime) -> List[SoilReading]:
        """Readings with start <= timestamp < end, oldest first"""
        with self._lock:
            return [r for r in self._readings.get(field_id, []) if start <= r.timestamp < end]

    def get_recent_soil_readings(self, field_id: FieldID, window: timedelta) -> List[SoilReading]:
        """Readings inside the trailing window, newest first"""
        now = self._clock()
        with self._lock:
            recent = [r for r in self._readings.get(field_id, []) if now - window <= r.timestamp <= now]
        return sorted(recent, key=lambda r: r.timestamp, reverse=True)

    # GDD history --------------------------------------------------------

    def upsert_gdd_record(self, record: DailyGDDRecord) -> None:
        with self._lock:
            self._gdd[(record.field_id, record.date)] = record

    def get_latest_gdd_record(self, field_id: FieldID) -> Optional[DailyGDDRecord]:
        with self._lock:
            records = [r for (fid, _), r in self._gdd.items() if fid == field_id]
        return max(records, key=lambda r: r.date) if records else None

    def get_gdd_records(self, field_id: FieldID, start: date, end: date) -> List[DailyGDDRecord]:
        """Records with start <= date <= end, ascending"""
        with self._lock:
            records = [r for (fid, d), r in self._gdd.items() if fid == field_id and start <= d <= end]
        return sorted(records, key=lambda r: r.date)

    def delete_gdd_records(self, field_id: FieldID, start: date, end: date) -> int:
        """Drop records with start <= date <= end; returns how many were removed"""
        with self._lock:
            doomed = [k for k in self._gdd if k[0] == field_id and start <= k[1] <= end]
            for key in doomed:
                del self._gdd[key]
        return len(doomed)
