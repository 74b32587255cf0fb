"""
Field-level irrigation recommendations built on the rule engine.
"""
import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from agrodecision.core.exceptions import ErrorContext, NoSensorDataError
from agrodecision.core.types import FieldID, FieldStore
from agrodecision.data.contracts import IrrigationDecision, IrrigationInput
from agrodecision.irrigation.engine import IrrigationRuleEngine, get_engine

logger = logging.getLogger(__name__)

DEFAULT_READING_WINDOW = timedelta(hours=24)


class IrrigationService:
    """Reads field state and sensor data from the store and asks the engine"""

    def __init__(self, store: FieldStore, engine: Optional[IrrigationRuleEngine] = None):
        self.store = store
        self.engine = engine or get_engine()

    def decide_for_field(self, field_id: FieldID,
                         window: timedelta = DEFAULT_READING_WINDOW) -> IrrigationDecision:
        """
        Decision for a stored field using its latest reading in the window.

        Raises:
            NoSensorDataError: no readings inside the window
        """
        field = self.store.get_field_state(field_id)
        readings = self.store.get_recent_soil_readings(field_id, window)
        if not readings:
            raise NoSensorDataError(
                f"No soil readings in the last {window}",
                ErrorContext(field_id=field_id, component="irrigation", operation="decide"),
            )

        latest = max(readings, key=lambda r: r.timestamp)
        inp = IrrigationInput(
            crop_name=field.crop_name,
            soil_texture=field.soil_texture,
            current_moisture_pct=latest.moisture_pct,
            sowing_date=field.sowing_date,
            accumulated_gdd=field.accumulated_gdd,
            location=field.location,
            field_id=field_id,
            current_temp_c=latest.temperature_c,
        )
        return self.engine.decide(inp)

    def recommend(self, field_ids: Iterable[FieldID]) -> List[IrrigationDecision]:
        """Decisions for several fields, most urgent first"""
        decisions = []
        for field_id in field_ids:
            try:
                decisions.append(self.decide_for_field(field_id))
            except Exception as e:
                logger.error(f"No recommendation for {field_id}: {e}")

        decisions.sort(key=lambda d: (d.urgency.score, d.confidence), reverse=True)
        return decisions
