"""Irrigation decisions: ordered rule engine and field-level service."""
from agrodecision.irrigation.engine import (
    IrrigationRuleEngine,
    RuleContext,
    decide_irrigation,
    get_engine,
)
from agrodecision.irrigation.service import IrrigationService

__all__ = [
    "IrrigationRuleEngine",
    "RuleContext",
    "decide_irrigation",
    "get_engine",
    "IrrigationService",
]
