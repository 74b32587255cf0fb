"""
Custom exception hierarchy for the decision engine.
Provides clear error categories and rich error information.
"""
from typing import Optional, Any, Dict
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Context information for errors"""
    field_id: Optional[str] = None
    date: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class AgroDecisionError(Exception):
    """Base exception for all decision engine errors"""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        context_str = ""
        if self.context.field_id:
            context_str += f" [Field: {self.context.field_id}]"
        if self.context.date:
            context_str += f" [Date: {self.context.date}]"
        if self.context.component:
            context_str += f" [Component: {self.context.component}]"

        return f"{self.__class__.__name__}: {self.message}{context_str}"


# Crop errors
class CropError(AgroDecisionError):
    """Base class for crop parameter errors"""
    pass


class UnsupportedCropError(CropError):
    """Crop name is not in the parameter registry"""

    def __init__(self, crop_name: str, context: Optional[ErrorContext] = None):
        super().__init__(f"Unsupported crop: {crop_name!r}", context)
        self.crop_name = crop_name


# Data errors
class DataError(AgroDecisionError):
    """Base class for data-related errors"""
    pass


class NoSensorDataError(DataError):
    """No soil readings available in the requested window"""
    pass


class DataValidationError(DataError):
    """Data validation failed"""
    pass


class InvalidDateRangeError(DataError):
    """Backfill range is inverted or starts before sowing"""
    pass


class PersistenceError(DataError):
    """Store rejected a write"""
    pass


class FieldNotFoundError(DataError):
    """Field id unknown to the store"""
    pass


# Weather errors
class WeatherError(AgroDecisionError):
    """Base class for weather errors"""
    pass


class WeatherUnavailableError(WeatherError):
    """Forecast could not be obtained in time"""
    pass


# Configuration errors
class ConfigurationError(AgroDecisionError):
    """Configuration error"""
    pass


def handle_exception(exc: Exception, context: Optional[ErrorContext] = None) -> AgroDecisionError:
    """
    Wrap generic exceptions in the AgroDecisionError hierarchy.
    Useful for catching and categorizing third-party exceptions.
    """
    if isinstance(exc, AgroDecisionError):
        return exc

    error_map = {
        TimeoutError: WeatherUnavailableError,
        ConnectionError: WeatherUnavailableError,
        ValueError: DataValidationError,
        KeyError: DataValidationError,
        OSError: PersistenceError,
    }

    for exc_type, agro_exc_type in error_map.items():
        if isinstance(exc, exc_type):
            return agro_exc_type(str(exc), context)

    return AgroDecisionError(str(exc), context)
