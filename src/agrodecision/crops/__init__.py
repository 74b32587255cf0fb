"""
Crop parameter registry: GDD constants and per-stage water requirements.
"""
from agrodecision.crops.registry import (
    REGISTRY_VERSION,
    CropType,
    StageParameters,
    CropParameters,
    TemperatureSuitability,
    get_crop_parameters,
    is_supported,
    available_crops,
    normalize_crop_name,
    check_temperature_suitability,
)

__all__ = [
    "REGISTRY_VERSION",
    "CropType",
    "StageParameters",
    "CropParameters",
    "TemperatureSuitability",
    "get_crop_parameters",
    "is_supported",
    "available_crops",
    "normalize_crop_name",
    "check_temperature_suitability",
]
