"""
Soil-Water Balance Calculator.

Converts a moisture deficit on the sensor scale into an application depth:

    available_water_mm = (FC - WP) × (rooting_depth_cm / 10)
    depth_mm           = (target% - current%) / 100 × available_water_mm

with the depth clamped to [10, 50] mm. FC and WP are volumetric percentages,
so (FC - WP) × depth_cm / 10 is the plant-available water in the root zone.

References:
- FAO-56: Allen et al. (1998), Chapter 8 (total available water)
"""

import logging
from dataclasses import dataclass
from typing import Union

import numpy as np

from agrodecision.core.constants import (
    SOIL_TEXTURE_PARAMETERS,
    MIN_IRRIGATION_DEPTH_MM,
    MAX_IRRIGATION_DEPTH_MM,
    STANDARD_MINUTES_PER_MM,
)
from agrodecision.core.exceptions import DataValidationError
from agrodecision.core.types import SoilTexture, MoisturePct, DepthMm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextureProperties:
    """Water holding properties of a soil texture class"""
    texture: SoilTexture
    field_capacity: float  # % volumetric
    wilting_point: float  # % volumetric
    rooting_depth_cm: float

    @property
    def available_water_mm(self) -> float:
        return (self.field_capacity - self.wilting_point) * (self.rooting_depth_cm / 10.0)

    @classmethod
    def for_texture(cls, texture: Union[SoilTexture, str]) -> "TextureProperties":
        try:
            texture = SoilTexture(texture.upper() if isinstance(texture, str) else texture)
        except ValueError:
            raise DataValidationError(f"Unknown soil texture: {texture!r}") from None

        props = SOIL_TEXTURE_PARAMETERS[texture]
        return cls(
            texture=texture,
            field_capacity=props["field_capacity"],
            wilting_point=props["wilting_point"],
            rooting_depth_cm=props["rooting_depth_cm"],
        )


def available_water_mm(texture: Union[SoilTexture, str]) -> float:
    """Plant-available water held in the root zone of a texture class (mm)"""
    return TextureProperties.for_texture(texture).available_water_mm


def required_depth_mm(texture: Union[SoilTexture, str], current_moisture_pct: MoisturePct,
                      target_moisture_pct: MoisturePct) -> DepthMm:
    """
    Depth of water needed to raise soil moisture from current to target.

    Always within [MIN_IRRIGATION_DEPTH_MM, MAX_IRRIGATION_DEPTH_MM]; a zero
    or negative deficit returns the minimum. The deficit is rounded half up
    to whole millimetres before clamping.
    """
    water = available_water_mm(texture)
    deficit_mm = (target_moisture_pct - current_moisture_pct) / 100.0 * water

    depth = float(np.clip(np.floor(deficit_mm + 0.5), MIN_IRRIGATION_DEPTH_MM, MAX_IRRIGATION_DEPTH_MM))
    logger.debug(
        f"Depth for {texture}: {current_moisture_pct:.1f}% -> {target_moisture_pct:.1f}% "
        f"(deficit {deficit_mm:.1f} mm, applied {depth:.1f} mm)"
    )
    return depth


def irrigation_duration_minutes(depth_mm: DepthMm,
                                minutes_per_mm: float = STANDARD_MINUTES_PER_MM) -> int:
    """Pump run time needed to apply depth_mm at the given application rate"""
    if depth_mm < 0:
        raise DataValidationError(f"Irrigation depth cannot be negative: {depth_mm}")
    return int(round(depth_mm * minutes_per_mm))
