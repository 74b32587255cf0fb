"""
Crop Parameter Registry.

Single source of truth for per-crop agronomic constants: GDD base and upper
temperatures, total GDD to maturity, and per growth stage the FAO-56 crop
coefficient (Kc) with the soil moisture band the crop should be kept in.

Stage bands are expressed on the sensor moisture scale (0-100 %), the same
scale the irrigation rules compare readings against.

References:
- FAO-56: Allen et al. (1998) Crop evapotranspiration, Table 12 (Kc)
- McMaster & Wilhelm (1997) Growing degree-days: one equation, two interpretations
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from agrodecision.core.constants import SUITABILITY_MIN_TEMP_MARGIN_C
from agrodecision.core.exceptions import UnsupportedCropError
from agrodecision.core.types import GrowthStage, Season

logger = logging.getLogger(__name__)

REGISTRY_VERSION = "2024.1"


class CropType(str, Enum):
    WHEAT = "wheat"
    RICE = "rice"
    MAIZE = "maize"
    MUSTARD = "mustard"


@dataclass(frozen=True)
class StageParameters:
    """Water requirements for one growth stage"""
    kc: float
    min_moisture_pct: float
    max_moisture_pct: float
    duration_days: int

    @property
    def mid_band_pct(self) -> float:
        """Midpoint of the target moisture band"""
        return (self.min_moisture_pct + self.max_moisture_pct) / 2.0


@dataclass(frozen=True)
class CropParameters:
    """
    Agronomic parameters for one crop.

    Daily GDD accumulates above base_temp_c; upper_temp_c caps the
    maximum temperature in the threshold method. total_gdd_required is
    the accumulated GDD at physiological maturity.
    """
    crop: CropType
    display_name: str
    season: Season
    base_temp_c: float
    upper_temp_c: float
    total_gdd_required: float
    stages: Dict[GrowthStage, StageParameters] = field(default_factory=dict)

    def stage(self, stage: GrowthStage) -> StageParameters:
        return self.stages[stage]


# Format: (display, season, T_base, T_upper, GDD_maturity)
_CROP_TABLE: Dict[CropType, Tuple[str, Season, float, float, float]] = {
    CropType.WHEAT: ("Wheat", Season.RABI, 0.0, 35.0, 2000.0),
    CropType.RICE: ("Rice", Season.KHARIF, 10.0, 40.0, 2200.0),
    CropType.MAIZE: ("Maize", Season.KHARIF, 8.0, 38.0, 2400.0),
    CropType.MUSTARD: ("Mustard", Season.RABI, 5.0, 35.0, 1600.0),
}

# Format per stage: (Kc, min moisture %, max moisture %, duration days)
# Stage order: INITIAL, DEVELOPMENT, MID_SEASON, LATE_SEASON, HARVEST_READY
_STAGE_TABLE: Dict[CropType, List[Tuple[float, float, float, int]]] = {
    CropType.WHEAT: [
        (0.3, 50, 85, 30), (0.7, 55, 85, 40), (1.15, 60, 85, 50), (0.5, 50, 80, 30), (0.3, 40, 70, 10),
    ],
    CropType.RICE: [
        (0.5, 75, 100, 30), (0.8, 80, 100, 30), (1.2, 85, 100, 80), (0.8, 75, 100, 30), (0.5, 60, 90, 10),
    ],
    CropType.MAIZE: [
        (0.3, 50, 80, 25), (0.7, 55, 85, 35), (1.2, 60, 85, 50), (0.6, 50, 75, 30), (0.4, 40, 70, 10),
    ],
    CropType.MUSTARD: [
        (0.3, 45, 75, 30), (0.6, 50, 80, 40), (1.0, 55, 80, 60), (0.5, 45, 70, 30), (0.3, 40, 65, 10),
    ],
}


def _build_registry() -> Dict[CropType, CropParameters]:
    registry = {}
    for crop, (display, season, t_base, t_upper, gdd_total) in _CROP_TABLE.items():
        stages = {
            stage: StageParameters(
                kc=kc,
                min_moisture_pct=float(lo),
                max_moisture_pct=float(hi),
                duration_days=days,
            )
            for stage, (kc, lo, hi, days) in zip(GrowthStage, _STAGE_TABLE[crop])
        }
        registry[crop] = CropParameters(
            crop=crop,
            display_name=display,
            season=season,
            base_temp_c=t_base,
            upper_temp_c=t_upper,
            total_gdd_required=gdd_total,
            stages=stages,
        )
    return registry


_REGISTRY: Dict[CropType, CropParameters] = _build_registry()


def normalize_crop_name(crop_name: str) -> str:
    return "".join(str(crop_name).split()).lower()


def is_supported(crop_name: str) -> bool:
    return normalize_crop_name(crop_name) in {c.value for c in _REGISTRY}


def available_crops() -> List[str]:
    return [c.value for c in _REGISTRY]


def get_crop_parameters(crop_name) -> CropParameters:
    """
    Look up a crop by name (case and whitespace insensitive).

    Raises:
        UnsupportedCropError: if the crop is not registered
    """
    if isinstance(crop_name, CropType):
        return _REGISTRY[crop_name]

    key = normalize_crop_name(crop_name)
    try:
        return _REGISTRY[CropType(key)]
    except ValueError:
        raise UnsupportedCropError(crop_name) from None


@dataclass(frozen=True)
class TemperatureSuitability:
    suitable: bool
    reason: str
    base_temp_c: float
    avg_temp_c: float


def check_temperature_suitability(crop_name: str, avg_temp_c: float,
                                  min_temp_c: float) -> TemperatureSuitability:
    """
    Check whether recent temperatures support growth of a crop.

    Growth stalls when the mean is below the base temperature; a minimum
    more than a few degrees under the base risks cold injury.
    """
    params = get_crop_parameters(crop_name)
    base = params.base_temp_c

    if avg_temp_c < base:
        reason = (f"Average temperature ({avg_temp_c:.1f}°C) is below "
                  f"{params.display_name} base temperature ({base}°C)")
        return TemperatureSuitability(False, reason, base, avg_temp_c)

    if min_temp_c < base - SUITABILITY_MIN_TEMP_MARGIN_C:
        reason = (f"Minimum temperature ({min_temp_c:.1f}°C) is too low for "
                  f"{params.display_name}; risk of cold injury")
        return TemperatureSuitability(False, reason, base, avg_temp_c)

    return TemperatureSuitability(True, "Temperature is suitable for growth", base, avg_temp_c)
