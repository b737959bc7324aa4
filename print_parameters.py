# -*- coding: utf-8 -*-
"""
print_parameters.py — FDM process profiles and the material density table.

Parameters = quality profile (layer height, speed, default infill) with the purpose
modifier laid over it. A modifier only touches infill density/pattern.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from enum import Enum

from quote_errors import GeometryError, UnknownMaterialError


class Quality(str, Enum):
    DRAFT = "draft"
    STANDARD = "standard"
    HIGH = "high"


class Purpose(str, Enum):
    PROTOTYPE = "prototype"
    FUNCTIONAL = "functional"
    AESTHETIC = "aesthetic"


class InfillPattern(str, Enum):
    LINES = "lines"
    GRID = "grid"
    GYROID = "gyroid"


def _finite(v) -> bool:
    try:
        return math.isfinite(float(v))
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True)
class PrintParameters:
    layer_height: float       # mm
    print_speed: float        # mm/s
    infill_density: float     # 0..100
    infill_pattern: InfillPattern

    def __post_init__(self):
        for name in ("layer_height", "print_speed"):
            v = getattr(self, name)
            if not _finite(v) or float(v) <= 0:
                raise GeometryError(f"{name} must be > 0, got {v!r}")
        if not _finite(self.infill_density) or not 0 <= float(self.infill_density) <= 100:
            raise GeometryError(f"infill_density must be within 0..100, got {self.infill_density!r}")

    def to_dict(self) -> dict:
        d = asdict(self)
        d["infill_pattern"] = self.infill_pattern.value
        return d


FDM_PROFILES = {
    Quality.DRAFT: PrintParameters(layer_height=0.3, print_speed=80, infill_density=10,
                                   infill_pattern=InfillPattern.LINES),
    Quality.STANDARD: PrintParameters(layer_height=0.2, print_speed=60, infill_density=20,
                                      infill_pattern=InfillPattern.GRID),
    Quality.HIGH: PrintParameters(layer_height=0.1, print_speed=40, infill_density=30,
                                  infill_pattern=InfillPattern.GRID),
}

PURPOSE_MODIFIERS = {
    Purpose.PROTOTYPE: {"infill_density": 10, "infill_pattern": InfillPattern.LINES},
    Purpose.FUNCTIONAL: {"infill_density": 40, "infill_pattern": InfillPattern.GRID},
    Purpose.AESTHETIC: {"infill_density": 15, "infill_pattern": InfillPattern.GYROID},
}

# g/cm³
MATERIAL_DENSITY = {
    "PLA": 1.24,
    "ABS": 1.04,
    "Resin": 1.1,
    "PETG": 1.27,
    "TPU": 1.21,
}


def coerce_quality(quality) -> Quality:
    try:
        return Quality(str(getattr(quality, "value", quality)).strip().lower())
    except ValueError:
        allowed = ", ".join(q.value for q in Quality)
        raise ValueError(f"Invalid quality {quality!r} (expected one of: {allowed})") from None


def coerce_purpose(purpose) -> Purpose | None:
    """Purpose or None when it is not one of the known modifiers."""
    if purpose is None:
        return None
    try:
        return Purpose(str(getattr(purpose, "value", purpose)).strip().lower())
    except ValueError:
        return None


def get_print_parameters(quality, purpose=None) -> PrintParameters:
    base = FDM_PROFILES[coerce_quality(quality)]
    modifier = PURPOSE_MODIFIERS.get(coerce_purpose(purpose))
    if not modifier:
        return base
    return replace(base, **modifier)


def material_density(material_type: str) -> float:
    try:
        return MATERIAL_DENSITY[material_type]
    except KeyError:
        raise UnknownMaterialError(material_type) from None
