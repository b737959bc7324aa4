# -*- coding: utf-8 -*-
"""
estimation_core.py — weight / time / layers / nozzle travel from geometry and process parameters.

The model is a calibration-level approximation, not a slicer:
- perimeter length per layer ~ surface area / depth
- infill is extruded through an assumed 0.5 mm² filament cross-section
- effective volume = model volume * (1 + infill/100)  (shell + infill)
- nozzle travel ~ surface area * layers * 0.1
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from geometry_core import FileMetadata
from print_parameters import PrintParameters
from quote_errors import GeometryError
from rounding import round_int, round_money

FILAMENT_CROSS_SECTION_MM2 = 0.5
NOZZLE_TRAVEL_FACTOR = 0.1


@dataclass(frozen=True)
class EstimationResult:
    material_weight_g: float
    print_time_minutes: int
    layer_count: int
    nozzle_travel_mm: int

    def to_dict(self) -> dict:
        return asdict(self)


def _require_positive(value: float, label: str) -> float:
    v = float(value)
    if not math.isfinite(v) or v <= 0:
        raise GeometryError(f"{label} must be > 0, got {value!r}")
    return v


def layer_count(depth_mm: float, layer_height_mm: float) -> int:
    depth = _require_positive(depth_mm, "depth_mm")
    lh = _require_positive(layer_height_mm, "layer_height_mm")
    return int(math.ceil(depth / lh))


def estimate_print_time_minutes(metadata: FileMetadata, params: PrintParameters) -> int:
    depth = _require_positive(metadata.dimensions_mm.depth, "depth_mm")
    speed = _require_positive(params.print_speed, "print_speed_mm_s")
    layers = layer_count(depth, params.layer_height)

    perimeter_len = metadata.surface_area_mm2 / depth
    perimeter_s = perimeter_len * layers / speed

    infill_mm3 = metadata.volume_mm3 * params.infill_density / 100.0
    infill_s = infill_mm3 * FILAMENT_CROSS_SECTION_MM2 / speed

    return round_int((perimeter_s + infill_s) / 60.0)


def estimate_material_weight_g(volume_mm3: float, infill_density: float, density_g_cm3: float) -> float:
    density = _require_positive(density_g_cm3, "material density")
    effective_cm3 = (max(0.0, float(volume_mm3)) / 1000.0) * (1.0 + float(infill_density) / 100.0)
    return round_money(effective_cm3 * density)


def estimate_print_job(metadata: FileMetadata, params: PrintParameters,
                       density_g_cm3: float) -> EstimationResult:
    layers = layer_count(metadata.dimensions_mm.depth, params.layer_height)
    minutes = estimate_print_time_minutes(metadata, params)
    weight = estimate_material_weight_g(metadata.volume_mm3, params.infill_density, density_g_cm3)
    travel = round_int(metadata.surface_area_mm2 * layers * NOZZLE_TRAVEL_FACTOR)
    return EstimationResult(
        material_weight_g=weight,
        print_time_minutes=minutes,
        layer_count=layers,
        nozzle_travel_mm=travel,
    )
