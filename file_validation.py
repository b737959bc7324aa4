# -*- coding: utf-8 -*-
"""
file_validation.py — sanity checks over analysed file metadata.

Checks run in a fixed order. The first errors stop the run (nothing after them can be
trusted); warnings never affect is_valid.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from geometry_core import FileMetadata
from mesh_parser import MeshFormat

# formats that have a decoder
SUPPORTED_FORMATS = frozenset({MeshFormat.STL})

SMALL_VOLUME_MM3 = 1.0
LARGE_VOLUME_MM3 = 1_000_000.0
THIN_RATIO = 0.01
RATIO_EPS = 0.001
MIN_BYTES_PER_TRIANGLE = 40  # binary STL is 50, ASCII ~250


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def _fail(errors: list, warnings: list) -> ValidationResult:
    return ValidationResult(False, tuple(errors), tuple(warnings))


def validate_file(metadata: FileMetadata) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    if metadata.file_size == 0:
        errors.append("File is empty (0 bytes)")
        return _fail(errors, warnings)

    if metadata.file_type not in SUPPORTED_FORMATS:
        errors.append(f"Unsupported file type: {metadata.file_type.value}")
        return _fail(errors, warnings)

    if not metadata.triangle_count:
        errors.append("No valid geometry found in file (0 triangles). File may be corrupted or empty.")
        return _fail(errors, warnings)

    if metadata.volume_mm3 <= 0:
        errors.append(
            "Invalid geometry detected: Volume is zero or negative. "
            "File may have open geometry or be self-intersecting."
        )
        return _fail(errors, warnings)

    dims = metadata.dimensions_mm
    if dims.width <= 0 or dims.height <= 0 or dims.depth <= 0:
        errors.append(
            "Invalid dimensions detected: Width, height, or depth is zero. "
            "File may be flat or degenerate."
        )
        return _fail(errors, warnings)

    vol = metadata.volume_mm3
    if vol < SMALL_VOLUME_MM3:
        warnings.append(f"Very small object detected ({vol:.3f} mm³). May be difficult to print.")
    if vol > LARGE_VOLUME_MM3:
        warnings.append(
            f"Very large object detected ({vol / 1_000_000:.2f} liters). May exceed printer capacity."
        )

    # cheap manifoldness heuristic, not a proof
    if vol / (metadata.surface_area_mm2 + RATIO_EPS) < THIN_RATIO:
        warnings.append(
            "Thin or complex geometry detected. File may have open edges or be non-manifold. "
            "Check geometry in CAD software."
        )

    if metadata.surface_area_mm2 <= 0:
        errors.append("Invalid surface area calculated. File geometry may be corrupted.")
        return _fail(errors, warnings)

    min_size = metadata.triangle_count * MIN_BYTES_PER_TRIANGLE
    if metadata.file_size < min_size:
        warnings.append(
            f"File size ({metadata.file_size} bytes) seems small for "
            f"{metadata.triangle_count} triangles. File may be truncated."
        )

    return ValidationResult(not errors, tuple(errors), tuple(warnings))


def format_validation_message(result: ValidationResult) -> str:
    if result.is_valid and not result.warnings:
        return "File is valid"

    lines = []
    if result.is_valid:
        lines.append("File is valid")
    else:
        lines.append("File validation failed:")
        lines.extend(f"  - {e}" for e in result.errors)
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"  ! {w}" for w in result.warnings)
    return "\n".join(lines)
