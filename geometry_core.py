# -*- coding: utf-8 -*-
"""
geometry_core.py — bounding box, volume and surface area of a triangle soup.

V_mm is a float array of shape (3*n, 3); rows 3i, 3i+1, 3i+2 are one triangle.
Volume is the sum of signed tetrahedra anchored at the origin. It is exact only for a
closed, consistently wound mesh; open meshes give an approximation (the validator's
thin/non-manifold warning exists for that case).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

import numpy as np

from mesh_parser import MeshFormat, ParsedMesh, parse_mesh


# ---------- Value types ----------
@dataclass(frozen=True)
class Dimensions:
    width: float = 0.0
    height: float = 0.0
    depth: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return self.width, self.height, self.depth


@dataclass(frozen=True)
class FileMetadata:
    filename: str
    file_size: int
    file_type: MeshFormat
    volume_mm3: float
    surface_area_mm2: float
    dimensions_mm: Dimensions = field(default_factory=Dimensions)
    triangle_count: int = 0
    extracted_at: str = ""

    def to_dict(self) -> dict:
        d = asdict(self)
        d["file_type"] = self.file_type.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "FileMetadata":
        """Inverse of to_dict(); unknown format tags map to MeshFormat.UNKNOWN."""
        dims = data.get("dimensions_mm") or {}
        try:
            fmt = MeshFormat(str(data.get("file_type", "")).upper())
        except ValueError:
            fmt = MeshFormat.UNKNOWN
        return cls(
            filename=str(data.get("filename", "")),
            file_size=int(data.get("file_size", 0)),
            file_type=fmt,
            volume_mm3=float(data.get("volume_mm3", 0.0)),
            surface_area_mm2=float(data.get("surface_area_mm2", 0.0)),
            dimensions_mm=Dimensions(
                width=float(dims.get("width", 0.0)),
                height=float(dims.get("height", 0.0)),
                depth=float(dims.get("depth", 0.0)),
            ),
            triangle_count=int(data.get("triangle_count", 0)),
            extracted_at=str(data.get("extracted_at", "")),
        )


# ---------- Geometry ----------
def _triangles(V_mm: np.ndarray):
    T = np.asarray(V_mm, dtype=np.float64).reshape(-1, 3, 3)
    return T[:, 0], T[:, 1], T[:, 2]


def bounding_box(V_mm: np.ndarray) -> Dimensions:
    if V_mm.size == 0:
        return Dimensions()
    mins = V_mm.min(axis=0); maxs = V_mm.max(axis=0)
    dx, dy, dz = (maxs - mins)
    return Dimensions(width=float(dx), height=float(dy), depth=float(dz))


def signed_volume_mm3(V_mm: np.ndarray) -> float:
    if V_mm.shape[0] < 3:
        return 0.0
    v0, v1, v2 = _triangles(V_mm)
    vol6 = np.einsum('ij,ij->i', v0, np.cross(v1, v2))
    return float(vol6.sum()) / 6.0


def volume_mm3(V_mm: np.ndarray) -> float:
    return abs(signed_volume_mm3(V_mm))


def surface_area_mm2(V_mm: np.ndarray) -> float:
    if V_mm.shape[0] < 3:
        return 0.0
    v0, v1, v2 = _triangles(V_mm)
    return float(0.5 * np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1).sum())


# ---------- Analysis ----------
def metadata_from_mesh(mesh: ParsedMesh, *, filename: str, file_size: int,
                       extracted_at: str | None = None) -> FileMetadata:
    V = mesh.vertices
    return FileMetadata(
        filename=filename,
        file_size=int(file_size),
        file_type=mesh.file_format,
        volume_mm3=volume_mm3(V),
        surface_area_mm2=surface_area_mm2(V),
        dimensions_mm=bounding_box(V),
        triangle_count=int(mesh.triangle_count),
        extracted_at=extracted_at or datetime.now(timezone.utc).isoformat(),
    )


def analyze_file(buffer: bytes, filename: str, *, extracted_at: str | None = None) -> FileMetadata:
    """
    Parse + measure an uploaded file. Bad STL content gives zeroed metadata rather than an
    exception; OBJ/3MF raise UnsupportedFormatError from the parser.
    """
    mesh = parse_mesh(buffer, filename)
    return metadata_from_mesh(mesh, filename=filename, file_size=len(buffer or b""),
                              extracted_at=extracted_at)
