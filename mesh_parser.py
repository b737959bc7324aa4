# -*- coding: utf-8 -*-
"""
mesh_parser.py — decoding of uploaded mesh buffers into a triangle soup.

Contract:
- Input is the raw upload buffer plus its filename (the extension selects the format).
- Output is ParsedMesh: float64 vertices of shape (3*n, 3), every 3 consecutive rows form a triangle.
- Corrupt, truncated or empty STL input never raises: it yields an empty mesh, and the
  validator turns that into a user-facing error.
- Declared formats without a decoder (OBJ, 3MF) raise UnsupportedFormatError.

STL comes in two encodings, picked by content sniffing:
  text:   "solid ..." followed by `vertex x y z` records
  binary: 80-byte header, uint32 LE triangle count, 50-byte facet records
"""
from __future__ import annotations

import os
import re
import struct
from dataclasses import dataclass
from enum import Enum

import numpy as np

from logging_config import get_logger
from quote_errors import UnsupportedFormatError

logger = get_logger("mesh_parser")


class MeshFormat(str, Enum):
    STL = "STL"
    OBJ = "OBJ"
    THREE_MF = "3MF"
    UNKNOWN = "UNKNOWN"


class StlVariant(str, Enum):
    TEXT = "text"
    BINARY = "binary"


_EXT_TO_FORMAT = {
    ".stl": MeshFormat.STL,
    ".obj": MeshFormat.OBJ,
    ".3mf": MeshFormat.THREE_MF,
}

BINARY_HEADER_BYTES = 80
BINARY_PREFIX_BYTES = 84  # header + uint32 triangle count
BINARY_FACET_BYTES = 50

# normal (ignored) + 3 vertices + attribute byte count (ignored)
_FACET_DTYPE = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attr", "<u2"),
])

_FLOAT = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_VERTEX_RE = re.compile(rf"vertex\s+({_FLOAT})\s+({_FLOAT})\s+({_FLOAT})", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedMesh:
    file_format: MeshFormat
    vertices: np.ndarray
    triangle_count: int
    variant: StlVariant | None = None

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0


def _empty_vertices() -> np.ndarray:
    return np.zeros((0, 3), dtype=np.float64)


def detect_format(filename: str) -> MeshFormat:
    ext = os.path.splitext(filename or "")[1].lower()
    return _EXT_TO_FORMAT.get(ext, MeshFormat.UNKNOWN)


# ---------- STL: sniffing ----------
def _binary_size_matches(buffer: bytes) -> bool:
    if len(buffer) < BINARY_PREFIX_BYTES:
        return False
    count = struct.unpack_from("<I", buffer, BINARY_HEADER_BYTES)[0]
    return count > 0 and len(buffer) == BINARY_PREFIX_BYTES + BINARY_FACET_BYTES * count


def sniff_stl_variant(buffer: bytes) -> StlVariant:
    """
    "solid" in the first bytes means text, unless the buffer is exactly the size a binary
    file with its declared triangle count would have (exporters often write "solid" into
    the binary header). This deliberately widens the plain "starts with solid means text"
    rule: such files would otherwise be scanned for `vertex` records and come out empty.
    """
    head = bytes(buffer[:5]).decode("utf-8", errors="ignore")
    if "solid" in head and not _binary_size_matches(buffer):
        return StlVariant.TEXT
    return StlVariant.BINARY


# ---------- STL: decoders ----------
def decode_ascii_stl(buffer: bytes) -> np.ndarray:
    text = bytes(buffer).decode("utf-8", errors="ignore")
    coords = _VERTEX_RE.findall(text)
    if not coords:
        return _empty_vertices()

    usable = len(coords) - len(coords) % 3
    if usable != len(coords):
        logger.warning("ASCII STL: dropping %d vertices of an incomplete facet", len(coords) - usable)
    if usable == 0:
        return _empty_vertices()

    V = np.array([[float(x), float(y), float(z)] for x, y, z in coords[:usable]], dtype=np.float64)
    if not np.isfinite(V).all():
        logger.warning("ASCII STL: non-finite vertex coordinate")
        return _empty_vertices()
    return V


def decode_binary_stl(buffer: bytes) -> np.ndarray:
    size = len(buffer)
    if size < BINARY_PREFIX_BYTES:
        logger.warning("Malformed binary STL: file too small (%d bytes)", size)
        return _empty_vertices()

    count = struct.unpack_from("<I", buffer, BINARY_HEADER_BYTES)[0]
    if count == 0:
        return _empty_vertices()

    expected = BINARY_PREFIX_BYTES + BINARY_FACET_BYTES * count
    if size < expected:
        logger.warning("Malformed binary STL: %d triangles declared, expected %d bytes, got %d",
                       count, expected, size)
        return _empty_vertices()

    facets = np.frombuffer(buffer, dtype=_FACET_DTYPE, count=count, offset=BINARY_PREFIX_BYTES)
    V = facets["vertices"].reshape(-1, 3).astype(np.float64)
    if not np.isfinite(V).all():
        logger.warning("Malformed binary STL: non-finite vertex coordinate")
        return _empty_vertices()
    return V


_STL_DECODERS = {
    StlVariant.TEXT: decode_ascii_stl,
    StlVariant.BINARY: decode_binary_stl,
}


def parse_stl_bytes(buffer: bytes) -> ParsedMesh:
    variant = sniff_stl_variant(buffer)
    V = _STL_DECODERS[variant](buffer)
    tri_count = V.shape[0] // 3
    logger.debug("STL %s: %d triangles", variant.value, tri_count)
    return ParsedMesh(MeshFormat.STL, V, tri_count, variant)


# ---------- Entry point ----------
def parse_mesh(buffer: bytes, filename: str) -> ParsedMesh:
    fmt = detect_format(filename)
    if fmt is MeshFormat.STL:
        return parse_stl_bytes(buffer or b"")
    if fmt is MeshFormat.UNKNOWN:
        # left to the validator: reported as an unsupported file type
        return ParsedMesh(fmt, _empty_vertices(), 0)
    logger.warning("No decoder for %s (%s)", fmt.value, filename)
    raise UnsupportedFormatError(fmt.value, filename)
