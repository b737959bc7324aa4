# -*- coding: utf-8 -*-
"""
quote_errors.py — exceptions of the print quoting core.

Every failure the core raises derives from PrintQuoteError, so a caller can catch
one type at the request boundary and still branch on the specific condition.
"""
from __future__ import annotations


class PrintQuoteError(Exception):
    """Base class for all errors raised by the quoting core."""


class ConfigError(PrintQuoteError):
    """Config file missing, invalid JSON or a malformed row."""


class UnsupportedFormatError(PrintQuoteError, NotImplementedError):
    """A declared mesh format has no decoder."""

    def __init__(self, file_format: str, filename: str = ""):
        self.file_format = file_format
        self.filename = filename
        msg = f"Mesh format not supported: {file_format}"
        if filename:
            msg += f" ({filename})"
        super().__init__(msg)


class GeometryError(PrintQuoteError, ValueError):
    """Geometry or process parameters that would produce non-finite estimates."""


class FileValidationError(PrintQuoteError):
    """The uploaded file failed validation; `.validation` holds errors and warnings."""

    def __init__(self, validation, message: str = "File validation failed"):
        self.validation = validation
        super().__init__(message)


class LookupFailure(PrintQuoteError, LookupError):
    """A catalog lookup failed; the caller can correct the request."""


class MaterialPriceNotFoundError(LookupFailure):
    def __init__(self, material_type: str, color: str):
        self.material_type = material_type
        self.color = color
        self.key = f"{material_type}_{color}"
        super().__init__(f"Material price not found for: {self.key}")


class UnknownMaterialError(LookupFailure):
    def __init__(self, material_type: str):
        self.material_type = material_type
        super().__init__(f"Unknown material: {material_type!r}")


class PrinterNotFoundError(LookupFailure):
    def __init__(self, printer_id: str):
        self.printer_id = printer_id
        super().__init__(f"Printer not found: {printer_id!r}")


class NoOperationalPrinterError(LookupFailure):
    def __init__(self):
        super().__init__("No operational printers available")
