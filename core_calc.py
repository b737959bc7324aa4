# -*- coding: utf-8 -*-
"""
core_calc.py — pure core of the 3D print quote: upload bytes -> metadata -> estimate -> price.

Goals:
- No HTTP, storage or UI here; hosts (order/quote flows) call quote_file() per request.
- One source of truth for config loading (materials.json / pricing.json / printers.json)
  and for the report text.
- Every stage is a stateless function over frozen value types; nothing is cached between calls.

Config files:
  materials.json  {"PLA": {"White": 39, ...}, ...}           price PLN per kg by color
  pricing.json    merged over DEFAULT_PRICING                  VAT, energy tariff, labor
  printers.json   [{"id": ..., "power_watts": ..., ...}, ...]  printer catalog
"""
from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field

from estimation_core import EstimationResult, estimate_print_job
from file_validation import ValidationResult, format_validation_message, validate_file
from geometry_core import FileMetadata, analyze_file
from logging_config import get_logger
from print_parameters import PrintParameters, get_print_parameters, material_density
from pricing_core import (
    DEFAULT_PRICING,
    MaterialCatalog,
    PricingParams,
    PricingResult,
    PrinterCatalog,
    calculate_print_price,
    nz,
    pricing_setting,
)
from quote_errors import ConfigError, FileValidationError
from rounding import round_int

logger = get_logger("core_calc")


# ---------- Defaults ----------
DEFAULT_MATERIAL_PRICES = {
    "PLA": {"White": 39, "Black": 39, "Red": 49, "Yellow": 49, "Blue": 49},
    "ABS": {
        "Silver": 50, "Transparent": 50, "Black": 50, "Grey": 50,
        "Red": 50, "White": 50, "Blue": 50, "Green": 50,
    },
    "PETG": {
        "Black": 30, "White": 35, "Red": 39, "Green": 39, "Blue": 39,
        "Yellow": 39, "Pink": 39, "Orange": 39, "Silver": 39,
    },
}

DEFAULT_PRINTERS = [
    {
        "id": "default",
        "name": "Default FDM printer",
        "power_watts": 270,
        "cost_pln": 3483.39,
        "lifespan_hours": 5000,
        "maintenance_rate": 0.03,
        "status": "operational",
        "is_default": True,
        "is_active": True,
    }
]

MATERIALS_FILE = "materials.json"
PRICING_FILE = "pricing.json"
PRINTERS_FILE = "printers.json"


# ---------- Utilities ----------
def deep_merge(dst: dict, src: dict) -> dict:
    """Deep-merge src into dst (in place). Returns dst."""
    for k, v in (src or {}).items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            deep_merge(dst[k], v)
        else:
            dst[k] = v
    return dst


def set_by_dotted_path(d: dict, path: str, value):
    """Sets a value by dotted path ('labor.hour_rate_pln'), creating nested dicts as needed."""
    keys = path.split('.')
    cur = d
    for k in keys[:-1]:
        if k not in cur or not isinstance(cur[k], dict):
            cur[k] = {}
        cur = cur[k]
    cur[keys[-1]] = value


def parse_kv_override(pairs) -> dict:
    """['vat_pct=8', 'labor.default_min=10'] -> nested dict; values coerced to bool/int/float when possible."""
    out = {}
    for kv in pairs or []:
        if '=' not in kv:
            raise ConfigError(f"Invalid override '{kv}', expected key=val")
        k, v = kv.split('=', 1)
        vv = v
        try:
            if v.lower() in ('true', 'false'):
                vv = (v.lower() == 'true')
            elif '.' in v:
                vv = float(v)
            else:
                vv = int(v)
        except ValueError:
            pass
        set_by_dotted_path(out, k.strip(), vv)
    return out


# ---------- Config loading ----------
def get_default_config_dir() -> str:
    """Directory searched for the JSON configs by default: next to core_calc.py."""
    return os.path.dirname(os.path.abspath(__file__))


def _read_json(path: str):
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"{os.path.basename(path)}: JSON error ({e.msg}, line {e.lineno}, column {e.colno})"
        ) from None


def load_materials_json(path: str) -> MaterialCatalog:
    catalog = MaterialCatalog.from_dict(_read_json(path))
    logger.info("Loaded %d materials from %s", len(catalog.prices), path)
    return catalog


def load_pricing_json(path: str, *, base: dict | None = None, override: dict | None = None) -> dict:
    """
    pricing.json -> pricing dict.
    base: merged under the file (defaults to DEFAULT_PRICING).
    override: merged over the result.
    """
    cfg = _read_json(path)
    if not isinstance(cfg, dict):
        raise ConfigError(f"{os.path.basename(path)}: expected object")

    out = copy.deepcopy(base if isinstance(base, dict) else DEFAULT_PRICING)
    deep_merge(out, cfg)
    if override:
        deep_merge(out, override)
    _check_pricing(out)
    logger.info("Loaded pricing from %s", path)
    return out


def load_printers_json(path: str) -> PrinterCatalog:
    catalog = PrinterCatalog.from_rows(_read_json(path))
    logger.info("Loaded %d printers from %s", len(catalog.printers), path)
    return catalog


PRICING_RATES = (
    "vat_pct",
    "power.tariff_pln_per_kwh",
    "labor.hour_rate_pln",
    "labor.default_min",
    "delivery.default_fee_pln",
)


def _check_pricing(pricing: dict) -> None:
    for path in PRICING_RATES:
        pricing_setting(pricing, path)


@dataclass(frozen=True)
class CostConfig:
    """Everything pricing needs from the outside world: material catalog, printer catalog, rates."""
    materials: MaterialCatalog
    printers: PrinterCatalog
    pricing: dict = field(default_factory=lambda: copy.deepcopy(DEFAULT_PRICING))


def default_cost_config(override: dict | None = None) -> CostConfig:
    pricing = copy.deepcopy(DEFAULT_PRICING)
    if override:
        deep_merge(pricing, override)
        _check_pricing(pricing)
    return CostConfig(
        materials=MaterialCatalog.from_dict(DEFAULT_MATERIAL_PRICES),
        printers=PrinterCatalog.from_rows(DEFAULT_PRINTERS),
        pricing=pricing,
    )


def resolve_config_paths(config_dir: str | None = None) -> tuple[str, str, str]:
    base_dir = os.path.abspath(os.path.expanduser(config_dir)) if config_dir else get_default_config_dir()
    return (
        os.path.join(base_dir, MATERIALS_FILE),
        os.path.join(base_dir, PRICING_FILE),
        os.path.join(base_dir, PRINTERS_FILE),
    )


def load_cost_config(config_dir: str | None = None, override: dict | None = None) -> CostConfig:
    materials_path, pricing_path, printers_path = resolve_config_paths(config_dir)
    return CostConfig(
        materials=load_materials_json(materials_path),
        printers=load_printers_json(printers_path),
        pricing=load_pricing_json(pricing_path, override=override),
    )


# ---------- Pipeline ----------
@dataclass(frozen=True)
class QuoteResult:
    metadata: FileMetadata
    validation: ValidationResult
    parameters: PrintParameters
    estimation: EstimationResult
    pricing: PricingResult
    material: str
    color: str
    quality: str
    purpose: str

    def to_dict(self) -> dict:
        return {
            "metadata": self.metadata.to_dict(),
            "validation": self.validation.to_dict(),
            "parameters": self.parameters.to_dict(),
            "estimations": self.estimation.to_dict(),
            "pricing": self.pricing.to_dict(),
            "material": self.material,
            "color": self.color,
            "quality": self.quality,
            "purpose": self.purpose,
        }


def quote_file(
    buffer: bytes,
    filename: str,
    *,
    quality: str,
    purpose: str,
    material: str,
    color: str,
    labor_minutes: float | None = None,
    delivery_fee: float | None = None,
    printer_id: str | None = None,
    config: CostConfig | None = None,
    extracted_at: str | None = None,
) -> QuoteResult:
    """
    One request: bytes -> metadata -> validation gate -> parameters -> estimate -> price.
    Raises FileValidationError when the file is rejected (warnings alone never block).
    """
    cfg = config or default_cost_config()

    metadata = analyze_file(buffer, filename, extracted_at=extracted_at)
    validation = validate_file(metadata)
    if not validation.is_valid:
        logger.info("Rejected %s: %s", filename, "; ".join(validation.errors))
        raise FileValidationError(validation, format_validation_message(validation))

    parameters = get_print_parameters(quality, purpose)
    estimation = estimate_print_job(metadata, parameters, material_density(material))

    printer = cfg.printers.get_printer_specs(printer_id)
    pricing = calculate_print_price(
        PricingParams(
            material_type=material,
            color=color,
            material_weight_grams=estimation.material_weight_g,
            print_time_hours=estimation.print_time_minutes / 60.0,
            labor_time_minutes=labor_minutes,
            delivery_fee=delivery_fee,
        ),
        materials=cfg.materials,
        printer=printer,
        pricing=cfg.pricing,
    )

    return QuoteResult(
        metadata=metadata,
        validation=validation,
        parameters=parameters,
        estimation=estimation,
        pricing=pricing,
        material=material,
        color=color,
        quality=str(getattr(quality, "value", quality)),
        purpose=str(getattr(purpose, "value", purpose)),
    )


# ---------- Report ----------
def _hm(minutes: float) -> str:
    minutes = max(0, round_int(nz(minutes)))
    return f"{minutes // 60}h {minutes % 60:02d}m"


def _money(v: float, currency: str = "PLN") -> str:
    s = f"{nz(v):,.2f}".replace(",", " ")
    return f"{s} {currency}"


def _line(label: str, value: float, currency: str, width: int = 14) -> str:
    return f"  {label:<24}{_money(value, currency):>{width}}\n"


def render_quote_report(quote: QuoteResult, *, brief: bool = True) -> str:
    md, est, pr, par = quote.metadata, quote.estimation, quote.pricing, quote.parameters
    cur = pr.currency
    dims = md.dimensions_mm

    head = []
    head.append(f"File: {md.filename}\n")
    head.append(f"• Size: {dims.width:.1f} × {dims.height:.1f} × {dims.depth:.1f} mm | "
                f"volume {md.volume_mm3 / 1000.0:.2f} cm³\n")
    head.append(f"• Material: {quote.material} {quote.color} | {quote.quality} / {quote.purpose} "
                f"({par.layer_height:g} mm, infill {par.infill_density:g}% {par.infill_pattern.value})\n")
    head.append(f"• Weight: {est.material_weight_g:.2f} g | Print time: {_hm(est.print_time_minutes)} | "
                f"Layers: {est.layer_count}\n")
    for w in quote.validation.warnings:
        head.append(f"! {w}\n")
    head.append("-" * 42 + "\n")

    body = []
    body.append(_line("Material", pr.c_material, cur))
    if brief:
        other = pr.c_energy + pr.c_labor + pr.c_depreciation + pr.c_maintenance
        body.append(_line("Machine & labor", other, cur))
    else:
        body.append(_line("Energy", pr.c_energy, cur))
        body.append(_line("Labor", pr.c_labor, cur))
        body.append(_line("Depreciation", pr.c_depreciation, cur))
        body.append(_line("Maintenance", pr.c_maintenance, cur))
    body.append(_line("Internal cost", pr.c_internal, cur))
    body.append(_line("VAT", pr.vat, cur))
    if pr.delivery_fee:
        body.append(_line("Delivery", pr.delivery_fee, cur))
    body.append("-" * 42 + "\n")
    body.append(f"TOTAL: {_money(pr.total_price, cur)}\n")
    return "".join(head + body)
