# -*- coding: utf-8 -*-
"""
pricing_core.py — itemised, VAT-inclusive price of a print job.

  C_material     = price_per_kg(material, color) * weight_g / 1000
  C_energy       = print_h * printer_kW * tariff
  C_labor        = hour_rate * labor_min / 60
  C_depreciation = printer_cost / lifespan_h * print_h
  C_maintenance  = C_depreciation * maintenance_rate
  C_internal     = sum of the above
  vat            = C_internal * vat_rate       (vat_pct / 100, 0.23 by default)
  total          = C_internal + vat + delivery

Each figure is rounded half-up to 2 decimals before it feeds the next step, so fixtures stay
reproducible. Material prices and printer specs come from injected catalogs; rates come
from the pricing dict, and any rate it lacks is taken from DEFAULT_PRICING.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from quote_errors import (
    ConfigError,
    MaterialPriceNotFoundError,
    NoOperationalPrinterError,
    PrinterNotFoundError,
)
from rounding import round_money

DEFAULT_MAINTENANCE_RATE = 0.03

DEFAULT_PRICING = {
    "currency": "PLN",
    "vat_pct": 23,
    "power": {"tariff_pln_per_kwh": 0.914},
    "labor": {"hour_rate_pln": 31.4, "default_min": 20},
    "delivery": {"default_fee_pln": 0.0},
}

PRINTER_STATUSES = ("operational", "maintenance", "offline")


# ---------- Utilities ----------
def nz(v, d=0.0) -> float:
    try:
        f = float(v)
        if np.isfinite(f):
            return f
    except (TypeError, ValueError):
        pass
    return d


def _r2(v: float) -> float:
    return round_money(v)


def _non_negative(value, label: str) -> float:
    v = nz(value, -1.0)
    if v < 0:
        raise ValueError(f"{label} must be a finite number >= 0, got {value!r}")
    return v


def _lookup(d: dict, path: str):
    cur = d
    for k in path.split('.'):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return cur


def pricing_setting(pricing: dict, path: str) -> float:
    """Numeric rate by dotted path; keys missing from `pricing` fall back to DEFAULT_PRICING."""
    value = _lookup(pricing, path)
    if value is None:
        value = _lookup(DEFAULT_PRICING, path)
    v = nz(value, -1.0)
    if v < 0:
        raise ConfigError(f"pricing: {path} must be a finite number >= 0, got {value!r}")
    return v


def _config_number(row: dict, key: str, *, positive: bool = False) -> float:
    value = row[key]
    v = nz(value, -1.0) if not isinstance(value, bool) else -1.0
    if v < 0 or (positive and v == 0):
        bound = "> 0" if positive else ">= 0"
        raise ConfigError(f"printers: '{row.get('id', '?')}' {key} must be a number {bound}, got {value!r}")
    return v


# ---------- Material catalog ----------
@dataclass(frozen=True)
class MaterialCatalog:
    """price_pln_per_kg by material type and color: {"PLA": {"White": 39, ...}, ...}"""
    prices: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "MaterialCatalog":
        if not isinstance(data, dict) or not data:
            raise ConfigError("materials: expected object {material: {color: price_pln_per_kg}}")
        prices: Dict[str, Dict[str, float]] = {}
        for material, colors in data.items():
            if not isinstance(colors, dict) or not colors:
                raise ConfigError(f"materials: invalid row for '{material}'")
            row = {}
            for color, price in colors.items():
                p = nz(price, -1.0)
                if p < 0:
                    raise ConfigError(f"materials: invalid price for '{material}_{color}': {price!r}")
                row[str(color)] = p
            prices[str(material)] = row
        return cls(prices)

    def price_per_kg(self, material_type: str, color: str) -> float:
        price = self.prices.get(material_type, {}).get(color)
        if price is None:
            raise MaterialPriceNotFoundError(material_type, color)
        return price

    def materials(self) -> list[str]:
        return sorted(self.prices)

    def available_colors(self, material_type: str) -> list[str]:
        return sorted(self.prices.get(material_type, {}))


# ---------- Printer catalog ----------
@dataclass(frozen=True)
class PrinterSpec:
    power_kw: float
    cost_pln: float
    lifespan_hours: float
    maintenance_rate: float = DEFAULT_MAINTENANCE_RATE

    def __post_init__(self):
        for name in ("power_kw", "cost_pln", "maintenance_rate"):
            if nz(getattr(self, name), -1.0) < 0:
                raise ConfigError(f"printer spec: {name} must be a finite number >= 0, "
                                  f"got {getattr(self, name)!r}")
        if nz(self.lifespan_hours) <= 0:
            raise ConfigError(f"printer spec: lifespan_hours must be > 0, got {self.lifespan_hours!r}")

    @property
    def depreciation_per_hour(self) -> float:
        return self.cost_pln / self.lifespan_hours


@dataclass(frozen=True)
class Printer:
    id: str
    name: str
    power_watts: float
    cost_pln: float
    lifespan_hours: float
    maintenance_rate: float = DEFAULT_MAINTENANCE_RATE
    status: str = "operational"
    is_default: bool = False
    is_active: bool = True

    @classmethod
    def from_row(cls, row: dict) -> "Printer":
        if not isinstance(row, dict):
            raise ConfigError(f"printers: invalid row {row!r}")
        missing = [k for k in ("id", "power_watts", "cost_pln", "lifespan_hours") if k not in row]
        if missing:
            raise ConfigError(f"printers: '{row.get('id', '?')}' missing {'/'.join(missing)}")
        status = str(row.get("status", "operational"))
        if status not in PRINTER_STATUSES:
            raise ConfigError(f"printers: '{row['id']}' unknown status {status!r}")
        maintenance = DEFAULT_MAINTENANCE_RATE
        if row.get("maintenance_rate") is not None:
            maintenance = _config_number(row, "maintenance_rate")
        return cls(
            id=str(row["id"]),
            name=str(row.get("name", row["id"])),
            power_watts=_config_number(row, "power_watts"),
            cost_pln=_config_number(row, "cost_pln"),
            lifespan_hours=_config_number(row, "lifespan_hours", positive=True),
            maintenance_rate=maintenance,
            status=status,
            is_default=bool(row.get("is_default", False)),
            is_active=bool(row.get("is_active", True)),
        )

    @property
    def is_operational(self) -> bool:
        return self.is_active and self.status == "operational"

    def spec(self) -> PrinterSpec:
        return PrinterSpec(
            power_kw=self.power_watts / 1000.0,
            cost_pln=self.cost_pln,
            lifespan_hours=self.lifespan_hours,
            maintenance_rate=self.maintenance_rate,
        )


@dataclass(frozen=True)
class PrinterCatalog:
    printers: Tuple[Printer, ...] = ()

    @classmethod
    def from_rows(cls, rows) -> "PrinterCatalog":
        if not isinstance(rows, list):
            raise ConfigError("printers: expected a list of printer objects")
        return cls(tuple(Printer.from_row(r) for r in rows))

    def get_printer(self, printer_id: str) -> Printer:
        for p in self.printers:
            if p.id == printer_id:
                return p
        raise PrinterNotFoundError(printer_id)

    def operational_printers(self) -> list[Printer]:
        return sorted((p for p in self.printers if p.is_operational), key=lambda p: p.name)

    def get_default_printer(self) -> Printer:
        """Flagged default if it is operational, else the first operational printer by name."""
        operational = self.operational_printers()
        for p in operational:
            if p.is_default:
                return p
        if not operational:
            raise NoOperationalPrinterError()
        return operational[0]

    def get_printer_specs(self, printer_id: Optional[str] = None) -> PrinterSpec:
        printer = self.get_printer(printer_id) if printer_id else self.get_default_printer()
        return printer.spec()


# ---------- Pricing ----------
@dataclass(frozen=True)
class PricingParams:
    material_type: str
    color: str
    material_weight_grams: float
    print_time_hours: float
    labor_time_minutes: Optional[float] = None
    delivery_fee: Optional[float] = None


@dataclass(frozen=True)
class PricingResult:
    c_material: float
    c_energy: float
    c_labor: float
    c_depreciation: float
    c_maintenance: float
    c_internal: float
    vat: float
    price_without_delivery: float
    delivery_fee: float
    total_price: float
    currency: str = "PLN"

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_print_price(
    params: PricingParams,
    *,
    materials: MaterialCatalog,
    printer: PrinterSpec,
    pricing: dict | None = None,
) -> PricingResult:
    p = pricing if pricing is not None else DEFAULT_PRICING

    weight_g = _non_negative(params.material_weight_grams, "material_weight_grams")
    print_h = _non_negative(params.print_time_hours, "print_time_hours")
    labor_min = _non_negative(
        pricing_setting(p, "labor.default_min") if params.labor_time_minutes is None
        else params.labor_time_minutes,
        "labor_time_minutes",
    )
    fee = _r2(_non_negative(
        pricing_setting(p, "delivery.default_fee_pln") if params.delivery_fee is None
        else params.delivery_fee,
        "delivery_fee",
    ))

    c_material = _r2(materials.price_per_kg(params.material_type, params.color) * weight_g / 1000.0)
    c_energy = _r2(print_h * printer.power_kw * pricing_setting(p, "power.tariff_pln_per_kwh"))
    c_labor = _r2(pricing_setting(p, "labor.hour_rate_pln") * (labor_min / 60.0))
    c_depreciation = _r2(printer.depreciation_per_hour * print_h)
    c_maintenance = _r2(c_depreciation * printer.maintenance_rate)

    c_internal = _r2(c_material + c_energy + c_labor + c_depreciation + c_maintenance)
    vat_rate = pricing_setting(p, "vat_pct") / 100.0
    vat = _r2(c_internal * vat_rate)
    price_without_delivery = _r2(c_internal + vat)
    total = _r2(price_without_delivery + fee)

    return PricingResult(
        c_material=c_material,
        c_energy=c_energy,
        c_labor=c_labor,
        c_depreciation=c_depreciation,
        c_maintenance=c_maintenance,
        c_internal=c_internal,
        vat=vat,
        price_without_delivery=price_without_delivery,
        delivery_fee=fee,
        total_price=total,
        currency=str(p.get("currency", "PLN")),
    )
