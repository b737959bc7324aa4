import pytest

from core_calc import DEFAULT_MATERIAL_PRICES, DEFAULT_PRINTERS
from pricing_core import (
    DEFAULT_PRICING,
    MaterialCatalog,
    PricingParams,
    PrinterCatalog,
    PrinterSpec,
    calculate_print_price,
)
from quote_errors import (
    ConfigError,
    MaterialPriceNotFoundError,
    NoOperationalPrinterError,
    PrinterNotFoundError,
)
from rounding import round_money

MATERIALS = MaterialCatalog.from_dict(DEFAULT_MATERIAL_PRICES)
PRINTER = PrinterSpec(power_kw=0.27, cost_pln=3483.39, lifespan_hours=5000, maintenance_rate=0.03)


def _price(**kw):
    params = dict(
        material_type="PLA",
        color="White",
        material_weight_grams=50,
        print_time_hours=2,
        labor_time_minutes=20,
        delivery_fee=0,
    )
    params.update(kw)
    return calculate_print_price(PricingParams(**params), materials=MATERIALS, printer=PRINTER)


def test_pla_white_reference_breakdown():
    r = _price()
    assert r.c_material == pytest.approx(1.95)
    assert r.c_energy == pytest.approx(0.49)
    assert r.c_labor == pytest.approx(10.47)
    assert r.c_depreciation == pytest.approx(1.39)
    assert r.c_maintenance == pytest.approx(0.04)
    assert r.c_internal == pytest.approx(14.34)
    assert r.vat == pytest.approx(3.30)
    assert r.price_without_delivery == pytest.approx(17.64)
    assert r.total_price == pytest.approx(17.64)
    assert r.currency == "PLN"


def test_pla_red_higher_price():
    r = _price(color="Red", material_weight_grams=100, print_time_hours=5)
    assert r.c_material == pytest.approx(4.90)
    assert r.c_energy == pytest.approx(1.23)
    assert r.c_internal == pytest.approx(20.18)
    assert r.vat == pytest.approx(4.64)
    assert r.price_without_delivery == pytest.approx(24.82)


def test_abs_with_delivery_fee():
    r = _price(material_type="ABS", color="Black", material_weight_grams=75, print_time_hours=3,
               delivery_fee=25)
    assert r.c_internal == pytest.approx(17.11)
    assert r.vat == pytest.approx(3.94)
    assert r.price_without_delivery == pytest.approx(21.05)
    assert r.total_price == pytest.approx(46.05)
    assert r.delivery_fee == 25


def test_custom_labor_time():
    assert _price(labor_time_minutes=45).c_labor == pytest.approx(23.55)


def test_default_labor_time_is_20_minutes():
    assert _price(labor_time_minutes=None).c_labor == pytest.approx(10.47)


def test_zero_weight_still_costs_machine_time():
    r = _price(material_weight_grams=0, print_time_hours=1)
    assert r.c_material == 0
    assert r.c_internal > 0


def test_unknown_material_names_key():
    with pytest.raises(MaterialPriceNotFoundError, match="InvalidMaterial_White") as exc:
        _price(material_type="InvalidMaterial")
    assert exc.value.key == "InvalidMaterial_White"
    assert isinstance(exc.value, LookupError)


def test_unknown_color_names_key():
    with pytest.raises(MaterialPriceNotFoundError, match="Material price not found for: PLA_InvalidColor"):
        _price(color="InvalidColor")


@pytest.mark.parametrize("weight, hours, labor, fee", [
    (50, 2, 20, 0),
    (100, 4, 20, 0),
    (12.345, 0.7, 5, 9.99),
    (980, 31.5, 90, 18.5),
])
def test_vat_and_total_invariants(weight, hours, labor, fee):
    r = _price(material_weight_grams=weight, print_time_hours=hours, labor_time_minutes=labor,
               delivery_fee=fee)
    assert r.vat == round_money(r.c_internal * 0.23)
    assert r.total_price == pytest.approx(r.price_without_delivery + fee)
    parts = [r.c_material, r.c_energy, r.c_labor, r.c_depreciation, r.c_maintenance]
    assert all(p >= 0 and round_money(p) == p for p in parts)
    assert r.c_internal == pytest.approx(sum(parts))


def test_negative_inputs_rejected():
    with pytest.raises(ValueError, match="material_weight_grams"):
        _price(material_weight_grams=-1)
    with pytest.raises(ValueError, match="delivery_fee"):
        _price(delivery_fee=-5)


def test_pricing_dict_overrides_rates():
    pricing = dict(DEFAULT_PRICING, vat_pct=8)
    r = calculate_print_price(
        PricingParams("PLA", "White", 50, 2, 20, 0), materials=MATERIALS, printer=PRINTER, pricing=pricing
    )
    assert r.vat == round_money(r.c_internal * 0.08)


def test_half_cent_rounds_up():
    # 50 PLN/kg * 2.5 g = 0.125 PLN exactly
    r = _price(material_type="ABS", color="White", material_weight_grams=2.5)
    assert r.c_material == 0.13


def test_partial_pricing_dict_falls_back_to_default_rates():
    r = calculate_print_price(
        PricingParams("PLA", "White", 50, 2, 20, 0), materials=MATERIALS, printer=PRINTER,
        pricing={"currency": "PLN"},
    )
    assert r.c_energy == pytest.approx(0.49)
    assert r.c_labor == pytest.approx(10.47)
    assert r.vat == pytest.approx(3.30)
    assert r.total_price == pytest.approx(17.64)


def test_partial_pricing_dict_keeps_its_own_rates():
    r = calculate_print_price(
        PricingParams("PLA", "White", 50, 2, None, None), materials=MATERIALS, printer=PRINTER,
        pricing={"labor": {"hour_rate_pln": 50}},
    )
    assert r.c_labor == pytest.approx(16.67)
    assert r.vat == round_money(r.c_internal * 0.23)


@pytest.mark.parametrize("pricing, path", [
    ({"vat_pct": "abc"}, "vat_pct"),
    ({"power": {"tariff_pln_per_kwh": -0.5}}, "power.tariff_pln_per_kwh"),
    ({"labor": {"hour_rate_pln": float("nan")}}, "labor.hour_rate_pln"),
])
def test_invalid_rates_rejected(pricing, path):
    with pytest.raises(ConfigError, match=path):
        calculate_print_price(
            PricingParams("PLA", "White", 50, 2), materials=MATERIALS, printer=PRINTER, pricing=pricing
        )


def test_material_catalog_listings():
    assert MATERIALS.materials() == ["ABS", "PETG", "PLA"]
    assert "White" in MATERIALS.available_colors("PLA")
    assert MATERIALS.available_colors("Nylon") == []


def test_material_catalog_rejects_bad_rows():
    with pytest.raises(ConfigError):
        MaterialCatalog.from_dict({"PLA": {"White": "cheap"}})
    with pytest.raises(ConfigError):
        MaterialCatalog.from_dict({})


# ---------- printer catalog ----------
def _row(pid, name, **kw):
    row = {"id": pid, "name": name, "power_watts": 350, "cost_pln": 5000, "lifespan_hours": 10000}
    row.update(kw)
    return row


def test_default_printer_from_builtin_catalog():
    spec = PrinterCatalog.from_rows(DEFAULT_PRINTERS).get_printer_specs()
    assert spec == PRINTER


def test_flagged_default_wins():
    cat = PrinterCatalog.from_rows([_row("a", "Alpha"), _row("b", "Beta", is_default=True)])
    assert cat.get_default_printer().id == "b"


def test_fallback_to_first_operational_by_name():
    cat = PrinterCatalog.from_rows([
        _row("z", "Zeta"),
        _row("m", "Mu", is_default=True, status="maintenance"),
        _row("a", "Alpha", is_active=False),
        _row("g", "Gamma"),
    ])
    assert cat.get_default_printer().id == "g"


def test_no_operational_printer_fails_explicitly():
    cat = PrinterCatalog.from_rows([_row("x", "X", status="offline")])
    with pytest.raises(NoOperationalPrinterError):
        cat.get_printer_specs()


def test_printer_by_id_and_missing_id():
    cat = PrinterCatalog.from_rows([_row("p1", "P1", maintenance_rate=0.05)])
    spec = cat.get_printer_specs("p1")
    assert spec.power_kw == pytest.approx(0.35)
    assert spec.maintenance_rate == 0.05
    with pytest.raises(PrinterNotFoundError, match="nope"):
        cat.get_printer_specs("nope")


def test_printer_row_defaults_and_validation():
    cat = PrinterCatalog.from_rows([_row("p1", "P1")])
    assert cat.printers[0].maintenance_rate == 0.03
    with pytest.raises(ConfigError, match="lifespan_hours"):
        PrinterCatalog.from_rows([_row("p2", "P2", lifespan_hours=0)])
    with pytest.raises(ConfigError, match="status"):
        PrinterCatalog.from_rows([_row("p3", "P3", status="broken")])
    with pytest.raises(ConfigError, match="missing"):
        PrinterCatalog.from_rows([{"id": "p4"}])


@pytest.mark.parametrize("field, value", [
    ("power_watts", -270),
    ("power_watts", "lots"),
    ("cost_pln", -1),
    ("cost_pln", None),
    ("maintenance_rate", -0.03),
    ("lifespan_hours", "forever"),
])
def test_printer_row_rejects_negative_or_non_numeric(field, value):
    with pytest.raises(ConfigError, match=field):
        PrinterCatalog.from_rows([_row("bad", "Bad", **{field: value})])


@pytest.mark.parametrize("kwargs, field", [
    (dict(power_kw=-0.27, cost_pln=100, lifespan_hours=5000), "power_kw"),
    (dict(power_kw=0.27, cost_pln=-100, lifespan_hours=5000), "cost_pln"),
    (dict(power_kw=0.27, cost_pln=100, lifespan_hours=0), "lifespan_hours"),
    (dict(power_kw=0.27, cost_pln=100, lifespan_hours=5000, maintenance_rate=-1), "maintenance_rate"),
])
def test_printer_spec_rejects_invalid_values(kwargs, field):
    with pytest.raises(ConfigError, match=field):
        PrinterSpec(**kwargs)
