"""
esg_metrics/environment.py

Environmental (energy and GHG) metric formula implementation.

Expected inputs
---------------
resource_consumption : dict
    ``purchased`` rows (``quantity``, ``unit``, optional ``volume_kwh``,
    ``renewable``), ``fuels`` rows (``quantity``, ``unit``, ``fuel_type``,
    ``renewable``), ``self_generated`` rows (``self_consumed_kwh``,
    ``fuel_based``) and ``intensity_denominator``.
ghg : dict
    ``boundary``, ``equity_share_pct``, ``base_year``, ``target_year``,
    ``scope1_rows`` (``quantity``, ``ef_kg_per_unit``) and ``scope2_rows``
    (``quantity``, ``unit``, ``supplier_ef_kg_per_kwh``).

Formulas
--------
Energy MWh        = quantity converted from kWh / MWh / GJ / MJ
Fuel MWh          = quantity × NCV(kWh per unit) / 1000
Total Energy      = purchased + fuels + self-consumed generation
Renewable Share   = renewable MWh / total MWh × 100
Energy Intensity  = total MWh / intensity_denominator
Scope 1 tCO2e     = Σ quantity × ef_kg_per_unit / 1000
Scope 2 tCO2e     = Σ kWh × supplier_ef_kg_per_kwh / 1000
Equity Factor     = clamp(equity_share_pct, 0, 100) / 100 under equity share

Negative or non-finite quantities and unknown units convert to 0.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from esg_metrics.base import BaseMetricFormula
from esg_metrics.primitives import (
    is_set,
    mapping_rows,
    percentage,
    safe_divide,
    sum_fields,
    to_number,
)

ENERGY_TO_MWH: dict[str, float] = {
    "kWh": 1 / 1000,
    "MWh": 1.0,
    "GJ": 0.2777777778,
    "MJ": 0.0002777777778,
}

# Net calorific value, kWh released per unit of fuel.
NCV_KWH_PER_UNIT: dict[str, dict[str, float]] = {
    "diesel": {"L": 10.0},
    "petrol": {"L": 8.8},
    "kerosene": {"L": 9.6},
    "natural_gas": {"m3": 10.55},
    "LPG": {"kg": 13.6},
    "coal": {"t": 7000.0},
    "biomass": {"t": 4000.0},
    "biogas": {"m3": 6.0},
    "other": {},
}

EQUITY_SHARE_BOUNDARY = "Equity share"


class EnvironmentMetricFormula(BaseMetricFormula):
    """
    Deterministic energy and emissions metrics.

    All arithmetic is self-contained.  No I/O, no logging, no side effects.
    """

    section = "environment"

    def calculate(self, inputs: dict[str, Any]) -> dict[str, Any]:
        resources = _block(inputs, "resource_consumption")
        ghg = _block(inputs, "ghg")

        purchased = mapping_rows(resources.get("purchased"))
        fuels = mapping_rows(resources.get("fuels"))
        self_generated = mapping_rows(resources.get("self_generated"))

        purchased_mwh = [_purchased_row_mwh(row) for row in purchased]
        fuel_mwh = [_fuel_row_mwh(row) for row in fuels]
        self_generated_mwh = [to_number(row.get("self_consumed_kwh")) / 1000 for row in self_generated]
        total = sum_fields(*purchased_mwh, *fuel_mwh, *self_generated_mwh)

        renewable = sum_fields(
            *(mwh for row, mwh in zip(purchased, purchased_mwh) if _is_yes(row.get("renewable"))),
            *(mwh for row, mwh in zip(fuels, fuel_mwh) if _is_yes(row.get("renewable"))),
            *(
                mwh
                for row, mwh in zip(self_generated, self_generated_mwh)
                if not _is_yes(row.get("fuel_based"))
            ),
        )

        scope1 = scope1_total_tco2e(mapping_rows(ghg.get("scope1_rows")))
        scope2 = scope2_total_tco2e(mapping_rows(ghg.get("scope2_rows")))
        factor = equity_factor(ghg.get("boundary"), ghg.get("equity_share_pct"))

        return {
            "purchased_energy_mwh": sum_fields(*purchased_mwh),
            "fuel_energy_mwh": sum_fields(*fuel_mwh),
            "self_generated_energy_mwh": sum_fields(*self_generated_mwh),
            "total_energy_mwh": total,
            "renewable_energy_mwh": renewable,
            "renewable_energy_share": percentage(renewable, total),
            "energy_intensity": safe_divide(total, resources.get("intensity_denominator")),
            "scope1_tco2e": scope1,
            "scope2_tco2e": scope2,
            "equity_factor": factor,
            "scope1_scaled_tco2e": scope1 * factor,
            "scope2_scaled_tco2e": scope2 * factor,
            "target_year_invalid": not target_year_valid(ghg.get("base_year"), ghg.get("target_year")),
        }


# ---------------------------------------------------------------------------
# Energy conversions
# ---------------------------------------------------------------------------


def to_mwh_from_energy(quantity: Any, unit: str | None) -> float:
    """Convert an energy quantity in kWh, MWh, GJ or MJ to MWh."""
    value = _quantity(quantity)
    return value * ENERGY_TO_MWH.get(_key(unit), 0.0)


def to_kwh_from_energy(quantity: Any, unit: str | None) -> float:
    return to_mwh_from_energy(quantity, unit) * 1000


def fuel_to_mwh(quantity: Any, unit: str | None, fuel: str | None) -> float:
    """
    Convert a fuel quantity to MWh through its net calorific value.

    Returns 0 when the fuel/unit pair has no NCV entry.
    """
    kwh_per_unit = NCV_KWH_PER_UNIT.get(_key(fuel), {}).get(_key(unit))
    if not kwh_per_unit:
        return 0.0
    return _quantity(quantity) * kwh_per_unit / 1000


# ---------------------------------------------------------------------------
# Emissions
# ---------------------------------------------------------------------------


def scope1_row_tco2e(quantity: Any, ef_kg_per_unit: Any) -> float:
    """tCO2e = quantity × emission factor (kg CO2e per unit) / 1000."""
    return to_number(quantity) * to_number(ef_kg_per_unit) / 1000


def scope2_row_tco2e(quantity: Any, unit: str | None, ef_kg_per_kwh: Any) -> float:
    """tCO2e = kWh × supplier emission factor (kg CO2e per kWh) / 1000."""
    return to_kwh_from_energy(quantity, unit) * to_number(ef_kg_per_kwh) / 1000


def scope1_total_tco2e(rows: Iterable[Mapping[str, Any]]) -> float:
    return sum_fields(
        *(
            scope1_row_tco2e(r.get("quantity"), r.get("ef_kg_per_unit"))
            for r in mapping_rows(list(rows or []))
        )
    )


def scope2_total_tco2e(rows: Iterable[Mapping[str, Any]]) -> float:
    return sum_fields(
        *(
            scope2_row_tco2e(r.get("quantity"), r.get("unit"), r.get("supplier_ef_kg_per_kwh"))
            for r in mapping_rows(list(rows or []))
        )
    )


def equity_factor(boundary: str | None, equity_share_pct: Any) -> float:
    """
    Scaling factor for reported emissions.

    Under the equity-share boundary the percentage is clamped to
    ``[0, 100]`` and converted to a fraction; any other boundary is 1.
    """
    if boundary != EQUITY_SHARE_BOUNDARY:
        return 1.0
    return max(0.0, min(100.0, to_number(equity_share_pct))) / 100


def target_year_valid(base_year: Any, target_year: Any) -> bool:
    """A target year must come after the base year once both are entered."""
    if not (is_set(base_year) and is_set(target_year)):
        return True
    return to_number(target_year) > to_number(base_year)


def _quantity(quantity: Any) -> float:
    value = to_number(quantity)
    return value if value >= 0 else 0.0


def _purchased_row_mwh(row: Mapping[str, Any]) -> float:
    explicit = row.get("volume_kwh")
    if is_set(explicit):
        return to_number(explicit) / 1000
    return to_mwh_from_energy(row.get("quantity"), row.get("unit"))


def _fuel_row_mwh(row: Mapping[str, Any]) -> float:
    mwh = fuel_to_mwh(row.get("quantity"), row.get("unit"), row.get("fuel_type"))
    return mwh if math.isfinite(mwh) else 0.0


def _key(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _is_yes(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "yes"
    return value is True


def _block(inputs: Mapping[str, Any] | None, key: str) -> Mapping[str, Any]:
    value = (inputs or {}).get(key)
    return value if isinstance(value, Mapping) else {}
