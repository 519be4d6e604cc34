"""Shared fixtures for tariff and billing tests."""

import pytest
import yaml

from dctariff.models import (
    KWH,
    ConsumptionPattern,
    ConsumptionProfile,
    FuelAdjustment,
    PowerFactorPenalty,
    TariffSchedule,
    TimeSlot,
)


@pytest.fixture
def karnataka_like():
    """Flat 6.60 base rate with a +1.00 peak adder and a -1.00 night rebate."""
    return TariffSchedule(
        state="Karnataka",
        state_code="KA",
        utility="BESCOM / KERC",
        category="HT Industrial",
        billing_unit=KWH,
        base_energy_rate=6.60,
        demand_charge=350,
        time_slots=(
            TimeSlot("Night Incentive", 22, 6, "off-peak", rate_adder=-1.0),
            TimeSlot("Normal", 6, 18, "normal"),
            TimeSlot("Evening Peak", 18, 22, "peak", rate_adder=1.0),
        ),
        fuel_adjustment=FuelAdjustment(0.10, "absolute"),
        electricity_duty_rate=0.06,
        power_factor_penalty=PowerFactorPenalty(threshold=0.90, rate=0.15),
        dg_rate=20.0,
    )


@pytest.fixture
def facility():
    """100 MWh a month, 25/50/25 split, 500 kVA, good power factor, no DG."""
    return ConsumptionProfile(
        it_load_kwh=100_000,
        contracted_demand_kva=500,
        recorded_demand_kva=500,
        power_factor=0.96,
        pattern=ConsumptionPattern(25, 50, 25),
    )


@pytest.fixture
def catalog_entry():
    """A catalog record as it appears in tariffs.yaml."""
    return {
        "state": "Karnataka",
        "code": "KA",
        "utility": "BESCOM / KERC",
        "category": "HT Industrial",
        "billing_unit": "kWh",
        "base_energy_rate": 6.60,
        "demand_charge": 350,
        "time_slots": [
            {"name": "Night Incentive", "start": 22, "end": 6, "category": "off-peak", "adder": -1.0},
            {"name": "Normal", "start": 6, "end": 18, "category": "normal"},
            {"name": "Evening Peak", "start": 18, "end": 22, "category": "peak", "adder": 1.0},
        ],
        "fuel_adjustment": {"amount": 0.10, "kind": "absolute"},
        "electricity_duty_rate": 0.06,
        "power_factor_penalty": {"threshold": 0.90, "rate": 0.15},
        "dg_rate": 20.0,
    }


@pytest.fixture
def write_catalog(tmp_path):
    """Write a tariffs.yaml into tmp_path and return its path."""

    def _write(tariffs, scenarios=None):
        path = tmp_path / "tariffs.yaml"
        data = {"tariffs": tariffs}
        if scenarios is not None:
            data["scenarios"] = scenarios
        path.write_text(yaml.safe_dump(data))
        return path

    return _write
