"""Monthly bill estimation from a tariff schedule and a consumption profile.

The calculation is a pure function of its inputs. It does not validate them:
percentages that do not sum to 100, negative volumes or a zero power factor
all flow through the arithmetic as given, so what-if callers see whatever the
tariff would produce.
"""

import math

from .models import (
    KVAH,
    NORMAL,
    OFF_PEAK,
    PEAK,
    PERCENTAGE,
    BillBreakdown,
    ConsumptionProfile,
    EnergyCharges,
    TariffSchedule,
)
from .tariffs import effective_rate

TAX_RATE = 0.18  # GST on the whole electricity bill

SLOT_WEIGHTING = "slot"
DURATION_WEIGHTING = "duration"


def _divide(numerator: float, denominator: float) -> float:
    """Divide with IEEE semantics instead of raising on a zero denominator."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def billed_consumption(schedule: TariffSchedule, raw_consumption: float, power_factor: float) -> float:
    """Convert raw kWh to the schedule's billing unit.

    kVAh billing divides by power factor, so a poor power factor raises the
    billed volume as well as triggering the separate penalty.
    """
    if schedule.billing_unit == KVAH:
        return _divide(raw_consumption, power_factor)
    return raw_consumption


def category_average_rate(
    schedule: TariffSchedule, category: str, rate_weighting: str = SLOT_WEIGHTING
) -> float:
    """Average effective rate across a category's slots.

    The default averages slots equally regardless of length, so a 1-hour and a
    9-hour peak slot count the same. DURATION_WEIGHTING weights each slot by
    its hours instead. A category without slots is billed at the base rate.
    """
    slots = schedule.slots_in_category(category)
    if not slots:
        return schedule.base_energy_rate

    rates = [effective_rate(schedule.base_energy_rate, slot) for slot in slots]
    if rate_weighting == DURATION_WEIGHTING:
        hours = [slot.hours for slot in slots]
        return _divide(sum(r * h for r, h in zip(rates, hours)), sum(hours))
    if rate_weighting != SLOT_WEIGHTING:
        raise ValueError(f"Unknown rate weighting: {rate_weighting}")
    return sum(rates) / len(rates)


def calculate_bill(
    schedule: TariffSchedule,
    profile: ConsumptionProfile,
    rate_weighting: str = SLOT_WEIGHTING,
) -> BillBreakdown:
    """Estimate the monthly bill for a facility on a tariff schedule."""
    raw = profile.facility_consumption_kwh
    pf = profile.power_factor
    billed = billed_consumption(schedule, raw, pf)

    # Energy by ToD category
    charges = {}
    for category in (PEAK, NORMAL, OFF_PEAK):
        volume = billed * (profile.pattern.percent_for(category) / 100)
        charges[category] = volume * category_average_rate(schedule, category, rate_weighting)
    energy_total = charges[PEAK] + charges[NORMAL] + charges[OFF_PEAK]

    wheeling = billed * schedule.wheeling_charge

    # Demand ratchet rules in the schedule notes are not applied
    billed_demand = max(profile.contracted_demand_kva, profile.recorded_demand_kva)
    demand = billed_demand * schedule.demand_charge

    fuel = schedule.fuel_adjustment
    if fuel.kind == PERCENTAGE:
        fuel_adjustment = energy_total * (fuel.amount / 100)
    else:
        fuel_adjustment = billed * fuel.amount

    # Levied on raw kWh: one penalty rate for every 0.1 of PF below threshold
    penalty = schedule.power_factor_penalty
    pf_penalty = 0.0
    if pf < penalty.threshold:
        shortfall = (penalty.threshold - pf) * 100
        pf_penalty = raw * penalty.rate * (shortfall / 10)

    dg_charges = profile.dg_consumption_kwh * schedule.dg_rate

    duty = (energy_total + wheeling + demand) * schedule.electricity_duty_rate

    subtotal = energy_total + wheeling + demand + fuel_adjustment + pf_penalty + dg_charges + duty
    tax = subtotal * TAX_RATE
    total = subtotal + tax

    return BillBreakdown(
        state_code=schedule.state_code,
        billing_unit=schedule.billing_unit,
        raw_consumption=raw,
        billed_consumption=billed,
        billed_demand=billed_demand,
        energy_charges=EnergyCharges(
            peak=charges[PEAK],
            normal=charges[NORMAL],
            off_peak=charges[OFF_PEAK],
            total=energy_total,
        ),
        wheeling_charges=wheeling,
        demand_charges=demand,
        fuel_adjustment=fuel_adjustment,
        power_factor_penalty=pf_penalty,
        dg_charges=dg_charges,
        electricity_duty=duty,
        subtotal=subtotal,
        tax=tax,
        total=total,
        effective_rate=_divide(total, raw + profile.dg_consumption_kwh),
    )
