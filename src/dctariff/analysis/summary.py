"""Generate JSON-friendly and text summaries of bill estimates."""

from ..billing import SLOT_WEIGHTING, calculate_bill
from ..formatting import format_inr, format_number
from ..models import BillBreakdown, ConsumptionProfile, TariffSchedule
from ..tariffs import TariffRegistry


def bill_to_dict(schedule: TariffSchedule, profile: ConsumptionProfile, bill: BillBreakdown) -> dict:
    """Summarize a bill with its inputs, rounded for display."""
    return {
        "state": schedule.state,
        "state_code": schedule.state_code,
        "utility": schedule.utility,
        "billing_unit": bill.billing_unit,
        "consumption": {
            "it_load_kwh": round(profile.it_load_kwh, 2),
            "pue": profile.pue,
            "raw_kwh": round(bill.raw_consumption, 2),
            "billed_units": round(bill.billed_consumption, 2),
            "dg_kwh": round(profile.dg_consumption_kwh, 2),
        },
        "pattern": {
            "peak_percent": profile.pattern.peak_percent,
            "normal_percent": profile.pattern.normal_percent,
            "off_peak_percent": profile.pattern.off_peak_percent,
        },
        "demand": {
            "contracted_kva": profile.contracted_demand_kva,
            "recorded_kva": profile.recorded_demand_kva,
            "billed_kva": bill.billed_demand,
        },
        "power_factor": profile.power_factor,
        "charges": {
            "energy": {
                "peak": round(bill.energy_charges.peak, 2),
                "normal": round(bill.energy_charges.normal, 2),
                "off_peak": round(bill.energy_charges.off_peak, 2),
                "total": round(bill.energy_charges.total, 2),
            },
            "wheeling": round(bill.wheeling_charges, 2),
            "demand": round(bill.demand_charges, 2),
            "fuel_adjustment": round(bill.fuel_adjustment, 2),
            "power_factor_penalty": round(bill.power_factor_penalty, 2),
            "dg": round(bill.dg_charges, 2),
            "electricity_duty": round(bill.electricity_duty, 2),
        },
        "subtotal": round(bill.subtotal, 2),
        "tax": round(bill.tax, 2),
        "total": round(bill.total, 2),
        "effective_rate": round(bill.effective_rate, 4),
    }


def compare_states(
    registry: TariffRegistry,
    profile: ConsumptionProfile,
    rate_weighting: str = SLOT_WEIGHTING,
) -> list[tuple[TariffSchedule, BillBreakdown]]:
    """Estimate the same facility's bill in every state, cheapest first."""
    results = [
        (schedule, calculate_bill(schedule, profile, rate_weighting))
        for schedule in registry.list_states()
    ]
    return sorted(results, key=lambda item: item[1].total)


def format_bill_text(summary: dict) -> str:
    """Format a bill summary as human-readable text."""
    charges = summary["charges"]
    energy = charges["energy"]
    unit = summary["billing_unit"]
    lines = [
        f"Bill estimate for {summary['state']} ({summary['utility']})",
        f"- Facility consumption: {format_number(summary['consumption']['raw_kwh'])} kWh "
        f"(IT load x PUE {summary['consumption']['pue']})",
        f"- Billed volume: {format_number(summary['consumption']['billed_units'])} {unit}",
        f"- Billed demand: {format_number(summary['demand']['billed_kva'])} kVA",
        "",
        "Charges:",
        f"  - Energy: {format_inr(energy['total'])} "
        f"(peak {format_inr(energy['peak'])}, normal {format_inr(energy['normal'])}, "
        f"off-peak {format_inr(energy['off_peak'])})",
        f"  - Demand: {format_inr(charges['demand'])}",
    ]

    if charges["wheeling"]:
        lines.append(f"  - Wheeling: {format_inr(charges['wheeling'])}")

    lines.append(f"  - Fuel adjustment: {format_inr(charges['fuel_adjustment'])}")

    if charges["power_factor_penalty"]:
        lines.append(
            f"  - Power factor penalty: {format_inr(charges['power_factor_penalty'])} "
            f"(PF {summary['power_factor']})"
        )

    if charges["dg"]:
        lines.append(f"  - DG: {format_inr(charges['dg'])}")

    lines.extend([
        f"  - Electricity duty: {format_inr(charges['electricity_duty'])}",
        "",
        f"Subtotal: {format_inr(summary['subtotal'])}",
        f"GST (18%): {format_inr(summary['tax'])}",
        f"Total: {format_inr(summary['total'])}",
        f"Effective rate: ₹{summary['effective_rate']:.2f}/kWh",
    ])

    return "\n".join(lines)
