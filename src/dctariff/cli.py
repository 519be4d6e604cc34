"""Command-line interface for data center tariff estimates."""

import json
import logging
import math
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .analysis import hourly, summary
from .billing import DURATION_WEIGHTING, SLOT_WEIGHTING, calculate_bill
from .formatting import format_inr, format_inr_compact, format_number, format_rate
from .models import PERCENTAGE, ConsumptionPattern, ConsumptionProfile
from .profiles import CATEGORY_FIELDS, clamp_power_factor, rebalance_pattern, shift_peak_bias
from .tariffs import (
    TariffConfigError,
    build_registry,
    effective_rate,
    get_registry,
    load_scenarios_from_yaml,
    slot_for_hour,
)

console = Console()
err_console = Console(stderr=True)

CATEGORY_STYLES = {"peak": "red", "normal": "white", "off-peak": "blue"}


@click.group()
@click.option("--config", type=click.Path(exists=True, dir_okay=False), help="Path to tariffs.yaml")
@click.option("--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config, verbose):
    """Data center electricity bill estimates for Indian state tariffs."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


def load_registry(ctx):
    """Get the registry for this invocation, exiting cleanly on a bad catalog."""
    config_path = ctx.obj["config_path"]
    try:
        return build_registry(config_path) if config_path else get_registry()
    except TariffConfigError as e:
        console.print(f"[red]Invalid tariff catalog: {escape(str(e))}[/red]")
        ctx.exit(1)


def resolve_schedule(registry, state):
    schedule = registry.get_schedule(state)
    if state not in registry:
        err_console.print(f"[yellow]No tariff for {state!r}, showing {schedule.state}[/yellow]")
    return schedule


def parse_overrides(ctx, param, value):
    """Turn repeated CATEGORY=PERCENT options into (pattern field, percent) pairs."""
    overrides = []
    for item in value:
        category, sep, percent = item.partition("=")
        field = CATEGORY_FIELDS.get(category.strip().lower().replace("_", "-"))
        if not sep or field is None:
            raise click.BadParameter(f"expected peak=N, normal=N or off-peak=N, got {item!r}")
        try:
            overrides.append((field, float(percent)))
        except ValueError:
            raise click.BadParameter(f"{percent!r} is not a number") from None
    return overrides


def profile_options(f):
    """Attach the facility profile options shared by bill and compare."""
    options = [
        click.option("--it-load", type=click.FloatRange(min=0), default=100000, show_default=True,
                     help="Monthly IT load (kWh)"),
        click.option("--pue", type=click.FloatRange(1.0, 3.0), default=1.6, show_default=True,
                     help="Power usage effectiveness"),
        click.option("--contracted", type=click.FloatRange(min=0), default=250, show_default=True,
                     help="Contracted demand (kVA)"),
        click.option("--recorded", type=click.FloatRange(min=0), default=240, show_default=True,
                     help="Recorded maximum demand (kVA)"),
        click.option("--pf", "power_factor", type=click.FloatRange(0, 1.0), default=0.95,
                     show_default=True, help="Average power factor (floored at 0.5)"),
        click.option("--dg", type=click.FloatRange(min=0), default=2000, show_default=True,
                     help="DG consumption (kWh)"),
        click.option("--peak", type=click.FloatRange(0, 100), default=35, show_default=True,
                     help="Share of consumption in peak hours (%)"),
        click.option("--normal", type=click.FloatRange(0, 100), default=40, show_default=True,
                     help="Share of consumption in normal hours (%)"),
        click.option("--off-peak", type=click.FloatRange(0, 100), default=25, show_default=True,
                     help="Share of consumption in off-peak hours (%)"),
        click.option("--set", "overrides", multiple=True, metavar="CATEGORY=PERCENT", callback=parse_overrides,
                     help="Set one share and rebalance the other two (repeatable)"),
        click.option("--peak-bias", type=float, default=0, help="Shift load into (+) or out of (-) peak hours"),
        click.option("--weighting", type=click.Choice([SLOT_WEIGHTING, DURATION_WEIGHTING]),
                     default=SLOT_WEIGHTING, show_default=True, help="How slot rates are averaged per category"),
        click.option("--json", "as_json", is_flag=True, help="Output as JSON"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_profile(it_load, pue, contracted, recorded, power_factor, dg, peak, normal, off_peak,
                  overrides, peak_bias):
    pattern = ConsumptionPattern(peak_percent=peak, normal_percent=normal, off_peak_percent=off_peak)
    for field, percent in overrides:
        pattern = rebalance_pattern(pattern, field, percent)
    if peak_bias:
        pattern = shift_peak_bias(pattern, peak_bias)
    if not math.isclose(pattern.total, 100):
        err_console.print(f"[yellow]Consumption pattern sums to {pattern.total:g}%, not 100%[/yellow]")

    floored = clamp_power_factor(power_factor)
    if floored != power_factor:
        err_console.print(f"[yellow]Power factor {power_factor:g} raised to {floored:g}[/yellow]")

    return ConsumptionProfile(
        it_load_kwh=it_load,
        pue=pue,
        contracted_demand_kva=contracted,
        recorded_demand_kva=recorded,
        power_factor=floored,
        dg_consumption_kwh=dg,
        pattern=pattern,
    )


def print_bill(data: dict, as_json: bool):
    if as_json:
        click.echo(json.dumps(data, indent=2))
    else:
        console.print(summary.format_bill_text(data))


# Tariff commands
@cli.command()
@click.pass_context
def states(ctx):
    """List available state tariffs."""
    registry = load_registry(ctx)

    table = Table(title="State Tariffs")
    table.add_column("Code", style="cyan")
    table.add_column("State")
    table.add_column("Utility", style="dim")
    table.add_column("Unit")
    table.add_column("Base Rate", justify="right")
    table.add_column("Demand", justify="right")
    table.add_column("Duty", justify="right")

    for schedule in registry.list_states():
        table.add_row(
            schedule.state_code,
            schedule.state,
            schedule.utility,
            schedule.billing_unit,
            f"₹{schedule.base_energy_rate:.2f}",
            f"₹{schedule.demand_charge:g}/kVA",
            f"{schedule.electricity_duty_rate * 100:g}%",
        )

    console.print(table)


@cli.command()
@click.argument("state")
@click.pass_context
def show(ctx, state):
    """Show a state's time-of-day slots and charges."""
    schedule = resolve_schedule(load_registry(ctx), state)
    unit = schedule.billing_unit

    table = Table(title=f"{schedule.state} - {schedule.utility} ({schedule.category})")
    table.add_column("Slot", style="cyan")
    table.add_column("Hours")
    table.add_column("Category")
    table.add_column("Adjustment", justify="right")
    table.add_column("Rate", justify="right")

    for slot in schedule.time_slots:
        adjustment = []
        if slot.rate_multiplier != 1.0:
            adjustment.append(f"{(slot.rate_multiplier - 1) * 100:+g}%")
        if slot.rate_adder:
            adjustment.append(f"{slot.rate_adder:+.2f}")
        style = CATEGORY_STYLES.get(slot.category, "white")
        table.add_row(
            slot.name,
            f"{slot.start_hour:02d}:00-{slot.end_hour:02d}:00",
            f"[{style}]{slot.category}[/{style}]",
            " ".join(adjustment) or "-",
            format_rate(effective_rate(schedule.base_energy_rate, slot), unit),
        )

    console.print(table)
    fuel = schedule.fuel_adjustment
    fuel_text = f"{fuel.amount:g}% of energy" if fuel.kind == PERCENTAGE else format_rate(fuel.amount, unit)
    console.print(f"Base energy rate: {format_rate(schedule.base_energy_rate, unit)}")
    if schedule.wheeling_charge:
        console.print(f"Wheeling: {format_rate(schedule.wheeling_charge, unit)}")
    console.print(f"Demand charge: ₹{schedule.demand_charge:g}/kVA/month")
    console.print(f"Fuel adjustment: {fuel_text}")
    console.print(f"Electricity duty: {schedule.electricity_duty_rate * 100:g}%")
    console.print(
        f"PF penalty: below {schedule.power_factor_penalty.threshold:g} "
        f"at ₹{schedule.power_factor_penalty.rate:g}"
    )
    console.print(f"DG rate: {format_rate(schedule.dg_rate)}")
    if schedule.demand_billing_rule:
        console.print(f"Demand billing rule: {schedule.demand_billing_rule}")
    if schedule.notes:
        console.print(f"\n[dim]{schedule.notes}[/dim]")


@cli.command()
@click.argument("state")
@click.option("--hour", type=click.IntRange(0, 23), required=True, help="Hour of day (0-23)")
@click.pass_context
def rate(ctx, state, hour):
    """Show the slot and rate in force at an hour of day."""
    schedule = resolve_schedule(load_registry(ctx), state)
    slot = slot_for_hour(schedule, hour)

    if slot is None:
        console.print(
            f"{hour:02d}:00 has no slot in {schedule.state}; "
            f"billed as normal at {format_rate(schedule.base_energy_rate, schedule.billing_unit)}"
        )
        return

    style = CATEGORY_STYLES.get(slot.category, "white")
    console.print(
        f"{hour:02d}:00 in {schedule.state}: {slot.name} "
        f"([{style}]{slot.category}[/{style}]) at "
        f"{format_rate(effective_rate(schedule.base_energy_rate, slot), schedule.billing_unit)}"
    )


# Bill commands
@cli.command()
@click.argument("state")
@profile_options
@click.pass_context
def bill(ctx, state, weighting, as_json, **profile_args):
    """Estimate a monthly bill for a facility in one state."""
    schedule = resolve_schedule(load_registry(ctx), state)
    profile = build_profile(**profile_args)
    breakdown = calculate_bill(schedule, profile, weighting)
    print_bill(summary.bill_to_dict(schedule, profile, breakdown), as_json)


@cli.command()
@profile_options
@click.pass_context
def compare(ctx, weighting, as_json, **profile_args):
    """Compare the same facility's bill across all states."""
    registry = load_registry(ctx)
    profile = build_profile(**profile_args)
    results = summary.compare_states(registry, profile, weighting)

    if as_json:
        data = [summary.bill_to_dict(schedule, profile, b) for schedule, b in results]
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title=f"Monthly bill for {format_number(profile.facility_consumption_kwh)} kWh")
    table.add_column("State", style="cyan")
    table.add_column("Unit")
    table.add_column("Energy", justify="right")
    table.add_column("Demand", justify="right")
    table.add_column("Total", justify="right", style="bold")
    table.add_column("Rate", justify="right")

    for schedule, b in results:
        table.add_row(
            schedule.state_code,
            b.billing_unit,
            format_inr_compact(b.energy_charges.total),
            format_inr_compact(b.demand_charges),
            format_inr_compact(b.total),
            f"₹{b.effective_rate:.2f}",
        )

    console.print(table)


@cli.command()
@click.pass_context
def scenarios(ctx):
    """List example facilities."""
    try:
        scenario_list = load_scenarios_from_yaml(ctx.obj["config_path"])
    except TariffConfigError as e:
        console.print(f"[red]Invalid tariff catalog: {escape(str(e))}[/red]")
        ctx.exit(1)

    if not scenario_list:
        console.print("[yellow]No scenarios found[/yellow]")
        return

    table = Table(title="Example Scenarios")
    table.add_column("Name", style="cyan")
    table.add_column("State")
    table.add_column("IT Load", justify="right")
    table.add_column("PUE", justify="right")
    table.add_column("Peak/Normal/Off", justify="right")

    for s in scenario_list:
        pattern = s.profile.pattern
        table.add_row(
            s.name,
            s.state,
            f"{format_number(s.profile.it_load_kwh)} kWh",
            f"{s.profile.pue:g}",
            f"{pattern.peak_percent:g}/{pattern.normal_percent:g}/{pattern.off_peak_percent:g}",
        )

    console.print(table)


@cli.command()
@click.argument("name")
@click.option("--peak-bias", type=float, default=0, help="Shift load into (+) or out of (-) peak hours")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def scenario(ctx, name, peak_bias, as_json):
    """Estimate the bill for an example facility (name or prefix)."""
    registry = load_registry(ctx)
    try:
        scenario_list = load_scenarios_from_yaml(ctx.obj["config_path"])
    except TariffConfigError as e:
        console.print(f"[red]Invalid tariff catalog: {escape(str(e))}[/red]")
        ctx.exit(1)

    key = name.lower()
    matches = [s for s in scenario_list if s.name.lower().startswith(key)]
    if not matches:
        console.print(f"[red]No scenario matching {name!r}[/red]")
        ctx.exit(1)

    chosen = matches[0]
    profile = chosen.profile
    if peak_bias:
        profile = replace(profile, pattern=shift_peak_bias(profile.pattern, peak_bias))
    schedule = registry.get_schedule(chosen.state)
    breakdown = calculate_bill(schedule, profile)
    if not as_json:
        console.print(f"[cyan]{chosen.name}[/cyan]: {chosen.description}\n")
    print_bill(summary.bill_to_dict(schedule, profile, breakdown), as_json)


@cli.command("hourly")
@click.argument("state")
@click.option("--curve", help="24 comma-separated hourly loads, 00:00 first")
@click.pass_context
def hourly_cmd(ctx, state, curve):
    """Classify a daily load curve by ToD slot and derive its split."""
    schedule = resolve_schedule(load_registry(ctx), state)
    try:
        values = [float(v) for v in curve.split(",")] if curve else hourly.DEFAULT_HOURLY_CURVE
        rows = hourly.hourly_costs(schedule, values)
        pattern = hourly.pattern_from_hourly(schedule, values)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    table = Table(title=f"Hourly profile - {schedule.state}")
    table.add_column("Hour", style="cyan")
    table.add_column("Category")
    table.add_column("Rate", justify="right")
    table.add_column("Load", justify="right")
    table.add_column("Cost", justify="right")

    for row in rows:
        style = CATEGORY_STYLES.get(row.category, "white")
        table.add_row(
            f"{row.hour:02d}:00",
            f"[{style}]{row.category}[/{style}]",
            f"₹{row.rate:.2f}",
            f"{row.kwh:g}",
            format_inr(row.cost),
        )

    console.print(table)
    console.print(
        f"Split: peak {pattern.peak_percent:.1f}%, normal {pattern.normal_percent:.1f}%, "
        f"off-peak {pattern.off_peak_percent:.1f}%"
    )


if __name__ == "__main__":
    cli()
