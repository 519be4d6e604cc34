"""Tariff loading, lookup and time-of-day rate resolution."""

import logging
import os
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable

import yaml

from .models import (
    BILLING_UNITS,
    CATEGORIES,
    FUEL_KINDS,
    NORMAL,
    ConsumptionPattern,
    ConsumptionProfile,
    ExampleScenario,
    FuelAdjustment,
    PowerFactorPenalty,
    TariffSchedule,
    TimeSlot,
)

logger = logging.getLogger(__name__)

BUNDLED_CONFIG_PATH = Path(__file__).parent / "data" / "tariffs.yaml"
CONFIG_ENV_VAR = "DCTARIFF_CONFIG"
DEFAULT_STATE_ENV_VAR = "DCTARIFF_DEFAULT_STATE"


class TariffConfigError(Exception):
    """Raised when a tariff catalog file is malformed."""
    pass


class TariffRegistry:
    """Read-only catalog of tariff schedules keyed by state code.

    Lookups never fail: an unknown state resolves to the default schedule so
    that interactive callers can explore freely.
    """

    def __init__(self, schedules: Iterable[TariffSchedule], default_state: str | None = None):
        ordered = tuple(schedules)
        if not ordered:
            raise ValueError("A tariff registry needs at least one schedule")

        self._schedules = MappingProxyType({s.state_code: s for s in ordered})
        self._ordered = tuple(self._schedules.values())

        default = self._find(default_state) if default_state else None
        if default_state and default is None:
            logger.warning("Default state %r not in catalog, using %s", default_state, ordered[0].state)
        self._default = default or ordered[0]

    def _find(self, state_name: str) -> TariffSchedule | None:
        key = state_name.strip().lower()
        for schedule in self._ordered:
            if key in (schedule.state.lower(), schedule.state_code.lower()):
                return schedule
        return None

    @property
    def default(self) -> TariffSchedule:
        return self._default

    @property
    def schedules(self) -> MappingProxyType:
        return self._schedules

    def get_schedule(self, state_name: str | None) -> TariffSchedule:
        """Get the schedule for a state name or code, or the default schedule."""
        schedule = self._find(state_name) if state_name else None
        if schedule is None:
            logger.debug("No tariff for %r, falling back to %s", state_name, self._default.state)
            return self._default
        return schedule

    def list_states(self) -> tuple[TariffSchedule, ...]:
        """All schedules in declaration order."""
        return self._ordered

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, state_name: str) -> bool:
        return self._find(state_name) is not None


def effective_rate(base_rate: float, slot: TimeSlot) -> float:
    """Apply a slot's multiplier, then its adder, to a base rate."""
    return base_rate * slot.rate_multiplier + slot.rate_adder


def slot_for_hour(schedule: TariffSchedule, hour: int) -> TimeSlot | None:
    """Get the first slot whose range contains the hour, if any."""
    for slot in schedule.time_slots:
        if slot.contains(hour):
            return slot
    return None


def rate_for_hour(schedule: TariffSchedule, hour: int) -> tuple[str, float]:
    """Get the (category, rate) in force at an hour.

    Hours not covered by any slot are billed as normal at the base rate.
    """
    slot = slot_for_hour(schedule, hour)
    if slot is None:
        return NORMAL, schedule.base_energy_rate
    return slot.category, effective_rate(schedule.base_energy_rate, slot)


def validate_slot_coverage(schedule: TariffSchedule) -> list[str]:
    """Check that a schedule's slots partition the day.

    Returns a list of problems; empty when every hour is covered exactly once.
    """
    problems = []
    uncovered = []
    for hour in range(24):
        matching = [slot.name for slot in schedule.time_slots if slot.contains(hour)]
        if not matching:
            uncovered.append(hour)
        elif len(matching) > 1:
            problems.append(f"hour {hour:02d} is covered by {', '.join(matching)}")
    if uncovered:
        hours = ", ".join(f"{h:02d}" for h in uncovered)
        problems.insert(0, f"hours not covered by any slot: {hours}")
    return problems


def get_config_path(config_path: Path | None = None) -> Path:
    """Find the tariff catalog file.

    An explicit path wins, then $DCTARIFF_CONFIG, then ./config/tariffs.yaml,
    then the catalog bundled with the package.
    """
    if config_path:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    local = Path.cwd() / "config" / "tariffs.yaml"
    if local.exists():
        return local
    return BUNDLED_CONFIG_PATH


def _read_yaml(config_path: Path | None) -> dict:
    path = get_config_path(config_path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise TariffConfigError(f"Could not read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise TariffConfigError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise TariffConfigError(f"{path} does not contain a tariff catalog")
    logger.info("Loaded tariff catalog from %s", path)
    return data


def _parse_slot(state: str, raw: dict[str, Any]) -> TimeSlot:
    slot = TimeSlot(
        name=raw["name"],
        start_hour=int(raw["start"]),
        end_hour=int(raw["end"]),
        category=raw["category"],
        rate_multiplier=float(raw.get("multiplier", 1.0)),
        rate_adder=float(raw.get("adder", 0.0)),
    )
    if slot.category not in CATEGORIES:
        raise TariffConfigError(f"{state}: slot {slot.name!r} has unknown category {slot.category!r}")
    if not 0 <= slot.start_hour < 24 or not 0 <= slot.end_hour <= 24:
        raise TariffConfigError(
            f"{state}: slot {slot.name!r} hours {slot.start_hour}-{slot.end_hour} out of range"
        )
    return slot


def parse_schedule(raw: dict[str, Any]) -> TariffSchedule:
    """Build a TariffSchedule from one catalog entry."""
    state = raw.get("state", "<unnamed>")
    try:
        fuel = raw.get("fuel_adjustment") or {}
        penalty = raw["power_factor_penalty"]
        schedule = TariffSchedule(
            state=raw["state"],
            state_code=raw["code"],
            utility=raw["utility"],
            category=raw["category"],
            billing_unit=raw.get("billing_unit", "kWh"),
            base_energy_rate=float(raw["base_energy_rate"]),
            demand_charge=float(raw["demand_charge"]),
            time_slots=tuple(_parse_slot(state, s) for s in raw.get("time_slots") or []),
            fuel_adjustment=FuelAdjustment(
                amount=float(fuel.get("amount", 0.0)),
                kind=fuel.get("kind", "absolute"),
            ),
            electricity_duty_rate=float(raw["electricity_duty_rate"]),
            power_factor_penalty=PowerFactorPenalty(
                threshold=float(penalty["threshold"]),
                rate=float(penalty["rate"]),
            ),
            dg_rate=float(raw["dg_rate"]),
            wheeling_charge=float(raw.get("wheeling_charge", 0.0)),
            demand_billing_rule=raw.get("demand_billing_rule") or "",
            notes=(raw.get("notes") or "").strip(),
        )
    except KeyError as e:
        raise TariffConfigError(f"{state}: missing field {e.args[0]!r}") from e
    except (TypeError, ValueError, AttributeError) as e:
        raise TariffConfigError(f"{state}: {e}") from e

    if schedule.billing_unit not in BILLING_UNITS:
        raise TariffConfigError(f"{state}: unknown billing unit {schedule.billing_unit!r}")
    if schedule.fuel_adjustment.kind not in FUEL_KINDS:
        raise TariffConfigError(f"{state}: unknown fuel adjustment kind {schedule.fuel_adjustment.kind!r}")
    return schedule


def load_schedules_from_yaml(config_path: Path | None = None, validate: bool = True) -> list[TariffSchedule]:
    """Load tariff schedules from a YAML catalog.

    With validate=True, every schedule's slots must cover each hour of the day
    exactly once.
    """
    data = _read_yaml(config_path)
    schedules = [parse_schedule(t) for t in data.get("tariffs") or []]

    seen = set()
    for schedule in schedules:
        if schedule.state_code in seen:
            raise TariffConfigError(f"{schedule.state}: duplicate state code {schedule.state_code!r}")
        seen.add(schedule.state_code)

    if validate:
        for schedule in schedules:
            problems = validate_slot_coverage(schedule)
            if problems:
                raise TariffConfigError(f"{schedule.state}: " + "; ".join(problems))
    return schedules


def parse_profile(raw: dict[str, Any]) -> ConsumptionProfile:
    """Build a ConsumptionProfile from a catalog or CLI mapping."""
    pattern = raw.get("pattern") or {}
    return ConsumptionProfile(
        it_load_kwh=float(raw["it_load_kwh"]),
        pue=float(raw.get("pue", 1.0)),
        contracted_demand_kva=float(raw["contracted_demand_kva"]),
        recorded_demand_kva=float(raw["recorded_demand_kva"]),
        power_factor=float(raw["power_factor"]),
        dg_consumption_kwh=float(raw.get("dg_consumption_kwh", 0.0)),
        pattern=ConsumptionPattern(
            peak_percent=float(pattern.get("peak", 0.0)),
            normal_percent=float(pattern.get("normal", 0.0)),
            off_peak_percent=float(pattern.get("off_peak", 0.0)),
        ),
    )


def load_scenarios_from_yaml(config_path: Path | None = None) -> list[ExampleScenario]:
    """Load the example facilities listed alongside the tariffs."""
    data = _read_yaml(config_path)
    scenarios = []
    for s in data.get("scenarios") or []:
        try:
            scenarios.append(
                ExampleScenario(
                    name=s["name"],
                    description=(s.get("description") or "").strip(),
                    state=s["state"],
                    profile=parse_profile(s["profile"]),
                )
            )
        except KeyError as e:
            raise TariffConfigError(f"scenario {s.get('name', '<unnamed>')!r}: missing field {e.args[0]!r}") from e
        except (TypeError, ValueError, AttributeError) as e:
            raise TariffConfigError(f"scenario {s.get('name', '<unnamed>')!r}: {e}") from e
    return scenarios


def build_registry(config_path: Path | None = None) -> TariffRegistry:
    """Load a catalog file into a registry, honouring $DCTARIFF_DEFAULT_STATE."""
    schedules = load_schedules_from_yaml(config_path)
    return TariffRegistry(schedules, default_state=os.environ.get(DEFAULT_STATE_ENV_VAR))


@lru_cache(maxsize=None)
def get_registry() -> TariffRegistry:
    """Get the process-wide registry, built once from the resolved catalog."""
    return build_registry()
