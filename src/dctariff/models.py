"""Data models for tariff schedules, consumption profiles and bills."""

from dataclasses import dataclass

PEAK = "peak"
NORMAL = "normal"
OFF_PEAK = "off-peak"
CATEGORIES = (PEAK, NORMAL, OFF_PEAK)

KWH = "kWh"
KVAH = "kVAh"
BILLING_UNITS = (KWH, KVAH)

ABSOLUTE = "absolute"
PERCENTAGE = "percentage"
FUEL_KINDS = (ABSOLUTE, PERCENTAGE)


@dataclass(frozen=True)
class TimeSlot:
    """An hour range within a day with its ToD rate adjustment."""

    name: str
    start_hour: int  # 0-23
    end_hour: int  # 0-24, exclusive; start >= end wraps past midnight
    category: str  # peak, normal or off-peak
    rate_multiplier: float = 1.0
    rate_adder: float = 0.0  # applied after the multiplier, negative for rebates

    @property
    def wraps(self) -> bool:
        return self.start_hour >= self.end_hour

    @property
    def hours(self) -> int:
        """Number of whole hours the slot covers."""
        if self.wraps:
            return 24 - self.start_hour + self.end_hour
        return self.end_hour - self.start_hour

    def contains(self, hour: int) -> bool:
        """Check if an hour of day falls within the slot (handles overnight slots)."""
        if not self.wraps:
            return self.start_hour <= hour < self.end_hour
        else:
            # Overnight slot (e.g., 22:00 to 06:00)
            return hour >= self.start_hour or hour < self.end_hour


@dataclass(frozen=True)
class FuelAdjustment:
    """Fuel and power purchase cost adjustment (FAC/FPPCA)."""

    amount: float
    kind: str = ABSOLUTE  # absolute: per billed unit, percentage: of energy charges


@dataclass(frozen=True)
class PowerFactorPenalty:
    """Penalty that applies when the facility power factor is below threshold."""

    threshold: float
    rate: float


@dataclass(frozen=True)
class TariffSchedule:
    """One state utility's HT rate card."""

    state: str
    state_code: str
    utility: str
    category: str
    billing_unit: str
    base_energy_rate: float  # per billing unit
    demand_charge: float  # per kVA per month
    time_slots: tuple[TimeSlot, ...]
    fuel_adjustment: FuelAdjustment
    electricity_duty_rate: float  # fraction of energy + wheeling + demand
    power_factor_penalty: PowerFactorPenalty
    dg_rate: float  # per kWh of DG energy
    wheeling_charge: float = 0.0  # per billing unit
    demand_billing_rule: str = ""
    notes: str = ""

    def slots_in_category(self, category: str) -> list[TimeSlot]:
        return [slot for slot in self.time_slots if slot.category == category]


@dataclass(frozen=True)
class ConsumptionPattern:
    """Share of monthly consumption falling in each ToD category, in percent."""

    peak_percent: float
    normal_percent: float
    off_peak_percent: float

    @property
    def total(self) -> float:
        return self.peak_percent + self.normal_percent + self.off_peak_percent

    def percent_for(self, category: str) -> float:
        if category == PEAK:
            return self.peak_percent
        if category == OFF_PEAK:
            return self.off_peak_percent
        return self.normal_percent


@dataclass(frozen=True)
class ConsumptionProfile:
    """A facility's monthly consumption and demand, as supplied by the caller."""

    it_load_kwh: float
    contracted_demand_kva: float
    recorded_demand_kva: float
    power_factor: float
    pattern: ConsumptionPattern
    pue: float = 1.0
    dg_consumption_kwh: float = 0.0

    @property
    def facility_consumption_kwh(self) -> float:
        """Total grid energy drawn by the facility (IT load scaled by PUE)."""
        return self.it_load_kwh * self.pue


@dataclass(frozen=True)
class EnergyCharges:
    """Energy charges split by ToD category."""

    peak: float
    normal: float
    off_peak: float
    total: float


@dataclass(frozen=True)
class BillBreakdown:
    """An itemized monthly bill estimate."""

    state_code: str
    billing_unit: str
    raw_consumption: float  # kWh
    billed_consumption: float  # in billing_unit
    billed_demand: float  # kVA
    energy_charges: EnergyCharges
    wheeling_charges: float
    demand_charges: float
    fuel_adjustment: float
    power_factor_penalty: float
    dg_charges: float
    electricity_duty: float
    subtotal: float
    tax: float
    total: float
    effective_rate: float  # per kWh of grid + DG energy


@dataclass(frozen=True)
class ExampleScenario:
    """A named demonstration facility."""

    name: str
    description: str
    state: str
    profile: ConsumptionProfile
