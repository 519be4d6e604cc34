"""Hourly load-curve analysis against a tariff's time-of-day slots."""

from dataclasses import dataclass
from typing import Sequence

from ..models import NORMAL, OFF_PEAK, PEAK, ConsumptionPattern, TariffSchedule, TimeSlot
from ..tariffs import rate_for_hour, slot_for_hour

HOURS_PER_DAY = 24

# Typical data center day, relative load per hour (00:00 first)
DEFAULT_HOURLY_CURVE = [
    46, 43, 40, 38, 37, 36, 35, 36, 38, 42, 45, 49,
    53, 57, 61, 66, 72, 78, 84, 81, 78, 72, 65, 55,
]


@dataclass(frozen=True)
class HourClassification:
    """The slot, category and rate in force for one hour of the day."""

    hour: int
    slot: TimeSlot | None
    category: str
    rate: float

    @property
    def slot_name(self) -> str:
        return self.slot.name if self.slot else "Unscheduled"


@dataclass(frozen=True)
class HourlyCost:
    """Energy cost for one hour of a load curve."""

    hour: int
    category: str
    rate: float
    kwh: float
    cost: float


def classify_hours(schedule: TariffSchedule) -> list[HourClassification]:
    """Classify each hour of the day by slot. Unscheduled hours are normal."""
    rows = []
    for hour in range(HOURS_PER_DAY):
        category, rate = rate_for_hour(schedule, hour)
        rows.append(HourClassification(hour, slot_for_hour(schedule, hour), category, rate))
    return rows


def _check_curve(hourly_kwh: Sequence[float]) -> None:
    if len(hourly_kwh) != HOURS_PER_DAY:
        raise ValueError(f"Expected {HOURS_PER_DAY} hourly values, got {len(hourly_kwh)}")


def pattern_from_hourly(schedule: TariffSchedule, hourly_kwh: Sequence[float]) -> ConsumptionPattern:
    """Derive the peak/normal/off-peak split of a 24-hour load curve.

    An all-zero curve is treated as entirely normal.
    """
    _check_curve(hourly_kwh)

    buckets = {PEAK: 0.0, NORMAL: 0.0, OFF_PEAK: 0.0}
    for row, kwh in zip(classify_hours(schedule), hourly_kwh):
        buckets[row.category] += kwh

    total = sum(buckets.values())
    if total == 0:
        return ConsumptionPattern(peak_percent=0.0, normal_percent=100.0, off_peak_percent=0.0)

    return ConsumptionPattern(
        peak_percent=buckets[PEAK] / total * 100,
        normal_percent=buckets[NORMAL] / total * 100,
        off_peak_percent=buckets[OFF_PEAK] / total * 100,
    )


def hourly_costs(schedule: TariffSchedule, hourly_kwh: Sequence[float]) -> list[HourlyCost]:
    """Price each hour of a load curve at the rate in force for that hour."""
    _check_curve(hourly_kwh)
    return [
        HourlyCost(row.hour, row.category, row.rate, kwh, kwh * row.rate)
        for row, kwh in zip(classify_hours(schedule), hourly_kwh)
    ]
