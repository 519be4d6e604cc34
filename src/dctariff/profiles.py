"""Helpers for building consumption profiles from interactive inputs."""

import math

from .models import CATEGORIES, ConsumptionPattern

PATTERN_FIELDS = ("peak_percent", "normal_percent", "off_peak_percent")
CATEGORY_FIELDS = dict(zip(CATEGORIES, PATTERN_FIELDS))

# The engine divides by power factor for kVAh tariffs, so callers floor it
MIN_POWER_FACTOR = 0.5


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def clamp_power_factor(power_factor: float, floor: float = MIN_POWER_FACTOR) -> float:
    """Constrain a power factor to [floor, 1]."""
    return _clamp(power_factor, floor, 1.0)


def rebalance_pattern(pattern: ConsumptionPattern, field: str, value: float) -> ConsumptionPattern:
    """Set one category's share and spread the remainder over the other two.

    The other two keep their relative proportions (rounded to whole percent),
    or split the remainder equally when both are zero.
    """
    if field not in PATTERN_FIELDS:
        raise ValueError(f"Unknown pattern field: {field}")

    value = _clamp(value, 0, 100)
    remaining = 100 - value
    first, second = [f for f in PATTERN_FIELDS if f != field]
    current_first = getattr(pattern, first)
    current_second = getattr(pattern, second)
    other_sum = current_first + current_second

    if other_sum == 0:
        shares = {first: remaining / 2, second: remaining / 2}
    else:
        shares = {
            first: _round_half_up(remaining * current_first / other_sum),
            second: _round_half_up(remaining * current_second / other_sum),
        }
    shares[field] = value
    return ConsumptionPattern(**shares)


def shift_peak_bias(pattern: ConsumptionPattern, bias: float) -> ConsumptionPattern:
    """Move load into (positive bias) or out of (negative bias) peak hours.

    Off-peak gives up 0.6 points for every point peak gains. Peak stays within
    12-70%, off-peak within 8-45% and normal keeps at least 5% before the
    split is re-normalized to whole percentages summing to 100.
    """
    raw_peak = _clamp(pattern.peak_percent + bias, 12, 70)
    raw_off_peak = _clamp(pattern.off_peak_percent - _round_half_up(bias * 0.6), 8, 45)
    raw_normal = max(5, 100 - raw_peak - raw_off_peak)
    total = raw_peak + raw_normal + raw_off_peak

    peak = _round_half_up(raw_peak / total * 100)
    normal = _round_half_up(raw_normal / total * 100)
    return ConsumptionPattern(
        peak_percent=peak,
        normal_percent=normal,
        off_peak_percent=100 - peak - normal,
    )
