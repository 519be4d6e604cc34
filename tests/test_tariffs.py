from dataclasses import replace

import pytest

from dctariff.models import TimeSlot
from dctariff.tariffs import (
    BUNDLED_CONFIG_PATH,
    TariffConfigError,
    TariffRegistry,
    effective_rate,
    get_config_path,
    load_scenarios_from_yaml,
    load_schedules_from_yaml,
    rate_for_hour,
    slot_for_hour,
    validate_slot_coverage,
)


@pytest.fixture
def bundled():
    return load_schedules_from_yaml(BUNDLED_CONFIG_PATH)


def test_effective_rate_applies_multiplier_then_adder():
    slot = TimeSlot("Peak", 17, 22, "peak", rate_multiplier=1.2, rate_adder=0.5)
    assert effective_rate(6.6, slot) == 6.6 * 1.2 + 0.5
    assert effective_rate(10.0, slot) == pytest.approx(12.5)


def test_effective_rate_is_not_clamped():
    slot = TimeSlot("Rebate", 0, 6, "off-peak", rate_adder=-8.0)
    assert effective_rate(6.6, slot) == 6.6 - 8.0


def test_slot_for_hour_handles_wraparound(karnataka_like):
    """A 22:00-06:00 slot matches late evening and early morning."""
    night = karnataka_like.time_slots[0]
    assert slot_for_hour(karnataka_like, 23) is night
    assert slot_for_hour(karnataka_like, 3) is night
    assert slot_for_hour(karnataka_like, 0) is night
    assert slot_for_hour(karnataka_like, 6).name == "Normal"
    assert slot_for_hour(karnataka_like, 21).name == "Evening Peak"
    assert slot_for_hour(karnataka_like, 22) is night


def test_slot_for_hour_returns_first_match(karnataka_like):
    schedule = replace(
        karnataka_like,
        time_slots=(TimeSlot("First", 8, 12, "peak"), TimeSlot("Second", 10, 14, "normal")),
    )
    assert slot_for_hour(schedule, 11).name == "First"


def test_unscheduled_hour_is_normal_at_base_rate(karnataka_like):
    schedule = replace(karnataka_like, time_slots=(TimeSlot("Peak", 18, 22, "peak", rate_adder=1.0),))
    assert slot_for_hour(schedule, 10) is None
    assert rate_for_hour(schedule, 10) == ("normal", 6.60)
    assert rate_for_hour(schedule, 19) == ("peak", pytest.approx(7.60))


def test_bundled_catalog(bundled):
    """The packaged catalog loads in declaration order and covers every hour."""
    assert [s.state_code for s in bundled] == ["MH", "TN", "KA", "TS"]
    for schedule in bundled:
        assert validate_slot_coverage(schedule) == []
        for hour in range(24):
            slot = slot_for_hour(schedule, hour)
            assert slot is not None and slot.contains(hour)


def test_bundled_maharashtra_is_kvah(bundled):
    maharashtra = bundled[0]
    assert maharashtra.billing_unit == "kVAh"
    assert maharashtra.wheeling_charge == 0.55
    assert slot_for_hour(maharashtra, 23).name == "Peak"
    assert "75%" in maharashtra.demand_billing_rule


def test_validate_slot_coverage_reports_gaps_and_overlaps(karnataka_like):
    schedule = replace(
        karnataka_like,
        time_slots=(
            TimeSlot("Night", 22, 6, "off-peak"),
            TimeSlot("Day", 8, 18, "normal"),
            TimeSlot("Peak", 17, 22, "peak"),
        ),
    )
    problems = validate_slot_coverage(schedule)
    assert problems[0] == "hours not covered by any slot: 06, 07"
    assert "hour 17 is covered by Day, Peak" in problems


def test_registry_lookup_by_name_or_code(bundled):
    registry = TariffRegistry(bundled)
    assert registry.get_schedule("Karnataka").state_code == "KA"
    assert registry.get_schedule("tamil nadu").state_code == "TN"
    assert registry.get_schedule("ts").state == "Telangana"
    assert "KA" in registry
    assert "Kerala" not in registry
    assert len(registry) == 4


def test_registry_unknown_state_falls_back_to_default(bundled):
    registry = TariffRegistry(bundled)
    assert registry.get_schedule("Atlantis") is registry.default
    assert registry.get_schedule(None).state == "Maharashtra"


def test_registry_named_default(bundled):
    registry = TariffRegistry(bundled, default_state="Telangana")
    assert registry.get_schedule("Atlantis").state_code == "TS"

    registry = TariffRegistry(bundled, default_state="Atlantis")
    assert registry.default.state_code == "MH"


def test_registry_lists_in_declaration_order(bundled):
    registry = TariffRegistry(reversed(bundled))
    assert [s.state_code for s in registry.list_states()] == ["TS", "KA", "TN", "MH"]


def test_registry_is_read_only(bundled):
    registry = TariffRegistry(bundled)
    with pytest.raises(TypeError):
        registry.schedules["XX"] = bundled[0]


def test_registry_needs_schedules():
    with pytest.raises(ValueError):
        TariffRegistry([])


def test_load_rejects_gaps(write_catalog, catalog_entry):
    catalog_entry["time_slots"] = catalog_entry["time_slots"][:2]
    path = write_catalog([catalog_entry])

    with pytest.raises(TariffConfigError, match="not covered"):
        load_schedules_from_yaml(path)

    schedules = load_schedules_from_yaml(path, validate=False)
    assert len(schedules[0].time_slots) == 2


def test_load_rejects_unknown_category(write_catalog, catalog_entry):
    catalog_entry["time_slots"][0]["category"] = "shoulder"
    with pytest.raises(TariffConfigError, match="unknown category"):
        load_schedules_from_yaml(write_catalog([catalog_entry]))


def test_load_rejects_unknown_billing_unit(write_catalog, catalog_entry):
    catalog_entry["billing_unit"] = "MWh"
    with pytest.raises(TariffConfigError, match="unknown billing unit"):
        load_schedules_from_yaml(write_catalog([catalog_entry]))


def test_load_rejects_hours_out_of_range(write_catalog, catalog_entry):
    catalog_entry["time_slots"][1]["end"] = 25
    with pytest.raises(TariffConfigError, match="out of range"):
        load_schedules_from_yaml(write_catalog([catalog_entry]))


def test_load_reports_missing_field(write_catalog, catalog_entry):
    del catalog_entry["demand_charge"]
    with pytest.raises(TariffConfigError, match="demand_charge"):
        load_schedules_from_yaml(write_catalog([catalog_entry]))


def test_load_defaults_optional_fields(write_catalog, catalog_entry):
    del catalog_entry["billing_unit"]
    schedule = load_schedules_from_yaml(write_catalog([catalog_entry]))[0]
    assert schedule.billing_unit == "kWh"
    assert schedule.wheeling_charge == 0.0
    assert schedule.time_slots[1].rate_multiplier == 1.0
    assert schedule.time_slots[0].rate_adder == -1.0


def test_load_accepts_empty_optional_values(write_catalog, catalog_entry):
    """Blank YAML values such as `notes:` load as None and mean "not set"."""
    catalog_entry["notes"] = None
    catalog_entry["fuel_adjustment"] = None
    catalog_entry["demand_billing_rule"] = None
    schedule = load_schedules_from_yaml(write_catalog([catalog_entry]))[0]
    assert schedule.notes == ""
    assert schedule.fuel_adjustment.amount == 0.0
    assert schedule.demand_billing_rule == ""


def test_load_wraps_malformed_values(write_catalog, catalog_entry):
    catalog_entry["notes"] = ["not", "text"]
    with pytest.raises(TariffConfigError, match="Karnataka"):
        load_schedules_from_yaml(write_catalog([catalog_entry]))


def test_load_rejects_duplicate_state_codes(write_catalog, catalog_entry):
    twin = dict(catalog_entry, state="Karnataka Twin")
    with pytest.raises(TariffConfigError, match="duplicate state code 'KA'"):
        load_schedules_from_yaml(write_catalog([catalog_entry, twin]))


def test_load_scenarios_rejects_bad_numbers(write_catalog, catalog_entry):
    scenario = {
        "name": "Broken",
        "state": "Karnataka",
        "profile": {
            "it_load_kwh": "lots",
            "contracted_demand_kva": 500,
            "recorded_demand_kva": 500,
            "power_factor": 0.96,
            "pattern": None,
        },
    }
    with pytest.raises(TariffConfigError, match="scenario 'Broken'"):
        load_scenarios_from_yaml(write_catalog([catalog_entry], scenarios=[scenario]))


def test_load_rejects_non_mapping(tmp_path):
    path = tmp_path / "tariffs.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(TariffConfigError):
        load_schedules_from_yaml(path)


def test_load_scenarios():
    scenarios = load_scenarios_from_yaml(BUNDLED_CONFIG_PATH)
    assert scenarios[0].name == "Mumbai Colocation - 50 Racks"
    assert scenarios[0].profile.facility_consumption_kwh == pytest.approx(180_000 * 1.65)
    assert scenarios[1].profile.pattern.off_peak_percent == 40
    assert [s.state for s in scenarios[2:]] == ["Maharashtra", "Tamil Nadu", "Karnataka", "Telangana"]


def test_config_path_resolution(monkeypatch, tmp_path):
    explicit = tmp_path / "mine.yaml"
    assert get_config_path(explicit) == explicit

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DCTARIFF_CONFIG", raising=False)
    assert get_config_path() == BUNDLED_CONFIG_PATH

    local = tmp_path / "config" / "tariffs.yaml"
    local.parent.mkdir()
    local.write_text("tariffs: []\n")
    assert get_config_path() == local

    monkeypatch.setenv("DCTARIFF_CONFIG", str(explicit))
    assert get_config_path() == explicit
