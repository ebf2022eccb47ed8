"""
Daily check catalogue — the per-shift compliance controls and the
compliance sections that switch them on and off.

Check kinds:
  - equipment:   done once every active instance of the class has a reading
  - temperature: single reading classified against one or more bands
  - visual:      pass/fail observation, no warning tier
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from compliance.errors import ConfigurationError, ValidationError
from compliance.thresholds import INF, EquipmentClass, ThresholdSpec


class Shift(str, Enum):
    AM = "AM"
    PM = "PM"


class CheckKind(str, Enum):
    EQUIPMENT = "equipment"
    TEMPERATURE = "temperature"
    VISUAL = "visual"


def current_shift(now: datetime, cutover_hour: int = 12) -> Shift:
    return Shift.AM if now.hour < cutover_hour else Shift.PM


def parse_shift(raw: Shift | str) -> Shift:
    if isinstance(raw, Shift):
        return raw
    try:
        return Shift(str(raw).upper())
    except ValueError as exc:
        raise ValidationError("shift", f"'{raw}' is not AM or PM") from exc


@dataclass(frozen=True)
class CheckDefinition:
    key: str
    label: str
    kind: CheckKind
    toggle_key: str | None = None
    equipment_class: EquipmentClass | None = None
    bands: tuple[ThresholdSpec, ...] = ()


@dataclass(frozen=True)
class Section:
    key: str
    label: str
    default_on: bool = True
    home_cook_default: bool | None = None

    def default_for(self, home_cook: bool) -> bool:
        if home_cook and self.home_cook_default is not None:
            return self.home_cook_default
        return self.default_on


_COOK = ThresholdSpec(pass_min=75, pass_max=INF, warn_min=60, warn_max=INF)
# 60°C → 21°C within 2 hours; a reading at or below 21°C in that window passes
_COOL = ThresholdSpec(pass_min=-INF, pass_max=21, warn_min=-INF, warn_max=25)
_HOT_DISPLAY = ThresholdSpec(pass_min=60, pass_max=INF, warn_min=55, warn_max=INF)
_COLD_DISPLAY = ThresholdSpec(pass_min=-INF, pass_max=5, warn_min=-INF, warn_max=8)

CHECK_DEFINITIONS: tuple[CheckDefinition, ...] = (
    CheckDefinition("fridge", "Fridge", CheckKind.EQUIPMENT, "fridge_temps", EquipmentClass.FRIDGE),
    CheckDefinition("freezer", "Freezer", CheckKind.EQUIPMENT, "freezer_temps", EquipmentClass.FREEZER),
    CheckDefinition("hot_hold", "Hot Hold", CheckKind.EQUIPMENT, "hot_holding", EquipmentClass.HOT_HOLD),
    CheckDefinition("staff_health", "Staff Health", CheckKind.VISUAL, "staff_health"),
    CheckDefinition("handwash", "Handwash", CheckKind.VISUAL, "handwash_stations"),
    CheckDefinition("sanitiser", "Sanitiser", CheckKind.VISUAL, "sanitiser_check"),
    CheckDefinition("kitchen_clean", "Kitchen", CheckKind.VISUAL, "kitchen_clean"),
    CheckDefinition("pest", "Pest Check", CheckKind.VISUAL, "pest_check"),
    CheckDefinition("receiving", "Receiving", CheckKind.VISUAL, "receiving_logs"),
    CheckDefinition("cooking", "Cooking", CheckKind.TEMPERATURE, "cooking_logs", bands=(_COOK,)),
    CheckDefinition("cooling", "Cooling", CheckKind.TEMPERATURE, "cooling_logs", bands=(_COOL,)),
    CheckDefinition("reheating", "Reheating", CheckKind.TEMPERATURE, "reheating_logs", bands=(_COOK,)),
    CheckDefinition("display", "Display", CheckKind.TEMPERATURE, "display_monitoring", bands=(_HOT_DISPLAY, _COLD_DISPLAY)),
    CheckDefinition("transport", "Transport", CheckKind.TEMPERATURE, "transport_logs", bands=(_HOT_DISPLAY, _COLD_DISPLAY)),
    CheckDefinition("grease_trap", "Grease Trap", CheckKind.VISUAL, "grease_trap"),
    CheckDefinition("hood_cleaning", "Hood/Canopy", CheckKind.VISUAL, "hood_cleaning"),
    CheckDefinition("haccp", "HACCP", CheckKind.VISUAL, "haccp"),
)

SECTIONS: tuple[Section, ...] = (
    Section("fridge_temps", "Fridge Temps"),
    Section("freezer_temps", "Freezer Temps"),
    Section("hot_holding", "Hot Holding"),
    Section("staff_health", "Staff Health Checks"),
    Section("handwash_stations", "Handwash Station Checks"),
    Section("sanitiser_check", "Sanitiser Checks"),
    Section("kitchen_clean", "Kitchen Cleanliness"),
    Section("pest_check", "Pest Checks"),
    Section("receiving_logs", "Receiving Logs"),
    Section("cooking_logs", "Cooking Logs"),
    Section("cooling_logs", "Cooling Logs"),
    Section("reheating_logs", "Reheating Logs"),
    Section("display_monitoring", "Display Monitoring", default_on=False, home_cook_default=False),
    Section("transport_logs", "Transport Logs", default_on=False, home_cook_default=False),
    Section("cleaning_schedules", "Cleaning Schedules"),
    Section("equipment_calibration", "Equipment & Calibration", home_cook_default=False),
    Section("supplier_register", "Supplier Register", home_cook_default=False),
    Section("self_assessment", "Self-Assessment (A1-A40)"),
    Section("grease_trap", "Grease Trap", home_cook_default=False),
    Section("hood_cleaning", "Hood Cleaning", home_cook_default=False),
    Section("chemical_safety", "Chemical Safety"),
    Section("haccp", "HACCP Plan", home_cook_default=False),
    Section("audit_docs", "Audit & Documents", home_cook_default=False),
    Section("eq_training", "Equipment Training", home_cook_default=False),
)


def validate_catalogue(checks: tuple[CheckDefinition, ...], sections: tuple[Section, ...]) -> None:
    section_keys = {s.key for s in sections}
    if len(section_keys) != len(sections):
        raise ConfigurationError("Duplicate section key in section table")
    seen: set[str] = set()
    for check in checks:
        if check.key in seen:
            raise ConfigurationError(f"Duplicate check key: {check.key}")
        seen.add(check.key)
        if check.toggle_key is not None and check.toggle_key not in section_keys:
            raise ConfigurationError(f"Check {check.key} is gated by unknown section {check.toggle_key}")
        if check.kind is CheckKind.EQUIPMENT and check.equipment_class is None:
            raise ConfigurationError(f"Equipment check {check.key} has no equipment class")
        if check.kind is CheckKind.TEMPERATURE and not check.bands:
            raise ConfigurationError(f"Temperature check {check.key} has no threshold bands")
        for band in check.bands:
            if band.problems():
                raise ConfigurationError(f"Invalid band on {check.key}: {'; '.join(band.problems())}")
