"""
Threshold Table — pass/warning temperature ranges per equipment class.

Defaults follow the Brisbane City Council (Eat Safe) guidance:
  cold food 5°C and below, hot food 60°C and above, frozen food stays frozen.

A ThresholdSpec is a pair of closed intervals in °C. The warn interval
encloses the pass interval; a reading inside pass is `pass`, inside warn
(but not pass) is `warning`, anything else is `fail`. Open-ended bounds
use ±inf (hot-hold pass is "≥63", cooling pass is "≤21").
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from compliance.errors import ConfigurationError, ValidationError

INF = math.inf


class EquipmentClass(str, Enum):
    FRIDGE = "fridge"
    FREEZER = "freezer"
    HOT_HOLD = "hot_hold"
    # Receiving product categories
    DAIRY = "dairy"
    MEAT = "meat"
    SEAFOOD = "seafood"
    POULTRY = "poultry"
    PRODUCE = "produce"
    FROZEN = "frozen"
    DRY_GOODS = "dry_goods"
    BAKERY = "bakery"


EQUIPMENT_CLASSES = frozenset({EquipmentClass.FRIDGE, EquipmentClass.FREEZER, EquipmentClass.HOT_HOLD})
RECEIVING_CLASSES = frozenset(set(EquipmentClass) - EQUIPMENT_CLASSES)


@dataclass(frozen=True)
class ThresholdSpec:
    pass_min: float
    pass_max: float
    warn_min: float
    warn_max: float

    @classmethod
    def pass_only(cls, pass_min: float, pass_max: float) -> "ThresholdSpec":
        """Spec with no warning tier: out of range goes straight to fail."""
        return cls(pass_min, pass_max, pass_min, pass_max)

    @property
    def has_warning_tier(self) -> bool:
        return self.warn_min < self.pass_min or self.warn_max > self.pass_max

    def problems(self) -> list[str]:
        out = []
        if any(math.isnan(v) for v in (self.pass_min, self.pass_max, self.warn_min, self.warn_max)):
            out.append("bounds must be numbers")
            return out
        if self.pass_min > self.pass_max:
            out.append("pass_min must not exceed pass_max")
        if self.warn_min > self.pass_min:
            out.append("warn_min must not exceed pass_min")
        if self.warn_max < self.pass_max:
            out.append("warn_max must not be below pass_max")
        return out


# Equipment defaults
DEFAULT_THRESHOLDS: Mapping[EquipmentClass, ThresholdSpec] = MappingProxyType(
    {
        EquipmentClass.FRIDGE: ThresholdSpec(pass_min=0, pass_max=5, warn_min=0, warn_max=8),
        EquipmentClass.FREEZER: ThresholdSpec(pass_min=-50, pass_max=-18, warn_min=-50, warn_max=-15),
        EquipmentClass.HOT_HOLD: ThresholdSpec(pass_min=63, pass_max=INF, warn_min=60, warn_max=INF),
    }
)

# Receiving acceptance ranges. None → no temperature check, visual pass/fail only.
RECEIVING_THRESHOLDS: Mapping[EquipmentClass, ThresholdSpec | None] = MappingProxyType(
    {
        EquipmentClass.DAIRY: ThresholdSpec.pass_only(0, 5),
        EquipmentClass.MEAT: ThresholdSpec.pass_only(0, 5),
        EquipmentClass.SEAFOOD: ThresholdSpec.pass_only(-1, 5),
        EquipmentClass.POULTRY: ThresholdSpec.pass_only(0, 5),
        EquipmentClass.PRODUCE: ThresholdSpec.pass_only(1, 12),
        EquipmentClass.FROZEN: ThresholdSpec.pass_only(-25, -15),
        EquipmentClass.DRY_GOODS: None,
        EquipmentClass.BAKERY: None,
    }
)


def validate_threshold_tables(
    defaults: Mapping[EquipmentClass, ThresholdSpec],
    receiving: Mapping[EquipmentClass, ThresholdSpec | None],
) -> None:
    """Load-time check: every class has an entry and every spec is well formed."""
    missing = sorted(c.value for c in EQUIPMENT_CLASSES if c not in defaults)
    missing += sorted(c.value for c in RECEIVING_CLASSES if c not in receiving)
    if missing:
        raise ConfigurationError(f"Threshold table missing classes: {missing}")
    for cls, spec in {**defaults, **receiving}.items():
        if spec is None:
            continue
        problems = spec.problems()
        if problems:
            raise ConfigurationError(f"Invalid default threshold for {cls.value}: {'; '.join(problems)}")


def _attr(instance: Any, name: str) -> Any:
    if isinstance(instance, Mapping):
        return instance.get(name)
    return getattr(instance, name, None)


def override_from(instance: Any) -> ThresholdSpec | None:
    """
    Build the custom spec carried by an equipment instance, if it has one.

    An override counts only when both pass bounds are present; a missing
    warn bound collapses onto the pass bound it abuts (no warning tier on
    that side).
    """
    pass_min = _attr(instance, "custom_pass_min")
    pass_max = _attr(instance, "custom_pass_max")
    if pass_min is None or pass_max is None:
        return None
    warn_min = _attr(instance, "custom_warn_min")
    warn_max = _attr(instance, "custom_warn_max")
    spec = ThresholdSpec(
        pass_min=float(pass_min),
        pass_max=float(pass_max),
        warn_min=float(pass_min if warn_min is None else warn_min),
        warn_max=float(pass_max if warn_max is None else warn_max),
    )
    problems = spec.problems()
    if problems:
        raise ValidationError("custom_thresholds", "; ".join(problems))
    return spec


def resolve_threshold(
    instance: Any,
    equipment_class: EquipmentClass | str,
    defaults: Mapping[EquipmentClass, ThresholdSpec] = DEFAULT_THRESHOLDS,
) -> ThresholdSpec:
    """Instance override if complete, else the class default. Pure lookup."""
    if instance is not None:
        custom = override_from(instance)
        if custom is not None:
            return custom
    try:
        return defaults[EquipmentClass(equipment_class)]
    except (KeyError, ValueError) as exc:
        raise ValidationError("equipment_class", f"no default threshold for '{equipment_class}'") from exc
