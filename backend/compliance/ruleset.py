"""
Versioned compliance ruleset.

Bundles every fixed table the engine reads (equipment thresholds,
receiving ranges, check catalogue, sections, A1-A40 checklist, rating
rules) into one immutable object. Built and validated once per process,
then handed to engine functions explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from compliance.checks import CHECK_DEFINITIONS, SECTIONS, CheckDefinition, CheckKind, Section, validate_catalogue
from compliance.errors import ValidationError
from compliance.scoring import RATING_RULES, RatingRule
from compliance.taxonomy import ASSESSMENT_ITEMS, AssessmentItem, validate_items
from compliance.thresholds import (
    DEFAULT_THRESHOLDS,
    RECEIVING_THRESHOLDS,
    EquipmentClass,
    ThresholdSpec,
    validate_threshold_tables,
)
from core.config import get_settings


@dataclass(frozen=True)
class ComplianceRuleset:
    version: str
    thresholds: Mapping[EquipmentClass, ThresholdSpec]
    receiving_thresholds: Mapping[EquipmentClass, ThresholdSpec | None]
    checks: tuple[CheckDefinition, ...]
    sections: tuple[Section, ...]
    assessment_items: tuple[AssessmentItem, ...]
    rating_rules: tuple[RatingRule, ...]
    _checks_by_key: Mapping[str, CheckDefinition] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        validate_threshold_tables(self.thresholds, self.receiving_thresholds)
        validate_catalogue(self.checks, self.sections)
        validate_items(self.assessment_items)
        object.__setattr__(self, "_checks_by_key", MappingProxyType({c.key: c for c in self.checks}))

    def check(self, check_key: str) -> CheckDefinition:
        try:
            return self._checks_by_key[check_key]
        except KeyError as exc:
            raise ValidationError("check_key", f"unknown check '{check_key}'") from exc

    def equipment_checks(self) -> tuple[CheckDefinition, ...]:
        return tuple(c for c in self.checks if c.kind is CheckKind.EQUIPMENT)

    def default_toggles(self, home_cook: bool = False) -> dict[str, bool]:
        return {s.key: s.default_for(home_cook) for s in self.sections}

    def enabled_check_keys(self, toggles: Mapping[str, bool]) -> list[str]:
        """Checks whose section is on, in catalogue order. Ungated checks are always on."""
        return [c.key for c in self.checks if c.toggle_key is None or toggles.get(c.toggle_key, False)]


def build_default_ruleset(version: str) -> ComplianceRuleset:
    return ComplianceRuleset(
        version=version,
        thresholds=DEFAULT_THRESHOLDS,
        receiving_thresholds=RECEIVING_THRESHOLDS,
        checks=CHECK_DEFINITIONS,
        sections=SECTIONS,
        assessment_items=ASSESSMENT_ITEMS,
        rating_rules=RATING_RULES,
    )


@lru_cache
def get_ruleset() -> ComplianceRuleset:
    """Process-wide ruleset for the configured version."""
    return build_default_ruleset(get_settings().ruleset_version)
