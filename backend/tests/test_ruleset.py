from dataclasses import replace
from datetime import datetime

import pytest

from compliance.checks import CHECK_DEFINITIONS, SECTIONS, Shift, current_shift, parse_shift
from compliance.errors import ConfigurationError, ValidationError
from compliance.ruleset import ComplianceRuleset, build_default_ruleset


class TestShifts:
    def test_cutover(self):
        assert current_shift(datetime(2024, 1, 1, 11, 59)) is Shift.AM
        assert current_shift(datetime(2024, 1, 1, 12, 0)) is Shift.PM

    def test_custom_cutover(self):
        assert current_shift(datetime(2024, 1, 1, 14, 30), cutover_hour=15) is Shift.AM

    def test_parse_shift(self):
        assert parse_shift("am") is Shift.AM
        assert parse_shift(Shift.PM) is Shift.PM
        with pytest.raises(ValidationError) as exc:
            parse_shift("night")
        assert exc.value.field == "shift"


class TestRuleset:
    def test_default_enabled_checks(self, ruleset):
        enabled = ruleset.enabled_check_keys(ruleset.default_toggles())
        assert enabled[:3] == ["fridge", "freezer", "hot_hold"]
        assert "display" not in enabled
        assert "transport" not in enabled
        assert len(enabled) == len(CHECK_DEFINITIONS) - 2

    def test_home_cook_defaults_are_lighter(self, ruleset):
        enabled = ruleset.enabled_check_keys(ruleset.default_toggles(home_cook=True))
        assert "grease_trap" not in enabled
        assert "haccp" not in enabled
        assert "fridge" in enabled

    def test_missing_toggle_means_disabled(self, ruleset):
        assert ruleset.enabled_check_keys({"fridge_temps": True}) == ["fridge"]

    def test_unknown_check_key(self, ruleset):
        with pytest.raises(ValidationError) as exc:
            ruleset.check("walk_in")
        assert exc.value.field == "check_key"

    def test_equipment_checks(self, ruleset):
        assert [c.key for c in ruleset.equipment_checks()] == ["fridge", "freezer", "hot_hold"]

    def test_section_catalogue(self):
        assert len(SECTIONS) == 24

    def test_duplicate_check_key_rejected(self):
        base = build_default_ruleset("v")
        with pytest.raises(ConfigurationError, match="Duplicate check key"):
            replace(base, checks=base.checks + (base.checks[0],))

    def test_check_gated_by_unknown_section_rejected(self):
        base = build_default_ruleset("v")
        orphan = replace(CHECK_DEFINITIONS[3], key="orphan", toggle_key="no_such_section")
        with pytest.raises(ConfigurationError, match="no_such_section"):
            ComplianceRuleset(
                version="v",
                thresholds=base.thresholds,
                receiving_thresholds=base.receiving_thresholds,
                checks=base.checks + (orphan,),
                sections=base.sections,
                assessment_items=base.assessment_items,
                rating_rules=base.rating_rules,
            )
