import pytest

from compliance.errors import ConfigurationError
from compliance.taxonomy import (
    ASSESSMENT_ITEMS,
    MAX_ASSESSMENT_ITEMS,
    AssessmentItem,
    Severity,
    group_by_category,
    validate_items,
)


def test_checklist_has_forty_unique_items():
    codes = [item.code for item in ASSESSMENT_ITEMS]
    assert len(codes) == MAX_ASSESSMENT_ITEMS
    assert codes == [f"A{n}" for n in range(1, 41)]


def test_not_every_item_allows_every_severity():
    assert ASSESSMENT_ITEMS[5].severities == frozenset({Severity.MAJOR})  # A6
    assert ASSESSMENT_ITEMS[31].severities == frozenset(Severity)  # A32
    assert not ASSESSMENT_ITEMS[0].allows(Severity.CRITICAL)  # A1


def test_some_items_require_evidence():
    assert any(item.requires_evidence for item in ASSESSMENT_ITEMS)


def test_groups_follow_table_order():
    groups = group_by_category(ASSESSMENT_ITEMS)
    assert [name for name, _ in groups] == [
        "General Requirements",
        "Food Handling Controls",
        "Health and Hygiene Requirements",
        "Cleaning, Sanitising and Maintenance",
        "Miscellaneous",
    ]
    assert [i.code for i in groups[0][1]] == [f"A{n}" for n in range(1, 11)]
    assert sum(len(items) for _, items in groups) == 40


def test_duplicate_code_rejected():
    with pytest.raises(ConfigurationError, match="A1"):
        validate_items(ASSESSMENT_ITEMS[:3] + ASSESSMENT_ITEMS[:1])


def test_too_many_items_rejected():
    extra = AssessmentItem("A41", "Miscellaneous", "Extra", frozenset({Severity.MINOR}))
    with pytest.raises(ConfigurationError):
        validate_items(ASSESSMENT_ITEMS + (extra,))


def test_item_without_severities_rejected():
    with pytest.raises(ConfigurationError):
        validate_items([AssessmentItem("B1", "Miscellaneous", "Broken", frozenset())])
