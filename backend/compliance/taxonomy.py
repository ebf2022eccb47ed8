"""
Non-Compliance Taxonomy — the A1-A40 food safety self-assessment checklist.

Mirrors the council's official checklist. `severities` lists the
non-compliance levels each item can take (the form greys out the rest);
`requires_evidence` marks items where Category 1 businesses must also
hold evidence.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from compliance.errors import ConfigurationError

MAX_ASSESSMENT_ITEMS = 40


class Severity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class AnswerStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    NOT_ASSESSED = "not_assessed"


class BusinessCategory(str, Enum):
    """Council risk category; only Category 1 keeps evidence for its answers."""

    CATEGORY_1 = "category_1"
    CATEGORY_2 = "category_2"

    @property
    def keeps_evidence(self) -> bool:
        return self is BusinessCategory.CATEGORY_1


@dataclass(frozen=True)
class AssessmentItem:
    code: str
    category: str
    text: str
    severities: frozenset[Severity]
    requires_evidence: bool = False
    detail: str = ""

    def allows(self, severity: Severity) -> bool:
        return severity in self.severities


_MI = frozenset({Severity.MINOR})
_MA = frozenset({Severity.MAJOR})
_MI_MA = frozenset({Severity.MINOR, Severity.MAJOR})
_MI_CR = frozenset({Severity.MINOR, Severity.CRITICAL})
_ALL = frozenset(Severity)

GENERAL = "General Requirements"
HANDLING = "Food Handling Controls"
HYGIENE = "Health and Hygiene Requirements"
CLEANING = "Cleaning, Sanitising and Maintenance"
MISC = "Miscellaneous"

ASSESSMENT_ITEMS: tuple[AssessmentItem, ...] = (
    # ── General Requirements ──────────────────────────────────────────────
    AssessmentItem("A1", GENERAL, "Licence - Is your Council food business licence current?", _MI,
                   detail="i.e. no outstanding fees"),
    AssessmentItem("A2", GENERAL, "Licence - Is the current licence displayed prominently on the premises?", _MI_MA),
    AssessmentItem("A3", GENERAL, "Licence Conditions - Is your business complying with all site specific licence conditions?", _MI),
    AssessmentItem("A4", GENERAL, "Previous non-compliances - Has your business fixed all previous non-compliance items?", _MI_MA),
    AssessmentItem("A5", GENERAL, "Design - Does your business comply with the structural requirements of the Food Safety Standards?", _MI),
    AssessmentItem("A6", GENERAL, "Food Safety Supervisor - Have you notified Council who your Food Safety Supervisor is?", _MA),
    AssessmentItem("A7", GENERAL, "Food Safety Supervisor - Is the Food Safety Supervisor reasonably available/contactable?", _MI_MA),
    AssessmentItem("A8", GENERAL, "Food Safety Supervisor - Does the FSS hold an RTO issued certificate no more than 5 years old?", _MI_MA),
    AssessmentItem("A9", GENERAL, "Food Safety Program - If required, does your business have an accredited Food Safety Program?", _MA,
                   detail="Category 1 and 2 businesses only"),
    AssessmentItem("A10", GENERAL, "Skills and knowledge - Do you and your employees have appropriate food safety and hygiene skills?", _MI_CR),
    # ── Food Handling Controls ────────────────────────────────────────────
    AssessmentItem("A11", HANDLING, "Receival - Is food protected at receival and potentially hazardous food accepted at the correct temperature?", _MI_CR,
                   requires_evidence=True),
    AssessmentItem("A12", HANDLING, "Food storage - Is all food stored so that it is protected from contamination?", _MI_MA,
                   detail="cold room / fridge, freezer, dry store"),
    AssessmentItem("A13", HANDLING, "Food storage - Is potentially hazardous food stored under temperature control?", _MI_MA,
                   requires_evidence=True, detail="cold food 5°C and below, hot food 60°C and above, frozen food remains frozen"),
    AssessmentItem("A14", HANDLING, "Food processing - Are suitable measures in place to prevent contamination?", _MI_MA,
                   detail="e.g. cross contamination"),
    AssessmentItem("A15", HANDLING, "Food processing - Is ready-to-eat food held outside temperature control monitored correctly?", _MI_CR,
                   requires_evidence=True, detail="e.g. 2 hour / 4 hour rule"),
    AssessmentItem("A16", HANDLING, "Thawing - Are acceptable methods used to thaw food?", _MI_MA, requires_evidence=True),
    AssessmentItem("A17", HANDLING, "Cooling - Are acceptable methods used to cool food?", _MI_MA, requires_evidence=True),
    AssessmentItem("A18", HANDLING, "Reheating - Are appropriate reheating procedures followed?", _MI_CR, requires_evidence=True),
    AssessmentItem("A19", HANDLING, "Food display - Is food on display protected from contamination?", _MI_MA),
    AssessmentItem("A20", HANDLING, "Food display - Is potentially hazardous food displayed under correct temperature control?", _MI_MA,
                   requires_evidence=True),
    AssessmentItem("A21", HANDLING, "Food packaging - Is food packaged in a manner that protects it from contamination?", _MI),
    AssessmentItem("A22", HANDLING, "Food transportation - Is food transported protected and at the appropriate temperature?", _MI,
                   requires_evidence=True),
    AssessmentItem("A23", HANDLING, "Food for disposal - Do you use acceptable arrangements for throwing out food?", _MI),
    AssessmentItem("A24", HANDLING, "Food recall - If a wholesaler, manufacturer or importer, do you comply with food recall requirements?", _MI),
    AssessmentItem("A25", HANDLING, "Alternative methods - Are your documented alternative compliance methods acceptable?", _MI,
                   detail="i.e. receipt, storage, cooling, reheating, display, transport"),
    # ── Health and Hygiene Requirements ───────────────────────────────────
    AssessmentItem("A26", HYGIENE, "Contact with food - Does your business minimise contamination of food and food contact surfaces?", _MI_CR),
    AssessmentItem("A27", HYGIENE, "Health of food handlers - Are sick staff kept away from food handling?", _MI_MA),
    AssessmentItem("A28", HYGIENE, "Hygiene - Do food handlers exercise good hygiene practices?", _MI_CR,
                   detail="e.g. clean clothing, hand washing, jewellery"),
    AssessmentItem("A29", HYGIENE, "Hand washing facilities - Does your business have adequate hand washing facilities?", _MI_CR,
                   detail="soap, warm running water, single use towel, accessible basin"),
    AssessmentItem("A30", HYGIENE, "Duty of food business - Do you inform food handlers of their obligations?", _MI_CR),
    # ── Cleaning, Sanitising and Maintenance ──────────────────────────────
    AssessmentItem("A31", CLEANING, "Cleanliness - Are the floors, walls and ceilings maintained in a clean condition?", _MI_CR),
    AssessmentItem("A32", CLEANING, "Cleanliness - Are the fixtures, fittings and equipment maintained in a clean condition?", _ALL,
                   requires_evidence=True, detail="exhaust ventilation, fridges, coolrooms, freezers, benches, cooking equipment"),
    AssessmentItem("A33", CLEANING, "Sanitation - Are utensils and food contact surfaces clean and sanitised correctly?", _MI_MA,
                   requires_evidence=True),
    AssessmentItem("A34", CLEANING, "Maintenance - Are damaged utensils, crockery and cutting boards kept out of use?", _MI_CR),
    AssessmentItem("A35", CLEANING, "Maintenance - Are fixtures, fittings and equipment kept in good repair and working order?", _MI_CR),
    # ── Miscellaneous ─────────────────────────────────────────────────────
    AssessmentItem("A36", MISC, "Thermometer - If handling potentially hazardous food, does your business have a thermometer?", _MI_CR),
    AssessmentItem("A37", MISC, "Single Use Items - Are single use items protected and not used more than once?", _MI),
    AssessmentItem("A38", MISC, "Toilet - Are adequate staff toilets provided and in a clean state?", _MI_CR),
    AssessmentItem("A39", MISC, "Animals and pests - Is your business free from animals or vermin (assistance animals exempt)?", _MI_MA),
    AssessmentItem("A40", MISC, "Animals and pests - Are animals and pests prevented from being on the premises?", _MI_CR),
)


def validate_items(items: Iterable[AssessmentItem]) -> tuple[AssessmentItem, ...]:
    items = tuple(items)
    if not items or len(items) > MAX_ASSESSMENT_ITEMS:
        raise ConfigurationError(f"Checklist must hold 1-{MAX_ASSESSMENT_ITEMS} items, got {len(items)}")
    seen: set[str] = set()
    for item in items:
        if item.code in seen:
            raise ConfigurationError(f"Duplicate checklist code: {item.code}")
        seen.add(item.code)
        if not item.severities:
            raise ConfigurationError(f"Checklist item {item.code} allows no severities")
        if not item.category or not item.text:
            raise ConfigurationError(f"Checklist item {item.code} is missing category or text")
    return items


def group_by_category(items: Iterable[AssessmentItem]) -> list[tuple[str, list[AssessmentItem]]]:
    """Consecutive items grouped under their category, in table order."""
    groups: list[tuple[str, list[AssessmentItem]]] = []
    for item in items:
        if not groups or groups[-1][0] != item.category:
            groups.append((item.category, []))
        groups[-1][1].append(item)
    return groups
