"""
Compliance rule engine.

Turns raw readings and checklist answers into pass / warning / fail
statuses, shift completion, and a predicted star rating:
  - thresholds + classifier   (per-class ranges, per-instance overrides)
  - taxonomy + scoring        (A1-A40 checklist → 0/2/3/4/5 stars)
  - records + gate            (log once per shift, corrective action on fail)
  - reconciler                (which checks are done this shift)

Usage:
    from compliance import CheckSubmission, get_ruleset, log_check

    ruleset = get_ruleset()
    record = await log_check(db, identity, CheckSubmission(...), ruleset)
"""

from compliance.assessments import (
    count_assessments,
    get_assessment,
    get_business_category,
    list_assessment_history,
    load_answers,
    save_assessment,
)
from compliance.checks import CheckDefinition, CheckKind, Section, Shift, current_shift, parse_shift
from compliance.classifier import CheckStatus, classify, classify_any, classify_bool, is_flagged
from compliance.configuration import (
    add_equipment_instance,
    bulk_set_section_toggles,
    deactivate_equipment,
    get_section_toggles,
    list_equipment_instances,
    seed_default_equipment,
    set_section_toggle,
    set_threshold_override,
)
from compliance.errors import (
    ComplianceError,
    ConfigurationError,
    DuplicateError,
    PhaseTransitionError,
    ValidationError,
)
from compliance.gate import enforce_corrective_action, requires_corrective_action
from compliance.green_shield import GreenShieldInputs, is_green_shield_eligible, missing_requirements
from compliance.reconciler import CheckCompletion, ShiftCompletion, load_shift_completion, reconcile_shift
from compliance.records import CheckSubmission, list_check_history, list_check_records, log_check
from compliance.ruleset import ComplianceRuleset, build_default_ruleset, get_ruleset
from compliance.scoring import AssessmentAnswer, assessment_stats, evidence_outstanding, predict_rating, rating_label
from compliance.taxonomy import AnswerStatus, AssessmentItem, BusinessCategory, Severity
from compliance.thresholds import EquipmentClass, ThresholdSpec, resolve_threshold

__all__ = [
    # Tables
    "ComplianceRuleset",
    "build_default_ruleset",
    "get_ruleset",
    "EquipmentClass",
    "ThresholdSpec",
    "resolve_threshold",
    "CheckDefinition",
    "CheckKind",
    "Section",
    "Shift",
    "current_shift",
    "parse_shift",
    # Classification
    "CheckStatus",
    "classify",
    "classify_any",
    "classify_bool",
    "is_flagged",
    "requires_corrective_action",
    "enforce_corrective_action",
    # Scoring
    "AnswerStatus",
    "AssessmentAnswer",
    "AssessmentItem",
    "BusinessCategory",
    "Severity",
    "assessment_stats",
    "evidence_outstanding",
    "predict_rating",
    "rating_label",
    # Store operations
    "CheckSubmission",
    "log_check",
    "list_check_records",
    "list_check_history",
    "save_assessment",
    "get_assessment",
    "get_business_category",
    "list_assessment_history",
    "load_answers",
    "count_assessments",
    "list_equipment_instances",
    "add_equipment_instance",
    "set_threshold_override",
    "deactivate_equipment",
    "seed_default_equipment",
    "get_section_toggles",
    "set_section_toggle",
    "bulk_set_section_toggles",
    # Completion
    "CheckCompletion",
    "ShiftCompletion",
    "reconcile_shift",
    "load_shift_completion",
    "GreenShieldInputs",
    "is_green_shield_eligible",
    "missing_requirements",
    # Errors
    "ComplianceError",
    "ValidationError",
    "DuplicateError",
    "ConfigurationError",
    "PhaseTransitionError",
]
