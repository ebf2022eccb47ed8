"""
Star-rating prediction from self-assessment answers.

Results table (first match wins, evaluated top-down):

    3+ major, or 2+ critical                          → 0 stars
    1+ critical, or 1+ major, or 6+ minor             → 2 stars
    4-5 minor only                                    → 3 stars
    1-3 minor only                                    → 4 stars
    no non-compliances                                → 5 stars

There is no 1-star outcome on the council's scale.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from compliance.errors import ValidationError
from compliance.taxonomy import AnswerStatus, AssessmentItem, BusinessCategory, Severity

VALID_RATINGS = (0, 2, 3, 4, 5)


@dataclass(frozen=True)
class RatingRule:
    """Matches when ANY configured minimum is reached."""

    rating: int
    min_critical: int | None = None
    min_major: int | None = None
    min_minor: int | None = None

    def matches(self, counts: Mapping[Severity, int]) -> bool:
        for severity, minimum in (
            (Severity.CRITICAL, self.min_critical),
            (Severity.MAJOR, self.min_major),
            (Severity.MINOR, self.min_minor),
        ):
            if minimum is not None and counts.get(severity, 0) >= minimum:
                return True
        return False


RATING_RULES: tuple[RatingRule, ...] = (
    RatingRule(rating=0, min_critical=2, min_major=3),
    RatingRule(rating=2, min_critical=1, min_major=1, min_minor=6),
    RatingRule(rating=3, min_minor=4),
    RatingRule(rating=4, min_minor=1),
)
CLEAN_RATING = 5

RATING_LABELS = {
    5: "Excellent Performer",
    4: "Very Good Performer",
    3: "Good Performer",
    2: "Poor Performer",
    0: "Non-Compliant Performer",
}


@dataclass(frozen=True)
class AssessmentAnswer:
    item_code: str
    status: AnswerStatus
    severity: Severity | None = None
    comments: str | None = None
    evidence_flag: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status.value}
        if self.severity is not None:
            payload["severity"] = self.severity.value
        if self.comments:
            payload["comments"] = self.comments
        if self.evidence_flag:
            payload["evidence"] = True
        return payload


@dataclass(frozen=True)
class AssessmentStats:
    assessed: int
    compliant: int
    non_compliant: int
    critical: int
    major: int
    minor: int


def severity_counts(answers: Iterable[AssessmentAnswer]) -> Counter:
    return Counter(
        a.severity for a in answers if a.status is AnswerStatus.NON_COMPLIANT and a.severity is not None
    )


def predict_rating(answers: Iterable[AssessmentAnswer], rules: Iterable[RatingRule] = RATING_RULES) -> int:
    counts = severity_counts(answers)
    for rule in rules:
        if rule.matches(counts):
            return rule.rating
    return CLEAN_RATING


def rating_label(rating: int) -> str:
    return RATING_LABELS.get(rating, "")


def assessment_stats(answers: Iterable[AssessmentAnswer]) -> AssessmentStats:
    answers = list(answers)
    counts = severity_counts(answers)
    return AssessmentStats(
        assessed=sum(1 for a in answers if a.status is not AnswerStatus.NOT_ASSESSED),
        compliant=sum(1 for a in answers if a.status is AnswerStatus.COMPLIANT),
        non_compliant=sum(1 for a in answers if a.status is AnswerStatus.NON_COMPLIANT),
        critical=counts.get(Severity.CRITICAL, 0),
        major=counts.get(Severity.MAJOR, 0),
        minor=counts.get(Severity.MINOR, 0),
    )


def _parse_enum(enum_cls, raw: Any, field: str):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except ValueError as exc:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(field, f"'{raw}' is not one of: {allowed}") from exc


def parse_answer(
    item_code: str,
    raw: AssessmentAnswer | Mapping[str, Any],
    items_by_code: Mapping[str, AssessmentItem],
    business_category: BusinessCategory | str | None = None,
) -> AssessmentAnswer:
    """
    Validate one answer against the checklist.

    Severity is required exactly when the item is non-compliant and must be
    one the item allows; on any other status it is dropped. The evidence
    flag is only taken on items marked ``requires_evidence``, and only from
    Category 1 businesses when ``business_category`` is given.
    """
    item = items_by_code.get(item_code)
    if item is None:
        raise ValidationError("item_code", f"unknown checklist item '{item_code}'")

    if isinstance(raw, AssessmentAnswer):
        status, severity = raw.status, raw.severity
        comments, evidence = raw.comments, raw.evidence_flag
    else:
        if raw.get("status") in (None, ""):
            raise ValidationError("status", f"{item_code} has no status")
        status = _parse_enum(AnswerStatus, raw["status"], "status")
        severity = raw.get("severity")
        comments = raw.get("comments")
        evidence = bool(raw.get("evidence", raw.get("evidence_flag", False)))

    if status is AnswerStatus.NON_COMPLIANT:
        if severity in (None, ""):
            raise ValidationError("severity", f"{item_code} is non-compliant but has no severity")
        severity = _parse_enum(Severity, severity, "severity")
        if not item.allows(severity):
            allowed = ", ".join(sorted(s.value for s in item.severities))
            raise ValidationError("severity", f"{item_code} cannot be {severity.value} (allowed: {allowed})")
    else:
        severity = None

    if evidence:
        if not item.requires_evidence:
            raise ValidationError("evidence", f"{item_code} does not take an evidence flag")
        if business_category is not None:
            category = _parse_enum(BusinessCategory, business_category, "business_category")
            if not category.keeps_evidence:
                raise ValidationError("evidence", "Evidence flags apply to Category 1 businesses only")

    comments = (comments or "").strip() or None
    return AssessmentAnswer(
        item_code=item_code,
        status=status,
        severity=severity,
        comments=comments,
        evidence_flag=evidence,
    )


def parse_answers(
    raw_answers: Mapping[str, AssessmentAnswer | Mapping[str, Any]],
    items: Iterable[AssessmentItem],
    business_category: BusinessCategory | str | None = None,
) -> dict[str, AssessmentAnswer]:
    items_by_code = {item.code: item for item in items}
    return {
        code: parse_answer(code, raw, items_by_code, business_category) for code, raw in raw_answers.items()
    }


def evidence_outstanding(
    answers: Mapping[str, AssessmentAnswer],
    items: Iterable[AssessmentItem],
    business_category: BusinessCategory | str,
) -> list[str]:
    """Codes of evidence items answered compliant without evidence held."""
    if not _parse_enum(BusinessCategory, business_category, "business_category").keeps_evidence:
        return []
    outstanding = []
    for item in items:
        answer = answers.get(item.code)
        if (
            item.requires_evidence
            and answer is not None
            and answer.status is AnswerStatus.COMPLIANT
            and not answer.evidence_flag
        ):
            outstanding.append(item.code)
    return outstanding
