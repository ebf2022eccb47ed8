"""Measurement → pass / warning / fail classification."""

from __future__ import annotations

import math
from enum import Enum
from typing import Iterable

from compliance.errors import ValidationError
from compliance.thresholds import ThresholdSpec


class CheckStatus(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


# Lower is better.
_STATUS_RANK = {CheckStatus.PASS: 0, CheckStatus.WARNING: 1, CheckStatus.FAIL: 2}


def classify(value: float, spec: ThresholdSpec) -> CheckStatus:
    if math.isnan(value):
        raise ValidationError("measurement", "reading is not a number")
    if spec.pass_min <= value <= spec.pass_max:
        return CheckStatus.PASS
    if spec.warn_min <= value <= spec.warn_max:
        return CheckStatus.WARNING
    return CheckStatus.FAIL


def classify_bool(passed: bool) -> CheckStatus:
    """Visual/procedural checks have no warning tier."""
    return CheckStatus.PASS if passed else CheckStatus.FAIL


def classify_any(value: float, specs: Iterable[ThresholdSpec]) -> CheckStatus:
    """Best status across alternative bands (e.g. hot OR cold display)."""
    statuses = [classify(value, spec) for spec in specs]
    if not statuses:
        raise ValidationError("thresholds", "no threshold bands to classify against")
    return min(statuses, key=_STATUS_RANK.__getitem__)


def is_flagged(status: CheckStatus | str) -> bool:
    """Warning and fail both mark a shift check as failed on dashboards."""
    return CheckStatus(status) is not CheckStatus.PASS
