"""Rejected-operation errors raised by the compliance engine.

None of these are fatal: every one describes an operation the caller can
correct and retry.
"""

from __future__ import annotations

from datetime import date


class ComplianceError(Exception):
    """Base class for compliance engine errors."""


class ValidationError(ComplianceError, ValueError):
    """A required field is missing or malformed."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class DuplicateError(ComplianceError):
    """A record already exists for this (check, date, shift) identity."""

    def __init__(self, check_key: str, log_date: date, shift: str, label: str | None = None):
        self.check_key = check_key
        self.log_date = log_date
        self.shift = shift
        super().__init__(f"{label or check_key} has already been logged for this {shift} shift")


class ConfigurationError(ComplianceError):
    """Static rule tables or per-org configuration are inconsistent."""


class PhaseTransitionError(ValidationError):
    """Onboarding move not allowed from the current phase."""

    def __init__(self, reason: str):
        super().__init__("phase", reason)
