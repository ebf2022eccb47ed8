"""
Corrective-Action Gate.

A fail is a compliance breach and must carry a corrective-action note
before the record is accepted. A warning is advisory and never requires
one. Notes are optional metadata on every status.
"""

from __future__ import annotations

from compliance.classifier import CheckStatus
from compliance.errors import ValidationError


def requires_corrective_action(status: CheckStatus | str) -> bool:
    return CheckStatus(status) is CheckStatus.FAIL


def enforce_corrective_action(status: CheckStatus | str, corrective_action: str | None) -> str | None:
    """Return the cleaned note, or raise when a fail arrives without one."""
    note = (corrective_action or "").strip() or None
    if requires_corrective_action(status) and note is None:
        raise ValidationError("corrective_action", "Corrective action is required for failed checks")
    return note
