"""
Shift Completion Reconciler.

Answers "which checks are done this shift, and did any of them fail"
from one normalized check_records table:

- equipment-backed keys (fridge, freezer, hot_hold) are done once every
  active instance of the class on that shift has its own record
- every other key is done once a record with that exact key exists

Keys whose section is switched off are left out of the denominator.
Nothing here is cached: every call re-reads toggles, equipment and records.
"""

import asyncio
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from compliance.checks import CheckKind, Shift, parse_shift
from compliance.classifier import is_flagged
from compliance.configuration import get_section_toggles, list_equipment_instances
from compliance.records import list_check_records
from compliance.ruleset import ComplianceRuleset
from core.config import get_settings
from db.session import get_session_factory

logger = structlog.get_logger()


@dataclass(frozen=True)
class CheckCompletion:
    check_key: str
    label: str
    done: bool
    failed: bool


@dataclass(frozen=True)
class ShiftCompletion:
    log_date: date
    shift: Shift
    checks: tuple[CheckCompletion, ...]

    def get(self, check_key: str) -> CheckCompletion | None:
        return next((c for c in self.checks if c.check_key == check_key), None)

    @property
    def done_count(self) -> int:
        return sum(1 for c in self.checks if c.done)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.checks if c.failed)

    @property
    def total_count(self) -> int:
        return len(self.checks)

    @property
    def progress_pct(self) -> int:
        if not self.checks:
            return 0
        return round(100 * self.done_count / self.total_count)

    @property
    def all_done(self) -> bool:
        return bool(self.checks) and self.done_count == self.total_count


def reconcile_shift(
    *,
    log_date: date,
    shift: Shift | str,
    toggles: Mapping[str, bool],
    ruleset: ComplianceRuleset,
    equipment: Iterable[Any],
    records: Iterable[Any],
) -> ShiftCompletion:
    """
    Build the completion view from already-loaded rows.

    ``equipment`` items need equipment_id / equipment_class / shift /
    is_active; ``records`` items need check_key / log_date / shift /
    equipment_instance_id / status. Rows for other dates or shifts are
    ignored, so callers may pass a wider slice.
    """
    shift = parse_shift(shift)
    shift_records = [r for r in records if r.log_date == log_date and r.shift == shift.value]
    active = [e for e in equipment if e.is_active and e.shift == shift.value]

    completions = []
    for key in ruleset.enabled_check_keys(toggles):
        definition = ruleset.check(key)

        if definition.kind is CheckKind.EQUIPMENT:
            instance_ids = {
                e.equipment_id for e in active if e.equipment_class == definition.equipment_class.value
            }
            if not instance_ids:
                logger.warning(
                    "reconcile.no_equipment_instances",
                    check_key=key,
                    shift=shift.value,
                    log_date=log_date.isoformat(),
                )
                completions.append(CheckCompletion(key, definition.label, done=False, failed=False))
                continue
            matched = [
                r for r in shift_records if r.check_key == key and r.equipment_instance_id in instance_ids
            ]
            logged: set[uuid.UUID] = {r.equipment_instance_id for r in matched}
            completions.append(
                CheckCompletion(
                    key,
                    definition.label,
                    done=instance_ids <= logged,
                    failed=any(is_flagged(r.status) for r in matched),
                )
            )
        else:
            matched = [r for r in shift_records if r.check_key == key and r.equipment_instance_id is None]
            completions.append(
                CheckCompletion(
                    key,
                    definition.label,
                    done=bool(matched),
                    failed=any(is_flagged(r.status) for r in matched),
                )
            )

    return ShiftCompletion(log_date=log_date, shift=shift, checks=tuple(completions))


async def load_shift_completion(
    session_factory: async_sessionmaker[AsyncSession] | None,
    org_id: uuid.UUID,
    log_date: date,
    shift: Shift | str,
    ruleset: ComplianceRuleset,
    *,
    home_cook: bool | None = None,
) -> ShiftCompletion:
    """Read toggles, equipment and records concurrently, then reconcile.

    ``session_factory`` defaults to the configured database.
    """
    session_factory = session_factory or get_session_factory()
    shift = parse_shift(shift)
    if home_cook is None:
        home_cook = get_settings().home_cook_mode

    async def _read(query):
        # one session per query: an AsyncSession cannot run statements concurrently
        async with session_factory() as db:
            return await query(db)

    toggles, equipment, records = await asyncio.gather(
        _read(lambda db: get_section_toggles(db, org_id, ruleset, home_cook=home_cook)),
        _read(lambda db: list_equipment_instances(db, org_id, shift)),
        _read(lambda db: list_check_records(db, org_id, log_date, shift)),
    )

    return reconcile_shift(
        log_date=log_date,
        shift=shift,
        toggles=toggles,
        ruleset=ruleset,
        equipment=equipment,
        records=records,
    )
