"""
Check Records — classify, gate, and log one observation per shift.

Logging workflow:
1. Resolve the check definition (and equipment instance, if any)
2. Classify the reading / observation → pass, warning, fail
3. Require a corrective action on fail
4. Insert under the (org, check, date, shift, subject) unique constraint;
   a second record for the same identity is rejected, never merged
"""

import uuid
from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance.checks import CheckDefinition, CheckKind, Shift, parse_shift
from compliance.classifier import CheckStatus, classify, classify_any, classify_bool
from compliance.errors import DuplicateError, ValidationError
from compliance.gate import enforce_corrective_action
from compliance.ruleset import ComplianceRuleset
from compliance.thresholds import RECEIVING_CLASSES, EquipmentClass, resolve_threshold
from core.config import get_settings
from core.identity import IdentityContext
from db.models import CheckRecord, EquipmentInstance

logger = structlog.get_logger()


@dataclass(frozen=True)
class CheckSubmission:
    check_key: str
    log_date: date
    shift: Shift | str
    measurement: float | None = None
    passed: bool | None = None
    equipment_instance_id: uuid.UUID | None = None
    receiving_category: EquipmentClass | str | None = None
    corrective_action: str | None = None
    notes: str | None = None


def _require_measurement(submission: CheckSubmission) -> float:
    if submission.measurement is None:
        raise ValidationError("measurement", "Please enter a temperature reading")
    try:
        return float(submission.measurement)
    except (TypeError, ValueError) as exc:
        raise ValidationError("measurement", f"'{submission.measurement}' is not a number") from exc


def _require_passed(submission: CheckSubmission) -> bool:
    if submission.passed is None:
        raise ValidationError("passed", "Record whether the check passed")
    return bool(submission.passed)


def _receiving_category(raw: EquipmentClass | str) -> EquipmentClass:
    try:
        category = EquipmentClass(raw)
    except ValueError as exc:
        raise ValidationError("receiving_category", f"'{raw}' is not a product category") from exc
    if category not in RECEIVING_CLASSES:
        raise ValidationError("receiving_category", f"'{category.value}' is not a product category")
    return category


def evaluate_submission(
    submission: CheckSubmission,
    definition: CheckDefinition,
    ruleset: ComplianceRuleset,
    instance: EquipmentInstance | None = None,
) -> CheckStatus:
    """Status for a submission. Pure: the caller loads the instance."""
    if submission.receiving_category is not None and definition.key != "receiving":
        raise ValidationError("receiving_category", f"{definition.label} does not take a product category")

    if definition.kind is CheckKind.EQUIPMENT:
        if instance is None:
            raise ValidationError("equipment_instance_id", f"{definition.label} readings need an equipment instance")
        if instance.equipment_class != definition.equipment_class.value:
            raise ValidationError(
                "equipment_instance_id",
                f"{instance.name} is a {instance.equipment_class}, not a {definition.equipment_class.value}",
            )
        if instance.shift != parse_shift(submission.shift).value:
            raise ValidationError("shift", f"{instance.name} is configured for the {instance.shift} shift")
        spec = resolve_threshold(instance, instance.equipment_class, ruleset.thresholds)
        return classify(_require_measurement(submission), spec)

    if instance is not None:
        raise ValidationError("equipment_instance_id", f"{definition.label} is not logged against equipment")

    if definition.kind is CheckKind.TEMPERATURE:
        return classify_any(_require_measurement(submission), definition.bands)

    if submission.receiving_category is not None:
        spec = ruleset.receiving_thresholds[_receiving_category(submission.receiving_category)]
        if spec is not None:
            return classify(_require_measurement(submission), spec)

    return classify_bool(_require_passed(submission))


async def _load_instance(db: AsyncSession, org_id: uuid.UUID, equipment_id: uuid.UUID) -> EquipmentInstance:
    instance = await db.get(EquipmentInstance, equipment_id)
    if instance is None or instance.org_id != org_id:
        raise ValidationError("equipment_instance_id", f"Equipment {equipment_id} not found")
    if not instance.is_active:
        raise ValidationError("equipment_instance_id", f"{instance.name} has been removed")
    return instance


async def find_existing_record(
    db: AsyncSession,
    org_id: uuid.UUID,
    check_key: str,
    log_date: date,
    shift: Shift,
    subject_key: str = "",
) -> CheckRecord | None:
    result = await db.execute(
        select(CheckRecord).where(
            CheckRecord.org_id == org_id,
            CheckRecord.check_key == check_key,
            CheckRecord.log_date == log_date,
            CheckRecord.shift == shift.value,
            CheckRecord.subject_key == subject_key,
        )
    )
    return result.scalar_one_or_none()


async def log_check(
    db: AsyncSession,
    identity: IdentityContext,
    submission: CheckSubmission,
    ruleset: ComplianceRuleset,
) -> CheckRecord:
    """
    Classify and persist one observation.

    Raises ValidationError for missing/malformed input (including a fail
    without corrective action) and DuplicateError when the identity is
    already logged. Commits on success.
    """
    if not submission.check_key:
        raise ValidationError("check_key", "Check is required")
    if submission.log_date is None:
        raise ValidationError("log_date", "Date is required")
    definition = ruleset.check(submission.check_key)
    shift = parse_shift(submission.shift)

    instance = None
    if submission.equipment_instance_id is not None:
        instance = await _load_instance(db, identity.org_id, submission.equipment_instance_id)
    subject_key = str(instance.equipment_id) if instance is not None else ""

    status = evaluate_submission(submission, definition, ruleset, instance)

    duplicate = DuplicateError(
        definition.key,
        submission.log_date,
        shift.value,
        label=instance.name if instance is not None else definition.label,
    )
    existing = await find_existing_record(db, identity.org_id, definition.key, submission.log_date, shift, subject_key)
    if existing is not None:
        logger.info("check_record.duplicate", org_id=str(identity.org_id), check_key=definition.key, shift=shift.value)
        raise duplicate

    corrective_action = enforce_corrective_action(status, submission.corrective_action)

    record = CheckRecord(
        org_id=identity.org_id,
        check_key=definition.key,
        log_date=submission.log_date,
        shift=shift.value,
        equipment_instance_id=instance.equipment_id if instance is not None else None,
        subject_key=subject_key,
        measurement=float(submission.measurement) if submission.measurement is not None else None,
        boolean_result=submission.passed if submission.passed is not None else None,
        status=status.value,
        corrective_action=corrective_action,
        notes=(submission.notes or "").strip() or None,
        logged_by=identity.user_id,
        logged_by_name=identity.display_name,
    )
    db.add(record)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent submission for the same identity
        await db.rollback()
        logger.info("check_record.duplicate", org_id=str(identity.org_id), check_key=definition.key, shift=shift.value)
        raise duplicate from None
    await db.commit()

    logger.info(
        "check_record.logged",
        org_id=str(identity.org_id),
        check_key=definition.key,
        log_date=submission.log_date.isoformat(),
        shift=shift.value,
        status=status.value,
        equipment_id=subject_key or None,
    )
    return record


async def list_check_records(
    db: AsyncSession,
    org_id: uuid.UUID,
    log_date: date,
    shift: Shift | str,
) -> list[CheckRecord]:
    result = await db.execute(
        select(CheckRecord)
        .where(
            CheckRecord.org_id == org_id,
            CheckRecord.log_date == log_date,
            CheckRecord.shift == parse_shift(shift).value,
        )
        .order_by(CheckRecord.logged_at)
    )
    return list(result.scalars().all())


async def list_check_history(
    db: AsyncSession,
    org_id: uuid.UUID,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    logged_by_name: str | None = None,
    check_key: str | None = None,
    limit: int | None = None,
) -> list[CheckRecord]:
    """Past records, newest first."""
    query = select(CheckRecord).where(CheckRecord.org_id == org_id)
    if date_from is not None:
        query = query.where(CheckRecord.log_date >= date_from)
    if date_to is not None:
        query = query.where(CheckRecord.log_date <= date_to)
    if logged_by_name:
        query = query.where(CheckRecord.logged_by_name.ilike(f"%{logged_by_name}%"))
    if check_key:
        query = query.where(CheckRecord.check_key == check_key)
    query = query.order_by(CheckRecord.log_date.desc(), CheckRecord.logged_at.desc())
    query = query.limit(limit or get_settings().check_history_limit)

    result = await db.execute(query)
    return list(result.scalars().all())
