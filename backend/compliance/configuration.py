"""
Configuration Store — equipment instances and section toggles per org.

Read-mostly. Callers may cache what these return for short windows;
shift completion always re-reads (see compliance.reconciler).
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance.checks import Shift, parse_shift
from compliance.errors import ValidationError
from compliance.ruleset import ComplianceRuleset
from compliance.thresholds import EQUIPMENT_CLASSES, EquipmentClass, override_from
from db.models import EquipmentInstance, SectionToggle

logger = structlog.get_logger()

# 4 fridges, 2 freezers, 2 hot-holds, each checked AM and PM
DEFAULT_EQUIPMENT: tuple[tuple[str, EquipmentClass], ...] = (
    ("Fridge 1", EquipmentClass.FRIDGE),
    ("Fridge 2", EquipmentClass.FRIDGE),
    ("Fridge 3", EquipmentClass.FRIDGE),
    ("Fridge 4", EquipmentClass.FRIDGE),
    ("Freezer 1", EquipmentClass.FREEZER),
    ("Freezer 2", EquipmentClass.FREEZER),
    ("Hot Hold 1", EquipmentClass.HOT_HOLD),
    ("Hot Hold 2", EquipmentClass.HOT_HOLD),
)


def _equipment_class(raw: EquipmentClass | str) -> EquipmentClass:
    try:
        cls = EquipmentClass(raw)
    except ValueError as exc:
        raise ValidationError("equipment_class", f"'{raw}' is not an equipment class") from exc
    if cls not in EQUIPMENT_CLASSES:
        raise ValidationError("equipment_class", f"'{cls.value}' is a receiving category, not equipment")
    return cls


# ──────────────────────────────────────────────────────────────────────────
# Equipment instances
# ──────────────────────────────────────────────────────────────────────────


async def list_equipment_instances(
    db: AsyncSession,
    org_id: uuid.UUID,
    shift: Shift | str | None = None,
) -> list[EquipmentInstance]:
    """Active instances, in display order."""
    query = select(EquipmentInstance).where(
        EquipmentInstance.org_id == org_id,
        EquipmentInstance.is_active.is_(True),
    )
    if shift is not None:
        query = query.where(EquipmentInstance.shift == parse_shift(shift).value)
    result = await db.execute(query.order_by(EquipmentInstance.sort_order, EquipmentInstance.name))
    return list(result.scalars().all())


async def add_equipment_instance(
    db: AsyncSession,
    org_id: uuid.UUID,
    *,
    name: str,
    equipment_class: EquipmentClass | str,
    shift: Shift | str,
    sort_order: int = 0,
    custom_pass_min: float | None = None,
    custom_pass_max: float | None = None,
    custom_warn_min: float | None = None,
    custom_warn_max: float | None = None,
) -> EquipmentInstance:
    if not name or not name.strip():
        raise ValidationError("name", "Equipment name is required")

    instance = EquipmentInstance(
        org_id=org_id,
        name=name.strip(),
        equipment_class=_equipment_class(equipment_class).value,
        shift=parse_shift(shift).value,
        sort_order=sort_order,
        is_active=True,
        custom_pass_min=custom_pass_min,
        custom_pass_max=custom_pass_max,
        custom_warn_min=custom_warn_min,
        custom_warn_max=custom_warn_max,
    )
    override_from(instance)  # reject malformed overrides before they are stored
    db.add(instance)
    await db.flush()

    logger.info(
        "equipment.added",
        org_id=str(org_id),
        equipment_id=str(instance.equipment_id),
        equipment_class=instance.equipment_class,
        shift=instance.shift,
    )
    return instance


async def _owned_instance(db: AsyncSession, org_id: uuid.UUID, equipment_id: uuid.UUID) -> EquipmentInstance:
    instance = await db.get(EquipmentInstance, equipment_id)
    if instance is None or instance.org_id != org_id:
        raise ValidationError("equipment_id", f"Equipment {equipment_id} not found")
    return instance


async def set_threshold_override(
    db: AsyncSession,
    org_id: uuid.UUID,
    equipment_id: uuid.UUID,
    *,
    pass_min: float | None,
    pass_max: float | None,
    warn_min: float | None = None,
    warn_max: float | None = None,
) -> EquipmentInstance:
    """
    Replace the instance override as a whole.

    Pass and warn bounds are always written together; passing None for
    both pass bounds clears the override back to the class default.
    """
    instance = await _owned_instance(db, org_id, equipment_id)

    if (pass_min is None) != (pass_max is None):
        raise ValidationError("custom_thresholds", "Both pass_min and pass_max are required for an override")

    candidate = {
        "custom_pass_min": pass_min,
        "custom_pass_max": pass_max,
        "custom_warn_min": warn_min if pass_min is not None else None,
        "custom_warn_max": warn_max if pass_min is not None else None,
    }
    override_from(candidate)
    for attr, value in candidate.items():
        setattr(instance, attr, value)
    await db.flush()

    logger.info(
        "equipment.override_set", org_id=str(org_id), equipment_id=str(equipment_id), cleared=pass_min is None
    )
    return instance


async def deactivate_equipment(db: AsyncSession, org_id: uuid.UUID, equipment_id: uuid.UUID) -> None:
    """Soft delete: history keeps pointing at the instance."""
    instance = await _owned_instance(db, org_id, equipment_id)
    instance.is_active = False
    await db.flush()
    logger.info("equipment.deactivated", org_id=str(org_id), equipment_id=str(equipment_id))


async def seed_default_equipment(db: AsyncSession, org_id: uuid.UUID) -> int:
    """Create the default equipment set when the org has none. Returns rows created."""
    existing = await db.execute(
        select(EquipmentInstance.equipment_id).where(EquipmentInstance.org_id == org_id).limit(1)
    )
    if existing.first() is not None:
        return 0

    sort_order = 0
    for name, equipment_class in DEFAULT_EQUIPMENT:
        for shift in Shift:
            sort_order += 1
            db.add(
                EquipmentInstance(
                    org_id=org_id,
                    name=name,
                    equipment_class=equipment_class.value,
                    shift=shift.value,
                    sort_order=sort_order,
                    is_active=True,
                )
            )
    await db.flush()

    logger.info("equipment.seeded", org_id=str(org_id), count=sort_order)
    return sort_order


# ──────────────────────────────────────────────────────────────────────────
# Section toggles
# ──────────────────────────────────────────────────────────────────────────


async def get_section_toggles(
    db: AsyncSession,
    org_id: uuid.UUID,
    ruleset: ComplianceRuleset,
    *,
    home_cook: bool = False,
) -> dict[str, bool]:
    """Table defaults overlaid with the org's saved toggles."""
    toggles = ruleset.default_toggles(home_cook)
    result = await db.execute(select(SectionToggle).where(SectionToggle.org_id == org_id))
    for row in result.scalars().all():
        toggles[row.section_key] = bool(row.is_enabled)
    return toggles


async def set_section_toggle(
    db: AsyncSession,
    org_id: uuid.UUID,
    section_key: str,
    enabled: bool,
    ruleset: ComplianceRuleset,
) -> None:
    await bulk_set_section_toggles(db, org_id, {section_key: enabled}, ruleset)


async def bulk_set_section_toggles(
    db: AsyncSession,
    org_id: uuid.UUID,
    toggles: dict[str, bool],
    ruleset: ComplianceRuleset,
) -> None:
    known = {s.key for s in ruleset.sections}
    unknown = sorted(set(toggles) - known)
    if unknown:
        raise ValidationError("section_key", f"Unknown sections: {unknown}")

    result = await db.execute(
        select(SectionToggle).where(
            SectionToggle.org_id == org_id,
            SectionToggle.section_key.in_(list(toggles)),
        )
    )
    rows = {row.section_key: row for row in result.scalars().all()}
    for section_key, enabled in toggles.items():
        row = rows.get(section_key)
        if row is None:
            db.add(SectionToggle(org_id=org_id, section_key=section_key, is_enabled=bool(enabled)))
        else:
            row.is_enabled = bool(enabled)
    await db.flush()

    logger.info("section_toggles.updated", org_id=str(org_id), toggles=toggles)
