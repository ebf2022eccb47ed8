"""
Kitchen Compliance Database Models

Multi-tenant via org_id on all tables.

Tables:
  1. organizations        - Tenant food businesses
  2. equipment_instances  - Fridges / freezers / hot-holds with optional threshold overrides
  3. section_toggles      - Per-org enable/disable of compliance sections
  4. check_records        - One logged observation per (check, date, shift[, instance])
  5. self_assessments     - A1-A40 self-assessment, one per (org, date)
  6. onboarding_progress  - Resumable setup wizard state per (org, user)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


from db.session import Base

# ─── 1. Organizations ───────────────────────────────────────────────────────


class Organization(Base):
    __tablename__ = "organizations"

    org_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    business_category = Column(String(20), nullable=False, default="category_2")
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        CheckConstraint(
            "business_category IN ('category_1', 'category_2')",
            name="ck_org_business_category",
        ),
    )


# ─── 2. Equipment Instances ─────────────────────────────────────────────────


class EquipmentInstance(Base):
    __tablename__ = "equipment_instances"

    equipment_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id = Column(GUID(), ForeignKey("organizations.org_id"), nullable=False)
    name = Column(String(100), nullable=False)  # e.g. "Fridge 2"
    equipment_class = Column(String(20), nullable=False)
    shift = Column(String(2), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Override replaces the class default only when both pass bounds are set
    custom_pass_min = Column(Float)
    custom_pass_max = Column(Float)
    custom_warn_min = Column(Float)
    custom_warn_max = Column(Float)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_equipment_org_active", "org_id", "is_active"),
        CheckConstraint("equipment_class IN ('fridge', 'freezer', 'hot_hold')", name="ck_equipment_class"),
        CheckConstraint("shift IN ('AM', 'PM')", name="ck_equipment_shift"),
    )


# ─── 3. Section Toggles ─────────────────────────────────────────────────────


class SectionToggle(Base):
    __tablename__ = "section_toggles"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id = Column(GUID(), ForeignKey("organizations.org_id"), nullable=False)
    section_key = Column(String(50), nullable=False)
    is_enabled = Column(Boolean, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("org_id", "section_key", name="uq_section_toggle_per_org"),)


# ─── 4. Check Records ───────────────────────────────────────────────────────


class CheckRecord(Base):
    __tablename__ = "check_records"

    record_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id = Column(GUID(), ForeignKey("organizations.org_id"), nullable=False)
    check_key = Column(String(50), nullable=False)
    log_date = Column(Date, nullable=False)
    shift = Column(String(2), nullable=False)

    equipment_instance_id = Column(GUID(), ForeignKey("equipment_instances.equipment_id"), nullable=True)
    # equipment_instance_id as text, or "" for generic checks
    subject_key = Column(String(36), nullable=False, default="")

    measurement = Column(Float)  # °C
    boolean_result = Column(Boolean)
    status = Column(String(10), nullable=False)
    corrective_action = Column(Text)
    notes = Column(Text)

    logged_by = Column(String(255), nullable=False)
    logged_by_name = Column(String(255), nullable=False)
    logged_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "org_id",
            "check_key",
            "log_date",
            "shift",
            "subject_key",
            name="uq_check_record_per_shift",
        ),
        Index("ix_check_records_org_date_shift", "org_id", "log_date", "shift"),
        CheckConstraint("status IN ('pass', 'warning', 'fail')", name="ck_check_record_status"),
        CheckConstraint("shift IN ('AM', 'PM')", name="ck_check_record_shift"),
    )


# ─── 5. Self Assessments ────────────────────────────────────────────────────


class SelfAssessment(Base):
    __tablename__ = "self_assessments"

    assessment_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id = Column(GUID(), ForeignKey("organizations.org_id"), nullable=False)
    assessment_date = Column(Date, nullable=False)
    ruleset_version = Column(String(50), nullable=False)
    answers = Column(JSON, nullable=False, default=dict)  # item code → answer payload
    predicted_rating = Column(Integer, nullable=False)
    assessed_by = Column(String(255), nullable=False)
    assessed_by_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("org_id", "assessment_date", name="uq_self_assessment_per_day"),
        CheckConstraint("predicted_rating IN (0, 2, 3, 4, 5)", name="ck_self_assessment_rating"),
    )


# ─── 6. Onboarding Progress ─────────────────────────────────────────────────


class OnboardingProgressRow(Base):
    __tablename__ = "onboarding_progress"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    org_id = Column(GUID(), ForeignKey("organizations.org_id"), nullable=False)
    user_id = Column(String(255), nullable=False)
    current_phase = Column(Integer, nullable=False, default=0)
    phase_data = Column(JSON, nullable=False, default=dict)  # phase key → {completed, skipped}
    completed_at = Column(DateTime)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("org_id", "user_id", name="uq_onboarding_progress_per_user"),)
