"""
Self-Assessment store — one A1-A40 assessment per (org, date).

Saving re-scores the full answer set and upserts the row for that date.
Assessments for dates before today are history and cannot be rewritten.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Mapping

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance.errors import ValidationError
from compliance.ruleset import ComplianceRuleset
from compliance.scoring import AssessmentAnswer, evidence_outstanding, parse_answers, predict_rating
from core.config import get_settings
from core.identity import IdentityContext
from db.models import Organization, SelfAssessment

logger = structlog.get_logger()


def _today() -> date:
    return datetime.now(timezone.utc).date()


def load_answers(row: SelfAssessment, ruleset: ComplianceRuleset) -> dict[str, AssessmentAnswer]:
    """Stored JSON payload back into typed answers."""
    return parse_answers(row.answers or {}, ruleset.assessment_items)


async def get_business_category(db: AsyncSession, org_id: uuid.UUID) -> str:
    org = await db.get(Organization, org_id)
    if org is None:
        raise ValidationError("org_id", f"Organization {org_id} not found")
    return org.business_category


async def get_assessment(db: AsyncSession, org_id: uuid.UUID, assessment_date: date) -> SelfAssessment | None:
    result = await db.execute(
        select(SelfAssessment).where(
            SelfAssessment.org_id == org_id,
            SelfAssessment.assessment_date == assessment_date,
        )
    )
    return result.scalar_one_or_none()


def _apply(row: SelfAssessment, identity: IdentityContext, ruleset: ComplianceRuleset, payload: dict, rating: int):
    row.answers = payload
    row.predicted_rating = rating
    row.ruleset_version = ruleset.version
    row.assessed_by = identity.user_id
    row.assessed_by_name = identity.display_name


async def save_assessment(
    db: AsyncSession,
    identity: IdentityContext,
    ruleset: ComplianceRuleset,
    assessment_date: date,
    raw_answers: Mapping[str, AssessmentAnswer | Mapping[str, Any]],
    *,
    today: date | None = None,
) -> SelfAssessment:
    """
    Validate, score and upsert the assessment for ``assessment_date``.

    Every answer is validated before anything is written: a non-compliant
    answer without an allowed severity rejects the whole save, as does an
    evidence flag the organization's business category does not keep.
    """
    if assessment_date is None:
        raise ValidationError("assessment_date", "Date is required")
    if assessment_date < (today or _today()):
        raise ValidationError("assessment_date", "Assessments for past dates cannot be changed")

    business_category = await get_business_category(db, identity.org_id)
    answers = parse_answers(raw_answers, ruleset.assessment_items, business_category)
    rating = predict_rating(answers.values(), ruleset.rating_rules)
    payload = {code: answer.to_payload() for code, answer in answers.items()}

    row = await get_assessment(db, identity.org_id, assessment_date)
    created = row is None
    if row is None:
        row = SelfAssessment(org_id=identity.org_id, assessment_date=assessment_date)
        _apply(row, identity, ruleset, payload, rating)
        db.add(row)
        try:
            await db.flush()
        except IntegrityError:
            # Another save created the row first; fall through to update it
            await db.rollback()
            row = await get_assessment(db, identity.org_id, assessment_date)
            if row is None:
                raise
            created = False
            _apply(row, identity, ruleset, payload, rating)
    else:
        _apply(row, identity, ruleset, payload, rating)
    await db.commit()

    logger.info(
        "assessment.saved",
        org_id=str(identity.org_id),
        assessment_date=assessment_date.isoformat(),
        predicted_rating=rating,
        answered=len(answers),
        evidence_outstanding=len(evidence_outstanding(answers, ruleset.assessment_items, business_category)),
        created=created,
    )
    return row


async def list_assessment_history(
    db: AsyncSession,
    org_id: uuid.UUID,
    *,
    exclude_date: date | None = None,
    limit: int | None = None,
) -> list[SelfAssessment]:
    """Past assessments, newest first."""
    query = select(SelfAssessment).where(SelfAssessment.org_id == org_id)
    if exclude_date is not None:
        query = query.where(SelfAssessment.assessment_date != exclude_date)
    query = query.order_by(SelfAssessment.assessment_date.desc()).limit(
        limit or get_settings().assessment_history_limit
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_assessments(db: AsyncSession, org_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(SelfAssessment).where(SelfAssessment.org_id == org_id)
    )
    return int(result.scalar_one())
