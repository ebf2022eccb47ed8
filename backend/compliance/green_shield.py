"""Green Shield eligibility: all four requirements met, nothing scored."""

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from compliance.assessments import count_assessments


@dataclass(frozen=True)
class GreenShieldInputs:
    licence_number: str | None
    licence_document_uploaded: bool
    supervisor_certificates: int
    completed_assessments: int


def missing_requirements(inputs: GreenShieldInputs) -> list[str]:
    missing = []
    if not (inputs.licence_number or "").strip():
        missing.append("licence_number")
    if not inputs.licence_document_uploaded:
        missing.append("licence_document")
    if inputs.supervisor_certificates < 1:
        missing.append("supervisor_certificate")
    if inputs.completed_assessments < 1:
        missing.append("self_assessment")
    return missing


def is_green_shield_eligible(inputs: GreenShieldInputs) -> bool:
    return not missing_requirements(inputs)


async def load_green_shield_inputs(
    db: AsyncSession,
    org_id: uuid.UUID,
    *,
    licence_number: str | None,
    licence_document_uploaded: bool,
    supervisor_certificates: int,
) -> GreenShieldInputs:
    """Licence and certificate facts come from the document store; assessments are counted here."""
    return GreenShieldInputs(
        licence_number=licence_number,
        licence_document_uploaded=licence_document_uploaded,
        supervisor_certificates=supervisor_certificates,
        completed_assessments=await count_assessments(db, org_id),
    )
