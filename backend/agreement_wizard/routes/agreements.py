"""Generated agreement routes — retrieve stored agreements.

Endpoints:
  GET /agreements/{agreement_id}   — Get a single generated agreement by ID
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.agreement import GeneratedAgreement
from ..schemas.agreement_schema import AgreementRecord

router = APIRouter(
    prefix="/agreements",
    tags=["Agreements"],
)


def _record_to_response(record: GeneratedAgreement) -> AgreementRecord:
    """Convert a GeneratedAgreement ORM instance to an AgreementRecord response."""
    return AgreementRecord(
        id=str(record.id),
        session_id=record.session_id,
        template_id=record.template_id,
        fingerprint=record.fingerprint,
        source=record.source,
        jurisdiction=record.jurisdiction,
        document=json.loads(record.document_json),
        form_data=json.loads(record.form_data_json),
        usage=json.loads(record.usage_json) if record.usage_json else None,
        created_at=record.created_at or datetime.now(timezone.utc),
    )


@router.get(
    "/{agreement_id}",
    response_model=AgreementRecord,
    summary="Get generated agreement by ID",
    response_description="A single generated agreement",
)
def get_agreement(
    agreement_id: UUID,
    db: Session = Depends(get_db),
) -> AgreementRecord:
    """Retrieve a stored agreement. Never triggers generation."""
    record = (
        db.query(GeneratedAgreement)
        .filter(GeneratedAgreement.id == str(agreement_id))
        .first()
    )
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Agreement {agreement_id} not found",
        )
    return _record_to_response(record)
