"""Locked Pydantic output schema for the Employment Agreement Generator.

This schema defines the contract for every generated agreement, whether it was
drafted in the background or on demand. Do NOT modify field names or types
without updating all consumers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

MANDATORY_DISCLAIMER = (
    "This document is generated for informational purposes only "
    "and does not constitute legal advice."
)


class AgreementMetadata(BaseModel):
    title: str
    document_type: str = "Employment Agreement"
    jurisdiction: str
    governing_law: str
    effective_date: str
    disclaimer: str = MANDATORY_DISCLAIMER
    model: Optional[str] = None
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of generation",
    )


class Signatory(BaseModel):
    """A party that signs the agreement. Rendering and dispatch happen elsewhere."""

    party: str = Field(..., description="employer | employee")
    name: str
    title: Optional[str] = None
    email: Optional[str] = None


class EmploymentAgreementDocument(BaseModel):
    """The complete output of the Employment Agreement Generator agent."""

    metadata: AgreementMetadata
    sections: List[Dict[str, str]] = Field(
        ...,
        description="Ordered list of agreement sections, each with 'title' and 'content' keys",
    )
    signatories: List[Signatory] = Field(default_factory=list)
    customization_notes: List[str] = Field(default_factory=list)
    legal_risk_notes: List[str] = Field(default_factory=list)
