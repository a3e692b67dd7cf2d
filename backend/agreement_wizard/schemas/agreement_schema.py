"""Pydantic schemas for persisted agreement responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class AgreementRecord(BaseModel):
    """A single generated agreement (DB row → API response)."""

    id: str
    session_id: str
    template_id: str
    fingerprint: str
    source: str
    jurisdiction: Optional[str] = None
    document: Dict[str, Any]
    form_data: Dict[str, Any]
    usage: Optional[Dict[str, Any]] = None
    created_at: datetime
