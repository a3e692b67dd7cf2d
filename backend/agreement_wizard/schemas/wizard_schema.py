"""Pydantic schemas for the wizard session API."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..background.types import (
    BackgroundGenerationState,
    CancellationReason,
    GenerationResult,
)


class CreateSessionRequest(BaseModel):
    template_id: str = Field("employment-agreement", max_length=64)
    form_data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Initial wizard inputs, e.g. restored from local progress.",
    )


class InputsUpdateRequest(BaseModel):
    form_data: Dict[str, Any] = Field(
        ...,
        description="Full snapshot (PUT) or partial field updates (PATCH).",
    )


class CancelRequest(BaseModel):
    reason: CancellationReason = CancellationReason.MANUAL


class GenerateRequest(BaseModel):
    fingerprint: Optional[str] = Field(
        None,
        description="Fingerprint the client believes it is finishing. Defaults to the current inputs.",
    )
    timeout_ms: Optional[int] = Field(
        None,
        ge=0,
        description="How long to wait for an in-flight background draft. 0 waits without a deadline.",
    )


class BackgroundStateResponse(BaseModel):
    session_id: str
    current_fingerprint: str
    background: BackgroundGenerationState


class SessionResponse(BaseModel):
    session_id: str
    template_id: str
    form_data: Dict[str, Any]
    current_fingerprint: str
    background: BackgroundGenerationState


class GenerateResponse(BaseModel):
    session_id: str
    agreement_id: str
    source: str = Field(..., description="background | direct")
    result: GenerationResult
